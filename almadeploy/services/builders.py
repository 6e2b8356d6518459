"""Backend (Maven) and frontend (npm) builds."""

import os
from pathlib import Path
from typing import List, Sequence

from almadeploy import constants
from almadeploy.exceptions import BuildError, ExternalToolError
from almadeploy.services.executor import HostExecutor


def select_artifact(target_dir: Path) -> Path:
    """
    Pick the single deployable jar in a build output directory.

    Sources and javadoc archives are ignored.

    Raises:
        BuildError: If zero or more than one candidate remains
    """
    if not target_dir.is_dir():
        raise BuildError(
            f"Build output directory {target_dir} does not exist",
            context="Check the build output in the deployment log",
        )

    candidates: List[Path] = sorted(
        path
        for path in target_dir.glob("*.jar")
        if path.is_file() and not path.name.endswith(constants.EXCLUDED_JAR_SUFFIXES)
    )
    if not candidates:
        raise BuildError(
            f"No runnable JAR produced under {target_dir}",
            context="Check the build output in the deployment log",
        )
    if len(candidates) > 1:
        raise BuildError(
            f"Ambiguous build output: {len(candidates)} JARs under {target_dir}",
            context=", ".join(path.name for path in candidates),
        )
    return candidates[0]


def locate_frontend_output(project_dir: Path) -> Path:
    """
    Find the production bundle directory of a frontend build.

    Raises:
        BuildError: If neither build/ nor dist/ exists
    """
    for name in constants.FRONTEND_OUTPUT_DIRS:
        candidate = project_dir / name
        if candidate.is_dir():
            return candidate
    raise BuildError(
        f"No frontend build output under {project_dir}",
        context=f"Expected one of: {', '.join(constants.FRONTEND_OUTPUT_DIRS)}",
    )


class _Builder:
    def __init__(self, executor: HostExecutor):
        self.executor = executor

    def _run(self, command: Sequence[str], cwd: Path, description: str) -> None:
        try:
            self.executor.run(command, cwd=cwd, description=description)
        except ExternalToolError as e:
            raise BuildError(
                f"{description} failed with exit status {e.returncode}",
                context=f"Command: {e.command}",
            ) from e


class BackendBuilder(_Builder):
    """Packages a Maven project into a runnable jar."""

    def build_command(self, project_dir: Path) -> List[str]:
        wrapper = project_dir / "mvnw"
        if wrapper.is_file() and os.access(wrapper, os.X_OK):
            maven = "./mvnw"
        else:
            maven = "mvn"
        return [maven, "-B", "clean", "package", "-DskipTests"]

    def build(self, project_dir: Path) -> Path:
        self._run(self.build_command(project_dir), project_dir, "Packaging backend")
        return select_artifact(project_dir / constants.BACKEND_TARGET_DIR)

    def locate(self, project_dir: Path) -> Path:
        return select_artifact(project_dir / constants.BACKEND_TARGET_DIR)


class FrontendBuilder(_Builder):
    """Installs dependencies and produces the static frontend bundle."""

    def install_command(self, project_dir: Path) -> List[str]:
        if (project_dir / "package-lock.json").is_file():
            return ["npm", "ci"]
        return ["npm", "install"]

    def build(self, project_dir: Path) -> Path:
        self._run(
            self.install_command(project_dir), project_dir, "Installing frontend dependencies"
        )
        self._run(["npm", "run", "build"], project_dir, "Building frontend")
        return locate_frontend_output(project_dir)

    def locate(self, project_dir: Path) -> Path:
        return locate_frontend_output(project_dir)
