"""Host command execution."""

import os
from pathlib import Path
from typing import Dict, Optional, Sequence

from almadeploy.exceptions import ExternalToolError
from almadeploy.logger import DeployLogger, run_with_progress
from almadeploy.models.results import ExecutionResult


class HostExecutor:
    """Runs commands on the local host and logs them."""

    def __init__(self, logger: Optional[DeployLogger] = None):
        """
        Initialize executor.

        Args:
            logger: Logger receiving every command and its output
        """
        self.logger = logger

    def run(
        self,
        command: Sequence[str],
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
        check: bool = True,
        description: Optional[str] = None,
    ) -> ExecutionResult:
        """
        Run a command synchronously.

        Args:
            command: Argument vector
            cwd: Working directory
            env: Extra environment variables
            check: Raise on non-zero exit
            description: Spinner text (defaults to the command itself)

        Returns:
            ExecutionResult

        Raises:
            ExternalToolError: If the command fails (or cannot start) and check=True
        """
        command = [str(part) for part in command]
        try:
            result = run_with_progress(
                self.logger,
                command,
                description or " ".join(command),
                cwd=cwd,
                env={**os.environ, **(env or {})},
            )
        except OSError as e:
            # Executable missing or not runnable, reported like a shell would
            if self.logger:
                self.logger.log_output(str(e), "stderr")
            result = ExecutionResult(
                returncode=127, stderr=str(e), command=" ".join(command)
            )
        if check and result.is_failure:
            raise ExternalToolError(command, result.returncode, result.stderr)
        return result

    def succeeds(self, command: Sequence[str]) -> bool:
        """Run a read-only probe and report whether it exited zero."""
        return self.run(command, check=False, description="Checking").is_success
