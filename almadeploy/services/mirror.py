"""Replace-semantics directory mirroring (rsync)."""

from pathlib import Path
from typing import Optional, Sequence

from almadeploy.services.executor import HostExecutor


class SourceMirror:
    """Makes a destination directory an exact mirror of a source directory."""

    def __init__(self, executor: HostExecutor):
        self.executor = executor

    def mirror(
        self,
        source: Path,
        destination: Path,
        exclude: Sequence[str] = (),
        chmod: Optional[str] = None,
        chown: Optional[str] = None,
    ) -> bool:
        """
        Mirror ``source`` into ``destination``, deleting files absent from source.

        Excluded patterns are neither copied nor deleted on the destination.
        ``chmod`` and ``chown`` are passed to rsync so the destination keeps
        its own modes and ownership instead of the source's.

        Returns:
            True if anything in the destination changed
        """
        destination.mkdir(parents=True, exist_ok=True)
        command = ["rsync", "-a", "--delete", "--itemize-changes"]
        command.extend(f"--exclude={pattern}" for pattern in exclude)
        if chmod:
            command.append(f"--chmod={chmod}")
        if chown:
            command.append(f"--chown={chown}")
        command.extend([f"{source}/", f"{destination}/"])
        result = self.executor.run(
            command, description=f"Syncing {source} -> {destination}"
        )
        return has_changes(result.stdout)


def has_changes(itemized_output: str) -> bool:
    """
    Interpret ``rsync --itemize-changes`` output.

    rsync prints one line per changed entry; the root directory's own
    timestamp update (``.d..t...... ./``) does not count as a change.
    """
    for line in itemized_output.splitlines():
        line = line.strip()
        if not line:
            continue
        if line.endswith(" ./") and line.startswith(".d"):
            continue
        return True
    return False
