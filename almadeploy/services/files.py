"""File installation with ownership and permission hardening."""

import hashlib
import os
import shutil
from pathlib import Path
from typing import Optional


def file_digest(path: Path) -> Optional[str]:
    """SHA-256 of a file, or None if it does not exist."""
    if not path.is_file():
        return None
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


class FileManager:
    """Writes managed files and applies owner/mode."""

    def __init__(self, apply_ownership: bool = True):
        """
        Args:
            apply_ownership: chown files (requires root)
        """
        self.apply_ownership = apply_ownership

    def set_owner(self, path: Path, owner: Optional[str], group: Optional[str]) -> None:
        if self.apply_ownership and (owner or group):
            shutil.chown(path, user=owner, group=group)

    def ensure_dir(
        self,
        path: Path,
        mode: Optional[int] = None,
        owner: Optional[str] = None,
        group: Optional[str] = None,
    ) -> None:
        path.mkdir(parents=True, exist_ok=True)
        if mode is not None:
            path.chmod(mode)
        self.set_owner(path, owner, group)

    def write(
        self,
        path: Path,
        content: str,
        mode: int,
        owner: Optional[str] = None,
        group: Optional[str] = None,
    ) -> bool:
        """
        Write text content if it differs from what is on disk.

        Mode and owner are always re-applied.

        Returns:
            True if the content changed
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        changed = not path.is_file() or path.read_text() != content
        if changed:
            path.write_text(content)
        path.chmod(mode)
        self.set_owner(path, owner, group)
        return changed

    def install(
        self,
        source: Path,
        destination: Path,
        mode: int,
        owner: Optional[str] = None,
        group: Optional[str] = None,
    ) -> bool:
        """
        Copy a file if its content differs from the destination.

        Returns:
            True if the destination changed
        """
        destination.parent.mkdir(parents=True, exist_ok=True)
        changed = file_digest(source) != file_digest(destination)
        if changed:
            shutil.copy2(source, destination)
        destination.chmod(mode)
        self.set_owner(destination, owner, group)
        return changed

    def harden_tree(
        self,
        root: Path,
        dir_mode: int,
        file_mode: int,
        owner: Optional[str] = None,
        group: Optional[str] = None,
    ) -> None:
        """Apply owner and modes to a directory tree."""
        for dirpath, dirnames, filenames in os.walk(root):
            directory = Path(dirpath)
            directory.chmod(dir_mode)
            self.set_owner(directory, owner, group)
            for name in filenames:
                path = directory / name
                path.chmod(file_mode)
                self.set_owner(path, owner, group)
