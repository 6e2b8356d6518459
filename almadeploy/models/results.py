"""
Result Models

Dataclass models for operation results and command outputs.
"""

from dataclasses import dataclass, field
from typing import Tuple


@dataclass
class ValidationResult:
    """Problems found while validating a deployment configuration."""

    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def add_error(self, error: str) -> None:
        self.errors.append(error)

    def __repr__(self) -> str:
        return f"ValidationResult(errors={len(self.errors)})"


@dataclass
class ExecutionResult:
    """Result of a subprocess execution."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    command: str = ""

    @property
    def is_success(self) -> bool:
        """Check if execution succeeded."""
        return self.returncode == 0

    @property
    def is_failure(self) -> bool:
        """Check if execution failed."""
        return self.returncode != 0

    @property
    def output(self) -> str:
        """Get combined output (stdout + stderr)."""
        return f"{self.stdout}\n{self.stderr}".strip()

    def __repr__(self) -> str:
        return f"ExecutionResult(returncode={self.returncode}, command='{self.command[:50]}...')"


@dataclass(frozen=True)
class Listener:
    """A socket bound on the host, as reported by ``ss``."""

    protocol: str
    address: str
    port: int
    processes: Tuple[str, ...] = ()

    def owned_by(self, process_name: str) -> bool:
        """Check if every process holding the socket has the given name."""
        return bool(self.processes) and all(
            name == process_name for name in self.processes
        )
