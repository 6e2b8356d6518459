"""
almadeploy Exception Hierarchy

Every failure the orchestrator can report maps to one of these types.
"""

from typing import Optional, Sequence


class AlmaDeployError(Exception):
    """Base exception for all almadeploy errors."""

    def __init__(self, message: str, context: Optional[str] = None):
        self.message = message
        self.context = context
        self.phase: Optional[str] = None
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format error message with optional context."""
        if self.context:
            return f"{self.message}\nContext: {self.context}"
        return self.message


class PrivilegeError(AlmaDeployError):
    """Raised when the caller lacks administrative privilege."""

    pass


class ConfigError(AlmaDeployError):
    """Raised when configuration is invalid, missing or contradictory."""

    pass


class ResourceError(AlmaDeployError):
    """Raised when the host lacks disk space or a port is taken."""

    pass


class BuildError(AlmaDeployError):
    """Raised when a build fails or its artifact cannot be located."""

    pass


class ExternalToolError(AlmaDeployError):
    """Raised when a wrapped subprocess exits non-zero."""

    def __init__(self, command: Sequence[str], returncode: int, stderr: str = ""):
        self.command = " ".join(command)
        self.returncode = returncode
        self.stderr = stderr.strip()
        message = f"Command failed with exit status {returncode}: {self.command}"
        super().__init__(message, self.stderr or None)


class HealthCheckTimeout(AlmaDeployError):
    """Raised when the post-deploy probe never succeeded within its budget."""

    def __init__(self, url: str, attempts: int, interval: float):
        self.url = url
        self.attempts = attempts
        self.interval = interval
        message = f"Health endpoint {url} not healthy after {attempts} attempts"
        context = f"Probed every {interval:g}s; inspect the running services manually"
        super().__init__(message, context)
