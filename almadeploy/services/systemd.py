"""Service manager (systemd) operations."""

from almadeploy.services.executor import HostExecutor


class ServiceManager:
    """Thin wrapper over systemctl."""

    def __init__(self, executor: HostExecutor):
        self.executor = executor

    def is_active(self, unit: str) -> bool:
        return self.executor.succeeds(["systemctl", "is-active", "--quiet", unit])

    def is_enabled(self, unit: str) -> bool:
        return self.executor.succeeds(["systemctl", "is-enabled", "--quiet", unit])

    def enable_now(self, unit: str) -> bool:
        """
        Enable and start a unit unless it already is both.

        Returns:
            True if the unit state changed
        """
        if self.is_enabled(unit) and self.is_active(unit):
            return False
        self.executor.run(
            ["systemctl", "enable", "--now", unit], description=f"Enabling {unit}"
        )
        return True

    def start(self, unit: str) -> None:
        self.executor.run(["systemctl", "start", unit], description=f"Starting {unit}")

    def restart(self, unit: str) -> None:
        self.executor.run(
            ["systemctl", "restart", unit], description=f"Restarting {unit}"
        )

    def reload(self, unit: str) -> None:
        self.executor.run(["systemctl", "reload", unit], description=f"Reloading {unit}")

    def stop(self, unit: str) -> None:
        self.executor.run(["systemctl", "stop", unit], description=f"Stopping {unit}")

    def daemon_reload(self) -> None:
        self.executor.run(["systemctl", "daemon-reload"], description="Reloading systemd")
