"""System account management."""

from pathlib import Path

from almadeploy import constants
from almadeploy.services.executor import HostExecutor


class AccountManager:
    """Creates dedicated low-privilege service accounts."""

    def __init__(self, executor: HostExecutor):
        self.executor = executor

    def exists(self, user: str) -> bool:
        return self.executor.succeeds(["id", "-u", user])

    def create_system_user(self, user: str, home: Path) -> None:
        self.executor.run(
            [
                "useradd",
                "--system",
                "--shell",
                constants.SERVICE_ACCOUNT_SHELL,
                "--home-dir",
                str(home),
                user,
            ],
            description=f"Creating system user {user}",
        )

    def ensure(self, user: str, home: Path) -> bool:
        """
        Create a system user if absent. Existing accounts are never modified.

        Returns:
            True if the account was created
        """
        if self.exists(user):
            return False
        self.create_system_user(user, home)
        return True
