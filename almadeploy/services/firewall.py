"""firewalld rule management."""

from typing import Iterable, Set, Tuple

from almadeploy.services.executor import HostExecutor


def reconcile(current: Iterable[str], desired: Iterable[str]) -> Tuple[Set[str], Set[str]]:
    """
    Compute the changes turning ``current`` into exactly ``desired``.

    Returns:
        (to_add, to_remove)
    """
    current_set, desired_set = set(current), set(desired)
    return desired_set - current_set, current_set - desired_set


class Firewall:
    """Permanent firewalld zone configuration."""

    def __init__(self, executor: HostExecutor):
        self.executor = executor

    def _cmd(self, *args: str):
        return self.executor.run(
            ["firewall-cmd", "--permanent", *args], description="Updating firewall"
        )

    def list_services(self) -> Set[str]:
        return set(self._cmd("--list-services").stdout.split())

    def list_ports(self) -> Set[str]:
        return set(self._cmd("--list-ports").stdout.split())

    def add_service(self, service: str) -> None:
        self._cmd(f"--add-service={service}")

    def remove_service(self, service: str) -> None:
        self._cmd(f"--remove-service={service}")

    def add_port(self, port: str) -> None:
        self._cmd(f"--add-port={port}")

    def remove_port(self, port: str) -> None:
        self._cmd(f"--remove-port={port}")

    def reload(self) -> None:
        self.executor.run(["firewall-cmd", "--reload"], description="Reloading firewall")
