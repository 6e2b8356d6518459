"""Package manager service (rpm/dnf)."""

import re
import shutil
from typing import Optional

from almadeploy import constants
from almadeploy.services.executor import HostExecutor


class PackageManager:
    """Queries and installs system packages."""

    def __init__(self, executor: HostExecutor):
        self.executor = executor

    def is_installed(self, package: str) -> bool:
        """Check if a package is installed (``rpm -q``)."""
        return self.executor.succeeds(["rpm", "-q", package])

    def install(self, package: str) -> None:
        """Install a package or an rpm URL with dnf."""
        self.executor.run(
            ["dnf", "install", "-y", package], description=f"Installing {package}"
        )

    def ensure(self, package: str) -> bool:
        """
        Install a package unless it is already present.

        Returns:
            True if the package was installed by this call
        """
        if self.is_installed(package):
            return False
        self.install(package)
        return True

    def disable_module(self, module: str) -> None:
        """Disable a dnf module stream (no-op when already disabled)."""
        self.executor.run(
            ["dnf", "-qy", "module", "disable", module],
            description=f"Disabling {module} module",
        )

    def command_exists(self, command: str) -> bool:
        return shutil.which(command) is not None

    def node_major_version(self) -> Optional[int]:
        """Return the installed Node.js major version, if any."""
        if not self.command_exists("node"):
            return None
        result = self.executor.run(["node", "-v"], check=False)
        return parse_node_major(result.stdout) if result.is_success else None

    def setup_nodesource(self, major: int) -> None:
        """Register the NodeSource repository for a Node.js major release."""
        url = constants.NODESOURCE_SETUP_URL.format(major=major)
        self.executor.run(
            ["bash", "-c", f"set -o pipefail; curl -fsSL {url} | bash -"],
            description=f"Configuring NodeSource repo for Node.js {major}",
        )


def parse_node_major(version_output: str) -> Optional[int]:
    """Parse ``node -v`` output such as ``v18.19.0``."""
    match = re.match(r"\s*v?(\d+)\.", version_output)
    return int(match.group(1)) if match else None
