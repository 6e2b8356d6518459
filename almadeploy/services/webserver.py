"""Nginx and certbot collaborators."""

from pathlib import Path

from almadeploy import constants
from almadeploy.models.results import ExecutionResult
from almadeploy.services.executor import HostExecutor


class Nginx:
    """Nginx configuration test."""

    def __init__(self, executor: HostExecutor):
        self.executor = executor

    def test_config(self) -> ExecutionResult:
        """Run ``nginx -t``; the caller decides what a failure means."""
        return self.executor.run(
            ["nginx", "-t"], check=False, description="Validating Nginx configuration"
        )


class Certbot:
    """ACME certificate requests through certbot."""

    def __init__(self, executor: HostExecutor, live_dir: Path):
        """
        Args:
            executor: Host executor
            live_dir: /etc/letsencrypt/live/<domain>
        """
        self.executor = executor
        self.live_dir = live_dir

    @property
    def fullchain(self) -> Path:
        return self.live_dir / "fullchain.pem"

    @property
    def privkey(self) -> Path:
        return self.live_dir / "privkey.pem"

    def certificate_exists(self) -> bool:
        return self.fullchain.is_file() and self.privkey.is_file()

    def request(self, domain: str, email: str, webroot: Path) -> None:
        self.executor.run(
            [
                "certbot",
                "certonly",
                "--webroot",
                "-w",
                str(webroot),
                "-d",
                domain,
                "--non-interactive",
                "--agree-tos",
                "--email",
                email,
                "--deploy-hook",
                f"systemctl reload {constants.NGINX_SERVICE}",
            ],
            description=f"Requesting certificate for {domain}",
        )
