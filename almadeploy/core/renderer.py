"""Configuration file rendering from Jinja2 stubs."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from jinja2 import StrictUndefined, Template

from almadeploy import constants
from almadeploy.models.deployment import DeploymentConfig, DeploymentPaths

STUBS_DIR = Path(__file__).resolve().parent.parent / "stubs"


@dataclass(frozen=True)
class TlsMaterial:
    """Certificate and key paths Nginx should serve."""

    certificate: Path
    key: Path


class TemplateRenderer:
    """Renders the managed configuration files."""

    def __init__(self, config: DeploymentConfig, paths: DeploymentPaths):
        self.config = config
        self.paths = paths

    @staticmethod
    def load_stub(name: str) -> str:
        """
        Load a stub template.

        Raises:
            FileNotFoundError: If the stub is missing from the package
        """
        stub_file = STUBS_DIR / f"{name}.j2"
        if not stub_file.exists():
            raise FileNotFoundError(f"Template stub not found: {stub_file}")
        return stub_file.read_text(encoding="utf-8")

    def render(self, name: str, **context) -> str:
        template = Template(
            self.load_stub(name),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        return template.render(config=self.config, paths=self.paths, **context)

    def backend_env(self) -> str:
        return self.render("backend.env")

    def systemd_unit(self) -> str:
        return self.render("backend.service")

    def nginx_vhost(self, tls: Optional[TlsMaterial] = None) -> str:
        return self.render("nginx.conf", tls=tls)

    def logrotate(self, log_file: Path) -> str:
        return self.render(
            "logrotate.conf", log_file=log_file, keep=constants.LOG_ROTATE_COUNT
        )
