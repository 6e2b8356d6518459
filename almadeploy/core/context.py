"""Per-run context handed to every phase."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from almadeploy.core.renderer import TemplateRenderer
from almadeploy.logger import DeployLogger
from almadeploy.models.deployment import (
    DeploymentConfig,
    DeploymentPaths,
    DeploymentReport,
)
from almadeploy.services import (
    AccountManager,
    BackendBuilder,
    Certbot,
    FileManager,
    Firewall,
    FrontendBuilder,
    HealthProbe,
    HostExecutor,
    Nginx,
    PackageManager,
    PostgresAdmin,
    ServiceManager,
    SourceMirror,
)


@dataclass
class HostServices:
    """External collaborators the phases talk to."""

    packages: PackageManager
    services: ServiceManager
    postgres: PostgresAdmin
    firewall: Firewall
    accounts: AccountManager
    mirror: SourceMirror
    backend_builder: BackendBuilder
    frontend_builder: FrontendBuilder
    nginx: Nginx
    certbot: Certbot
    files: FileManager
    health: HealthProbe

    @classmethod
    def create(
        cls, config: DeploymentConfig, paths: DeploymentPaths, executor: HostExecutor
    ) -> "HostServices":
        return cls(
            packages=PackageManager(executor),
            services=ServiceManager(executor),
            postgres=PostgresAdmin(executor, config.pg_version, paths.pg_data_dir),
            firewall=Firewall(executor),
            accounts=AccountManager(executor),
            mirror=SourceMirror(executor),
            backend_builder=BackendBuilder(executor),
            frontend_builder=FrontendBuilder(executor),
            nginx=Nginx(executor),
            certbot=Certbot(executor, paths.letsencrypt_live_dir),
            files=FileManager(),
            health=HealthProbe(
                config.health_url,
                host_header=config.domain,
                attempts=config.health_attempts,
                interval=config.health_interval,
            ),
        )


class CompensationStack:
    """Reversal actions registered by phases, unwound last-in first-out."""

    def __init__(self):
        self._actions: List[Tuple[str, Callable[[], None]]] = []

    def register(self, description: str, action: Callable[[], None]) -> None:
        self._actions.append((description, action))

    def __len__(self) -> int:
        return len(self._actions)

    @property
    def descriptions(self) -> List[str]:
        return [description for description, _ in self._actions]

    def unwind(self, logger: DeployLogger) -> List[str]:
        """
        Run every registered action in reverse order.

        A failing action is logged and the remaining ones still run.

        Returns:
            Descriptions of actions that failed
        """
        failed = []
        while self._actions:
            description, action = self._actions.pop()
            logger.log(f"Compensating: {description}", "WARNING")
            try:
                action()
            except Exception as e:
                failed.append(description)
                logger.warning(f"Compensation '{description}' failed: {e}")
        return failed


@dataclass
class PhaseContext:
    """Everything a phase needs. The config is immutable."""

    config: DeploymentConfig
    paths: DeploymentPaths
    host: HostServices
    logger: DeployLogger
    renderer: TemplateRenderer
    compensations: CompensationStack = field(default_factory=CompensationStack)
    report: DeploymentReport = field(default_factory=DeploymentReport)

    # Hand-offs between consecutive phases
    sources_changed: Optional[bool] = None
    backend_artifact: Optional[Path] = None
    frontend_bundle: Optional[Path] = None
    backend_changed: bool = False
