"""Deployment plan: the fixed, ordered phase list."""

from dataclasses import dataclass
from typing import Callable, Tuple

from almadeploy.core import phases
from almadeploy.core.context import PhaseContext
from almadeploy.models.deployment import DeploymentConfig, PhaseResult


@dataclass(frozen=True)
class Phase:
    """A named step of the plan."""

    name: str
    title: str
    run: Callable[[PhaseContext], PhaseResult]


@dataclass(frozen=True)
class DeploymentPlan:
    """Ordered phases bound to one configuration."""

    config: DeploymentConfig
    phases: Tuple[Phase, ...]

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(phase.name for phase in self.phases)

    def __len__(self) -> int:
        return len(self.phases)


DEFAULT_PHASES = (
    Phase("firewall", "Configuring firewall", phases.configure_firewall),
    Phase("dependencies", "Installing runtime dependencies", phases.install_dependencies),
    Phase("database", "Provisioning database", phases.provision_database),
    Phase("accounts", "Creating service accounts", phases.create_service_accounts),
    Phase("sources", "Syncing application sources", phases.sync_sources),
    Phase("build", "Building artifacts", phases.build_artifacts),
    Phase("artifacts", "Deploying artifacts", phases.deploy_artifacts),
    Phase("services", "Configuring backend service and reverse proxy", phases.configure_services),
    Phase("tls", "Configuring TLS", phases.configure_tls),
    Phase("health", "Checking application health", phases.check_health),
)


def build_default_plan(config: DeploymentConfig) -> DeploymentPlan:
    return DeploymentPlan(config=config, phases=DEFAULT_PHASES)
