"""Core deployment components"""

from .context import CompensationStack, HostServices, PhaseContext
from .renderer import TemplateRenderer, TlsMaterial
from .plan import DeploymentPlan, Phase, build_default_plan
from .orchestrator import DeploymentOrchestrator, terminate_as_interrupt
from .config_loader import build_config, load_config_file

__all__ = [
    "CompensationStack",
    "HostServices",
    "PhaseContext",
    "TemplateRenderer",
    "TlsMaterial",
    "DeploymentPlan",
    "Phase",
    "build_default_plan",
    "DeploymentOrchestrator",
    "terminate_as_interrupt",
    "build_config",
    "load_config_file",
]
