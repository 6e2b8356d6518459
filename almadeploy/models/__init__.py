"""
almadeploy Domain Models

Dataclass-based models for type-safe data handling.
"""

from .results import (
    ValidationResult,
    ExecutionResult,
    Listener,
)
from .deployment import (
    DeploymentConfig,
    DeploymentPaths,
    DeploymentReport,
    PhaseResult,
    PhaseStatus,
    slugify,
)

__all__ = [
    # Results
    "ValidationResult",
    "ExecutionResult",
    "Listener",
    # Deployment
    "DeploymentConfig",
    "DeploymentPaths",
    "DeploymentReport",
    "PhaseResult",
    "PhaseStatus",
    "slugify",
]
