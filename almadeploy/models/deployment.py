"""
Deployment Models

Immutable configuration record, derived host paths and phase outcomes.
"""

import re
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from almadeploy import constants
from almadeploy.exceptions import ConfigError


def slugify(name: str) -> str:
    """Lower-case a name and collapse non-alphanumerics into single dashes."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "app"


@dataclass(frozen=True)
class DeploymentConfig:
    """Parameters of one deployment run. Built once, never mutated."""

    domain: Optional[str] = None
    contact_email: Optional[str] = None
    db_name: Optional[str] = None
    db_user: Optional[str] = None
    db_password: Optional[str] = None
    backend_source_path: Optional[Path] = None
    frontend_source_path: Optional[Path] = None
    app_name: str = constants.DEFAULT_APP_NAME
    tls_cert_path: Optional[Path] = None
    tls_key_path: Optional[Path] = None
    tls_chain_path: Optional[Path] = None
    spring_profile: str = constants.DEFAULT_SPRING_PROFILE
    backend_port: int = constants.DEFAULT_BACKEND_PORT
    pg_version: str = constants.DEFAULT_PG_VERSION
    node_major: int = constants.DEFAULT_NODE_MAJOR
    firewall_services: Tuple[str, ...] = constants.DEFAULT_FIREWALL_SERVICES
    firewall_ports: Tuple[str, ...] = constants.DEFAULT_FIREWALL_PORTS
    health_url: str = constants.DEFAULT_HEALTH_URL
    health_attempts: int = constants.DEFAULT_HEALTH_ATTEMPTS
    health_interval: float = constants.DEFAULT_HEALTH_INTERVAL
    min_free_bytes: int = constants.MIN_FREE_BYTES
    skip_build: bool = False

    _PATH_FIELDS = (
        "backend_source_path",
        "frontend_source_path",
        "tls_cert_path",
        "tls_key_path",
        "tls_chain_path",
    )
    _TUPLE_FIELDS = ("firewall_services", "firewall_ports")

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "DeploymentConfig":
        """
        Build a config record from loosely-typed option values.

        ``None`` values are dropped so defaults apply.

        Raises:
            ConfigError: On unknown keys or values of the wrong type
        """
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigError(
                f"Unknown configuration key(s): {', '.join(unknown)}",
                context=f"Valid keys: {', '.join(sorted(known))}",
            )

        values: Dict[str, Any] = {}
        for key, value in data.items():
            if value is None:
                continue
            if isinstance(value, (tuple, list)) and not value and key in cls._TUPLE_FIELDS:
                continue
            values[key] = cls._coerce(key, value, known[key].default)
        return cls(**values)

    @classmethod
    def _coerce(cls, key: str, value: Any, default: Any) -> Any:
        try:
            if key in cls._PATH_FIELDS:
                return Path(str(value)).expanduser()
            if key in cls._TUPLE_FIELDS:
                if isinstance(value, str):
                    value = [value]
                return tuple(str(item) for item in value)
            if isinstance(default, bool):
                if isinstance(value, str):
                    return value.strip().lower() in ("1", "true", "yes", "on")
                return bool(value)
            if isinstance(default, int):
                return int(value)
            if isinstance(default, float):
                return float(value)
            return str(value)
        except (TypeError, ValueError):
            raise ConfigError(
                f"Invalid value for '{key}': {value!r}",
                context=f"Expected {type(default).__name__}",
            )

    @property
    def app_slug(self) -> str:
        return slugify(self.app_name)

    @property
    def user_prefix(self) -> str:
        return re.sub(r"[^a-z0-9]+", "_", self.app_slug)

    @property
    def backend_user(self) -> str:
        return f"{self.user_prefix}_backend"

    @property
    def frontend_user(self) -> str:
        return f"{self.user_prefix}_frontend"

    @property
    def backend_service(self) -> str:
        return f"{self.app_slug}-backend.service"

    @property
    def pg_service(self) -> str:
        return f"postgresql-{self.pg_version}"

    @property
    def uses_custom_tls(self) -> bool:
        return self.tls_cert_path is not None and self.tls_key_path is not None

    def masked(self) -> Dict[str, Any]:
        """Return field values with secrets replaced, for display."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if any(word in f.name.upper() for word in constants.SENSITIVE_KEYWORDS):
                value = "********" if value else value
            result[f.name] = value
        return result


@dataclass(frozen=True)
class DeploymentPaths:
    """Every host path the plan reads or writes."""

    app_root: Path
    backend_src_dir: Path
    frontend_src_dir: Path
    backend_deploy_dir: Path
    backend_jar: Path
    backup_dir: Path
    static_dir: Path
    acme_webroot: Path
    env_dir: Path
    backend_env_file: Path
    systemd_unit_file: Path
    nginx_conf: Path
    logrotate_conf: Path
    tls_dir: Path
    pg_data_dir: Path
    letsencrypt_live_dir: Path

    @classmethod
    def from_config(
        cls, config: DeploymentConfig, root: Path = Path("/")
    ) -> "DeploymentPaths":
        """
        Derive host paths from the config.

        Args:
            config: Deployment configuration
            root: Filesystem root all paths are placed under
        """
        slug = config.app_slug
        app_root = root / "opt" / slug
        backend_deploy_dir = app_root / "backend"
        env_dir = root / "etc" / slug
        return cls(
            app_root=app_root,
            backend_src_dir=app_root / "src" / "backend",
            frontend_src_dir=app_root / "src" / "frontend",
            backend_deploy_dir=backend_deploy_dir,
            backend_jar=backend_deploy_dir / "app.jar",
            backup_dir=app_root / "backups",
            static_dir=root / "var" / "www" / slug,
            acme_webroot=root / "var" / "www" / f"{slug}-acme",
            env_dir=env_dir,
            backend_env_file=env_dir / "backend.env",
            systemd_unit_file=root / "etc" / "systemd" / "system" / config.backend_service,
            nginx_conf=root / "etc" / "nginx" / "conf.d" / f"{slug}.conf",
            logrotate_conf=root / "etc" / "logrotate.d" / constants.LOGROTATE_CONF_NAME,
            tls_dir=root / "etc" / "ssl" / slug,
            pg_data_dir=root / "var" / "lib" / "pgsql" / config.pg_version / "data",
            letsencrypt_live_dir=root / "etc" / "letsencrypt" / "live" / (config.domain or slug),
        )

    @property
    def pg_hba_conf(self) -> Path:
        return self.pg_data_dir / "pg_hba.conf"

    @property
    def postgresql_conf(self) -> Path:
        return self.pg_data_dir / "postgresql.conf"

    def as_dict(self) -> Dict[str, str]:
        return {f.name: str(getattr(self, f.name)) for f in fields(self)}


class PhaseStatus(Enum):
    """Outcome of one phase."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    VERIFIED = "verified"


@dataclass
class PhaseResult:
    """Result of a single phase execution."""

    name: str
    status: PhaseStatus
    details: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.status in (PhaseStatus.CREATED, PhaseStatus.UPDATED)

    def __repr__(self) -> str:
        return f"PhaseResult(name={self.name}, status={self.status.value})"


@dataclass
class DeploymentReport:
    """Summary of one orchestrator run."""

    results: list[PhaseResult] = field(default_factory=list)
    accounts: list[str] = field(default_factory=list)
    services: list[str] = field(default_factory=list)
    files: Dict[str, str] = field(default_factory=dict)
    failed_phase: Optional[str] = None
    healthy: Optional[bool] = None

    @property
    def completed_phases(self) -> list[str]:
        return [result.name for result in self.results]

    def status_of(self, phase_name: str) -> Optional[PhaseStatus]:
        for result in self.results:
            if result.name == phase_name:
                return result.status
        return None
