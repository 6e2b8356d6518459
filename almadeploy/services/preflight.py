"""Pre-flight validation. Runs before any phase mutates the host."""

import os
import re
import shutil
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from almadeploy import constants
from almadeploy.exceptions import ConfigError, PrivilegeError, ResourceError
from almadeploy.models.deployment import DeploymentConfig
from almadeploy.models.results import Listener, ValidationResult
from almadeploy.services.executor import HostExecutor

DOMAIN_PATTERN = re.compile(
    r"^(?=.{1,253}$)([a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,63}$"
)
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PROCESS_PATTERN = re.compile(r'\("([^"]+)",pid=')

REQUIRED_FIELDS = {
    "domain": "--domain",
    "db_name": "--db-name",
    "db_user": "--db-user",
    "db_password": "--db-password",
    "backend_source_path": "--backend-src",
    "frontend_source_path": "--frontend-src",
}


def validate_config(config: DeploymentConfig) -> ValidationResult:
    """
    Validate a configuration record without touching the host.

    Returns:
        ValidationResult with one error per problem found
    """
    result = ValidationResult()

    for field_name, flag in REQUIRED_FIELDS.items():
        if not getattr(config, field_name):
            result.add_error(f"{flag} is required")

    if config.domain and not DOMAIN_PATTERN.match(config.domain):
        result.add_error(f"Invalid domain name: {config.domain}")

    for label, path in (
        ("Backend source", config.backend_source_path),
        ("Frontend source", config.frontend_source_path),
    ):
        if path is None:
            continue
        if not path.is_dir():
            result.add_error(f"{label} directory '{path}' is missing or not a directory")
        elif not os.access(path, os.R_OK | os.X_OK):
            result.add_error(f"{label} directory '{path}' is not readable")

    has_cert = config.tls_cert_path is not None
    has_key = config.tls_key_path is not None
    if has_cert != has_key:
        result.add_error(
            "Provide both --tls-cert-path and --tls-key-path or neither"
        )
    elif has_cert:
        for path in (config.tls_cert_path, config.tls_key_path, config.tls_chain_path):
            if path is not None and not path.is_file():
                result.add_error(f"TLS file '{path}' does not exist")
    elif config.tls_chain_path is not None:
        result.add_error("--tls-chain-path requires --tls-cert-path and --tls-key-path")

    if not has_cert and not has_key and not config.contact_email:
        result.add_error(
            "--email is required when TLS certificates are not provided"
        )
    if config.contact_email and not EMAIL_PATTERN.match(config.contact_email):
        result.add_error(f"Invalid contact email: {config.contact_email}")

    if not 1 <= config.backend_port <= 65535:
        result.add_error(f"Backend port out of range: {config.backend_port}")
    if config.backend_port in constants.WEB_PORTS:
        result.add_error(f"Backend port {config.backend_port} collides with Nginx")
    if config.health_attempts < 1:
        result.add_error("health_attempts must be at least 1")
    if config.health_interval < 0:
        result.add_error("health_interval must not be negative")

    return result


def parse_listeners(output: str) -> List[Listener]:
    """
    Parse ``ss -H -tulpn`` output.

    Example line::

        tcp LISTEN 0 511 0.0.0.0:80 0.0.0.0:* users:(("nginx",pid=812,fd=6))
    """
    listeners = []
    for line in output.splitlines():
        columns = line.split()
        if len(columns) < 5:
            continue
        local = columns[4]
        address, _, port = local.rpartition(":")
        if not port.isdigit():
            continue
        listeners.append(
            Listener(
                protocol=columns[0],
                address=address,
                port=int(port),
                processes=tuple(PROCESS_PATTERN.findall(line)),
            )
        )
    return listeners


class PortInspector:
    """Reports sockets bound on the host."""

    def __init__(self, executor: HostExecutor):
        self.executor = executor

    def listeners(self) -> List[Listener]:
        result = self.executor.run(["ss", "-H", "-tulpn"], description="Inspecting ports")
        return parse_listeners(result.stdout)


class PreflightValidator:
    """Checks privileges, configuration, disk space and ports."""

    def __init__(
        self,
        config: DeploymentConfig,
        port_inspector: PortInspector,
        is_root: Optional[Callable[[], bool]] = None,
        disk_usage: Callable = shutil.disk_usage,
        disk_path: Path = Path("/"),
    ):
        self.config = config
        self.port_inspector = port_inspector
        self.is_root = is_root or (lambda: os.geteuid() == 0)
        self.disk_usage = disk_usage
        self.disk_path = disk_path

    def check_privilege(self) -> str:
        if not self.is_root():
            raise PrivilegeError(
                "almadeploy must run with root privileges",
                context="Re-run with sudo or as root",
            )
        return "Running as root"

    def check_config(self) -> str:
        result = validate_config(self.config)
        if result.has_errors:
            raise ConfigError(
                result.errors[0] if len(result.errors) == 1 else "Invalid configuration",
                context="; ".join(result.errors) if len(result.errors) > 1 else None,
            )
        return "Configuration valid"

    def check_disk(self) -> str:
        free = self.disk_usage(str(self.disk_path)).free
        required = self.config.min_free_bytes
        if free < required:
            raise ResourceError(
                f"Insufficient disk space on {self.disk_path}",
                context=f"{_gib(free)} free, {_gib(required)} required",
            )
        return f"{_gib(free)} free on {self.disk_path}"

    def allowed_owners(self) -> Dict[int, str]:
        owners = {port: constants.WEB_SERVER_PROCESS for port in constants.WEB_PORTS}
        owners[self.config.backend_port] = constants.BACKEND_PROCESS
        return owners

    def check_ports(self) -> str:
        owners = self.allowed_owners()
        conflicts: List[Tuple[int, str]] = []
        for listener in self.port_inspector.listeners():
            allowed = owners.get(listener.port)
            if allowed is None or listener.owned_by(allowed):
                continue
            holder = ", ".join(listener.processes) or "unknown process"
            conflicts.append((listener.port, holder))

        if conflicts:
            details = ", ".join(f"{port} ({holder})" for port, holder in sorted(set(conflicts)))
            raise ResourceError(
                "Required ports are already in use",
                context=f"Resolve the conflict before continuing: {details}",
            )
        return f"Ports {', '.join(str(p) for p in sorted(owners))} available"

    def checks(self) -> List[Tuple[str, Callable[[], str]]]:
        """Named checks in the order they must run."""
        return [
            ("Privileges", self.check_privilege),
            ("Configuration", self.check_config),
            ("Disk space", self.check_disk),
            ("Ports", self.check_ports),
        ]

    def run(self) -> List[str]:
        """
        Run every check, stopping at the first failure.

        Returns:
            Success messages, one per check

        Raises:
            PrivilegeError, ConfigError, ResourceError
        """
        return [check() for _, check in self.checks()]


def _gib(value: int) -> str:
    return f"{value / (1024 ** 3):.1f} GiB"
