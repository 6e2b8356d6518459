"""
almadeploy Services Layer

Typed wrappers over the host tools the deployment plan drives.
"""

from .executor import HostExecutor
from .packages import PackageManager
from .systemd import ServiceManager
from .postgres import PostgresAdmin
from .firewall import Firewall
from .accounts import AccountManager
from .mirror import SourceMirror
from .builders import BackendBuilder, FrontendBuilder
from .webserver import Nginx, Certbot
from .files import FileManager
from .health import HealthProbe
from .preflight import PortInspector, PreflightValidator

__all__ = [
    "HostExecutor",
    "PackageManager",
    "ServiceManager",
    "PostgresAdmin",
    "Firewall",
    "AccountManager",
    "SourceMirror",
    "BackendBuilder",
    "FrontendBuilder",
    "Nginx",
    "Certbot",
    "FileManager",
    "HealthProbe",
    "PortInspector",
    "PreflightValidator",
]
