"""
almadeploy Constants

Centralized defaults for the deployment plan.
"""

# Application defaults
DEFAULT_APP_NAME = "myapp"
DEFAULT_SPRING_PROFILE = "prod"
DEFAULT_BACKEND_PORT = 9091

# Runtime versions
DEFAULT_PG_VERSION = "16"
DEFAULT_NODE_MAJOR = 18
JAVA_PACKAGE = "java-21-openjdk-headless"
MAVEN_PACKAGE = "maven"
PGDG_REPO_PACKAGE = "pgdg-redhat-repo"
PGDG_REPO_URL = (
    "https://download.postgresql.org/pub/repos/yum/reporpms/"
    "EL-9-x86_64/pgdg-redhat-repo-latest.noarch.rpm"
)
NODESOURCE_SETUP_URL = "https://rpm.nodesource.com/setup_{major}.x"

# Firewall defaults
DEFAULT_FIREWALL_SERVICES = ("ssh", "http", "https")
DEFAULT_FIREWALL_PORTS: tuple = ()

# Pre-flight thresholds
MIN_FREE_BYTES = 2 * 1024 * 1024 * 1024
WEB_PORTS = (80, 443)
WEB_SERVER_PROCESS = "nginx"
BACKEND_PROCESS = "java"

# Health check
DEFAULT_HEALTH_URL = "https://127.0.0.1/actuator/health"
DEFAULT_HEALTH_ATTEMPTS = 15
DEFAULT_HEALTH_INTERVAL = 2.0
HEALTH_REQUEST_TIMEOUT = 5

# Build output
BACKEND_TARGET_DIR = "target"
EXCLUDED_JAR_SUFFIXES = ("-sources.jar", "-javadoc.jar")
FRONTEND_OUTPUT_DIRS = ("build", "dist")
# Build outputs in the working copy survive source mirroring
MIRROR_EXCLUDES = ("/target/", "/node_modules/", "/build/", "/dist/")

# Log configuration
DEFAULT_LOG_FILE = "/var/log/almadeploy/deployment.log"
LOG_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S_%f"
BACKUP_RETENTION_DAYS = 90
LOG_ROTATE_COUNT = 30
LOGROTATE_CONF_NAME = "almadeploy"

# File permissions
ARTIFACT_DIR_MODE = 0o750
ARTIFACT_FILE_MODE = 0o640
ENV_FILE_MODE = 0o640
TLS_FILE_MODE = 0o640
CONFIG_FILE_MODE = 0o644
LOG_FILE_MODE = 0o640

# Service accounts
SERVICE_ACCOUNT_SHELL = "/sbin/nologin"
WEB_SERVER_GROUP = "nginx"

# systemd units
NGINX_SERVICE = "nginx"
FIREWALL_SERVICE = "firewalld"
CERTBOT_RENEW_TIMER = "certbot-renew.timer"

# Exit codes
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

# Sensitive keywords (masked in logged commands and env dumps)
SENSITIVE_KEYWORDS = [
    "PASSWORD",
    "TOKEN",
    "SECRET",
    "KEY",
]
