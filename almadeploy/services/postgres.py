"""PostgreSQL administration through the psql client."""

import re
from pathlib import Path

from almadeploy.services.executor import HostExecutor

LISTEN_ADDRESSES_PATTERN = re.compile(r"^#?\s*listen_addresses\s*=.*$", re.MULTILINE)


def quote_literal(value: str) -> str:
    """Quote a SQL string literal."""
    return "'" + value.replace("'", "''") + "'"


def quote_ident(value: str) -> str:
    """Quote a SQL identifier."""
    return '"' + value.replace('"', '""') + '"'


class PostgresAdmin:
    """Role and database management as the ``postgres`` system user."""

    def __init__(self, executor: HostExecutor, version: str, data_dir: Path):
        """
        Initialize admin.

        Args:
            executor: Host executor
            version: PostgreSQL major version (e.g. "16")
            data_dir: Cluster data directory
        """
        self.executor = executor
        self.version = version
        self.data_dir = data_dir

    def _psql(self, sql: str, description: str):
        return self.executor.run(
            ["runuser", "-u", "postgres", "--", "psql", "-v", "ON_ERROR_STOP=1", "-tAc", sql],
            description=description,
        )

    def cluster_initialized(self) -> bool:
        return (self.data_dir / "PG_VERSION").is_file()

    def init_cluster(self) -> None:
        setup = f"/usr/pgsql-{self.version}/bin/postgresql-{self.version}-setup"
        self.executor.run(
            [setup, "initdb"],
            description=f"Initializing PostgreSQL {self.version} cluster",
        )

    def role_exists(self, role: str) -> bool:
        result = self._psql(
            f"SELECT 1 FROM pg_roles WHERE rolname = {quote_literal(role)}",
            f"Looking up role {role}",
        )
        return result.stdout.strip() == "1"

    def create_role(self, role: str, password: str) -> None:
        self._psql(
            f"CREATE ROLE {quote_ident(role)} WITH LOGIN PASSWORD {quote_literal(password)}",
            f"Creating role {role}",
        )

    def set_password(self, role: str, password: str) -> None:
        self._psql(
            f"ALTER ROLE {quote_ident(role)} WITH PASSWORD {quote_literal(password)}",
            f"Updating password for role {role}",
        )

    def database_exists(self, database: str) -> bool:
        result = self._psql(
            f"SELECT 1 FROM pg_database WHERE datname = {quote_literal(database)}",
            f"Looking up database {database}",
        )
        return result.stdout.strip() == "1"

    def create_database(self, database: str, owner: str) -> None:
        self.executor.run(
            ["runuser", "-u", "postgres", "--", "createdb", "-O", owner, database],
            description=f"Creating database {database}",
        )


def hba_rule(database: str, user: str) -> str:
    return f"host    {database}    {user}    127.0.0.1/32    scram-sha-256"


def ensure_line(path: Path, line: str) -> bool:
    """
    Append a line to a file unless an identical line is present.

    Returns:
        True if the file was modified
    """
    content = path.read_text() if path.exists() else ""
    if line in content.splitlines():
        return False
    if content and not content.endswith("\n"):
        content += "\n"
    path.write_text(f"{content}{line}\n")
    return True


def restrict_listen_addresses(path: Path, address: str = "127.0.0.1") -> bool:
    """
    Pin ``listen_addresses`` in postgresql.conf to a single address.

    Returns:
        True if the file was modified
    """
    content = path.read_text() if path.exists() else ""
    setting = f"listen_addresses = '{address}'"
    if LISTEN_ADDRESSES_PATTERN.search(content):
        updated = LISTEN_ADDRESSES_PATTERN.sub(setting, content)
    else:
        separator = "" if not content or content.endswith("\n") else "\n"
        updated = f"{content}{separator}{setting}\n"
    if updated == content:
        return False
    path.write_text(updated)
    return True
