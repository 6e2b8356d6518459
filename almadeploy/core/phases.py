"""
Deployment phases.

Each phase takes the run's PhaseContext, checks whether its target state is
already reached, performs the minimal mutation when it is not, re-verifies
and returns a PhaseResult.
"""

import shutil
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

from almadeploy import constants
from almadeploy.core.context import PhaseContext
from almadeploy.core.renderer import TlsMaterial
from almadeploy.exceptions import AlmaDeployError, BuildError, ExternalToolError
from almadeploy.models.deployment import PhaseResult, PhaseStatus
from almadeploy.services.files import file_digest
from almadeploy.services.firewall import reconcile
from almadeploy.services.postgres import (
    ensure_line,
    hba_rule,
    restrict_listen_addresses,
)


def _result(
    name: str, details: List[str], created: bool = False, changed: bool = False
) -> PhaseResult:
    if created:
        status = PhaseStatus.CREATED
    elif changed:
        status = PhaseStatus.UPDATED
    else:
        status = PhaseStatus.SKIPPED
    return PhaseResult(name=name, status=status, details=details)


def _verify(condition: bool, message: str) -> None:
    if not condition:
        raise AlmaDeployError(f"Verification failed: {message}")


# ============================================================================
# 1. Firewall
# ============================================================================


def configure_firewall(ctx: PhaseContext) -> PhaseResult:
    """Reconcile firewalld to exactly the allow-listed services and ports."""
    host, log, config = ctx.host, ctx.logger, ctx.config
    details = []

    if host.packages.ensure("firewalld"):
        details.append("Installed firewalld")
    if host.services.enable_now(constants.FIREWALL_SERVICE):
        details.append("Enabled firewalld")

    services_to_add, services_to_remove = reconcile(
        host.firewall.list_services(), config.firewall_services
    )
    ports_to_add, ports_to_remove = reconcile(
        host.firewall.list_ports(), config.firewall_ports
    )

    for service in sorted(services_to_remove):
        host.firewall.remove_service(service)
        details.append(f"Removed service {service}")
    for service in sorted(services_to_add):
        host.firewall.add_service(service)
        details.append(f"Allowed service {service}")
    for port in sorted(ports_to_remove):
        host.firewall.remove_port(port)
        details.append(f"Removed port {port}")
    for port in sorted(ports_to_add):
        host.firewall.add_port(port)
        details.append(f"Allowed port {port}")

    rules_changed = any((services_to_add, services_to_remove, ports_to_add, ports_to_remove))
    if rules_changed:
        host.firewall.reload()
        _verify(
            host.firewall.list_services() == set(config.firewall_services)
            and host.firewall.list_ports() == set(config.firewall_ports),
            "firewall rules do not match the allow-list after reload",
        )

    allowed = ", ".join(config.firewall_services + config.firewall_ports)
    if details:
        log.success(f"Firewall permits only: {allowed}")
    else:
        log.info(f"Firewall already restricted to: {allowed}")
    return _result("firewall", details, changed=bool(details))


# ============================================================================
# 2. Runtime dependencies
# ============================================================================


def install_dependencies(ctx: PhaseContext) -> PhaseResult:
    """Ensure Java, Maven, Node.js, PostgreSQL, Nginx and rsync are present."""
    host, log, config = ctx.host, ctx.logger, ctx.config
    packages = host.packages
    installed = []
    details = []

    for package in (constants.JAVA_PACKAGE, constants.MAVEN_PACKAGE, "rsync", "nginx"):
        if packages.ensure(package):
            installed.append(package)
        else:
            log.log(f"Package '{package}' already installed")

    node_major = packages.node_major_version()
    if node_major is None or node_major < config.node_major:
        log.info(f"Configuring Node.js {config.node_major} (found: {node_major or 'none'})")
        packages.setup_nodesource(config.node_major)
        packages.install("nodejs")
        installed.append("nodejs")
        node_major = packages.node_major_version()
        _verify(
            node_major is not None and node_major >= config.node_major,
            f"Node.js {node_major} does not satisfy >= {config.node_major}",
        )
    else:
        log.log(f"Node.js {node_major} already satisfies >= {config.node_major}")

    pg_packages = [
        f"postgresql{config.pg_version}",
        f"postgresql{config.pg_version}-server",
        f"postgresql{config.pg_version}-contrib",
    ]
    if not packages.is_installed(constants.PGDG_REPO_PACKAGE):
        log.info("Adding PostgreSQL PGDG repository")
        packages.install(constants.PGDG_REPO_URL)
        installed.append(constants.PGDG_REPO_PACKAGE)
    if not packages.is_installed(pg_packages[1]):
        # Stock module would shadow the PGDG packages
        packages.disable_module("postgresql")
    for package in pg_packages:
        if packages.ensure(package):
            installed.append(package)

    created = bool(installed)
    if installed:
        details.append(f"Installed: {', '.join(installed)}")

    if not host.postgres.cluster_initialized():
        host.postgres.init_cluster()
        _verify(host.postgres.cluster_initialized(), "PostgreSQL cluster not initialized")
        details.append(f"Initialized PostgreSQL {config.pg_version} cluster")
        created = True

    if host.services.enable_now(config.pg_service):
        details.append(f"Enabled {config.pg_service}")

    ctx.report.services.append(config.pg_service)
    if details:
        log.success("; ".join(details))
    else:
        log.info("All runtime dependencies already present")
    return _result("dependencies", details, created=created, changed=bool(details))


# ============================================================================
# 3. Database
# ============================================================================


def provision_database(ctx: PhaseContext) -> PhaseResult:
    """Ensure role, database, access rule and loopback-only listener."""
    host, log, config, paths = ctx.host, ctx.logger, ctx.config, ctx.paths
    pg = host.postgres
    details = []
    created = False

    # Password is applied on every run
    if pg.role_exists(config.db_user):
        pg.set_password(config.db_user, config.db_password)
        details.append(f"Updated password for role '{config.db_user}'")
    else:
        pg.create_role(config.db_user, config.db_password)
        details.append(f"Created role '{config.db_user}'")
        created = True

    if pg.database_exists(config.db_name):
        log.log(f"Database '{config.db_name}' already exists")
    else:
        pg.create_database(config.db_name, owner=config.db_user)
        details.append(f"Created database '{config.db_name}' owned by '{config.db_user}'")
        created = True

    _verify(pg.role_exists(config.db_user), f"role '{config.db_user}' missing")
    _verify(pg.database_exists(config.db_name), f"database '{config.db_name}' missing")

    files_changed = False
    if ensure_line(paths.pg_hba_conf, hba_rule(config.db_name, config.db_user)):
        details.append(f"Added pg_hba rule for '{config.db_user}'")
        files_changed = True
    if restrict_listen_addresses(paths.postgresql_conf):
        details.append("Restricted PostgreSQL listener to 127.0.0.1")
        files_changed = True
    if files_changed:
        host.services.restart(config.pg_service)

    for line in details:
        log.success(line)
    return _result("database", details, created=created, changed=True)


# ============================================================================
# 4. Service accounts
# ============================================================================


def create_service_accounts(ctx: PhaseContext) -> PhaseResult:
    """Create the backend and frontend system users when absent."""
    host, log, config, paths = ctx.host, ctx.logger, ctx.config, ctx.paths
    details = []

    for user in (config.backend_user, config.frontend_user):
        if host.accounts.ensure(user, home=paths.app_root):
            _verify(host.accounts.exists(user), f"user '{user}' missing after useradd")
            details.append(f"Created system user '{user}'")
            log.success(f"Created system user '{user}'")
        else:
            log.info(f"User '{user}' already exists")
        ctx.report.accounts.append(user)

    return _result("accounts", details, created=bool(details))


# ============================================================================
# 5. Source mirroring
# ============================================================================


def sync_sources(ctx: PhaseContext) -> PhaseResult:
    """Mirror caller source trees into the deployment-owned working copy."""
    host, log, config, paths = ctx.host, ctx.logger, ctx.config, ctx.paths
    details = []

    host.files.ensure_dir(paths.app_root)
    for label, source, destination in (
        ("backend", config.backend_source_path, paths.backend_src_dir),
        ("frontend", config.frontend_source_path, paths.frontend_src_dir),
    ):
        if host.mirror.mirror(source, destination, exclude=constants.MIRROR_EXCLUDES):
            details.append(f"Synced {label} sources from {source}")
            log.success(f"Synced {label} sources from {source}")
        else:
            log.info(f"{label.capitalize()} sources unchanged")

    ctx.sources_changed = bool(details)
    return _result("sources", details, changed=bool(details))


# ============================================================================
# 6. Build
# ============================================================================


def _locate_existing(ctx: PhaseContext) -> bool:
    try:
        ctx.backend_artifact = ctx.host.backend_builder.locate(ctx.paths.backend_src_dir)
        ctx.frontend_bundle = ctx.host.frontend_builder.locate(ctx.paths.frontend_src_dir)
    except BuildError:
        return False
    return True


def build_artifacts(ctx: PhaseContext) -> PhaseResult:
    """Build backend jar and frontend bundle."""
    host, log, config, paths = ctx.host, ctx.logger, ctx.config, ctx.paths

    if config.skip_build:
        ctx.backend_artifact = host.backend_builder.locate(paths.backend_src_dir)
        ctx.frontend_bundle = host.frontend_builder.locate(paths.frontend_src_dir)
        log.info("Build skipped on request; using existing outputs")
        return _result("build", [])

    had_outputs = _locate_existing(ctx)
    if ctx.sources_changed is False and had_outputs:
        log.info(f"Sources unchanged; reusing {ctx.backend_artifact.name}")
        return _result("build", [])

    ctx.backend_artifact = host.backend_builder.build(paths.backend_src_dir)
    log.success(f"Backend artifact: {ctx.backend_artifact.name}")
    ctx.frontend_bundle = host.frontend_builder.build(paths.frontend_src_dir)
    log.success(f"Frontend bundle: {ctx.frontend_bundle}")

    details = [
        f"Built {ctx.backend_artifact.name}",
        f"Built frontend bundle {ctx.frontend_bundle.name}/",
    ]
    return _result("build", details, created=not had_outputs, changed=True)


# ============================================================================
# 7. Artifact deployment
# ============================================================================


def _backup_jar(ctx: PhaseContext) -> Optional[Path]:
    paths = ctx.paths
    if not paths.backend_jar.is_file():
        return None
    ctx.host.files.ensure_dir(paths.backup_dir, mode=constants.ARTIFACT_DIR_MODE)
    timestamp = datetime.now().strftime(constants.BACKUP_TIMESTAMP_FORMAT)
    backup = paths.backup_dir / f"app-{timestamp}.jar"
    shutil.copy2(paths.backend_jar, backup)
    return backup


def prune_backups(backup_dir: Path) -> List[Path]:
    """Delete jar backups older than the retention period, judged by their name."""
    cutoff = datetime.now() - timedelta(days=constants.BACKUP_RETENTION_DAYS)
    removed = []
    for backup in sorted(backup_dir.glob("app-*.jar")):
        try:
            taken = datetime.strptime(backup.stem[len("app-"):], constants.BACKUP_TIMESTAMP_FORMAT)
        except ValueError:
            continue
        if taken < cutoff:
            backup.unlink()
            removed.append(backup)
    return removed


def deploy_artifacts(ctx: PhaseContext) -> PhaseResult:
    """Install the jar and static bundle with hardened ownership and modes."""
    host, log, config, paths = ctx.host, ctx.logger, ctx.config, ctx.paths
    files = host.files
    details = []

    if ctx.backend_artifact is None or ctx.frontend_bundle is None:
        ctx.backend_artifact = host.backend_builder.locate(paths.backend_src_dir)
        ctx.frontend_bundle = host.frontend_builder.locate(paths.frontend_src_dir)

    files.ensure_dir(
        paths.backend_deploy_dir,
        mode=constants.ARTIFACT_DIR_MODE,
        owner=config.backend_user,
        group=config.backend_user,
    )
    created = not paths.backend_jar.exists()
    if file_digest(ctx.backend_artifact) != file_digest(paths.backend_jar):
        backup = _backup_jar(ctx)
        if backup is not None:
            details.append(f"Backed up previous jar to {backup}")
            for expired in prune_backups(paths.backup_dir):
                log.log(f"Removed expired backup {expired.name}")

            def restore_jar(backup=backup):
                files.install(
                    backup,
                    paths.backend_jar,
                    mode=constants.ARTIFACT_FILE_MODE,
                    owner=config.backend_user,
                    group=config.backend_user,
                )

            ctx.compensations.register(f"restore {paths.backend_jar} from {backup}", restore_jar)
        ctx.backend_changed = True
        details.append(f"Deployed {ctx.backend_artifact.name} to {paths.backend_jar}")

    files.install(
        ctx.backend_artifact,
        paths.backend_jar,
        mode=constants.ARTIFACT_FILE_MODE,
        owner=config.backend_user,
        group=config.backend_user,
    )
    _verify(
        file_digest(paths.backend_jar) == file_digest(ctx.backend_artifact),
        f"{paths.backend_jar} does not match the build artifact",
    )

    files.ensure_dir(paths.static_dir)
    published = host.mirror.mirror(
        ctx.frontend_bundle,
        paths.static_dir,
        chmod=f"D{constants.ARTIFACT_DIR_MODE:o},F{constants.ARTIFACT_FILE_MODE:o}",
        chown=f"root:{constants.WEB_SERVER_GROUP}",
    )
    if published:
        details.append(f"Published frontend to {paths.static_dir}")
    files.harden_tree(
        paths.static_dir,
        dir_mode=constants.ARTIFACT_DIR_MODE,
        file_mode=constants.ARTIFACT_FILE_MODE,
        owner="root",
        group=constants.WEB_SERVER_GROUP,
    )

    ctx.report.files["Backend JAR"] = str(paths.backend_jar)
    ctx.report.files["Frontend root"] = str(paths.static_dir)
    for line in details:
        log.success(line)
    if not details:
        log.info("Deployed artifacts already current")
    return _result("artifacts", details, created=created, changed=bool(details))


# ============================================================================
# 8. Process supervisor and reverse proxy
# ============================================================================


def current_tls_material(ctx: PhaseContext) -> Optional[TlsMaterial]:
    """TLS material already installed on the host, if any."""
    paths, config = ctx.paths, ctx.config
    if config.uses_custom_tls:
        fullchain = paths.tls_dir / "fullchain.pem"
        key = paths.tls_dir / "privkey.pem"
        if fullchain.is_file() and key.is_file():
            return TlsMaterial(certificate=fullchain, key=key)
        return None
    if ctx.host.certbot.certificate_exists():
        return TlsMaterial(
            certificate=ctx.host.certbot.fullchain, key=ctx.host.certbot.privkey
        )
    return None


def apply_vhost(ctx: PhaseContext, content: str) -> bool:
    """
    Install an Nginx vhost, keeping it only if ``nginx -t`` accepts it.

    Returns:
        True if the vhost changed

    Raises:
        ExternalToolError: If validation fails (previous file restored)
    """
    host, path = ctx.host, ctx.paths.nginx_conf
    previous = path.read_text() if path.is_file() else None
    if previous == content:
        return False

    host.files.write(path, content, mode=constants.CONFIG_FILE_MODE)
    result = host.nginx.test_config()
    if result.is_failure:
        _restore_file(path, previous)
        raise ExternalToolError(["nginx", "-t"], result.returncode, result.stderr)

    ctx.compensations.register(
        f"restore previous {path}", lambda: _restore_file(path, previous)
    )
    return True


def _restore_file(path: Path, previous: Optional[str]) -> None:
    if previous is None:
        path.unlink(missing_ok=True)
    else:
        path.write_text(previous)


def configure_services(ctx: PhaseContext) -> PhaseResult:
    """Render env file, systemd unit and Nginx vhost; activate them."""
    host, log, config, paths = ctx.host, ctx.logger, ctx.config, ctx.paths
    services, files = host.services, host.files
    unit = config.backend_service
    details = []
    created = False

    files.ensure_dir(paths.env_dir, mode=constants.ARTIFACT_DIR_MODE, owner="root", group=config.backend_user)
    env_changed = files.write(
        paths.backend_env_file,
        ctx.renderer.backend_env(),
        mode=constants.ENV_FILE_MODE,
        owner="root",
        group=config.backend_user,
    )
    if env_changed:
        details.append(f"Rendered {paths.backend_env_file}")

    unit_changed = files.write(
        paths.systemd_unit_file, ctx.renderer.systemd_unit(), mode=constants.CONFIG_FILE_MODE
    )
    if unit_changed:
        details.append(f"Rendered {paths.systemd_unit_file}")
        services.daemon_reload()

    log_file = ctx.logger.log_path or Path(constants.DEFAULT_LOG_FILE)
    if files.write(
        paths.logrotate_conf, ctx.renderer.logrotate(log_file), mode=constants.CONFIG_FILE_MODE
    ):
        details.append(f"Rendered {paths.logrotate_conf}")

    if not services.is_active(unit):
        services.enable_now(unit)
        ctx.compensations.register(f"stop {unit}", lambda: services.stop(unit))
        details.append(f"Started {unit}")
        created = True
    else:
        if env_changed or unit_changed or ctx.backend_changed:
            services.restart(unit)
            details.append(f"Restarted {unit}")
        if services.enable_now(unit):
            details.append(f"Enabled {unit}")
    _verify(services.is_active(unit), f"{unit} is not active")

    files.ensure_dir(paths.acme_webroot, mode=0o755)
    vhost_changed = apply_vhost(ctx, ctx.renderer.nginx_vhost(current_tls_material(ctx)))
    if vhost_changed:
        details.append(f"Rendered {paths.nginx_conf}")
    nginx_was_active = services.is_active(constants.NGINX_SERVICE)
    if services.enable_now(constants.NGINX_SERVICE):
        details.append("Started nginx")
    elif vhost_changed and nginx_was_active:
        services.reload(constants.NGINX_SERVICE)
        details.append("Reloaded nginx")

    ctx.report.services.extend([unit, constants.NGINX_SERVICE])
    ctx.report.files["Environment"] = str(paths.backend_env_file)
    ctx.report.files["systemd unit"] = str(paths.systemd_unit_file)
    ctx.report.files["Log rotation"] = str(paths.logrotate_conf)
    ctx.report.files["Nginx vhost"] = str(paths.nginx_conf)
    for line in details:
        log.success(line)
    if not details:
        log.info("Service and proxy configuration already current")
    return _result("services", details, created=created, changed=bool(details))


# ============================================================================
# 9. TLS
# ============================================================================


def _install_custom_tls(ctx: PhaseContext) -> tuple:
    config, paths, files = ctx.config, ctx.paths, ctx.host.files
    owner, group = "root", constants.WEB_SERVER_GROUP
    changed = False

    files.ensure_dir(paths.tls_dir, mode=constants.ARTIFACT_DIR_MODE, owner=owner, group=group)
    cert = paths.tls_dir / "cert.pem"
    key = paths.tls_dir / "privkey.pem"
    changed |= files.install(config.tls_cert_path, cert, constants.TLS_FILE_MODE, owner, group)
    changed |= files.install(config.tls_key_path, key, constants.TLS_FILE_MODE, owner, group)

    fullchain_content = config.tls_cert_path.read_text()
    if config.tls_chain_path is not None:
        changed |= files.install(
            config.tls_chain_path, paths.tls_dir / "chain.pem", constants.TLS_FILE_MODE, owner, group
        )
        if not fullchain_content.endswith("\n"):
            fullchain_content += "\n"
        fullchain_content += config.tls_chain_path.read_text()
    fullchain = paths.tls_dir / "fullchain.pem"
    changed |= files.write(fullchain, fullchain_content, constants.TLS_FILE_MODE, owner, group)

    return TlsMaterial(certificate=fullchain, key=key), changed


def configure_tls(ctx: PhaseContext) -> PhaseResult:
    """Install caller TLS material or obtain a certificate via ACME."""
    host, log, config, paths = ctx.host, ctx.logger, ctx.config, ctx.paths
    details = []
    created = False

    if config.uses_custom_tls:
        material, changed = _install_custom_tls(ctx)
        if changed:
            details.append(f"Installed provided TLS material into {paths.tls_dir}")
        ctx.report.files["TLS material"] = str(paths.tls_dir)
    else:
        if host.packages.ensure("certbot"):
            details.append("Installed certbot")
        if host.certbot.certificate_exists():
            log.info(f"Certificate for {config.domain} already present")
        else:
            host.certbot.request(config.domain, config.contact_email, paths.acme_webroot)
            _verify(host.certbot.certificate_exists(), f"no certificate issued for {config.domain}")
            details.append(f"Obtained Let's Encrypt certificate for {config.domain}")
            created = True
        if host.services.enable_now(constants.CERTBOT_RENEW_TIMER):
            details.append("Enabled automatic renewal")
        material = TlsMaterial(certificate=host.certbot.fullchain, key=host.certbot.privkey)
        ctx.report.files["TLS material"] = str(paths.letsencrypt_live_dir)
        ctx.report.services.append(constants.CERTBOT_RENEW_TIMER)

    vhost_changed = apply_vhost(ctx, ctx.renderer.nginx_vhost(material))
    if vhost_changed:
        details.append(f"Enabled HTTPS in {paths.nginx_conf}")
    if details:
        host.services.reload(constants.NGINX_SERVICE)

    for line in details:
        log.success(line)
    if not details:
        log.info("TLS already configured")
    return _result("tls", details, created=created, changed=bool(details))


# ============================================================================
# 10. Health
# ============================================================================


def check_health(ctx: PhaseContext) -> PhaseResult:
    """
    Poll the health endpoint within the configured budget.

    Raises:
        HealthCheckTimeout: If the budget is exhausted
    """
    host, log, config = ctx.host, ctx.logger, ctx.config
    details = []

    for unit in (config.pg_service, config.backend_service):
        if host.services.is_active(unit):
            log.success(f"{unit} is active")
        else:
            log.warning(f"{unit} is NOT active; check 'systemctl status {unit}'")

    log.info(
        f"Waiting up to {config.health_attempts * config.health_interval:g}s "
        f"for {config.health_url}"
    )
    attempts = host.health.wait_until_healthy(log)
    ctx.report.healthy = True
    details.append(f"Healthy after {attempts} attempt(s)")
    log.success(f"Backend health endpoint is UP after {attempts} attempt(s)")
    return PhaseResult(name="health", status=PhaseStatus.VERIFIED, details=details)
