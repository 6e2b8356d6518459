"""Command-line options shared by deploy, plan and doctor."""

import functools
from pathlib import Path

import click

# (flag, DeploymentConfig field, help)
VALUE_OPTIONS = [
    ("--domain", "domain", "Public domain name served by Nginx"),
    ("--email", "contact_email", "Let's Encrypt contact (required without TLS files)"),
    ("--db-name", "db_name", "PostgreSQL database name"),
    ("--db-user", "db_user", "PostgreSQL role owning the database"),
    ("--db-password", "db_password", "Password for the database role"),
    ("--backend-src", "backend_source_path", "Spring Boot project directory"),
    ("--frontend-src", "frontend_source_path", "JavaScript project directory"),
    ("--app-name", "app_name", "Application name used for paths and accounts"),
    ("--tls-cert-path", "tls_cert_path", "Existing certificate (PEM)"),
    ("--tls-key-path", "tls_key_path", "Existing private key (PEM)"),
    ("--tls-chain-path", "tls_chain_path", "Intermediate chain (PEM)"),
    ("--spring-profile", "spring_profile", "Active Spring profile"),
    ("--pg-version", "pg_version", "PostgreSQL major version"),
    ("--health-url", "health_url", "Backend health endpoint probed after deploy"),
]


def deployment_options(func):
    """
    Attach the configuration flags to a command.

    The decorated callback receives ``config_file``, ``verbose`` and an
    ``options`` dict keyed by DeploymentConfig field.
    """
    field_names = [field_name for _, field_name, _ in VALUE_OPTIONS]
    field_names += ["backend_port", "firewall_services", "firewall_ports", "skip_build"]

    @functools.wraps(func)
    def wrapper(**kwargs):
        options = {name: kwargs.pop(name) for name in field_names}
        # An absent flag must not override the config file
        options["skip_build"] = True if options["skip_build"] else None
        return func(options=options, **kwargs)

    decorators = [
        click.option(
            "--config",
            "config_file",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            help="YAML file with configuration values (flags take precedence)",
        ),
    ]
    decorators += [
        click.option(flag, field_name, default=None, help=help_text)
        for flag, field_name, help_text in VALUE_OPTIONS
    ]
    decorators += [
        click.option("--backend-port", "backend_port", type=int, default=None,
                     help="Loopback port of the backend service"),
        click.option("--allow-service", "firewall_services", multiple=True,
                     help="firewalld service to allow (repeatable)"),
        click.option("--allow-port", "firewall_ports", multiple=True,
                     help="Port to allow, e.g. 9011/tcp (repeatable)"),
        click.option("--skip-build", "skip_build", is_flag=True,
                     help="Reuse existing build outputs"),
        click.option("--verbose", "-v", is_flag=True, help="Show all command output"),
    ]

    for decorator in reversed(decorators):
        wrapper = decorator(wrapper)
    return wrapper


log_file_option = click.option(
    "--log-file",
    "log_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Log file to append to (default: /var/log/almadeploy/deployment.log)",
)
