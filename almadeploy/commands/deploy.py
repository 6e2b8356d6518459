"""Deploy command - provision the full stack on this host"""

import click
from rich.table import Table

from almadeploy.base import ConfiguredCommand
from almadeploy.commands.options import deployment_options, log_file_option
from almadeploy.core import (
    DeploymentOrchestrator,
    HostServices,
    PhaseContext,
    TemplateRenderer,
    build_default_plan,
    terminate_as_interrupt,
)
from almadeploy.exceptions import HealthCheckTimeout
from almadeploy.models.deployment import DeploymentPaths, DeploymentReport
from almadeploy.services.executor import HostExecutor
from almadeploy.ui_components import phase_table


class DeployCommand(ConfiguredCommand):
    """Validate the host, then run every deployment phase in order."""

    def __init__(self, options, config_file=None, log_file=None, verbose=False):
        super().__init__(options, config_file=config_file, verbose=verbose)
        self.log_file = log_file

    def _secrets(self):
        password = self.config.db_password or ""
        # SQL-quoted form appears in psql commands
        return [password, password.replace("'", "''")]

    def run(self, **kwargs) -> None:
        """Run with SIGTERM treated as an interruption from the first step on."""
        with terminate_as_interrupt():
            super().run(**kwargs)

    def execute(self) -> None:
        """Execute deploy command."""
        config = self.config
        logger = self.init_logger("deploy", self.log_file, secrets=self._secrets())

        self.show_header(
            title="Deploy",
            subtitle="Provisioning application stack",
            details={
                "Domain": config.domain or "-",
                "Application": config.app_slug,
                "Database": config.db_name or "-",
            },
        )

        executor = HostExecutor(logger)

        logger.step("Pre-flight validation")
        for message in self.create_validator(executor).run():
            logger.success(message)

        paths = DeploymentPaths.from_config(config)
        context = PhaseContext(
            config=config,
            paths=paths,
            host=HostServices.create(config, paths, executor),
            logger=logger,
            renderer=TemplateRenderer(config, paths),
        )
        orchestrator = DeploymentOrchestrator(build_default_plan(config), context)

        try:
            report = orchestrator.execute()
        except HealthCheckTimeout:
            self.print_warning(
                "Deployment finished but the backend never reported healthy"
            )
            self._print_summary(context.report)
            raise

        self._print_summary(report)
        self.print_success(f"Deployment of {config.domain} complete")
        if logger.log_path:
            self.print_dim(f"Logs saved to: {logger.log_path}")

    def _print_summary(self, report: DeploymentReport) -> None:
        self.console.print()
        self.console.print(phase_table(report.results, title="Deployment Summary"))

        if report.files or report.accounts or report.services:
            table = Table(title="Managed Resources", title_justify="left", padding=(0, 1))
            table.add_column("Resource", style="cyan", no_wrap=True)
            table.add_column("Value")
            for label, path in report.files.items():
                table.add_row(label, path)
            if report.accounts:
                table.add_row("Service accounts", ", ".join(report.accounts))
            if report.services:
                table.add_row("Services", ", ".join(dict.fromkeys(report.services)))
            self.console.print()
            self.console.print(table)
        self.console.print()


@click.command()
@log_file_option
@deployment_options
def deploy(options, config_file, log_file, verbose):
    """
    Provision the full application stack

    \b
    Phases:
    - Firewall, runtime packages, PostgreSQL
    - Service accounts, source sync, build
    - Artifact install, systemd + Nginx, TLS
    - Health check

    \b
    Example:
      almadeploy deploy --domain app.example.com --email ops@example.com \\
        --db-name foo --db-user bar --db-password secret \\
        --backend-src ./api --frontend-src ./web
    """
    cmd = DeployCommand(options, config_file=config_file, log_file=log_file, verbose=verbose)
    cmd.run()
