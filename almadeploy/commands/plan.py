"""Plan command - show what deploy would do, without touching the host"""

import click
from rich.table import Table

from almadeploy.base import ConfiguredCommand
from almadeploy.commands.options import deployment_options
from almadeploy.core import build_default_plan
from almadeploy.exceptions import ConfigError
from almadeploy.models.deployment import DeploymentPaths
from almadeploy.services.preflight import validate_config


class PlanCommand(ConfiguredCommand):
    """Validate configuration and print phase order and resolved paths."""

    def execute(self) -> None:
        config = self.config
        self.show_header(
            title="Deployment Plan",
            subtitle="Resolved configuration (no changes are made)",
        )

        validation = validate_config(config)
        if validation.has_errors:
            for error in validation.errors:
                self.print_error(error)
            raise ConfigError(f"{len(validation.errors)} configuration problem(s) found")

        settings = Table(title="Configuration", title_justify="left", padding=(0, 1))
        settings.add_column("Setting", style="cyan", no_wrap=True)
        settings.add_column("Value")
        for name, value in config.masked().items():
            if isinstance(value, tuple):
                value = ", ".join(value) or "-"
            settings.add_row(name, "-" if value is None else str(value))
        self.console.print(settings)
        self.console.print()

        phases = Table(title="Phases", title_justify="left", padding=(0, 1))
        phases.add_column("#", style="dim", justify="right")
        phases.add_column("Phase", style="cyan", no_wrap=True)
        phases.add_column("Description")
        for index, phase in enumerate(build_default_plan(config).phases, start=1):
            phases.add_row(str(index), phase.name, phase.title)
        self.console.print(phases)
        self.console.print()

        paths = Table(title="Paths", title_justify="left", padding=(0, 1))
        paths.add_column("Name", style="cyan", no_wrap=True)
        paths.add_column("Path")
        for name, value in DeploymentPaths.from_config(config).as_dict().items():
            paths.add_row(name, value)
        self.console.print(paths)
        self.console.print()

        self.console.print("[bold]To apply:[/bold]")
        self.console.print("  [cyan]sudo almadeploy deploy[/cyan] [dim](same flags)[/dim]\n")


@click.command()
@deployment_options
def plan(options, config_file, verbose):
    """
    Show the deployment plan without making changes

    Validates the configuration and prints the phase order and every
    host path the deployment would manage.
    """
    cmd = PlanCommand(options, config_file=config_file, verbose=verbose)
    cmd.run()
