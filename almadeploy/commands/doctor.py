"""Doctor command - run the pre-flight checks and report each one"""

import click
from rich.table import Table

from almadeploy.base import ConfiguredCommand
from almadeploy.commands.options import deployment_options
from almadeploy.exceptions import AlmaDeployError
from almadeploy.services.executor import HostExecutor


class DoctorCommand(ConfiguredCommand):
    """Pre-flight diagnostics."""

    def __init__(self, options, config_file=None, verbose=False):
        super().__init__(options, config_file=config_file, verbose=verbose)
        self.table = Table(
            title="Pre-flight Report", title_justify="left", padding=(0, 1)
        )
        self.table.add_column("Check", style="cyan", no_wrap=True)
        self.table.add_column("Status")
        self.table.add_column("Details", style="dim")

    def execute(self) -> None:
        """Execute doctor command."""
        self.show_header(
            title="Diagnostics",
            subtitle="Checking whether this host is ready to deploy",
        )

        validator = self.create_validator(HostExecutor())
        failures = 0
        for name, check in validator.checks():
            try:
                details = check()
            except AlmaDeployError as e:
                failures += 1
                self.table.add_row(
                    f"❌ {name}", "[red]Failed[/red]", e.format_message()
                )
            else:
                self.table.add_row(f"✅ {name}", "[green]OK[/green]", details)

        self.console.print(self.table)
        self.console.print()

        if failures:
            self.print_error(f"{failures} check(s) failed")
            raise SystemExit(1)
        self.print_success("Host is ready to deploy")


@click.command()
@deployment_options
def doctor(options, config_file, verbose):
    """
    Pre-flight checks & diagnostics

    Checks:
    - Root privileges
    - Configuration validity
    - Free disk space
    - Ports 80, 443 and the backend port
    """
    cmd = DoctorCommand(options, config_file=config_file, verbose=verbose)
    cmd.run()
