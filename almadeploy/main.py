#!/usr/bin/env python3
"""almadeploy CLI - Main entry point"""

import functools
import os
import sys

from rich.console import Console

# Rich-Click: CLI help with colors
import rich_click as click
from click.exceptions import Abort, ClickException, MissingParameter, UsageError

from almadeploy import __version__, constants

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.MAX_WIDTH = 100
click.rich_click.STYLE_COMMAND = "bold cyan"
click.rich_click.STYLE_OPTION = "bold magenta"
click.rich_click.STYLE_SWITCH = "bold green"
click.rich_click.STYLE_USAGE = "bold yellow"
click.rich_click.STYLE_OPTION_DEFAULT = "dim cyan"
click.rich_click.STYLE_OPTIONS_PANEL_BORDER = "cyan"
click.rich_click.STYLE_COMMANDS_PANEL_BORDER = "cyan"
click.rich_click.ERRORS_EPILOGUE = ""

# Same flag layout for every command that takes a deployment configuration
_DEPLOYMENT_OPTION_GROUPS = [
    {"name": "Application", "options": ["--domain", "--app-name", "--backend-src", "--frontend-src", "--backend-port", "--spring-profile"]},
    {"name": "Database", "options": ["--db-name", "--db-user", "--db-password", "--pg-version"]},
    {"name": "TLS", "options": ["--email", "--tls-cert-path", "--tls-key-path", "--tls-chain-path"]},
    {"name": "Host", "options": ["--allow-service", "--allow-port", "--skip-build", "--health-url"]},
]
click.rich_click.OPTION_GROUPS = {
    f"almadeploy {name}": _DEPLOYMENT_OPTION_GROUPS for name in ("deploy", "plan", "doctor")
}

from almadeploy.commands import deploy, doctor, plan  # noqa: E402

console = Console()


def handle_cli_errors(func):
    """Decorator to handle CLI errors gracefully."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (MissingParameter, UsageError) as e:
            console.print(f"\n[bold red]✗ Error:[/bold red] {e.format_message()}\n")
            if e.ctx and e.ctx.command:
                console.print(
                    f"[dim]Run[/dim] [cyan]almadeploy {e.ctx.command.name} --help[/cyan] [dim]for usage information[/dim]\n"
                )
            sys.exit(constants.EXIT_FAILURE)
        except ClickException as e:
            e.show()
            sys.exit(e.exit_code)
        except (Abort, KeyboardInterrupt):
            console.print("\n\n[yellow]⚠️  Operation cancelled by user[/yellow]")
            sys.exit(constants.EXIT_INTERRUPTED)
        except Exception as e:
            console.print(f"\n[bold red]✗ Unexpected error:[/bold red] {e}\n")

            if os.environ.get("DEBUG"):
                import traceback

                console.print("[dim]Traceback:[/dim]")
                traceback.print_exc()
            sys.exit(constants.EXIT_FAILURE)

    return wrapper


@click.group(cls=click.RichGroup)
@click.version_option(version=__version__, prog_name="almadeploy")
def cli() -> None:
    """
    almadeploy - Provision a Spring Boot + JavaScript stack on AlmaLinux.

    \b
    Quick Start:
      almadeploy plan   --config deploy.yml   # Review phases and paths
      almadeploy doctor --config deploy.yml   # Check host readiness
      sudo almadeploy deploy --config deploy.yml

    Every phase is idempotent: re-running deploy converges the host
    without duplicating resources.
    """


cli.add_command(deploy.deploy)
cli.add_command(plan.plan)
cli.add_command(doctor.doctor)


@handle_cli_errors
def main():
    """Main entry point with error handling."""
    cli(standalone_mode=False)


if __name__ == "__main__":
    main()
