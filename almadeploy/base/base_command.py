"""
Base Command Class

Abstract base for all almadeploy CLI commands.
Provides common functionality and structure.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console

from almadeploy import constants
from almadeploy.core.config_loader import build_config
from almadeploy.exceptions import AlmaDeployError
from almadeploy.logger import DeployLogger
from almadeploy.models.deployment import DeploymentConfig
from almadeploy.services.executor import HostExecutor
from almadeploy.services.preflight import PortInspector, PreflightValidator
from almadeploy.ui_components import show_header


class BaseCommand(ABC):
    """
    Abstract base command class.

    Provides:
    - Logger initialization
    - Header display
    - Error handling and exit codes
    """

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.console = Console()
        self.logger: Optional[DeployLogger] = None

    def init_logger(
        self,
        command_name: str,
        log_path: Optional[Path] = None,
        secrets=(),
    ) -> DeployLogger:
        """
        Initialize command logger.

        Args:
            command_name: Command name written to the log header
            log_path: Log file (default: /var/log/almadeploy/deployment.log)
            secrets: Values masked in everything logged

        Returns:
            DeployLogger instance
        """
        self.logger = DeployLogger(
            command_name, log_path=log_path, verbose=self.verbose, secrets=secrets
        )
        return self.logger

    def show_header(
        self,
        title: str,
        subtitle: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Show command header (skip in verbose mode)."""
        if not self.verbose:
            show_header(
                title=title, subtitle=subtitle, details=details, console=self.console
            )

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓ {message}[/green]")

    def print_error(self, message: str) -> None:
        self.console.print(f"[red]✗ {message}[/red]")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠ {message}[/yellow]")

    def print_dim(self, message: str) -> None:
        self.console.print(f"[dim]{message}[/dim]")

    def _show_log_location(self) -> None:
        if self.logger and self.logger.log_path:
            self.console.print(f"[dim]Logs saved to:[/dim] {self.logger.log_path}\n")

    @abstractmethod
    def execute(self, **kwargs) -> None:
        """
        Execute command logic.

        Must be implemented by subclasses.
        """
        pass

    def run(self, **kwargs) -> None:
        """
        Run command with error handling.

        Exit codes: 0 success, 1 failure, 130 interrupted.
        """
        try:
            self.execute(**kwargs)
        except KeyboardInterrupt:
            self.console.print("\n[yellow]⚠️  Operation cancelled by user[/yellow]")
            if self.logger:
                self.logger.has_errors = True
                self.logger.log("Interrupted by signal", "WARNING")
            self._show_log_location()
            raise SystemExit(constants.EXIT_INTERRUPTED)
        except SystemExit:
            raise
        except AlmaDeployError as e:
            if self.logger:
                # Already reported by the orchestrator or the command
                if not self.logger.has_errors:
                    self.logger.log_error(e.message, context=e.context)
            else:
                self.console.print(f"\n[bold red]✗ {e.message}[/bold red]")
                if e.context:
                    self.console.print(f"  [color(208)]{e.context}[/color(208)]")
            self.console.print()
            self._show_log_location()
            raise SystemExit(constants.EXIT_FAILURE)
        except Exception as e:
            error_type = type(e).__name__
            self.console.print(f"\n[bold red]✗ {error_type}:[/bold red] {e}\n")
            if self.logger and not self.logger.has_errors:
                self.logger.log_error(f"{error_type}: {e}")
            self._show_log_location()
            raise SystemExit(constants.EXIT_FAILURE)
        finally:
            if self.logger:
                self.logger.close()


class ConfiguredCommand(BaseCommand):
    """Command operating on a DeploymentConfig built from a file and flags."""

    def __init__(
        self,
        options: Dict[str, Any],
        config_file: Optional[Path] = None,
        verbose: bool = False,
    ):
        super().__init__(verbose=verbose)
        self.options = options
        self.config_file = config_file
        self._config: Optional[DeploymentConfig] = None

    @property
    def config(self) -> DeploymentConfig:
        """Configuration record, built on first access."""
        if self._config is None:
            self._config = build_config(self.options, self.config_file)
        return self._config

    def create_validator(self, executor: HostExecutor) -> PreflightValidator:
        return PreflightValidator(self.config, PortInspector(executor))
