"""
Logging system for almadeploy
Appends every phase's output to a log file with clean console output
"""

import re
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Sequence, TextIO

from rich.console import Console
from rich.live import Live
from rich.padding import Padding
from rich.spinner import Spinner
from rich.text import Text

from almadeploy import constants
from almadeploy.models.results import ExecutionResult

console = Console()

ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


class DeployLogger:
    """
    Manages logging for deployment operations
    - Appends all output to a single log file in real-time
    - Shows clean progress UI in console (unless verbose)
    - Captures errors with context
    - Masks registered secrets in everything it writes
    """

    def __init__(
        self,
        operation: str,
        log_path: Optional[Path] = None,
        verbose: bool = False,
        secrets: Sequence[str] = (),
    ):
        """
        Initialize logger

        Args:
            operation: Operation name (e.g., 'deploy', 'doctor')
            log_path: Log file to append to (default: /var/log/almadeploy/deployment.log)
            verbose: If True, show all output in console
            secrets: Values that must never reach the log or console
        """
        self.operation = operation
        self.verbose = verbose
        self.log_file: Optional[TextIO] = None
        self.log_path: Optional[Path] = Path(log_path or constants.DEFAULT_LOG_FILE)
        self.current_step = ""
        self.has_errors = False
        self._secrets = [s for s in secrets if s]

        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            # Append-only, line buffered for real-time tailing
            self.log_file = open(self.log_path, "a", buffering=1)
            self.log_path.chmod(constants.LOG_FILE_MODE)
        except OSError as e:
            console.print(
                f"[yellow]⚠[/yellow] [dim]Cannot write log file {self.log_path}: {e}; logging to console only[/dim]"
            )
            self.log_file = None
            self.log_path = None
            return

        self._write_log_header()

    def _write_log_header(self):
        """Write run header"""
        header = f"""
{"=" * 80}
almadeploy {self.operation}
Started: {datetime.now().isoformat()}
{"=" * 80}
"""
        self.log_file.write(header)
        self.log_file.flush()

    def mask(self, text: str) -> str:
        """Replace registered secret values with asterisks."""
        for secret in self._secrets:
            text = text.replace(secret, "********")
        return text

    def log(self, message: str, level: str = "INFO"):
        """
        Log a message to file and optionally console

        Args:
            message: Message to log
            level: Log level (INFO, WARNING, ERROR, SUCCESS, DEBUG)
        """
        message = self.mask(message)
        timestamp = datetime.now().strftime(constants.LOG_DATETIME_FORMAT)
        log_line = f"[{timestamp}] [{level}] {message}\n"

        if self.log_file:
            self.log_file.write(log_line)
            self.log_file.flush()

        if self.verbose:
            if level == "ERROR":
                console.print(message, style="red", markup=False, highlight=False)
            elif level == "WARNING":
                console.print(f"[yellow]{message}[/yellow]")
            elif level == "DEBUG":
                console.print(f"[dim]{message}[/dim]")
            elif level == "SUCCESS":
                console.print(f"[green]{message}[/green]")
            else:
                console.print(message)

    def log_command(self, command: Sequence[str]):
        """Log a command being executed"""
        self.log(f"Executing: {' '.join(command)}", "DEBUG")

    def log_output(self, output: str, stream: str = "stdout"):
        """
        Log command output

        Always written to the log file, shown in console only when verbose.

        Args:
            output: Command output (single line or multiline)
            stream: Stream name (stdout, stderr)
        """
        if not output:
            return

        clean_output = self.mask(ANSI_ESCAPE.sub("", output))

        if self.log_file:
            try:
                for line in clean_output.splitlines():
                    self.log_file.write(f"  [{stream}] {line}\n")
                self.log_file.flush()
            except OSError:
                # Lost lines still reach the console when verbose
                pass

        if self.verbose:
            console.print(clean_output, markup=False, highlight=False)

    def log_error(self, error: str, context: Optional[str] = None):
        """
        Log an error with context

        Args:
            error: Error message
            context: Additional context (e.g., command that failed)
        """
        self.has_errors = True
        error = self.mask(error)
        context = self.mask(context) if context else context

        self.log(error, "ERROR")
        if context:
            self.log(f"Context: {context}", "ERROR")

        if not self.verbose:
            console.print()

        console.print(f"[bold red]✗ {error}[/bold red]")
        if context:
            console.print(f"  [color(208)]{context}[/color(208)]")

    def step(self, step_name: str):
        """
        Start a new step

        Args:
            step_name: Name of the step
        """
        if self.current_step and not self.verbose:
            console.print()

        self.current_step = step_name
        self.log(f"Step: {step_name}", "INFO")

        if not self.verbose:
            console.print(f"[color(214)]▶[/color(214)] [white]{step_name}[/white]")

    def info(self, message: str):
        """Log an informational message (console shows it dimmed)"""
        self.log(message, "INFO")

        if not self.verbose:
            console.print(f"  [dim]{self.mask(message)}[/dim]")

    def success(self, message: str):
        """Log a success message"""
        self.log(message, "SUCCESS")

        if not self.verbose:
            console.print(f"  [dim]✓ {self.mask(message)}[/dim]")

    def warning(self, message: str):
        """Log a warning message"""
        self.log(message, "WARNING")

        if not self.verbose:
            console.print(f"  [yellow]⚠[/yellow] [dim]{self.mask(message)}[/dim]")

    def close(self):
        """Close log file"""
        if self.log_file:
            footer = f"""{"=" * 80}
Completed: {datetime.now().isoformat()}
Status: {"FAILED" if self.has_errors else "SUCCESS"}
{"=" * 80}
"""
            self.log_file.write(footer)
            self.log_file.close()
            self.log_file = None

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, _exc_tb):
        """Context manager exit"""
        if exc_type is not None and not issubclass(exc_type, (SystemExit, KeyboardInterrupt)):
            self.has_errors = True
            self.log(
                f"{exc_type.__name__}: {exc_val}" if exc_val else "Operation failed",
                "ERROR",
            )
        elif exc_type is not None:
            self.has_errors = True
        self.close()
        return False


def run_with_progress(
    logger: Optional[DeployLogger],
    command: Sequence[str],
    description: str,
    cwd: Optional[Path] = None,
    env: Optional[Dict[str, str]] = None,
) -> ExecutionResult:
    """
    Run a command with progress indicator

    Args:
        logger: DeployLogger instance (None runs silently)
        command: Argument vector to run
        description: Description for progress indicator
        cwd: Working directory
        env: Full environment for the child process

    Returns:
        ExecutionResult with captured output
    """
    command = [str(part) for part in command]
    if logger:
        logger.log_command(command)

    if logger is None or logger.verbose:
        result = subprocess.run(
            command, cwd=cwd, env=env, capture_output=True, text=True
        )
    else:
        spinner = Spinner("dots", text=f"[cyan]{description}...[/cyan]")
        padded_spinner = Padding(spinner, (0, 0, 0, 2))

        with Live(padded_spinner, console=console, refresh_per_second=10) as live:
            result = subprocess.run(
                command, cwd=cwd, env=env, capture_output=True, text=True
            )

            if result.returncode == 0:
                checkmark = Text("  ✓ ", style="dim")
                checkmark.append(description, style="dim")
                live.update(checkmark)
            else:
                x_mark = Text("  ✗ ", style="red")
                x_mark.append(description, style="dim")
                live.update(x_mark)

    if logger:
        logger.log_output(result.stdout, "stdout")
        logger.log_output(result.stderr, "stderr")

    return ExecutionResult(
        returncode=result.returncode,
        stdout=result.stdout,
        stderr=result.stderr,
        command=" ".join(command),
    )
