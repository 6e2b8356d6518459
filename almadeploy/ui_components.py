"""
almadeploy - UI Components
Standardized headers and summary tables
"""

from typing import Dict, Iterable, Optional

from rich.console import Console
from rich.table import Table

from almadeploy.models.deployment import PhaseResult, PhaseStatus

BRAND = "almadeploy"

STATUS_STYLES = {
    PhaseStatus.CREATED: "[green]created[/green]",
    PhaseStatus.UPDATED: "[cyan]updated[/cyan]",
    PhaseStatus.SKIPPED: "[dim]unchanged[/dim]",
    PhaseStatus.VERIFIED: "[green]verified[/green]",
}


def show_header(
    title: str,
    subtitle: Optional[str] = None,
    details: Optional[Dict[str, str]] = None,
    console: Optional[Console] = None,
):
    """
    Display a standardized command header.

    Args:
        title: Main title (e.g., "Deploy", "Diagnostics")
        subtitle: Optional subtitle line
        details: Additional key-value pairs to display
        console: Rich Console instance (creates new if None)

    Example:
        show_header(
            title="Deploy",
            details={"Domain": "app.example.com", "Database": "foo"}
        )
    """
    if console is None:
        console = Console()

    prefix = f" [bold color(214)]{BRAND}[/bold color(214)] [dim]›[/dim]"
    console.print(f"{prefix} [bold white]{title}[/bold white]")

    if subtitle:
        console.print(f"{prefix} [dim]{subtitle}[/dim]")

    if details:
        for key, value in details.items():
            console.print(f"{prefix} {key}: [cyan]{value}[/cyan]")

    console.print()


def phase_table(results: Iterable[PhaseResult], title: str = "Phases") -> Table:
    """Build a table with one row per phase result."""
    table = Table(title=title, title_justify="left", padding=(0, 1))
    table.add_column("Phase", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Details", style="dim")

    for result in results:
        table.add_row(
            result.name,
            STATUS_STYLES[result.status],
            "\n".join(result.details),
        )
    return table
