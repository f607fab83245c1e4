"""CLI shared helpers."""

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

console = Console()


def configure_logging(verbose: bool) -> None:
    """Route library logging through rich when ``--verbose`` is given."""
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def status_mark(value: bool) -> str:
    return "[green]✓[/green]" if value else "[red]✗[/red]"


def analysis_table(result: dict) -> Table:
    """Summary table of one analysis result."""
    table = Table(title=f"Analysis: {result.get('fileName', '')}", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Overall score", str(result.get("overallScore", 0)))
    table.add_row("Resiliency", str(result.get("resiliencyScore", 0)))
    table.add_row("Security", str(result.get("securityScore", 0)))
    table.add_row("Cost efficiency", str(result.get("costEfficiencyScore", 0)))
    table.add_row("Compliance", str(result.get("complianceScore", 0)))
    table.add_row("Components", str(len(result.get("components", []))))
    table.add_row("Connections", str(len(result.get("connections", []))))
    table.add_row("Risks", str(len(result.get("risks", []))))
    table.add_row("Compliance gaps", str(len(result.get("complianceGaps", []))))
    table.add_row("Estimated savings", f"${result.get('estimatedSavingsUSD', 0):,.0f}")
    table.add_row("Provider", f"{result.get('llmProvider', '-')} ({result.get('llmModel', '-')})")
    table.add_row("Cached", "yes" if result.get("cached") else "no")
    return table
