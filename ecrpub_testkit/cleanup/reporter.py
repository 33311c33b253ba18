"""Cleanup record formatting and display."""

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..models.cleanup_record import CleanupOutcome, CleanupRecord

OUTCOME_STYLES = {
    CleanupOutcome.TERRAFORM_SUCCEEDED.value: "green",
    CleanupOutcome.FALLBACK_SUCCEEDED.value: "yellow",
    CleanupOutcome.RETRY_SUCCEEDED.value: "yellow",
    CleanupOutcome.MANUAL_REQUIRED.value: "bold red",
}


class CleanupReporter:
    """Format and display cleanup results."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize cleanup reporter.

        Args:
            console: Rich console instance (creates new one if not provided)
        """
        self.console = console or Console()

    def display_record(self, record: CleanupRecord) -> None:
        """Display a single cleanup result, with remediation steps if needed."""
        outcome = record.outcome.value if record.outcome else "unfinished"
        style = OUTCOME_STYLES.get(outcome, "white")

        self.console.print()
        self.console.print(f"Repository: [bold]{record.identifier}[/bold] ({record.region})")
        self.console.print(f"Outcome: [{style}]{outcome}[/{style}]")

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Tier", style="cyan")
        table.add_column("Result")
        table.add_column("Detail")
        for attempt in record.attempts:
            result = "[green]ok[/green]" if attempt.succeeded else "[red]failed[/red]"
            detail = "already absent" if attempt.already_absent else (attempt.error_message or "")
            table.add_row(attempt.tier.value, result, detail)
        self.console.print(table)

        if record.report is not None:
            self.console.print(
                Panel(
                    "\n".join(record.report.lines()[1:-1]),
                    title="[bold red]Manual cleanup required[/bold red]",
                    border_style="red",
                )
            )

    def display_audit(self, records: list[dict]) -> None:
        """Display audit log entries as a table."""
        if not records:
            self.console.print("No cleanup records found", style="yellow")
            return

        table = Table(title="Cleanup Audit", show_header=True, header_style="bold magenta")
        table.add_column("Started", style="cyan")
        table.add_column("Repository")
        table.add_column("Outcome")
        table.add_column("Attempts", justify="right")

        for data in records:
            cleanup = data["cleanup"]
            outcome = cleanup.get("outcome") or "unfinished"
            style = OUTCOME_STYLES.get(outcome, "white")
            table.add_row(
                cleanup["started_at"],
                cleanup["identifier"],
                f"[{style}]{outcome}[/{style}]",
                str(len(data.get("attempts", []))),
            )

        self.console.print(table)
        manual = sum(1 for data in records if data["cleanup"].get("outcome") == CleanupOutcome.MANUAL_REQUIRED.value)
        if manual:
            self.console.print(f"[bold red]{manual} repositories need manual cleanup[/bold red]")
