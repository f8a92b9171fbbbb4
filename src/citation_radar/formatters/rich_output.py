"""Rich console rendering of run summaries."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from citation_radar.core.models import RecordOutcome, RecordState, RunStats

STATE_STYLES: dict[RecordState, str] = {
    RecordState.completed: "green",
    RecordState.partially_completed: "yellow",
    RecordState.skipped: "dim",
    RecordState.failed: "red",
}


def _state_text(state: RecordState) -> str:
    style = STATE_STYLES.get(state, "white")
    return f"[{style}]{state.value}[/{style}]"


def render_run_summary(stats: RunStats, console: Console, *, show_records: bool = False) -> None:
    """Print the run counters, and optionally one row per record."""
    table = Table(title="Citation extraction", show_header=True, header_style="bold")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Processed", str(stats.processed))
    table.add_row("Inserted", f"[green]{stats.inserted}[/green]")
    table.add_row("Skipped", str(stats.skipped))
    table.add_row("Errors", f"[red]{stats.errors}[/red]" if stats.errors else "0")
    table.add_row("Failed URLs", str(stats.failed_urls))
    table.add_row("Provider calls", str(stats.provider_calls))
    table.add_row("Cache hits", str(stats.cache_hits))
    console.print(table)

    counts = stats.state_counts()
    if counts:
        console.print("  " + "  ".join(
            f"{_state_text(RecordState(state))}: {n}" for state, n in sorted(counts.items())
        ))

    if show_records and stats.outcomes:
        render_outcomes(stats.outcomes, console)


def render_outcomes(outcomes: list[RecordOutcome], console: Console) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Record")
    table.add_column("State")
    table.add_column("URLs", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Inserted", justify="right")
    table.add_column("Detail", overflow="fold")
    for outcome in outcomes:
        table.add_row(
            outcome.record_id,
            _state_text(outcome.state),
            str(outcome.candidates),
            str(len(outcome.failed_urls)),
            str(outcome.inserted),
            outcome.detail,
        )
    console.print(table)
