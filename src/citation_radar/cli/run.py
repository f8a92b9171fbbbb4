"""Run and reprocess commands, the entry points the job scheduler calls."""

from __future__ import annotations

import asyncio
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from citation_radar.core.errors import CitationRadarError
from citation_radar.core.models import OutputFormat, RecordOutcome, RunStats
from citation_radar.core.pipeline import build_pipeline
from citation_radar.formatters.csv import format_outcome_csv, format_outcomes_csv
from citation_radar.formatters.rich_output import render_outcomes, render_run_summary

console = Console()


def _configure_logging(verbose: bool, quiet: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def _run(limit: int | None) -> RunStats:
    async with build_pipeline() as pipeline:
        return await pipeline.run(limit=limit)


async def _reprocess(record_id: str) -> RecordOutcome:
    async with build_pipeline() as pipeline:
        return await pipeline.reprocess(record_id)


def register(app: typer.Typer) -> None:
    """Register the run and reprocess commands onto the Typer app."""

    @app.command()
    def run(
        limit: int = typer.Option(
            None, "--limit", "-n", help="Process at most this many source records"
        ),
        json_output: bool = typer.Option(False, "--json", help="Output run stats as JSON"),
        format: OutputFormat = typer.Option(
            None, "--format", "-f", help="Output format: json or csv"
        ),
        show_records: bool = typer.Option(
            False, "--records", help="List every record's outcome in the summary"
        ),
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    ) -> None:
        """Extract, categorize and store citations for all source records."""
        if json_output and format is None:
            format = OutputFormat.json
        _configure_logging(verbose, quiet=format is not None)

        try:
            stats = asyncio.run(_run(limit))
        except CitationRadarError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise SystemExit(1)

        if format == OutputFormat.json:
            console.print_json(stats.model_dump_json())
            return
        if format == OutputFormat.csv:
            console.print(
                format_outcomes_csv(stats), end="", markup=False, highlight=False, soft_wrap=True
            )
            return
        render_run_summary(stats, console, show_records=show_records)

    @app.command()
    def reprocess(
        record_id: str = typer.Argument(help="Source record id to reprocess"),
        json_output: bool = typer.Option(False, "--json", help="Output the outcome as JSON"),
        format: OutputFormat = typer.Option(
            None, "--format", "-f", help="Output format: json or csv"
        ),
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    ) -> None:
        """Re-run the pipeline for a single source record (targeted backfill)."""
        if json_output and format is None:
            format = OutputFormat.json
        _configure_logging(verbose, quiet=format is not None)

        try:
            outcome = asyncio.run(_reprocess(record_id))
        except CitationRadarError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise SystemExit(1)

        if format == OutputFormat.json:
            console.print_json(outcome.model_dump_json())
            return
        if format == OutputFormat.csv:
            console.print(
                format_outcome_csv(outcome), end="", markup=False, highlight=False, soft_wrap=True
            )
            return
        render_outcomes([outcome], console)
