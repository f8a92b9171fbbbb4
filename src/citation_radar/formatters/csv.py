"""CSV formatter for pipeline run summaries."""

from __future__ import annotations

import csv
import io

from citation_radar.core.models import RecordOutcome, RunStats


def format_outcome_csv(outcome: RecordOutcome) -> str:
    """Format a single record outcome (e.g. from a reprocess) as CSV."""
    return format_outcomes_csv(RunStats(outcomes=[outcome]), summary=False)


def format_outcomes_csv(stats: RunStats, *, summary: bool = True) -> str:
    """Format a run as CSV with one row per source record and a summary block."""
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow(["record_id", "state", "candidates", "classified",
                     "failed_urls", "inserted", "detail"])

    for outcome in stats.outcomes:
        writer.writerow([
            outcome.record_id,
            outcome.state.value,
            outcome.candidates,
            outcome.classified,
            len(outcome.failed_urls),
            outcome.inserted,
            outcome.detail,
        ])

    if summary:
        writer.writerow([])
        writer.writerow(["SUMMARY", "processed", "inserted", "skipped", "errors",
                         "failed_urls", "provider_calls"])
        writer.writerow([
            "",
            stats.processed,
            stats.inserted,
            stats.skipped,
            stats.errors,
            stats.failed_urls,
            stats.provider_calls,
        ])

    return output.getvalue()
