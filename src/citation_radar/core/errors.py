"""Error taxonomy for the citation pipeline.

Only :class:`SourceListingError` is fatal to a whole run. Everything else is
isolated to a single URL or source record and folded into the run stats.
"""

from __future__ import annotations


class CitationRadarError(Exception):
    """Base class for all pipeline errors."""


class ExtractionSkip(CitationRadarError):
    """A source record yielded no usable URLs. Not an error; counted as skipped."""


# ── Classification ────────────────────────────────────────────────────────────


class ClassificationTransient(CitationRadarError):
    """Retryable provider failure: 429, 5xx, timeout, transport error, empty response."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ClassificationFatal(CitationRadarError):
    """Non-retryable provider failure: bad credentials or an off-taxonomy answer."""


class CategorizationError(ClassificationFatal):
    """No provider in the chain could categorize a URL."""

    def __init__(self, url: str, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Could not categorize {url}{detail}")
        self.url = url
        self.cause = cause


# ── Persistence ───────────────────────────────────────────────────────────────


class PersistenceForeignKeyMissing(CitationRadarError):
    """The record's brand does not exist in the brand directory."""


class PersistenceFatal(CitationRadarError):
    """Unexpected datastore error while writing citations."""


# ── Source store ──────────────────────────────────────────────────────────────


class SourceListingError(CitationRadarError):
    """Source records could not be listed at all. Aborts the run."""


class RecordNotFound(CitationRadarError):
    """A single-record reprocess named a record that does not exist."""
