"""Pydantic models for the citation extraction and categorization pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ── Taxonomy ──────────────────────────────────────────────────────────────────


class CitationCategory(str, Enum):
    """The closed six-way taxonomy a citation domain is sorted into."""

    editorial = "Editorial"
    corporate = "Corporate"
    reference = "Reference"
    ugc = "UGC"
    social = "Social"
    institutional = "Institutional"


class Confidence(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"


class CategorySource(str, Enum):
    """Where a category came from."""

    hardcoded = "hardcoded"
    simple_domain_matching = "simple_domain_matching"
    ai = "ai"


# ── Input ─────────────────────────────────────────────────────────────────────


class SourceRecord(BaseModel):
    """A stored answer-engine response, read-only input to the pipeline.

    ``citations_raw`` and ``urls_raw`` hold structured citation data, either
    already parsed or as a JSON string. ``raw_answer_text`` is the unstructured
    fallback.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Source record identifier")
    customer_id: str | None = Field(default=None, description="Owning customer")
    brand_id: str | None = Field(default=None, description="Brand the query ran for")
    query_id: str | None = Field(default=None, description="Generated query id")
    execution_id: str | None = Field(default=None, description="Query execution id")
    citations_raw: Any = Field(default=None, description="Structured citations (list or JSON)")
    urls_raw: Any = Field(default=None, description="Structured URL list (list or JSON)")
    raw_answer_text: str | None = Field(default=None, description="Raw answer body")


@dataclass(frozen=True)
class CandidateUrl:
    """A normalized absolute URL and its derived domain."""

    url: str
    domain: str


# ── Classification ────────────────────────────────────────────────────────────


class DomainCategoryResult(BaseModel):
    """Category assigned to a domain, shared through the run's DomainCache."""

    domain: str
    category: CitationCategory
    confidence: Confidence = Confidence.high
    source: CategorySource = CategorySource.ai
    page_name: str | None = None


class ClassifiedUrl(BaseModel):
    """A successfully categorized citation URL."""

    url: str
    domain: str
    page_name: str | None = None
    category: CitationCategory
    confidence: Confidence
    source: CategorySource


@dataclass(frozen=True)
class ClassificationFailure:
    """Sentinel occupying the slot of a URL that could not be categorized."""

    url: str
    error: str


# ── Output ────────────────────────────────────────────────────────────────────


class CitationRecord(BaseModel):
    """A persisted citation row, unique on ``(source_record_id, url)``."""

    source_record_id: str
    customer_id: str | None = None
    brand_id: str | None = None
    query_id: str | None = None
    execution_id: str | None = None
    url: str
    domain: str
    page_name: str | None = None
    category: CitationCategory
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str]:
        return (self.source_record_id, self.url)


class RecordState(str, Enum):
    """Lifecycle of one source record through the pipeline."""

    pending = "pending"
    extracting = "extracting"
    classifying = "classifying"
    persisting = "persisting"
    completed = "completed"
    partially_completed = "partially_completed"
    skipped = "skipped"
    failed = "failed"


TERMINAL_STATES = frozenset({
    RecordState.completed,
    RecordState.partially_completed,
    RecordState.skipped,
    RecordState.failed,
})


class RecordOutcome(BaseModel):
    """What happened to a single source record."""

    record_id: str
    state: RecordState = RecordState.pending
    candidates: int = Field(default=0, description="URLs surviving extraction")
    classified: int = Field(default=0, description="URLs categorized successfully")
    failed_urls: list[str] = Field(default_factory=list)
    inserted: int = Field(default=0, description="Rows newly created in the citation store")
    detail: str = ""


class RunStats(BaseModel):
    """Summary of a pipeline run."""

    processed: int = 0
    inserted: int = 0
    skipped: int = 0
    errors: int = 0
    failed_urls: int = Field(default=0, description="URLs dropped after classification failed")
    cache_hits: int = 0
    provider_calls: int = 0
    outcomes: list[RecordOutcome] = Field(default_factory=list)

    def record(self, outcome: RecordOutcome) -> None:
        """Fold a record's terminal outcome into the counters."""
        self.processed += 1
        self.inserted += outcome.inserted
        self.failed_urls += len(outcome.failed_urls)
        if outcome.state == RecordState.skipped:
            self.skipped += 1
        elif outcome.state == RecordState.failed:
            self.errors += 1
        self.outcomes.append(outcome)

    def state_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for outcome in self.outcomes:
            counts[outcome.state.value] = counts.get(outcome.state.value, 0) + 1
        return counts


class OutputFormat(str, Enum):
    json = "json"
    csv = "csv"
