"""Validate, dedupe and idempotently upsert a record's classified citations."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from citation_radar.core.errors import PersistenceFatal, PersistenceForeignKeyMissing
from citation_radar.core.models import (
    CitationRecord,
    ClassificationFailure,
    ClassifiedUrl,
    RecordState,
    SourceRecord,
)
from citation_radar.core.stores.base import BrandDirectory, CitationStore

logger = logging.getLogger(__name__)


@dataclass
class PersistResult:
    state: RecordState
    inserted: int = 0
    rows: int = 0
    detail: str = ""


def build_rows(
    record: SourceRecord,
    entries: Sequence[ClassifiedUrl | ClassificationFailure],
    titles: Mapping[str, str] | None = None,
) -> list[CitationRecord]:
    """Drop failure sentinels and dedupe on ``(source_record_id, url)``, last write wins."""
    titles = titles or {}
    rows: dict[tuple[str, str], CitationRecord] = {}
    for entry in entries:
        if not isinstance(entry, ClassifiedUrl):
            continue
        metadata = {
            "categorization_confidence": entry.confidence.value,
            "categorization_source": entry.source.value,
        }
        title = titles.get(entry.url)
        if title:
            metadata["title"] = title
        row = CitationRecord(
            source_record_id=record.id,
            customer_id=record.customer_id,
            brand_id=record.brand_id,
            query_id=record.query_id,
            execution_id=record.execution_id,
            url=entry.url,
            domain=entry.domain,
            page_name=title or entry.page_name,
            category=entry.category,
            metadata=metadata,
        )
        rows[row.key] = row
    return list(rows.values())


class Persister:
    """Write one record's citations, classifying datastore failures.

    A missing brand (checked up front, or reported by the store as a
    foreign-key violation) skips the batch; any other datastore error fails
    the record. Neither is raised to the caller.
    """

    def __init__(self, brands: BrandDirectory, citations: CitationStore) -> None:
        self.brands = brands
        self.citations = citations

    async def persist(
        self,
        record: SourceRecord,
        entries: Sequence[ClassifiedUrl | ClassificationFailure],
        titles: Mapping[str, str] | None = None,
    ) -> PersistResult:
        rows = build_rows(record, entries, titles)
        if not rows:
            return PersistResult(RecordState.skipped, detail="No categorized citations")

        if record.brand_id:
            try:
                exists = await self.brands.has_brand(record.brand_id)
            except PersistenceFatal as e:
                logger.error("Brand check failed for record %s: %s", record.id, e)
                return PersistResult(RecordState.failed, rows=len(rows), detail=str(e))
            if not exists:
                logger.warning(
                    "Brand %s does not exist, skipping citations for record %s",
                    record.brand_id, record.id,
                )
                return PersistResult(
                    RecordState.skipped, rows=len(rows),
                    detail=f"Brand {record.brand_id} does not exist",
                )

        try:
            created = await self.citations.upsert(rows)
        except PersistenceForeignKeyMissing as e:
            logger.warning("Foreign key violation for record %s: %s", record.id, e)
            return PersistResult(RecordState.skipped, rows=len(rows), detail=str(e))
        except PersistenceFatal as e:
            logger.error("Error inserting citations for record %s: %s", record.id, e)
            return PersistResult(RecordState.failed, rows=len(rows), detail=str(e))

        logger.info("Upserted %d citations for record %s (%d new)", len(rows), record.id, created)
        return PersistResult(RecordState.completed, inserted=created, rows=len(rows))
