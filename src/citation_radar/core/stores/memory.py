"""In-memory store implementations for local runs and tests."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from citation_radar.core.errors import PersistenceForeignKeyMissing
from citation_radar.core.models import CitationRecord, SourceRecord


class InMemorySourceStore:
    def __init__(self, records: Iterable[SourceRecord] = ()) -> None:
        self.records = list(records)

    async def list_records(self, limit: int, offset: int = 0) -> list[SourceRecord]:
        return self.records[offset:offset + limit]

    async def get_record(self, record_id: str) -> SourceRecord | None:
        return next((r for r in self.records if r.id == record_id), None)


class InMemoryBrandDirectory:
    def __init__(self, brand_ids: Iterable[str] = ()) -> None:
        self.brand_ids = set(brand_ids)

    async def has_brand(self, brand_id: str) -> bool:
        return brand_id in self.brand_ids


class InMemoryCitationStore:
    """Dict keyed on ``(source_record_id, url)``.

    With a ``brands`` directory attached, rows whose brand is missing are
    rejected the way a foreign-key constraint would reject them.
    """

    def __init__(self, brands: InMemoryBrandDirectory | None = None) -> None:
        self.rows: dict[tuple[str, str], CitationRecord] = {}
        self.brands = brands
        self.upsert_calls = 0

    async def upsert(self, rows: Sequence[CitationRecord]) -> int:
        self.upsert_calls += 1
        if self.brands is not None:
            for row in rows:
                if row.brand_id and row.brand_id not in self.brands.brand_ids:
                    raise PersistenceForeignKeyMissing(
                        f"brand_id {row.brand_id} violates citations_brand_id_fkey"
                    )
        created = 0
        for row in rows:
            if row.key not in self.rows:
                created += 1
            self.rows[row.key] = row
        return created

    def for_record(self, source_record_id: str) -> list[CitationRecord]:
        return [row for key, row in self.rows.items() if key[0] == source_record_id]
