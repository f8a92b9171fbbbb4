"""Interfaces of the external collaborators the pipeline reads from and writes to."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from citation_radar.core.models import CitationRecord, SourceRecord


class SourceRecordStore(Protocol):
    """Read-only, paginated access to stored answer-engine responses.

    ``list_records`` raises :class:`SourceListingError` when listing fails.
    """

    async def list_records(self, limit: int, offset: int = 0) -> list[SourceRecord]: ...

    async def get_record(self, record_id: str) -> SourceRecord | None: ...


class BrandDirectory(Protocol):
    async def has_brand(self, brand_id: str) -> bool: ...


class CitationStore(Protocol):
    """Write sink for citation rows, unique on ``(source_record_id, url)``.

    ``upsert`` returns how many rows were newly created; existing keys are
    updated in place. Raises :class:`PersistenceForeignKeyMissing` on a
    foreign-key violation and :class:`PersistenceFatal` on anything else.
    """

    async def upsert(self, rows: Sequence[CitationRecord]) -> int: ...
