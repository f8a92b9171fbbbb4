"""Supabase (PostgREST) backed stores.

Tables: ``collector_results`` (source records), ``brands`` and ``citations``
with a unique constraint on ``(collector_result_id, url)``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from citation_radar.core.errors import (
    PersistenceFatal,
    PersistenceForeignKeyMissing,
    SourceListingError,
)
from citation_radar.core.models import CitationRecord, SourceRecord

logger = logging.getLogger(__name__)

FOREIGN_KEY_VIOLATION = "23503"

SOURCE_COLUMNS = "id,customer_id,brand_id,query_id,execution_id,citations,urls,raw_answer"


class SupabaseClient:
    """Thin PostgREST wrapper over ``httpx.AsyncClient``."""

    def __init__(
        self,
        url: str,
        service_key: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.rest_url = url.rstrip("/") + "/rest/v1"
        self.headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        }
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        return await self._client.request(
            method,
            f"{self.rest_url}/{table}",
            params=params,
            json=json,
            headers={**self.headers, **(headers or {})},
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _error_payload(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {"message": response.text}
    return data if isinstance(data, dict) else {"message": str(data)}


def _opt_str(value: Any) -> str | None:
    return None if value is None else str(value)


def record_from_row(row: dict[str, Any]) -> SourceRecord:
    return SourceRecord(
        id=str(row["id"]),
        customer_id=_opt_str(row.get("customer_id")),
        brand_id=_opt_str(row.get("brand_id")),
        query_id=_opt_str(row.get("query_id")),
        execution_id=_opt_str(row.get("execution_id")),
        citations_raw=row.get("citations"),
        urls_raw=row.get("urls"),
        raw_answer_text=row.get("raw_answer"),
    )


def row_from_citation(citation: CitationRecord) -> dict[str, Any]:
    return {
        "collector_result_id": citation.source_record_id,
        "customer_id": citation.customer_id,
        "brand_id": citation.brand_id,
        "query_id": citation.query_id,
        "execution_id": citation.execution_id,
        "url": citation.url,
        "domain": citation.domain,
        "page_name": citation.page_name,
        "category": citation.category.value,
        "metadata": citation.metadata,
    }


class SupabaseSourceStore:
    def __init__(self, client: SupabaseClient) -> None:
        self.client = client

    async def list_records(self, limit: int, offset: int = 0) -> list[SourceRecord]:
        params = {
            "select": SOURCE_COLUMNS,
            "or": "(citations.not.is.null,urls.not.is.null,raw_answer.not.is.null)",
            "order": "created_at.desc",
            "limit": str(limit),
            "offset": str(offset),
        }
        try:
            response = await self.client.request("GET", "collector_results", params=params)
        except httpx.HTTPError as e:
            raise SourceListingError(f"Failed to list collector_results: {e}") from e
        if response.status_code >= 400:
            payload = _error_payload(response)
            raise SourceListingError(
                f"Failed to list collector_results: {payload.get('message', response.status_code)}"
            )
        return [record_from_row(row) for row in response.json()]

    async def get_record(self, record_id: str) -> SourceRecord | None:
        params = {"select": SOURCE_COLUMNS, "id": f"eq.{record_id}", "limit": "1"}
        try:
            response = await self.client.request("GET", "collector_results", params=params)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise SourceListingError(f"Failed to fetch collector result {record_id}: {e}") from e
        rows = response.json()
        return record_from_row(rows[0]) if rows else None


class SupabaseBrandDirectory:
    def __init__(self, client: SupabaseClient) -> None:
        self.client = client

    async def has_brand(self, brand_id: str) -> bool:
        params = {"select": "id", "id": f"eq.{brand_id}", "limit": "1"}
        try:
            response = await self.client.request("GET", "brands", params=params)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise PersistenceFatal(f"Error checking brand existence for {brand_id}: {e}") from e
        return bool(response.json())


class SupabaseCitationStore:
    """Upserts with ``on_conflict=collector_result_id,url`` and merge-duplicates."""

    def __init__(self, client: SupabaseClient) -> None:
        self.client = client

    async def _existing_urls(self, source_record_id: str) -> set[str]:
        params = {"select": "url", "collector_result_id": f"eq.{source_record_id}"}
        response = await self.client.request("GET", "citations", params=params)
        if response.status_code >= 400:
            payload = _error_payload(response)
            raise PersistenceFatal(f"Failed to read citations: {payload.get('message')}")
        return {row["url"] for row in response.json()}

    async def upsert(self, rows: Sequence[CitationRecord]) -> int:
        if not rows:
            return 0
        record_ids = {row.source_record_id for row in rows}
        try:
            existing: set[tuple[str, str]] = set()
            for record_id in record_ids:
                existing |= {(record_id, url) for url in await self._existing_urls(record_id)}

            response = await self.client.request(
                "POST",
                "citations",
                params={"on_conflict": "collector_result_id,url"},
                json=[row_from_citation(row) for row in rows],
                headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
            )
        except httpx.HTTPError as e:
            raise PersistenceFatal(f"Citation upsert failed: {e}") from e

        if response.status_code >= 400:
            payload = _error_payload(response)
            message = payload.get("message", f"HTTP {response.status_code}")
            if str(payload.get("code")) == FOREIGN_KEY_VIOLATION:
                raise PersistenceForeignKeyMissing(message)
            raise PersistenceFatal(message)

        return sum(1 for row in rows if row.key not in existing)
