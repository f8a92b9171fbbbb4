"""End-to-end tests for the citation pipeline over in-memory stores."""

from __future__ import annotations

import random

import httpx
import pytest

from citation_radar.core.classify import Classifier, DomainCache
from citation_radar.core.concurrency import ConcurrencyController
from citation_radar.core.config import PipelineSettings, ProviderSettings
from citation_radar.core.errors import (
    CitationRadarError,
    ClassificationTransient,
    RecordNotFound,
    SourceListingError,
)
from citation_radar.core.extract import UrlExtractor
from citation_radar.core.models import CitationCategory, RecordState, SourceRecord
from citation_radar.core.persist import Persister
from citation_radar.core.pipeline import CitationPipeline, build_pipeline, build_providers
from citation_radar.core.retry import RetryController, RetryPolicy
from citation_radar.core.stores import (
    InMemoryBrandDirectory,
    InMemoryCitationStore,
    InMemorySourceStore,
)


class DomainProvider:
    """Answers per domain; a missing domain answers with a transient failure."""

    name = "Fake"

    def __init__(self, answers: dict[str, str]) -> None:
        self.answers = answers
        self.calls: list[str] = []

    async def complete(self, url: str, domain: str) -> str:
        self.calls.append(domain)
        if domain not in self.answers:
            raise ClassificationTransient("503 Service Unavailable", status=503)
        return self.answers[domain]


class _Sleeps:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FlakyListingStore(InMemorySourceStore):
    """Serves the first page, then fails to list."""

    async def list_records(self, limit: int, offset: int = 0) -> list[SourceRecord]:
        if offset > 0:
            raise SourceListingError("connection reset")
        return await super().list_records(limit, offset)


E2E_TEXT = "See [1](https://example.com/a) and [2](https://example.com/b)."


def _record(record_id: str = "rec-1", brand_id: str = "brand-1", **kwargs) -> SourceRecord:
    return SourceRecord(id=record_id, customer_id="cust-1", brand_id=brand_id, **kwargs)


def _pipeline(
    records,
    provider: DomainProvider,
    store: InMemoryCitationStore | None = None,
    brands: InMemoryBrandDirectory | None = None,
    *,
    sleeps: _Sleeps | None = None,
    page_size: int = 500,
    inter_record_delay_s: float = 0.0,
) -> tuple[CitationPipeline, InMemoryCitationStore]:
    brands = brands if brands is not None else InMemoryBrandDirectory(["brand-1"])
    store = store if store is not None else InMemoryCitationStore(brands)
    sleep = sleeps or _Sleeps()
    retry = RetryController(RetryPolicy(budget=2), sleep=sleep, rng=random.Random(3))
    source = records if isinstance(records, InMemorySourceStore) else InMemorySourceStore(records)
    pipeline = CitationPipeline(
        records=source,
        extractor=UrlExtractor(),
        classifier=Classifier([provider], cache=DomainCache(), retry=retry),
        controller=ConcurrencyController(
            2, pacing_delay_s=0, inter_record_delay_s=inter_record_delay_s, sleep=sleep,
        ),
        persister=Persister(brands, store),
        page_size=page_size,
    )
    return pipeline, store


# ── Runs ──────────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_end_to_end_markdown_answer():
    provider = DomainProvider({"example.com": "Editorial"})
    pipeline, store = _pipeline([_record(raw_answer_text=E2E_TEXT)], provider)

    stats = await pipeline.run()

    assert stats.processed == 1
    assert stats.inserted == 2
    assert stats.errors == 0
    rows = store.for_record("rec-1")
    assert sorted(r.url for r in rows) == ["https://example.com/a", "https://example.com/b"]
    assert {r.category for r in rows} == {CitationCategory.editorial}
    assert stats.outcomes[0].state == RecordState.completed
    assert stats.provider_calls == 1
    assert stats.cache_hits == 1


@pytest.mark.asyncio
async def test_rerun_is_idempotent():
    records = [_record(raw_answer_text=E2E_TEXT)]
    store = InMemoryCitationStore(InMemoryBrandDirectory(["brand-1"]))

    first, _ = _pipeline(records, DomainProvider({"example.com": "Editorial"}), store)
    second, _ = _pipeline(records, DomainProvider({"example.com": "Editorial"}), store)
    first_stats = await first.run()
    second_stats = await second.run()

    assert first_stats.inserted == 2
    assert second_stats.inserted == 0
    assert second_stats.outcomes[0].state == RecordState.completed
    assert len(store.rows) == 2


@pytest.mark.asyncio
async def test_missing_brand_is_skipped_without_raising():
    provider = DomainProvider({"example.com": "Editorial"})
    pipeline, store = _pipeline(
        [_record(brand_id="ghost-brand", raw_answer_text=E2E_TEXT)], provider
    )

    stats = await pipeline.run()

    assert stats.skipped == 1
    assert stats.inserted == 0
    assert stats.errors == 0
    assert store.rows == {}


@pytest.mark.asyncio
async def test_failed_url_gives_partial_completion():
    provider = DomainProvider({"a.com": "Corporate"})
    pipeline, store = _pipeline(
        [_record(citations_raw=["https://a.com/1", "https://b.com/2"])], provider
    )

    stats = await pipeline.run()

    outcome = stats.outcomes[0]
    assert outcome.state == RecordState.partially_completed
    assert outcome.failed_urls == ["https://b.com/2"]
    assert outcome.classified == 1
    assert stats.failed_urls == 1
    assert stats.inserted == 1
    assert [r.url for r in store.rows.values()] == ["https://a.com/1"]
    # Nothing with a placeholder category is written.
    assert all(r.category == CitationCategory.corporate for r in store.rows.values())


@pytest.mark.asyncio
async def test_rejected_url_gives_partial_completion():
    provider = DomainProvider({"a.com": "Corporate"})
    pipeline, _ = _pipeline(
        [_record(citations_raw=["https://a.com/1", "https://img.gstatic.com/x.png"])], provider
    )
    stats = await pipeline.run()
    assert stats.outcomes[0].state == RecordState.partially_completed
    assert stats.inserted == 1


@pytest.mark.asyncio
async def test_all_urls_failed_is_skipped():
    pipeline, store = _pipeline(
        [_record(citations_raw=["https://b.com/2"])], DomainProvider({})
    )
    stats = await pipeline.run()
    assert stats.outcomes[0].state == RecordState.skipped
    assert stats.failed_urls == 1
    assert store.upsert_calls == 0


@pytest.mark.asyncio
async def test_record_without_urls_is_skipped():
    provider = DomainProvider({})
    pipeline, _ = _pipeline([_record(raw_answer_text="No sources were cited.")], provider)

    stats = await pipeline.run()

    assert stats.skipped == 1
    assert stats.outcomes[0].state == RecordState.skipped
    assert "No usable URLs" in stats.outcomes[0].detail
    assert provider.calls == []


@pytest.mark.asyncio
async def test_unexpected_error_fails_only_that_record():
    class ExplodingStore(InMemoryCitationStore):
        async def upsert(self, rows):
            if rows[0].source_record_id == "rec-1":
                raise RuntimeError("disk on fire")
            return await super().upsert(rows)

    brands = InMemoryBrandDirectory(["brand-1"])
    provider = DomainProvider({"example.com": "Editorial"})
    pipeline, store = _pipeline(
        [
            _record("rec-1", raw_answer_text=E2E_TEXT),
            _record("rec-2", raw_answer_text=E2E_TEXT),
        ],
        provider,
        ExplodingStore(brands),
        brands,
    )

    stats = await pipeline.run()

    assert stats.processed == 2
    assert stats.errors == 1
    assert stats.outcomes[0].state == RecordState.failed
    assert stats.outcomes[1].state == RecordState.completed
    assert len(store.for_record("rec-2")) == 2


@pytest.mark.asyncio
async def test_same_domain_across_records_uses_cache():
    provider = DomainProvider({"example.com": "Editorial"})
    pipeline, _ = _pipeline(
        [
            _record("rec-1", citations_raw=["https://example.com/a"]),
            _record("rec-2", citations_raw=["https://example.com/b"]),
        ],
        provider,
    )
    stats = await pipeline.run()
    assert provider.calls == ["example.com"]
    assert stats.provider_calls == 1
    assert stats.cache_hits == 1


# ── Pagination and pacing ─────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_limit_and_paging():
    records = [_record(f"rec-{i}", citations_raw=[f"https://example.com/{i}"]) for i in range(5)]
    pipeline, _ = _pipeline(
        records, DomainProvider({"example.com": "Editorial"}), page_size=2
    )
    stats = await pipeline.run(limit=3)
    assert stats.processed == 3
    assert [o.record_id for o in stats.outcomes] == ["rec-0", "rec-1", "rec-2"]


@pytest.mark.asyncio
async def test_delay_between_records():
    sleeps = _Sleeps()
    records = [_record(f"rec-{i}", citations_raw=[f"https://example.com/{i}"]) for i in range(3)]
    pipeline, _ = _pipeline(
        records,
        DomainProvider({"example.com": "Editorial"}),
        sleeps=sleeps,
        inter_record_delay_s=0.25,
    )
    await pipeline.run()
    assert sleeps.delays == [0.25, 0.25]


@pytest.mark.asyncio
async def test_listing_failure_on_first_page_propagates():
    class BrokenStore(InMemorySourceStore):
        async def list_records(self, limit, offset=0):
            raise SourceListingError("permission denied for table collector_results")

    pipeline, _ = _pipeline(BrokenStore(), DomainProvider({}))
    with pytest.raises(SourceListingError):
        await pipeline.run()


@pytest.mark.asyncio
async def test_listing_failure_after_first_page_ends_run():
    records = FlakyListingStore(
        [_record(f"rec-{i}", citations_raw=[f"https://example.com/{i}"]) for i in range(3)]
    )
    pipeline, _ = _pipeline(records, DomainProvider({"example.com": "Editorial"}), page_size=1)

    stats = await pipeline.run()

    assert stats.processed == 1
    assert stats.errors == 1


# ── Reprocess ─────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_reprocess_single_record():
    provider = DomainProvider({"example.com": "Editorial"})
    pipeline, store = _pipeline(
        [_record("rec-1", raw_answer_text=E2E_TEXT), _record("rec-2", raw_answer_text=E2E_TEXT)],
        provider,
    )

    outcome = await pipeline.reprocess("rec-2")

    assert outcome.record_id == "rec-2"
    assert outcome.inserted == 2
    assert store.for_record("rec-1") == []


@pytest.mark.asyncio
async def test_reprocess_unknown_record():
    pipeline, _ = _pipeline([], DomainProvider({}))
    with pytest.raises(RecordNotFound):
        await pipeline.reprocess("missing")


# ── Wiring ────────────────────────────────────────────────────────────────────


def test_build_providers_orders_primary_then_fallback():
    creds = ProviderSettings(google_gemini_api_key="g", cerebras_api_key="c")
    assert [p.name for p in build_providers(creds)] == ["Gemini", "Cerebras"]


def test_build_providers_skips_unconfigured():
    creds = ProviderSettings(google_gemini_api_key="", cerebras_api_key="c")
    assert [p.name for p in build_providers(creds)] == ["Cerebras"]


def test_build_pipeline_requires_store_credentials():
    creds = ProviderSettings(supabase_url="", supabase_service_role_key="")
    with pytest.raises(CitationRadarError, match="SUPABASE_URL"):
        build_pipeline(PipelineSettings(), creds)


@pytest.mark.asyncio
async def test_build_pipeline_uses_settings_and_shared_client():
    settings = PipelineSettings(concurrency=3, base_delay_ms=250, page_size=50, retry_budget=4)
    creds = ProviderSettings(
        google_gemini_api_key="g",
        cerebras_api_key="",
        supabase_url="https://proj.supabase.co",
        supabase_service_role_key="service",
    )
    async with httpx.AsyncClient() as client:
        pipeline = build_pipeline(settings, creds, client=client)
        async with pipeline:
            assert pipeline.controller.limit == 3
            assert pipeline.controller.pacing_delay_s == 0.25
            assert pipeline.page_size == 50
            assert pipeline.classifier.retry.policy.budget == 4
            assert [p.name for p in pipeline.classifier.providers] == ["Gemini"]
        assert not client.is_closed
