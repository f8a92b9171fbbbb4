"""Pipeline orchestration: extract, classify and persist citations per source record."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

import httpx

from citation_radar.core.classify import (
    CategoryProvider,
    CerebrasProvider,
    Classifier,
    DomainCache,
    GeminiProvider,
)
from citation_radar.core.concurrency import ConcurrencyController
from citation_radar.core.config import PipelineSettings, ProviderSettings
from citation_radar.core.errors import (
    CitationRadarError,
    ExtractionSkip,
    RecordNotFound,
    SourceListingError,
)
from citation_radar.core.extract import ExtractionResult, UrlExtractor
from citation_radar.core.models import (
    ClassificationFailure,
    RecordOutcome,
    RecordState,
    RunStats,
    SourceRecord,
)
from citation_radar.core.persist import Persister
from citation_radar.core.retry import RetryController, RetryPolicy
from citation_radar.core.stores import (
    SourceRecordStore,
    SupabaseBrandDirectory,
    SupabaseCitationStore,
    SupabaseClient,
    SupabaseSourceStore,
)

logger = logging.getLogger(__name__)


class CitationPipeline:
    """Drive source records through extraction, classification and persistence.

    Records are processed one at a time; URLs within a record go through the
    concurrency controller. A failing record never stops the run. Only a
    failure to list the first page of source records propagates.
    """

    def __init__(
        self,
        records: SourceRecordStore,
        extractor: UrlExtractor,
        classifier: Classifier,
        controller: ConcurrencyController,
        persister: Persister,
        *,
        page_size: int = 500,
    ) -> None:
        self.records = records
        self.extractor = extractor
        self.classifier = classifier
        self.controller = controller
        self.persister = persister
        self.page_size = page_size
        self._closers: list[Callable[[], Awaitable[None]]] = []

    async def __aenter__(self) -> CitationPipeline:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        while self._closers:
            await self._closers.pop()()

    # ── Entry points ──────────────────────────────────────────────────────────

    async def run(self, limit: int | None = None) -> RunStats:
        """Process every listed source record (or the first *limit*) and return stats."""
        stats = RunStats()
        offset = 0
        logger.info("Starting citation extraction")

        while limit is None or offset < limit:
            size = self.page_size if limit is None else min(self.page_size, limit - offset)
            try:
                page = await self.records.list_records(size, offset)
            except SourceListingError:
                if offset == 0:
                    raise
                logger.error("Listing failed after %d records; ending run early", offset, exc_info=True)
                stats.errors += 1
                break
            if not page:
                break

            for record in page:
                if stats.processed:
                    await self.controller.between_records()
                stats.record(await self._process_safely(record))

            offset += len(page)
            if len(page) < size:
                break

        stats.cache_hits = self.classifier.cache.hits
        stats.provider_calls = self.classifier.provider_calls
        logger.info(
            "Citation extraction complete: %d processed, %d inserted, %d skipped, %d errors",
            stats.processed, stats.inserted, stats.skipped, stats.errors,
        )
        return stats

    async def reprocess(self, record_id: str) -> RecordOutcome:
        """Run a single named record through the pipeline, e.g. for backfill."""
        record = await self.records.get_record(record_id)
        if record is None:
            raise RecordNotFound(f"Source record {record_id} not found")
        return await self._process_safely(record)

    # ── Per-record state machine ──────────────────────────────────────────────

    async def _process_safely(self, record: SourceRecord) -> RecordOutcome:
        try:
            return await self.process_record(record)
        except Exception as e:
            logger.exception("Error processing record %s", record.id)
            return RecordOutcome(record_id=record.id, state=RecordState.failed, detail=str(e))

    def _extract(self, record: SourceRecord) -> ExtractionResult:
        extraction = self.extractor.extract(record)
        if not extraction:
            raise ExtractionSkip(f"No usable URLs in record {record.id}")
        return extraction

    async def process_record(self, record: SourceRecord) -> RecordOutcome:
        outcome = RecordOutcome(record_id=record.id)

        outcome.state = RecordState.extracting
        try:
            extraction = self._extract(record)
        except ExtractionSkip as skip:
            logger.info("%s", skip)
            outcome.state = RecordState.skipped
            outcome.detail = str(skip)
            return outcome
        outcome.candidates = len(extraction.candidates)

        outcome.state = RecordState.classifying
        entries = await self.controller.map(extraction.urls, self.classifier.process)
        failures = [e for e in entries if isinstance(e, ClassificationFailure)]
        outcome.failed_urls = [f.url for f in failures]
        outcome.classified = len(entries) - len(failures)

        outcome.state = RecordState.persisting
        result = await self.persister.persist(record, entries, extraction.titles)
        outcome.inserted = result.inserted
        outcome.detail = result.detail

        if result.state == RecordState.completed:
            dropped = bool(failures) or extraction.rejected > 0
            outcome.state = RecordState.partially_completed if dropped else RecordState.completed
        else:
            outcome.state = result.state
        return outcome


# ── Wiring ────────────────────────────────────────────────────────────────────


def build_providers(
    creds: ProviderSettings,
    client: httpx.AsyncClient | None = None,
    timeout: float = 30.0,
) -> list[CategoryProvider]:
    """Primary Gemini, fallback Cerebras, each only when its key is configured."""
    providers: list[CategoryProvider] = []
    if creds.google_gemini_api_key:
        providers.append(GeminiProvider(
            creds.google_gemini_api_key, creds.google_gemini_model,
            client=client, timeout=timeout,
        ))
    if creds.cerebras_api_key:
        providers.append(CerebrasProvider(
            creds.cerebras_api_key, creds.cerebras_model,
            client=client, timeout=timeout,
        ))
    if not providers:
        logger.warning("No classification provider configured; only well-known domains will be categorized")
    return providers


def build_pipeline(
    settings: PipelineSettings | None = None,
    creds: ProviderSettings | None = None,
    *,
    client: httpx.AsyncClient | None = None,
) -> CitationPipeline:
    """Wire a pipeline against Supabase and the configured providers.

    Each call gets a fresh :class:`DomainCache`, so runs never share state.
    """
    settings = settings or PipelineSettings()
    creds = creds or ProviderSettings()
    if not creds.supabase_url or not creds.supabase_service_role_key:
        raise CitationRadarError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

    http = client or httpx.AsyncClient(timeout=settings.request_timeout_s)
    db = SupabaseClient(creds.supabase_url, creds.supabase_service_role_key, client=http)

    classifier = Classifier(
        build_providers(creds, http, settings.request_timeout_s),
        cache=DomainCache(),
        retry=RetryController(RetryPolicy.from_settings(settings)),
    )
    pipeline = CitationPipeline(
        records=SupabaseSourceStore(db),
        extractor=UrlExtractor(max_url_length=settings.max_url_length),
        classifier=classifier,
        controller=ConcurrencyController(
            settings.concurrency,
            pacing_delay_s=settings.base_delay_s,
            inter_record_delay_s=settings.inter_record_delay_s,
        ),
        persister=Persister(SupabaseBrandDirectory(db), SupabaseCitationStore(db)),
        page_size=settings.page_size,
    )
    if client is None:
        pipeline._closers.append(http.aclose)
    return pipeline
