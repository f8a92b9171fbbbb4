"""Domain categorization through the provider chain, backed by the run's DomainCache."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from citation_radar.core.classify.cache import DomainCache
from citation_radar.core.classify.domains import heuristic_category, lookup_registry, page_name_for
from citation_radar.core.classify.providers import CategoryProvider
from citation_radar.core.errors import CategorizationError, ClassificationFatal
from citation_radar.core.extract.urls import extract_domain
from citation_radar.core.models import (
    CategorySource,
    CitationCategory,
    ClassifiedUrl,
    Confidence,
    DomainCategoryResult,
)
from citation_radar.core.retry import RetryController

logger = logging.getLogger(__name__)


def match_category(text: str) -> CitationCategory | None:
    """Return the first taxonomy token contained in *text*, case-insensitively."""
    lowered = (text or "").lower()
    for category in CitationCategory:
        if category.value.lower() in lowered:
            return category
    return None


class Classifier:
    """Categorize citation URLs by domain.

    Lookup order for a domain not yet in the cache: the well-known domain
    registry, name heuristics, then each provider in ``providers`` under the
    retry controller. The first success is cached for the rest of the run.
    """

    def __init__(
        self,
        providers: Sequence[CategoryProvider],
        cache: DomainCache | None = None,
        retry: RetryController | None = None,
        *,
        use_registry: bool = True,
    ) -> None:
        self.providers = list(providers)
        self.cache = cache if cache is not None else DomainCache()
        self.retry = retry or RetryController()
        self.use_registry = use_registry
        self.provider_calls = 0

    async def classify(self, url: str) -> DomainCategoryResult:
        """Categorize *url*'s domain. Raises :class:`CategorizationError` on failure."""
        domain = extract_domain(url)
        return await self.cache.get_or_load(domain, lambda: self._categorize(url, domain))

    async def process(self, url: str) -> ClassifiedUrl:
        result = await self.classify(url)
        return ClassifiedUrl(
            url=url,
            domain=result.domain,
            page_name=result.page_name,
            category=result.category,
            confidence=result.confidence,
            source=result.source,
        )

    async def _categorize(self, url: str, domain: str) -> DomainCategoryResult:
        page_name = page_name_for(domain)

        if self.use_registry:
            rule = lookup_registry(domain)
            if rule is not None:
                return DomainCategoryResult(
                    domain=domain, category=rule.category, confidence=Confidence.high,
                    source=CategorySource.hardcoded, page_name=page_name,
                )
            guessed = heuristic_category(domain)
            if guessed is not None:
                return DomainCategoryResult(
                    domain=domain, category=guessed, confidence=Confidence.medium,
                    source=CategorySource.simple_domain_matching, page_name=page_name,
                )

        if not self.providers:
            raise CategorizationError(url, ClassificationFatal("No classification provider configured"))

        last_error: Exception | None = None
        for provider in self.providers:
            outcome = await self.retry.call(
                lambda p=provider: self._ask(p, url, domain),
                label=f"{provider.name}:{domain}",
            )
            if outcome.ok:
                logger.debug("%s categorized %s as %s", provider.name, domain, outcome.value.value)
                return DomainCategoryResult(
                    domain=domain, category=outcome.value, confidence=Confidence.high,
                    source=CategorySource.ai, page_name=page_name,
                )
            last_error = outcome.error
            logger.warning(
                "%s categorization failed for %s after %d attempt(s): %s",
                provider.name, domain, outcome.attempts, outcome.error,
            )

        raise CategorizationError(url, last_error)

    async def _ask(self, provider: CategoryProvider, url: str, domain: str) -> CitationCategory:
        self.provider_calls += 1
        text = await provider.complete(url, domain)
        category = match_category(text)
        if category is None:
            raise ClassificationFatal(
                f'{provider.name} response "{text[:80]}" does not match any known category'
            )
        return category
