"""Run-scoped domain → category cache shared by concurrent classification workers."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from citation_radar.core.models import DomainCategoryResult


class DomainCache:
    """Lock-protected mapping of domain to :class:`DomainCategoryResult`.

    Concurrent misses for the same domain share one in-flight load, so a
    domain is sent to the provider at most once per run unless the load
    fails. Failures are never cached.
    """

    def __init__(self) -> None:
        self._results: dict[str, DomainCategoryResult] = {}
        self._inflight: dict[str, asyncio.Future[DomainCategoryResult]] = {}
        self._lock = asyncio.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._results)

    def __contains__(self, domain: object) -> bool:
        return domain in self._results

    async def get(self, domain: str) -> DomainCategoryResult | None:
        async with self._lock:
            return self._results.get(domain)

    async def set(self, result: DomainCategoryResult) -> DomainCategoryResult:
        """Store *result* unless the domain is already cached; return the stored value."""
        async with self._lock:
            return self._results.setdefault(result.domain, result)

    async def get_or_load(
        self,
        domain: str,
        loader: Callable[[], Awaitable[DomainCategoryResult]],
    ) -> DomainCategoryResult:
        async with self._lock:
            cached = self._results.get(domain)
            if cached is not None:
                self.hits += 1
                return cached
            pending = self._inflight.get(domain)
            if pending is None:
                self.misses += 1
                pending = asyncio.get_running_loop().create_future()
                self._inflight[domain] = pending
                owner = True
            else:
                self.hits += 1
                owner = False

        if not owner:
            return await asyncio.shield(pending)

        try:
            result = await loader()
        except Exception as exc:
            async with self._lock:
                self._inflight.pop(domain, None)
            if not pending.done():
                pending.set_exception(exc)
                # Mark retrieved so an unawaited failure is not reported by the loop.
                pending.exception()
            raise
        except BaseException:
            self._inflight.pop(domain, None)
            pending.cancel()
            raise

        async with self._lock:
            stored = self._results.setdefault(domain, result)
            self._inflight.pop(domain, None)
        if not pending.done():
            pending.set_result(stored)
        return stored

    def snapshot(self) -> dict[str, DomainCategoryResult]:
        return dict(self._results)
