"""Bounded, order-preserving worker pool for per-record URL classification."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from citation_radar.core.models import ClassificationFailure

logger = logging.getLogger(__name__)

R = TypeVar("R")


class ConcurrencyController:
    """Run a worker over a record's URLs with at most ``limit`` in flight.

    Results come back index-aligned with the input. A worker that raises
    leaves a :class:`ClassificationFailure` at its index; siblings keep going.
    """

    def __init__(
        self,
        limit: int = 1,
        *,
        pacing_delay_s: float = 0.5,
        inter_record_delay_s: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.limit = max(1, limit)
        self.pacing_delay_s = max(0.0, pacing_delay_s)
        self.inter_record_delay_s = max(0.0, inter_record_delay_s)
        self._sleep = sleep

    async def map(
        self,
        urls: Sequence[str],
        worker: Callable[[str], Awaitable[R]],
    ) -> list[R | ClassificationFailure]:
        results: list[R | ClassificationFailure | None] = [None] * len(urls)
        if not urls:
            return []
        semaphore = asyncio.Semaphore(self.limit)

        async def run(index: int, url: str) -> None:
            async with semaphore:
                if self.pacing_delay_s:
                    await self._sleep(self.pacing_delay_s)
                try:
                    results[index] = await worker(url)
                except Exception as exc:
                    logger.warning("Failed to categorize %s: %s", url, exc)
                    results[index] = ClassificationFailure(url=url, error=str(exc))

        await asyncio.gather(*(run(i, url) for i, url in enumerate(urls)))
        return results  # type: ignore[return-value]

    async def between_records(self) -> None:
        if self.inter_record_delay_s:
            await self._sleep(self.inter_record_delay_s)
