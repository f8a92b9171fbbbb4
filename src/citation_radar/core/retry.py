"""Bounded exponential backoff around classification provider calls.

Callers get a :class:`RetryOutcome` back instead of an exception: the outcome
is either ``ok`` with a value, or carries the error that ended the attempts.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

import tenacity
from tenacity import RetryCallState, retry_if_exception_type, stop_after_attempt

from citation_radar.core.config import PipelineSettings
from citation_radar.core.errors import ClassificationFatal, ClassificationTransient

logger = logging.getLogger(__name__)

T = TypeVar("T")

JITTER_LOW = 0.8
JITTER_HIGH = 1.2


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget and backoff bounds, in seconds."""

    budget: int = 5
    base_delay_s: float = 0.8
    max_delay_s: float = 30.0

    @classmethod
    def from_settings(cls, settings: PipelineSettings) -> RetryPolicy:
        return cls(
            budget=settings.retry_budget,
            base_delay_s=settings.backoff_base_ms / 1000,
            max_delay_s=settings.backoff_max_ms / 1000,
        )


def backoff_delay(attempt: int, policy: RetryPolicy, jitter: float) -> float:
    """Delay before retry number *attempt* (0-based): ``min(max, base * 2**attempt * jitter)``."""
    return min(policy.max_delay_s, policy.base_delay_s * (2 ** attempt) * jitter)


class _JitteredBackoff(tenacity.wait.wait_base):
    """Tenacity wait strategy applying :func:`backoff_delay` with uniform jitter."""

    def __init__(self, policy: RetryPolicy, rng: random.Random) -> None:
        self.policy = policy
        self.rng = rng

    def __call__(self, retry_state: RetryCallState) -> float:
        jitter = self.rng.uniform(JITTER_LOW, JITTER_HIGH)
        return backoff_delay(retry_state.attempt_number - 1, self.policy, jitter)


@dataclass
class RetryOutcome(Generic[T]):
    value: T | None = None
    error: Exception | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def retryable(self) -> bool:
        """True when the final error was transient, i.e. the budget ran out."""
        return isinstance(self.error, ClassificationTransient)


class RetryController:
    """Run provider calls under a :class:`RetryPolicy`.

    Only :class:`ClassificationTransient` is retried. A
    :class:`ClassificationFatal` ends the call on the attempt that raised it.
    Once the budget is spent the last error is returned unchanged.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._rng = rng or random.Random()

    def _retrying(self, label: str) -> tenacity.AsyncRetrying:
        def _log_retry(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            delay = state.next_action.sleep if state.next_action else 0.0
            logger.debug(
                "Retry %d/%d for %s after %.0fms: %s",
                state.attempt_number, self.policy.budget, label, delay * 1000, exc,
            )

        return tenacity.AsyncRetrying(
            stop=stop_after_attempt(self.policy.budget),
            wait=_JitteredBackoff(self.policy, self._rng),
            retry=retry_if_exception_type(ClassificationTransient),
            before_sleep=_log_retry,
            sleep=self._sleep,
            reraise=True,
        )

    async def call(self, fn: Callable[[], Awaitable[T]], *, label: str = "") -> RetryOutcome[T]:
        attempts = 0
        try:
            async for attempt in self._retrying(label):
                with attempt:
                    attempts += 1
                    value = await fn()
        except (ClassificationTransient, ClassificationFatal) as exc:
            return RetryOutcome(error=exc, attempts=attempts)
        return RetryOutcome(value=value, attempts=attempts)
