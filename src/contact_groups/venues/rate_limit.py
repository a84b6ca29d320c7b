"""Request spacing and retry primitives for the venue lookup client."""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import structlog

from contact_groups.errors import ExternalServiceError

logger = structlog.get_logger()

T = TypeVar("T")


class RateLimiter:
    """Guarantee a minimum interval between successive acquisitions.

    Callers ``await limiter.wait()`` before each external request.  The
    lock serialises waiters so concurrent tasks are spaced as well.
    """

    def __init__(self, min_interval_s: float) -> None:
        self._min_interval = min_interval_s
        self._last_request_time: float | None = None
        self._lock = asyncio.Lock()

    async def wait(self) -> None:
        async with self._lock:
            if self._last_request_time is not None:
                elapsed = time.monotonic() - self._last_request_time
                if elapsed < self._min_interval:
                    await asyncio.sleep(self._min_interval - elapsed)
            self._last_request_time = time.monotonic()


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff for retryable external failures.

    Attempt ``n`` (0-based) that fails with a retryable
    ``ExternalServiceError`` is followed by a delay of
    ``min(base_delay_s * 2**n, max_delay_s)`` plus up to ``jitter``
    seconds.  The default of one attempt means no retry at all.
    """

    max_attempts: int = 1
    base_delay_s: float = 0.5
    max_delay_s: float = 8.0
    jitter: float = 0.1

    def delay_for(self, attempt: int) -> float:
        delay = min(self.base_delay_s * 2**attempt, self.max_delay_s)
        if self.jitter:
            delay += random.uniform(0, self.jitter)
        return delay

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> T:
        attempts = max(self.max_attempts, 1)
        for attempt in range(attempts):
            try:
                return await operation()
            except ExternalServiceError as exc:
                if not exc.retryable or attempt == attempts - 1:
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    "external_call_retry",
                    provider=exc.provider_name,
                    status=exc.status_code,
                    attempt=attempt + 1,
                    backoff_s=round(delay, 3),
                )
                await sleep(delay)
        raise AssertionError("unreachable")
