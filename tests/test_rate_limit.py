"""Tests for the request rate limiter and retry policy."""

import time

import pytest

from contact_groups.errors import ExternalServiceError
from contact_groups.venues.rate_limit import RateLimiter, RetryPolicy


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _failing_then(result, failures: int, retryable: bool = True):
    calls = {"n": 0}

    async def operation():
        calls["n"] += 1
        if calls["n"] <= failures:
            raise ExternalServiceError("down", provider_name="fake", status_code=503, retryable=retryable)
        return result

    return operation, calls


class TestRateLimiter:
    async def test_successive_waits_are_spaced(self) -> None:
        limiter = RateLimiter(0.05)
        start = time.monotonic()
        await limiter.wait()
        await limiter.wait()
        await limiter.wait()
        assert time.monotonic() - start >= 0.09

    async def test_first_wait_does_not_sleep(self) -> None:
        limiter = RateLimiter(1.0)
        start = time.monotonic()
        await limiter.wait()
        assert time.monotonic() - start < 0.5


class TestRetryPolicy:
    async def test_default_is_single_attempt(self) -> None:
        operation, calls = _failing_then("ok", failures=1)
        with pytest.raises(ExternalServiceError):
            await RetryPolicy().run(operation, sleep=RecordingSleep())
        assert calls["n"] == 1

    async def test_retries_with_exponential_backoff(self) -> None:
        sleep = RecordingSleep()
        policy = RetryPolicy(max_attempts=3, base_delay_s=0.5, max_delay_s=10, jitter=0)
        operation, calls = _failing_then("ok", failures=2)
        assert await policy.run(operation, sleep=sleep) == "ok"
        assert calls["n"] == 3
        assert sleep.delays == [0.5, 1.0]

    async def test_non_retryable_error_raises_immediately(self) -> None:
        policy = RetryPolicy(max_attempts=5, jitter=0)
        operation, calls = _failing_then("ok", failures=1, retryable=False)
        with pytest.raises(ExternalServiceError):
            await policy.run(operation, sleep=RecordingSleep())
        assert calls["n"] == 1

    async def test_gives_up_after_max_attempts(self) -> None:
        sleep = RecordingSleep()
        operation, calls = _failing_then("ok", failures=10)
        with pytest.raises(ExternalServiceError):
            await RetryPolicy(max_attempts=3, jitter=0).run(operation, sleep=sleep)
        assert calls["n"] == 3
        assert len(sleep.delays) == 2

    def test_delay_is_capped(self) -> None:
        policy = RetryPolicy(base_delay_s=1.0, max_delay_s=4.0, jitter=0)
        assert [policy.delay_for(n) for n in range(5)] == [1.0, 2.0, 4.0, 4.0, 4.0]

    def test_jitter_bounded(self) -> None:
        policy = RetryPolicy(base_delay_s=1.0, max_delay_s=4.0, jitter=0.5)
        for _ in range(20):
            assert 1.0 <= policy.delay_for(0) <= 1.5
