"""Tests for the per-provider admission gate."""

import asyncio

import pytest

from multibagger.screener.config import RateLimitPolicy
from multibagger.screener.errors import BudgetExhaustedError, ProviderUnavailableError
from multibagger.screener.rate_limit import BUDGET_WINDOW_S, AsyncRateLimiter


def _limiter(monotonic, **kwargs) -> AsyncRateLimiter:
    return AsyncRateLimiter("test", clock=monotonic, sleep=monotonic.sleep, **kwargs)


class TestPacing:
    @pytest.mark.asyncio
    async def test_first_call_does_not_wait(self, monotonic):
        limiter = _limiter(monotonic, min_interval_s=12.0)
        async with limiter.slot():
            pass
        assert monotonic.sleeps == []

    @pytest.mark.asyncio
    async def test_calls_are_spaced_by_min_interval(self, monotonic):
        limiter = _limiter(monotonic, min_interval_s=0.5)
        for _ in range(3):
            async with limiter.slot():
                pass
        assert monotonic.sleeps == [pytest.approx(0.5), pytest.approx(0.5)]

    @pytest.mark.asyncio
    async def test_elapsed_time_counts_toward_interval(self, monotonic):
        limiter = _limiter(monotonic, min_interval_s=1.0)
        async with limiter.slot():
            pass
        monotonic.now += 0.75
        async with limiter.slot():
            pass
        assert monotonic.sleeps == [pytest.approx(0.25)]

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        limiter = AsyncRateLimiter("test", max_concurrency=2)
        in_flight = 0
        peak = 0

        async def call():
            nonlocal in_flight, peak
            async with limiter.slot():
                in_flight += 1
                peak = max(peak, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1

        await asyncio.gather(*(call() for _ in range(6)))
        assert peak == 2


class TestDailyBudget:
    @pytest.mark.asyncio
    async def test_exhausted_budget_fails_fast(self, monotonic):
        limiter = _limiter(monotonic, daily_budget=2)
        for _ in range(2):
            async with limiter.slot():
                pass
        assert limiter.remaining() == 0
        with pytest.raises(BudgetExhaustedError) as excinfo:
            async with limiter.slot():
                pass
        assert isinstance(excinfo.value, ProviderUnavailableError)
        assert excinfo.value.provider == "test"

    @pytest.mark.asyncio
    async def test_budget_resets_after_window(self, monotonic):
        limiter = _limiter(monotonic, daily_budget=1)
        async with limiter.slot():
            pass
        assert limiter.remaining() == 0
        monotonic.now += BUDGET_WINDOW_S
        assert limiter.remaining() == 1

    def test_unbounded_limiter_has_no_remaining(self):
        assert AsyncRateLimiter("free").remaining() is None

    def test_from_policy(self):
        policy = RateLimitPolicy(max_concurrency=1, min_interval_s=12.0, daily_budget=25)
        limiter = AsyncRateLimiter.from_policy("alphavantage", policy)
        assert limiter.daily_budget == 25
        assert limiter.remaining() == 25
