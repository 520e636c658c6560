"""Per-provider admission gate for outbound calls."""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

from loguru import logger

from .config import RateLimitPolicy
from .errors import BudgetExhaustedError

BUDGET_WINDOW_S: float = 24 * 60 * 60


class AsyncRateLimiter:
    """Bound concurrency, space out call starts and enforce a daily budget.

    Every outbound request to a provider runs inside ``slot()``. Admission
    blocks until both the concurrency limit and the minimum interval allow
    the call. When a daily budget is configured and spent, admission raises
    ``BudgetExhaustedError`` straight away instead of blocking.
    """

    def __init__(
        self,
        name: str,
        max_concurrency: int = 1,
        min_interval_s: float = 0.0,
        daily_budget: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.name = name
        self._min_interval_s = min_interval_s
        self._daily_budget = daily_budget
        self._clock = clock
        self._sleep = sleep
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._lock = asyncio.Lock()
        self._last_call: Optional[float] = None
        self._window_started: Optional[float] = None
        self._calls_in_window = 0

    @classmethod
    def from_policy(cls, name: str, policy: RateLimitPolicy) -> "AsyncRateLimiter":
        return cls(
            name,
            max_concurrency=policy.max_concurrency,
            min_interval_s=policy.min_interval_s,
            daily_budget=policy.daily_budget,
        )

    @property
    def daily_budget(self) -> Optional[int]:
        return self._daily_budget

    def remaining(self) -> Optional[int]:
        """Calls left in the current budget window, or ``None`` if unbounded."""
        if self._daily_budget is None:
            return None
        self._roll_window()
        return max(0, self._daily_budget - self._calls_in_window)

    def _roll_window(self) -> None:
        now = self._clock()
        if self._window_started is None or now - self._window_started >= BUDGET_WINDOW_S:
            self._window_started = now
            self._calls_in_window = 0

    def _consume_budget(self) -> None:
        if self._daily_budget is None:
            return
        self._roll_window()
        if self._calls_in_window >= self._daily_budget:
            raise BudgetExhaustedError(self.name, self._daily_budget)
        self._calls_in_window += 1
        logger.debug(
            "{provider}: {used}/{budget} daily calls used",
            provider=self.name,
            used=self._calls_in_window,
            budget=self._daily_budget,
        )

    async def wait(self) -> None:
        if self._min_interval_s <= 0:
            return
        async with self._lock:
            if self._last_call is not None:
                wait_for = self._min_interval_s - (self._clock() - self._last_call)
                if wait_for > 0:
                    await self._sleep(wait_for)
            self._last_call = self._clock()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        self._consume_budget()
        async with self._semaphore:
            await self.wait()
            yield
