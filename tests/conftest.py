"""Test configuration helpers and fixtures."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "python"

for candidate in (SRC, ROOT):
    candidate_str = str(candidate)
    if candidate.exists() and candidate_str not in sys.path:
        sys.path.insert(0, candidate_str)

from multibagger.screener.cache import RecordCache  # noqa: E402
from multibagger.screener.schemas import CanonicalFinancialRecord  # noqa: E402
from multibagger.screener.storage import RecordStore  # noqa: E402

T0 = datetime(2025, 6, 2, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Mutable wall clock for freshness tests."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class FakeMonotonic:
    """Monotonic clock plus a sleep that advances it instead of waiting."""

    def __init__(self) -> None:
        self.now = 1000.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def store(tmp_path: Path) -> RecordStore:
    return RecordStore(tmp_path / "data")


@pytest.fixture
def cache(store: RecordStore, clock: FakeClock) -> RecordCache:
    return RecordCache(store, clock=clock)


@pytest.fixture
def strong_buy_record() -> CanonicalFinancialRecord:
    return CanonicalFinancialRecord(
        ticker="GEM",
        company_name="Gem Industries",
        price=25.0,
        market_cap=280_000_000.0,
        high_52w=45.0,
        low_52w=20.0,
        free_cash_flow=42_000_000.0,
        book_value=350_000_000.0,
        ebitda_growth=25.0,
        asset_growth=12.0,
        ebitda_margin=22.0,
        roa=14.0,
        price_6_months_ago=32.0,
        pays_dividend=True,
    )
