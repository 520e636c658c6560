"""Tests for the price history client."""

from datetime import datetime, timezone

import pandas as pd
import pytest

from multibagger.screener.providers.yahoo import YahooPriceClient, build_price_snapshot
from multibagger.screener.rate_limit import AsyncRateLimiter

NOW = datetime(2025, 6, 30, 21, 0, tzinfo=timezone.utc)


def _history(
    start: str = "2024-07-01",
    periods: int = 365,
    tz: str | None = "America/New_York",
) -> pd.DataFrame:
    index = pd.date_range(start, periods=periods, freq="D", tz=tz)
    closes = [100.0 + day for day in range(periods)]
    return pd.DataFrame(
        {
            "Open": closes,
            "High": [close + 2 for close in closes],
            "Low": [close - 3 for close in closes],
            "Close": closes,
            "Volume": [1000] * periods,
        },
        index=index,
    )


class TestBuildPriceSnapshot:
    def test_derives_range_and_six_month_close(self):
        snapshot = build_price_snapshot(_history(), NOW)
        assert snapshot["price"] == 464.0
        assert snapshot["high_52w"] == 466.0
        assert snapshot["low_52w"] == 97.0
        # 2025-01-01 21:00 UTC cutoff; bars are stamped at New York midnight.
        assert snapshot["price_6_months_ago"] == 284.0

    def test_short_history_falls_back_to_oldest_close(self):
        history = _history(start="2025-05-01", periods=30, tz=None)
        snapshot = build_price_snapshot(history, NOW)
        assert snapshot["price_6_months_ago"] == 100.0

    def test_empty_frame(self):
        assert build_price_snapshot(pd.DataFrame(), NOW) == {}


class TestYahooPriceClient:
    @pytest.mark.asyncio
    async def test_fetch_uses_downloader(self):
        calls = []

        def downloader(symbol, period):
            calls.append((symbol, period))
            return _history()

        client = YahooPriceClient(
            AsyncRateLimiter("yahoo"), clock=lambda: NOW, downloader=downloader
        )
        result = await client.fetch("brk.b")
        assert result.ok
        assert calls == [("BRK-B", "1y")]
        assert set(result.values) == {"price", "high_52w", "low_52w", "price_6_months_ago"}

    @pytest.mark.asyncio
    async def test_download_failure_is_error_result(self):
        def downloader(symbol, period):
            raise RuntimeError("rate limited")

        client = YahooPriceClient(
            AsyncRateLimiter("yahoo"), clock=lambda: NOW, downloader=downloader
        )
        result = await client.fetch("GEM")
        assert result.status == "error"
        assert "rate limited" in result.error

    @pytest.mark.asyncio
    async def test_no_rows_is_empty_result(self):
        client = YahooPriceClient(
            AsyncRateLimiter("yahoo"),
            clock=lambda: NOW,
            downloader=lambda symbol, period: pd.DataFrame(),
        )
        assert (await client.fetch("GEM")).status == "empty"
