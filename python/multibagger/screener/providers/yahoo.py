"""Price history provider backed by yfinance."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Any, Optional

import pandas as pd
import yfinance as yf
from loguru import logger

from ..constants import PRICE_HISTORY_PERIOD, PRICE_LOOKBACK_DAYS
from ..rate_limit import AsyncRateLimiter
from ..schemas import CanonicalFinancialRecord, ProviderResult, utc_now


def _download_history(symbol: str, period: str) -> pd.DataFrame:
    return yf.Ticker(symbol).history(period=period, interval="1d", auto_adjust=True)


def _utc_index(df: pd.DataFrame) -> pd.DataFrame:
    index = pd.DatetimeIndex(df.index)
    if index.tz is None:
        index = index.tz_localize("UTC")
    else:
        index = index.tz_convert("UTC")
    df = df.copy()
    df.index = index
    return df.sort_index()


def build_price_snapshot(df: pd.DataFrame, now: datetime) -> dict[str, Optional[float]]:
    """Derive price, 52-week range and the ~6-month-ago close from daily bars.

    ``price_6_months_ago`` is the close of the latest bar at or before
    ``now - 180 days``; when the history is shorter, the oldest close.
    """
    if df is None or df.empty or "Close" not in df.columns:
        return {}
    df = _utc_index(df)
    closes = df["Close"].dropna()
    if closes.empty:
        return {}
    highs = df["High"].dropna() if "High" in df.columns else closes
    lows = df["Low"].dropna() if "Low" in df.columns else closes

    cutoff = pd.Timestamp(now - timedelta(days=PRICE_LOOKBACK_DAYS))
    if cutoff.tzinfo is None:
        cutoff = cutoff.tz_localize("UTC")
    older = closes[closes.index <= cutoff]
    price_6m = older.iloc[-1] if not older.empty else closes.iloc[0]

    return {
        "price": float(closes.iloc[-1]),
        "high_52w": float(highs.max()) if not highs.empty else None,
        "low_52w": float(lows.min()) if not lows.empty else None,
        "price_6_months_ago": float(price_6m),
    }


class YahooPriceClient:
    """One year of daily bars per ticker, fetched in a worker thread."""

    source = "yahoo"

    def __init__(
        self,
        limiter: AsyncRateLimiter,
        period: str = PRICE_HISTORY_PERIOD,
        clock=utc_now,
        downloader=_download_history,
    ) -> None:
        self._limiter = limiter
        self._period = period
        self._clock = clock
        self._downloader = downloader

    async def price_snapshot(self, ticker: str) -> dict[str, Any]:
        """Return derived price values; raises on download failure."""
        symbol = ticker.upper().replace("/", "-").replace(".", "-")
        async with self._limiter.slot():
            df = await asyncio.to_thread(self._downloader, symbol, self._period)
        return build_price_snapshot(df, self._clock())

    async def fetch(
        self, ticker: str, record: Optional[CanonicalFinancialRecord] = None
    ) -> ProviderResult:
        try:
            values = await self.price_snapshot(ticker)
        except Exception as exc:
            logger.warning(
                "Failed to fetch price history for {ticker}: {error}",
                ticker=ticker,
                error=exc,
            )
            return ProviderResult.failure(self.source, exc)
        if not values:
            logger.info("No price history returned for {ticker}", ticker=ticker)
            return ProviderResult.empty(self.source, "no price history")
        logger.info(
            "Yahoo: {ticker} high={high} low={low} price_6m={price_6m}",
            ticker=ticker,
            high=values.get("high_52w"),
            low=values.get("low_52w"),
            price_6m=values.get("price_6_months_ago"),
        )
        return ProviderResult.success(self.source, values)
