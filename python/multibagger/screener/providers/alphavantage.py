"""Last-resort growth metrics from Alpha Vantage annual reports."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Any, Optional

import httpx
from loguru import logger

from ..constants import ALPHAVANTAGE_BUDGET_MARGIN, FRESHNESS_HOURS
from ..errors import ProviderUnavailableError
from ..growth import YearValue, fiscal_year, series_growth_rate
from ..rate_limit import AsyncRateLimiter
from ..schemas import CanonicalFinancialRecord, ProviderResult, utc_now
from .base import get_json, to_float

ALPHAVANTAGE_URL = "https://www.alphavantage.co/query"
# INCOME_STATEMENT and BALANCE_SHEET.
CALLS_PER_FETCH = 2


def annual_series(reports: list[dict], key: str) -> list[YearValue]:
    points: dict[int, YearValue] = {}
    for report in reports:
        year = fiscal_year(report.get("fiscalDateEnding"))
        value = to_float(report.get(key))
        if year is None or value is None or year in points:
            continue
        points[year] = YearValue(year=year, value=value)
    return sorted(points.values(), key=lambda point: point.year, reverse=True)


class AlphaVantageClient:
    """Income statement and balance sheet growth, gated by a daily budget.

    Results are kept in memory for the freshness window so repeated
    screenings of a ticker do not spend the budget again.
    Fetches run one at a time, so the budget check and both calls it admits
    cannot interleave with another ticker and the margin is never spent.
    """

    source = "alphavantage"

    def __init__(
        self,
        http: httpx.AsyncClient,
        limiter: AsyncRateLimiter,
        api_key: Optional[str],
        budget_margin: int = ALPHAVANTAGE_BUDGET_MARGIN,
        cache_ttl: timedelta = timedelta(hours=FRESHNESS_HOURS),
        clock=utc_now,
        base_url: str = ALPHAVANTAGE_URL,
    ) -> None:
        self._http = http
        self._limiter = limiter
        self._api_key = api_key or ""
        self._budget_margin = budget_margin
        self._cache_ttl = cache_ttl
        self._clock = clock
        self._base_url = base_url
        self._cache: dict[str, tuple[datetime, ProviderResult]] = {}
        self._fetch_lock = asyncio.Lock()

    @property
    def is_available(self) -> bool:
        if not self._api_key:
            return False
        remaining = self._limiter.remaining()
        return remaining is None or remaining - CALLS_PER_FETCH >= self._budget_margin

    async def _annual_reports(self, function: str, symbol: str) -> list[dict]:
        data = await get_json(
            self._http,
            self._limiter,
            self.source,
            self._base_url,
            params={"function": function, "symbol": symbol, "apikey": self._api_key},
        )
        if not isinstance(data, dict):
            raise ProviderUnavailableError(self.source, f"unexpected {function} payload")
        notice = data.get("Note") or data.get("Information")
        if notice:
            raise ProviderUnavailableError(self.source, f"API limit reached: {notice}")
        reports = data.get("annualReports") or []
        return [report for report in reports if isinstance(report, dict)]

    def _cached(self, symbol: str) -> Optional[ProviderResult]:
        entry = self._cache.get(symbol)
        if entry is None:
            return None
        stored_at, result = entry
        if self._clock() - stored_at >= self._cache_ttl:
            del self._cache[symbol]
            return None
        return result

    async def fetch(
        self, ticker: str, record: Optional[CanonicalFinancialRecord] = None
    ) -> ProviderResult:
        symbol = ticker.upper()
        async with self._fetch_lock:
            cached = self._cached(symbol)
            if cached is not None:
                logger.debug("Alpha Vantage cache hit for {ticker}", ticker=symbol)
                return cached
            if not self.is_available:
                return ProviderResult.empty(self.source, "no API key or budget")
            return await self._fetch_growth(symbol)

    async def _fetch_growth(self, symbol: str) -> ProviderResult:
        try:
            income = await self._annual_reports("INCOME_STATEMENT", symbol)
            balance = await self._annual_reports("BALANCE_SHEET", symbol)
        except ProviderUnavailableError as exc:
            logger.warning(
                "Alpha Vantage fetch failed for {ticker}: {error}",
                ticker=symbol,
                error=exc,
            )
            return ProviderResult.failure(self.source, exc)

        values: dict[str, Any] = {
            "ebitda_growth": series_growth_rate(annual_series(income, "ebitda")),
            "asset_growth": series_growth_rate(annual_series(balance, "totalAssets")),
        }
        result = ProviderResult.success(self.source, values)
        self._cache[symbol] = (self._clock(), result)
        logger.info(
            "Alpha Vantage: {ticker} ebitda_growth={ebitda_growth} "
            "asset_growth={asset_growth}",
            ticker=symbol,
            **values,
        )
        return result
