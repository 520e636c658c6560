"""Primary fundamentals provider (Financial Modeling Prep)."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx
from loguru import logger

from ..constants import GROWTH_YEARS, MIN_GROWTH_PERIODS, STATEMENT_LIMIT
from ..errors import PrimaryProviderError, ProviderUnavailableError
from ..growth import compound_growth_rate, fiscal_year
from ..rate_limit import AsyncRateLimiter
from ..schemas import CanonicalFinancialRecord, ProviderResult
from .base import fraction_to_percent, get_json, to_float

FMP_BASE_URL: str = "https://financialmodelingprep.com/api/v3"


def _first(rows: list[dict]) -> dict:
    return rows[0] if rows else {}


def _statement_year(row: dict) -> Optional[int]:
    year = row.get("calendarYear")
    if year is not None:
        try:
            return int(year)
        except (TypeError, ValueError):
            pass
    return fiscal_year(row.get("date"))


def statement_growth(rows: list[dict], key: str) -> Optional[float]:
    """3-year CAGR of ``key`` from statements sorted newest first.

    Needs at least four annual periods; compares the newest period with the
    one three rows back.
    """
    if len(rows) < MIN_GROWTH_PERIODS:
        return None
    current, past = rows[0], rows[GROWTH_YEARS]
    return compound_growth_rate(
        to_float(past.get(key)),
        _statement_year(past),
        to_float(current.get(key)),
        _statement_year(current),
    )


def build_primary_values(
    symbol: str,
    profile: dict,
    quote: dict,
    metrics: list[dict],
    ratios: list[dict],
    income: list[dict],
    balance: list[dict],
    cash_flow: list[dict],
) -> dict[str, Any]:
    """Map FMP payloads onto canonical record fields."""
    latest_metrics = _first(metrics)
    latest_ratios = _first(ratios)
    latest_income = _first(income)
    latest_balance = _first(balance)
    latest_cash_flow = _first(cash_flow)

    dividend_yield = fraction_to_percent(latest_metrics.get("dividendYield"))
    if dividend_yield is not None:
        pays_dividend: Optional[bool] = dividend_yield > 0
    else:
        last_dividend = to_float(profile.get("lastDiv"))
        pays_dividend = last_dividend > 0 if last_dividend is not None else None

    ebitda_margin = fraction_to_percent(latest_ratios.get("ebitdaMargin"))
    if ebitda_margin is None:
        ebitda_margin = fraction_to_percent(latest_income.get("ebitdaratio"))
    roa = fraction_to_percent(latest_ratios.get("returnOnAssets"))
    if roa is None:
        roa = fraction_to_percent(latest_metrics.get("returnOnAssets"))

    return {
        "company_name": profile.get("companyName") or symbol,
        "sector": profile.get("sector") or None,
        "industry": profile.get("industry") or None,
        "market_cap": to_float(profile.get("mktCap")) or to_float(quote.get("marketCap")),
        "price": to_float(quote.get("price")),
        "high_52w": to_float(quote.get("yearHigh")),
        "low_52w": to_float(quote.get("yearLow")),
        "pe_ratio": to_float(quote.get("pe")) or to_float(latest_metrics.get("peRatio")),
        "pb_ratio": to_float(latest_metrics.get("pbRatio")),
        "dividend_yield": dividend_yield,
        "pays_dividend": pays_dividend,
        "ebitda_margin": ebitda_margin,
        "roa": roa,
        "ebitda": to_float(latest_income.get("ebitda")),
        "free_cash_flow": to_float(latest_cash_flow.get("freeCashFlow")),
        "book_value": to_float(latest_balance.get("totalStockholdersEquity")),
        "total_assets": to_float(latest_balance.get("totalAssets")),
        "ebitda_growth": statement_growth(income, "ebitda"),
        "asset_growth": statement_growth(balance, "totalAssets"),
    }


class FmpClient:
    """Profile, quote, ratios and up to five annual statements per ticker.

    Profile and quote are mandatory: when either is missing the ticker
    cannot be screened and ``PrimaryProviderError`` is raised. The remaining
    endpoints are best-effort and simply leave their fields null.
    """

    source = "fmp"

    def __init__(
        self,
        http: httpx.AsyncClient,
        limiter: AsyncRateLimiter,
        api_key: Optional[str],
        base_url: str = FMP_BASE_URL,
    ) -> None:
        self._http = http
        self._limiter = limiter
        self._api_key = api_key or ""
        self._base_url = base_url.rstrip("/")
        if not self._api_key:
            logger.warning("FMP_API_KEY not set; primary provider will reject requests")

    async def _get(self, path: str, **params: Any) -> Any:
        params["apikey"] = self._api_key
        return await get_json(
            self._http,
            self._limiter,
            self.source,
            f"{self._base_url}/{path}",
            params=params,
        )

    async def _required_row(self, symbol: str, path: str) -> dict:
        try:
            data = await self._get(f"{path}/{symbol}")
        except ProviderUnavailableError as exc:
            raise PrimaryProviderError(symbol, str(exc)) from exc
        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            raise PrimaryProviderError(
                symbol, f"no {path} data found", not_found=True
            )
        return data[0]

    async def _optional_rows(self, symbol: str, path: str) -> list[dict]:
        try:
            data = await self._get(
                f"{path}/{symbol}", period="annual", limit=STATEMENT_LIMIT
            )
        except ProviderUnavailableError as exc:
            logger.warning(
                "FMP {path} unavailable for {ticker}: {error}",
                path=path,
                ticker=symbol,
                error=exc,
            )
            return []
        if not isinstance(data, list):
            return []
        return [row for row in data if isinstance(row, dict)]

    async def fetch(
        self, ticker: str, record: Optional[CanonicalFinancialRecord] = None
    ) -> ProviderResult:
        symbol = ticker.upper()
        if not self._api_key:
            raise PrimaryProviderError(symbol, "FMP_API_KEY is not configured")
        profile, quote = await asyncio.gather(
            self._required_row(symbol, "profile"),
            self._required_row(symbol, "quote"),
        )
        metrics, ratios, income, balance, cash_flow = await asyncio.gather(
            self._optional_rows(symbol, "key-metrics"),
            self._optional_rows(symbol, "ratios"),
            self._optional_rows(symbol, "income-statement"),
            self._optional_rows(symbol, "balance-sheet-statement"),
            self._optional_rows(symbol, "cash-flow-statement"),
        )
        values = build_primary_values(
            symbol, profile, quote, metrics, ratios, income, balance, cash_flow
        )
        logger.info(
            "FMP: {ticker} price={price} market_cap={market_cap} "
            "ebitda_growth={ebitda_growth} asset_growth={asset_growth}",
            ticker=symbol,
            price=values["price"],
            market_cap=values["market_cap"],
            ebitda_growth=values["ebitda_growth"],
            asset_growth=values["asset_growth"],
        )
        return ProviderResult.success(self.source, values)
