"""SEC EDGAR XBRL company facts provider."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

import httpx
from loguru import logger

from ..constants import EDGAR_INITIAL_BACKOFF_S, EDGAR_MAX_RETRIES
from ..errors import IdentityNotFoundError, ProviderUnavailableError
from ..growth import YearValue, fiscal_year, series_growth_rate
from ..rate_limit import AsyncRateLimiter
from ..schemas import (
    CanonicalFinancialRecord,
    FiscalYearFinancials,
    ProviderResult,
    utc_now,
)
from ..storage import RecordStore
from .base import get_with_retry, to_float

if TYPE_CHECKING:
    from ..identity import CikResolver

COMPANY_FACTS_URL = "https://data.sec.gov/api/xbrl/companyfacts/CIK{cik}.json"
ANNUAL_FORMS = frozenset({"10-K", "10-K/A"})
GAAP_NAMESPACE = "us-gaap"

OPERATING_INCOME_CONCEPTS = (
    "OperatingIncomeLoss",
    "IncomeLossFromContinuingOperationsBeforeIncomeTaxesExtraordinaryItemsNoncontrollingInterest",
)
DEPRECIATION_CONCEPTS = (
    "DepreciationDepletionAndAmortization",
    "DepreciationAndAmortization",
)
ASSETS_CONCEPTS = ("Assets",)
OPERATING_CASH_FLOW_CONCEPTS = (
    "NetCashProvidedByUsedInOperatingActivities",
    "NetCashProvidedByUsedInOperatingActivitiesContinuingOperations",
)
CAPEX_CONCEPTS = (
    "PaymentsToAcquirePropertyPlantAndEquipment",
    "PaymentsToAcquireProductiveAssets",
)
EQUITY_CONCEPTS = (
    "StockholdersEquity",
    "StockholdersEquityIncludingPortionAttributableToNoncontrollingInterest",
)


def extract_annual_values(facts: Any, concept: str) -> list[YearValue]:
    """Annual values of one us-gaap concept, newest fiscal year first.

    Only 10-K and 10-K/A entries count. The fiscal year comes from the
    period end date and the first entry seen for a year wins.
    """
    concept_data = (
        ((facts or {}).get("facts") or {}).get(GAAP_NAMESPACE, {}).get(concept)
    )
    if not isinstance(concept_data, dict):
        return []
    units = concept_data.get("units") or {}
    entries = units.get("USD") or units.get("pure") or []
    by_year: dict[int, YearValue] = {}
    for entry in entries:
        if not isinstance(entry, dict) or entry.get("form") not in ANNUAL_FORMS:
            continue
        year = fiscal_year(entry.get("end"))
        value = to_float(entry.get("val"))
        if year is None or value is None or year in by_year:
            continue
        by_year[year] = YearValue(year=year, value=value)
    return sorted(by_year.values(), key=lambda point: point.year, reverse=True)


def _first_available(facts: Any, concepts: tuple[str, ...]) -> list[YearValue]:
    for concept in concepts:
        values = extract_annual_values(facts, concept)
        if values:
            return values
    return []


def _by_year(points: list[YearValue]) -> dict[int, float]:
    return {point.year: point.value for point in points}


def extract_fiscal_years(ticker: str, facts: Any) -> list[FiscalYearFinancials]:
    """Combine the concept series into per-fiscal-year rows, newest first."""
    operating_income = _by_year(_first_available(facts, OPERATING_INCOME_CONCEPTS))
    depreciation = _by_year(_first_available(facts, DEPRECIATION_CONCEPTS))
    assets = _by_year(_first_available(facts, ASSETS_CONCEPTS))
    operating_cash_flow = _by_year(
        _first_available(facts, OPERATING_CASH_FLOW_CONCEPTS)
    )
    capex = _by_year(_first_available(facts, CAPEX_CONCEPTS))
    equity = _by_year(_first_available(facts, EQUITY_CONCEPTS))

    years = (
        set(operating_income) | set(assets) | set(operating_cash_flow) | set(equity)
    )
    rows: list[FiscalYearFinancials] = []
    for year in sorted(years, reverse=True):
        oi = operating_income.get(year)
        da = depreciation.get(year)
        ebitda = oi + da if oi is not None and da is not None else oi
        ocf = operating_cash_flow.get(year)
        cx = capex.get(year)
        fcf = ocf - (cx or 0.0) if ocf is not None else None
        rows.append(
            FiscalYearFinancials(
                ticker=ticker.upper(),
                fiscal_year=year,
                ebitda=ebitda,
                total_assets=assets.get(year),
                free_cash_flow=fcf,
                book_value=equity.get(year),
                operating_income=oi,
                depreciation=da,
                operating_cash_flow=ocf,
                capex=cx,
                stockholders_equity=equity.get(year),
            )
        )
    return rows


def _series(rows: list[FiscalYearFinancials], field: str) -> list[YearValue]:
    return [
        YearValue(year=row.fiscal_year, value=getattr(row, field))
        for row in rows
        if getattr(row, field) is not None
    ]


def _latest(points: list[YearValue]) -> Optional[float]:
    if not points:
        return None
    return max(points, key=lambda point: point.year).value


def summarize_financials(rows: list[FiscalYearFinancials]) -> dict[str, Optional[float]]:
    """Growth rates and latest values for the canonical record."""
    ebitda = _series(rows, "ebitda")
    assets = _series(rows, "total_assets")
    return {
        "ebitda_growth": series_growth_rate(ebitda),
        "asset_growth": series_growth_rate(assets),
        "ebitda": _latest(ebitda),
        "total_assets": _latest(assets),
        "free_cash_flow": _latest(_series(rows, "free_cash_flow")),
        "book_value": _latest(_series(rows, "book_value")),
    }


class EdgarClient:
    """Annual filings data with a permanent per-fiscal-year cache.

    Cached rows are reused until the newest cached fiscal year falls behind
    the prior calendar year, at which point the company facts are fetched
    again. A failed refresh falls back to whatever rows are cached.
    """

    source = "edgar"

    def __init__(
        self,
        http: httpx.AsyncClient,
        limiter: AsyncRateLimiter,
        store: RecordStore,
        resolver: "CikResolver",
        user_agent: str,
        max_retries: int = EDGAR_MAX_RETRIES,
        initial_backoff_s: float = EDGAR_INITIAL_BACKOFF_S,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock=utc_now,
    ) -> None:
        self._http = http
        self._limiter = limiter
        self._store = store
        self._resolver = resolver
        self._headers = {"User-Agent": user_agent, "Accept": "application/json"}
        self._max_retries = max_retries
        self._initial_backoff_s = initial_backoff_s
        self._sleep = sleep
        self._clock = clock

    def _needs_refresh(self, rows: list[FiscalYearFinancials]) -> bool:
        if not rows:
            return True
        return rows[0].fiscal_year < self._clock().year - 1

    async def _download_facts(self, cik: str) -> Optional[dict]:
        response = await get_with_retry(
            self._http,
            self._limiter,
            self.source,
            COMPANY_FACTS_URL.format(cik=cik),
            headers=self._headers,
            max_retries=self._max_retries,
            initial_backoff_s=self._initial_backoff_s,
            sleep=self._sleep,
        )
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise ProviderUnavailableError(
                self.source, f"HTTP {response.status_code} from companyfacts"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderUnavailableError(
                self.source, "companyfacts is not JSON"
            ) from exc
        return payload if isinstance(payload, dict) else None

    async def fiscal_years(self, ticker: str) -> list[FiscalYearFinancials]:
        """Return filings rows for ``ticker``, newest first.

        Raises ``IdentityNotFoundError`` when the ticker has no CIK.
        """
        symbol = ticker.upper()
        cached = self._store.read_fiscal_years(symbol)
        if not self._needs_refresh(cached):
            logger.debug("EDGAR cache hit for {ticker}", ticker=symbol)
            return cached

        mapping = await self._resolver.resolve(symbol)
        if mapping is None:
            raise IdentityNotFoundError(symbol)

        try:
            facts = await self._download_facts(mapping.cik)
        except ProviderUnavailableError:
            if cached:
                logger.warning(
                    "EDGAR refresh failed for {ticker}, using cached filings",
                    ticker=symbol,
                )
                return cached
            raise
        if facts is None:
            return cached

        rows = extract_fiscal_years(symbol, facts)
        if rows:
            self._store.write_fiscal_years(symbol, rows)
        entity_name = facts.get("entityName")
        if entity_name and entity_name != mapping.company_name:
            self._resolver.remember(
                mapping.model_copy(update={"company_name": entity_name})
            )
        return self._store.read_fiscal_years(symbol) if rows else cached

    async def fetch(
        self, ticker: str, record: Optional[CanonicalFinancialRecord] = None
    ) -> ProviderResult:
        try:
            rows = await self.fiscal_years(ticker)
        except IdentityNotFoundError as exc:
            logger.info("EDGAR: {error}", error=exc)
            return ProviderResult.empty(self.source, str(exc))
        except ProviderUnavailableError as exc:
            logger.warning(
                "EDGAR fetch failed for {ticker}: {error}", ticker=ticker, error=exc
            )
            return ProviderResult.failure(self.source, exc)
        if not rows:
            return ProviderResult.empty(self.source, "no annual filings data")
        values = summarize_financials(rows)
        logger.info(
            "EDGAR: {ticker} ebitda_growth={ebitda_growth} asset_growth={asset_growth}",
            ticker=ticker.upper(),
            ebitda_growth=values["ebitda_growth"],
            asset_growth=values["asset_growth"],
        )
        return ProviderResult.success(self.source, values)
