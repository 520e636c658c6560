"""Acquisition pipeline: cache, primary provider, then the fallback chain."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

from loguru import logger

from .cache import RecordCache
from .errors import PrimaryProviderError
from .providers.base import ProviderClient
from .schemas import CanonicalFinancialRecord, DataSource

Trigger = Callable[[CanonicalFinancialRecord], bool]
Fill = Callable[[CanonicalFinancialRecord], Awaitable[CanonicalFinancialRecord]]


@dataclass(frozen=True)
class FillStep:
    """One fallback provider and the condition under which it runs."""

    provider: ProviderClient
    trigger: Trigger

    @property
    def name(self) -> str:
        return self.provider.source

    async def __call__(self, record: CanonicalFinancialRecord) -> CanonicalFinancialRecord:
        if not self.trigger(record):
            return record
        try:
            result = await self.provider.fetch(record.ticker, record)
        except Exception as exc:
            # Fallback providers never abort the screening.
            logger.warning(
                "{provider} raised for {ticker}: {error}",
                provider=self.name,
                ticker=record.ticker,
                error=exc,
            )
            return record
        if not result.ok:
            logger.info(
                "{provider} contributed nothing for {ticker} ({status}: {error})",
                provider=self.name,
                ticker=record.ticker,
                status=result.status,
                error=result.error,
            )
            return record
        return record.fill(result.values)


def needs_growth(record: CanonicalFinancialRecord) -> bool:
    return record.missing_growth()


def needs_price_history(record: CanonicalFinancialRecord) -> bool:
    return (
        record.price_6_months_ago is None
        or record.high_52w is None
        or record.low_52w is None
    )


def needs_budgeted_growth(is_available: Callable[[], bool]) -> Trigger:
    def trigger(record: CanonicalFinancialRecord) -> bool:
        return record.missing_growth() and is_available()

    return trigger


def default_chain(
    gemini: Optional[ProviderClient] = None,
    yahoo: Optional[ProviderClient] = None,
    edgar: Optional[ProviderClient] = None,
    alphavantage: Optional[ProviderClient] = None,
) -> list[FillStep]:
    """Fallback order: AI search, price history, filings, then Alpha Vantage."""
    steps: list[FillStep] = []
    if gemini is not None:
        steps.append(FillStep(gemini, needs_growth))
    if yahoo is not None:
        steps.append(FillStep(yahoo, needs_price_history))
    if edgar is not None:
        steps.append(FillStep(edgar, needs_growth))
    if alphavantage is not None:
        steps.append(
            FillStep(
                alphavantage,
                needs_budgeted_growth(lambda: getattr(alphavantage, "is_available", True)),
            )
        )
    return steps


class AcquisitionOrchestrator:
    """Assemble one canonical record per ticker.

    The primary provider is mandatory; its failure propagates as
    ``PrimaryProviderError`` and nothing is cached. Each fallback step only
    fills fields that are still null, so earlier providers always win.
    """

    def __init__(
        self,
        cache: RecordCache,
        primary: ProviderClient,
        steps: Sequence[Fill],
    ) -> None:
        self._cache = cache
        self._primary = primary
        self._steps = list(steps)

    async def acquire(self, ticker: str) -> tuple[CanonicalFinancialRecord, DataSource]:
        symbol = ticker.strip().upper()
        cached = self._cache.get(symbol)
        if cached is not None:
            logger.info("Cache hit for {ticker}", ticker=symbol)
            return cached, "cache"

        result = await self._primary.fetch(symbol)
        if not result.ok:
            raise PrimaryProviderError(
                symbol,
                result.error or "no data returned",
                not_found=result.status == "empty",
            )
        record = CanonicalFinancialRecord(ticker=symbol).fill(result.values)

        for step in self._steps:
            record = await step(record)

        record = record.model_copy(update={"fetched_at": self._cache.now()})
        record = self._cache.put(record)
        logger.info(
            "Acquired {ticker} "
            "(ebitda_growth={ebitda_growth}, asset_growth={asset_growth})",
            ticker=symbol,
            ebitda_growth=record.ebitda_growth,
            asset_growth=record.asset_growth,
        )
        return record, "api"
