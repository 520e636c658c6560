"""Service layer for the multibagger screener API."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Optional, Sequence

from loguru import logger

from multibagger.screener.cache import RecordCache
from multibagger.screener.constants import (
    DEFAULT_BULK_LIMIT,
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_TOP_LIMIT,
    DEFAULT_TOP_MIN_PERCENTAGE,
    MAX_BULK_LIMIT,
    PRESCREEN_MIN_SCORE,
)
from multibagger.screener.errors import PrimaryProviderError, ScreeningError
from multibagger.screener.orchestrator import AcquisitionOrchestrator
from multibagger.screener.prescreen import PreScreener
from multibagger.screener.schemas import (
    BulkScreenError,
    BulkScreenResult,
    CacheStats,
    ScreeningRecord,
    TickerScreenResult,
)
from multibagger.screener.scoring import score_record
from multibagger.screener.storage import RecordStore
from multibagger.screener.universe import UniverseLoader

US_UNIVERSE_LABEL = "US listed equities"
CUSTOM_UNIVERSE_LABEL = "custom"


class ScreenerService:
    """Screening orchestration and history queries."""

    def __init__(
        self,
        orchestrator: AcquisitionOrchestrator,
        cache: RecordCache,
        store: RecordStore,
        prescreener: Optional[PreScreener] = None,
        universe: Optional[UniverseLoader] = None,
        exchange_allowlist: Sequence[str] = ("NASDAQ", "NYSE"),
    ) -> None:
        self._orchestrator = orchestrator
        self._cache = cache
        self._store = store
        self._prescreener = prescreener
        self._universe = universe
        self._exchange_allowlist = list(exchange_allowlist)

    async def screen_ticker(self, ticker: str) -> TickerScreenResult:
        symbol = ticker.strip().upper()
        if not symbol:
            raise ScreeningError(ticker, "empty ticker", not_found=True)
        try:
            record, data_source = await self._orchestrator.acquire(symbol)
        except PrimaryProviderError as exc:
            logger.warning("Could not screen {ticker}: {error}", ticker=symbol, error=exc)
            raise ScreeningError(symbol, str(exc), not_found=exc.not_found) from exc

        scores = score_record(record)
        screened_at = self._cache.now()
        self._store.append_screening(
            ScreeningRecord(
                ticker=symbol,
                screened_at=screened_at,
                company_name=record.company_name,
                sector=record.sector,
                market_cap=record.market_cap,
                price=record.price,
                factor_scores={
                    name: factor.score for name, factor in scores.factors().items()
                },
                total_score=scores.total,
                percentage=scores.percentage,
                classification=scores.classification,
            )
        )
        logger.info(
            "Screened {ticker}: {total}/{max_total} ({classification}, source={source})",
            ticker=symbol,
            total=scores.total,
            max_total=scores.max_total,
            classification=scores.classification,
            source=data_source,
        )
        return TickerScreenResult(
            ticker=symbol,
            name=record.company_name,
            sector=record.sector,
            industry=record.industry,
            price=record.price,
            market_cap=record.market_cap,
            high_52w=record.high_52w,
            low_52w=record.low_52w,
            scores=scores,
            data_source=data_source,
            screened_at=screened_at,
        )

    def top_scorers(
        self,
        min_percentage: float = DEFAULT_TOP_MIN_PERCENTAGE,
        limit: int = DEFAULT_TOP_LIMIT,
    ) -> list[ScreeningRecord]:
        rows = [
            row for row in self._store.iter_history() if row.percentage >= min_percentage
        ]
        rows.sort(key=lambda row: (row.percentage, row.screened_at), reverse=True)
        return rows[: max(limit, 0)]

    def history(
        self, ticker: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[ScreeningRecord]:
        rows = self._store.load_history(ticker.strip().upper())
        rows.sort(key=lambda row: row.screened_at, reverse=True)
        return rows[: max(limit, 0)]

    def recently_screened(self, window: Optional[timedelta] = None) -> set[str]:
        cutoff = self._cache.now() - (window or self._cache.freshness)
        return {
            row.ticker for row in self._store.iter_history() if row.screened_at > cutoff
        }

    async def _candidate_symbols(
        self, symbols: list[str], limit: int, skip_prescreen: bool
    ) -> tuple[list[str], int]:
        if skip_prescreen or len(symbols) <= limit or self._prescreener is None:
            return symbols[:limit], 0
        candidates = await self._prescreener.prescreen(
            symbols, min_score=PRESCREEN_MIN_SCORE, max_candidates=limit * 2
        )
        return [candidate.ticker for candidate in candidates[:limit]], len(candidates)

    async def bulk_screen(
        self,
        tickers: Optional[Sequence[str]] = None,
        limit: int = DEFAULT_BULK_LIMIT,
        min_market_cap: float = 0.0,
        max_market_cap: Optional[float] = None,
        skip_prescreen: bool = False,
    ) -> BulkScreenResult:
        """Best-effort batch screening; per-ticker failures are collected."""
        limit = max(1, min(limit, MAX_BULK_LIMIT))
        if tickers:
            label = CUSTOM_UNIVERSE_LABEL
            universe = list(dict.fromkeys(t.strip().upper() for t in tickers if t.strip()))
        elif self._universe is not None:
            label = US_UNIVERSE_LABEL
            entries = await self._universe.load(self._exchange_allowlist)
            universe = [entry.symbol for entry in entries]
        else:
            label, universe = US_UNIVERSE_LABEL, []

        recent = self.recently_screened()
        pending = [symbol for symbol in universe if symbol not in recent]
        logger.info(
            "Bulk screening {label}: {total} symbols, {recent} screened in the last day",
            label=label,
            total=len(universe),
            recent=len(universe) - len(pending),
        )
        symbols, prescreened = await self._candidate_symbols(pending, limit, skip_prescreen)

        outcomes = await asyncio.gather(
            *(self.screen_ticker(symbol) for symbol in symbols), return_exceptions=True
        )
        results: list[TickerScreenResult] = []
        errors: list[BulkScreenError] = []
        for symbol, outcome in zip(symbols, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning(
                    "Failed to screen {ticker}: {error}", ticker=symbol, error=outcome
                )
                errors.append(BulkScreenError(ticker=symbol, error=str(outcome)))
                continue
            market_cap = outcome.market_cap or 0.0
            if market_cap < min_market_cap:
                continue
            if max_market_cap is not None and market_cap > max_market_cap:
                continue
            results.append(outcome)

        results.sort(key=lambda result: result.percentage, reverse=True)
        logger.info(
            "Bulk screen finished: {scored} scored, {failed} errors",
            scored=len(results),
            failed=len(errors),
        )
        return BulkScreenResult(
            universe=label,
            total_symbols=len(universe),
            recently_screened=len(universe) - len(pending),
            prescreened=prescreened,
            results=results,
            errors=errors,
        )

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()

    def purge_expired(self) -> int:
        return self._cache.purge_stale()

    def purge_all(self) -> int:
        return self._cache.purge_all()
