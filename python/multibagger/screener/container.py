"""Builds the screener object graph once per process."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

import httpx
from loguru import logger

from multibagger.server.services.screener_service import ScreenerService

from .cache import RecordCache
from .config import ScreenerSettings
from .identity import CikResolver
from .orchestrator import AcquisitionOrchestrator, default_chain
from .prescreen import PreScreener
from .providers import (
    AlphaVantageClient,
    EdgarClient,
    FmpClient,
    GeminiClient,
    YahooPriceClient,
)
from .rate_limit import AsyncRateLimiter
from .storage import RecordStore
from .universe import UniverseLoader

PROVIDER_NAMES = ("fmp", "gemini", "yahoo", "edgar", "alphavantage")


@dataclass
class Screener:
    """Everything the route layer needs, plus the shared HTTP client."""

    settings: ScreenerSettings
    http: httpx.AsyncClient
    limiters: dict[str, AsyncRateLimiter]
    store: RecordStore
    cache: RecordCache
    orchestrator: AcquisitionOrchestrator
    service: ScreenerService

    async def aclose(self) -> None:
        await self.http.aclose()


def build_screener(
    settings: ScreenerSettings, http: httpx.AsyncClient | None = None
) -> Screener:
    if http is None:
        http = httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout_s))
    limiters = {
        name: AsyncRateLimiter.from_policy(name, settings.policy(name))
        for name in PROVIDER_NAMES
    }
    store = RecordStore(settings.data_dir)
    cache = RecordCache(store, freshness=timedelta(hours=settings.freshness_hours))

    resolver = CikResolver(
        http,
        limiters["edgar"],
        store,
        settings.sec_user_agent,
        max_retries=settings.edgar_max_retries,
        initial_backoff_s=settings.edgar_initial_backoff_s,
    )
    yahoo = YahooPriceClient(limiters["yahoo"])
    chain = default_chain(
        gemini=GeminiClient(
            http, limiters["gemini"], settings.gemini_api_key, model=settings.gemini_model
        ),
        yahoo=yahoo,
        edgar=EdgarClient(
            http,
            limiters["edgar"],
            store,
            resolver,
            settings.sec_user_agent,
            max_retries=settings.edgar_max_retries,
            initial_backoff_s=settings.edgar_initial_backoff_s,
        ),
        alphavantage=AlphaVantageClient(
            http,
            limiters["alphavantage"],
            settings.alphavantage_api_key,
            budget_margin=settings.alphavantage_budget_margin,
            cache_ttl=timedelta(hours=settings.freshness_hours),
        ),
    )
    orchestrator = AcquisitionOrchestrator(
        cache, FmpClient(http, limiters["fmp"], settings.fmp_api_key), chain
    )

    service = ScreenerService(
        orchestrator,
        cache,
        store,
        prescreener=PreScreener(yahoo),
        universe=UniverseLoader(
            http,
            limiters["edgar"],
            settings.data_dir,
            settings.sec_user_agent,
            max_retries=settings.edgar_max_retries,
            initial_backoff_s=settings.edgar_initial_backoff_s,
        ),
        exchange_allowlist=settings.exchange_allowlist,
    )
    logger.info("Screener ready with data directory {path}", path=settings.data_dir)
    return Screener(
        settings=settings,
        http=http,
        limiters=limiters,
        store=store,
        cache=cache,
        orchestrator=orchestrator,
        service=service,
    )
