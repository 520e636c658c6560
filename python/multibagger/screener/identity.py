"""Ticker to SEC CIK resolution with a permanent cache."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

import httpx
from loguru import logger

from .constants import EDGAR_INITIAL_BACKOFF_S, EDGAR_MAX_RETRIES
from .errors import ProviderUnavailableError
from .providers.base import get_with_retry
from .rate_limit import AsyncRateLimiter
from .schemas import CikMapping
from .storage import RecordStore

SEC_COMPANY_TICKERS_URL = "https://www.sec.gov/files/company_tickers.json"


def find_cik(payload: object, ticker: str) -> Optional[CikMapping]:
    """Scan the SEC ticker directory for an exact upper-case match."""
    if not isinstance(payload, dict):
        return None
    symbol = ticker.upper()
    for entry in payload.values():
        if not isinstance(entry, dict):
            continue
        if str(entry.get("ticker", "")).upper() != symbol:
            continue
        cik = entry.get("cik_str")
        if cik is None:
            continue
        return CikMapping(
            ticker=symbol,
            cik=str(cik).zfill(10),
            company_name=entry.get("title"),
        )
    return None


class CikResolver:
    """Resolve tickers through memory, the record store, then the SEC list."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        limiter: AsyncRateLimiter,
        store: RecordStore,
        user_agent: str,
        max_retries: int = EDGAR_MAX_RETRIES,
        initial_backoff_s: float = EDGAR_INITIAL_BACKOFF_S,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._http = http
        self._limiter = limiter
        self._store = store
        self._headers = {"User-Agent": user_agent, "Accept": "application/json"}
        self._max_retries = max_retries
        self._initial_backoff_s = initial_backoff_s
        self._sleep = sleep
        self._memory: dict[str, CikMapping] = {}

    def remember(self, mapping: CikMapping) -> None:
        self._memory[mapping.ticker] = mapping
        self._store.write_cik_mapping(mapping)

    async def resolve(self, ticker: str) -> Optional[CikMapping]:
        symbol = ticker.upper()
        if symbol in self._memory:
            return self._memory[symbol]
        stored = self._store.read_cik_mapping(symbol)
        if stored is not None:
            self._memory[symbol] = stored
            return stored

        try:
            response = await get_with_retry(
                self._http,
                self._limiter,
                "edgar",
                SEC_COMPANY_TICKERS_URL,
                headers=self._headers,
                max_retries=self._max_retries,
                initial_backoff_s=self._initial_backoff_s,
                sleep=self._sleep,
            )
        except ProviderUnavailableError as exc:
            logger.warning("Failed to download SEC ticker list: {error}", error=exc)
            return None
        if response.status_code != 200:
            logger.warning(
                "SEC ticker list returned {status}", status=response.status_code
            )
            return None
        try:
            payload = response.json()
        except ValueError:
            logger.warning("SEC ticker list is not valid JSON")
            return None

        mapping = find_cik(payload, symbol)
        if mapping is None:
            logger.info("No CIK found for {ticker}", ticker=symbol)
            return None
        self.remember(mapping)
        logger.info("Resolved {ticker} to CIK {cik}", ticker=symbol, cik=mapping.cik)
        return mapping
