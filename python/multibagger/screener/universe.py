"""US equity universe for bulk screening, from the SEC exchange directory."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Awaitable, Callable, Optional

import httpx
from loguru import logger

from .constants import EDGAR_INITIAL_BACKOFF_S, EDGAR_MAX_RETRIES, UNIVERSE_DIR_NAME
from .errors import ProviderUnavailableError
from .providers.base import get_with_retry
from .rate_limit import AsyncRateLimiter

SEC_TICKER_EXCHANGE_URL: str = (
    "https://www.sec.gov/files/company_tickers_exchange.json"
)
UNIVERSE_CACHE_TTL_DAYS: int = 7
UNIVERSE_CACHE_FILE: str = "company_tickers_exchange.json"

_EXCHANGE_NORMALIZATION: dict[str, str] = {
    "nasdaq": "NASDAQ",
    "nyse": "NYSE",
    "nyse american": "AMEX",
    "nyse arca": "NYSE",
    "nyse mkt": "AMEX",
    "amex": "AMEX",
    "nyse american llc": "AMEX",
}
_EXCHANGE_PRIORITY: dict[str, int] = {"NASDAQ": 3, "NYSE": 2, "AMEX": 1}


@dataclass(frozen=True)
class UniverseTicker:
    """Listed common stock eligible for bulk screening."""

    symbol: str
    name: str
    exchange: str


def _is_cache_fresh(path: Path, ttl_days: int) -> bool:
    if not path.exists():
        return False
    try:
        mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    except OSError:
        return False
    return datetime.now(timezone.utc) - mtime < timedelta(days=ttl_days)


def _normalize_exchange(exchange: str) -> str | None:
    if not exchange:
        return None
    exchange_key = exchange.strip().lower()
    return _EXCHANGE_NORMALIZATION.get(exchange_key, exchange.strip().upper())


def _dedupe_universe(entries: list[UniverseTicker]) -> list[UniverseTicker]:
    deduped: dict[str, UniverseTicker] = {}
    for entry in entries:
        existing = deduped.get(entry.symbol)
        if not existing:
            deduped[entry.symbol] = entry
            continue
        existing_priority = _EXCHANGE_PRIORITY.get(existing.exchange, 0)
        new_priority = _EXCHANGE_PRIORITY.get(entry.exchange, 0)
        if new_priority > existing_priority:
            deduped[entry.symbol] = entry
    return list(deduped.values())


def _get_item_value(
    item: object,
    field_indices: dict[str, int] | None,
    field_name: str,
) -> str:
    if isinstance(item, dict):
        return str(item.get(field_name, "") or "")
    if isinstance(item, (list, tuple)) and field_indices is not None:
        index = field_indices.get(field_name)
        if index is None or index >= len(item):
            return ""
        return str(item[index] or "")
    return ""


def parse_universe(payload: dict, allowlist: set[str]) -> list[UniverseTicker]:
    """Normalize SEC rows, keep allowlisted exchanges, one entry per symbol."""
    entries: list[UniverseTicker] = []
    field_indices: dict[str, int] | None = None
    fields = payload.get("fields")
    if isinstance(fields, list):
        field_indices = {
            field: index
            for index, field in enumerate(fields)
            if isinstance(field, str)
        }
    items = payload.get("data", [])
    if (
        isinstance(items, list)
        and items
        and isinstance(items[0], (list, tuple))
        and field_indices is None
    ):
        logger.warning(
            "SEC universe payload missing fields metadata; unable to parse list rows."
        )
        return []
    for item in items:
        symbol = _get_item_value(item, field_indices, "ticker").strip().upper()
        name = _get_item_value(item, field_indices, "name").strip()
        exchange = _normalize_exchange(
            _get_item_value(item, field_indices, "exchange").strip()
        )
        if not symbol or not exchange or exchange not in allowlist:
            continue
        entries.append(
            UniverseTicker(symbol=symbol, name=name or symbol, exchange=exchange)
        )
    return _dedupe_universe(entries)


class UniverseLoader:
    """Downloads and caches the SEC exchange directory for a week."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        limiter: AsyncRateLimiter,
        data_dir: Path,
        user_agent: str,
        ttl_days: int = UNIVERSE_CACHE_TTL_DAYS,
        max_retries: int = EDGAR_MAX_RETRIES,
        initial_backoff_s: float = EDGAR_INITIAL_BACKOFF_S,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._http = http
        self._limiter = limiter
        self._cache_path = Path(data_dir) / UNIVERSE_DIR_NAME / UNIVERSE_CACHE_FILE
        self._headers = {"User-Agent": user_agent}
        self._ttl_days = ttl_days
        self._max_retries = max_retries
        self._initial_backoff_s = initial_backoff_s
        self._sleep = sleep

    @property
    def cache_path(self) -> Path:
        return self._cache_path

    async def _fetch_sec_universe(self) -> dict:
        response = await get_with_retry(
            self._http,
            self._limiter,
            "edgar",
            SEC_TICKER_EXCHANGE_URL,
            headers=self._headers,
            max_retries=self._max_retries,
            initial_backoff_s=self._initial_backoff_s,
            sleep=self._sleep,
        )
        if response.status_code != 200:
            raise ProviderUnavailableError(
                "edgar", f"HTTP {response.status_code} from SEC universe"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderUnavailableError("edgar", "SEC universe is not JSON") from exc
        if not isinstance(payload, dict):
            raise ProviderUnavailableError("edgar", "unexpected SEC universe payload")
        return payload

    def _read_cache(self) -> Optional[dict]:
        try:
            return json.loads(self._cache_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning(
                "Failed to read cached universe at {path}: {error}",
                path=self._cache_path,
                error=exc,
            )
            return None

    async def load(self, allowlist: list[str]) -> list[UniverseTicker]:
        """Load the U.S. equity universe, preferring a fresh local copy."""
        payload: dict | None = None
        if _is_cache_fresh(self._cache_path, self._ttl_days):
            payload = self._read_cache()
            if payload is not None:
                logger.info("Loaded cached SEC universe from {path}", path=self._cache_path)
        if payload is None:
            try:
                payload = await self._fetch_sec_universe()
                self._cache_path.parent.mkdir(parents=True, exist_ok=True)
                self._cache_path.write_text(
                    json.dumps(payload, indent=2, ensure_ascii=False),
                    encoding="utf-8",
                )
                logger.info(
                    "Fetched SEC universe and cached to {path}", path=self._cache_path
                )
            except ProviderUnavailableError as exc:
                logger.warning("Failed to fetch SEC universe: {error}", error=exc)
                if self._cache_path.exists():
                    payload = self._read_cache()
                    logger.info(
                        "Loaded stale SEC universe from cache at {path}",
                        path=self._cache_path,
                    )
                if payload is None:
                    return []

        normalized_allowlist = {item.strip().upper() for item in allowlist}
        return parse_universe(payload, normalized_allowlist)
