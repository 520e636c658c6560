"""Shared plumbing for upstream provider clients."""

from __future__ import annotations

import asyncio
import math
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol

import httpx
from loguru import logger

from ..errors import ProviderUnavailableError
from ..rate_limit import AsyncRateLimiter
from ..schemas import CanonicalFinancialRecord, ProviderResult, ProviderSource


class ProviderClient(Protocol):
    """Anything that can contribute canonical fields for a ticker."""

    source: ProviderSource

    async def fetch(
        self, ticker: str, record: Optional[CanonicalFinancialRecord] = None
    ) -> ProviderResult: ...


def to_float(value: Any) -> Optional[float]:
    """Coerce an upstream scalar to float; ``None`` for blanks and garbage."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value or value.lower() in {"none", "null", "n/a", "-"}:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def fraction_to_percent(value: Any) -> Optional[float]:
    number = to_float(value)
    return number * 100 if number is not None else None


async def get_json(
    http: httpx.AsyncClient,
    limiter: AsyncRateLimiter,
    provider: str,
    url: str,
    params: Optional[Mapping[str, Any]] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> Any:
    """Issue one paced GET and decode the JSON body.

    Transport failures, non-2xx statuses and undecodable bodies all surface
    as ``ProviderUnavailableError``.
    """
    async with limiter.slot():
        try:
            response = await http.get(url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(provider, f"request failed: {exc}") from exc
    if response.status_code >= 400:
        raise ProviderUnavailableError(
            provider, f"HTTP {response.status_code} from {response.url.path}"
        )
    try:
        return response.json()
    except ValueError as exc:
        raise ProviderUnavailableError(provider, "response is not JSON") from exc


async def get_with_retry(
    http: httpx.AsyncClient,
    limiter: AsyncRateLimiter,
    provider: str,
    url: str,
    headers: Optional[Mapping[str, str]] = None,
    max_retries: int = 3,
    initial_backoff_s: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> httpx.Response:
    """GET with exponential backoff on 429, 5xx and transport errors.

    Other 4xx responses are returned to the caller as-is. Backoff sleeps
    happen outside the limiter slot.
    """
    last_error: Exception | None = None
    for attempt in range(max_retries + 1):
        backoff_s = initial_backoff_s * (2**attempt)
        try:
            async with limiter.slot():
                response = await http.get(url, headers=headers)
        except httpx.TransportError as exc:
            last_error = exc
            if attempt < max_retries:
                logger.info(
                    "Network error fetching {url}, retrying in {backoff}s "
                    "(attempt {attempt}/{max_retries})",
                    url=url,
                    backoff=backoff_s,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                )
                await sleep(backoff_s)
                continue
            break
        if (response.status_code == 429 or response.status_code >= 500) and (
            attempt < max_retries
        ):
            logger.info(
                "{provider} returned {status}, retrying in {backoff}s "
                "(attempt {attempt}/{max_retries})",
                provider=provider,
                status=response.status_code,
                backoff=backoff_s,
                attempt=attempt + 1,
                max_retries=max_retries,
            )
            await sleep(backoff_s)
            continue
        return response
    raise ProviderUnavailableError(
        provider, f"failed to fetch {url} after {max_retries} retries: {last_error}"
    )
