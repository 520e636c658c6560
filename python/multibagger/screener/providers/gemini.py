"""Growth metrics from a search-grounded Gemini model."""

from __future__ import annotations

import json
from typing import Any, Optional

import httpx
from loguru import logger

from ..errors import ProviderUnavailableError
from ..rate_limit import AsyncRateLimiter
from ..schemas import CanonicalFinancialRecord, ProviderResult

GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
GROWTH_KEYS: tuple[str, str] = ("ebitdaGrowth", "assetGrowth")

PROMPT_TEMPLATE = """Find the 3-year compound annual growth rate (CAGR) for {company_name} (ticker: {ticker}):

1. EBITDA 3-year CAGR (earnings before interest, taxes, depreciation, amortization)
2. Total Assets 3-year CAGR

Return ONLY a JSON object with this exact structure (no markdown, no explanation):
{{"ebitdaGrowth": <number or null>, "assetGrowth": <number or null>}}

Express growth rates as percentages (e.g., 15.5 for 15.5% growth).
Use null if the data cannot be found."""


def _number_or_none(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def parse_growth_response(text: str) -> dict[str, Optional[float]]:
    """Decode the first JSON object in ``text`` and validate its shape.

    Raises ``ValueError`` when no object is found or when either growth key
    is missing. Values that are not JSON numbers come back as ``None``.
    """
    start = text.find("{")
    if start < 0:
        raise ValueError("no JSON object in model response")
    try:
        payload, _ = json.JSONDecoder().raw_decode(text[start:])
    except json.JSONDecodeError as exc:
        raise ValueError(f"malformed JSON in model response: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError("model response is not a JSON object")
    missing = [key for key in GROWTH_KEYS if key not in payload]
    if missing:
        raise ValueError(f"model response missing keys: {', '.join(missing)}")
    return {
        "ebitda_growth": _number_or_none(payload["ebitdaGrowth"]),
        "asset_growth": _number_or_none(payload["assetGrowth"]),
    }


def _response_text(body: Any) -> str:
    """Concatenate the text parts of the first candidate.

    Raises ``ValueError`` when the body does not have the generateContent shape.
    """
    if not isinstance(body, dict):
        raise ValueError("generateContent body is not an object")
    candidates = body.get("candidates")
    if not candidates:
        return ""
    if not isinstance(candidates, list) or not isinstance(candidates[0], dict):
        raise ValueError("unexpected candidates in generateContent body")
    content = candidates[0].get("content") or {}
    if not isinstance(content, dict):
        raise ValueError("unexpected candidate content in generateContent body")
    parts = content.get("parts") or []
    if not isinstance(parts, list):
        raise ValueError("unexpected content parts in generateContent body")
    return "".join(
        part["text"]
        for part in parts
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    )


class GeminiClient:
    source = "gemini"

    def __init__(
        self,
        http: httpx.AsyncClient,
        limiter: AsyncRateLimiter,
        api_key: Optional[str],
        model: str = "gemini-2.0-flash",
        base_url: str = GEMINI_BASE_URL,
    ) -> None:
        self._http = http
        self._limiter = limiter
        self._api_key = api_key or ""
        self._model = model
        self._base_url = base_url.rstrip("/")
        if not self._api_key:
            logger.warning("GEMINI_API_KEY not set; Gemini fallback disabled")

    @property
    def is_available(self) -> bool:
        return bool(self._api_key)

    async def _generate(self, prompt: str) -> str:
        url = f"{self._base_url}/models/{self._model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "tools": [{"google_search": {}}],
        }
        async with self._limiter.slot():
            try:
                response = await self._http.post(
                    url, json=body, headers={"x-goog-api-key": self._api_key}
                )
            except httpx.HTTPError as exc:
                raise ProviderUnavailableError(
                    self.source, f"request failed: {exc}"
                ) from exc
        if response.status_code >= 400:
            raise ProviderUnavailableError(
                self.source, f"HTTP {response.status_code} from generateContent"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderUnavailableError(self.source, "response is not JSON") from exc
        return _response_text(payload)

    async def fetch(
        self, ticker: str, record: Optional[CanonicalFinancialRecord] = None
    ) -> ProviderResult:
        if not self.is_available:
            return ProviderResult.empty(self.source, "no API key configured")
        company_name = (record.company_name if record else None) or ticker
        prompt = PROMPT_TEMPLATE.format(company_name=company_name, ticker=ticker)
        try:
            text = await self._generate(prompt)
            values = parse_growth_response(text)
        except ProviderUnavailableError as exc:
            logger.warning(
                "Gemini search failed for {ticker}: {error}", ticker=ticker, error=exc
            )
            return ProviderResult.failure(self.source, exc)
        except ValueError as exc:
            logger.warning(
                "Could not parse Gemini response for {ticker}: {error}",
                ticker=ticker,
                error=exc,
            )
            return ProviderResult.failure(self.source, exc)
        logger.info(
            "Gemini: {ticker} ebitda_growth={ebitda_growth} asset_growth={asset_growth}",
            ticker=ticker,
            **values,
        )
        return ProviderResult.success(self.source, values)
