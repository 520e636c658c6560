"""Tests for the SEC equity universe."""

import json
import os
import time

import httpx
import pytest

from multibagger.screener.rate_limit import AsyncRateLimiter
from multibagger.screener.universe import UniverseLoader, UniverseTicker, parse_universe

PAYLOAD = {
    "fields": ["cik", "name", "ticker", "exchange"],
    "data": [
        [320193, "Apple Inc.", "aapl", "Nasdaq"],
        [1001, "Dual Listed Co", "DUAL", "NYSE"],
        [1001, "Dual Listed Co", "DUAL", "Nasdaq"],
        [1002, "Small Cap Corp", "SMAL", "NYSE American"],
        [1003, "", "NONAME", "NYSE Arca"],
        [1004, "Over The Counter", "OTCX", "OTC"],
        [1005, "Blank Exchange", "BLNK", ""],
    ],
}


class TestParseUniverse:
    def test_filters_normalizes_and_dedupes(self):
        tickers = parse_universe(PAYLOAD, {"NASDAQ", "NYSE"})
        by_symbol = {ticker.symbol: ticker for ticker in tickers}
        assert set(by_symbol) == {"AAPL", "DUAL", "NONAME"}
        assert by_symbol["AAPL"] == UniverseTicker("AAPL", "Apple Inc.", "NASDAQ")
        assert by_symbol["DUAL"].exchange == "NASDAQ"
        assert by_symbol["NONAME"].name == "NONAME"

    def test_amex_needs_allowlist(self):
        tickers = parse_universe(PAYLOAD, {"AMEX"})
        assert [ticker.symbol for ticker in tickers] == ["SMAL"]

    def test_dict_rows(self):
        payload = {"data": [{"ticker": "abc", "name": "Abc", "exchange": "nyse"}]}
        assert parse_universe(payload, {"NYSE"}) == [UniverseTicker("ABC", "Abc", "NYSE")]

    def test_list_rows_without_fields(self):
        assert parse_universe({"data": [["x", "y"]]}, {"NYSE"}) == []


async def _no_sleep(seconds: float) -> None:
    return None


def _loader(tmp_path, handler) -> UniverseLoader:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return UniverseLoader(
        http,
        AsyncRateLimiter("edgar"),
        tmp_path,
        "tests agent@example.com",
        max_retries=0,
        sleep=_no_sleep,
    )


class TestUniverseLoader:
    @pytest.mark.asyncio
    async def test_downloads_and_caches(self, tmp_path):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=PAYLOAD)

        loader = _loader(tmp_path, handler)
        first = await loader.load(["nasdaq", "nyse"])
        second = await loader.load(["NASDAQ"])
        assert len(seen) == 1
        assert seen[0].headers["User-Agent"] == "tests agent@example.com"
        assert loader.cache_path.exists()
        assert len(first) == 3
        assert {ticker.symbol for ticker in second} == {"AAPL", "DUAL"}

    @pytest.mark.asyncio
    async def test_stale_cache_refetches(self, tmp_path):
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            return httpx.Response(200, json=PAYLOAD)

        loader = _loader(tmp_path, handler)
        loader.cache_path.parent.mkdir(parents=True)
        loader.cache_path.write_text(json.dumps({"data": []}), encoding="utf-8")
        old = time.time() - 8 * 24 * 3600
        os.utime(loader.cache_path, (old, old))
        tickers = await loader.load(["NYSE"])
        assert calls == ["/files/company_tickers_exchange.json"]
        assert {ticker.symbol for ticker in tickers} == {"DUAL", "NONAME"}

    @pytest.mark.asyncio
    async def test_failed_download_falls_back_to_stale_cache(self, tmp_path):
        loader = _loader(tmp_path, lambda request: httpx.Response(403))
        loader.cache_path.parent.mkdir(parents=True)
        loader.cache_path.write_text(json.dumps(PAYLOAD), encoding="utf-8")
        old = time.time() - 30 * 24 * 3600
        os.utime(loader.cache_path, (old, old))
        tickers = await loader.load(["NASDAQ"])
        assert {ticker.symbol for ticker in tickers} == {"AAPL", "DUAL"}

    @pytest.mark.asyncio
    async def test_failed_download_without_cache_is_empty(self, tmp_path):
        loader = _loader(tmp_path, lambda request: httpx.Response(403))
        assert await loader.load(["NASDAQ"]) == []
