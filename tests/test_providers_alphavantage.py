"""Tests for the budgeted last-resort growth client."""

import asyncio
from datetime import timedelta

import httpx
import pytest

from multibagger.screener.orchestrator import AcquisitionOrchestrator, default_chain
from multibagger.screener.providers.alphavantage import AlphaVantageClient
from multibagger.screener.rate_limit import AsyncRateLimiter

from fakes import FakePrimary

INCOME = {
    "annualReports": [
        {"fiscalDateEnding": "2024-12-31", "ebitda": "172.8"},
        {"fiscalDateEnding": "2023-12-31", "ebitda": "None"},
        {"fiscalDateEnding": "2022-12-31", "ebitda": "120"},
        {"fiscalDateEnding": "2021-12-31", "ebitda": "100"},
    ]
}
BALANCE = {
    "annualReports": [
        {"fiscalDateEnding": "2024-12-31", "totalAssets": "1331"},
        {"fiscalDateEnding": "2021-12-31", "totalAssets": "1000"},
    ]
}


class Upstream:
    def __init__(self, payloads: dict) -> None:
        self.payloads = payloads
        self.functions: list[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        function = request.url.params["function"]
        self.functions.append(function)
        return httpx.Response(200, json=self.payloads[function])


def _client(upstream: Upstream, clock, budget: int = 25, api_key: str = "key"):
    http = httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler))
    limiter = AsyncRateLimiter("alphavantage", daily_budget=budget)
    return AlphaVantageClient(http, limiter, api_key, budget_margin=5, clock=clock), limiter


class TestAlphaVantageClient:
    @pytest.mark.asyncio
    async def test_growth_from_annual_reports(self, clock):
        upstream = Upstream({"INCOME_STATEMENT": INCOME, "BALANCE_SHEET": BALANCE})
        client, limiter = _client(upstream, clock)
        result = await client.fetch("gem")
        assert result.ok
        assert result.values["ebitda_growth"] == pytest.approx(20.0, abs=1e-6)
        assert result.values["asset_growth"] == pytest.approx(10.0, abs=1e-6)
        assert upstream.functions == ["INCOME_STATEMENT", "BALANCE_SHEET"]
        assert limiter.remaining() == 23

    @pytest.mark.asyncio
    async def test_results_are_reused_within_a_day(self, clock):
        upstream = Upstream({"INCOME_STATEMENT": INCOME, "BALANCE_SHEET": BALANCE})
        client, _ = _client(upstream, clock)
        await client.fetch("GEM")
        await client.fetch("GEM")
        assert len(upstream.functions) == 2
        clock.advance(timedelta(hours=24))
        await client.fetch("GEM")
        assert len(upstream.functions) == 4

    @pytest.mark.asyncio
    async def test_throttle_notice_is_error(self, clock):
        notice = {
            "Note": "Thank you for using Alpha Vantage! "
            "Our standard API rate limit is 25 requests per day."
        }
        upstream = Upstream({"INCOME_STATEMENT": notice, "BALANCE_SHEET": BALANCE})
        client, _ = _client(upstream, clock)
        result = await client.fetch("GEM")
        assert result.status == "error"
        assert "API limit" in result.error

    @pytest.mark.asyncio
    async def test_not_called_at_budget_margin(self, clock):
        upstream = Upstream({"INCOME_STATEMENT": INCOME, "BALANCE_SHEET": BALANCE})
        client, _ = _client(upstream, clock, budget=5)
        assert not client.is_available
        result = await client.fetch("GEM")
        assert result.status == "empty"
        assert upstream.functions == []

    @pytest.mark.parametrize("budget, available", [(6, False), (7, True)])
    def test_available_only_if_a_fetch_leaves_the_margin(
        self, clock, budget, available
    ):
        client, _ = _client(Upstream({}), clock, budget=budget)
        assert client.is_available is available

    def test_unavailable_without_key(self, clock):
        client, _ = _client(Upstream({}), clock, api_key="")
        assert not client.is_available

    @pytest.mark.asyncio
    async def test_concurrent_screenings_keep_the_margin(self, cache, clock):
        upstream = Upstream({"INCOME_STATEMENT": INCOME, "BALANCE_SHEET": BALANCE})
        client, limiter = _client(upstream, clock)
        tickers = [f"T{index:02d}" for index in range(15)]
        primary = FakePrimary({ticker: {"price": 10.0} for ticker in tickers})
        orchestrator = AcquisitionOrchestrator(
            cache, primary, default_chain(alphavantage=client)
        )

        outcomes = await asyncio.gather(
            *(orchestrator.acquire(ticker) for ticker in tickers)
        )

        assert limiter.remaining() == 5
        assert len(upstream.functions) == 20
        filled = [record for record, _ in outcomes if record.ebitda_growth is not None]
        assert len(filled) == 10
