"""In-memory provider doubles shared by pipeline tests."""

from typing import Optional

from multibagger.screener.errors import PrimaryProviderError
from multibagger.screener.schemas import CanonicalFinancialRecord, ProviderResult


class FakeProvider:
    """Returns a scripted result and records every call."""

    def __init__(
        self,
        source: str,
        values: Optional[dict] = None,
        status: str = "success",
        raises: Optional[Exception] = None,
    ):
        self.source = source
        self.values = values or {}
        self.status = status
        self.raises = raises
        self.calls: list[str] = []
        self.is_available = True

    async def fetch(
        self, ticker: str, record: Optional[CanonicalFinancialRecord] = None
    ) -> ProviderResult:
        self.calls.append(ticker)
        if self.raises is not None:
            raise self.raises
        if self.status == "error":
            return ProviderResult.failure(self.source, "scripted failure")
        if self.status == "empty":
            return ProviderResult.empty(self.source)
        return ProviderResult.success(self.source, self.values)


class FakePrimary(FakeProvider):
    """Primary provider keyed by ticker; unknown tickers are not found."""

    def __init__(self, by_ticker: dict[str, dict]):
        super().__init__("fmp")
        self.by_ticker = by_ticker

    async def fetch(
        self, ticker: str, record: Optional[CanonicalFinancialRecord] = None
    ) -> ProviderResult:
        self.calls.append(ticker)
        if ticker not in self.by_ticker:
            raise PrimaryProviderError(ticker, "no profile data found", not_found=True)
        return ProviderResult.success(self.source, self.by_ticker[ticker])
