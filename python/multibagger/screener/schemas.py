"""Pydantic schemas for the multibagger screener pipeline."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from .constants import MAX_SCORE

ProviderSource = Literal["fmp", "gemini", "yahoo", "edgar", "alphavantage"]
ProviderStatus = Literal["success", "empty", "error"]
Classification = Literal["STRONG BUY", "MODERATE BUY", "WEAK BUY", "AVOID"]
DataSource = Literal["cache", "api"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CanonicalFinancialRecord(BaseModel):
    """Normalized per-ticker financial facts.

    Every financial field may be ``None``, meaning "not yet known". Records
    are immutable; ``fill`` returns a new record.
    """

    model_config = ConfigDict(frozen=True)

    ticker: str = Field(..., description="Ticker symbol")
    company_name: Optional[str] = Field(default=None, description="Company name")
    sector: Optional[str] = Field(default=None, description="Sector")
    industry: Optional[str] = Field(default=None, description="Industry")
    market_cap: Optional[float] = Field(default=None, description="Market cap (USD)")
    price: Optional[float] = Field(default=None, description="Current price")
    high_52w: Optional[float] = Field(default=None, description="52-week high")
    low_52w: Optional[float] = Field(default=None, description="52-week low")
    free_cash_flow: Optional[float] = Field(default=None, description="Free cash flow")
    book_value: Optional[float] = Field(
        default=None, description="Stockholders' equity"
    )
    total_assets: Optional[float] = Field(default=None, description="Total assets")
    ebitda: Optional[float] = Field(default=None, description="EBITDA")
    ebitda_margin: Optional[float] = Field(default=None, description="EBITDA margin (%)")
    roa: Optional[float] = Field(default=None, description="Return on assets (%)")
    asset_growth: Optional[float] = Field(
        default=None, description="Total assets 3-year CAGR (%)"
    )
    ebitda_growth: Optional[float] = Field(
        default=None, description="EBITDA 3-year CAGR (%)"
    )
    dividend_yield: Optional[float] = Field(default=None, description="Dividend yield (%)")
    pays_dividend: Optional[bool] = Field(default=None, description="Pays a dividend")
    pe_ratio: Optional[float] = Field(default=None, description="Price/earnings ratio")
    pb_ratio: Optional[float] = Field(default=None, description="Price/book ratio")
    price_6_months_ago: Optional[float] = Field(
        default=None, description="Close roughly 180 days ago"
    )
    fetched_at: Optional[datetime] = Field(default=None, description="Fetch timestamp")

    def fill(self, values: Mapping[str, Any]) -> "CanonicalFinancialRecord":
        """Return a copy with only the currently-null fields populated."""
        updates = {
            key: value
            for key, value in values.items()
            if key in type(self).model_fields
            and key != "ticker"
            and value is not None
            and getattr(self, key) is None
        }
        if not updates:
            return self
        return self.model_copy(update=updates)

    def missing_growth(self) -> bool:
        return self.ebitda_growth is None or self.asset_growth is None

    def is_fresh(self, now: datetime, window: timedelta) -> bool:
        if self.fetched_at is None:
            return False
        return now - self.fetched_at < window


class ProviderResult(BaseModel):
    """Tagged outcome of one provider call; never persisted."""

    source: ProviderSource = Field(..., description="Provider identifier")
    status: ProviderStatus = Field(..., description="Outcome of the call")
    values: dict[str, Any] = Field(
        default_factory=dict, description="Canonical field values"
    )
    error: Optional[str] = Field(default=None, description="Failure description")

    @classmethod
    def success(cls, source: ProviderSource, values: Mapping[str, Any]) -> "ProviderResult":
        cleaned = {key: value for key, value in values.items() if value is not None}
        if not cleaned:
            return cls(source=source, status="empty")
        return cls(source=source, status="success", values=cleaned)

    @classmethod
    def empty(
        cls, source: ProviderSource, reason: Optional[str] = None
    ) -> "ProviderResult":
        return cls(source=source, status="empty", error=reason)

    @classmethod
    def failure(cls, source: ProviderSource, error: object) -> "ProviderResult":
        return cls(source=source, status="error", error=str(error))

    @property
    def ok(self) -> bool:
        return self.status == "success"


class CikMapping(BaseModel):
    """Ticker to SEC filer identifier mapping; immutable once resolved."""

    model_config = ConfigDict(frozen=True)

    ticker: str = Field(..., description="Ticker symbol")
    cik: str = Field(..., description="Zero-padded 10-digit CIK")
    company_name: Optional[str] = Field(default=None, description="Filer name")
    created_at: datetime = Field(default_factory=utc_now)


class FiscalYearFinancials(BaseModel):
    """Filings-derived values for one fiscal year."""

    ticker: str = Field(..., description="Ticker symbol")
    fiscal_year: int = Field(..., description="Fiscal year")
    ebitda: Optional[float] = None
    total_assets: Optional[float] = None
    free_cash_flow: Optional[float] = None
    book_value: Optional[float] = None
    operating_income: Optional[float] = None
    depreciation: Optional[float] = None
    operating_cash_flow: Optional[float] = None
    capex: Optional[float] = None
    stockholders_equity: Optional[float] = None
    fetched_at: datetime = Field(default_factory=utc_now)


class FactorScore(BaseModel):
    """Score for one of the nine factors."""

    model_config = ConfigDict(frozen=True)

    score: float = Field(..., description="Points awarded")
    max_score: int = Field(..., description="Maximum points for the factor")
    value: str = Field(..., description="Human-readable input value")
    rationale: str = Field(..., description="Explanation of the band")


class ScoringResult(BaseModel):
    """Nine factor scores with total, percentage and classification."""

    model_config = ConfigDict(frozen=True)

    fcf_yield: FactorScore
    size: FactorScore
    book_to_market: FactorScore
    investment_pattern: FactorScore
    ebitda_margin: FactorScore
    roa: FactorScore
    price_range: FactorScore
    momentum: FactorScore
    dividend: FactorScore
    total: float = Field(..., description="Sum of factor scores")
    max_total: int = Field(default=MAX_SCORE, description="Maximum total score")
    percentage: float = Field(..., description="Total as a percentage of the maximum")
    classification: Classification = Field(..., description="Classification band")

    def factors(self) -> dict[str, FactorScore]:
        return {
            "fcf_yield": self.fcf_yield,
            "size": self.size,
            "book_to_market": self.book_to_market,
            "investment_pattern": self.investment_pattern,
            "ebitda_margin": self.ebitda_margin,
            "roa": self.roa,
            "price_range": self.price_range,
            "momentum": self.momentum,
            "dividend": self.dividend,
        }


class ScreeningRecord(BaseModel):
    """Historical row persisted for every screening."""

    ticker: str = Field(..., description="Ticker symbol")
    screened_at: datetime = Field(..., description="Screening timestamp")
    company_name: Optional[str] = Field(default=None, description="Company name")
    sector: Optional[str] = Field(default=None, description="Sector")
    market_cap: Optional[float] = Field(default=None, description="Market cap")
    price: Optional[float] = Field(default=None, description="Price at screening")
    factor_scores: dict[str, float] = Field(
        default_factory=dict, description="Points per factor"
    )
    total_score: float = Field(..., description="Total score")
    percentage: float = Field(..., description="Score percentage")
    classification: Classification = Field(..., description="Classification band")


class TickerScreenResult(BaseModel):
    """Result of screening one ticker."""

    ticker: str = Field(..., description="Ticker symbol")
    name: Optional[str] = Field(default=None, description="Company name")
    sector: Optional[str] = Field(default=None, description="Sector")
    industry: Optional[str] = Field(default=None, description="Industry")
    price: Optional[float] = Field(default=None, description="Current price")
    market_cap: Optional[float] = Field(default=None, description="Market cap")
    high_52w: Optional[float] = Field(default=None, description="52-week high")
    low_52w: Optional[float] = Field(default=None, description="52-week low")
    scores: ScoringResult = Field(..., description="Factor scores")
    data_source: DataSource = Field(..., description="Cache hit or fresh fetch")
    screened_at: datetime = Field(..., description="Screening timestamp")

    @property
    def percentage(self) -> float:
        return self.scores.percentage


class CacheStats(BaseModel):
    """Record cache counters."""

    total: int = Field(..., description="Cached records")
    fresh: int = Field(..., description="Records inside the freshness window")
    stale: int = Field(..., description="Records past the freshness window")


class PreScreenResult(BaseModel):
    """Price-only contrarian pre-screen for one ticker."""

    ticker: str = Field(..., description="Ticker symbol")
    price: float = Field(..., description="Latest close")
    high_52w: float = Field(..., description="52-week high")
    low_52w: float = Field(..., description="52-week low")
    price_6_months_ago: Optional[float] = Field(default=None)
    price_range_score: float = Field(..., description="Price range points (0-10)")
    momentum_score: float = Field(..., description="Momentum points (0-5)")

    @property
    def score(self) -> float:
        return self.price_range_score + self.momentum_score


class BulkScreenError(BaseModel):
    """Per-ticker failure in a bulk run."""

    ticker: str
    error: str


class BulkScreenResult(BaseModel):
    """Outcome of a best-effort batch screening."""

    universe: str = Field(..., description="Universe label")
    total_symbols: int = Field(..., description="Symbols in the universe")
    recently_screened: int = Field(..., description="Symbols skipped as screened in 24h")
    prescreened: int = Field(default=0, description="Candidates passing pre-screen")
    results: list[TickerScreenResult] = Field(default_factory=list)
    errors: list[BulkScreenError] = Field(default_factory=list)
