"""API schemas for screener, cache and scoring endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

import multibagger.screener.schemas as screener_schemas
from multibagger.screener.constants import DEFAULT_BULK_LIMIT, MAX_BULK_LIMIT


class BulkScreenRequest(BaseModel):
    """Request payload for a batch screening run."""

    tickers: Optional[list[str]] = Field(
        default=None, description="Tickers to screen; defaults to the US universe"
    )
    limit: int = Field(
        default=DEFAULT_BULK_LIMIT,
        ge=1,
        le=MAX_BULK_LIMIT,
        description="Maximum tickers to screen",
    )
    min_market_cap: float = Field(default=0.0, ge=0, description="Minimum market cap")
    max_market_cap: Optional[float] = Field(default=None, description="Maximum market cap")
    skip_prescreen: bool = Field(default=False, description="Skip the price pre-screen")


class ScreeningListData(BaseModel):
    """Response payload for history queries."""

    results: list[screener_schemas.ScreeningRecord] = Field(
        default_factory=list, description="Screening history rows"
    )


class CachePurgeData(BaseModel):
    """Response payload for cache purges."""

    deleted: int = Field(..., description="Entries removed")


class HealthData(BaseModel):
    """Response payload for the health check."""

    status: str = Field(default="ok", description="Service status")
    version: str = Field(..., description="Package version")


class FactorMethodology(BaseModel):
    """Description of one scoring factor."""

    factor: str = Field(..., description="Factor name")
    max_score: int = Field(..., description="Maximum points")
    formula: str = Field(..., description="Input formula")
    bands: str = Field(..., description="Score bands")


class MethodologyData(BaseModel):
    """Response payload for the scoring methodology."""

    max_total: int = Field(..., description="Maximum total score")
    classifications: dict[str, float] = Field(
        ..., description="Minimum percentage per classification"
    )
    factors: list[FactorMethodology] = Field(default_factory=list)


class ScoreRequest(BaseModel):
    """Caller-supplied financial facts to score without fetching."""

    ticker: str = Field(default="CUSTOM", description="Label for the record")
    market_cap: Optional[float] = None
    price: Optional[float] = None
    high_52w: Optional[float] = None
    low_52w: Optional[float] = None
    free_cash_flow: Optional[float] = None
    book_value: Optional[float] = None
    ebitda_growth: Optional[float] = None
    asset_growth: Optional[float] = None
    ebitda_margin: Optional[float] = None
    roa: Optional[float] = None
    price_6_months_ago: Optional[float] = None
    pays_dividend: Optional[bool] = None
    dividend_yield: Optional[float] = None
