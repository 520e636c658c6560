"""Screening API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Path, Query

import multibagger.screener.schemas as screener_schemas
from multibagger.screener.constants import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_TOP_LIMIT,
    DEFAULT_TOP_MIN_PERCENTAGE,
)
from multibagger.screener.errors import ScreeningError
from multibagger.server.api.deps import get_screener_service
from multibagger.server.api.schemas.base import SuccessResponse
from multibagger.server.api.schemas.screener import BulkScreenRequest, ScreeningListData
from multibagger.server.services.screener_service import ScreenerService


def create_screener_router() -> APIRouter:
    """Create screener router."""
    router = APIRouter(
        prefix="/screen",
        tags=["screen"],
        responses={404: {"description": "Not found"}},
    )

    @router.get(
        "/top",
        response_model=SuccessResponse[ScreeningListData],
        summary="Top scorers",
        description="Historical screenings at or above a percentage, best first.",
    )
    async def get_top_scorers(
        limit: int = Query(DEFAULT_TOP_LIMIT, ge=1, le=500),
        min_percentage: float = Query(
            DEFAULT_TOP_MIN_PERCENTAGE, alias="minPercentage", ge=0, le=100
        ),
        service: ScreenerService = Depends(get_screener_service),
    ) -> SuccessResponse[ScreeningListData]:
        rows = service.top_scorers(min_percentage=min_percentage, limit=limit)
        return SuccessResponse.create(data=ScreeningListData(results=rows))

    @router.get(
        "/history/{ticker}",
        response_model=SuccessResponse[ScreeningListData],
        summary="Ticker history",
        description="Past screenings of one ticker, most recent first.",
    )
    async def get_ticker_history(
        ticker: str = Path(..., description="Ticker symbol"),
        limit: int = Query(DEFAULT_HISTORY_LIMIT, ge=1, le=500),
        service: ScreenerService = Depends(get_screener_service),
    ) -> SuccessResponse[ScreeningListData]:
        rows = service.history(ticker, limit=limit)
        return SuccessResponse.create(data=ScreeningListData(results=rows))

    @router.post(
        "/bulk",
        response_model=SuccessResponse[screener_schemas.BulkScreenResult],
        summary="Bulk screen",
        description="Best-effort screening of many tickers.",
    )
    async def bulk_screen(
        request: BulkScreenRequest,
        service: ScreenerService = Depends(get_screener_service),
    ) -> SuccessResponse[screener_schemas.BulkScreenResult]:
        result = await service.bulk_screen(
            tickers=request.tickers,
            limit=request.limit,
            min_market_cap=request.min_market_cap,
            max_market_cap=request.max_market_cap,
            skip_prescreen=request.skip_prescreen,
        )
        return SuccessResponse.create(
            data=result, msg=f"Screened {len(result.results)} tickers"
        )

    @router.get(
        "/{ticker}",
        response_model=SuccessResponse[screener_schemas.TickerScreenResult],
        summary="Screen a ticker",
        description="Fetch or reuse financial data for a ticker and score it.",
    )
    async def screen_ticker(
        ticker: str = Path(..., description="Ticker symbol"),
        service: ScreenerService = Depends(get_screener_service),
    ) -> SuccessResponse[screener_schemas.TickerScreenResult]:
        try:
            result = await service.screen_ticker(ticker)
        except ScreeningError as exc:
            status_code = 404 if exc.not_found else 502
            raise HTTPException(status_code=status_code, detail=str(exc)) from exc
        return SuccessResponse.create(data=result)

    return router
