"""Scoring methodology router."""

from __future__ import annotations

from fastapi import APIRouter

import multibagger.screener.schemas as screener_schemas
from multibagger.screener.constants import MAX_SCORE
from multibagger.screener.scoring import CLASSIFICATION_BANDS, METHODOLOGY, score_record
from multibagger.server.api.schemas.base import SuccessResponse
from multibagger.server.api.schemas.screener import (
    FactorMethodology,
    MethodologyData,
    ScoreRequest,
)


def create_scoring_router() -> APIRouter:
    """Create scoring router."""
    router = APIRouter(prefix="/scoring", tags=["scoring"])

    @router.get(
        "/methodology",
        response_model=SuccessResponse[MethodologyData],
        summary="Scoring methodology",
        description="Factors, bands and classification thresholds.",
    )
    async def get_methodology() -> SuccessResponse[MethodologyData]:
        data = MethodologyData(
            max_total=MAX_SCORE,
            classifications={label: threshold for threshold, label in CLASSIFICATION_BANDS},
            factors=[FactorMethodology(**item) for item in METHODOLOGY],
        )
        return SuccessResponse.create(data=data)

    @router.post(
        "/score",
        response_model=SuccessResponse[screener_schemas.ScoringResult],
        summary="Score supplied facts",
        description="Score caller-supplied financial facts without fetching data.",
    )
    async def score_facts(
        request: ScoreRequest,
    ) -> SuccessResponse[screener_schemas.ScoringResult]:
        record = screener_schemas.CanonicalFinancialRecord(
            **request.model_dump(exclude={"ticker"}), ticker=request.ticker.upper()
        )
        return SuccessResponse.create(data=score_record(record))

    return router
