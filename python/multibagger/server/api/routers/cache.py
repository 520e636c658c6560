"""Record cache maintenance router."""

from __future__ import annotations

from fastapi import APIRouter, Depends

import multibagger.screener.schemas as screener_schemas
from multibagger.server.api.deps import get_screener_service
from multibagger.server.api.schemas.base import SuccessResponse
from multibagger.server.api.schemas.screener import CachePurgeData
from multibagger.server.services.screener_service import ScreenerService


def create_cache_router() -> APIRouter:
    """Create cache router."""
    router = APIRouter(prefix="/cache", tags=["cache"])

    @router.get(
        "/stats",
        response_model=SuccessResponse[screener_schemas.CacheStats],
        summary="Cache statistics",
    )
    async def get_cache_stats(
        service: ScreenerService = Depends(get_screener_service),
    ) -> SuccessResponse[screener_schemas.CacheStats]:
        return SuccessResponse.create(data=service.cache_stats())

    @router.delete(
        "/expired",
        response_model=SuccessResponse[CachePurgeData],
        summary="Purge stale entries",
    )
    async def purge_expired(
        service: ScreenerService = Depends(get_screener_service),
    ) -> SuccessResponse[CachePurgeData]:
        deleted = service.purge_expired()
        return SuccessResponse.create(
            data=CachePurgeData(deleted=deleted),
            msg=f"Cleared {deleted} expired entries",
        )

    @router.delete(
        "",
        response_model=SuccessResponse[CachePurgeData],
        summary="Purge all entries",
    )
    async def purge_all(
        service: ScreenerService = Depends(get_screener_service),
    ) -> SuccessResponse[CachePurgeData]:
        deleted = service.purge_all()
        return SuccessResponse.create(
            data=CachePurgeData(deleted=deleted), msg=f"Cleared {deleted} entries"
        )

    return router
