"""FastAPI application entrypoint."""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import uvicorn
from fastapi import APIRouter, FastAPI
from loguru import logger

from multibagger import __version__
from multibagger.screener.config import ScreenerSettings, load_settings
from multibagger.screener.container import Screener, build_screener
from multibagger.server.api.routers.cache import create_cache_router
from multibagger.server.api.routers.scoring import create_scoring_router
from multibagger.server.api.routers.screener import create_screener_router
from multibagger.server.api.schemas.base import SuccessResponse
from multibagger.server.api.schemas.screener import HealthData
from multibagger.utils.logging import configure_logging

API_PREFIX = "/api"


def _create_health_router() -> APIRouter:
    router = APIRouter(tags=["health"])

    @router.get("/health", response_model=SuccessResponse[HealthData])
    async def health() -> SuccessResponse[HealthData]:
        return SuccessResponse.create(data=HealthData(version=__version__))

    return router


def create_app(
    settings: Optional[ScreenerSettings] = None,
    screener: Optional[Screener] = None,
) -> FastAPI:
    """Create the API app.

    When ``screener`` is given it is used as-is and left open on shutdown;
    otherwise one is built from ``settings`` at startup and closed on exit.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if screener is not None:
            app.state.screener = screener
            yield
            return
        owned = build_screener(settings or load_settings())
        app.state.screener = owned
        try:
            yield
        finally:
            await owned.aclose()
            logger.info("Screener shut down")

    app = FastAPI(
        title="Multibagger Screener",
        version=__version__,
        lifespan=lifespan,
    )
    if screener is not None:
        app.state.screener = screener
    app.include_router(_create_health_router(), prefix=API_PREFIX)
    app.include_router(create_screener_router(), prefix=API_PREFIX)
    app.include_router(create_cache_router(), prefix=API_PREFIX)
    app.include_router(create_scoring_router(), prefix=API_PREFIX)
    return app


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    host = os.environ.get("MULTIBAGGER_HOST", "127.0.0.1")
    port = int(os.environ.get("MULTIBAGGER_PORT", "8000"))
    logger.info("Starting Multibagger Screener on {host}:{port}", host=host, port=port)
    uvicorn.run(create_app(settings), host=host, port=port)


if __name__ == "__main__":
    main()
