"""FastAPI dependencies resolving the per-app screener objects."""

from __future__ import annotations

from fastapi import Request

from multibagger.server.services.screener_service import ScreenerService


def get_screener_service(request: Request) -> ScreenerService:
    return request.app.state.screener.service
