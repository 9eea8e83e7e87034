"""Health check endpoint router."""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Literal

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from chatanalyzer import __version__
from chatanalyzer.web.dependencies import OptionalLogSource

router = APIRouter(tags=["health"])

SERVICE_NAME = "chat-ai-analyzer"

_start_time = time.time()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["ok", "degraded"]
    service: str
    version: str
    timestamp: datetime
    uptime_seconds: float
    database_loaded: bool = Field(description="Whether a chat log is open")
    generator_enabled: bool = Field(description="Whether a text generator is configured")


@router.get("/health", response_model=HealthResponse)
@router.get("/api/health", response_model=HealthResponse, include_in_schema=False)
async def health(request: Request, source: OptionalLogSource) -> HealthResponse:
    """Report service status; degraded while no chat log is loaded."""
    loaded = source is not None and source.is_open
    return HealthResponse(
        status="ok" if loaded else "degraded",
        service=SERVICE_NAME,
        version=__version__,
        timestamp=datetime.now(UTC),
        uptime_seconds=round(time.time() - _start_time, 2),
        database_loaded=loaded,
        generator_enabled=request.app.state.generator_enabled,
    )
