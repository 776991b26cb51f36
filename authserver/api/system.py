"""System status API endpoints."""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from authserver.config import settings
from authserver.schemas.system import HealthResponse

VERSION = "0.1.0"

router = APIRouter(tags=["system"])


@router.get("/")
def root():
    """Server info."""
    return {
        "name": settings.server_name,
        "version": VERSION,
        "status": "running",
    }


@router.get("/health", response_model=HealthResponse)
def health(request_obj: Request):
    """Lightweight health check (no auth required)."""
    started_at = getattr(request_obj.app.state, "started_at", time.monotonic())
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime=round(time.monotonic() - started_at, 3),
        environment=settings.environment,
    )
