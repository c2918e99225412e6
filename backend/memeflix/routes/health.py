"""
Memeflix Backend — Health Check Route
======================================

What:  Health check endpoint for monitoring and container probes.
How:   Checks the database (SELECT 1) and the media directory.

Status levels:
    healthy     database reachable and media directory present
    degraded    database reachable, media directory missing (API works,
                images 404)
    unhealthy   database unreachable
"""

import logging
import time
from pathlib import Path

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from memeflix import __version__
from memeflix.config import settings
from memeflix.database import engine
from memeflix.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    db_status = "connected"
    media_status = "available"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    if not Path(settings.media_root).is_dir():
        media_status = "missing"
        if overall == "healthy":
            overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        media=media_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
