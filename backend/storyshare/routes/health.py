"""
StoryShare Backend — Health Check Route
=========================================

What:  Health check endpoint for monitoring and load balancer checks.
How:   Pings MongoDB through the shared connection and heads the bucket.

Status levels:
    - healthy:   database and storage reachable (HTTP 200)
    - degraded:  database up, storage unreachable (HTTP 200; reads still work)
    - unhealthy: database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Response

from storyshare import __version__
from storyshare.database import connection_manager
from storyshare.exceptions import StoryShareError
from storyshare.schemas.story import ApiResponse, HealthResponse
from storyshare.services.storage_service import storage_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=ApiResponse[HealthResponse],
    summary="Service health check",
)
async def health_check(response: Response) -> ApiResponse[HealthResponse]:
    db_status = "connected"
    storage_status = "available"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        db = await connection_manager.get_connection()
        await db.command("ping")
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        detail = e.message if isinstance(e, StoryShareError) else str(e)
        logger.warning("Health check: database unreachable: %s", detail)

    # ── Check Object Storage ──────────────────────────────────────────────
    if not await storage_service.health_check():
        storage_status = "unavailable"
        overall = "degraded" if overall != "unhealthy" else overall

    if overall == "unhealthy":
        response.status_code = 503

    return ApiResponse(
        success=overall != "unhealthy",
        data=HealthResponse(
            status=overall,
            version=__version__,
            database=db_status,
            storage=storage_status,
            uptime_seconds=round(time.time() - _start_time, 2),
        ),
    )
