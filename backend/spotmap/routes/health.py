"""
SpotMap Backend: Health Check Route
====================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Runs SELECT 1 against the spot store and reports whether location
       lookups are switched on.
Who:   Docker health checks, load balancers, monitoring.

Status levels:
    - healthy:   Database reachable, location lookup enabled (HTTP 200)
    - degraded:  Location lookup disabled; pages fall back to defaults (HTTP 200)
    - unhealthy: Database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from spotmap import __version__
from spotmap import database
from spotmap.schemas.common import HealthResponse
from spotmap.services.location_service import location_provider

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    location_status = "enabled"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Location Lookup ─────────────────────────────────────────────
    if not location_provider.is_enabled():
        location_status = "disabled"
        if overall == "healthy":
            overall = "degraded"

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        location=location_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
