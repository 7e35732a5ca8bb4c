"""
SoulSocial Backend: Health Check Route
========================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Runs SELECT 1 against the database and reports how many realtime
       clients are connected to this process.
Who:   Docker health checks, load balancers, monitoring.

Status levels:
    - healthy:   database reachable
    - unhealthy: database unreachable (the API cannot serve anything useful)
"""

import logging
import time

from fastapi import APIRouter, Depends
from sqlalchemy import text

from app import __version__
from app.database import engine
from app.dependencies import get_broadcaster
from app.schemas.common import HealthResponse
from app.services.broadcaster import Broadcaster

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Track when the service started for uptime reporting
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        realtime_connections=broadcaster.connection_count,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
