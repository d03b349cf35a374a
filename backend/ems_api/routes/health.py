"""
EMS API — Health Check Route
==============================

What:  Health check endpoint for container probes and load balancers.
How:   Runs SELECT 1 on a pooled connection and reports whether spans are
       being exported.
When:  Periodically, from outside. Not traced (path has no "/ems") and not
       access-logged.

Status levels:
    - healthy:   database reachable (HTTP 200)
    - unhealthy: database unreachable (HTTP 503)

Trace export being disabled does not make the service unhealthy; requests
succeed either way.
"""

import logging
import time

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ems_api import __version__
from ems_api.config import settings
from ems_api.database import get_db_session
from ems_api.schemas.ems import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        tracing="exporting" if settings.otlp_headers else "disabled",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
