"""
Shelfmark Backend: Health Check Route
=======================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Pings MongoDB through the shared MongoStore and reports the result.
Who:   Called by container health checks, load balancers, and monitoring.

Status levels:
    - healthy:   Document store answered the ping
    - unhealthy: Document store unreachable or not configured

The endpoint always answers 200 so a misconfigured store is reported in
the body instead of making the process look dead.
"""

import logging
import time

from fastapi import APIRouter, Request

from app import __version__
from app.schemas.book import HealthResponse
from app.telemetry import is_telemetry_enabled

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Initialized once when the module loads
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description=(
        "Returns the health status of the backend service and its document store. "
        "Used by container health checks and load balancers."
    ),
)
async def health_check(request: Request) -> HealthResponse:
    store = getattr(request.app.state, "store", None)
    connected = store is not None and await store.ping()
    if not connected:
        logger.warning("Health check: document store unreachable")

    return HealthResponse(
        status="healthy" if connected else "unhealthy",
        version=__version__,
        database="connected" if connected else "disconnected",
        telemetry="enabled" if is_telemetry_enabled() else "disabled",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
