"""
SnipShare Backend: Health Check Route
=======================================

What:  GET /health for container health checks and load balancers.
How:   Pings the database with SELECT 1 and reads the quote client's circuit
       breaker state (no outbound call, so health checks never burn quote API quota).

Status levels:
    healthy:   database reachable, quote breaker closed          (HTTP 200)
    degraded:  database reachable, quote breaker open/half-open  (HTTP 200)
    unhealthy: database unreachable                              (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Request, Response

from snipshare import __version__
from snipshare.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description=(
        "Reports database connectivity, quote API circuit state, active session "
        "count and uptime. Returns 503 when the database is unreachable."
    ),
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    overall = "healthy"

    database = request.app.state.database
    if await database.ping():
        db_status = "connected"
    else:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503

    breaker_state = request.app.state.quote_service.health_check()
    if breaker_state == "closed":
        quote_status = "available"
    else:
        quote_status = "circuit_" + breaker_state
        if overall == "healthy":
            overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        quote_api=quote_status,
        active_sessions=request.app.state.session_store.active_count,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
