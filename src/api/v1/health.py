"""Health check endpoints for RescueGuard API v1.

Liveness is unconditional; readiness reports which collaborators were
wired at startup so a load balancer only routes to a usable instance.
"""

from __future__ import annotations

import time

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str
    version: str
    uptime_seconds: float


class ReadinessResponse(BaseModel):
    """Readiness check response with individual service statuses."""

    status: str
    checks: dict[str, str]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Liveness probe.

    Returns 200 if the application process is running.  Does *not* check
    downstream dependencies.
    """
    start_time: float = getattr(request.app.state, "start_time", time.time())
    uptime = time.time() - start_time

    return HealthResponse(
        status="healthy",
        version=request.app.version,
        uptime_seconds=round(uptime, 2),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request) -> ReadinessResponse:
    """Readiness probe covering the orchestrator, directory and alerting."""
    checks: dict[str, str] = {}
    all_ok = True

    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is not None:
        checks["orchestrator"] = "ok"
    else:
        checks["orchestrator"] = "not_initialised"
        all_ok = False

    directory = getattr(request.app.state, "directory", None)
    if directory is not None and len(directory) > 0:
        checks["directory"] = f"ok ({len(directory)} providers loaded)"
    else:
        checks["directory"] = "no_data"
        all_ok = False

    notifier = getattr(request.app.state, "notifier", None)
    if notifier is None:
        checks["alerts"] = "not_initialised"
    elif notifier.enabled:
        checks["alerts"] = "ok"
    else:
        checks["alerts"] = "not_configured"

    location = getattr(request.app.state, "location", None)
    if location is not None and location.last_known is not None:
        checks["location"] = "ok"
    else:
        checks["location"] = "no_fix"

    status = "ready" if all_ok else "degraded"
    if not all_ok:
        logger.warning("health.readiness_degraded", checks=checks)

    return ReadinessResponse(status=status, checks=checks)
