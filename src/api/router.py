"""Main API router combining all v1 route modules.

Aggregates all routers under the ``/api/v1`` prefix so the
FastAPI application only needs to include a single router.

Includes:
    * Health: liveness and readiness probes
    * Dispatch: pure channel resolution to deep links
    * Directory: provider search, details, directions, refresh
    * Emergency: emergency actions, one-tap assistance, location sharing
    * Session: in-app call controls
    * Events: polling for core notices
"""

from __future__ import annotations

from fastapi import APIRouter

from src.api.v1 import directory, dispatch, emergency, events, health, session

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health.router)
api_router.include_router(dispatch.router)
api_router.include_router(directory.router)
api_router.include_router(emergency.router)
api_router.include_router(session.router)
api_router.include_router(events.router)
