"""Request-scoped dependencies shared by the v1 routers."""

from __future__ import annotations

from fastapi import HTTPException, Request

from config.settings import settings
from src.models.enums import Platform
from src.services.orchestrator import EmergencyOrchestrator
from src.services.platform import detect_platform


def get_platform(request: Request) -> Platform:
    """Derive the caller's platform once, from the User-Agent header."""
    return detect_platform(
        request.headers.get("user-agent"),
        default=Platform(settings.default_platform),
    )


def get_orchestrator(request: Request) -> EmergencyOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Emergency orchestrator not available")
    return orchestrator
