"""Emergency action endpoints for RescueGuard.

Every emergency endpoint answers 200 with an :class:`EmergencyOutcome`;
aborted, busy or partially failed actions are reported in ``status``,
``error`` and ``notify_error`` rather than as HTTP errors.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.api.deps import get_orchestrator, get_platform
from src.models.enums import Channel, EmergencyKind, Platform
from src.models.location import Position
from src.models.outcome import EmergencyOutcome, ShareOutcome
from src.services.orchestrator import EmergencyOrchestrator

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/emergency", tags=["emergency"])


class EmergencyActionRequest(BaseModel):
    channel: Channel
    contact: str | None = Field(
        default=None,
        max_length=32,
        pattern=r".*\d.*",
        description="Defaults to the configured responder contact",
    )
    in_app_session: bool = Field(
        default=False,
        description="Video only: start an in-app session instead of a deep link",
    )
    message: str | None = Field(default=None, max_length=1000)
    alert_message: str | None = Field(default=None, max_length=1000)
    force_location_refresh: bool = False


class LocationReport(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


@router.post("/action", response_model=EmergencyOutcome)
async def emergency_action(
    body: EmergencyActionRequest,
    platform: Platform = Depends(get_platform),
    orchestrator: EmergencyOrchestrator = Depends(get_orchestrator),
) -> EmergencyOutcome:
    """Locate, connect over the requested channel and alert the backend."""
    outcome = await orchestrator.emergency_action(
        body.channel,
        contact=body.contact,
        in_app_session=body.in_app_session,
        message=body.message,
        alert_message=body.alert_message,
        platform=platform,
        force_location_refresh=body.force_location_refresh,
    )
    logger.info(
        "api.emergency.action",
        action_id=outcome.action_id,
        channel=body.channel.value,
        status=outcome.status.value,
    )
    return outcome


@router.post("/assist/{kind}", response_model=EmergencyOutcome)
async def request_assistance(
    kind: EmergencyKind,
    platform: Platform = Depends(get_platform),
    orchestrator: EmergencyOrchestrator = Depends(get_orchestrator),
) -> EmergencyOutcome:
    """One-tap medical, police, fire or ambulance assistance over chat."""
    return await orchestrator.request_assistance(kind, platform=platform)


@router.post("/location", response_model=Position)
async def report_location(
    body: LocationReport,
    orchestrator: EmergencyOrchestrator = Depends(get_orchestrator),
) -> Position:
    """Record a fix the client obtained from its own geolocation."""
    return orchestrator.update_position(body.latitude, body.longitude)


@router.post("/share-location", response_model=ShareOutcome)
async def share_location(
    orchestrator: EmergencyOrchestrator = Depends(get_orchestrator),
) -> ShareOutcome:
    return await orchestrator.share_location()
