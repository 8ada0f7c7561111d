"""In-app call session controls."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.deps import get_orchestrator
from src.models.enums import SessionState
from src.models.session import CallSession
from src.services.orchestrator import EmergencyOrchestrator

router = APIRouter(prefix="/session", tags=["session"])

_ACTIVE_STATES = frozenset({SessionState.REQUESTING, SessionState.CONNECTED})


class SessionResponse(BaseModel):
    active: bool
    session: CallSession | None = None


class ToggleResponse(BaseModel):
    control: str
    value: bool
    session: CallSession | None = None


@router.get("", response_model=SessionResponse)
async def get_session(
    orchestrator: EmergencyOrchestrator = Depends(get_orchestrator),
) -> SessionResponse:
    session = orchestrator.session
    return SessionResponse(active=session is not None and session.state in _ACTIVE_STATES, session=session)


@router.post("/microphone", response_model=ToggleResponse)
async def toggle_microphone(
    orchestrator: EmergencyOrchestrator = Depends(get_orchestrator),
) -> ToggleResponse:
    """Flip the microphone; ignored unless a session is connected."""
    muted = orchestrator.toggle_microphone()
    return ToggleResponse(control="microphone_muted", value=muted, session=orchestrator.session)


@router.post("/camera", response_model=ToggleResponse)
async def toggle_camera(
    orchestrator: EmergencyOrchestrator = Depends(get_orchestrator),
) -> ToggleResponse:
    """Flip the camera; ignored unless a session is connected."""
    off = orchestrator.toggle_camera()
    return ToggleResponse(control="camera_off", value=off, session=orchestrator.session)


@router.post("/end", response_model=SessionResponse)
async def end_session(
    orchestrator: EmergencyOrchestrator = Depends(get_orchestrator),
) -> SessionResponse:
    """End the active session.  Safe to call repeatedly."""
    session = await orchestrator.end_session()
    return SessionResponse(active=False, session=session)
