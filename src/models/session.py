from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from src.models.enums import SessionState


class CallSession(BaseModel):
    """Point-in-time snapshot of a call session's observable state."""

    model_config = ConfigDict(frozen=True)

    state: SessionState = SessionState.IDLE
    microphone_muted: bool = False
    camera_off: bool = False
    target_contact: str | None = None
