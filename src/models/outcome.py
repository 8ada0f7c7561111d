from __future__ import annotations

from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field

from src.models.dispatch import DispatchResult
from src.models.enums import ActionStatus
from src.models.location import Position
from src.models.session import CallSession


class EmergencyOutcome(BaseModel):
    """What happened during one user-initiated emergency action."""

    action_id: str = Field(default_factory=lambda: uuid4().hex)
    status: ActionStatus = ActionStatus.COMPLETED
    position: Position | None = None
    position_source: Literal["fresh", "cached"] | None = None
    dispatch: DispatchResult | None = None
    session: CallSession | None = None
    alert_delivered: bool = False
    notify_error: str | None = None
    error: str | None = None


class ShareOutcome(BaseModel):
    """Result of sharing the user's location."""

    shared: bool
    method: Literal["share", "clipboard"] | None = None
    text: str | None = None
    error: str | None = None
