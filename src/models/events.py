from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from src.models.enums import EventKind


class CoreEvent(BaseModel):
    """A structured notice emitted by the core for whatever presents it."""

    kind: EventKind
    payload: dict[str, Any] = Field(default_factory=dict)
    emitted_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
