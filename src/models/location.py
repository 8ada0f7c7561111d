from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


class Position(BaseModel):
    """A single location fix. Never mutated; a newer fix replaces it."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    captured_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def coordinates(self) -> str:
        """``lat,lng`` as used in map URLs."""
        return f"{self.latitude},{self.longitude}"
