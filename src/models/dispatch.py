from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.enums import Channel, Platform, Transport

_HAS_DIGIT = re.compile(r"\d")


class DispatchRequest(BaseModel):
    """Who to reach, how the user wants to reach them, and from which device."""

    model_config = ConfigDict(frozen=True)

    contact: str = Field(..., min_length=1, max_length=32)
    desired_channel: Channel
    platform: Platform
    message: str | None = Field(default=None, max_length=1000)

    @field_validator("contact")
    @classmethod
    def _contact_has_digits(cls, value: str) -> str:
        value = value.strip()
        if not _HAS_DIGIT.search(value):
            raise ValueError("contact must contain a phone number")
        return value


class TransportAction(BaseModel):
    """Deep-link descriptor handed to the host environment."""

    model_config = ConfigDict(frozen=True)

    transport: Transport
    url: str
    instruction: str = ""


class DispatchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    chosen_channel: Channel
    action: TransportAction
    was_fallback: bool = False
