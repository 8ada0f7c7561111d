from src.models.dispatch import DispatchRequest, DispatchResult, TransportAction
from src.models.enums import (
    ActionStatus,
    Channel,
    EmergencyKind,
    EventKind,
    Platform,
    ProviderCategory,
    SessionState,
    Transport,
)
from src.models.events import CoreEvent
from src.models.location import Position
from src.models.outcome import EmergencyOutcome, ShareOutcome
from src.models.provider import Practitioner, Provider
from src.models.session import CallSession

__all__ = [
    "ActionStatus",
    "CallSession",
    "Channel",
    "CoreEvent",
    "DispatchRequest",
    "DispatchResult",
    "EmergencyKind",
    "EmergencyOutcome",
    "EventKind",
    "Platform",
    "Position",
    "Practitioner",
    "Provider",
    "ProviderCategory",
    "SessionState",
    "ShareOutcome",
    "Transport",
    "TransportAction",
]
