from __future__ import annotations

from enum import StrEnum


class Platform(StrEnum):
    __slots__ = ()

    IOS = "ios"
    ANDROID = "android"
    DESKTOP = "desktop"


class Channel(StrEnum):
    __slots__ = ()

    VOICE = "voice"
    VIDEO = "video"
    CHAT = "chat"


class Transport(StrEnum):
    """Concrete deep-link transports the dispatcher can emit."""

    __slots__ = ()

    TELEPHONY = "telephony"
    FACETIME = "facetime"
    MESSAGING = "messaging"


class ProviderCategory(StrEnum):
    __slots__ = ()

    GENERAL_HOSPITAL = "general_hospital"
    SPECIALIST = "specialist"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS: dict[ProviderCategory, str] = {
    ProviderCategory.GENERAL_HOSPITAL: "General Hospital",
    ProviderCategory.SPECIALIST: "Specialist",
}


class SessionState(StrEnum):
    __slots__ = ()

    IDLE = "idle"
    REQUESTING = "requesting"
    CONNECTED = "connected"
    ENDED = "ended"


class EmergencyKind(StrEnum):
    """One-tap assistance categories."""

    __slots__ = ()

    MEDICAL = "medical"
    POLICE = "police"
    FIRE = "fire"
    AMBULANCE = "ambulance"


class ActionStatus(StrEnum):
    __slots__ = ()

    COMPLETED = "completed"
    ABORTED = "aborted"          # location could not be obtained
    BUSY = "busy"                # same action already in flight
    SESSION_FAILED = "session_failed"
    SESSION_BUSY = "session_busy"


class EventKind(StrEnum):
    __slots__ = ()

    LOCATION_ACQUIRED = "location.acquired"
    LOCATION_FAILED = "location.failed"
    DISPATCH_RESOLVED = "dispatch.resolved"
    DISPATCH_FALLBACK = "dispatch.fallback"
    SESSION_STARTED = "session.started"
    SESSION_FAILED = "session.failed"
    SESSION_ENDED = "session.ended"
    SESSION_BUSY = "session.busy"
    MICROPHONE_TOGGLED = "session.microphone_toggled"
    CAMERA_TOGGLED = "session.camera_toggled"
    TOGGLE_IGNORED = "session.toggle_ignored"
    ALERT_SENT = "alert.sent"
    ALERT_FAILED = "alert.failed"
    LOCATION_SHARED = "location.shared"
    LOCATION_COPIED = "location.copied"
    SHARE_FAILED = "location.share_failed"
    DIRECTIONS_OPENED = "directions.opened"
    DIRECTIONS_UNAVAILABLE = "directions.unavailable"
    ACTION_BUSY = "action.busy"
