"""Error taxonomy for the emergency core.

Every error here is recoverable by retrying the user action; none is fatal
to the process.  Channel dispatch has no error type because resolution is
total.
"""

from __future__ import annotations

from enum import StrEnum


class LocationErrorKind(StrEnum):
    __slots__ = ()

    PERMISSION_DENIED = "permission_denied"
    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"
    BUSY = "busy"


class MediaErrorKind(StrEnum):
    __slots__ = ()

    MEDIA_UNAVAILABLE = "media_unavailable"


class NotifyErrorKind(StrEnum):
    __slots__ = ()

    NETWORK_FAILURE = "network_failure"


class RescueGuardError(Exception):
    """Base class for errors raised by the emergency core."""

    retryable: bool = True

    def __init__(self, kind: StrEnum, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind}: {detail}" if detail else str(kind))


class LocationError(RescueGuardError):
    def __init__(self, kind: LocationErrorKind, detail: str = "") -> None:
        super().__init__(kind, detail)


class MediaError(RescueGuardError):
    def __init__(
        self, kind: MediaErrorKind = MediaErrorKind.MEDIA_UNAVAILABLE, detail: str = ""
    ) -> None:
        super().__init__(kind, detail)


class NotifyError(RescueGuardError):
    def __init__(
        self, kind: NotifyErrorKind = NotifyErrorKind.NETWORK_FAILURE, detail: str = ""
    ) -> None:
        super().__init__(kind, detail)


class SessionStateError(RuntimeError):
    """A session operation was invoked from a state that does not allow it."""
