"""Host-environment adapters used when the core runs inside the API service.

The service has no screen, dialer or camera of its own, so these adapters
stand in for the device: links are recorded for the client to open, media
is simulated, and location comes from an optional fixed fix or from what
the client reports.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

import structlog

from src.models.dispatch import TransportAction
from src.models.enums import Transport
from src.services.errors import LocationError, LocationErrorKind

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Share / clipboard protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class ShareCapability(Protocol):
    async def share(self, title: str, text: str) -> None: ...


@runtime_checkable
class Clipboard(Protocol):
    async def write_text(self, text: str) -> None: ...


class InMemoryClipboard:
    __slots__ = ("text",)

    def __init__(self) -> None:
        self.text: str | None = None

    async def write_text(self, text: str) -> None:
        self.text = text


# ---------------------------------------------------------------------------
# Geolocation
# ---------------------------------------------------------------------------


class FixedGeolocation:
    """Always reports the same coordinates."""

    __slots__ = ("_latitude", "_longitude")

    def __init__(self, latitude: float, longitude: float) -> None:
        self._latitude = latitude
        self._longitude = longitude

    async def current_position(self) -> tuple[float, float]:
        return self._latitude, self._longitude


class UnavailableGeolocation:
    """A host with no location capability at all."""

    __slots__ = ()

    async def current_position(self) -> tuple[float, float]:
        raise LocationError(LocationErrorKind.UNAVAILABLE, "no geolocation capability on this host")


# ---------------------------------------------------------------------------
# Link launching
# ---------------------------------------------------------------------------


class DeferredLinkLauncher:
    """Records links for the client to open.

    Transports listed in ``unsupported`` are rejected, which drives the
    dispatcher's messaging fallback.
    """

    __slots__ = ("_opened", "_unsupported")

    def __init__(self, unsupported: Iterable[Transport] = (), max_history: int = 100) -> None:
        self._unsupported = frozenset(Transport(t) for t in unsupported)
        self._opened: deque[TransportAction] = deque(maxlen=max_history)

    @property
    def opened(self) -> list[TransportAction]:
        return list(self._opened)

    async def open(self, action: TransportAction) -> bool:
        if action.transport in self._unsupported:
            logger.info("host.link_rejected", transport=action.transport.value)
            return False
        self._opened.append(action)
        logger.info("host.link_opened", transport=action.transport.value, url=action.url)
        return True


# ---------------------------------------------------------------------------
# Media
# ---------------------------------------------------------------------------


class SimulatedTrack:
    __slots__ = ("enabled", "kind", "stopped")

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self.enabled = True
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True
        self.enabled = False


class SimulatedMediaHandle:
    """Local and remote tracks that are only ever stopped, never streamed."""

    __slots__ = ("contact", "local_tracks", "released", "remote_tracks")

    def __init__(self, contact: str, *, video: bool) -> None:
        self.contact = contact
        kinds = ("audio", "video") if video else ("audio",)
        self.local_tracks = [SimulatedTrack(kind) for kind in kinds]
        self.remote_tracks = [SimulatedTrack(kind) for kind in kinds]
        self.released = False

    def set_microphone_enabled(self, enabled: bool) -> None:
        for track in self.local_tracks:
            if track.kind == "audio":
                track.enabled = enabled

    def set_camera_enabled(self, enabled: bool) -> None:
        for track in self.local_tracks:
            if track.kind == "video":
                track.enabled = enabled

    async def release(self) -> None:
        for track in (*self.local_tracks, *self.remote_tracks):
            track.stop()
        self.released = True


class SimulatedMediaCapability:
    __slots__ = ()

    async def open(self, contact: str, *, video: bool = True) -> SimulatedMediaHandle:
        logger.debug("host.media_opened", contact=contact, video=video)
        return SimulatedMediaHandle(contact, video=video)


class UnavailableMediaCapability:
    """A host without camera or microphone access."""

    __slots__ = ()

    async def open(self, contact: str, *, video: bool = True) -> SimulatedMediaHandle:
        raise RuntimeError("no media devices available on this host")
