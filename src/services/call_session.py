"""Lifecycle of one in-app media session.

State machine::

    idle --start_session--> requesting --media ok--> connected
                                 |                       |
                                 +--media failure--+     |
                                                   v     v
                  (any state) --end_session-->   ended (terminal)

Transitions only move forward.  ``end_session`` is the cancellation
primitive: it is valid from every state, may race an in-flight
``start_session``, and releases the acquired media exactly once no matter
how many times it runs.  Use the controller as an async context manager
to guarantee release on every exit path.

Actual audio/video transport is supplied by a :class:`MediaCapability`.
"""

from __future__ import annotations

import asyncio
from types import TracebackType
from typing import Final, Protocol, runtime_checkable

import structlog

from src.models.enums import EventKind, SessionState
from src.models.session import CallSession
from src.services.errors import MediaError, MediaErrorKind, SessionStateError
from src.services.events import EventSink, emit

logger = structlog.get_logger(__name__)

_ORDER: Final[dict[SessionState, int]] = {
    SessionState.IDLE: 0,
    SessionState.REQUESTING: 1,
    SessionState.CONNECTED: 2,
    SessionState.ENDED: 3,
}


# ---------------------------------------------------------------------------
# Media collaborator protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class MediaHandle(Protocol):
    """Acquired local/remote tracks for one session."""

    def set_microphone_enabled(self, enabled: bool) -> None: ...

    def set_camera_enabled(self, enabled: bool) -> None: ...

    async def release(self) -> None: ...


@runtime_checkable
class MediaCapability(Protocol):
    """Acquires media for a session; raises if the devices are unavailable."""

    async def open(self, contact: str, *, video: bool = True) -> MediaHandle: ...


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class CallSessionController:
    """Owns exactly one call session from request to teardown."""

    __slots__ = (
        "_camera_off",
        "_contact",
        "_events",
        "_handle",
        "_media",
        "_microphone_muted",
        "_release_count",
        "_state",
    )

    def __init__(self, media: MediaCapability, *, events: EventSink | None = None) -> None:
        self._media = media
        self._events = events
        self._state = SessionState.IDLE
        self._contact: str | None = None
        self._handle: MediaHandle | None = None
        self._microphone_muted = False
        self._camera_off = False
        self._release_count = 0

    async def __aenter__(self) -> CallSessionController:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.end_session()

    # ------------------------------------------------------------------
    # State inspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state in (SessionState.REQUESTING, SessionState.CONNECTED)

    @property
    def release_count(self) -> int:
        """How many times media was released (0 or 1)."""
        return self._release_count

    @property
    def session(self) -> CallSession:
        return CallSession(
            state=self._state,
            microphone_muted=self._microphone_muted,
            camera_off=self._camera_off,
            target_contact=self._contact,
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def start_session(self, contact: str, *, video: bool = True) -> CallSession:
        """Request media and connect.

        Raises
        ------
        SessionStateError
            If the session has already been started or ended.
        MediaError
            If the media capability could not provide tracks.  The session
            is ``ended`` when this is raised.
        """
        if self._state is not SessionState.IDLE:
            raise SessionStateError(f"cannot start a session in state {self._state.value}")

        self._contact = contact
        self._advance(SessionState.REQUESTING)
        logger.info("call_session.requesting", contact=contact, video=video)

        try:
            handle = await self._media.open(contact, video=video)
        except asyncio.CancelledError:
            await self.end_session()
            raise
        except Exception as exc:
            if self._state is SessionState.ENDED:
                # Ended while waiting; the failure no longer matters.
                return self.session
            self._advance(SessionState.ENDED)
            logger.warning("call_session.media_unavailable", contact=contact, exc_info=True)
            emit(self._events, EventKind.SESSION_FAILED, contact=contact, retryable=True, error=str(exc))
            raise MediaError(MediaErrorKind.MEDIA_UNAVAILABLE, str(exc)) from exc

        if self._state is SessionState.ENDED:
            # end_session() won the race: release the late handle right away.
            self._handle = handle
            await self._release()
            logger.info("call_session.late_media_released", contact=contact)
            return self.session

        self._handle = handle
        self._camera_off = not video
        self._advance(SessionState.CONNECTED)
        logger.info("call_session.connected", contact=contact)
        emit(self._events, EventKind.SESSION_STARTED, contact=contact, video=video)
        return self.session

    def toggle_microphone(self) -> bool:
        """Flip mute while connected; returns the (possibly unchanged) muted flag."""
        if self._state is not SessionState.CONNECTED or self._handle is None:
            self._ignored("microphone")
            return self._microphone_muted

        self._microphone_muted = not self._microphone_muted
        self._handle.set_microphone_enabled(not self._microphone_muted)
        emit(self._events, EventKind.MICROPHONE_TOGGLED, muted=self._microphone_muted)
        return self._microphone_muted

    def toggle_camera(self) -> bool:
        """Flip the camera while connected; returns the (possibly unchanged) camera-off flag."""
        if self._state is not SessionState.CONNECTED or self._handle is None:
            self._ignored("camera")
            return self._camera_off

        self._camera_off = not self._camera_off
        self._handle.set_camera_enabled(not self._camera_off)
        emit(self._events, EventKind.CAMERA_TOGGLED, camera_off=self._camera_off)
        return self._camera_off

    async def end_session(self) -> CallSession:
        """Move to ``ended`` and release media.  Idempotent."""
        if self._state is SessionState.ENDED and self._handle is None:
            return self.session

        was = self._state
        self._advance(SessionState.ENDED)
        await self._release()
        if was is not SessionState.ENDED:
            logger.info("call_session.ended", contact=self._contact, previous_state=was.value)
            emit(self._events, EventKind.SESSION_ENDED, contact=self._contact, previous_state=was.value)
        return self.session

    async def dispose(self) -> None:
        """Owner teardown hook; equivalent to :meth:`end_session`."""
        await self.end_session()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _advance(self, target: SessionState) -> None:
        if _ORDER[target] < _ORDER[self._state]:
            raise SessionStateError(f"illegal transition {self._state.value} -> {target.value}")
        self._state = target

    async def _release(self) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        self._release_count += 1
        try:
            await handle.release()
        except Exception:
            logger.warning("call_session.release_failed", contact=self._contact, exc_info=True)
        else:
            logger.info("call_session.released", contact=self._contact)

    def _ignored(self, control: str) -> None:
        logger.info("call_session.toggle_ignored", control=control, state=self._state.value)
        emit(self._events, EventKind.TOGGLE_IGNORED, control=control, state=self._state.value)
