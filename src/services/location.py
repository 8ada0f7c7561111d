"""Location acquisition with a single in-flight request and a last-known cache.

The device capability is injected as a :class:`GeolocationCapability`.  At
most one acquisition runs at a time: concurrent callers either share the
pending result (``coalesce``) or are turned away immediately with
``LocationError(busy)`` (``reject``).  A successful fix replaces the cached
position; the cache never expires on its own.
"""

from __future__ import annotations

import asyncio
from typing import Literal, Protocol, runtime_checkable

import structlog

from src.models.location import Position
from src.services.errors import LocationError, LocationErrorKind

logger = structlog.get_logger(__name__)

BusyPolicy = Literal["coalesce", "reject"]


@runtime_checkable
class GeolocationCapability(Protocol):
    """Device location capability returning ``(latitude, longitude)``.

    May raise :class:`LocationError`; a ``PermissionError`` is treated as
    a denied permission and anything else as an unavailable fix.
    """

    async def current_position(self) -> tuple[float, float]: ...


class LocationProvider:
    """Owns the device location capability and the last known position."""

    __slots__ = ("_busy_policy", "_capability", "_default_timeout", "_last_known", "_pending")

    def __init__(
        self,
        capability: GeolocationCapability,
        *,
        default_timeout: float = 10.0,
        busy_policy: BusyPolicy = "coalesce",
    ) -> None:
        self._capability = capability
        self._default_timeout = default_timeout
        self._busy_policy = busy_policy
        self._last_known: Position | None = None
        self._pending: asyncio.Future[Position] | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def last_known(self) -> Position | None:
        return self._last_known

    @property
    def in_flight(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def record(self, position: Position) -> None:
        """Replace the cached position with an externally obtained fix."""
        self._last_known = position
        logger.info(
            "location.recorded",
            latitude=position.latitude,
            longitude=position.longitude,
        )

    async def acquire(self, timeout: float | None = None) -> Position:
        """Acquire a fresh position.

        Raises
        ------
        LocationError
            ``permission_denied``, ``unavailable``, ``timeout``, or ``busy``
            (only under the ``reject`` policy).
        """
        if self.in_flight:
            if self._busy_policy == "reject":
                logger.info("location.rejected_busy")
                raise LocationError(LocationErrorKind.BUSY, "an acquisition is already in progress")
            logger.debug("location.coalesced")
            # shield: a cancelled joiner must not cancel the shared acquisition
            return await asyncio.shield(self._pending)

        loop = asyncio.get_running_loop()
        self._pending = loop.create_future()
        pending = self._pending
        try:
            position = await self._acquire_once(timeout if timeout is not None else self._default_timeout)
        except BaseException as exc:
            if isinstance(exc, LocationError):
                pending.set_exception(exc)
            else:
                pending.set_exception(
                    LocationError(LocationErrorKind.UNAVAILABLE, "acquisition was interrupted")
                )
            # Joiners observe the exception; mark it retrieved for the owner.
            pending.exception()
            raise
        else:
            self._last_known = position
            pending.set_result(position)
            return position
        finally:
            if self._pending is pending:
                self._pending = None

    async def current(self, *, force_refresh: bool = False, timeout: float | None = None) -> tuple[Position, bool]:
        """Return the cached position, acquiring one if absent or forced.

        The boolean is ``True`` when the position was freshly acquired.
        """
        if self._last_known is not None and not force_refresh:
            return self._last_known, False
        return await self.acquire(timeout), True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _acquire_once(self, timeout: float) -> Position:
        try:
            latitude, longitude = await asyncio.wait_for(
                self._capability.current_position(), timeout=timeout
            )
        except TimeoutError as exc:
            logger.warning("location.timeout", timeout_seconds=timeout)
            raise LocationError(LocationErrorKind.TIMEOUT, f"no fix within {timeout}s") from exc
        except LocationError as exc:
            logger.warning("location.failed", kind=exc.kind.value)
            raise
        except PermissionError as exc:
            logger.warning("location.permission_denied")
            raise LocationError(LocationErrorKind.PERMISSION_DENIED, str(exc)) from exc
        except Exception as exc:
            logger.warning("location.unavailable", exc_info=True)
            raise LocationError(LocationErrorKind.UNAVAILABLE, str(exc)) from exc

        try:
            position = Position(latitude=latitude, longitude=longitude)
        except ValueError as exc:
            logger.warning("location.invalid_fix", latitude=latitude, longitude=longitude)
            raise LocationError(LocationErrorKind.UNAVAILABLE, "capability returned an invalid fix") from exc

        logger.info(
            "location.acquired",
            latitude=position.latitude,
            longitude=position.longitude,
        )
        return position
