"""Emergency orchestrator: location -> channel -> session or deep link -> alert.

One emergency action runs four sequential steps:

1. **Position** -- reuse the cached fix or acquire one.  If that fails the
   action is aborted; nothing is dispatched and no alert is sent.
2. **Resolve** -- map (contact, channel, platform) through the
   :class:`ChannelDispatcher`.
3. **Connect** -- video with an in-app session goes to a
   :class:`CallSessionController`; everything else opens the resolved deep
   link through the host launcher, falling back to messaging on rejection.
4. **Alert** -- forward the position to the :class:`AlertNotifier`.  A
   failure here is reported in the outcome but never undoes step 3.

A busy guard rejects a second invocation of the *same* action while the
first is still running.  The orchestrator owns at most one active call
session at a time.

One orchestrator serves one user.  The cached position, the busy guard and
the call session are shared by every caller of the same instance.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog

from src.models.dispatch import DispatchRequest, DispatchResult
from src.models.enums import ActionStatus, Channel, EmergencyKind, EventKind, Platform
from src.models.location import Position
from src.models.outcome import EmergencyOutcome, ShareOutcome
from src.models.provider import Provider
from src.models.session import CallSession
from src.services import deep_links
from src.services.alerts import AlertNotifier
from src.services.call_session import CallSessionController, MediaCapability
from src.services.directory import ProviderDirectory
from src.services.dispatcher import ChannelDispatcher, LinkLauncher
from src.services.errors import LocationError, MediaError, NotifyError
from src.services.events import EventSink, emit
from src.services.host import Clipboard, ShareCapability
from src.services.location import LocationProvider

logger = structlog.get_logger(__name__)


class _ActionBusy(Exception):
    pass


class EmergencyOrchestrator:
    """Composes location, directory, dispatch, session and alert services.

    All collaborators are injected; the orchestrator owns only the active
    call session and the busy guard.
    """

    __slots__ = (
        "_clipboard",
        "_directory",
        "_dispatcher",
        "_events",
        "_in_flight",
        "_launcher",
        "_location",
        "_media",
        "_notifier",
        "_platform",
        "_responder_contact",
        "_session",
        "_share",
    )

    def __init__(
        self,
        *,
        location: LocationProvider,
        directory: ProviderDirectory,
        dispatcher: ChannelDispatcher,
        notifier: AlertNotifier,
        launcher: LinkLauncher,
        media: MediaCapability,
        platform: Platform,
        responder_contact: str,
        events: EventSink | None = None,
        share: ShareCapability | None = None,
        clipboard: Clipboard | None = None,
    ) -> None:
        self._location = location
        self._directory = directory
        self._dispatcher = dispatcher
        self._notifier = notifier
        self._launcher = launcher
        self._media = media
        self._platform = platform
        self._responder_contact = responder_contact
        self._events = events
        self._share = share
        self._clipboard = clipboard
        self._session: CallSessionController | None = None
        self._in_flight: set[str] = set()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def platform(self) -> Platform:
        return self._platform

    @property
    def directory(self) -> ProviderDirectory:
        return self._directory

    @property
    def last_known_position(self) -> Position | None:
        return self._location.last_known

    @property
    def session(self) -> CallSession | None:
        return self._session.session if self._session is not None else None

    # ------------------------------------------------------------------
    # Emergency actions
    # ------------------------------------------------------------------

    async def emergency_action(
        self,
        channel: Channel,
        *,
        contact: str | None = None,
        in_app_session: bool = False,
        message: str | None = None,
        alert_message: str | None = None,
        platform: Platform | None = None,
        force_location_refresh: bool = False,
        action_name: str | None = None,
    ) -> EmergencyOutcome:
        """Run one emergency action end to end.  Never raises core errors."""
        key = action_name or f"emergency:{channel.value}"
        outcome = EmergencyOutcome()
        log = logger.bind(action_id=outcome.action_id, action=key)

        try:
            async with self._guard(key):
                await self._run_action(
                    outcome,
                    log,
                    channel=channel,
                    contact=contact or self._responder_contact,
                    in_app_session=in_app_session,
                    message=message,
                    alert_message=alert_message,
                    platform=platform or self._platform,
                    force_location_refresh=force_location_refresh,
                )
        except _ActionBusy:
            log.info("orchestrator.action_busy")
            emit(self._events, EventKind.ACTION_BUSY, action=key)
            outcome.status = ActionStatus.BUSY
            outcome.error = f"{key} is already in progress"

        return outcome

    async def request_assistance(
        self, kind: EmergencyKind, *, platform: Platform | None = None
    ) -> EmergencyOutcome:
        """One-tap assistance: chat the responder and alert the backend."""
        label = kind.value.upper()
        return await self.emergency_action(
            Channel.CHAT,
            message=f"EMERGENCY - {label} assistance needed",
            alert_message=f"Emergency call initiated: {label}",
            platform=platform,
            action_name=f"assist:{kind.value}",
        )

    async def contact_provider(
        self,
        provider_id: str,
        channel: Channel,
        *,
        platform: Platform | None = None,
    ) -> DispatchResult:
        """Open a voice, video or chat link to a directory provider.

        Raises
        ------
        LookupError
            If the provider is unknown or has no phone number.
        """
        provider = self._require_provider(provider_id)
        if not provider.phone:
            raise LookupError(f"provider {provider_id} has no phone number")

        request = DispatchRequest(
            contact=provider.phone,
            desired_channel=channel,
            platform=platform or self._platform,
        )
        result = await self._dispatcher.dispatch(request, self._launcher)
        self._emit_dispatch(result, provider_id=provider_id)
        return result

    # ------------------------------------------------------------------
    # Directory and location helpers
    # ------------------------------------------------------------------

    def update_position(self, latitude: float, longitude: float) -> Position:
        """Replace the cached position with a fix reported by the client."""
        position = Position(latitude=latitude, longitude=longitude)
        self._location.record(position)
        return position

    def search_providers(self, query: str = "", *, rank_by_distance: bool = False) -> list[Provider]:
        reference = self._location.last_known if rank_by_distance else None
        return self._directory.search(query, reference)

    async def refresh_directory(self, *, force_location_refresh: bool = False) -> int:
        """Augment the directory around the current position.

        Raises
        ------
        LocationError
            If no position could be obtained.
        """
        position, _ = await self._location.current(force_refresh=force_location_refresh)
        return await self._directory.refresh(position)

    def directions_to(self, provider_id: str) -> str | None:
        """Google Maps directions from the last known position to a provider.

        Returns ``None`` when no position is known yet.
        """
        provider = self._require_provider(provider_id)
        origin = self._location.last_known
        if origin is None:
            emit(self._events, EventKind.DIRECTIONS_UNAVAILABLE, provider_id=provider_id, retryable=True)
            return None

        url = deep_links.directions_link(origin, provider.position)
        emit(self._events, EventKind.DIRECTIONS_OPENED, provider_id=provider_id, url=url, name=provider.name)
        return url

    async def share_location(self) -> ShareOutcome:
        """Share the last known position, or copy it to the clipboard."""
        position = self._location.last_known
        if position is None:
            emit(self._events, EventKind.SHARE_FAILED, error="location not available", retryable=True)
            return ShareOutcome(shared=False, error="location not available")

        text = f"Emergency - My location: {deep_links.location_share_url(position)}"
        try:
            if self._share is not None:
                await self._share.share("Emergency Location", text)
                emit(self._events, EventKind.LOCATION_SHARED, text=text)
                return ShareOutcome(shared=True, method="share", text=text)
            if self._clipboard is not None:
                await self._clipboard.write_text(text)
                emit(self._events, EventKind.LOCATION_COPIED, text=text)
                return ShareOutcome(shared=True, method="clipboard", text=text)
        except Exception as exc:
            logger.warning("orchestrator.share_failed", exc_info=True)
            emit(self._events, EventKind.SHARE_FAILED, error=str(exc), retryable=True)
            return ShareOutcome(shared=False, text=text, error=str(exc))

        emit(self._events, EventKind.SHARE_FAILED, error="no share target", retryable=False)
        return ShareOutcome(shared=False, text=text, error="no share target")

    # ------------------------------------------------------------------
    # Session delegation
    # ------------------------------------------------------------------

    def toggle_microphone(self) -> bool:
        if self._session is None:
            emit(self._events, EventKind.TOGGLE_IGNORED, control="microphone", state="none")
            return False
        return self._session.toggle_microphone()

    def toggle_camera(self) -> bool:
        if self._session is None:
            emit(self._events, EventKind.TOGGLE_IGNORED, control="camera", state="none")
            return False
        return self._session.toggle_camera()

    async def end_session(self) -> CallSession | None:
        if self._session is None:
            return None
        return await self._session.end_session()

    async def aclose(self) -> None:
        """Owner teardown: end any active session."""
        if self._session is not None:
            await self._session.dispose()
        logger.info("orchestrator.closed")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _guard(self, key: str) -> AsyncIterator[None]:
        if key in self._in_flight:
            raise _ActionBusy(key)
        self._in_flight.add(key)
        try:
            yield
        finally:
            self._in_flight.discard(key)

    async def _run_action(
        self,
        outcome: EmergencyOutcome,
        log: structlog.stdlib.BoundLogger,
        *,
        channel: Channel,
        contact: str,
        in_app_session: bool,
        message: str | None,
        alert_message: str | None,
        platform: Platform,
        force_location_refresh: bool,
    ) -> None:
        # 1. Position
        try:
            position, fresh = await self._location.current(force_refresh=force_location_refresh)
        except LocationError as exc:
            log.warning("orchestrator.location_failed", kind=exc.kind.value)
            emit(self._events, EventKind.LOCATION_FAILED, error_kind=exc.kind.value, retryable=True)
            outcome.status = ActionStatus.ABORTED
            outcome.error = str(exc)
            return

        outcome.position = position
        outcome.position_source = "fresh" if fresh else "cached"
        if fresh:
            emit(self._events, EventKind.LOCATION_ACQUIRED, latitude=position.latitude, longitude=position.longitude)

        # 2. Resolve
        request = DispatchRequest(
            contact=contact,
            desired_channel=channel,
            platform=platform,
            message=message,
        )

        # 3. Connect
        if channel is Channel.VIDEO and in_app_session:
            outcome.dispatch = self._dispatcher.resolve(request)
            await self._start_session(outcome, contact)
        else:
            outcome.dispatch = await self._dispatcher.dispatch(request, self._launcher)
            self._emit_dispatch(outcome.dispatch, action_id=outcome.action_id)

        # 4. Alert
        text = alert_message or f"Emergency {channel.value} request to {contact}"
        try:
            receipt = await self._notifier.notify(position, text, action_id=outcome.action_id)
        except NotifyError as exc:
            outcome.notify_error = str(exc)
            emit(self._events, EventKind.ALERT_FAILED, action_id=outcome.action_id, error=str(exc), retryable=True)
        else:
            outcome.alert_delivered = receipt.delivered
            emit(self._events, EventKind.ALERT_SENT, action_id=outcome.action_id, delivered=receipt.delivered)

        log.info(
            "orchestrator.action_completed",
            status=outcome.status.value,
            position_source=outcome.position_source,
            transport=outcome.dispatch.action.transport.value,
            was_fallback=outcome.dispatch.was_fallback,
            alert_delivered=outcome.alert_delivered,
        )

    async def _start_session(self, outcome: EmergencyOutcome, contact: str) -> None:
        if self._session is not None and self._session.is_active:
            emit(self._events, EventKind.SESSION_BUSY, contact=self._session.session.target_contact)
            outcome.status = ActionStatus.SESSION_BUSY
            outcome.session = self._session.session
            return

        controller = CallSessionController(self._media, events=self._events)
        self._session = controller
        try:
            outcome.session = await controller.start_session(contact, video=True)
        except MediaError as exc:
            outcome.status = ActionStatus.SESSION_FAILED
            outcome.error = str(exc)
            outcome.session = controller.session

    def _emit_dispatch(self, result: DispatchResult, **context: str) -> None:
        kind = EventKind.DISPATCH_FALLBACK if result.was_fallback else EventKind.DISPATCH_RESOLVED
        emit(
            self._events,
            kind,
            channel=result.chosen_channel.value,
            transport=result.action.transport.value,
            url=result.action.url,
            instruction=result.action.instruction,
            **context,
        )

    def _require_provider(self, provider_id: str) -> Provider:
        provider = self._directory.get(provider_id)
        if provider is None:
            raise LookupError(f"unknown provider {provider_id}")
        return provider
