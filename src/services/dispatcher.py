"""Channel dispatch: (contact, desired channel, platform) -> one deep link.

Routing is a single table lookup keyed by ``(Platform, Channel)``.  The
only branching beyond the lookup is the messaging fallback, applied when
the primary transport cannot be invoked -- either because the host lacks
the capability (configured up front) or because invoking it was rejected.

Routing table:

=========  ===================  ==========================  ===========
Platform   Voice                Video                       Chat
=========  ===================  ==========================  ===========
iOS        tel:                 facetime:                   WhatsApp
Android    tel:                 tel: (no video scheme)      WhatsApp
Desktop    WhatsApp (no dialer) WhatsApp (video affordance) WhatsApp
=========  ===================  ==========================  ===========
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Final, Protocol, runtime_checkable

import structlog

from src.models.dispatch import DispatchRequest, DispatchResult, TransportAction
from src.models.enums import Channel, Platform, Transport
from src.services import deep_links

logger = structlog.get_logger(__name__)


@runtime_checkable
class LinkLauncher(Protocol):
    """Host capability that opens a deep link.

    Returns ``False`` (or raises) when the host rejects the link.
    """

    async def open(self, action: TransportAction) -> bool: ...


@dataclass(frozen=True, slots=True)
class _Route:
    transport: Transport
    channel: Channel
    instruction: str


_ROUTES: Final[dict[tuple[Platform, Channel], _Route]] = {
    (Platform.IOS, Channel.VOICE): _Route(
        Transport.TELEPHONY, Channel.VOICE, "Calling {contact}"
    ),
    (Platform.IOS, Channel.VIDEO): _Route(
        Transport.FACETIME, Channel.VIDEO, "Opening FaceTime to video call {contact}"
    ),
    (Platform.IOS, Channel.CHAT): _Route(
        Transport.MESSAGING, Channel.CHAT, "Opening WhatsApp chat"
    ),
    (Platform.ANDROID, Channel.VOICE): _Route(
        Transport.TELEPHONY, Channel.VOICE, "Calling {contact}"
    ),
    (Platform.ANDROID, Channel.VIDEO): _Route(
        Transport.TELEPHONY, Channel.VOICE, "Use your phone's video call feature once connected"
    ),
    (Platform.ANDROID, Channel.CHAT): _Route(
        Transport.MESSAGING, Channel.CHAT, "Opening WhatsApp chat"
    ),
    (Platform.DESKTOP, Channel.VOICE): _Route(
        Transport.MESSAGING, Channel.VOICE, "WhatsApp Web opened: click the phone icon to start a voice call"
    ),
    (Platform.DESKTOP, Channel.VIDEO): _Route(
        Transport.MESSAGING, Channel.VIDEO, "WhatsApp Web opened: click the video camera icon at the top to start video call"
    ),
    (Platform.DESKTOP, Channel.CHAT): _Route(
        Transport.MESSAGING, Channel.CHAT, "Opening WhatsApp chat"
    ),
}

_FALLBACK_INSTRUCTIONS: Final[dict[Channel, str]] = {
    Channel.VOICE: "Opening WhatsApp: tap the phone icon to start a voice call",
    Channel.VIDEO: "Opening WhatsApp: tap the video icon to start video call",
    Channel.CHAT: "Opening WhatsApp chat",
}


class ChannelDispatcher:
    """Resolves dispatch requests into concrete transport actions.

    Parameters
    ----------
    country_code:
        Prefix applied when normalising numbers for messaging/video links.
    unavailable:
        Transports the host environment cannot invoke at all.  Requests
        whose primary transport is listed resolve straight to the
        messaging fallback.
    """

    __slots__ = ("_builders", "_country_code", "_unavailable")

    def __init__(
        self,
        country_code: str = "91",
        unavailable: Iterable[Transport] = (),
    ) -> None:
        self._country_code = country_code
        self._unavailable = frozenset(Transport(t) for t in unavailable)
        self._builders: dict[Transport, Callable[[DispatchRequest], str]] = {
            Transport.TELEPHONY: lambda r: deep_links.telephony_link(r.contact),
            Transport.FACETIME: lambda r: deep_links.facetime_link(r.contact, self._country_code),
            Transport.MESSAGING: lambda r: deep_links.messaging_link(
                r.contact, r.message, self._country_code
            ),
        }

    @property
    def unavailable(self) -> frozenset[Transport]:
        return self._unavailable

    def resolve(
        self, request: DispatchRequest, *, primary_rejected: bool = False
    ) -> DispatchResult:
        """Map ``request`` to exactly one action.  Never raises."""
        route = _ROUTES[(request.platform, request.desired_channel)]

        needs_fallback = primary_rejected or route.transport in self._unavailable
        if needs_fallback and route.transport is not Transport.MESSAGING:
            return DispatchResult(
                chosen_channel=Channel.CHAT,
                action=self._action(
                    Transport.MESSAGING,
                    request,
                    _FALLBACK_INSTRUCTIONS[request.desired_channel],
                ),
                was_fallback=True,
            )

        return DispatchResult(
            chosen_channel=route.channel,
            action=self._action(route.transport, request, route.instruction),
            was_fallback=False,
        )

    async def dispatch(
        self, request: DispatchRequest, launcher: LinkLauncher
    ) -> DispatchResult:
        """Resolve and invoke ``request``, falling back on rejection."""
        result = self.resolve(request)
        if await self._try_open(launcher, result.action):
            logger.info(
                "dispatcher.dispatched",
                platform=request.platform.value,
                desired_channel=request.desired_channel.value,
                transport=result.action.transport.value,
                was_fallback=result.was_fallback,
            )
            return result

        if result.was_fallback or result.action.transport is Transport.MESSAGING:
            # Nothing left to substitute; the messaging link is the last resort.
            logger.warning(
                "dispatcher.messaging_rejected",
                platform=request.platform.value,
                url=result.action.url,
            )
            return result

        fallback = self.resolve(request, primary_rejected=True)
        logger.info(
            "dispatcher.fallback",
            platform=request.platform.value,
            desired_channel=request.desired_channel.value,
            rejected_transport=result.action.transport.value,
        )
        if not await self._try_open(launcher, fallback.action):
            logger.warning(
                "dispatcher.fallback_rejected",
                platform=request.platform.value,
                url=fallback.action.url,
            )
        return fallback

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _action(
        self, transport: Transport, request: DispatchRequest, instruction: str
    ) -> TransportAction:
        return TransportAction(
            transport=transport,
            url=self._builders[transport](request),
            instruction=instruction.format(contact=request.contact),
        )

    @staticmethod
    async def _try_open(launcher: LinkLauncher, action: TransportAction) -> bool:
        try:
            return bool(await launcher.open(action))
        except Exception:
            logger.warning(
                "dispatcher.launch_failed",
                transport=action.transport.value,
                exc_info=True,
            )
            return False
