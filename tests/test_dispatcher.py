"""Tests for the platform-aware channel dispatcher."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from src.models.dispatch import DispatchRequest, TransportAction
from src.models.enums import Channel, Platform, Transport
from src.services.dispatcher import ChannelDispatcher

CONTACT = "7219435156"


def _request(platform: Platform, channel: Channel, message: str | None = None) -> DispatchRequest:
    return DispatchRequest(contact=CONTACT, desired_channel=channel, platform=platform, message=message)


@pytest.fixture
def dispatcher() -> ChannelDispatcher:
    return ChannelDispatcher()


# ---------------------------------------------------------------------------
# Resolution table
# ---------------------------------------------------------------------------


class TestResolve:
    @pytest.mark.parametrize(
        ("platform", "channel", "transport", "chosen", "url"),
        [
            (Platform.IOS, Channel.VOICE, Transport.TELEPHONY, Channel.VOICE, "tel:7219435156"),
            (Platform.IOS, Channel.VIDEO, Transport.FACETIME, Channel.VIDEO, "facetime:917219435156"),
            (Platform.IOS, Channel.CHAT, Transport.MESSAGING, Channel.CHAT, "https://wa.me/917219435156"),
            (Platform.ANDROID, Channel.VOICE, Transport.TELEPHONY, Channel.VOICE, "tel:7219435156"),
            (Platform.ANDROID, Channel.VIDEO, Transport.TELEPHONY, Channel.VOICE, "tel:7219435156"),
            (Platform.ANDROID, Channel.CHAT, Transport.MESSAGING, Channel.CHAT, "https://wa.me/917219435156"),
            (Platform.DESKTOP, Channel.VOICE, Transport.MESSAGING, Channel.VOICE, "https://wa.me/917219435156"),
            (Platform.DESKTOP, Channel.VIDEO, Transport.MESSAGING, Channel.VIDEO, "https://wa.me/917219435156"),
            (Platform.DESKTOP, Channel.CHAT, Transport.MESSAGING, Channel.CHAT, "https://wa.me/917219435156"),
        ],
    )
    def test_routing_table(
        self,
        dispatcher: ChannelDispatcher,
        platform: Platform,
        channel: Channel,
        transport: Transport,
        chosen: Channel,
        url: str,
    ) -> None:
        result = dispatcher.resolve(_request(platform, channel))
        assert result.action.transport is transport
        assert result.chosen_channel is chosen
        assert result.action.url == url
        assert result.was_fallback is False

    def test_android_video_explains_manual_upgrade(self, dispatcher: ChannelDispatcher) -> None:
        result = dispatcher.resolve(_request(Platform.ANDROID, Channel.VIDEO))
        assert "video call feature" in result.action.instruction

    def test_desktop_video_instruction_mentions_camera_icon(self, dispatcher: ChannelDispatcher) -> None:
        result = dispatcher.resolve(_request(Platform.DESKTOP, Channel.VIDEO))
        assert "video camera icon" in result.action.instruction

    def test_voice_instruction_names_contact(self, dispatcher: ChannelDispatcher) -> None:
        result = dispatcher.resolve(_request(Platform.IOS, Channel.VOICE))
        assert result.action.instruction == f"Calling {CONTACT}"

    def test_chat_message_is_prefilled(self, dispatcher: ChannelDispatcher) -> None:
        result = dispatcher.resolve(_request(Platform.ANDROID, Channel.CHAT, "help now"))
        assert result.action.url == "https://wa.me/917219435156?text=help%20now"

    def test_rejected_primary_falls_back_to_messaging(self, dispatcher: ChannelDispatcher) -> None:
        result = dispatcher.resolve(_request(Platform.ANDROID, Channel.VIDEO), primary_rejected=True)
        assert result.was_fallback is True
        assert result.chosen_channel is Channel.CHAT
        assert result.action.transport is Transport.MESSAGING
        assert result.action.url == "https://wa.me/917219435156"

    def test_rejected_messaging_is_not_a_fallback(self, dispatcher: ChannelDispatcher) -> None:
        result = dispatcher.resolve(_request(Platform.DESKTOP, Channel.VOICE), primary_rejected=True)
        assert result.was_fallback is False
        assert result.action.transport is Transport.MESSAGING
        assert result.chosen_channel is Channel.VOICE

    def test_unavailable_transport_resolves_to_fallback(self) -> None:
        dispatcher = ChannelDispatcher(unavailable=[Transport.FACETIME])
        result = dispatcher.resolve(_request(Platform.IOS, Channel.VIDEO))
        assert result.was_fallback is True
        assert result.action.transport is Transport.MESSAGING
        assert "video icon" in result.action.instruction

    def test_unavailable_accepts_plain_strings(self) -> None:
        dispatcher = ChannelDispatcher(unavailable=["telephony"])
        assert dispatcher.unavailable == frozenset({Transport.TELEPHONY})

    def test_country_code_is_configurable(self) -> None:
        dispatcher = ChannelDispatcher(country_code="1")
        result = dispatcher.resolve(
            DispatchRequest(contact="2025550123", desired_channel=Channel.CHAT, platform=Platform.IOS)
        )
        assert result.action.url == "https://wa.me/12025550123"


# ---------------------------------------------------------------------------
# Dispatch through a launcher
# ---------------------------------------------------------------------------


class TestDispatch:
    async def test_accepted_primary_is_returned(self, dispatcher: ChannelDispatcher) -> None:
        launcher = AsyncMock()
        launcher.open.return_value = True

        result = await dispatcher.dispatch(_request(Platform.ANDROID, Channel.VIDEO), launcher)

        assert result.action.url == "tel:7219435156"
        assert result.was_fallback is False
        launcher.open.assert_awaited_once()

    async def test_rejected_primary_opens_fallback(self, dispatcher: ChannelDispatcher) -> None:
        launcher = AsyncMock()
        launcher.open.side_effect = [False, True]

        result = await dispatcher.dispatch(_request(Platform.ANDROID, Channel.VIDEO), launcher)

        assert result.was_fallback is True
        assert result.action.url == "https://wa.me/917219435156"
        opened: list[TransportAction] = [call.args[0] for call in launcher.open.await_args_list]
        assert [a.transport for a in opened] == [Transport.TELEPHONY, Transport.MESSAGING]

    async def test_launcher_exception_counts_as_rejection(self, dispatcher: ChannelDispatcher) -> None:
        launcher = AsyncMock()
        launcher.open.side_effect = [OSError("no dialer"), True]

        result = await dispatcher.dispatch(_request(Platform.IOS, Channel.VOICE), launcher)

        assert result.was_fallback is True
        assert launcher.open.await_count == 2

    async def test_rejected_messaging_is_not_retried(self, dispatcher: ChannelDispatcher) -> None:
        launcher = AsyncMock()
        launcher.open.return_value = False

        result = await dispatcher.dispatch(_request(Platform.DESKTOP, Channel.CHAT), launcher)

        assert result.was_fallback is False
        launcher.open.assert_awaited_once()

    async def test_unavailable_transport_is_never_attempted(self) -> None:
        dispatcher = ChannelDispatcher(unavailable=[Transport.TELEPHONY])
        launcher = AsyncMock()
        launcher.open.return_value = True

        result = await dispatcher.dispatch(_request(Platform.ANDROID, Channel.VOICE), launcher)

        assert result.was_fallback is True
        launcher.open.assert_awaited_once()
        assert launcher.open.await_args.args[0].transport is Transport.MESSAGING
