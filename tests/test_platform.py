"""Tests for user-agent platform detection."""

from __future__ import annotations

import pytest

from src.models.enums import Platform
from src.services.platform import detect_platform


class TestDetectPlatform:
    @pytest.mark.parametrize(
        ("user_agent", "expected"),
        [
            ("Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)", Platform.IOS),
            ("Mozilla/5.0 (iPad; CPU OS 16_6 like Mac OS X)", Platform.IOS),
            ("Mozilla/5.0 (Linux; Android 14; Pixel 8)", Platform.ANDROID),
            ("Mozilla/5.0 (Windows NT 10.0; Win64; x64)", Platform.DESKTOP),
            ("Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0)", Platform.DESKTOP),
        ],
    )
    def test_detect(self, user_agent: str, expected: Platform) -> None:
        assert detect_platform(user_agent) is expected

    def test_missing_user_agent_uses_default(self) -> None:
        assert detect_platform(None) is Platform.DESKTOP
        assert detect_platform("", default=Platform.ANDROID) is Platform.ANDROID
