"""One-shot platform detection from a device/user-agent identifier.

Call this once (at startup, or once per request at the API edge) and pass
the resulting :class:`Platform` into the dispatcher explicitly.
"""

from __future__ import annotations

import re
from typing import Final

from src.models.enums import Platform

_ANDROID: Final = re.compile(r"android", re.IGNORECASE)
_IOS: Final = re.compile(r"iphone|ipad|ipod", re.IGNORECASE)


def detect_platform(user_agent: str | None, default: Platform = Platform.DESKTOP) -> Platform:
    if not user_agent:
        return default
    if _ANDROID.search(user_agent):
        return Platform.ANDROID
    if _IOS.search(user_agent):
        return Platform.IOS
    return Platform.DESKTOP
