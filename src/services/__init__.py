"""RescueGuard service layer -- location, directory, dispatch, sessions, alerts.

Everything here is constructor-injected; host capabilities (geolocation,
link launching, media, share/clipboard) are protocols so the same core runs
behind the API service or inside tests.
"""

from __future__ import annotations

from src.services.alerts import AlertNotifier, AlertReceipt
from src.services.call_session import CallSessionController, MediaCapability, MediaHandle
from src.services.directory import NearbyProviderLookup, ProviderDirectory, haversine_distance
from src.services.dispatcher import ChannelDispatcher, LinkLauncher
from src.services.errors import (
    LocationError,
    LocationErrorKind,
    MediaError,
    MediaErrorKind,
    NotifyError,
    NotifyErrorKind,
    RescueGuardError,
    SessionStateError,
)
from src.services.events import BufferedEventSink, EventSink, LoggingEventSink
from src.services.location import GeolocationCapability, LocationProvider
from src.services.orchestrator import EmergencyOrchestrator
from src.services.platform import detect_platform

__all__ = [
    "AlertNotifier",
    "AlertReceipt",
    "BufferedEventSink",
    "CallSessionController",
    "ChannelDispatcher",
    "EmergencyOrchestrator",
    "EventSink",
    "GeolocationCapability",
    "LinkLauncher",
    "LocationError",
    "LocationErrorKind",
    "LocationProvider",
    "LoggingEventSink",
    "MediaCapability",
    "MediaError",
    "MediaErrorKind",
    "MediaHandle",
    "NearbyProviderLookup",
    "NotifyError",
    "NotifyErrorKind",
    "ProviderDirectory",
    "RescueGuardError",
    "SessionStateError",
    "detect_platform",
    "haversine_distance",
]
