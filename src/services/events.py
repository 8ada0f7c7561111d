"""Event sinks for the notices the core emits in place of toasts."""

from __future__ import annotations

from collections import deque
from typing import Any, Protocol, runtime_checkable

import structlog

from src.models.enums import EventKind
from src.models.events import CoreEvent

logger = structlog.get_logger(__name__)


@runtime_checkable
class EventSink(Protocol):
    """Receives structured ``{kind, payload}`` events."""

    def emit(self, event: CoreEvent) -> None: ...


class LoggingEventSink:
    """Writes every event to the structured log."""

    __slots__ = ()

    def emit(self, event: CoreEvent) -> None:
        logger.info("core_event", event_kind=event.kind.value, **event.payload)


class BufferedEventSink:
    """Keeps the most recent events in memory so a client can poll them.

    Optionally forwards to another sink as well.
    """

    __slots__ = ("_events", "_forward")

    def __init__(self, max_events: int = 200, forward: EventSink | None = None) -> None:
        self._events: deque[CoreEvent] = deque(maxlen=max_events)
        self._forward = forward

    def emit(self, event: CoreEvent) -> None:
        self._events.append(event)
        if self._forward is not None:
            self._forward.emit(event)

    @property
    def events(self) -> list[CoreEvent]:
        return list(self._events)

    def kinds(self) -> list[EventKind]:
        return [event.kind for event in self._events]

    def drain(self) -> list[CoreEvent]:
        """Return and forget all buffered events."""
        drained = list(self._events)
        self._events.clear()
        return drained


def emit(sink: EventSink | None, kind: EventKind, /, **payload: Any) -> None:
    """Emit ``kind`` to ``sink`` when one is configured."""
    if sink is not None:
        sink.emit(CoreEvent(kind=kind, payload=payload))
