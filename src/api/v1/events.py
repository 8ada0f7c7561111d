"""Polling endpoint for the notices the core emits.

Clients render these as toasts: location failures, fallbacks, alert
results, ignored toggles and so on.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from src.models.events import CoreEvent

router = APIRouter(prefix="/events", tags=["events"])


class EventListResponse(BaseModel):
    total: int
    events: list[CoreEvent]


@router.get("", response_model=EventListResponse)
async def list_events(
    request: Request,
    drain: bool = Query(default=False, description="Forget the returned events"),
) -> EventListResponse:
    sink = getattr(request.app.state, "events", None)
    if sink is None:
        raise HTTPException(status_code=503, detail="Event buffer not available")

    events = sink.drain() if drain else sink.events
    return EventListResponse(total=len(events), events=events)
