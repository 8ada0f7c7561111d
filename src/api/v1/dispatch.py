"""Channel resolution endpoint.

Pure resolution only: nothing is launched and no alert is sent.  The
client receives the deep link and opens it itself.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from src.api.deps import get_platform
from src.models.dispatch import DispatchRequest, DispatchResult
from src.models.enums import Channel, Platform

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/dispatch", tags=["dispatch"])


class ResolveRequest(BaseModel):
    contact: str = Field(..., min_length=1, max_length=32)
    channel: Channel
    platform: Platform | None = Field(
        default=None,
        description="Overrides the platform detected from the User-Agent",
    )
    message: str | None = Field(default=None, max_length=1000)
    primary_rejected: bool = Field(
        default=False,
        description="Set when the host could not open the primary link",
    )


@router.post("/resolve", response_model=DispatchResult)
async def resolve_channel(
    body: ResolveRequest,
    request: Request,
    platform: Platform = Depends(get_platform),
) -> DispatchResult:
    """Map (contact, channel, platform) to a deep link, with the messaging fallback."""
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        raise HTTPException(status_code=503, detail="Dispatcher not available")

    try:
        dispatch_request = DispatchRequest(
            contact=body.contact,
            desired_channel=body.channel,
            platform=body.platform or platform,
            message=body.message,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail="contact must contain a phone number") from exc

    result = dispatcher.resolve(dispatch_request, primary_rejected=body.primary_rejected)

    logger.info(
        "api.dispatch.resolved",
        platform=dispatch_request.platform.value,
        channel=body.channel.value,
        transport=result.action.transport.value,
        was_fallback=result.was_fallback,
    )
    return result
