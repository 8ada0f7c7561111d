"""Care-provider directory endpoints.

Search the static Pune directory (augmented by any nearby lookup), fetch a
single provider, build a directions link, or refresh the directory around
the caller's current position.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from src.api.deps import get_orchestrator, get_platform
from src.models.dispatch import DispatchResult
from src.models.enums import Channel, Platform
from src.models.provider import Provider
from src.services.directory import distance_km
from src.services.errors import LocationError
from src.services.orchestrator import EmergencyOrchestrator

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/providers", tags=["directory"])


class ProviderSummary(BaseModel):
    provider: Provider
    category_label: str
    distance_km: float | None = None


class ProviderListResponse(BaseModel):
    query: str
    ranked: bool
    total: int
    providers: list[ProviderSummary]


class DirectionsResponse(BaseModel):
    provider_id: str
    url: str | None = None
    error: str | None = None


class RefreshResponse(BaseModel):
    added_or_updated: int = 0
    total: int
    error: str | None = None


class ContactRequest(BaseModel):
    channel: Channel = Field(default=Channel.VOICE)


@router.get("", response_model=ProviderListResponse)
async def search_providers(
    q: str = Query(default="", max_length=200, description="Case-insensitive substring"),
    rank: bool = Query(default=False, description="Order by distance from the last known position"),
    orchestrator: EmergencyOrchestrator = Depends(get_orchestrator),
) -> ProviderListResponse:
    """Substring search over name, category label and address."""
    results = orchestrator.search_providers(q, rank_by_distance=rank)
    origin = orchestrator.last_known_position
    ranked = rank and origin is not None

    return ProviderListResponse(
        query=q,
        ranked=ranked,
        total=len(results),
        providers=[
            ProviderSummary(
                provider=p,
                category_label=p.category.label,
                distance_km=round(distance_km(p, origin), 2) if origin is not None else None,
            )
            for p in results
        ],
    )


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_providers(
    force_location_refresh: bool = Query(default=False),
    orchestrator: EmergencyOrchestrator = Depends(get_orchestrator),
) -> RefreshResponse:
    """Merge nearby results around the current position into the directory."""
    try:
        changed = await orchestrator.refresh_directory(force_location_refresh=force_location_refresh)
    except LocationError as exc:
        logger.warning("api.directory.refresh_no_location", kind=exc.kind.value)
        return RefreshResponse(total=len(orchestrator.directory), error=f"location {exc.kind.value}")

    return RefreshResponse(added_or_updated=changed, total=len(orchestrator.directory))


@router.get("/{provider_id}", response_model=Provider)
async def get_provider(
    provider_id: str,
    orchestrator: EmergencyOrchestrator = Depends(get_orchestrator),
) -> Provider:
    provider = orchestrator.directory.get(provider_id)
    if provider is None:
        raise HTTPException(status_code=404, detail=f"Provider '{provider_id}' not found")
    return provider


@router.get("/{provider_id}/directions", response_model=DirectionsResponse)
async def get_directions(
    provider_id: str,
    orchestrator: EmergencyOrchestrator = Depends(get_orchestrator),
) -> DirectionsResponse:
    """Google Maps directions from the last known position.

    ``url`` stays empty until a position has been acquired or reported.
    """
    try:
        url = orchestrator.directions_to(provider_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=f"Provider '{provider_id}' not found") from exc

    if url is None:
        return DirectionsResponse(provider_id=provider_id, error="location not available")
    return DirectionsResponse(provider_id=provider_id, url=url)


@router.post("/{provider_id}/contact", response_model=DispatchResult)
async def contact_provider(
    provider_id: str,
    body: ContactRequest,
    platform: Platform = Depends(get_platform),
    orchestrator: EmergencyOrchestrator = Depends(get_orchestrator),
) -> DispatchResult:
    """Open a call, video call or chat with a provider."""
    try:
        return await orchestrator.contact_provider(provider_id, body.channel, platform=platform)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
