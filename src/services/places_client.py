"""Nearby care-provider lookup backed by the Google Places Nearby Search API.

Results are mapped into :class:`Provider` entries with ids of the form
``places:<place_id>`` so they can never collide with seed ids.  Places
does not return phone numbers from nearby search, so ``phone`` is left
unset.  Transient failures (network errors, 429, 5xx) are retried with
exponential backoff; anything else propagates to the directory, which
logs it and keeps its current contents.
"""

from __future__ import annotations

from typing import Any, Final

import httpx
import structlog
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from src.models.enums import ProviderCategory
from src.models.location import Position
from src.models.provider import Provider

logger = structlog.get_logger(__name__)

_NEARBY_SEARCH_PATH: Final[str] = "/maps/api/place/nearbysearch/json"
_MAX_RADIUS_M: Final[int] = 50_000  # Places API limit
_MAX_RESULTS: Final[int] = 20
_MAX_ATTEMPTS: Final[int] = 3
_SPECIALIST_TYPES: Final[frozenset[str]] = frozenset({"doctor", "physiotherapist", "dentist"})


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code == 429 or exc.response.status_code >= 500
    return False


class PlacesNearbyLookup:
    """Finds hospitals near a position via Google Places.

    Parameters
    ----------
    api_key:
        Google Maps Platform key with the Places API enabled.
    radius_km:
        Search radius (capped at 50 km by the API).
    client:
        Optional pre-configured ``httpx.AsyncClient`` (used in tests).
    """

    BASE_URL = "https://maps.googleapis.com"

    def __init__(
        self,
        api_key: str,
        *,
        radius_km: float = 10.0,
        keyword: str = "hospital",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._radius_m = min(int(radius_km * 1000), _MAX_RADIUS_M)
        self._keyword = keyword
        self._client = client or httpx.AsyncClient(
            base_url=self.BASE_URL,
            timeout=10.0,
            headers={"Accept": "application/json"},
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def find_nearby(self, position: Position) -> list[Provider]:
        data = await self._fetch(position)

        status = data.get("status", "OK")
        if status not in ("OK", "ZERO_RESULTS"):
            logger.warning("places.bad_status", status=status, error=data.get("error_message"))
            raise RuntimeError(f"Places API returned status {status}")

        providers: list[Provider] = []
        for place in data.get("results", [])[:_MAX_RESULTS]:
            provider = self._to_provider(place)
            if provider is not None:
                providers.append(provider)

        logger.info(
            "places.nearby_search",
            latitude=position.latitude,
            longitude=position.longitude,
            results_count=len(providers),
        )
        return providers

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(_MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def _fetch(self, position: Position) -> dict[str, Any]:
        params = {
            "location": position.coordinates,
            "radius": str(self._radius_m),
            "keyword": self._keyword,
            "key": self._api_key,
        }
        response = await self._client.get(_NEARBY_SEARCH_PATH, params=params)
        response.raise_for_status()
        return response.json()

    @staticmethod
    def _to_provider(place: dict[str, Any]) -> Provider | None:
        place_id = place.get("place_id")
        location = place.get("geometry", {}).get("location", {})
        lat, lng = location.get("lat"), location.get("lng")
        if not place_id or lat is None or lng is None:
            return None

        types = set(place.get("types", []))
        category = (
            ProviderCategory.SPECIALIST
            if types & _SPECIALIST_TYPES and "hospital" not in types
            else ProviderCategory.GENERAL_HOSPITAL
        )
        try:
            return Provider(
                id=f"places:{place_id}",
                name=place.get("name", "Unknown"),
                category=category,
                address=place.get("vicinity", ""),
                rating=float(place.get("rating", 0.0)),
                position=Position(latitude=lat, longitude=lng),
            )
        except ValueError:
            logger.warning("places.invalid_result", place_id=place_id, exc_info=True)
            return None
