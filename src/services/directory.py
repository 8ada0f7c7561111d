"""Location-aware directory of care providers.

The directory starts from a static seed set (canonical order) and can be
augmented from a nearby-provider lookup service:

* seed entries form the baseline,
* lookup results whose ``id`` matches an existing entry replace it in place,
* lookup results with new ids are appended in the order returned.

Search is case-insensitive substring matching over name, category label
and address.  Practitioner names and specialisations are *not* searched.
When a reference position is given, matches are ordered by great-circle
distance with ties broken by canonical order; this ranking never touches
the stored order.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from typing import Final, Protocol, runtime_checkable

import structlog

from src.models.location import Position
from src.models.provider import Provider

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Haversine distance calculation
# ---------------------------------------------------------------------------

_EARTH_RADIUS_KM: Final[float] = 6371.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return _EARTH_RADIUS_KM * c


def distance_km(provider: Provider, position: Position) -> float:
    return haversine_distance(
        position.latitude,
        position.longitude,
        provider.position.latitude,
        provider.position.longitude,
    )


def rank_by_distance(providers: Sequence[Provider], position: Position) -> list[Provider]:
    """Return ``providers`` nearest first; equal distances keep input order."""
    # sorted() is stable, so ties keep canonical order.
    return sorted(providers, key=lambda p: distance_km(p, position))


# ---------------------------------------------------------------------------
# Nearby lookup protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class NearbyProviderLookup(Protocol):
    """External service returning providers near a position."""

    async def find_nearby(self, position: Position) -> list[Provider]: ...


# ---------------------------------------------------------------------------
# Directory
# ---------------------------------------------------------------------------


class ProviderDirectory:
    """Read-only (to consumers) collection of care providers.

    Usage::

        directory = ProviderDirectory(load_providers())
        directory.search("ruby")
        directory.search("", reference_position=here)
        await directory.refresh(here)  # augments from the lookup service
    """

    __slots__ = ("_entries", "_index", "_lookup")

    def __init__(
        self,
        providers: Iterable[Provider] = (),
        *,
        lookup: NearbyProviderLookup | None = None,
    ) -> None:
        self._lookup = lookup
        self._entries: tuple[Provider, ...] = ()
        self._index: dict[str, Provider] = {}
        self._replace_contents(self._merge((), providers))

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def providers(self) -> tuple[Provider, ...]:
        return self._entries

    def get(self, provider_id: str) -> Provider | None:
        return self._index.get(provider_id)

    def search(
        self,
        query: str = "",
        reference_position: Position | None = None,
    ) -> list[Provider]:
        """Find providers whose name, category or address contains ``query``."""
        # Snapshot so a concurrent refresh cannot change the result mid-search.
        entries = self._entries
        needle = query.strip().lower()

        matches = [p for p in entries if p.matches(needle)] if needle else list(entries)

        if reference_position is not None:
            matches = rank_by_distance(matches, reference_position)

        logger.debug(
            "directory.search",
            query=query,
            ranked=reference_position is not None,
            results_count=len(matches),
        )
        return matches

    async def refresh(self, position: Position) -> int:
        """Augment the directory from the nearby lookup service.

        Returns the number of entries added or replaced.  A lookup failure
        leaves the current contents untouched.
        """
        if self._lookup is None:
            return 0

        try:
            found = await self._lookup.find_nearby(position)
        except Exception:
            logger.warning(
                "directory.refresh_failed",
                latitude=position.latitude,
                longitude=position.longitude,
                exc_info=True,
            )
            return 0

        merged = self._merge(self._entries, found)
        changed = sum(1 for p in found if self._index.get(p.id) != p)
        self._replace_contents(merged)

        logger.info(
            "directory.refreshed",
            lookup_results=len(found),
            changed=changed,
            total=len(self._entries),
        )
        return changed

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _merge(base: Sequence[Provider], incoming: Iterable[Provider]) -> list[Provider]:
        merged = list(base)
        positions = {p.id: i for i, p in enumerate(merged)}
        for provider in incoming:
            slot = positions.get(provider.id)
            if slot is None:
                positions[provider.id] = len(merged)
                merged.append(provider)
            else:
                merged[slot] = provider
        return merged

    def _replace_contents(self, providers: list[Provider]) -> None:
        self._entries = tuple(providers)
        self._index = {p.id: p for p in self._entries}
