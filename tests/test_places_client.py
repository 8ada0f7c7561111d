"""Tests for the Google Places nearby lookup.

Uses ``httpx.MockTransport``, and swaps the retry wait for ``wait_none`` so
retries are instant.
"""

from __future__ import annotations

import httpx
import pytest
from tenacity import wait_none

from src.models.enums import ProviderCategory
from src.models.location import Position
from src.services.places_client import PlacesNearbyLookup

HERE = Position(latitude=18.5204, longitude=73.8567)


def _place(place_id: str, name: str, types: list[str], lat: float = 18.52, lng: float = 73.85) -> dict:
    return {
        "place_id": place_id,
        "name": name,
        "vicinity": "Pune",
        "rating": 4.2,
        "types": types,
        "geometry": {"location": {"lat": lat, "lng": lng}},
    }


def _lookup(handler, **kwargs) -> PlacesNearbyLookup:
    client = httpx.AsyncClient(
        base_url=PlacesNearbyLookup.BASE_URL,
        transport=httpx.MockTransport(handler),
    )
    return PlacesNearbyLookup("test-key", client=client, **kwargs)


@pytest.fixture(autouse=True)
def _instant_retries(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(PlacesNearbyLookup._fetch.retry, "wait", wait_none())


class TestPlacesNearbyLookup:
    async def test_maps_results_to_providers(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "status": "OK",
                    "results": [
                        _place("p1", "City Hospital", ["hospital", "health"]),
                        _place("p2", "Smile Dental", ["dentist", "health"]),
                    ],
                },
            )

        lookup = _lookup(handler, radius_km=5)
        providers = await lookup.find_nearby(HERE)

        assert [p.id for p in providers] == ["places:p1", "places:p2"]
        assert providers[0].category is ProviderCategory.GENERAL_HOSPITAL
        assert providers[1].category is ProviderCategory.SPECIALIST
        assert providers[0].phone is None
        params = seen[0].url.params
        assert params["location"] == "18.5204,73.8567"
        assert params["radius"] == "5000"
        assert params["keyword"] == "hospital"
        assert params["key"] == "test-key"
        await lookup.close()

    async def test_skips_incomplete_results(self) -> None:
        broken = {"place_id": "p3", "name": "No Geometry"}
        handler = lambda request: httpx.Response(  # noqa: E731
            200, json={"status": "OK", "results": [broken, _place("p4", "Ok", ["hospital"])]}
        )

        providers = await _lookup(handler).find_nearby(HERE)

        assert [p.id for p in providers] == ["places:p4"]

    async def test_zero_results(self) -> None:
        handler = lambda request: httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})  # noqa: E731

        assert await _lookup(handler).find_nearby(HERE) == []

    async def test_bad_status_raises(self) -> None:
        handler = lambda request: httpx.Response(  # noqa: E731
            200, json={"status": "REQUEST_DENIED", "error_message": "invalid key"}
        )

        with pytest.raises(RuntimeError, match="REQUEST_DENIED"):
            await _lookup(handler).find_nearby(HERE)

    async def test_retries_transient_errors(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"status": "OK", "results": [_place("p5", "Late", ["hospital"])]})

        providers = await _lookup(handler).find_nearby(HERE)

        assert calls == 3
        assert len(providers) == 1

    async def test_gives_up_after_three_attempts(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(500)

        with pytest.raises(httpx.HTTPStatusError):
            await _lookup(handler).find_nearby(HERE)

        assert calls == 3

    async def test_client_errors_are_not_retried(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(403)

        with pytest.raises(httpx.HTTPStatusError):
            await _lookup(handler).find_nearby(HERE)

        assert calls == 1

    def test_radius_is_capped(self) -> None:
        lookup = PlacesNearbyLookup("k", radius_km=80, client=httpx.AsyncClient())
        assert lookup._radius_m == 50_000
