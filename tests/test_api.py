"""Tests for the RescueGuard HTTP API.

The lifespan runs for every client, so each test gets a fresh core with
the bundled directory, a simulated media backend and no geolocation fix
until one is reported.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

ANDROID_UA = "Mozilla/5.0 (Linux; Android 14; Pixel 8)"
IPHONE_UA = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)"


@pytest.fixture
def client() -> Iterator[TestClient]:
    from src.main import app

    with TestClient(app) as test_client:
        yield test_client


def _report_location(client: TestClient, latitude: float = 18.5204, longitude: float = 73.8567) -> None:
    response = client.post("/api/v1/emergency/location", json={"latitude": latitude, "longitude": longitude})
    assert response.status_code == 200


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_readiness(self, client: TestClient) -> None:
        data = client.get("/api/v1/health/ready").json()
        assert data["checks"]["orchestrator"] == "ok"
        assert data["checks"]["directory"].startswith("ok (10")

    def test_api_info(self, client: TestClient) -> None:
        assert client.get("/api").json()["name"] == "RescueGuard API"


class TestDispatchEndpoint:
    def test_platform_from_user_agent(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/dispatch/resolve",
            json={"contact": "7219435156", "channel": "video"},
            headers={"User-Agent": ANDROID_UA},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["action"]["url"] == "tel:7219435156"
        assert data["chosen_channel"] == "voice"
        assert data["was_fallback"] is False

    def test_rejected_primary(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/dispatch/resolve",
            json={"contact": "7219435156", "channel": "video", "primary_rejected": True},
            headers={"User-Agent": ANDROID_UA},
        )
        data = response.json()
        assert data["was_fallback"] is True
        assert data["action"]["url"] == "https://wa.me/917219435156"

    def test_platform_in_body_wins(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/dispatch/resolve",
            json={"contact": "7219435156", "channel": "video", "platform": "ios"},
            headers={"User-Agent": ANDROID_UA},
        )
        assert response.json()["action"]["url"] == "facetime:917219435156"

    def test_contact_without_digits(self, client: TestClient) -> None:
        response = client.post("/api/v1/dispatch/resolve", json={"contact": "doctor", "channel": "chat"})
        assert response.status_code == 422


class TestDirectoryEndpoints:
    def test_list_all(self, client: TestClient) -> None:
        data = client.get("/api/v1/providers").json()
        assert data["total"] == 10
        assert data["ranked"] is False
        assert data["providers"][0]["provider"]["name"] == "Ruby Hall Clinic"
        assert data["providers"][0]["distance_km"] is None

    def test_search(self, client: TestClient) -> None:
        data = client.get("/api/v1/providers", params={"q": "RUBY"}).json()
        assert [p["provider"]["id"] for p in data["providers"]] == ["1"]
        assert data["providers"][0]["category_label"] == "General Hospital"

    def test_ranked_search_after_location(self, client: TestClient) -> None:
        _report_location(client, 18.6289, 73.7997)
        data = client.get("/api/v1/providers", params={"rank": "true"}).json()
        assert data["ranked"] is True
        assert data["providers"][0]["provider"]["name"] == "Aditya Birla Memorial Hospital"
        assert data["providers"][0]["distance_km"] == 0.0

    def test_get_provider(self, client: TestClient) -> None:
        assert client.get("/api/v1/providers/3").json()["category"] == "specialist"
        assert client.get("/api/v1/providers/999").status_code == 404

    def test_directions(self, client: TestClient) -> None:
        assert client.get("/api/v1/providers/1/directions").json()["url"] is None
        _report_location(client, 18.5, 73.8)
        data = client.get("/api/v1/providers/1/directions").json()
        assert data["url"] == "https://www.google.com/maps/dir/18.5,73.8/18.5204,73.8567"
        assert client.get("/api/v1/providers/999/directions").status_code == 404

    def test_refresh_without_lookup(self, client: TestClient) -> None:
        _report_location(client)
        data = client.post("/api/v1/providers/refresh").json()
        assert data == {"added_or_updated": 0, "total": 10, "error": None}

    def test_refresh_without_location(self, client: TestClient) -> None:
        data = client.post("/api/v1/providers/refresh").json()
        assert data["error"] == "location unavailable"

    def test_contact_provider(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/providers/2/contact",
            json={"channel": "voice"},
            headers={"User-Agent": IPHONE_UA},
        )
        assert response.json()["action"]["url"] == "tel:02066811000"


class TestEmergencyEndpoints:
    def test_action_without_location_aborts(self, client: TestClient) -> None:
        data = client.post("/api/v1/emergency/action", json={"channel": "voice"}).json()
        assert data["status"] == "aborted"
        assert data["dispatch"] is None

    def test_action_with_reported_location(self, client: TestClient) -> None:
        _report_location(client)
        response = client.post(
            "/api/v1/emergency/action",
            json={"channel": "voice"},
            headers={"User-Agent": ANDROID_UA},
        )
        data = response.json()
        assert data["status"] == "completed"
        assert data["position_source"] == "cached"
        assert data["dispatch"]["action"]["url"] == "tel:7219435156"
        assert data["alert_delivered"] is False

    def test_reported_location_is_shared_across_clients(self, client: TestClient) -> None:
        _report_location(client, 10.0, 20.0)
        data = client.post(
            "/api/v1/emergency/action",
            json={"channel": "chat"},
            headers={"User-Agent": IPHONE_UA},
        ).json()
        assert data["status"] == "completed"
        assert data["position_source"] == "cached"
        assert (data["position"]["latitude"], data["position"]["longitude"]) == (10.0, 20.0)

    def test_assist(self, client: TestClient) -> None:
        _report_location(client)
        data = client.post("/api/v1/emergency/assist/ambulance").json()
        assert data["dispatch"]["action"]["url"].endswith("?text=EMERGENCY%20-%20AMBULANCE%20assistance%20needed")

    def test_contact_without_digits(self, client: TestClient) -> None:
        response = client.post("/api/v1/emergency/action", json={"channel": "chat", "contact": "police"})
        assert response.status_code == 422

    def test_assist_unknown_kind(self, client: TestClient) -> None:
        assert client.post("/api/v1/emergency/assist/flood").status_code == 422

    def test_location_out_of_range(self, client: TestClient) -> None:
        response = client.post("/api/v1/emergency/location", json={"latitude": 95, "longitude": 0})
        assert response.status_code == 422

    def test_share_location_copies_to_clipboard(self, client: TestClient) -> None:
        _report_location(client)
        data = client.post("/api/v1/emergency/share-location").json()
        assert data["shared"] is True
        assert data["method"] == "clipboard"
        assert data["text"] == "Emergency - My location: https://maps.google.com/?q=18.5204,73.8567"


class TestSessionEndpoints:
    def test_session_lifecycle(self, client: TestClient) -> None:
        assert client.get("/api/v1/session").json() == {"active": False, "session": None}

        _report_location(client)
        outcome = client.post(
            "/api/v1/emergency/action",
            json={"channel": "video", "in_app_session": True},
        ).json()
        assert outcome["session"]["state"] == "connected"
        assert client.get("/api/v1/session").json()["active"] is True

        toggled = client.post("/api/v1/session/camera").json()
        assert toggled == {
            "control": "camera_off",
            "value": True,
            "session": {
                "state": "connected",
                "microphone_muted": False,
                "camera_off": True,
                "target_contact": "7219435156",
            },
        }
        assert client.post("/api/v1/session/microphone").json()["value"] is True

        ended = client.post("/api/v1/session/end").json()
        assert ended["session"]["state"] == "ended"
        assert client.post("/api/v1/session/end").json()["session"]["state"] == "ended"


class TestEventsEndpoint:
    def test_events_are_buffered_and_drained(self, client: TestClient) -> None:
        client.post("/api/v1/emergency/action", json={"channel": "chat"})

        data = client.get("/api/v1/events", params={"drain": "true"}).json()
        assert [e["kind"] for e in data["events"]] == ["location.failed"]
        assert data["events"][0]["payload"] == {"error_kind": "unavailable", "retryable": True}
        assert client.get("/api/v1/events").json()["total"] == 0
