import pytest
from conftest import IZMIR, FakeSupabase, seed_backend
from fastapi.testclient import TestClient

from convoy_radar.main import create_app
from convoy_radar.services.location.provider import PushedLocationProvider
from convoy_radar.services.monitoring import registry as registry_module
from convoy_radar.services.monitoring.registry import MonitorRegistry


@pytest.fixture
def backend() -> FakeSupabase:
    return seed_backend(FakeSupabase())


@pytest.fixture
def registry(backend: FakeSupabase, monkeypatch: pytest.MonkeyPatch) -> MonitorRegistry:
    test_registry = MonitorRegistry(lambda: backend, PushedLocationProvider, start_loops=False)
    monkeypatch.setattr(registry_module, "get_registry", lambda: test_registry)
    yield test_registry
    test_registry.stop_all()


@pytest.fixture
def api_client(registry: MonitorRegistry) -> TestClient:
    return TestClient(create_app())


def _push_origin(api_client: TestClient) -> dict:
    response = api_client.post("/api/monitor/b1/position", json={"lat": IZMIR.lat, "lng": IZMIR.lng})
    assert response.status_code == 200
    return response.json()


def test_health(api_client: TestClient):
    response = api_client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_active_convoys_without_origin(api_client: TestClient):
    response = api_client.get("/api/convoys/active", params={"business_id": "b1", "radius_km": 1})

    assert response.status_code == 200
    payload = response.json()
    assert payload["origin"] is None
    # no device position: the radius is ignored
    assert payload["radius_km"] is None
    assert payload["total"] == 2
    assert payload["sort"] == "smart"
    assert all(item["distance_km"] is None for item in payload["items"])


def test_active_convoys_with_origin_radius_and_sort(api_client: TestClient):
    summary = _push_origin(api_client)
    assert summary["origin"] == {"lat": IZMIR.lat, "lng": IZMIR.lng}
    assert summary["kpis"]["nearest_active_distance_km"] is not None

    near = api_client.get("/api/convoys/active", params={"business_id": "b1", "radius_km": 25, "sort": "closest"})
    assert near.status_code == 200
    payload = near.json()
    assert payload["radius_km"] == 25
    assert [item["id"] for item in payload["items"]] == ["c1"]
    item = payload["items"][0]
    assert item["category"] == "Motosiklet"
    assert item["trend"] == "unknown"
    assert item["leader_position"] == {"lat": 38.45, "lng": 27.1}
    assert item["headcount"]["confirmed_headcount"] == 5

    everything = api_client.get("/api/convoys/active", params={"business_id": "b1", "sort": "closest"})
    assert [item["id"] for item in everything.json()["items"]] == ["c1", "c2"]


def test_invalid_radius_is_clamped(api_client: TestClient):
    _push_origin(api_client)

    response = api_client.get("/api/convoys/active", params={"business_id": "b1", "radius_km": "-5"})

    assert response.status_code == 200
    assert response.json()["radius_km"] == 30


def test_blank_radius_leaves_proximity_filter_off(api_client: TestClient):
    _push_origin(api_client)

    listing = api_client.get("/api/convoys/active", params={"business_id": "b1", "radius_km": ""})
    summary = api_client.get("/api/monitor/b1/summary", params={"radius_km": ""})

    assert listing.status_code == 200
    assert listing.json()["radius_km"] is None
    assert listing.json()["total"] == 2
    assert summary.json()["radius_km"] is None


def test_planned_convoys_with_category_and_fallback_sort(api_client: TestClient):
    response = api_client.get(
        "/api/convoys/planned",
        params={"business_id": "b1", "sort": "closest", "category": "Hepsi", "location": "nevsehir"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["sort"] == "smart"
    assert payload["sort_options"] == ["smart", "start_time", "headcount", "recent"]
    assert [item["id"] for item in payload["items"]] == ["p1"]
    assert payload["items"][0]["trend"] is None


def test_active_category_filter_uses_description(api_client: TestClient):
    response = api_client.get("/api/convoys/active", params={"business_id": "b1", "category": "karavan"})

    assert [item["id"] for item in response.json()["items"]] == ["c2"]


def test_business_id_is_required(api_client: TestClient):
    assert api_client.get("/api/convoys/active").status_code == 422


def test_offer_list_with_empty_archive_falls_back(api_client: TestClient):
    response = api_client.get("/api/offers", params={"business_id": "b1", "archive": True, "status": "all"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["show_archive"] is False
    assert [item["id"] for item in payload["items"]] == ["o1"]
    assert payload["counts"] == {"total": 1, "active": 1, "archived": 0, "pending": 1}
    assert payload["items"][0]["captain_name"] == "Ayşe Kaptan"


def test_send_offer(api_client: TestClient, backend: FakeSupabase):
    response = api_client.post(
        "/api/offers",
        json={"business_id": "b1", "convoy_id": "c1", "title": "Mola", "details": "Çay ikramı", "coupon_id": "k1"},
    )

    assert response.status_code == 201
    payload = response.json()
    assert payload["sent"] is True
    assert payload["offer"]["status"] == "pending"
    table, inserted = backend.inserted[0]
    assert table == "convoy_offers"
    assert inserted["captain_id"] == "u1"
    assert inserted["coupon_campaign_id"] == "k1"


def test_send_offer_errors(api_client: TestClient, backend: FakeSupabase):
    unknown = api_client.post(
        "/api/offers",
        json={"business_id": "b1", "convoy_id": "nope", "title": "Mola", "details": "Çay"},
    )
    blank = api_client.post(
        "/api/offers",
        json={"business_id": "b1", "convoy_id": "c1", "title": "   ", "details": "Çay"},
    )
    backend.fail("convoy_offers", RuntimeError("column coupon_campaign_id does not exist"), when=lambda q: q.payload)
    no_coupon_column = api_client.post(
        "/api/offers",
        json={"business_id": "b1", "convoy_id": "c1", "title": "Mola", "details": "Çay", "coupon_id": "k1"},
    )

    assert unknown.status_code == 404
    assert blank.status_code == 400
    assert no_coupon_column.status_code == 400
    assert backend.inserted == []


def test_summary_reports_advisories(api_client: TestClient):
    response = api_client.get("/api/monitor/b1/summary")

    assert response.status_code == 200
    payload = response.json()
    assert payload["active_count"] == 2
    assert payload["planned_count"] == 1
    assert payload["distance_presets"] == [10, 25, 40, 60, 80]
    assert [coupon["id"] for coupon in payload["coupons"]] == ["k1"]
    assert payload["coupons"][0]["benefit"] == "%10 indirim"
    assert any("Device position" in advisory for advisory in payload["advisories"])


def test_refresh_and_stop(api_client: TestClient, registry: MonitorRegistry):
    refreshed = api_client.post("/api/monitor/b1/refresh")
    assert refreshed.status_code == 200
    assert refreshed.json()["sequence"] == 2

    assert api_client.delete("/api/monitor/b1").status_code == 200
    assert api_client.delete("/api/monitor/b1").status_code == 404
    assert registry.business_ids() == []


def test_backend_not_configured(monkeypatch: pytest.MonkeyPatch):
    def missing_client():
        raise ConnectionError("Supabase not configured.")

    unconfigured = MonitorRegistry(missing_client, PushedLocationProvider, start_loops=False)
    monkeypatch.setattr(registry_module, "get_registry", lambda: unconfigured)

    response = TestClient(create_app()).get("/api/convoys/active", params={"business_id": "b1"})

    assert response.status_code == 503
