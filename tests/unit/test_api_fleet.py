from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from src.adapters.api.dependencies import (
    get_fare_check_service,
    get_fleet_pipeline,
    get_pipeline_status,
)
from src.domain.exceptions.fleet import VehicleNotFoundError
from src.domain.models import GeoPoint, Stop, VehicleState
from src.main import app

NOW = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)
VEHICLE = VehicleState(
    vehicle_id="V1",
    route_id="R1",
    route_name="Airport Express",
    lat=28.1,
    lon=-15.4,
    last_updated=NOW,
    checked=True,
    stops_remaining=7,
    fine_revenue=20.0,
    route_completions=2,
    checked_at=NOW,
    non_ticket_holders=2,
    checked_stop="Harbour",
)


class _FakePipeline:
    def current_vehicles(self) -> tuple[VehicleState, ...]:
        return (VEHICLE,)

    def find_vehicle(self, vehicle_id: str) -> VehicleState | None:
        return VEHICLE if vehicle_id == VEHICLE.vehicle_id else None

    def stops(self) -> tuple[Stop, ...]:
        return (Stop(id="S1", name="Harbour", location=GeoPoint(lat=28.1, lon=-15.4)),)


class _FakeFareCheckService:
    def record(
        self,
        *,
        vehicle_id: str,
        route_id: str,
        non_ticket_holders: int,
        fine_collected: float,
    ) -> VehicleState:
        if vehicle_id != "V1":
            raise VehicleNotFoundError(f"No vehicle {vehicle_id} on route {route_id}")
        return VEHICLE


@pytest.fixture
def client_overrides():
    app.dependency_overrides[get_fleet_pipeline] = lambda: _FakePipeline()
    app.dependency_overrides[get_fare_check_service] = lambda: _FakeFareCheckService()
    app.dependency_overrides[get_pipeline_status] = lambda: {
        "running": True,
        "cycle_in_flight": False,
        "last_cycle_at": NOW.isoformat(),
        "cycle_count": 12,
        "skipped_ticks": 1,
        "error_count": 0,
        "interval_seconds": 5.0,
        "last_vehicle_count": 1,
        "last_feed_stale": False,
        "subscribers": 2,
    }
    yield
    app.dependency_overrides.clear()


async def _request(method: str, url: str, **kwargs) -> httpx.Response:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.request(method, url, **kwargs)


@pytest.mark.unit
@pytest.mark.anyio
async def test_get_vehicles(client_overrides) -> None:
    resp = await _request("GET", "/api/vehicles")

    assert resp.status_code == 200
    (vehicle,) = resp.json()["vehicles"]
    assert vehicle["vehicle_id"] == "V1"
    assert vehicle["route_name"] == "Airport Express"
    assert vehicle["checked"] is True
    assert vehicle["stops_remaining"] == 7
    assert vehicle["mileage"] == 1.75


@pytest.mark.unit
@pytest.mark.anyio
async def test_get_vehicle_by_id(client_overrides) -> None:
    resp = await _request("GET", "/api/vehicles/V1")

    assert resp.status_code == 200
    vehicle = resp.json()
    assert vehicle["route_completions"] == 2
    assert vehicle["non_ticket_holders"] == 2
    assert vehicle["checked_stop"] == "Harbour"


@pytest.mark.unit
@pytest.mark.anyio
async def test_get_unknown_vehicle_is_404(client_overrides) -> None:
    resp = await _request("GET", "/api/vehicles/V9")

    assert resp.status_code == 404
    assert "V9" in resp.json()["detail"]


@pytest.mark.unit
@pytest.mark.anyio
async def test_get_stops(client_overrides) -> None:
    resp = await _request("GET", "/api/stops")

    assert resp.status_code == 200
    assert resp.json() == [
        {"stop_id": "S1", "name": "Harbour", "lat": 28.1, "lon": -15.4}
    ]


@pytest.mark.unit
@pytest.mark.anyio
async def test_post_fare_check_returns_updated_vehicle(client_overrides) -> None:
    resp = await _request(
        "POST",
        "/api/fare-checks",
        json={
            "vehicle_id": "V1",
            "route_id": "R1",
            "non_ticket_holders": 2,
            "fine_collected": 20.0,
        },
    )

    assert resp.status_code == 200
    payload = resp.json()
    assert payload["success"] is True
    assert payload["vehicle"]["fine_revenue"] == 20.0


@pytest.mark.unit
@pytest.mark.anyio
async def test_post_fare_check_unknown_vehicle_is_404(client_overrides) -> None:
    resp = await _request(
        "POST",
        "/api/fare-checks",
        json={
            "vehicle_id": "V9",
            "route_id": "R1",
            "non_ticket_holders": 0,
            "fine_collected": 0,
        },
    )

    assert resp.status_code == 404
    assert "V9" in resp.json()["detail"]


@pytest.mark.unit
@pytest.mark.anyio
async def test_post_fare_check_rejects_negative_values(client_overrides) -> None:
    resp = await _request(
        "POST",
        "/api/fare-checks",
        json={
            "vehicle_id": "V1",
            "route_id": "R1",
            "non_ticket_holders": -1,
            "fine_collected": 0,
        },
    )

    assert resp.status_code == 422


@pytest.mark.unit
@pytest.mark.anyio
async def test_pipeline_status(client_overrides) -> None:
    resp = await _request("GET", "/api/pipeline/status")

    assert resp.status_code == 200
    payload = resp.json()
    assert payload["running"] is True
    assert payload["cycle_count"] == 12
    assert payload["subscribers"] == 2


@pytest.mark.unit
@pytest.mark.anyio
async def test_health() -> None:
    resp = await _request("GET", "/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
