from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.adapters.persistence import (
    DynamoDbProximityRepository,
    DynamoDbVehicleStateRepository,
)
from src.domain.exceptions.fleet import VehicleNotFoundError
from src.domain.models import FareCheck, ProximityRecord, VehicleState

NOW = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


@pytest.mark.integration
def test_dynamodb_vehicle_state_repository_upsert_and_load(
    ddb_table, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("VEHICLE_STATE_TABLE", ddb_table("buswatch-test-states"))

    repo = DynamoDbVehicleStateRepository()
    state = VehicleState(
        vehicle_id="V1",
        route_id="R1",
        route_name="Airport Express",
        lat=28.1,
        lon=-15.4,
        last_updated=NOW,
        stops_remaining=6,
    )
    repo.upsert(state)
    repo.upsert(state)

    loaded = repo.load_all()
    assert loaded == {"V1": state}


@pytest.mark.integration
def test_dynamodb_vehicle_state_repository_fare_check(ddb_table) -> None:
    table = ddb_table("buswatch-test-states")

    repo = DynamoDbVehicleStateRepository(table_name=table)
    repo.upsert(
        VehicleState(
            vehicle_id="V1",
            route_id="R1",
            route_name="Airport Express",
            lat=28.1,
            lon=-15.4,
            last_updated=NOW,
            stops_remaining=2,
            route_completions=5,
        )
    )

    received = NOW + timedelta(seconds=30)
    updated = repo.apply_fare_check(
        FareCheck(
            vehicle_id="V1",
            route_id="R1",
            non_ticket_holders=2,
            fine_collected=40.0,
            received_at=received,
        )
    )

    assert updated.checked is True
    assert updated.stops_remaining == 10
    assert updated.fine_revenue == 40.0
    assert updated.route_completions == 5
    assert updated.checked_at == received
    assert repo.load_all()["V1"] == updated

    with pytest.raises(VehicleNotFoundError):
        repo.apply_fare_check(
            FareCheck(
                vehicle_id="V1",
                route_id="R2",
                non_ticket_holders=0,
                fine_collected=0.0,
                received_at=received,
            )
        )

    with pytest.raises(VehicleNotFoundError):
        repo.apply_fare_check(
            FareCheck(
                vehicle_id="V404",
                route_id="R1",
                non_ticket_holders=0,
                fine_collected=0.0,
                received_at=received,
            )
        )

    # A failed conditional update must not create a row.
    assert set(repo.load_all()) == {"V1"}


@pytest.mark.integration
def test_dynamodb_proximity_repository_upsert_and_load(
    ddb_table,
) -> None:
    table = ddb_table("buswatch-test-proximity")

    repo = DynamoDbProximityRepository(table_name=table)
    repo.upsert(
        ProximityRecord(
            vehicle_id="V1", last_matched_stop_name="Harbour", matched_at=NOW
        )
    )
    later = ProximityRecord(
        vehicle_id="V1",
        last_matched_stop_name="Market",
        matched_at=NOW + timedelta(minutes=2),
    )
    repo.upsert(later)

    assert repo.load_all() == {"V1": later}
