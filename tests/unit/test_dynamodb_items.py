from __future__ import annotations

from datetime import datetime, timezone

from src.adapters.persistence.dynamodb_items import (
    item_to_proximity,
    item_to_state,
    proximity_to_item,
    state_to_item,
)
from src.domain.models import ProximityRecord, VehicleState

NOW = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


def test_state_item_uses_native_attribute_types() -> None:
    state = VehicleState(
        vehicle_id="V1",
        route_id="R1",
        route_name="Line 1",
        lat=28.1,
        lon=-15.4,
        last_updated=NOW,
        checked=True,
        stops_remaining=4,
        fine_revenue=12.5,
        route_completions=2,
        checked_at=NOW,
        non_ticket_holders=3,
        checked_stop="Harbour",
    )

    item = state_to_item(state)

    assert item["vehicle_id"] == {"S": "V1"}
    assert item["checked"] == {"BOOL": True}
    assert item["stops_remaining"] == {"N": "4"}
    assert item["checked_at"] == {"S": NOW.isoformat()}
    assert item["non_ticket_holders"] == {"N": "3"}
    assert item["checked_stop"] == {"S": "Harbour"}
    assert item_to_state(item) == state


def test_state_item_without_check_omits_checked_at() -> None:
    state = VehicleState(
        vehicle_id="V1",
        route_id="R1",
        route_name="Line 1",
        lat=28.1,
        lon=-15.4,
        last_updated=NOW,
    )

    item = state_to_item(state)

    assert "checked_at" not in item
    assert "checked_stop" not in item
    assert item_to_state(item).checked_at is None


def test_item_to_state_fills_missing_counters_with_defaults() -> None:
    item = {
        "vehicle_id": {"S": "V1"},
        "route_id": {"S": "R1"},
        "route_name": {"S": "Line 1"},
        "lat": {"N": "28.1"},
        "lon": {"N": "-15.4"},
        "last_updated": {"S": NOW.isoformat()},
    }

    state = item_to_state(item)

    assert state.checked is False
    assert state.stops_remaining == 10
    assert state.mileage == 1.75
    assert state.route_completions == 0
    assert state.non_ticket_holders == 0
    assert state.checked_stop is None


def test_proximity_item() -> None:
    record = ProximityRecord(
        vehicle_id="V1", last_matched_stop_name="Harbour", matched_at=NOW
    )

    item = proximity_to_item(record)

    assert item["last_matched_stop_name"] == {"S": "Harbour"}
    assert item_to_proximity(item) == record
