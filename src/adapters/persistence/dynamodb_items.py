"""Conversions between domain records and DynamoDB attribute maps."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from src.domain.models import ProximityRecord, VehicleState


def _n(value: float | int) -> dict[str, str]:
    return {"N": str(value)}


def _s(value: str) -> dict[str, str]:
    return {"S": value}


def state_to_item(state: VehicleState) -> dict[str, Any]:
    item: dict[str, Any] = {
        "vehicle_id": _s(state.vehicle_id),
        "route_id": _s(state.route_id),
        "route_name": _s(state.route_name),
        "lat": _n(state.lat),
        "lon": _n(state.lon),
        "checked": {"BOOL": state.checked},
        "stops_remaining": _n(state.stops_remaining),
        "mileage": _n(state.mileage),
        "ticket_revenue": _n(state.ticket_revenue),
        "fine_revenue": _n(state.fine_revenue),
        "route_completions": _n(state.route_completions),
        "last_updated": _s(state.last_updated.isoformat()),
        "non_ticket_holders": _n(state.non_ticket_holders),
    }
    if state.checked_at is not None:
        item["checked_at"] = _s(state.checked_at.isoformat())
    if state.checked_stop is not None:
        item["checked_stop"] = _s(state.checked_stop)
    return item


def item_to_state(item: Mapping[str, Any]) -> VehicleState:
    checked_at = item.get("checked_at", {}).get("S")
    return VehicleState(
        vehicle_id=item["vehicle_id"]["S"],
        route_id=item.get("route_id", {}).get("S", ""),
        route_name=item.get("route_name", {}).get("S", ""),
        lat=float(item.get("lat", {}).get("N", "0")),
        lon=float(item.get("lon", {}).get("N", "0")),
        last_updated=datetime.fromisoformat(item["last_updated"]["S"]),
        checked=bool(item.get("checked", {}).get("BOOL", False)),
        stops_remaining=int(item.get("stops_remaining", {}).get("N", "10")),
        mileage=float(item.get("mileage", {}).get("N", "1.75")),
        ticket_revenue=float(item.get("ticket_revenue", {}).get("N", "0")),
        fine_revenue=float(item.get("fine_revenue", {}).get("N", "0")),
        route_completions=int(item.get("route_completions", {}).get("N", "0")),
        checked_at=datetime.fromisoformat(checked_at) if checked_at else None,
        non_ticket_holders=int(item.get("non_ticket_holders", {}).get("N", "0")),
        checked_stop=item.get("checked_stop", {}).get("S"),
    )


def proximity_to_item(record: ProximityRecord) -> dict[str, Any]:
    return {
        "vehicle_id": _s(record.vehicle_id),
        "last_matched_stop_name": _s(record.last_matched_stop_name),
        "matched_at": _s(record.matched_at.isoformat()),
    }


def item_to_proximity(item: Mapping[str, Any]) -> ProximityRecord:
    return ProximityRecord(
        vehicle_id=item["vehicle_id"]["S"],
        last_matched_stop_name=item["last_matched_stop_name"]["S"],
        matched_at=datetime.fromisoformat(item["matched_at"]["S"]),
    )
