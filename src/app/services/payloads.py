from __future__ import annotations

from typing import Any, Sequence

from src.domain.models import Stop, VehicleState

STOP_DETAIL_THRESHOLD = 14


def vehicle_to_dict(state: VehicleState) -> dict[str, Any]:
    return {
        "vehicle_id": state.vehicle_id,
        "route_id": state.route_id,
        "route_name": state.route_name,
        "lat": state.lat,
        "lon": state.lon,
        "checked": state.checked,
        "stops_remaining": state.stops_remaining,
        "mileage": state.mileage,
        "ticket_revenue": state.ticket_revenue,
        "fine_revenue": state.fine_revenue,
        "route_completions": state.route_completions,
        "last_updated": state.last_updated.isoformat(),
        "checked_at": state.checked_at.isoformat() if state.checked_at else None,
        "non_ticket_holders": state.non_ticket_holders,
        "checked_stop": state.checked_stop,
    }


def stop_to_dict(stop: Stop) -> dict[str, Any]:
    return {
        "stop_id": stop.id,
        "name": stop.name,
        "lat": stop.location.lat,
        "lon": stop.location.lon,
    }


def build_update(
    vehicles: Sequence[dict[str, Any]],
    stops: Sequence[dict[str, Any]],
    *,
    detail_level: int,
    threshold: int = STOP_DETAIL_THRESHOLD,
) -> dict[str, Any]:
    """Assemble one subscriber's push payload.

    Stops are only sent to subscribers zoomed in at or beyond the threshold.
    """

    payload: dict[str, Any] = {"vehicles": vehicles}
    if detail_level >= threshold:
        payload["stops"] = stops
    return payload
