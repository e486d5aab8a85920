from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Mapping

from src.domain.models import (
    MAX_STOPS_REMAINING,
    FareCheck,
    VehicleSnapshot,
    VehicleState,
)


def initial_state(snapshot: VehicleSnapshot) -> VehicleState:
    return VehicleState(
        vehicle_id=snapshot.vehicle_id,
        route_id=snapshot.route_id,
        route_name=snapshot.route_name,
        lat=snapshot.lat,
        lon=snapshot.lon,
        last_updated=snapshot.captured_at,
    )


def merge(
    fresh: Iterable[VehicleSnapshot], prior_states: Mapping[str, VehicleState]
) -> list[VehicleState]:
    """Combine this cycle's snapshots with the persisted per-vehicle state.

    Counters and flags are carried over from the prior state; route, position
    and timestamp always come from the snapshot. Stored vehicles missing from
    the feed are not part of the result.
    """

    merged: dict[str, VehicleState] = {}
    for snap in fresh:
        prior = prior_states.get(snap.vehicle_id)
        if prior is None:
            merged[snap.vehicle_id] = initial_state(snap)
            continue

        merged[snap.vehicle_id] = replace(
            prior,
            route_id=snap.route_id,
            route_name=snap.route_name,
            lat=snap.lat,
            lon=snap.lon,
            last_updated=snap.captured_at,
        )

    return list(merged.values())


def apply_fare_check(state: VehicleState, check: FareCheck) -> VehicleState:
    """Start a new checked pass: reset the stop budget and record the fine."""

    return replace(
        state,
        checked=True,
        fine_revenue=float(check.fine_collected),
        stops_remaining=MAX_STOPS_REMAINING,
        last_updated=check.received_at,
        checked_at=check.received_at,
        non_ticket_holders=check.non_ticket_holders,
        checked_stop=check.last_stop,
    )


def apply_fare_checks(
    states: Mapping[str, VehicleState], checks: Iterable[FareCheck]
) -> dict[str, VehicleState]:
    out = dict(states)
    for check in checks:
        state = out.get(check.vehicle_id)
        if state is None or state.route_id != check.route_id:
            continue
        # Already reflected in the stored row (loaded after the check landed).
        if state.checked_at is not None and state.checked_at >= check.received_at:
            continue
        out[check.vehicle_id] = apply_fare_check(state, check)
    return out
