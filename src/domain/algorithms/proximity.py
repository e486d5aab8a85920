from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Iterable, Mapping

from src.domain.algorithms.geo_utils import haversine_distance_km
from src.domain.models import GeoPoint, ProximityRecord, Stop, VehicleState

logger = logging.getLogger(__name__)

STOP_RADIUS_KM = 0.05


def nearest_stop_within(
    position: GeoPoint, stops: Iterable[Stop], *, radius_km: float = STOP_RADIUS_KM
) -> Stop | None:
    """Return the closest stop strictly closer than radius_km, if any.

    On equal distances the stop listed first wins.
    """

    best: Stop | None = None
    best_d = radius_km
    for stop in stops:
        d = haversine_distance_km(position, stop.location)
        if d < best_d:
            best = stop
            best_d = d
    return best


def advance_on_arrival(state: VehicleState) -> VehicleState:
    """Consume one stop of a checked pass; completing the route ends the pass."""

    remaining = max(0, state.stops_remaining - 1)
    if remaining == 0:
        return replace(
            state,
            stops_remaining=0,
            checked=False,
            route_completions=state.route_completions + 1,
        )
    return replace(state, stops_remaining=remaining)


def match_arrivals(
    states: Iterable[VehicleState],
    stops: tuple[Stop, ...],
    proximity: Mapping[str, ProximityRecord],
    *,
    now: datetime,
    radius_km: float = STOP_RADIUS_KM,
) -> tuple[list[VehicleState], list[ProximityRecord]]:
    """Detect stop arrivals for checked vehicles.

    A vehicle only advances when the nearest qualifying stop differs from the
    last stop it was matched to, so a bus idling at a stop counts it once.
    Returns the updated states (same order as the input) and the proximity
    records that changed.
    """

    out_states: list[VehicleState] = []
    updates: list[ProximityRecord] = []

    for state in states:
        if not state.checked:
            out_states.append(state)
            continue

        stop = nearest_stop_within(
            GeoPoint(lat=state.lat, lon=state.lon), stops, radius_km=radius_km
        )
        last = proximity.get(state.vehicle_id)
        if stop is None or (
            last is not None and last.last_matched_stop_name == stop.name
        ):
            out_states.append(state)
            continue

        advanced = advance_on_arrival(state)
        out_states.append(advanced)
        updates.append(
            ProximityRecord(
                vehicle_id=state.vehicle_id,
                last_matched_stop_name=stop.name,
                matched_at=now,
            )
        )

        if advanced.checked:
            logger.info(
                "Vehicle %s at %s, stops remaining: %d",
                state.vehicle_id,
                stop.name,
                advanced.stops_remaining,
            )
        else:
            logger.info(
                "Vehicle %s completed route %s, completions: %d",
                state.vehicle_id,
                state.route_name,
                advanced.route_completions,
            )

    return out_states, updates
