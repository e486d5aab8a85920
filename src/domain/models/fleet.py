from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

MAX_STOPS_REMAINING = 10
DEFAULT_MILEAGE = 1.75
UNKNOWN_ROUTE_ID = "UNKNOWN"


@dataclass(frozen=True, slots=True)
class VehicleState:
    """Durable per-vehicle state, one row per vehicle_id.

    Instances are immutable; every transition produces a new value so a
    published working set can be read while the next one is being built.
    """

    vehicle_id: str
    route_id: str
    route_name: str
    lat: float
    lon: float
    last_updated: datetime
    checked: bool = False
    stops_remaining: int = MAX_STOPS_REMAINING
    mileage: float = DEFAULT_MILEAGE
    ticket_revenue: float = 0.0
    fine_revenue: float = 0.0
    route_completions: int = 0
    # Start of the current checked pass; None until the first fare check.
    checked_at: datetime | None = None
    # Outcome of the latest fare check.
    non_ticket_holders: int = 0
    checked_stop: str | None = None

    def __post_init__(self) -> None:
        if not (0 <= self.stops_remaining <= MAX_STOPS_REMAINING):
            raise ValueError(f"Invalid stops_remaining: {self.stops_remaining}")
        if self.ticket_revenue < 0 or self.fine_revenue < 0:
            raise ValueError("Revenue accumulators must be non-negative")
        if self.route_completions < 0:
            raise ValueError(f"Invalid route_completions: {self.route_completions}")
        if self.non_ticket_holders < 0:
            raise ValueError(f"Invalid non_ticket_holders: {self.non_ticket_holders}")


@dataclass(frozen=True, slots=True)
class ProximityRecord:
    """Last stop a checked vehicle was matched to (hysteresis gate)."""

    vehicle_id: str
    last_matched_stop_name: str
    matched_at: datetime


@dataclass(frozen=True, slots=True)
class FareCheck:
    """A fare-verification pass reported by inspection staff."""

    vehicle_id: str
    route_id: str
    non_ticket_holders: int
    fine_collected: float
    received_at: datetime
    # Stop the vehicle was last matched to when the check came in.
    last_stop: str | None = None
