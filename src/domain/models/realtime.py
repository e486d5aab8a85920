from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class VehicleSnapshot:
    """One vehicle position as decoded from a single feed fetch."""

    vehicle_id: str
    route_id: str
    route_name: str
    lat: float
    lon: float
    captured_at: datetime
    # True when the id came from a fallback field instead of the vehicle descriptor.
    id_synthesized: bool = False
