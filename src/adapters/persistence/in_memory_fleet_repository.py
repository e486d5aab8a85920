from __future__ import annotations

import threading
from dataclasses import dataclass, field

from src.app.ports.output import IProximityRepository, IVehicleStateRepository
from src.domain.algorithms.reconcile import apply_fare_check
from src.domain.exceptions.fleet import VehicleNotFoundError
from src.domain.models import FareCheck, ProximityRecord, VehicleState


@dataclass(slots=True)
class InMemoryVehicleStateRepository(IVehicleStateRepository):
    """Process-local store used when no DynamoDB table is configured."""

    _items: dict[str, VehicleState] = field(default_factory=dict, init=False)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def load_all(self) -> dict[str, VehicleState]:
        with self._lock:
            return dict(self._items)

    def upsert(self, state: VehicleState) -> None:
        with self._lock:
            self._items[state.vehicle_id] = state

    def apply_fare_check(self, check: FareCheck) -> VehicleState:
        with self._lock:
            current = self._items.get(check.vehicle_id)
            if current is None or current.route_id != check.route_id:
                raise VehicleNotFoundError(
                    f"No vehicle {check.vehicle_id} on route {check.route_id}"
                )
            updated = apply_fare_check(current, check)
            self._items[check.vehicle_id] = updated
            return updated


@dataclass(slots=True)
class InMemoryProximityRepository(IProximityRepository):
    _items: dict[str, ProximityRecord] = field(default_factory=dict, init=False)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def load_all(self) -> dict[str, ProximityRecord]:
        with self._lock:
            return dict(self._items)

    def upsert(self, record: ProximityRecord) -> None:
        with self._lock:
            self._items[record.vehicle_id] = record
