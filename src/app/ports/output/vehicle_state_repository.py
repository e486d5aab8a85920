from __future__ import annotations

from abc import ABC, abstractmethod

from src.domain.models.fleet import FareCheck, VehicleState


class IVehicleStateRepository(ABC):
    """Durable store of VehicleState rows keyed by vehicle_id."""

    @abstractmethod
    def load_all(self) -> dict[str, VehicleState]:
        raise NotImplementedError

    @abstractmethod
    def upsert(self, state: VehicleState) -> None:
        raise NotImplementedError

    @abstractmethod
    def apply_fare_check(self, check: FareCheck) -> VehicleState:
        """Mark the stored vehicle as checked.

        Raises VehicleNotFoundError if no row matches vehicle_id and route_id.
        """
