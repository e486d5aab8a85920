from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from src.app.ports.output import IVehicleStateRepository
from src.app.services.fleet_pipeline import FleetPipeline, utcnow
from src.domain.exceptions.fleet import InvalidFareCheckError
from src.domain.models import FareCheck, VehicleState

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FareCheckService:
    """Records a fare-verification pass reported by inspection staff.

    The stored vehicle starts a new checked pass immediately and keeps the
    check outcome (non-ticket holders, fine, the stop it was last seen at).
    The pipeline is told as well so the next cycle cannot write an older
    state back.
    """

    state_repository: IVehicleStateRepository
    pipeline: FleetPipeline
    clock: Callable[[], datetime] = utcnow

    def record(
        self,
        *,
        vehicle_id: str,
        route_id: str,
        non_ticket_holders: int,
        fine_collected: float,
    ) -> VehicleState:
        if not vehicle_id or not route_id:
            raise InvalidFareCheckError("vehicle_id and route_id are required")
        if non_ticket_holders < 0:
            raise InvalidFareCheckError("non_ticket_holders must be non-negative")
        if fine_collected < 0:
            raise InvalidFareCheckError("fine_collected must be non-negative")

        check = FareCheck(
            vehicle_id=vehicle_id,
            route_id=route_id,
            non_ticket_holders=int(non_ticket_holders),
            fine_collected=float(fine_collected),
            received_at=self.clock(),
            last_stop=self.pipeline.last_stop_of(vehicle_id),
        )

        state = self.state_repository.apply_fare_check(check)
        self.pipeline.enqueue_fare_check(check)

        logger.info(
            "Fare check on vehicle %s (route %s, last stop %s): "
            "%d without ticket, fine %.2f",
            vehicle_id,
            route_id,
            check.last_stop or "none",
            check.non_ticket_holders,
            check.fine_collected,
        )
        return state
