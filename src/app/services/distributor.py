from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from src.app.ports.output import ISubscriberGateway
from src.app.services.payloads import (
    STOP_DETAIL_THRESHOLD,
    build_update,
    stop_to_dict,
    vehicle_to_dict,
)
from src.app.services.subscription_registry import SubscriptionRegistry
from src.domain.exceptions.fleet import DeliveryError
from src.domain.models import ClientSubscription, Stop, VehicleState

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BroadcastReport:
    delivered: tuple[str, ...] = ()
    failed: tuple[str, ...] = ()


@dataclass(slots=True)
class Distributor:
    """Pushes the fleet snapshot to every live subscriber individually.

    Each delivery has its own timeout; a slow or failing subscriber is skipped
    for the cycle without delaying the others.
    """

    gateway: ISubscriberGateway
    registry: SubscriptionRegistry = field(default_factory=SubscriptionRegistry)
    detail_threshold: int = STOP_DETAIL_THRESHOLD
    delivery_timeout_s: float = 2.0

    _latest_vehicles: list[dict[str, Any]] = field(default_factory=list, init=False)
    _latest_stops: list[dict[str, Any]] = field(default_factory=list, init=False)

    async def broadcast(
        self, vehicles: Sequence[VehicleState], stops: Sequence[Stop]
    ) -> BroadcastReport:
        # Serialized once per cycle and shared by every subscriber's payload.
        self._latest_vehicles = [vehicle_to_dict(v) for v in vehicles]
        self._latest_stops = [stop_to_dict(s) for s in stops]

        subscriptions = self.registry.snapshot()
        if not subscriptions:
            return BroadcastReport()

        results = await asyncio.gather(
            *(
                self._deliver(sub.subscriber_id, self._payload_for(sub))
                for sub in subscriptions
            )
        )

        delivered: list[str] = []
        failed: list[str] = []
        for sub, error in zip(subscriptions, results):
            if error is None:
                delivered.append(sub.subscriber_id)
            else:
                failed.append(sub.subscriber_id)

        return BroadcastReport(delivered=tuple(delivered), failed=tuple(failed))

    async def send_current(self, subscriber_id: str) -> DeliveryError | None:
        """Push the last broadcast snapshot to one subscriber."""

        sub = self.registry.get(subscriber_id)
        if sub is None:
            return None
        return await self._deliver(subscriber_id, self._payload_for(sub))

    def _payload_for(self, sub: ClientSubscription) -> dict[str, Any]:
        return build_update(
            self._latest_vehicles,
            self._latest_stops,
            detail_level=sub.detail_level,
            threshold=self.detail_threshold,
        )

    async def _deliver(
        self, subscriber_id: str, payload: Mapping[str, Any]
    ) -> DeliveryError | None:
        try:
            await asyncio.wait_for(
                self.gateway.send(subscriber_id, payload),
                timeout=self.delivery_timeout_s,
            )
        except asyncio.TimeoutError:
            error = DeliveryError(
                subscriber_id, f"timed out after {self.delivery_timeout_s}s"
            )
        except Exception as exc:
            error = DeliveryError(subscriber_id, f"{type(exc).__name__}: {exc}")
        else:
            return None

        logger.warning("%s", error)
        return error
