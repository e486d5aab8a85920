from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from src.app.ports.output import (
    IProximityRepository,
    IVehicleFeedProvider,
    IVehicleStateRepository,
)
from src.app.services.distributor import BroadcastReport, Distributor
from src.app.services.persistence_sync import PersistenceSync, PersistReport
from src.domain.algorithms.proximity import STOP_RADIUS_KM, match_arrivals
from src.domain.algorithms.reconcile import apply_fare_checks, merge
from src.domain.exceptions.feed import FetchExhaustedError
from src.domain.models import (
    FareCheck,
    ProximityRecord,
    ReferenceDirectory,
    Stop,
    VehicleState,
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class CycleReport:
    vehicles: int
    arrivals: int
    feed_stale: bool
    broadcast: BroadcastReport
    persisted: PersistReport | None = None


@dataclass(slots=True)
class FleetPipeline:
    """One feed cycle: fetch, reconcile, match, then broadcast and persist.

    The pipeline is the only writer of the working vehicle set. Each cycle
    publishes a new immutable tuple, so readers (HTTP handlers, a broadcast
    still in flight) never observe a partially built set.

    Proximity records live in memory once loaded from the store, so a failed
    proximity write cannot undo stop hysteresis on the next cycle. States
    that did not reach the store are kept and laid over the next load.
    """

    feed: IVehicleFeedProvider
    state_repository: IVehicleStateRepository
    proximity_repository: IProximityRepository
    directory: ReferenceDirectory
    distributor: Distributor
    persistence: PersistenceSync
    radius_km: float = STOP_RADIUS_KM
    persist_timeout_s: float = 10.0
    clock: Callable[[], datetime] = utcnow

    _working_set: tuple[VehicleState, ...] = field(default=(), init=False)
    _proximity: dict[str, ProximityRecord] = field(default_factory=dict, init=False)
    _proximity_loaded: bool = field(default=False, init=False)
    _unsaved: dict[str, VehicleState] = field(default_factory=dict, init=False)
    _unsaved_proximity: set[str] = field(default_factory=set, init=False)
    _pending_checks: list[FareCheck] = field(default_factory=list, init=False)
    _pending_lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def current_vehicles(self) -> tuple[VehicleState, ...]:
        return self._working_set

    def find_vehicle(self, vehicle_id: str) -> VehicleState | None:
        for state in self._working_set:
            if state.vehicle_id == vehicle_id:
                return state
        return None

    def last_stop_of(self, vehicle_id: str) -> str | None:
        record = self._proximity.get(vehicle_id)
        return record.last_matched_stop_name if record else None

    def stops(self) -> tuple[Stop, ...]:
        return self.directory.stops

    def enqueue_fare_check(self, check: FareCheck) -> None:
        """Queue a fare check so the next reconcile sees it.

        The store is already updated by the caller; the queue covers a cycle
        that loaded its prior states before the check and would otherwise
        write them back over it.
        """

        with self._pending_lock:
            self._pending_checks.append(check)

    def _drain_fare_checks(self) -> list[FareCheck]:
        with self._pending_lock:
            checks = self._pending_checks
            self._pending_checks = []
        return checks

    async def run_cycle(self) -> CycleReport:
        try:
            snapshots = await self.feed.fetch_snapshot()
        except FetchExhaustedError as exc:
            logger.error(
                "Max retries reached for feed fetch, keeping %d vehicle(s) "
                "from the previous cycle: %s",
                len(self._working_set),
                exc,
            )
            report = await self.distributor.broadcast(
                self._working_set, self.directory.stops
            )
            return CycleReport(
                vehicles=len(self._working_set),
                arrivals=0,
                feed_stale=True,
                broadcast=report,
            )

        prior_states = await self._load_prior_states()
        proximity_ready = await self._load_proximity()

        checks = self._drain_fare_checks()
        if checks:
            prior_states = apply_fare_checks(prior_states, checks)

        merged = merge(snapshots, prior_states)
        if proximity_ready:
            matched, proximity_updates = match_arrivals(
                merged,
                self.directory.stops,
                self._proximity,
                now=self.clock(),
                radius_km=self.radius_km,
            )
            self._proximity = {
                **self._proximity,
                **{r.vehicle_id: r for r in proximity_updates},
            }
        else:
            # Without the last matched stops every parked vehicle would count
            # its stop again.
            matched, proximity_updates = merged, []

        working_set = tuple(matched)
        self._working_set = working_set

        broadcast_report, persist_report = await asyncio.gather(
            self.distributor.broadcast(working_set, self.directory.stops),
            self.persistence.persist(
                working_set,
                self._proximity_to_write(proximity_updates),
                timeout_s=self.persist_timeout_s,
            ),
        )
        self._remember_unsaved(working_set, persist_report)

        logger.info(
            "Fetched %d vehicles, %d stop arrival(s), "
            "delivered to %d/%d subscriber(s)",
            len(working_set),
            len(proximity_updates),
            len(broadcast_report.delivered),
            len(broadcast_report.delivered) + len(broadcast_report.failed),
        )

        return CycleReport(
            vehicles=len(working_set),
            arrivals=len(proximity_updates),
            feed_stale=False,
            broadcast=broadcast_report,
            persisted=persist_report,
        )

    async def _load_prior_states(self) -> dict[str, VehicleState]:
        try:
            prior_states = dict(await asyncio.to_thread(self.state_repository.load_all))
        except Exception as exc:
            logger.warning(
                "Could not load stored vehicle states, reusing %d from the "
                "previous cycle: %s",
                len(self._working_set),
                exc,
            )
            prior_states = {s.vehicle_id: s for s in self._working_set}
        prior_states.update(self._unsaved)
        return prior_states

    async def _load_proximity(self) -> bool:
        if self._proximity_loaded:
            return True
        try:
            stored = dict(await asyncio.to_thread(self.proximity_repository.load_all))
        except Exception as exc:
            logger.warning(
                "Could not load stored proximity records, skipping stop "
                "matching this cycle: %s",
                exc,
            )
            return False
        stored.update(self._proximity)
        self._proximity = stored
        self._proximity_loaded = True
        return True

    def _proximity_to_write(
        self, proximity_updates: list[ProximityRecord]
    ) -> list[ProximityRecord]:
        fresh = {r.vehicle_id for r in proximity_updates}
        retries = [
            self._proximity[vid]
            for vid in sorted(self._unsaved_proximity - fresh)
            if vid in self._proximity
        ]
        return list(proximity_updates) + retries

    def _remember_unsaved(
        self, working_set: tuple[VehicleState, ...], report: PersistReport
    ) -> None:
        current = {s.vehicle_id for s in working_set}
        unsaved = {
            vid: s for vid, s in self._unsaved.items() if vid not in current
        }
        by_id = {s.vehicle_id: s for s in working_set}
        for vehicle_id in report.unsaved:
            unsaved[vehicle_id] = by_id[vehicle_id]
        self._unsaved = unsaved
        self._unsaved_proximity = set(report.unsaved_proximity)
