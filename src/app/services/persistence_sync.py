from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from src.app.ports.output import IProximityRepository, IVehicleStateRepository
from src.domain.exceptions.fleet import PersistenceError
from src.domain.models import ProximityRecord, VehicleState

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PersistReport:
    states_written: int = 0
    proximity_written: int = 0
    errors: tuple[PersistenceError, ...] = ()
    timed_out: bool = False
    # Vehicle ids whose state or proximity record did not reach the store.
    unsaved: tuple[str, ...] = ()
    unsaved_proximity: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class _VehicleWrite:
    vehicle_id: str
    state: VehicleState | None
    record: ProximityRecord | None
    state_error: PersistenceError | None = None
    proximity_error: PersistenceError | None = None

    @property
    def state_saved(self) -> bool:
        return self.state is not None and self.state_error is None

    @property
    def proximity_saved(self) -> bool:
        return self.record is not None and self.proximity_error is None


@dataclass(slots=True)
class PersistenceSync:
    """Writes the cycle's results back to durable storage.

    Every write is a full-row upsert keyed by vehicle_id, so replaying the
    same values is harmless. One failing record never blocks the rest.

    A vehicle's proximity record is written before its state. Vehicles with a
    stop arrival go first; the others start where the previous cycle's
    deadline cut off, so a timeout never drops the same records every cycle.
    """

    state_repository: IVehicleStateRepository
    proximity_repository: IProximityRepository
    max_concurrency: int = 16

    _rotation: int = field(default=0, init=False)

    async def persist(
        self,
        states: Sequence[VehicleState],
        proximity_updates: Sequence[ProximityRecord],
        *,
        timeout_s: float | None = None,
    ) -> PersistReport:
        arrivals, rest = self._write_order(states, proximity_updates)
        pairs = arrivals + rest
        if not pairs:
            return PersistReport()

        semaphore = asyncio.Semaphore(max(1, self.max_concurrency))
        tasks = [
            asyncio.create_task(self._write_vehicle(semaphore, vehicle_id, s, r))
            for vehicle_id, s, r in pairs
        ]
        try:
            _, pending = await asyncio.wait(tasks, timeout=timeout_s)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        timed_out = bool(pending)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        results: list[_VehicleWrite] = [
            t.result() for t in tasks if t.done() and not t.cancelled()
        ]
        errors: list[PersistenceError] = []
        for res in results:
            errors.extend(e for e in (res.proximity_error, res.state_error) if e)

        saved_ids = {res.vehicle_id for res in results if res.state_saved}
        unsaved = tuple(s.vehicle_id for s in states if s.vehicle_id not in saved_ids)
        saved_records = {res.vehicle_id for res in results if res.proximity_saved}
        unsaved_proximity = tuple(
            r.vehicle_id for r in proximity_updates if r.vehicle_id not in saved_records
        )

        rest_ids = {vehicle_id for vehicle_id, _, _ in rest}
        rest_done = sum(1 for res in results if res.vehicle_id in rest_ids)
        if rest:
            self._rotation = (self._rotation + rest_done) % len(rest)

        report = PersistReport(
            states_written=len(saved_ids),
            proximity_written=len(saved_records),
            errors=tuple(errors),
            timed_out=timed_out,
            unsaved=unsaved,
            unsaved_proximity=unsaved_proximity,
        )

        if timed_out:
            logger.warning(
                "Persistence did not finish within %.1fs; %d vehicle write(s) "
                "left for the next cycle",
                timeout_s,
                len(pending),
            )
        if errors or timed_out:
            logger.warning(
                "Persisted %d/%d vehicle states and %d/%d proximity records",
                report.states_written,
                len(states),
                report.proximity_written,
                len(proximity_updates),
            )

        return report

    def _write_order(
        self,
        states: Sequence[VehicleState],
        proximity_updates: Sequence[ProximityRecord],
    ) -> tuple[list[tuple[str, Any, Any]], list[tuple[str, Any, Any]]]:
        records = {r.vehicle_id: r for r in proximity_updates}
        arrivals: list[tuple[str, Any, Any]] = []
        rest: list[tuple[str, Any, Any]] = []
        for state in states:
            record = records.pop(state.vehicle_id, None)
            pair = (state.vehicle_id, state, record)
            (arrivals if record is not None else rest).append(pair)
        # Records without a state in this batch are still written.
        arrivals.extend((vid, None, record) for vid, record in records.items())

        if rest:
            start = self._rotation % len(rest)
            rest = rest[start:] + rest[:start]
        return arrivals, rest

    async def _write_vehicle(
        self,
        semaphore: asyncio.Semaphore,
        vehicle_id: str,
        state: VehicleState | None,
        record: ProximityRecord | None,
    ) -> _VehicleWrite:
        async with semaphore:
            proximity_error = None
            if record is not None:
                proximity_error = await self._write(
                    self.proximity_repository.upsert,
                    record,
                    vehicle_id,
                    "proximity record",
                )
            state_error = None
            if state is not None:
                state_error = await self._write(
                    self.state_repository.upsert, state, vehicle_id, "vehicle state"
                )
        return _VehicleWrite(
            vehicle_id=vehicle_id,
            state=state,
            record=record,
            state_error=state_error,
            proximity_error=proximity_error,
        )

    async def _write(
        self,
        write: Callable[[Any], None],
        record: Any,
        vehicle_id: str,
        record_kind: str,
    ) -> PersistenceError | None:
        try:
            # Repositories are blocking (boto3); keep the event loop free.
            await asyncio.to_thread(write, record)
        except Exception as exc:
            error = PersistenceError(vehicle_id, record_kind, exc)
            logger.warning("%s", error)
            return error
        return None
