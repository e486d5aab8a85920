"""Periodic driver for the fleet pipeline.

A timer ticks every interval; each tick starts one cycle unless the previous
cycle is still running, in which case the tick is skipped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from src.app.services.fleet_pipeline import CycleReport, FleetPipeline

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PipelineScheduler:
    pipeline: FleetPipeline
    interval_s: float = 5.0
    shutdown_grace_s: float = 10.0

    _running: bool = field(default=False, init=False)
    _timer: asyncio.Task | None = field(default=None, init=False, repr=False)
    _cycle: asyncio.Task | None = field(default=None, init=False, repr=False)
    _last_cycle_at: datetime | None = field(default=None, init=False)
    _last_report: CycleReport | None = field(default=None, init=False)
    _cycle_count: int = field(default=0, init=False)
    _skipped_count: int = field(default=0, init=False)
    _error_count: int = field(default=0, init=False)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def status(self) -> dict[str, Any]:
        report = self._last_report
        return {
            "running": self._running,
            "cycle_in_flight": self._cycle is not None and not self._cycle.done(),
            "last_cycle_at": (
                self._last_cycle_at.isoformat() if self._last_cycle_at else None
            ),
            "cycle_count": self._cycle_count,
            "skipped_ticks": self._skipped_count,
            "error_count": self._error_count,
            "interval_seconds": self.interval_s,
            "last_vehicle_count": report.vehicles if report else None,
            "last_feed_stale": report.feed_stale if report else None,
        }

    async def start(self) -> None:
        if self._running:
            logger.warning("Pipeline scheduler already running")
            return

        self._running = True
        self._timer = asyncio.create_task(self._tick_loop())
        logger.info("Pipeline scheduler started (interval: %.1fs)", self.interval_s)

    async def stop(self) -> None:
        """Stop ticking and give the in-flight cycle a grace period."""

        if not self._running:
            return

        self._running = False
        if self._timer is not None:
            self._timer.cancel()
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
            self._timer = None

        cycle = self._cycle
        if cycle is not None and not cycle.done():
            done, _ = await asyncio.wait({cycle}, timeout=self.shutdown_grace_s)
            if not done:
                logger.warning(
                    "Cycle still running after %.1fs grace period; cancelling, "
                    "its results may not be persisted",
                    self.shutdown_grace_s,
                )
                cycle.cancel()
                try:
                    await cycle
                except asyncio.CancelledError:
                    pass

        self._cycle = None
        logger.info("Pipeline scheduler stopped")

    async def _tick_loop(self) -> None:
        while self._running:
            self.tick()
            await asyncio.sleep(self.interval_s)

    def tick(self) -> bool:
        """Start a cycle unless one is in flight. Returns True if started."""

        if self._cycle is not None and not self._cycle.done():
            self._skipped_count += 1
            logger.warning("Previous cycle still running; skipping tick")
            return False

        self._cycle = asyncio.create_task(self._run_cycle())
        return True

    async def _run_cycle(self) -> None:
        try:
            self._last_report = await self.pipeline.run_cycle()
            self._cycle_count += 1
            self._last_cycle_at = datetime.now(timezone.utc)
        except asyncio.CancelledError:
            raise
        except Exception:
            self._error_count += 1
            logger.exception("Pipeline cycle failed")
