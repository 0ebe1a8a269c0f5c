"""Run one phase over every location.

This module provides:
- MonotonicClock: Wall-clock timestamps that never repeat or go backwards
- PhaseRunner: Executes a task for each location and collects a PhaseSummary
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from possync.core.types import PhaseResult, PhaseSummary

if TYPE_CHECKING:
    from possync.core.types import LocationConfig
    from possync.sync.tasks.base import PerLocationSyncTask

logger = logging.getLogger(__name__)


class MonotonicClock:
    """Wall-clock seconds derived from the monotonic clock.

    The epoch offset is captured once, so stamps follow wall time without
    jumping on system clock adjustments. Consecutive readings are strictly
    increasing even when the monotonic clock has not advanced.
    """

    def __init__(self) -> None:
        self._origin = time.time() - time.monotonic()
        self._last = -math.inf
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            now = self._origin + time.monotonic()
            if now <= self._last:
                now = math.nextafter(self._last, math.inf)
            self._last = now
            return now


class PhaseRunner:
    """Apply a per-location task to all locations.

    Every location is attempted regardless of earlier failures, and the
    summary holds exactly one result per location in input order. run()
    never raises.

    Usage:
        runner = PhaseRunner(max_workers=4)
        summary = runner.run(InventorySyncTask(db, pos_clients), locations)
        print(summary.success_count, summary.error_count)
    """

    def __init__(
        self, max_workers: int = 1, clock: Callable[[], float] | None = None
    ) -> None:
        """Initialize the runner.

        Args:
            max_workers: Locations processed concurrently (1 = sequential).
            clock: Timestamp source; defaults to a MonotonicClock.
        """
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self._max_workers = max_workers
        self._clock = clock if clock is not None else MonotonicClock()

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def clock(self) -> Callable[[], float]:
        """Get the timestamp source shared with the orchestrator."""
        return self._clock

    def _execute(self, task: PerLocationSyncTask, location: LocationConfig) -> PhaseResult:
        try:
            return task.execute(location)
        except Exception as e:
            # execute() should never raise; keep the one-result-per-location rule anyway
            logger.exception(f"Unexpected error in {task.phase.label} for {location.name}")
            return PhaseResult.failed(location.location_id, e)

    def run(
        self, task: PerLocationSyncTask, locations: Sequence[LocationConfig]
    ) -> PhaseSummary:
        """Run a task for every location.

        Args:
            task: The phase task.
            locations: Locations to process, in order.

        Returns:
            Summary with one result per location.
        """
        summary = PhaseSummary(phase=task.phase, started_at=self._clock())
        logger.info(f"Starting {task.phase.label} for {len(locations)} locations")

        try:
            task.prepare(locations)
        except Exception as e:
            logger.error(f"{task.phase.label} setup failed ({type(e).__name__}): {e}")
            summary.results = [PhaseResult.failed(loc.location_id, e) for loc in locations]
            summary.finished_at = self._clock()
            return summary

        if self._max_workers == 1 or len(locations) <= 1:
            summary.results = [self._execute(task, loc) for loc in locations]
        else:
            with ThreadPoolExecutor(
                max_workers=self._max_workers,
                thread_name_prefix=f"possync-{task.phase.name.lower()}",
            ) as executor:
                # map() yields in submission order
                summary.results = list(
                    executor.map(lambda loc: self._execute(task, loc), locations)
                )

        summary.finished_at = self._clock()
        return summary
