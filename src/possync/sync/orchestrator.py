"""Sync cycle orchestration.

This module provides:
- CYCLE_ORDER: The fixed phase sequence of a cycle
- SyncOrchestrator: Runs every phase over every location and summarizes
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING

from possync.client.errors import NoLocationsError
from possync.core.types import CycleSummary, PhaseSummary, SyncPhase

if TYPE_CHECKING:
    from possync.core.types import LocationConfig
    from possync.sync.runner import PhaseRunner
    from possync.sync.tasks.base import PerLocationSyncTask

logger = logging.getLogger(__name__)

CYCLE_ORDER = (
    SyncPhase.INVENTORY,
    SyncPhase.ENRICHMENT,
    SyncPhase.DISCOUNTS,
    SyncPhase.CACHE_REFRESH,
    SyncPhase.ERP_PUSH,
)

class SyncOrchestrator:
    """Run sync cycles: each phase over all locations, in fixed order.

    A phase without a task (e.g. ERP not configured) is reported as
    skipped. Failures, even of every location, never stop later phases.
    Between cycles only the location list and the task handles are kept.
    """

    def __init__(
        self,
        locations: Sequence[LocationConfig],
        tasks: Mapping[SyncPhase, PerLocationSyncTask | None],
        runner: PhaseRunner,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            locations: Locations to sync.
            tasks: Task per cycle phase; a missing or None entry disables it.
            runner: Phase runner.
            clock: Timestamp source; defaults to the runner's clock so phase
                and cycle stamps share one strictly increasing sequence.
        """
        unknown = set(tasks) - set(CYCLE_ORDER)
        if unknown:
            names = ", ".join(sorted(p.name for p in unknown))
            raise ValueError(f"Not a cycle phase: {names}")
        self._locations = list(locations)
        self._tasks = dict(tasks)
        self._runner = runner
        self._clock = clock if clock is not None else runner.clock

    @property
    def locations(self) -> list[LocationConfig]:
        return list(self._locations)

    def set_locations(self, locations: Sequence[LocationConfig]) -> None:
        """Replace the location list used by subsequent cycles."""
        self._locations = list(locations)

    def enabled_phases(self) -> list[SyncPhase]:
        return [p for p in CYCLE_ORDER if self._tasks.get(p) is not None]

    def _run_phase(self, phase: SyncPhase) -> PhaseSummary:
        task = self._tasks.get(phase)
        if task is None:
            now = self._clock()
            logger.info(f"{phase.label} skipped: not configured")
            return PhaseSummary(
                phase=phase,
                started_at=now,
                finished_at=now,
                skipped=True,
                skip_reason="not configured",
            )
        return self._runner.run(task, self._locations)

    def run_cycle(self) -> CycleSummary:
        """Run one full cycle.

        Returns:
            Summary of every phase, in execution order.

        Raises:
            NoLocationsError: If there is nothing to sync.
        """
        if not self._locations:
            raise NoLocationsError("No locations to sync")

        cycle = CycleSummary(started_at=self._clock(), location_count=len(self._locations))
        logger.info(f"Starting sync cycle for {len(self._locations)} locations")

        for phase in CYCLE_ORDER:
            summary = self._run_phase(phase)
            cycle.phases.append(summary)

            if not summary.skipped:
                counts = summary.counts
                logger.info(
                    f"{phase.label} done in {summary.duration:.2f}s: "
                    f"{summary.success_count} ok, {summary.error_count} failed, "
                    f"{counts.items_processed} items processed"
                )
                for failure in summary.failures:
                    logger.warning(
                        f"{phase.label} failed for {failure.location_id}: "
                        f"{failure.error_kind}: {failure.error}"
                    )

        cycle.finished_at = self._clock()
        logger.info(
            f"Sync cycle complete in {cycle.duration:.2f}s: "
            f"{cycle.total_synced} items synced, {cycle.total_errors} errors"
        )
        return cycle
