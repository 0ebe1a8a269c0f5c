"""Base class for per-location sync tasks.

This module provides:
- PerLocationSyncTask: Abstract unit of work for one phase and one location
- LocationPosClientFactory: Builds a POS client for a location
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from possync.core.types import PhaseResult, SyncCounts

if TYPE_CHECKING:
    from possync.client.pos import PosClient
    from possync.core.types import LocationConfig, SyncPhase

logger = logging.getLogger(__name__)

LocationPosClientFactory = Callable[["LocationConfig"], "PosClient"]


class PerLocationSyncTask(ABC):
    """A unit of sync work scoped to one location.

    execute() never raises: any fault inside _do_work() becomes a failed
    PhaseResult. Implementations must not keep per-location mutable state
    on the instance so that one task object can serve several locations
    concurrently.

    Subclasses must implement:
    - phase: Property returning the phase the task belongs to
    - _do_work(): The actual work, returning SyncCounts

    Usage:
        class MyTask(PerLocationSyncTask):
            phase = SyncPhase.INVENTORY

            def _do_work(self, location: LocationConfig) -> SyncCounts:
                return SyncCounts(items_processed=1)

        result = MyTask().execute(location)
    """

    @property
    @abstractmethod
    def phase(self) -> SyncPhase:
        """Return the phase this task implements."""
        ...

    def prepare(self, locations: Sequence[LocationConfig]) -> None:
        """Phase-level setup, run once before the first location.

        An exception here fails every location of the phase.
        """

    def execute(self, location: LocationConfig) -> PhaseResult:
        """Run the task for one location.

        Args:
            location: The location to process.

        Returns:
            A successful result with counts, or a failed result carrying
            the error kind and message.
        """
        start_time = time.monotonic()
        try:
            output = self._do_work(location)
        except Exception as e:
            elapsed = time.monotonic() - start_time
            logger.error(
                f"{self.phase.label} failed for {location.name} "
                f"({type(e).__name__}): {e}"
            )
            return PhaseResult.failed(location.location_id, e, elapsed)

        counts, data = output if isinstance(output, tuple) else (output, None)
        elapsed = time.monotonic() - start_time
        logger.info(
            f"{self.phase.label} for {location.name} completed in {elapsed:.2f}s: "
            f"{counts.items_processed} processed, {counts.items_created} created, "
            f"{counts.items_updated} updated, {counts.item_errors} item errors"
        )
        return PhaseResult.ok(location.location_id, counts, elapsed, data)

    @abstractmethod
    def _do_work(
        self, location: LocationConfig
    ) -> SyncCounts | tuple[SyncCounts, Any]:
        """Perform the actual work.

        Args:
            location: The location to process.

        Returns:
            Item counts, or (counts, data) when the phase produces a payload.

        Raises:
            Exception: Any error; converted to a failed result by execute().
        """
        ...
