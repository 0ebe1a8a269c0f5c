"""Shared types for sync operations.

This module provides:
- LocationConfig: Immutable per-cycle store location configuration
- SyncPhase: The fixed, ordered phases of a sync cycle
- SyncCounts: Item counts reported by a per-location task
- PhaseResult: Outcome of one phase for one location
- PhaseSummary: Aggregated outcome of one phase across all locations
- CycleSummary: Aggregated outcome of a whole sync cycle
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


@dataclass(frozen=True)
class LocationConfig:
    """A store location to synchronize.

    Attributes:
        location_id: Internal location id (database key).
        external_store_id: Store id on the menu/retailer platform.
        name: Human-readable store name.
        api_key: POS reporting API key for this store.
        metadata: Extra directory fields (city, state, backoffice loc id...).
    """

    location_id: str
    external_store_id: str | None
    name: str
    api_key: str
    metadata: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def backoffice_loc_id(self) -> int | None:
        """Backoffice location id, if the directory provided one."""
        value = self.metadata.get("locId")
        if value in (None, ""):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    def __repr__(self) -> str:
        """Representation without the API key."""
        return f"LocationConfig({self.location_id!r}, name={self.name!r})"


class SyncPhase(IntEnum):
    """Phases of a sync cycle.

    Values of the cycle phases give the execution order; later phases
    consume the state produced by earlier ones.
    """

    INVENTORY = 1
    ENRICHMENT = 2
    DISCOUNTS = 3
    CACHE_REFRESH = 4
    ERP_PUSH = 5

    # Standalone daily and hourly jobs run through the same runner
    BANNER = 10
    GL_EXPORT = 11
    HOURLY_SALES = 12

    @property
    def label(self) -> str:
        """Human-readable phase name."""
        return self.name.replace("_", " ").title()


@dataclass
class SyncCounts:
    """Item counts produced by a per-location task."""

    items_processed: int = 0
    items_created: int = 0
    items_updated: int = 0
    items_skipped: int = 0
    item_errors: int = 0

    def __add__(self, other: SyncCounts) -> SyncCounts:
        return SyncCounts(
            items_processed=self.items_processed + other.items_processed,
            items_created=self.items_created + other.items_created,
            items_updated=self.items_updated + other.items_updated,
            items_skipped=self.items_skipped + other.items_skipped,
            item_errors=self.item_errors + other.item_errors,
        )


@dataclass
class PhaseResult:
    """Outcome of one phase for one location.

    Attributes:
        location_id: Location the result belongs to.
        success: Whether the task completed.
        counts: Item counts (zero on failure).
        error_kind: Error class name on failure (e.g. "AuthError").
        error: Error message on failure.
        elapsed_time: Time taken in seconds.
        data: Optional phase-specific payload.
    """

    location_id: str
    success: bool
    counts: SyncCounts = field(default_factory=SyncCounts)
    error_kind: str | None = None
    error: str | None = None
    elapsed_time: float = 0.0
    data: Any = None

    @classmethod
    def ok(
        cls,
        location_id: str,
        counts: SyncCounts,
        elapsed_time: float = 0.0,
        data: Any = None,
    ) -> PhaseResult:
        """Build a successful result."""
        return cls(
            location_id=location_id,
            success=True,
            counts=counts,
            elapsed_time=elapsed_time,
            data=data,
        )

    @classmethod
    def failed(
        cls,
        location_id: str,
        error: BaseException,
        elapsed_time: float = 0.0,
    ) -> PhaseResult:
        """Build a failed result from a captured exception."""
        return cls(
            location_id=location_id,
            success=False,
            error_kind=type(error).__name__,
            error=str(error) or type(error).__name__,
            elapsed_time=elapsed_time,
        )


@dataclass
class PhaseSummary:
    """Aggregated outcome of one phase across all locations."""

    phase: SyncPhase
    results: list[PhaseResult] = field(default_factory=list)
    started_at: float = 0.0
    finished_at: float = 0.0
    skipped: bool = False
    skip_reason: str | None = None

    @property
    def success_count(self) -> int:
        """Number of locations that completed the phase."""
        return sum(1 for r in self.results if r.success)

    @property
    def failures(self) -> list[PhaseResult]:
        """Per-location failures, in location order."""
        return [r for r in self.results if not r.success]

    @property
    def error_count(self) -> int:
        """Number of locations that failed the phase."""
        return len(self.failures)

    @property
    def total_items(self) -> int:
        """Items processed by successful locations."""
        return sum(r.counts.items_processed for r in self.results if r.success)

    @property
    def counts(self) -> SyncCounts:
        """Sum of counts over successful locations."""
        total = SyncCounts()
        for result in self.results:
            if result.success:
                total = total + result.counts
        return total

    @property
    def partial_failure(self) -> bool:
        """True if at least one location failed (non-terminal)."""
        return self.error_count > 0

    @property
    def duration(self) -> float:
        """Phase duration in seconds."""
        return max(self.finished_at - self.started_at, 0.0)

    def result_for(self, location_id: str) -> PhaseResult | None:
        """Get the result recorded for a location."""
        for result in self.results:
            if result.location_id == location_id:
                return result
        return None


@dataclass
class CycleSummary:
    """Aggregated outcome of one orchestrator run."""

    phases: list[PhaseSummary] = field(default_factory=list)
    started_at: float = 0.0
    finished_at: float = 0.0
    location_count: int = 0

    def phase(self, phase: SyncPhase) -> PhaseSummary | None:
        """Get the summary of a phase, if it ran."""
        for summary in self.phases:
            if summary.phase == phase:
                return summary
        return None

    @property
    def total_synced(self) -> int:
        """Inventory items synced across all locations."""
        inventory = self.phase(SyncPhase.INVENTORY)
        return inventory.total_items if inventory else 0

    @property
    def total_errors(self) -> int:
        """Failed (phase, location) pairs across the cycle."""
        return sum(p.error_count for p in self.phases)

    @property
    def duration(self) -> float:
        """Cycle duration in seconds."""
        return max(self.finished_at - self.started_at, 0.0)

    def totals_by_phase(self) -> dict[str, int]:
        """Items processed per phase, keyed by phase name."""
        return {p.phase.name.lower(): p.total_items for p in self.phases}
