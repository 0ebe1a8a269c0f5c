"""Multi-phase, multi-location synchronization."""

from possync.sync.orchestrator import CYCLE_ORDER, SyncOrchestrator
from possync.sync.runner import PhaseRunner
from possync.sync.scheduler import DailyJob, DailyRunMarker, SyncScheduler

__all__ = [
    "CYCLE_ORDER",
    "DailyJob",
    "DailyRunMarker",
    "PhaseRunner",
    "SyncOrchestrator",
    "SyncScheduler",
]
