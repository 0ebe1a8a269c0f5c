"""Core module - Shared configuration and types."""

from possync.core.config import (
    BackofficeConfig,
    ErpConfig,
    MenuApiConfig,
    PosApiConfig,
    Settings,
    SyncConfig,
)
from possync.core.types import (
    CycleSummary,
    LocationConfig,
    PhaseResult,
    PhaseSummary,
    SyncCounts,
    SyncPhase,
)

__all__ = [
    # Config
    "BackofficeConfig",
    "ErpConfig",
    "MenuApiConfig",
    "PosApiConfig",
    "Settings",
    "SyncConfig",
    # Types
    "CycleSummary",
    "LocationConfig",
    "PhaseResult",
    "PhaseSummary",
    "SyncCounts",
    "SyncPhase",
]
