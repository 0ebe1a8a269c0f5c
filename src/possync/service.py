"""Service wiring: build clients, sinks and tasks from settings.

This module provides:
- SyncService: Everything the CLI needs to run cycles and daily jobs
- build_service(): Resolve locations and assemble a SyncService
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING

from possync.client.api import ResilientApiClient
from possync.client.backoffice import BackofficeClient
from possync.client.directory import StoreDirectoryClient, resolve_locations
from possync.client.erp import ErpClient
from possync.client.menu import MenuClient
from possync.client.pos import PosClient
from possync.core.types import CycleSummary, PhaseSummary, SyncPhase
from possync.export.gl import GlExportResult, GlExportService
from possync.export.hourly import HourlySalesService
from possync.storage.cache import RedisCache
from possync.storage.database import SyncDatabase
from possync.sync.orchestrator import SyncOrchestrator
from possync.sync.runner import PhaseRunner
from possync.sync.scheduler import DailyJob, DailyRunMarker, HourlyJob, SyncScheduler
from possync.sync.tasks import (
    BannerSyncTask,
    CacheRefreshTask,
    DiscountSyncTask,
    EnrichmentTask,
    ErpPushTask,
    InventorySyncTask,
)

if TYPE_CHECKING:
    from possync.core.config import Settings
    from possync.core.types import LocationConfig

logger = logging.getLogger(__name__)


@dataclass
class SyncService:
    """Assembled sync service.

    Holds the resolved locations and the long-lived handles; no cycle
    state survives between runs.
    """

    settings: Settings
    locations: list[LocationConfig]
    db: SyncDatabase
    menu: MenuClient
    runner: PhaseRunner
    orchestrator: SyncOrchestrator
    gl_export: GlExportService
    hourly_sales: HourlySalesService
    cache: RedisCache | None = None
    erp: ErpClient | None = None
    _backoffice_api: ResilientApiClient | None = field(default=None, repr=False)

    def run_cycle(self) -> CycleSummary:
        return self.orchestrator.run_cycle()

    def sync_banners(self) -> PhaseSummary:
        """Daily banner sync over all locations."""
        return self.runner.run(BannerSyncTask(self.db, self.menu), self.locations)

    def export_gl(self, report_date: date | None = None) -> GlExportResult:
        """GL export for a day (yesterday by default)."""
        if report_date is None:
            return self.gl_export.export_yesterday()
        return self.gl_export.export_for_date(report_date)

    def sync_hourly_sales(self, hour_start: datetime | None = None) -> PhaseSummary:
        """Record hourly sales for an hour (the previous UTC hour by default)."""
        if hour_start is None:
            return self.hourly_sales.sync_previous_hour()
        return self.hourly_sales.sync_hour(hour_start)

    def backoffice(self) -> BackofficeClient:
        """Backoffice client sharing one authenticated session."""
        if self._backoffice_api is None:
            self._backoffice_api = ResilientApiClient.from_config(self.settings.backoffice)
        return BackofficeClient(self._backoffice_api)

    def build_scheduler(self) -> SyncScheduler:
        sync = self.settings.sync
        daily_jobs = [
            DailyJob(
                "banner_sync",
                self.sync_banners,
                DailyRunMarker(sync.banner_hour),
                run_on_start=True,
            ),
            DailyJob("gl_export", self.export_gl, DailyRunMarker(sync.gl_export_hour)),
        ]
        hourly_jobs = [HourlyJob("hourly_sales", self.sync_hourly_sales)]
        return SyncScheduler(
            self.run_cycle, sync.sync_interval_minutes, daily_jobs, hourly_jobs
        )

    def close(self) -> None:
        """Release every client and connection."""
        self.menu.close()
        if self.erp is not None:
            self.erp.close()
        if self.cache is not None:
            self.cache.close()
        if self._backoffice_api is not None:
            self._backoffice_api.close()
        self.db.close()


def build_service(
    settings: Settings, locations: list[LocationConfig] | None = None
) -> SyncService:
    """Assemble the sync service.

    Args:
        settings: Resolved settings.
        locations: Pre-resolved locations; fetched from the store
            directory when omitted.

    Returns:
        The assembled service.

    Raises:
        NoLocationsError: If no active, credentialed location is found.
    """
    if locations is None:
        with StoreDirectoryClient(
            settings.sync.directory_url,
            settings.sync.directory_token,
            settings.backoffice.timeout,
        ) as directory:
            locations = resolve_locations(directory)
    logger.info(f"Resolved {len(locations)} locations")

    db = SyncDatabase(settings.sync.database_url)
    menu = MenuClient(settings.menu)
    cache = RedisCache.from_url(settings.sync.redis_url) if settings.sync.redis_url else None
    erp = ErpClient(settings.erp) if settings.erp.enabled else None
    runner = PhaseRunner(max_workers=settings.sync.max_workers)

    def pos_clients(location: LocationConfig) -> PosClient:
        return PosClient(location.api_key, settings.pos)

    tasks = {
        SyncPhase.INVENTORY: InventorySyncTask(db, pos_clients),
        SyncPhase.ENRICHMENT: EnrichmentTask(db, menu) if menu.enabled else None,
        SyncPhase.DISCOUNTS: DiscountSyncTask(db, pos_clients),
        SyncPhase.CACHE_REFRESH: CacheRefreshTask(db, cache) if cache else None,
        SyncPhase.ERP_PUSH: ErpPushTask(db, erp) if erp else None,
    }
    orchestrator = SyncOrchestrator(locations, tasks, runner)

    return SyncService(
        settings=settings,
        locations=locations,
        db=db,
        menu=menu,
        runner=runner,
        orchestrator=orchestrator,
        gl_export=GlExportService(locations, pos_clients, runner),
        hourly_sales=HourlySalesService(locations, db, pos_clients, runner),
        cache=cache,
        erp=erp,
    )
