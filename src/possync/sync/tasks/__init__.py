"""Per-location sync tasks, one per phase."""

from possync.sync.tasks.banner import BannerSyncTask
from possync.sync.tasks.base import LocationPosClientFactory, PerLocationSyncTask
from possync.sync.tasks.cache_refresh import CacheRefreshTask
from possync.sync.tasks.discounts import DiscountSyncTask
from possync.sync.tasks.enrichment import EnrichmentTask
from possync.sync.tasks.erp_push import ErpPushTask
from possync.sync.tasks.inventory import InventorySyncTask

__all__ = [
    "BannerSyncTask",
    "CacheRefreshTask",
    "DiscountSyncTask",
    "EnrichmentTask",
    "ErpPushTask",
    "InventorySyncTask",
    "LocationPosClientFactory",
    "PerLocationSyncTask",
]
