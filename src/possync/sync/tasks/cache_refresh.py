"""Cache refresh: persisted inventory and discounts -> Redis."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from possync.core.types import SyncCounts, SyncPhase
from possync.sync.tasks.base import PerLocationSyncTask

if TYPE_CHECKING:
    from possync.core.types import LocationConfig
    from possync.storage.cache import RedisCache
    from possync.storage.database import SyncDatabase


class CacheRefreshTask(PerLocationSyncTask):
    """Publish the current persisted state of each location to the cache.

    Reads whatever the database holds, so a location whose inventory sync
    failed is still refreshed from its last good state.
    """

    phase = SyncPhase.CACHE_REFRESH

    def __init__(self, db: SyncDatabase, cache: RedisCache) -> None:
        self._db = db
        self._cache = cache

    def prepare(self, locations: Sequence[LocationConfig]) -> None:
        self._cache.cache_locations(
            [
                {"id": loc.location_id, "name": loc.name, "storeId": loc.external_store_id}
                for loc in locations
            ]
        )

    def _do_work(self, location: LocationConfig) -> SyncCounts:
        inventory = self._db.list_inventory(location.location_id)
        discounts = self._db.list_discounts(location.location_id)
        cached = self._cache.cache_inventory(location.location_id, inventory)
        cached_discounts = self._cache.cache_discounts(location.location_id, discounts)
        return SyncCounts(
            items_processed=cached,
            items_updated=cached + cached_discounts,
        )
