"""Banner sync: retailer banner HTML -> location tickertape."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from possync.core.types import SyncCounts, SyncPhase
from possync.sync.tasks.base import PerLocationSyncTask

if TYPE_CHECKING:
    from possync.client.menu import MenuClient
    from possync.core.types import LocationConfig
    from possync.storage.database import SyncDatabase

logger = logging.getLogger(__name__)


class BannerSyncTask(PerLocationSyncTask):
    """Daily copy of each retailer's banner into the location record."""

    phase = SyncPhase.BANNER

    def __init__(self, db: SyncDatabase, menu: MenuClient) -> None:
        self._db = db
        self._menu = menu

    def _do_work(self, location: LocationConfig) -> SyncCounts:
        if not self._menu.enabled or not location.external_store_id:
            logger.info(f"{location.name}: banner sync skipped (no menu API key or store id)")
            return SyncCounts(items_skipped=1)

        html = self._menu.get_retailer_banner(location.external_store_id)
        if not self._db.set_tickertape(location.location_id, html):
            logger.info(f"{location.name}: banner sync found no location record")
            return SyncCounts(items_skipped=1)

        logger.debug(f"{location.name}: tickertape {'updated' if html else 'cleared'}")
        return SyncCounts(items_processed=1, items_updated=1)
