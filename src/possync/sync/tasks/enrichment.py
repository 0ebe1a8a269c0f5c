"""Product enrichment: menu products -> inventory rows matched by SKU."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from possync.core.types import SyncCounts, SyncPhase
from possync.sync.tasks.base import PerLocationSyncTask

if TYPE_CHECKING:
    from possync.client.menu import MenuClient
    from possync.core.types import LocationConfig
    from possync.storage.database import SyncDatabase

logger = logging.getLogger(__name__)


def enrichment_values(product: dict[str, Any]) -> dict[str, Any]:
    """Build the inventory column values carried by a menu product.

    Empty descriptions are left out so they never overwrite POS text.
    """
    values: dict[str, Any] = {
        "slug": product.get("slug"),
        "effects": product.get("effects") or [],
        "tags": product.get("tags") or [],
        "images": product.get("images") or [],
        "staff_pick": bool(product.get("staffPick")),
        "potency_cbd_formatted": (product.get("potencyCbd") or {}).get("formatted"),
        "potency_thc_formatted": (product.get("potencyThc") or {}).get("formatted"),
    }
    if product.get("description"):
        values["description"] = product["description"]
    if product.get("descriptionHtml"):
        values["description_html"] = product["descriptionHtml"]
    return values


class EnrichmentTask(PerLocationSyncTask):
    """Copy menu data (slug, effects, images, potency...) onto inventory."""

    phase = SyncPhase.ENRICHMENT

    def __init__(self, db: SyncDatabase, menu: MenuClient) -> None:
        """Initialize the task.

        Args:
            db: Inventory database.
            menu: Menu API client.
        """
        self._db = db
        self._menu = menu

    def _do_work(self, location: LocationConfig) -> SyncCounts:
        counts = SyncCounts()
        if not self._menu.enabled or not location.external_store_id:
            logger.info(f"{location.name}: enrichment skipped (no menu API key or store id)")
            return counts

        products = self._menu.get_menu_products(location.external_store_id)
        for product in products:
            sku = (product.get("posMetaData") or {}).get("sku")
            if not sku:
                counts.items_skipped += 1
                continue
            updated = self._db.enrich_inventory_by_sku(
                location.location_id, str(sku), enrichment_values(product)
            )
            if updated:
                counts.items_processed += updated
                counts.items_updated += updated
            else:
                counts.items_skipped += 1
        return counts
