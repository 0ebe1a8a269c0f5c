"""Inventory sync: POS inventory report -> inventory database."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from possync.core.types import SyncCounts, SyncPhase
from possync.sync.tasks.base import LocationPosClientFactory, PerLocationSyncTask

if TYPE_CHECKING:
    from possync.core.types import LocationConfig
    from possync.storage.database import SyncDatabase

logger = logging.getLogger(__name__)

# API field (camelCase) -> inventory column
FIELD_MAPPING = {
    "inventoryId": "inventory_id",
    "productId": "product_id",
    "sku": "sku",
    "productName": "product_name",
    "brandName": "brand_name",
    "category": "category",
    "strain": "strain",
    "strainType": "strain_type",
    "description": "description",
    "descriptionHtml": "description_html",
    "price": "price",
    "medPrice": "med_price",
    "recPrice": "rec_price",
    "unitCost": "unit_cost",
    "unitPrice": "unit_price",
    "quantityAvailable": "quantity_available",
    "allocatedQuantity": "allocated_quantity",
    "netWeight": "net_weight",
    "netWeightUnit": "net_weight_unit",
    "size": "size",
    "batchId": "batch_id",
    "packageId": "package_id",
    "expirationDate": "expiration_date",
    "imageUrl": "image_url",
    "images": "images",
    "effects": "effects",
    "tags": "tags",
    "slug": "slug",
    "staffPick": "staff_pick",
    "medicalOnly": "medical_only",
    "potencyThcFormatted": "potency_thc_formatted",
    "potencyCbdFormatted": "potency_cbd_formatted",
    "isActive": "is_active",
}

# Columns stored as strings even when the API sends numbers
_STRING_COLUMNS = {"inventory_id", "product_id", "sku", "batch_id", "package_id", "size"}


def transform_inventory_item(item: dict[str, Any], location_id: str) -> dict[str, Any]:
    """Map an inventory report item to inventory column values.

    Args:
        item: Raw API item.
        location_id: Location the item belongs to.

    Returns:
        Column values. "id" is only set when the item has an inventory id.
    """
    row: dict[str, Any] = {}
    for api_field, column in FIELD_MAPPING.items():
        if api_field in item:
            value = item[api_field]
            if column in _STRING_COLUMNS and value is not None:
                value = str(value)
            row[column] = value

    row["location_id"] = location_id

    # The API does not always send isActive
    if row.get("is_active") is None:
        row["is_active"] = True
    for flag in ("staff_pick", "medical_only"):
        if flag in row:
            row[flag] = bool(row[flag])

    if row.get("inventory_id"):
        row["id"] = f"{location_id}_{row['inventory_id']}"
    return row


class InventorySyncTask(PerLocationSyncTask):
    """Pull a store's inventory report and upsert it into the database."""

    phase = SyncPhase.INVENTORY

    def __init__(self, db: SyncDatabase, pos_clients: LocationPosClientFactory) -> None:
        """Initialize the task.

        Args:
            db: Inventory database.
            pos_clients: Factory building a POS client for a location.
        """
        self._db = db
        self._pos_clients = pos_clients

    def _do_work(self, location: LocationConfig) -> SyncCounts:
        self._db.ensure_location(location.location_id, location.name)

        with self._pos_clients(location) as pos:
            items = pos.get_inventory_report()

        counts = SyncCounts()
        for item in items:
            row = transform_inventory_item(item, location.location_id)
            if "id" not in row:
                logger.warning(f"{location.name}: skipping inventory item without inventoryId")
                counts.item_errors += 1
                continue
            try:
                created = self._db.upsert_inventory_item(row)
            except SQLAlchemyError as e:
                logger.error(f"{location.name}: error syncing item {row['inventory_id']}: {e}")
                counts.item_errors += 1
                continue
            counts.items_processed += 1
            if created:
                counts.items_created += 1
            else:
                counts.items_updated += 1
        return counts
