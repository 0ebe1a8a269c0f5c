"""ERP push: in-stock inventory -> ERP products per location warehouse."""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from possync.client.errors import ApiError
from possync.core.types import SyncCounts, SyncPhase
from possync.sync.tasks.base import PerLocationSyncTask

if TYPE_CHECKING:
    from possync.client.erp import ErpClient
    from possync.core.types import LocationConfig
    from possync.storage.database import SyncDatabase

logger = logging.getLogger(__name__)

SYNC_SOURCE = "pos"


def warehouse_code(location: LocationConfig) -> str:
    """Build an 8-character warehouse code from the store name and id."""
    name_prefix = re.sub(r"[^A-Za-z]", "", location.name)[:3].upper()
    id_suffix = location.location_id.replace("-", "")[:5].upper()
    return (name_prefix + id_suffix)[:8]


class ErpPushTask(PerLocationSyncTask):
    """Upsert each location's in-stock products into the ERP."""

    phase = SyncPhase.ERP_PUSH

    def __init__(self, db: SyncDatabase, erp: ErpClient) -> None:
        """Initialize the task.

        Args:
            db: Inventory database.
            erp: ERP client.
        """
        self._db = db
        self._erp = erp
        self._categories: dict[str, int] = {}
        self._warehouses: dict[str, int] = {}
        self._lock = threading.Lock()

    def prepare(self, locations: Sequence[LocationConfig]) -> None:
        """Authenticate and load category ids (read-only during the phase)."""
        self._erp.authenticate()
        categories = {}
        for category in self._erp.search_read(
            "product.category", [], ["id", "name", "complete_name"]
        ):
            for key in ("name", "complete_name"):
                if category.get(key):
                    categories[category[key].lower()] = category["id"]
        self._categories = categories
        logger.info(f"ERP caches loaded: {len(categories)} categories")

    def _ensure_warehouse(self, location: LocationConfig) -> int:
        with self._lock:
            if location.location_id in self._warehouses:
                return self._warehouses[location.location_id]

            existing = self._erp.search(
                "stock.warehouse", [["name", "=", location.name]], limit=1
            )
            if existing:
                warehouse_id = existing[0]
            else:
                warehouse_id = self._erp.create(
                    "stock.warehouse",
                    {"name": location.name, "code": warehouse_code(location)},
                )
                logger.info(f"Created ERP warehouse for {location.name}")
            self._warehouses[location.location_id] = warehouse_id
            return warehouse_id

    def _push_product(self, item: dict[str, Any], warehouse_id: int) -> bool:
        """Upsert template and variant of one inventory row.

        Returns:
            True if the variant was created.
        """
        synced_at = datetime.now(UTC).isoformat()
        template_values: dict[str, Any] = {
            "name": item["product_name"] or item["sku"] or item["inventory_id"],
            "x_pos_product_id": item["product_id"],
            "x_brand_name": item["brand_name"],
            "x_strain": item["strain"],
            "x_strain_type": item["strain_type"],
            "x_product_category": item["category"],
            "x_effects": item["effects"],
            "x_tags": item["tags"],
            "x_staff_pick": bool(item["staff_pick"]),
            "x_medical_only": bool(item["medical_only"]),
            "x_slug": item["slug"],
            "description_sale": item["description"],
            "x_synced_at": synced_at,
            "x_sync_source": SYNC_SOURCE,
        }
        category_id = self._categories.get((item["category"] or "").lower())
        if category_id:
            template_values["categ_id"] = category_id

        template_id, _ = self._erp.upsert(
            "product.template",
            [["x_pos_product_id", "=", item["product_id"]]],
            template_values,
        )

        variant_values = {
            "product_tmpl_id": template_id,
            "default_code": item["sku"],
            "x_pos_inventory_id": item["inventory_id"],
            "x_pos_sku": item["sku"],
            "x_pos_location_id": item["location_id"],
            "x_warehouse_id": warehouse_id,
            "list_price": item["price"] or 0,
            "standard_price": item["unit_cost"] or 0,
            "x_price_rec": item["rec_price"],
            "x_price_med": item["med_price"],
            "x_potency_thc_formatted": item["potency_thc_formatted"],
            "x_potency_cbd_formatted": item["potency_cbd_formatted"],
            "x_net_weight": item["net_weight"],
            "x_weight_unit": item["net_weight_unit"],
            "x_batch_id": item["batch_id"],
            "x_package_id": item["package_id"],
            "x_expiration_date": item["expiration_date"],
            "x_image_url": item["image_url"],
            "x_quantity_available": item["quantity_available"],
            "x_quantity_reserved": item["allocated_quantity"],
            "x_synced_at": synced_at,
        }
        _, created = self._erp.upsert(
            "product.product",
            [
                ["x_pos_sku", "=", item["sku"]],
                ["x_pos_location_id", "=", item["location_id"]],
            ],
            variant_values,
        )
        return created

    def _do_work(self, location: LocationConfig) -> SyncCounts:
        warehouse_id = self._ensure_warehouse(location)
        inventory = self._db.stocked_inventory(location.location_id)
        logger.info(f"{location.name}: pushing {len(inventory)} stocked products to ERP")

        counts = SyncCounts()
        for item in inventory:
            try:
                created = self._push_product(item, warehouse_id)
            except ApiError as e:
                logger.error(f"{location.name}: ERP push failed for {item['sku']}: {e}")
                counts.item_errors += 1
                continue
            counts.items_processed += 1
            if created:
                counts.items_created += 1
            else:
                counts.items_updated += 1
        return counts
