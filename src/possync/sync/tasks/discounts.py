"""Discount sync: POS discounts -> discounts table, enriched from inventory."""

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

FIELD_MAPPING = {
    "discountDescription": "discount_name",
    "discountCode": "discount_code",
    "applicationMethod": "application_method",
    "externalId": "external_id",
    "isActive": "is_active",
    "validDateFrom": "valid_from",
    "validDateTo": "valid_until",
}

REWARD_FIELD_MAPPING = {
    "calculationMethod": "calculation_method",
    "discountValue": "discount_amount",
    "thresholdType": "threshold_type",
    "thresholdMin": "threshold_min",
    "thresholdMax": "threshold_max",
}

RESTRICTION_COLUMNS = {
    "Product": "products",
    "Brand": "brands",
    "Category": "product_categories",
}

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

ONLINE_METHODS = ("Automatic", "Code")


def transform_discount(item: dict[str, Any], location_id: str) -> dict[str, Any]:
    """Map a discount from the v2 list to discount column values.

    Args:
        item: Raw API discount.
        location_id: Location the discount belongs to.

    Returns:
        Column values. "id" is only set when the discount has an id.
    """
    row: dict[str, Any] = {}
    if item.get("id") is not None:
        row["discount_id"] = str(item["id"])
    for api_field, column in FIELD_MAPPING.items():
        if api_field in item:
            row[column] = item[api_field]

    reward = item.get("reward") or {}
    for api_field, column in REWARD_FIELD_MAPPING.items():
        if api_field in reward:
            row[column] = reward[api_field]

    restrictions = reward.get("restrictions") or {}
    for kind, column in RESTRICTION_COLUMNS.items():
        if kind in restrictions:
            restriction = restrictions[kind] or {}
            row[column] = {
                "ids": restriction.get("restrictionIds") or [],
                "isExclusion": bool(restriction.get("isExclusion")),
            }

    if item.get("constraints"):
        row["constraints"] = item["constraints"]

    menu_display = item.get("menuDisplay")
    if menu_display:
        row["menu_display"] = menu_display
        if menu_display.get("menuDisplayName"):
            row["menu_display_name"] = menu_display["menuDisplayName"]

    weekly = {day: item[day] for day in WEEKDAYS if day in item}
    for key in ("startTime", "endTime"):
        if item.get(key):
            weekly[key] = item[key]
    if weekly:
        row["weekly_recurrence_info"] = weekly

    row["location_id"] = location_id
    row["is_available_online"] = item.get("applicationMethod") in ONLINE_METHODS
    if "discount_id" in row:
        row["id"] = f"{location_id}_{row['discount_id']}"
    return row


def apply_product_details(
    row: dict[str, Any],
    restrictions: dict[str, Any],
    products: dict[str, dict[str, Any]],
) -> dict[str, Any]:
    """Fill product columns for discounts restricted to specific products.

    Exclusion lists are left untouched.

    Args:
        row: Transformed discount row (updated in place).
        restrictions: The discount's reward restrictions.
        products: Active inventory keyed by product id.

    Returns:
        The row.
    """
    product_restriction = restrictions.get("Product") or {}
    product_ids = product_restriction.get("restrictionIds") or []
    if product_restriction.get("isExclusion") or not product_ids:
        return row

    details = [
        {"product_id": pid, **products[str(pid)]}
        for pid in product_ids
        if str(pid) in products
    ]
    if details:
        primary = details[0]
        for column in ("product_name", "brand_name", "category", "image_url", "unit_price"):
            row[column] = primary[column]
        row["product_details"] = details
    return row


class DiscountSyncTask(PerLocationSyncTask):
    """Sync active discounts of a store."""

    phase = SyncPhase.DISCOUNTS

    def __init__(self, db: SyncDatabase, pos_clients: LocationPosClientFactory) -> None:
        """Initialize the task.

        Args:
            db: Inventory database.
            pos_clients: Factory building a POS client for a location.
        """
        self._db = db
        self._pos_clients = pos_clients

    def _do_work(self, location: LocationConfig) -> SyncCounts:
        with self._pos_clients(location) as pos:
            discounts = pos.get_discounts()

        counts = SyncCounts()
        products: dict[str, dict[str, Any]] | None = None

        for item in discounts:
            if not item.get("isActive"):
                counts.items_skipped += 1
                continue

            row = transform_discount(item, location.location_id)
            if "id" not in row:
                logger.warning(f"{location.name}: skipping discount without id")
                counts.item_errors += 1
                continue

            restrictions = (item.get("reward") or {}).get("restrictions")
            if restrictions:
                if products is None:
                    products = self._db.active_products(location.location_id)
                apply_product_details(row, restrictions, products)

            try:
                created = self._db.upsert_discount(row)
            except SQLAlchemyError as e:
                logger.error(f"{location.name}: error syncing discount {item.get('id')}: {e}")
                counts.item_errors += 1
                continue
            counts.items_processed += 1
            if created:
                counts.items_created += 1
            else:
                counts.items_updated += 1
        return counts
