"""Inventory database using SQLAlchemy.

This module provides:
- Location registration and banner (tickertape) storage
- Inventory upserts and menu enrichment by SKU
- Discount upserts
- Hourly sales totals, one row per location and UTC hour
- Read helpers used by cache refresh and the ERP push
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, select, update
from sqlalchemy.orm import Session

from possync.storage.models import Base, Discount, HourlySales, InventoryItem, Location

if TYPE_CHECKING:
    from sqlalchemy import Engine


def _row_to_dict(row: Base) -> dict[str, Any]:
    """Convert a model instance to a plain dict of column values."""
    return {column.key: getattr(row, column.key) for column in row.__table__.columns}


class SyncDatabase:
    """SQLAlchemy database holding the synchronized POS state.

    Thread-safe: each operation uses its own short-lived ORM session.
    """

    def __init__(self, url: str) -> None:
        """Initialize the database.

        Args:
            url: SQLAlchemy database URL.
        """
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        self._engine: Engine = create_engine(url, connect_args=connect_args, echo=False)

        # Create tables if they don't exist
        Base.metadata.create_all(self._engine)

    def close(self) -> None:
        """Close the database connection."""
        self._engine.dispose()

    def _session(self) -> Session:
        """Create a new database session."""
        return Session(self._engine)

    # === Location operations ===

    def ensure_location(self, location_id: str, name: str) -> None:
        """Register a location, updating its name if it exists."""
        with self._session() as session:
            location = session.get(Location, location_id)
            if location is None:
                session.add(Location(id=location_id, name=name))
            else:
                location.name = name
            session.commit()

    def set_tickertape(self, location_id: str, html: str | None) -> bool:
        """Store the banner HTML of a location.

        Returns:
            True if the location exists.
        """
        with self._session() as session:
            location = session.get(Location, location_id)
            if location is None:
                return False
            location.tickertape = html
            session.commit()
            return True

    def get_location(self, location_id: str) -> dict[str, Any] | None:
        """Get a location as a dict."""
        with self._session() as session:
            location = session.get(Location, location_id)
            return _row_to_dict(location) if location else None

    # === Inventory operations ===

    def upsert_inventory_item(self, values: dict[str, Any]) -> bool:
        """Insert or update an inventory row.

        Args:
            values: Column values; must include "id" and "location_id".

        Returns:
            True if the row was created, False if updated.
        """
        with self._session() as session:
            item = session.get(InventoryItem, values["id"])
            created = item is None
            if item is None:
                item = InventoryItem(id=values["id"], location_id=values["location_id"])
                session.add(item)
            for key, value in values.items():
                if key not in ("id", "location_id"):
                    setattr(item, key, value)
            item.synced_at = datetime.now(UTC)
            session.commit()
            return created

    def enrich_inventory_by_sku(
        self, location_id: str, sku: str, values: dict[str, Any]
    ) -> int:
        """Update every inventory row of a location matching a SKU.

        Args:
            location_id: Location id.
            sku: Product SKU.
            values: Column values to set.

        Returns:
            Number of rows updated.
        """
        with self._session() as session:
            result = session.execute(
                update(InventoryItem)
                .where(InventoryItem.location_id == location_id)
                .where(InventoryItem.sku == sku)
                .values(**values, synced_at=datetime.now(UTC))
            )
            session.commit()
            return result.rowcount or 0

    def list_inventory(self, location_id: str) -> list[dict[str, Any]]:
        """List all inventory rows of a location."""
        with self._session() as session:
            stmt = (
                select(InventoryItem)
                .where(InventoryItem.location_id == location_id)
                .order_by(InventoryItem.id)
            )
            return [_row_to_dict(row) for row in session.execute(stmt).scalars()]

    def active_products(self, location_id: str) -> dict[str, dict[str, Any]]:
        """Map product_id to product details for active inventory."""
        with self._session() as session:
            stmt = (
                select(InventoryItem)
                .where(InventoryItem.location_id == location_id)
                .where(InventoryItem.is_active.is_(True))
            )
            products: dict[str, dict[str, Any]] = {}
            for row in session.execute(stmt).scalars():
                if row.product_id is None:
                    continue
                products[str(row.product_id)] = {
                    "product_name": row.product_name,
                    "brand_name": row.brand_name,
                    "category": row.category,
                    "image_url": row.image_url,
                    "unit_price": row.unit_price,
                }
            return products

    def stocked_inventory(self, location_id: str) -> list[dict[str, Any]]:
        """List inventory rows with quantity available, by product name."""
        with self._session() as session:
            stmt = (
                select(InventoryItem)
                .where(InventoryItem.location_id == location_id)
                .where(InventoryItem.quantity_available > 0)
                .order_by(InventoryItem.product_name)
            )
            return [_row_to_dict(row) for row in session.execute(stmt).scalars()]

    # === Discount operations ===

    def upsert_discount(self, values: dict[str, Any]) -> bool:
        """Insert or update a discount row.

        Returns:
            True if the row was created, False if updated.
        """
        with self._session() as session:
            discount = session.get(Discount, values["id"])
            created = discount is None
            if discount is None:
                discount = Discount(
                    id=values["id"],
                    location_id=values["location_id"],
                    discount_id=values["discount_id"],
                )
                session.add(discount)
            for key, value in values.items():
                if key not in ("id", "location_id", "discount_id"):
                    setattr(discount, key, value)
            discount.synced_at = datetime.now(UTC)
            session.commit()
            return created

    def list_discounts(self, location_id: str) -> list[dict[str, Any]]:
        """List all discounts of a location."""
        with self._session() as session:
            stmt = (
                select(Discount)
                .where(Discount.location_id == location_id)
                .order_by(Discount.id)
            )
            return [_row_to_dict(row) for row in session.execute(stmt).scalars()]

    # === Hourly sales operations ===

    def upsert_hourly_sales(self, values: dict[str, Any]) -> bool:
        """Insert or replace the totals of one location-hour.

        Returns:
            True if the row was created, False if updated.
        """
        with self._session() as session:
            row = session.get(HourlySales, values["id"])
            created = row is None
            if row is None:
                row = HourlySales(
                    id=values["id"],
                    location_id=values["location_id"],
                    hour_start=values["hour_start"],
                    hour_end=values["hour_end"],
                )
                session.add(row)
            for key, value in values.items():
                if key not in ("id", "location_id"):
                    setattr(row, key, value)
            row.updated_at = datetime.now(UTC)
            session.commit()
            return created

    def list_hourly_sales(self, location_id: str) -> list[dict[str, Any]]:
        """List the hourly totals of a location, oldest hour first."""
        with self._session() as session:
            stmt = (
                select(HourlySales)
                .where(HourlySales.location_id == location_id)
                .order_by(HourlySales.hour_start)
            )
            return [_row_to_dict(row) for row in session.execute(stmt).scalars()]
