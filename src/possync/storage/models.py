"""SQLAlchemy models for synchronized POS data.

This module defines the database schema using SQLAlchemy ORM.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _now() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""


class Location(Base):
    """A store location."""

    __tablename__ = "locations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    tickertape: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, onupdate=_now, nullable=False
    )


class InventoryItem(Base):
    """One inventory row of a location.

    The id is "<location_id>_<inventory_id>".
    """

    __tablename__ = "inventory"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    location_id: Mapped[str] = mapped_column(String(64), nullable=False)
    inventory_id: Mapped[str] = mapped_column(String(64), nullable=False)
    product_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    sku: Mapped[str | None] = mapped_column(String(128), nullable=True)
    product_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    brand_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    strain: Mapped[str | None] = mapped_column(String(255), nullable=True)
    strain_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    description_html: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    med_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    rec_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    unit_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    unit_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    quantity_available: Mapped[float | None] = mapped_column(Float, nullable=True)
    allocated_quantity: Mapped[float | None] = mapped_column(Float, nullable=True)
    net_weight: Mapped[float | None] = mapped_column(Float, nullable=True)
    net_weight_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    size: Mapped[str | None] = mapped_column(String(64), nullable=True)
    batch_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    package_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    expiration_date: Mapped[str | None] = mapped_column(String(64), nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    images: Mapped[Any] = mapped_column(JSON, nullable=True)
    effects: Mapped[Any] = mapped_column(JSON, nullable=True)
    tags: Mapped[Any] = mapped_column(JSON, nullable=True)
    slug: Mapped[str | None] = mapped_column(String(255), nullable=True)
    staff_pick: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    medical_only: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    potency_thc_formatted: Mapped[str | None] = mapped_column(String(64), nullable=True)
    potency_cbd_formatted: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    synced_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, onupdate=_now, nullable=False
    )

    __table_args__ = (
        Index("idx_inventory_location", "location_id"),
        Index("idx_inventory_location_sku", "location_id", "sku"),
    )


class Discount(Base):
    """One active discount of a location.

    The id is "<location_id>_<discount_id>".
    """

    __tablename__ = "discounts"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    location_id: Mapped[str] = mapped_column(String(64), nullable=False)
    discount_id: Mapped[str] = mapped_column(String(64), nullable=False)
    discount_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    discount_code: Mapped[str | None] = mapped_column(String(128), nullable=True)
    application_method: Mapped[str | None] = mapped_column(String(64), nullable=True)
    external_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    valid_from: Mapped[str | None] = mapped_column(String(64), nullable=True)
    valid_until: Mapped[str | None] = mapped_column(String(64), nullable=True)
    calculation_method: Mapped[str | None] = mapped_column(String(64), nullable=True)
    discount_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    threshold_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    threshold_min: Mapped[float | None] = mapped_column(Float, nullable=True)
    threshold_max: Mapped[float | None] = mapped_column(Float, nullable=True)
    products: Mapped[Any] = mapped_column(JSON, nullable=True)
    brands: Mapped[Any] = mapped_column(JSON, nullable=True)
    product_categories: Mapped[Any] = mapped_column(JSON, nullable=True)
    constraints: Mapped[Any] = mapped_column(JSON, nullable=True)
    menu_display: Mapped[Any] = mapped_column(JSON, nullable=True)
    menu_display_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    weekly_recurrence_info: Mapped[Any] = mapped_column(JSON, nullable=True)
    is_available_online: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    product_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    brand_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    unit_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    product_details: Mapped[Any] = mapped_column(JSON, nullable=True)
    synced_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, onupdate=_now, nullable=False
    )

    __table_args__ = (Index("idx_discounts_location", "location_id"),)


class HourlySales(Base):
    """Sales totals of one location for one UTC hour.

    The id is "<location_id>_<YYYYmmddTHH>" of the hour start.
    """

    __tablename__ = "hourly_sales"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    location_id: Mapped[str] = mapped_column(String(64), nullable=False)
    branch_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    store_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    hour_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    hour_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    gross_sales: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    discounts: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    returns: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    net_sales: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    tax: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    transaction_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cash_paid: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    debit_paid: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    loyalty_spent: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, onupdate=_now, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("location_id", "hour_start", name="uq_hourly_sales_location_hour"),
        Index("idx_hourly_sales_hour", "hour_start"),
    )
