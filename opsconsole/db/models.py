"""SQLAlchemy async database models for the OpsConsole catalog.

Pick numbers and SKUs carry no unique constraint: historical data may hold
duplicates that must be imported and surfaced, not rejected.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class ProductModel(Base):
    """Commerce platform product cached locally."""

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shopify_product_id: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    handle: Mapped[str | None] = mapped_column(Text)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="active", index=True)
    vendor: Mapped[str | None] = mapped_column(Text)
    product_type: Mapped[str | None] = mapped_column(Text)
    tags: Mapped[str | None] = mapped_column(Text)

    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    variants: Mapped[list[VariantModel]] = relationship(back_populates="product")


class VariantModel(Base):
    """Variant with warehouse management fields."""

    __tablename__ = "variants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shopify_variant_id: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    shopify_product_id: Mapped[str] = mapped_column(
        ForeignKey("products.shopify_product_id", ondelete="CASCADE"), index=True
    )

    # Core commerce fields
    sku: Mapped[str | None] = mapped_column(Text, index=True)
    variant_title: Mapped[str | None] = mapped_column(Text)
    price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    weight_grams: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    barcode: Mapped[str | None] = mapped_column(Text)

    # Customs
    harmonized_system_code: Mapped[str | None] = mapped_column(Text)
    country_code_of_origin: Mapped[str | None] = mapped_column(String(2))

    # Warehouse management
    pick_number: Mapped[str | None] = mapped_column(Text, index=True)
    warehouse_location: Mapped[str | None] = mapped_column(Text, index=True)

    # e.g. {"shopify": false, "shipstation": true}
    dirty_flags: Mapped[dict] = mapped_column(
        JSON, default=lambda: {"shopify": False, "shipstation": False}
    )
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    last_shipstation_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    product: Mapped[ProductModel] = relationship(back_populates="variants")
