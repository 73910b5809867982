"""OpsConsole Pydantic models for type-safe data validation.

Order models accept the raw JSON shapes returned by Shopify (snake_case) and
ShipStation (camelCase) so platform payloads can be validated directly.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator


class ChangeDirection(str, Enum):
    """Direction of a quantity change, seen from the fulfillment side."""

    INCREASED = "increased"
    DECREASED = "decreased"


# ---------------------------------------------------------------------------
# Platform order records
# ---------------------------------------------------------------------------


class CommerceLineItem(BaseModel):
    """Line item as recorded by the commerce platform."""

    product_id: int | str | None = None
    variant_id: int | str | None = None
    gift_card: bool = False
    sku: str | None = None
    name: str | None = None
    quantity: int = 0
    price: Decimal | None = None

    @field_validator("price", mode="before")
    @classmethod
    def parse_price(cls, v: Any) -> Any:
        if v in ("", None):
            return None
        return v

    class Config:
        extra = "ignore"
        json_schema_extra = {
            "example": {
                "product_id": 7001,
                "variant_id": 42001,
                "gift_card": False,
                "sku": "WDG-BLU-M",
                "name": "Widget - Blue / M",
                "quantity": 2,
                "price": "24.00",
            }
        }


class CommerceOrder(BaseModel):
    """Commerce platform order (only the fields reconciliation needs)."""

    id: int | str | None = None
    name: str | None = None  # "#1001"
    line_items: list[CommerceLineItem] = Field(default_factory=list)

    class Config:
        extra = "ignore"


class FulfillmentItem(BaseModel):
    """Line item as recorded by the fulfillment platform."""

    sku: str | None = None
    name: str | None = None
    quantity: int = 0
    unit_price: Decimal | None = Field(default=None, alias="unitPrice")

    @field_validator("unit_price", mode="before")
    @classmethod
    def parse_unit_price(cls, v: Any) -> Any:
        if v in ("", None):
            return None
        return v

    class Config:
        extra = "ignore"
        populate_by_name = True


class FulfillmentOrder(BaseModel):
    """Fulfillment platform order."""

    order_id: int | str = Field(alias="orderId")
    order_number: str = Field(alias="orderNumber")
    order_status: str | None = Field(default=None, alias="orderStatus")
    tag_ids: list[int | str] | None = Field(default=None, alias="tagIds")
    ship_to: dict[str, Any] | None = Field(default=None, alias="shipTo")
    items: list[FulfillmentItem] | None = None

    @field_validator("order_number", mode="before")
    @classmethod
    def coerce_order_number(cls, v: Any) -> Any:
        return str(v) if v is not None else v

    @property
    def customer_name(self) -> str:
        return (self.ship_to or {}).get("name") or "Unknown"

    class Config:
        extra = "ignore"
        populate_by_name = True


# ---------------------------------------------------------------------------
# Comparison results
# ---------------------------------------------------------------------------


class AddedItem(BaseModel):
    """Item present on the fulfillment side only."""

    type: Literal["added"] = "added"
    sku: str
    name: str | None = None
    quantity: int
    description: str = ""

    class Config:
        frozen = True


class RemovedItem(BaseModel):
    """Item present on the commerce side only."""

    type: Literal["removed"] = "removed"
    sku: str
    name: str | None = None
    quantity: int
    description: str = ""

    class Config:
        frozen = True


class QuantityChangedItem(BaseModel):
    """Item present on both sides with different quantities."""

    type: Literal["quantity_changed"] = "quantity_changed"
    sku: str
    name: str | None = None
    shopify_quantity: int
    fulfillment_quantity: int
    difference: int  # Always positive
    direction: ChangeDirection
    description: str = ""

    class Config:
        frozen = True


ItemDiffEntry = Annotated[
    Union[AddedItem, RemovedItem, QuantityChangedItem],
    Field(discriminator="type"),
]


class ItemSummary(BaseModel):
    """Aggregated quantity for one product key on one side of a comparison."""

    sku: str
    name: str | None = None
    quantity: int

    class Config:
        frozen = True


class ComparisonResult(BaseModel):
    """Outcome of comparing one order across both platforms."""

    changes: list[ItemDiffEntry] = Field(default_factory=list)
    has_changes: bool = False
    commerce_item_count: int = 0
    fulfillment_item_count: int = 0
    commerce_items: list[ItemSummary] = Field(default_factory=list)
    fulfillment_items: list[ItemSummary] = Field(default_factory=list)

    class Config:
        frozen = True


# ---------------------------------------------------------------------------
# Change detection cache and run statistics
# ---------------------------------------------------------------------------


class ChangeCacheEntry(BaseModel):
    """Last known comparison state for one fulfillment order."""

    last_checked: int  # Epoch milliseconds
    has_changes: bool = False
    changes: list[ItemDiffEntry] = Field(default_factory=list)
    order_number: str | None = None
    tagged: bool = False
    error: str | None = None  # e.g. "no_commerce_match"

    class Config:
        json_schema_extra = {
            "example": {
                "last_checked": 1760745600000,
                "has_changes": True,
                "changes": [
                    {
                        "type": "added",
                        "sku": "XYZ",
                        "name": "Gift Wrap",
                        "quantity": 1,
                    }
                ],
                "order_number": "1001",
                "tagged": False,
            }
        }


class RunError(BaseModel):
    """A failure recorded during a change detection run."""

    order_id: str | None = None
    order_number: str | None = None
    error: str


class RunStats(BaseModel):
    """Statistics for a single change detection run."""

    orders_scanned: int = 0
    orders_skipped: int = 0
    changes_detected: int = 0
    new_changes: int = 0
    orders_tagged: int = 0
    errors: list[RunError] = Field(default_factory=list)
    started_at: datetime | None = None
    duration_seconds: float = 0.0


class JobStats(BaseModel):
    """Cumulative statistics across change detection runs."""

    total_runs: int = 0
    last_run_date: datetime | None = None
    last_run_duration_seconds: float = 0.0
    orders_scanned: int = 0
    changes_detected: int = 0
    orders_tagged: int = 0
    last_error: str | None = None


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class Variant(BaseModel):
    """Product variant as held by the catalog store."""

    variant_id: str
    product_id: str | None = None
    sku: str | None = None
    title: str | None = None  # Variant title, e.g. "Blue / M"
    product_title: str | None = None
    product_type: str | None = None

    # Warehouse fields
    pick_number: str | None = None
    warehouse_location: str | None = None

    # Commerce fields
    price: Decimal | None = None
    weight_grams: Decimal | None = None
    harmonized_system_code: str | None = None
    country_code_of_origin: str | None = None

    is_archived: bool = False
    dirty_flags: dict[str, bool] = Field(
        default_factory=lambda: {"shopify": False, "shipstation": False}
    )

    @field_validator("variant_id", "product_id", "pick_number", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return str(v) if v is not None else v

    class Config:
        json_schema_extra = {
            "example": {
                "variant_id": "42001",
                "product_id": "7001",
                "sku": "WDG-BLU-M",
                "title": "Blue / M",
                "product_type": "Widget",
                "pick_number": "103",
                "warehouse_location": "A-03-2",
            }
        }


class PickNumberUpdate(BaseModel):
    """A proposed pick number for one variant."""

    id: str
    pick_number: str | None = None

    @field_validator("id", "pick_number", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return str(v) if v is not None else v


class PickConflict(BaseModel):
    """Pick number uniqueness violation found before save."""

    pick_number: str
    type: Literal["batch_duplicate", "existing_duplicate"]
    variant_ids: list[str] = Field(default_factory=list)
    existing_variant_id: str | None = None
    message: str


class DuplicateGroup(BaseModel):
    """A value shared by more than one active variant."""

    value: str
    count: int
    variant_ids: list[str]
    skus: list[str | None] = Field(default_factory=list)
