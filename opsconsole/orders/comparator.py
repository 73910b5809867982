"""Line-item comparison between the commerce and fulfillment records of an order.

Only real product lines are compared. Discounts, gift cards, tips and promo
lines are filtered first so that change alerts fire on product changes only.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from opsconsole.models import (
    AddedItem,
    ChangeDirection,
    CommerceLineItem,
    CommerceOrder,
    ComparisonResult,
    FulfillmentItem,
    FulfillmentOrder,
    ItemSummary,
    QuantityChangedItem,
    RemovedItem,
)
from opsconsole.orders.classifier import classify

logger = logging.getLogger(__name__)


def compare(
    commerce_items: Iterable[CommerceLineItem | dict[str, Any]],
    fulfillment_items: Iterable[FulfillmentItem | dict[str, Any]],
) -> ComparisonResult:
    """Diff two line-item collections for the same logical order.

    Diff order follows the commerce side first (removed / quantity changes),
    then the fulfillment side (additions).

    Args:
        commerce_items: Commerce platform line items (models or raw dicts)
        fulfillment_items: Fulfillment platform items (models or raw dicts)

    Returns:
        ComparisonResult with the ordered diff entries
    """
    commerce_products = [
        item
        for item in (CommerceLineItem.model_validate(i) for i in commerce_items)
        if _is_commerce_product(item)
    ]
    fulfillment_products = [
        item
        for item in (FulfillmentItem.model_validate(i) for i in fulfillment_items)
        if _is_fulfillment_product(item)
    ]

    commerce_map = _aggregate((i.sku, i.name, i.quantity) for i in commerce_products)
    fulfillment_map = _aggregate(
        (i.sku, i.name, i.quantity) for i in fulfillment_products
    )

    changes: list[AddedItem | RemovedItem | QuantityChangedItem] = []

    for key, (name, quantity) in commerce_map.items():
        other = fulfillment_map.get(key)
        if other is None:
            changes.append(
                RemovedItem(
                    sku=key,
                    name=name,
                    quantity=quantity,
                    description=(
                        f'Item "{name}" (SKU: {key}) was removed from ShipStation '
                        f"({quantity} units)"
                    ),
                )
            )
            continue

        other_quantity = other[1]
        if other_quantity != quantity:
            difference = other_quantity - quantity
            direction = (
                ChangeDirection.INCREASED if difference > 0 else ChangeDirection.DECREASED
            )
            changes.append(
                QuantityChangedItem(
                    sku=key,
                    name=name,
                    shopify_quantity=quantity,
                    fulfillment_quantity=other_quantity,
                    difference=abs(difference),
                    direction=direction,
                    description=(
                        f'Item "{name}" (SKU: {key}) quantity {direction.value} '
                        f"from {quantity} to {other_quantity}"
                    ),
                )
            )

    for key, (name, quantity) in fulfillment_map.items():
        if key not in commerce_map:
            changes.append(
                AddedItem(
                    sku=key,
                    name=name,
                    quantity=quantity,
                    description=(
                        f'Item "{name}" (SKU: {key}) was added to ShipStation '
                        f"({quantity} units)"
                    ),
                )
            )

    return ComparisonResult(
        changes=changes,
        has_changes=bool(changes),
        commerce_item_count=len(commerce_products),
        fulfillment_item_count=len(fulfillment_products),
        commerce_items=_summaries(commerce_map),
        fulfillment_items=_summaries(fulfillment_map),
    )


def compare_orders(
    commerce_order: CommerceOrder, fulfillment_order: FulfillmentOrder
) -> ComparisonResult:
    """Compare the parsed platform records of one order."""
    return compare(commerce_order.line_items, fulfillment_order.items or [])


def _is_commerce_product(item: CommerceLineItem) -> bool:
    # Real products carry a product reference; discounts and tips don't
    if not item.product_id:
        return False
    if item.gift_card:
        return False
    reason = classify(item.sku, item.name, item.price)
    if reason:
        logger.debug(
            "Excluding commerce item %r (SKU: %s, price: %s): %s",
            item.name,
            item.sku,
            item.price,
            reason,
        )
        return False
    return True


def _is_fulfillment_product(item: FulfillmentItem) -> bool:
    if not item.name or not item.name.strip():
        return False
    reason = classify(item.sku, item.name, item.unit_price)
    if reason:
        logger.debug(
            "Excluding fulfillment item %r (SKU: %s, price: %s): %s",
            item.name,
            item.sku,
            item.unit_price,
            reason,
        )
        return False
    return True


def _aggregate(
    rows: Iterable[tuple[str | None, str | None, int]],
) -> dict[str, tuple[str | None, int]]:
    """Sum quantities per product key (SKU, falling back to name)."""
    aggregated: dict[str, tuple[str | None, int]] = {}
    for sku, name, quantity in rows:
        key = sku or name or ""
        if key in aggregated:
            first_name, total = aggregated[key]
            aggregated[key] = (first_name, total + quantity)
        else:
            aggregated[key] = (name, quantity)
    return aggregated


def _summaries(items: dict[str, tuple[str | None, int]]) -> list[ItemSummary]:
    return [
        ItemSummary(sku=key, name=name, quantity=quantity)
        for key, (name, quantity) in items.items()
    ]
