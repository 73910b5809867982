"""Unit tests for the commerce/fulfillment line-item comparator."""

from __future__ import annotations

import pytest

from opsconsole.models import (
    AddedItem,
    ChangeDirection,
    QuantityChangedItem,
    RemovedItem,
)
from opsconsole.orders.comparator import compare, compare_orders


def commerce(sku, quantity, price="10.00", name=None, **extra):
    return {
        "product_id": 1,
        "sku": sku,
        "name": name or f"Item {sku}",
        "quantity": quantity,
        "price": price,
        **extra,
    }


def fulfillment(sku, quantity, price=10, name=None):
    return {"sku": sku, "name": name or f"Item {sku}", "quantity": quantity, "unitPrice": price}


class TestScenarios:
    """End-to-end comparisons of small orders."""

    def test_identical_orders_have_no_changes(self):
        result = compare([commerce("ABC", 2)], [fulfillment("ABC", 2)])

        assert result.has_changes is False
        assert result.changes == []
        assert result.commerce_item_count == 1
        assert result.fulfillment_item_count == 1

    def test_zero_price_promo_line_is_ignored(self):
        result = compare(
            [commerce("ABC", 2)],
            [fulfillment("ABC", 2), fulfillment("PROMO10", 1, price=0)],
        )

        assert result.has_changes is False
        assert result.fulfillment_item_count == 1

    def test_extra_fulfillment_item_is_added(self):
        result = compare(
            [commerce("ABC", 2)],
            [fulfillment("ABC", 2), fulfillment("XYZ", 1, price=15)],
        )

        assert result.has_changes is True
        assert len(result.changes) == 1
        change = result.changes[0]
        assert isinstance(change, AddedItem)
        assert change.sku == "XYZ"
        assert change.quantity == 1
        assert "added to ShipStation" in change.description


class TestDiffEntries:
    def test_missing_fulfillment_item_is_removed(self):
        result = compare([commerce("ABC", 2), commerce("XYZ", 3)], [fulfillment("ABC", 2)])

        assert [type(c) for c in result.changes] == [RemovedItem]
        assert result.changes[0].sku == "XYZ"
        assert result.changes[0].quantity == 3

    def test_quantity_increase(self):
        result = compare([commerce("ABC", 1)], [fulfillment("ABC", 3)])

        change = result.changes[0]
        assert isinstance(change, QuantityChangedItem)
        assert change.shopify_quantity == 1
        assert change.fulfillment_quantity == 3
        assert change.difference == 2
        assert change.direction is ChangeDirection.INCREASED

    def test_quantity_decrease(self):
        result = compare([commerce("ABC", 5)], [fulfillment("ABC", 2)])

        change = result.changes[0]
        assert change.difference == 3
        assert change.direction is ChangeDirection.DECREASED

    def test_diff_order_is_commerce_side_then_additions(self):
        result = compare(
            [commerce("AAA", 1), commerce("BBB", 1), commerce("CCC", 2)],
            [fulfillment("ZZZ", 1), fulfillment("CCC", 1), fulfillment("YYY", 4)],
        )

        assert [(c.type, c.sku) for c in result.changes] == [
            ("removed", "AAA"),
            ("removed", "BBB"),
            ("quantity_changed", "CCC"),
            ("added", "ZZZ"),
            ("added", "YYY"),
        ]


class TestFiltering:
    def test_commerce_lines_without_product_are_ignored(self):
        tip = {"product_id": None, "sku": "", "name": "Tip", "quantity": 1, "price": "5.00"}
        result = compare([commerce("ABC", 1), tip], [fulfillment("ABC", 1)])

        assert result.has_changes is False
        assert result.commerce_item_count == 1

    def test_gift_cards_are_ignored(self):
        card = commerce("GC-50", 1, price="50.00", gift_card=True)
        result = compare([commerce("ABC", 1), card], [fulfillment("ABC", 1)])

        assert result.has_changes is False

    def test_unnamed_fulfillment_lines_are_ignored(self):
        result = compare(
            [commerce("ABC", 1)],
            [fulfillment("ABC", 1), {"sku": "XYZ", "name": "  ", "quantity": 1}],
        )

        assert result.has_changes is False

    def test_noise_on_both_sides_is_ignored(self):
        result = compare(
            [commerce("ABC", 1), commerce("ELIZA10", 1, price="15.00")],
            [fulfillment("ABC", 1), fulfillment("WH4WW9Z7", 1, price=5)],
        )

        assert result.has_changes is False


class TestAggregation:
    def test_split_lines_are_summed(self):
        """Two lines of the same SKU equal one line with the summed quantity."""
        split = compare([commerce("ABC", 1), commerce("ABC", 2)], [fulfillment("ABC", 3)])
        single = compare([commerce("ABC", 3)], [fulfillment("ABC", 3)])

        assert split.has_changes is False
        assert single.has_changes is False
        assert split.commerce_items[0].quantity == 3

    def test_name_is_the_key_when_sku_is_blank(self):
        result = compare(
            [commerce(None, 1, name="Handmade Scarf")],
            [{"sku": "", "name": "Handmade Scarf", "quantity": 1, "unitPrice": 30}],
        )

        assert result.has_changes is False
        assert result.commerce_items[0].sku == "Handmade Scarf"

    def test_first_name_is_kept(self):
        result = compare(
            [commerce("ABC", 1, name="Alpha"), commerce("ABC", 1, name="Alpha (renamed)")],
            [fulfillment("ABC", 2)],
        )

        assert result.commerce_items[0].name == "Alpha"


class TestProperties:
    @pytest.mark.parametrize(
        "items",
        [
            [],
            [("ABC", 1)],
            [("ABC", 2), ("XYZ", 5), ("TEE-BLK-M", 1)],
        ],
    )
    def test_same_items_on_both_sides_never_differ(self, items):
        result = compare(
            [commerce(sku, qty) for sku, qty in items],
            [fulfillment(sku, qty) for sku, qty in items],
        )

        assert result.has_changes is False
        assert result.changes == []

    @pytest.mark.parametrize("shopify_qty,fulfillment_qty", [(1, 4), (4, 1), (2, 3)])
    def test_direction_matches_sign_of_delta(self, shopify_qty, fulfillment_qty):
        change = compare(
            [commerce("ABC", shopify_qty)], [fulfillment("ABC", fulfillment_qty)]
        ).changes[0]

        assert change.difference == abs(fulfillment_qty - shopify_qty)
        expected = (
            ChangeDirection.INCREASED
            if fulfillment_qty > shopify_qty
            else ChangeDirection.DECREASED
        )
        assert change.direction is expected


def test_compare_orders_uses_parsed_records(matching_orders, changed_orders):
    assert compare_orders(*matching_orders).has_changes is False

    result = compare_orders(*changed_orders)
    assert result.has_changes is True
    assert result.changes[0].direction is ChangeDirection.INCREASED
