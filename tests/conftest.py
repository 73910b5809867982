"""Pytest configuration and fixtures for OpsConsole tests.

Provides common fixtures for testing.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from opsconsole.config import ChangeDetectorConfig, reset_config
from opsconsole.models import CommerceOrder, FulfillmentOrder, Variant
from opsconsole.orders.cache import ChangeCache, InMemoryCacheStore

ISOLATED_ENV_VARS = (
    "SHOPIFY_STORE",
    "SHOPIFY_ACCESS_TOKEN",
    "SHIPSTATION_API_KEY",
    "SHIPSTATION_API_SECRET",
    "ORDER_CHANGE_DETECTOR_ENABLED",
    "ORDER_CHANGE_DETECTOR_INTERVAL",
    "ORDER_CHANGE_DETECTOR_HOURS",
    "ORDER_CHANGE_DETECTOR_AUTO_TAG",
    "ORDER_CHANGE_DETECTOR_MAX_ORDERS",
    "ORDER_CHANGE_DETECTOR_SCHEDULER",
    "ORDER_CHANGE_CACHE_BACKEND",
    "LOG_LEVEL",
    "LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch, tmp_path):
    """Isolate every test from the developer's environment."""
    for name in ISOLATED_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("ORDER_CHANGE_CACHE_PATH", str(tmp_path / "order-change-cache.json"))
    reset_config()
    yield
    reset_config()


@pytest.fixture
def detector_config() -> ChangeDetectorConfig:
    """Detector config with no courtesy delays."""
    return ChangeDetectorConfig(
        order_delay_seconds=0,
        tag_delay_seconds=0,
        start_delay_seconds=0,
    )


@pytest.fixture
def memory_cache() -> ChangeCache:
    return ChangeCache(InMemoryCacheStore())


def _commerce_order(number: str, items: list[dict]) -> CommerceOrder:
    """Commerce order whose items all carry a product reference."""
    return CommerceOrder(
        id=int(number),
        name=f"#{number}",
        line_items=[{"product_id": 7000 + i, **item} for i, item in enumerate(items)],
    )


def _fulfillment_order(
    number: str,
    items: list[dict],
    order_id: int | None = None,
    tag_ids: list[int] | None = None,
) -> FulfillmentOrder:
    return FulfillmentOrder.model_validate(
        {
            "orderId": order_id or int(number) * 10,
            "orderNumber": number,
            "orderStatus": "awaiting_shipment",
            "tagIds": tag_ids,
            "shipTo": {"name": "Jane Doe"},
            "items": items,
        }
    )


@pytest.fixture
def commerce_order_factory():
    return _commerce_order


@pytest.fixture
def fulfillment_order_factory():
    return _fulfillment_order


@pytest.fixture
def matching_orders() -> tuple[CommerceOrder, FulfillmentOrder]:
    """Order 1001 with identical items on both platforms."""
    return (
        _commerce_order(
            "1001", [{"sku": "TEE-BLK-M", "name": "Tee Black M", "quantity": 2, "price": "20.00"}]
        ),
        _fulfillment_order(
            "1001", [{"sku": "TEE-BLK-M", "name": "Tee Black M", "quantity": 2, "unitPrice": 20}]
        ),
    )


@pytest.fixture
def changed_orders() -> tuple[CommerceOrder, FulfillmentOrder]:
    """Order 1002 where the fulfillment side gained an extra mug."""
    return (
        _commerce_order(
            "1002", [{"sku": "MUG-11", "name": "Coffee Mug", "quantity": 1, "price": "12.00"}]
        ),
        _fulfillment_order(
            "1002", [{"sku": "MUG-11", "name": "Coffee Mug", "quantity": 2, "unitPrice": 12}]
        ),
    )


@pytest.fixture
def fake_fulfillment() -> AsyncMock:
    """Fulfillment client mock with no orders and tag id 77."""
    client = AsyncMock()
    client.search_orders.return_value = []
    client.get_or_create_tag_id.return_value = 77
    client.add_tag_to_order.return_value = None
    return client


@pytest.fixture
def fake_commerce() -> AsyncMock:
    client = AsyncMock()
    client.get_order_by_number.return_value = None
    return client


@pytest.fixture
def sample_variants() -> list[Variant]:
    """Small catalog with sparse pick numbers."""
    return [
        Variant(variant_id="1", sku="WDG-RED-S", product_type="Widget", pick_number="101"),
        Variant(variant_id="2", sku="WDG-RED-M", product_type="Widget", pick_number="102"),
        Variant(variant_id="3", sku="WDG-RED-L", product_type="Widget", pick_number="104"),
        Variant(variant_id="4", sku="WDG-BLU-S", product_type="Widget"),
        Variant(variant_id="5", sku="MUG-11", product_type="Mug", pick_number="300"),
        Variant(
            variant_id="6",
            sku="OLD-01",
            product_type="Widget",
            pick_number="103",
            is_archived=True,
        ),
    ]
