"""ShipStation REST client (fulfillment platform)."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx

from opsconsole.config import ShipStationConfig, get_config
from opsconsole.core.errors import PlatformAPIError
from opsconsole.models import FulfillmentOrder

logger = logging.getLogger(__name__)


class ShipStationClient:
    """Order search and tagging against the ShipStation API."""

    def __init__(
        self,
        config: ShipStationConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        config = config or get_config().shipstation
        if not config.api_key or not config.api_secret:
            raise KeyError(
                "SHIPSTATION_API_KEY and SHIPSTATION_API_SECRET environment variables are required"
            )

        self.client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=60.0,
            auth=(config.api_key, config.api_secret),
            headers={"Content-Type": "application/json"},
            transport=transport,
        )
        self._tag_ids: dict[str, int | str] = {}

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self.client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise PlatformAPIError(
                "ShipStation", exc.response.text, status_code=exc.response.status_code
            ) from exc
        except httpx.RequestError as exc:
            raise PlatformAPIError("ShipStation", f"request failed: {exc}") from exc
        if not response.content:
            return None
        return response.json()

    async def search_orders(
        self,
        *,
        modified_since: datetime,
        modified_until: datetime,
        status: str = "awaiting_shipment",
        page_size: int = 500,
        page: int = 1,
    ) -> list[dict[str, Any]]:
        """List orders modified inside a time window.

        Returns the raw order records. Callers validate each one on its own so
        a single malformed order does not hide the rest of the page.
        """
        data = await self._request(
            "GET",
            "/orders",
            params={
                "modifyDateStart": modified_since.isoformat(),
                "modifyDateEnd": modified_until.isoformat(),
                "orderStatus": status,
                "pageSize": page_size,
                "page": page,
            },
        )
        return _order_list(data)

    async def get_order_by_number(self, order_number: str) -> FulfillmentOrder | None:
        data = await self._request(
            "GET", "/orders", params={"orderNumber": str(order_number)}
        )
        orders = _order_list(data)
        return FulfillmentOrder.model_validate(orders[0]) if orders else None

    async def get_or_create_tag_id(self, name: str) -> int | str:
        """Resolve an account tag by name, creating it when missing."""
        if name in self._tag_ids:
            return self._tag_ids[name]

        tags = await self._request("GET", "/accounts/listtags") or []
        tag = next((t for t in tags if t.get("name") == name), None)
        if tag is None:
            tag = await self._request("POST", "/accounts/createtag", json={"name": name})
            logger.info(f"Created ShipStation tag {name!r} (ID: {tag['tagId']})")

        self._tag_ids[name] = tag["tagId"]
        return tag["tagId"]

    async def add_tag_to_order(self, order_id: int | str, tag_id: int | str) -> None:
        await self._request(
            "POST", "/orders/addtag", json={"orderId": order_id, "tagId": tag_id}
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> ShipStationClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def _order_list(data: Any) -> list[dict[str, Any]]:
    # The orders endpoint has answered with several envelope shapes
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ("orders", "results", "items"):
            if isinstance(data.get(key), list):
                return data[key]
    return []
