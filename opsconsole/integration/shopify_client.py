"""Shopify Admin REST client (commerce platform)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from opsconsole.config import ShopifyConfig, get_config
from opsconsole.core.errors import PlatformAPIError
from opsconsole.integration.rate_limiter import RateLimiter
from opsconsole.models import CommerceOrder

logger = logging.getLogger(__name__)


class ShopifyClient:
    """Order lookups against the Shopify Admin API."""

    def __init__(
        self,
        config: ShopifyConfig | None = None,
        *,
        rate_limiter: RateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        config = config or get_config().shopify
        if not config.store or not config.access_token:
            raise KeyError(
                "SHOPIFY_STORE and SHOPIFY_ACCESS_TOKEN environment variables are required"
            )

        self.store = config.store
        self.api_version = config.api_version
        self.rate_limiter = rate_limiter or RateLimiter(config.min_request_interval)
        self.client = httpx.AsyncClient(
            base_url=f"https://{self.store}/admin/api/{self.api_version}",
            timeout=30.0,
            headers={
                "X-Shopify-Access-Token": config.access_token,
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        await self.rate_limiter.acquire(self.store)
        try:
            response = await self.client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise PlatformAPIError(
                "Shopify", exc.response.text, status_code=exc.response.status_code
            ) from exc
        except httpx.RequestError as exc:
            raise PlatformAPIError("Shopify", f"request failed: {exc}") from exc
        return response.json()

    async def get_order_by_number(self, order_number: str | int) -> CommerceOrder | None:
        """Find an order by its customer-facing number.

        Shopify stores the number in the order ``name`` with a leading "#".

        Returns:
            The first matching order, or None when no order has that number
        """
        name = str(order_number).strip()
        if not name.startswith("#"):
            name = f"#{name}"

        data = await self._get("/orders.json", params={"name": name, "status": "any"})
        orders = data.get("orders") or []
        if not orders:
            logger.debug(f"No Shopify order found for {name}")
            return None
        return CommerceOrder.model_validate(orders[0])

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> ShopifyClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
