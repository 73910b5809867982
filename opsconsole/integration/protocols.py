"""Capabilities the change detector needs from the two order platforms."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from opsconsole.models import CommerceOrder


class CommerceOrderLookup(Protocol):
    async def get_order_by_number(self, order_number: str) -> CommerceOrder | None: ...


class FulfillmentOrderSearch(Protocol):
    async def search_orders(
        self,
        *,
        modified_since: datetime,
        modified_until: datetime,
        status: str,
        page_size: int,
        page: int = 1,
    ) -> list[dict[str, Any]]: ...


class FulfillmentTagging(Protocol):
    async def get_or_create_tag_id(self, name: str) -> int | str: ...

    async def add_tag_to_order(self, order_id: int | str, tag_id: int | str) -> None: ...


class FulfillmentClient(FulfillmentOrderSearch, FulfillmentTagging, Protocol):
    """Search plus tagging, as implemented by ShipStationClient."""
