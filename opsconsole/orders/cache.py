"""Order change cache.

Tracks the last comparison per fulfillment order so settled orders are not
re-fetched from the commerce platform on every run. The storage medium is a
whole-document ``CacheStore`` (JSON file, Redis key, or memory).
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Protocol

import redis.asyncio as redis
from pydantic import ValidationError

from opsconsole.core.errors import CacheCorruptionError
from opsconsole.models import ChangeCacheEntry

logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    """Whole-document persistence for the change cache."""

    async def load_all(self) -> dict[str, Any]: ...

    async def save_all(self, data: dict[str, Any]) -> None: ...


class InMemoryCacheStore:
    """Process-local store, used by tests and one-shot CLI runs."""

    def __init__(self, data: dict[str, Any] | None = None):
        self.data: dict[str, Any] = dict(data or {})

    async def load_all(self) -> dict[str, Any]:
        return json.loads(json.dumps(self.data))

    async def save_all(self, data: dict[str, Any]) -> None:
        self.data = json.loads(json.dumps(data))


class JsonFileCacheStore:
    """JSON file on local disk.

    A missing file loads as an empty cache; a file that cannot be read or
    parsed raises CacheCorruptionError.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    async def load_all(self) -> dict[str, Any]:
        return await asyncio.to_thread(self._read)

    async def save_all(self, data: dict[str, Any]) -> None:
        await asyncio.to_thread(self._write, data)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CacheCorruptionError(
                f"Failed to load order change cache {self.path}: {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise CacheCorruptionError(
                f"Order change cache {self.path} is not a JSON object"
            )
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")


class RedisCacheStore:
    """Single Redis key holding the cache document as JSON."""

    def __init__(self, redis_url: str, key: str = "opsconsole:order-change-cache"):
        self.redis_url = redis_url
        self.key = key
        self._client = None

    async def _get_client(self):
        if self._client is None:
            self._client = redis.from_url(
                self.redis_url, encoding="utf-8", decode_responses=True
            )
        return self._client

    async def load_all(self) -> dict[str, Any]:
        client = await self._get_client()
        raw = await client.get(self.key)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CacheCorruptionError(
                f"Order change cache key {self.key} is not valid JSON: {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise CacheCorruptionError(
                f"Order change cache key {self.key} is not a JSON object"
            )
        return data

    async def save_all(self, data: dict[str, Any]) -> None:
        client = await self._get_client()
        await client.set(self.key, json.dumps(data))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class ChangeCache:
    """In-memory view of the change cache, persisted in bulk.

    Usage:
        cache = ChangeCache(JsonFileCacheStore("data/order-change-cache.json"))
        await cache.load_all()
        cache.evict_older_than(RETENTION_WINDOW_MS, now_ms)
        ...
        await cache.save_all()
    """

    def __init__(self, store: CacheStore):
        self.store = store
        self._entries: dict[str, ChangeCacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, order_id: object) -> bool:
        return str(order_id) in self._entries

    def get(self, order_id: str | int) -> ChangeCacheEntry | None:
        return self._entries.get(str(order_id))

    def put(self, order_id: str | int, entry: ChangeCacheEntry) -> None:
        self._entries[str(order_id)] = entry

    def entries(self) -> dict[str, ChangeCacheEntry]:
        return dict(self._entries)

    def evict_older_than(self, window_ms: int, now_ms: int) -> int:
        """Drop entries last checked more than ``window_ms`` before ``now_ms``.

        Returns:
            Number of entries removed
        """
        cutoff = now_ms - window_ms
        stale = [
            order_id
            for order_id, entry in self._entries.items()
            if entry.last_checked < cutoff
        ]
        for order_id in stale:
            del self._entries[order_id]
        if stale:
            logger.info(f"Cleaned {len(stale)} old entries from order change cache")
        return len(stale)

    async def load_all(self) -> dict[str, ChangeCacheEntry]:
        """Replace the in-memory entries with the persisted document."""
        raw = await self.store.load_all()
        entries: dict[str, ChangeCacheEntry] = {}
        for order_id, value in raw.items():
            try:
                entries[str(order_id)] = ChangeCacheEntry.model_validate(value)
            except ValidationError as exc:
                raise CacheCorruptionError(
                    f"Invalid cache entry for order {order_id}: {exc}"
                ) from exc
        self._entries = entries
        return dict(entries)

    async def save_all(self) -> None:
        """Persist every entry, replacing the stored document."""
        await self.store.save_all(
            {
                order_id: entry.model_dump(mode="json", exclude_none=True)
                for order_id, entry in self._entries.items()
            }
        )


def is_skippable(
    entry: ChangeCacheEntry | None, now_ms: int, freshness_window_ms: int
) -> bool:
    """Whether an order can be skipped on this run.

    An order is skipped while its entry is fresh and either settled
    (no changes) or already surfaced to operators (changes and tagged).
    Entries with untagged changes are always re-checked.
    """
    if entry is None:
        return False
    if now_ms - entry.last_checked >= freshness_window_ms:
        return False
    if not entry.has_changes:
        return True
    return entry.tagged
