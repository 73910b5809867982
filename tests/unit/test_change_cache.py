"""Unit tests for the order change cache and its stores."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest

from opsconsole.config import FRESHNESS_WINDOW_MS, RETENTION_WINDOW_MS
from opsconsole.core.errors import CacheCorruptionError
from opsconsole.models import AddedItem, ChangeCacheEntry
from opsconsole.orders.cache import (
    ChangeCache,
    InMemoryCacheStore,
    JsonFileCacheStore,
    RedisCacheStore,
    is_skippable,
)

NOW_MS = 1_792_324_800_000
HOUR_MS = 60 * 60 * 1000


def entry(age_ms: int = 0, has_changes: bool = False, tagged: bool = False, **kwargs):
    return ChangeCacheEntry(
        last_checked=NOW_MS - age_ms, has_changes=has_changes, tagged=tagged, **kwargs
    )


class TestSkipRule:
    def test_unknown_order_is_checked(self):
        assert is_skippable(None, NOW_MS, FRESHNESS_WINDOW_MS) is False

    def test_fresh_settled_order_is_skipped(self):
        assert is_skippable(entry(HOUR_MS), NOW_MS, FRESHNESS_WINDOW_MS) is True

    def test_fresh_tagged_change_is_skipped(self):
        cached = entry(HOUR_MS, has_changes=True, tagged=True)
        assert is_skippable(cached, NOW_MS, FRESHNESS_WINDOW_MS) is True

    def test_untagged_change_is_always_rechecked(self):
        cached = entry(0, has_changes=True, tagged=False)
        assert is_skippable(cached, NOW_MS, FRESHNESS_WINDOW_MS) is False

    def test_stale_entry_is_rechecked(self):
        assert is_skippable(entry(6 * HOUR_MS), NOW_MS, FRESHNESS_WINDOW_MS) is False
        assert is_skippable(entry(7 * HOUR_MS), NOW_MS, FRESHNESS_WINDOW_MS) is False

    def test_skip_decision_is_idempotent(self):
        cached = entry(HOUR_MS)
        decisions = {is_skippable(cached, NOW_MS, FRESHNESS_WINDOW_MS) for _ in range(3)}
        assert decisions == {True}


class TestChangeCache:
    def test_put_and_get_use_string_ids(self, memory_cache):
        memory_cache.put(123, entry())

        assert 123 in memory_cache
        assert "123" in memory_cache
        assert memory_cache.get("123") is not None
        assert len(memory_cache) == 1

    def test_evict_older_than_retention(self, memory_cache):
        memory_cache.put("old", entry(RETENTION_WINDOW_MS + 1))
        memory_cache.put("edge", entry(RETENTION_WINDOW_MS))
        memory_cache.put("new", entry(HOUR_MS))

        removed = memory_cache.evict_older_than(RETENTION_WINDOW_MS, NOW_MS)

        assert removed == 1
        assert set(memory_cache.entries()) == {"edge", "new"}

    @pytest.mark.asyncio
    async def test_save_and_load_round_trip(self):
        store = InMemoryCacheStore()
        cache = ChangeCache(store)
        cache.put(
            "55",
            entry(
                has_changes=True,
                changes=[AddedItem(sku="XYZ", name="Gift Wrap", quantity=1)],
                order_number="1001",
            ),
        )
        await cache.save_all()

        assert store.data["55"]["changes"][0]["type"] == "added"
        assert "error" not in store.data["55"]

        reloaded = ChangeCache(store)
        await reloaded.load_all()
        assert reloaded.get("55") == cache.get("55")

    @pytest.mark.asyncio
    async def test_load_replaces_in_memory_entries(self):
        cache = ChangeCache(InMemoryCacheStore({"1": {"last_checked": NOW_MS}}))
        cache.put("stray", entry())

        await cache.load_all()

        assert set(cache.entries()) == {"1"}

    @pytest.mark.asyncio
    async def test_invalid_entry_raises_corruption(self):
        cache = ChangeCache(InMemoryCacheStore({"1": {"has_changes": True}}))

        with pytest.raises(CacheCorruptionError, match="order 1"):
            await cache.load_all()


class TestJsonFileCacheStore:
    @pytest.mark.asyncio
    async def test_missing_file_loads_empty(self, tmp_path):
        store = JsonFileCacheStore(tmp_path / "missing.json")
        assert await store.load_all() == {}

    @pytest.mark.asyncio
    async def test_save_creates_parent_directory(self, tmp_path):
        path = tmp_path / "data" / "cache.json"
        store = JsonFileCacheStore(path)

        await store.save_all({"1": {"last_checked": NOW_MS}})

        assert json.loads(path.read_text()) == {"1": {"last_checked": NOW_MS}}
        assert await store.load_all() == {"1": {"last_checked": NOW_MS}}

    @pytest.mark.asyncio
    async def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("{not json")

        with pytest.raises(CacheCorruptionError):
            await JsonFileCacheStore(path).load_all()

    @pytest.mark.asyncio
    async def test_non_object_document_raises(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("[1, 2, 3]")

        with pytest.raises(CacheCorruptionError, match="not a JSON object"):
            await JsonFileCacheStore(path).load_all()


class TestRedisCacheStore:
    @pytest.mark.asyncio
    @patch("opsconsole.orders.cache.redis.from_url")
    async def test_round_trip_through_single_key(self, mock_from_url):
        client = AsyncMock()
        client.get.return_value = json.dumps({"9": {"last_checked": NOW_MS}})
        mock_from_url.return_value = client

        store = RedisCacheStore("redis://localhost:6379/0", key="test:cache")
        data = await store.load_all()
        await store.save_all(data)
        await store.close()

        assert data == {"9": {"last_checked": NOW_MS}}
        client.get.assert_awaited_once_with("test:cache")
        client.set.assert_awaited_once_with("test:cache", json.dumps(data))
        client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    @patch("opsconsole.orders.cache.redis.from_url")
    async def test_missing_key_loads_empty(self, mock_from_url):
        client = AsyncMock()
        client.get.return_value = None
        mock_from_url.return_value = client

        assert await RedisCacheStore("redis://localhost:6379/0").load_all() == {}

    @pytest.mark.asyncio
    @patch("opsconsole.orders.cache.redis.from_url")
    async def test_invalid_json_raises(self, mock_from_url):
        client = AsyncMock()
        client.get.return_value = "{oops"
        mock_from_url.return_value = client

        with pytest.raises(CacheCorruptionError):
            await RedisCacheStore("redis://localhost:6379/0").load_all()
