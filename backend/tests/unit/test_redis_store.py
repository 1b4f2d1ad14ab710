"""
Unit Tests for the Redis Key-Value Store

All Redis operations go to an in-memory double for fast, isolated testing.

These tests verify:
- Key namespacing by prefix, lifetime and namespace
- JSON round trips (including non-ASCII text)
- Session TTL handling (SETEX on write, sliding refresh on read)
- Namespace clearing
- Redis failures surfacing as PersistenceFailed
"""

import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from hsk_tutor.db.redis import DEFAULT_SESSION_TTL, KeyValueStore
from hsk_tutor.enums import StorageLifetime
from hsk_tutor.middleware.error_handling import PersistenceFailed


class TestKeyValueStoreKeys:
    def test_key_layout(self) -> None:
        """Keys should be namespaced as prefix:lifetime:namespace:key."""
        store = KeyValueStore(StorageLifetime.DURABLE, "learner:42")

        assert store.qualified_key("flashcards") == "hsk:durable:learner:42:flashcards"

    def test_custom_prefix(self) -> None:
        store = KeyValueStore(StorageLifetime.SESSION, "s1", prefix="test")

        assert store.qualified_key("x") == "test:session:s1:x"

    def test_same_key_differs_across_stores(self) -> None:
        a = KeyValueStore(StorageLifetime.SESSION, "a")
        b = KeyValueStore(StorageLifetime.SESSION, "b")
        shared = KeyValueStore(StorageLifetime.DURABLE, "a")

        keys = {a.qualified_key("k"), b.qualified_key("k"), shared.qualified_key("k")}
        assert len(keys) == 3


class TestKeyValueStoreOperations:
    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, durable_store) -> None:
        """A missing key is a cache miss, not an error."""
        assert await durable_store.get("nothing") is None

    @pytest.mark.asyncio
    async def test_round_trip_keeps_chinese_text(self, durable_store, patched_redis) -> None:
        value = {"hanzi": "你好", "meaning_vi": "xin chào", "n": 3}

        await durable_store.set("word", value)

        raw = patched_redis.data["hsk:durable:learner:learner-1:word"]
        assert "你好" in raw
        assert await durable_store.get("word") == value

    @pytest.mark.asyncio
    async def test_durable_write_has_no_ttl(self, durable_store, patched_redis) -> None:
        await durable_store.set("k", [1, 2])

        patched_redis.set.assert_awaited_once()
        patched_redis.setex.assert_not_called()

    @pytest.mark.asyncio
    async def test_session_write_uses_ttl(self, session_store, patched_redis) -> None:
        await session_store.set("k", {"a": 1})

        patched_redis.setex.assert_awaited_once()
        key, ttl, data = patched_redis.setex.call_args[0]
        assert key == "hsk:session:learner-1:session-1:k"
        assert ttl == DEFAULT_SESSION_TTL
        assert json.loads(data) == {"a": 1}

    @pytest.mark.asyncio
    async def test_session_read_refreshes_ttl(self, session_store, patched_redis) -> None:
        await session_store.set("k", "v")

        await session_store.get("k")

        patched_redis.expire.assert_awaited_once_with(
            "hsk:session:learner-1:session-1:k", DEFAULT_SESSION_TTL
        )

    @pytest.mark.asyncio
    async def test_durable_read_does_not_touch_ttl(self, durable_store, patched_redis) -> None:
        await durable_store.set("k", "v")

        await durable_store.get("k")

        patched_redis.expire.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete(self, durable_store) -> None:
        await durable_store.set("k", 1)

        await durable_store.delete("k")
        await durable_store.delete("k")  # absent key is fine

        assert await durable_store.get("k") is None

    @pytest.mark.asyncio
    async def test_clear_removes_only_own_namespace(self, patched_redis) -> None:
        mine = KeyValueStore(StorageLifetime.SESSION, "learner-1:session-1")
        other = KeyValueStore(StorageLifetime.SESSION, "learner-2:session-1")
        await mine.set("a", 1)
        await mine.set("b", 2)
        await other.set("a", 3)

        removed = await mine.clear()

        assert removed == 2
        assert await mine.get("a") is None
        assert await other.get("a") == 3

    @pytest.mark.asyncio
    async def test_clear_empty_namespace(self, session_store, patched_redis) -> None:
        assert await session_store.clear() == 0
        patched_redis.delete.assert_not_called()


class TestKeyValueStoreFailures:
    @pytest.mark.asyncio
    async def test_redis_error_on_read(self, durable_store, patched_redis) -> None:
        patched_redis.get = AsyncMock(side_effect=RedisConnectionError("down"))

        with pytest.raises(PersistenceFailed):
            await durable_store.get("k")

    @pytest.mark.asyncio
    async def test_redis_error_on_write(self, session_store, patched_redis) -> None:
        patched_redis.setex = AsyncMock(side_effect=RedisConnectionError("down"))

        with pytest.raises(PersistenceFailed):
            await session_store.set("k", 1)

    @pytest.mark.asyncio
    async def test_corrupt_value(self, durable_store, patched_redis) -> None:
        patched_redis.data["hsk:durable:learner:learner-1:k"] = "{not json"

        with pytest.raises(PersistenceFailed):
            await durable_store.get("k")

    @pytest.mark.asyncio
    async def test_unencodable_value(self, durable_store) -> None:
        with pytest.raises(PersistenceFailed):
            await durable_store.set("k", {"when": object()})

    def test_persistence_failed_status(self) -> None:
        error = PersistenceFailed("boom")

        assert error.status_code == 503
        assert error.error_code == "persistence_failed"
