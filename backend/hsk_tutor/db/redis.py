"""
Redis Connection and Key-Value Store

Provides Redis connection pooling and the namespaced JSON key-value store
used for content pools, review cards, lookups and history.

Usage:
    from hsk_tutor.db.redis import KeyValueStore
    from hsk_tutor.enums import StorageLifetime

    # Durable store shared by all learners
    shared = KeyValueStore(StorageLifetime.DURABLE, namespace="shared")
    await shared.set("pool:vocabulary:hsk1", {...})

    # Session store for one learner session (sliding TTL)
    session = KeyValueStore(StorageLifetime.SESSION, namespace="session-id")
    entry = await session.get("dictionary-entry:你好")
    await session.clear()
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from hsk_tutor.config import settings, yaml_config
from hsk_tutor.enums import StorageLifetime
from hsk_tutor.middleware.error_handling import PersistenceFailed

logger = logging.getLogger(__name__)

# Get Redis configuration from yaml config
redis_config: dict[str, Any] = yaml_config.get("redis", {})
DEFAULT_SESSION_TTL: int = redis_config.get("session_ttl", 3600)
MAX_CONNECTIONS: int = redis_config.get("max_connections", 10)


# Connection pool (lazily initialized)
_redis_pool: Optional[redis.ConnectionPool] = None


async def get_redis_pool() -> redis.ConnectionPool:
    """Get or create the Redis connection pool."""
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = redis.ConnectionPool.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            max_connections=MAX_CONNECTIONS,
        )
    return _redis_pool


async def get_redis() -> redis.Redis:
    """
    Get a Redis connection from the pool.

    Usage:
        redis = await get_redis()
        await redis.set("key", "value")
    """
    pool = await get_redis_pool()
    return redis.Redis(connection_pool=pool)


async def close_redis_pool() -> None:
    """Close the Redis connection pool."""
    global _redis_pool
    if _redis_pool is not None:
        await _redis_pool.disconnect()
        _redis_pool = None


class KeyValueStore:
    """
    Namespaced JSON key-value store over Redis.

    Two lifetimes are supported:
        - DURABLE: plain SET, keys survive indefinitely.
        - SESSION: SETEX with a sliding TTL refreshed on every read, and
          clear() removes every key of the namespace when the session ends.

    Keys are stored as "{prefix}:{lifetime}:{namespace}:{key}". Absence of a
    key is a cache miss (None), never an error. Any Redis failure or an
    undecodable value raises PersistenceFailed; callers decide whether that
    is fatal.
    """

    def __init__(
        self,
        lifetime: StorageLifetime,
        namespace: str,
        prefix: Optional[str] = None,
        ttl: Optional[int] = None,
    ) -> None:
        """
        Initialize the store.

        Args:
            lifetime: SESSION or DURABLE.
            namespace: Scope within the lifetime (learner id, session id, "shared").
            prefix: Redis key prefix (default: settings.KEY_PREFIX).
            ttl: Sliding TTL for SESSION keys (default from config/default.yaml).
        """
        self.lifetime = lifetime
        self.namespace = namespace
        self.prefix = prefix or settings.KEY_PREFIX
        self.ttl = ttl or DEFAULT_SESSION_TTL

    def _make_key(self, key: str) -> str:
        """Generate a namespaced Redis key."""
        return f"{self.prefix}:{self.lifetime.value}:{self.namespace}:{key}"

    def qualified_key(self, key: str) -> str:
        """Fully qualified key, unique across stores."""
        return self._make_key(key)

    async def get(self, key: str) -> Optional[Any]:
        """
        Get a value, refreshing its TTL for session keys.

        Returns:
            The decoded value, or None if the key is absent.

        Raises:
            PersistenceFailed: Redis error or a value that is not valid JSON.
        """
        full_key = self._make_key(key)
        try:
            r = await get_redis()
            data = await r.get(full_key)
            if data is None:
                return None
            if self.lifetime == StorageLifetime.SESSION:
                # Refresh TTL on access (sliding expiration)
                await r.expire(full_key, self.ttl)
            return json.loads(data)
        except RedisError as e:
            raise PersistenceFailed(f"Failed to read {full_key}: {e}") from e
        except json.JSONDecodeError as e:
            raise PersistenceFailed(f"Corrupt value at {full_key}: {e}") from e

    async def set(self, key: str, value: Any) -> None:
        """
        Write a value as JSON, replacing any previous value.

        Raises:
            PersistenceFailed: Redis error or a value that cannot be encoded.
        """
        full_key = self._make_key(key)
        try:
            data = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PersistenceFailed(f"Cannot encode value for {full_key}: {e}") from e

        try:
            r = await get_redis()
            if self.lifetime == StorageLifetime.SESSION:
                await r.setex(full_key, self.ttl, data)
            else:
                await r.set(full_key, data)
        except RedisError as e:
            raise PersistenceFailed(f"Failed to write {full_key}: {e}") from e

    async def delete(self, key: str) -> None:
        """Delete a key. Deleting an absent key is not an error."""
        full_key = self._make_key(key)
        try:
            r = await get_redis()
            await r.delete(full_key)
        except RedisError as e:
            raise PersistenceFailed(f"Failed to delete {full_key}: {e}") from e

    async def clear(self) -> int:
        """
        Delete every key in this store's namespace.

        Returns:
            Number of keys deleted.
        """
        pattern = self._make_key("*")
        try:
            r = await get_redis()
            keys = [key async for key in r.scan_iter(match=pattern)]
            if keys:
                await r.delete(*keys)
            return len(keys)
        except RedisError as e:
            raise PersistenceFailed(f"Failed to clear {pattern}: {e}") from e

    def __repr__(self) -> str:
        return f"KeyValueStore({self.lifetime.value}, namespace={self.namespace!r})"
