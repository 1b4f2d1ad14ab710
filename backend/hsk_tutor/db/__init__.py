"""Storage package: Redis connection pool and key-value store."""

from hsk_tutor.db.redis import KeyValueStore, close_redis_pool, get_redis

__all__ = ["KeyValueStore", "close_redis_pool", "get_redis"]
