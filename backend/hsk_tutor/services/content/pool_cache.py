"""
Content Pool Cache

Fetch-once / consume-many delivery of generated content. A pool is a batch
of validated items for one fingerprint (kind + level). It is fetched from
the provider once, persisted, and then served locally:

- get_page() slices the pool for paginated views
- get_next() walks a shuffled copy of the pool through a caller-owned cursor;
  when the cursor runs off the end the pool is dropped and a fresh one fetched
- invalidate() drops the persisted pool so the next read re-fetches

===============================================================================
Cache entry lifecycle
===============================================================================

    absent ──read──> loading ──fetch ok──> ready (persisted)
                        │
                        └──fetch failed──> absent (error surfaced to caller)

Concurrent reads of the same key share a single in-flight load task, so a
burst of requests for a cold fingerprint costs exactly one provider call.
Refreshes run under the same key: reads arriving mid-refresh join it.
Pools with a free-text topic are never read from or written to the store.

The cache never retries. Storage failures are logged and the cache degrades
to "always fetch"; provider failures surface as ContentFetchFailed and leave
both the store and the caller's cursor untouched.

Usage:
    cache = ContentPoolCache(provider)
    fingerprint = ContentFingerprint(kind=ContentKind.VOCABULARY, level=1)

    words = (await cache.get_page(fingerprint, page=2, page_size=10, store=store)).items

    cursor = PoolCursor(fingerprint)
    item = await cache.get_next(cursor, store)  # None if the pool is empty
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Optional

from pydantic import ValidationError

from hsk_tutor.config import Settings, settings as default_settings
from hsk_tutor.db.redis import KeyValueStore
from hsk_tutor.middleware.error_handling import ContentFetchFailed, PersistenceFailed
from hsk_tutor.models.content import ContentFingerprint, ContentItem, Pool
from hsk_tutor.services.content.provider import ContentProvider
from hsk_tutor.services.content.validation import validate_items

logger = logging.getLogger(__name__)


def slice_page(items: list, page: int, page_size: int) -> list:
    """Return items[(page-1)*page_size : page*page_size]; empty when out of range."""
    if page < 1 or page_size < 1:
        return []
    start = (page - 1) * page_size
    return items[start : start + page_size]


@dataclass
class PageSlice:
    """One page of a pool plus the size of the pool it was cut from."""

    items: list[ContentItem]
    total: int
    page: int
    page_size: int

    @property
    def has_more(self) -> bool:
        return self.page * self.page_size < self.total


@dataclass
class PoolCursor:
    """
    A learner's read position inside a pool.

    The cursor holds its own shuffled snapshot of the pool, taken once per
    load. index only moves forward within one snapshot.
    """

    fingerprint: ContentFingerprint
    index: int = 0
    items: list[ContentItem] = field(default_factory=list)
    loaded: bool = False

    def load(self, items: list[ContentItem], rng: random.Random) -> None:
        shuffled = list(items)
        rng.shuffle(shuffled)
        self.items = shuffled
        self.index = 0
        self.loaded = True

    @property
    def exhausted(self) -> bool:
        return self.loaded and self.index >= len(self.items)


@dataclass
class _Flight:
    """An in-flight load; refresh loads drop the stored pool before fetching."""

    task: asyncio.Task
    refresh: bool


class ContentPoolCache:
    """Pooled, persisted content cache with a per-key single-flight guard."""

    def __init__(
        self,
        provider: ContentProvider,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            provider: Source of generated content
            settings: Pool sizes (defaults to application settings)
            rng: Random source for cursor shuffles
        """
        self.provider = provider
        self.settings = settings or default_settings
        self._rng = rng or random.Random()
        self._inflight: dict[str, _Flight] = {}

    # ===========================================
    # Public API
    # ===========================================

    async def get_pool(
        self, fingerprint: ContentFingerprint, store: Optional[KeyValueStore]
    ) -> Pool:
        """
        Return the pool for a fingerprint, loading it if needed.

        Args:
            fingerprint: Content request to serve
            store: Store chosen by the caller (session or durable); None
                disables persistence

        Raises:
            ContentFetchFailed: The pool was absent and the provider failed.
        """
        return await self._load(fingerprint, store)

    async def get_page(
        self,
        fingerprint: ContentFingerprint,
        page: int,
        page_size: int,
        store: Optional[KeyValueStore],
    ) -> PageSlice:
        """
        Return one page of the pool.

        Pages are local slices; the tail page may be short and pages past the
        end are empty. Only the first read of a cold pool reaches the provider.
        """
        pool = await self._load(fingerprint, store)
        items = pool.items
        return PageSlice(
            items=slice_page(items, page, page_size),
            total=len(items),
            page=page,
            page_size=page_size,
        )

    async def get_next(
        self, cursor: PoolCursor, store: Optional[KeyValueStore]
    ) -> Optional[ContentItem]:
        """
        Return the next item for a cursor.

        The first call loads and shuffles the pool. Once every item of the
        snapshot has been served, the persisted pool is dropped, a fresh one is
        fetched and persisted, and the cursor restarts at index 0.

        Returns:
            The next item, or None if the pool is empty.

        Raises:
            ContentFetchFailed: The provider failed; the cursor is unchanged.
        """
        if not cursor.loaded:
            pool = await self._load(cursor.fingerprint, store)
            cursor.load(pool.items, self._rng)
        elif cursor.exhausted:
            logger.info(f"Pool exhausted for {cursor.fingerprint.flight_key}, refreshing")
            pool = await self._load(cursor.fingerprint, store, refresh=True)
            cursor.load(pool.items, self._rng)

        if not cursor.items:
            # Next call starts over with a fresh load
            cursor.loaded = False
            return None

        item = cursor.items[cursor.index]
        cursor.index += 1
        return item

    async def invalidate(
        self, fingerprint: ContentFingerprint, store: Optional[KeyValueStore]
    ) -> None:
        """
        Drop the persisted pool so the next read re-fetches.

        Raises:
            PersistenceFailed: The delete failed; the old pool may still be served.
        """
        if not fingerprint.cacheable or store is None:
            return
        await store.delete(fingerprint.storage_key)
        logger.info(f"Invalidated pool {store.qualified_key(fingerprint.storage_key)}")

    # ===========================================
    # Loading
    # ===========================================

    def _flight_key(self, fingerprint: ContentFingerprint, store: Optional[KeyValueStore]) -> str:
        key = fingerprint.flight_key
        if fingerprint.cacheable and store is not None:
            key = store.qualified_key(key)
        return key

    async def _load(
        self,
        fingerprint: ContentFingerprint,
        store: Optional[KeyValueStore],
        refresh: bool = False,
    ) -> Pool:
        """
        Load a pool under the key's single-flight guard.

        One load runs per key at a time. Reads join whatever is in flight,
        including a refresh. A refresh joins a running refresh, but waits for
        a plain load to land before dropping the pool that load stores.
        """
        key = self._flight_key(fingerprint, store)
        while True:
            flight = self._inflight.get(key)
            if flight is None or flight.task.done():
                break
            if flight.refresh or not refresh:
                logger.debug(f"Joining in-flight load for {key}")
                # A cancelled waiter must not cancel the load other waiters share
                return await asyncio.shield(flight.task)
            # The load's own waiters receive its outcome; _forget retrieves errors
            await asyncio.wait({flight.task})

        task = asyncio.create_task(self._read_or_fetch(fingerprint, store, refresh))
        self._inflight[key] = _Flight(task=task, refresh=refresh)
        task.add_done_callback(lambda done, key=key: self._forget(key, done))
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task) -> None:
        flight = self._inflight.get(key)
        if flight is not None and flight.task is task:
            del self._inflight[key]
        if not task.cancelled():
            # Mark the exception retrieved even if every waiter went away
            task.exception()

    async def _read_or_fetch(
        self,
        fingerprint: ContentFingerprint,
        store: Optional[KeyValueStore],
        refresh: bool,
    ) -> Pool:
        persist = fingerprint.cacheable and store is not None

        if persist and refresh:
            await self._safe_delete(fingerprint, store)
        elif persist:
            stored = await self._safe_read(fingerprint, store)
            if stored is not None and stored.payloads:
                logger.debug(f"Serving pool from store: {store.qualified_key(fingerprint.storage_key)}")
                return stored

        pool = await self._fetch(fingerprint)

        if persist:
            await self._safe_write(pool, store)

        return pool

    async def _fetch(self, fingerprint: ContentFingerprint) -> Pool:
        count = self.settings.get_pool_size(fingerprint.kind)
        logger.info(
            f"Fetching new {fingerprint.kind.value} pool (size: {count}) "
            f"for HSK level {fingerprint.level}"
            + (f", topic {fingerprint.topic!r}" if fingerprint.topic else "")
        )

        try:
            raw_items = await self.provider.request(
                fingerprint.kind, fingerprint.level, count, topic=fingerprint.topic
            )
        except ContentFetchFailed:
            raise
        except Exception as e:
            raise ContentFetchFailed(f"Failed to fetch {fingerprint.kind.value} pool") from e

        payloads = validate_items(fingerprint.kind, raw_items, level=fingerprint.level)
        if not payloads:
            logger.warning(f"Provider returned no usable {fingerprint.kind.value} items")

        return Pool(fingerprint=fingerprint, payloads=payloads[:count])

    # ===========================================
    # Storage (failures degrade to "always fetch")
    # ===========================================

    async def _safe_read(
        self, fingerprint: ContentFingerprint, store: KeyValueStore
    ) -> Optional[Pool]:
        try:
            data = await store.get(fingerprint.storage_key)
        except PersistenceFailed as e:
            logger.warning(f"Could not read pool from store, fetching instead: {e}")
            return None

        if data is None:
            return None

        try:
            pool = Pool.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable stored pool {fingerprint.storage_key}: {e}")
            return None

        if pool.fingerprint != fingerprint:
            logger.warning(f"Stored pool {fingerprint.storage_key} belongs to another request")
            return None

        return pool

    async def _safe_write(self, pool: Pool, store: KeyValueStore) -> None:
        try:
            await store.set(pool.fingerprint.storage_key, pool.model_dump(mode="json"))
        except PersistenceFailed as e:
            logger.warning(f"Could not persist pool, it will be fetched again: {e}")

    async def _safe_delete(self, fingerprint: ContentFingerprint, store: KeyValueStore) -> None:
        try:
            await store.delete(fingerprint.storage_key)
        except PersistenceFailed as e:
            logger.warning(f"Could not drop exhausted pool {fingerprint.storage_key}: {e}")
