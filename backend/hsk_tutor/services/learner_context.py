"""
Learner Context

Explicit per-learner state: the learner's stores, pool cursors and active
exam. Nothing learner-specific lives in module globals; the HTTP layer keeps
one LearnerContext per (learner, session) in a LearnerContextRegistry that is
closed on application shutdown.

Durable records (review cards, history) belong to the learner, not the
session: every session of a learner shares one LearnerRecords, so collection
rewrites from two sessions are serialized by the same lock.

Contexts idle for longer than CONTEXT_IDLE_SECONDS are closed and dropped on
a later get(); their session keys expire on their own through the Redis TTL.

Store layout:
    durable / learner:{learner_id}   review cards, history
    session / {learner_id}:{session_id}   dictionary entries, session pools
    durable / shared                 pools shared by all learners

Usage:
    registry = LearnerContextRegistry(provider)
    context = registry.get("learner-1", "session-1")

    cursor = context.cursor_for(fingerprint, context.session_store)
    item = await registry.pool_cache.get_next(cursor, context.session_store)

    await registry.end_session("learner-1", "session-1")
"""

import logging
import time
from typing import Callable, Optional

from hsk_tutor.config import settings
from hsk_tutor.db.redis import KeyValueStore
from hsk_tutor.enums import StorageLifetime
from hsk_tutor.models.content import ContentFingerprint
from hsk_tutor.services.content.conversation import ConversationService
from hsk_tutor.services.content.lookup import LookupService
from hsk_tutor.services.content.pool_cache import ContentPoolCache, PoolCursor
from hsk_tutor.services.content.provider import ContentProvider
from hsk_tutor.services.content.writing import WritingPromptService
from hsk_tutor.services.learning.exam import TimedExamStateMachine
from hsk_tutor.services.learning.history import HistoryService
from hsk_tutor.services.learning.scheduler import SpacedRepetitionScheduler

logger = logging.getLogger(__name__)

SHARED_NAMESPACE = "shared"


class LearnerRecords:
    """Durable state of one learner, shared by all of the learner's sessions."""

    def __init__(self, learner_id: str):
        self.learner_id = learner_id
        self.durable_store = KeyValueStore(StorageLifetime.DURABLE, f"learner:{learner_id}")
        self.history = HistoryService(self.durable_store)
        self.scheduler = SpacedRepetitionScheduler(self.durable_store)


class LearnerContext:
    """Everything one learner session owns."""

    def __init__(
        self,
        learner_id: str,
        session_id: str,
        provider: ContentProvider,
        pool_cache: ContentPoolCache,
        records: Optional[LearnerRecords] = None,
    ):
        self.learner_id = learner_id
        self.session_id = session_id
        self.last_access = 0.0

        self.records = records or LearnerRecords(learner_id)
        self.durable_store = self.records.durable_store
        self.history = self.records.history
        self.scheduler = self.records.scheduler
        self.session_store = KeyValueStore(StorageLifetime.SESSION, f"{learner_id}:{session_id}")

        self.exam = TimedExamStateMachine(provider, history=self.history)
        self.lookup = LookupService(provider, history=self.history)
        self.conversations = ConversationService(provider, pool_cache, history=self.history)

        self._cursors: dict[str, PoolCursor] = {}

    def cursor_for(self, fingerprint: ContentFingerprint, store: KeyValueStore) -> PoolCursor:
        """Return this learner's cursor for a fingerprint in a store, creating it if needed."""
        key = store.qualified_key(fingerprint.flight_key)
        cursor = self._cursors.get(key)
        if cursor is None:
            cursor = PoolCursor(fingerprint)
            self._cursors[key] = cursor
        return cursor

    def close(self) -> None:
        """Stop the exam countdown; the context is being discarded."""
        self.exam.close()

    async def end_session(self) -> None:
        """Discard session state: exam timer, cursors and session-lifetime keys."""
        self.close()
        self._cursors.clear()
        removed = await self.session_store.clear()
        logger.info(f"Ended session {self.session_id} for {self.learner_id} ({removed} keys)")


class LearnerContextRegistry:
    """Owns the learner contexts of a running application."""

    def __init__(
        self,
        provider: ContentProvider,
        pool_cache: Optional[ContentPoolCache] = None,
        shared_store: Optional[KeyValueStore] = None,
        idle_seconds: Optional[float] = None,
        sweep_interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            provider: Source of generated content
            pool_cache: Shared pool cache (default: a new one over provider)
            shared_store: Store for pools shared by all learners
            idle_seconds: Idle time after which a context is evicted
                (default: settings.CONTEXT_IDLE_SECONDS)
            sweep_interval: Minimum time between idle sweeps
                (default: settings.CONTEXT_SWEEP_INTERVAL_SECONDS)
            clock: Monotonic time source
        """
        self.provider = provider
        self.pool_cache = pool_cache or ContentPoolCache(provider)
        self.writing = WritingPromptService(provider)
        self.shared_store = shared_store or KeyValueStore(StorageLifetime.DURABLE, SHARED_NAMESPACE)
        self.idle_seconds = idle_seconds if idle_seconds is not None else settings.CONTEXT_IDLE_SECONDS
        self.sweep_interval = (
            sweep_interval
            if sweep_interval is not None
            else settings.CONTEXT_SWEEP_INTERVAL_SECONDS
        )
        self._clock = clock
        self._last_sweep = clock()
        self._contexts: dict[tuple[str, str], LearnerContext] = {}
        self._learners: dict[str, LearnerRecords] = {}

    def get(self, learner_id: str, session_id: str) -> LearnerContext:
        now = self._clock()
        self._evict_idle(now)

        key = (learner_id, session_id)
        context = self._contexts.get(key)
        if context is None:
            context = LearnerContext(
                learner_id,
                session_id,
                self.provider,
                self.pool_cache,
                records=self._records_for(learner_id),
            )
            self._contexts[key] = context
            logger.debug(f"Created context for {learner_id}/{session_id}")
        context.last_access = now
        return context

    def store_for(self, context: LearnerContext, lifetime: StorageLifetime) -> KeyValueStore:
        """Pool store for a lifetime: the learner's session store or the shared durable store."""
        if lifetime == StorageLifetime.DURABLE:
            return self.shared_store
        return context.session_store

    async def end_session(self, learner_id: str, session_id: str) -> None:
        """
        End a learner session.

        Session keys are cleared even if the context is no longer in memory
        (for example after a restart).
        """
        context = self._contexts.pop((learner_id, session_id), None)
        if context is None:
            context = LearnerContext(
                learner_id,
                session_id,
                self.provider,
                self.pool_cache,
                records=self._learners.get(learner_id),
            )
        self._prune_learners()
        await context.end_session()

    def close_all(self) -> None:
        """Stop every exam countdown (application shutdown)."""
        for context in self._contexts.values():
            context.close()
        logger.info(f"Closed {len(self._contexts)} learner context(s)")
        self._contexts.clear()
        self._learners.clear()

    @property
    def active_count(self) -> int:
        return len(self._contexts)

    # ===========================================
    # Internals
    # ===========================================

    def _records_for(self, learner_id: str) -> LearnerRecords:
        records = self._learners.get(learner_id)
        if records is None:
            records = LearnerRecords(learner_id)
            self._learners[learner_id] = records
        return records

    def _evict_idle(self, now: float) -> None:
        if now - self._last_sweep < self.sweep_interval:
            return
        self._last_sweep = now

        idle = [
            key
            for key, context in self._contexts.items()
            if now - context.last_access >= self.idle_seconds
        ]
        for key in idle:
            self._contexts.pop(key).close()
        if idle:
            self._prune_learners()
            logger.info(f"Evicted {len(idle)} idle learner context(s)")

    def _prune_learners(self) -> None:
        active = {learner_id for learner_id, _ in self._contexts}
        for learner_id in list(self._learners):
            if learner_id not in active:
                del self._learners[learner_id]
