"""
Unit tests for per-learner contexts and the context registry.
"""

import asyncio
from datetime import date
from unittest.mock import AsyncMock

import pytest

from hsk_tutor.enums import ContentKind, ExamState, ReviewOutcome, StorageLifetime
from hsk_tutor.models.content import ContentFingerprint, VocabularyWord
from hsk_tutor.services.learner_context import LearnerContextRegistry

VOCAB_HSK1 = ContentFingerprint(kind=ContentKind.VOCABULARY, level=1)


@pytest.fixture
def registry(provider, patched_redis) -> LearnerContextRegistry:
    return LearnerContextRegistry(provider)


class TestLearnerContextRegistry:
    def test_same_session_same_context(self, registry) -> None:
        assert registry.get("a", "s1") is registry.get("a", "s1")
        assert registry.get("a", "s1") is not registry.get("a", "s2")
        assert registry.active_count == 2

    def test_store_layout(self, registry) -> None:
        context = registry.get("a", "s1")

        assert context.durable_store.qualified_key("k") == "hsk:durable:learner:a:k"
        assert context.session_store.qualified_key("k") == "hsk:session:a:s1:k"
        assert registry.store_for(context, StorageLifetime.SESSION) is context.session_store
        assert registry.store_for(context, StorageLifetime.DURABLE) is registry.shared_store

    def test_cursor_per_store(self, registry) -> None:
        context = registry.get("a", "s1")

        session_cursor = context.cursor_for(VOCAB_HSK1, context.session_store)

        assert context.cursor_for(VOCAB_HSK1, context.session_store) is session_cursor
        assert context.cursor_for(VOCAB_HSK1, registry.shared_store) is not session_cursor

    @pytest.mark.asyncio
    async def test_durable_pool_shared_between_learners(self, registry, provider) -> None:
        for learner in ("a", "b"):
            context = registry.get(learner, "s1")
            store = registry.store_for(context, StorageLifetime.DURABLE)
            await registry.pool_cache.get_pool(VOCAB_HSK1, store)

        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_session_pools_are_per_session(self, registry, provider) -> None:
        for learner in ("a", "b"):
            context = registry.get(learner, "s1")
            await registry.pool_cache.get_pool(VOCAB_HSK1, context.session_store)

        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_end_session(self, registry, patched_redis) -> None:
        context = registry.get("a", "s1")
        await context.session_store.set("dictionary-entry:你", {"x": 1})
        await context.durable_store.set("flashcards", [])
        cursor = context.cursor_for(VOCAB_HSK1, context.session_store)
        await registry.pool_cache.get_next(cursor, context.session_store)
        await context.exam.start(1)
        timer = context.exam._timer

        await registry.end_session("a", "s1")

        assert registry.active_count == 0
        await asyncio.sleep(0.01)
        assert timer.done()
        assert list(patched_redis.data) == ["hsk:durable:learner:a:flashcards"]
        assert registry.get("a", "s1") is not context

    @pytest.mark.asyncio
    async def test_end_unknown_session_still_clears(self, registry, patched_redis) -> None:
        await registry.get("a", "s1").session_store.set("k", 1)
        registry._contexts.clear()

        await registry.end_session("a", "s1")

        assert patched_redis.data == {}

    @pytest.mark.asyncio
    async def test_close_all(self, registry) -> None:
        context = registry.get("a", "s1")
        await context.exam.start(1)

        registry.close_all()

        assert registry.active_count == 0
        assert context.exam.timer_running is False
        assert context.exam.state == ExamState.PLAYING


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestSharedLearnerRecords:
    def test_sessions_share_scheduler_and_history(self, registry) -> None:
        first = registry.get("a", "s1")
        second = registry.get("a", "s2")
        other = registry.get("b", "s1")

        assert first.scheduler is second.scheduler
        assert first.history is second.history
        assert first.exam.history is second.history
        assert first.scheduler is not other.scheduler
        assert first.session_store is not second.session_store

    @pytest.mark.asyncio
    async def test_concurrent_reviews_from_two_sessions(self, registry, patched_redis) -> None:
        """Reviews from two sessions of one learner must both land."""
        today = date(2024, 3, 10)
        first = registry.get("a", "s1")
        second = registry.get("a", "s2")
        ni = await first.scheduler.add_card(
            VocabularyWord(level=1, hanzi="你", pinyin="nǐ", meaning_vi="bạn"), today
        )
        hao = await first.scheduler.add_card(
            VocabularyWord(level=1, hanzi="好", pinyin="hǎo", meaning_vi="tốt"), today
        )

        async def _yielding_get(key):
            await asyncio.sleep(0)
            return patched_redis.data.get(key)

        patched_redis.get = AsyncMock(side_effect=_yielding_get)

        await asyncio.gather(
            first.scheduler.reschedule(ni, ReviewOutcome.EASY, today),
            second.scheduler.reschedule(hao, ReviewOutcome.EASY, today),
        )

        cards = await second.scheduler.list_cards()
        assert {card.key: card.interval for card in cards} == {"你": 4.0, "好": 4.0}


class TestIdleEviction:
    @pytest.fixture
    def clock(self) -> FakeClock:
        return FakeClock()

    @pytest.fixture
    def evicting_registry(self, provider, patched_redis, clock) -> LearnerContextRegistry:
        return LearnerContextRegistry(provider, idle_seconds=600, sweep_interval=0, clock=clock)

    @pytest.mark.asyncio
    async def test_idle_context_evicted_and_timer_cancelled(self, evicting_registry, clock) -> None:
        context = evicting_registry.get("a", "s1")
        await context.exam.start(1)
        timer = context.exam._timer

        clock.now += 601
        evicting_registry.get("b", "s1")
        await asyncio.sleep(0.01)

        assert evicting_registry.active_count == 1
        assert timer.done()
        assert context.exam.timer_running is False
        assert evicting_registry.get("a", "s1") is not context

    def test_recent_access_keeps_context(self, evicting_registry, clock) -> None:
        context = evicting_registry.get("a", "s1")

        clock.now += 400
        evicting_registry.get("a", "s1")
        clock.now += 400
        evicting_registry.get("b", "s1")

        assert evicting_registry.get("a", "s1") is context

    def test_learner_records_dropped_with_last_session(self, evicting_registry, clock) -> None:
        first = evicting_registry.get("a", "s1")
        clock.now += 400
        evicting_registry.get("a", "s2")
        clock.now += 300

        # s1 is evicted, s2 keeps the learner's records alive
        assert evicting_registry.get("a", "s2").scheduler is first.scheduler

        clock.now += 601
        evicting_registry.get("b", "s1")
        assert evicting_registry.get("a", "s3").scheduler is not first.scheduler

    def test_sweep_interval_limits_sweeps(self, provider, patched_redis, clock) -> None:
        registry = LearnerContextRegistry(provider, idle_seconds=10, sweep_interval=60, clock=clock)
        context = registry.get("a", "s1")

        clock.now += 30
        registry.get("b", "s1")
        assert registry.active_count == 2

        clock.now += 31
        assert registry.get("b", "s1") is not None
        assert registry.active_count == 1
        assert registry.get("a", "s1") is not context
