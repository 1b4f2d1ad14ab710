"""
Unit tests for the spaced repetition scheduler.

Scheduling table: hard → 1 day, good → ×2, easy → ×4; the review date is
today plus the rounded interval.
"""

import asyncio
from datetime import date, datetime, timedelta

import pytest

from hsk_tutor.enums import ReviewOutcome
from hsk_tutor.middleware.error_handling import PersistenceFailed
from hsk_tutor.models.content import VocabularyWord
from hsk_tutor.models.learning import ReviewCard
from hsk_tutor.services.learning.scheduler import (
    CARDS_KEY,
    SpacedRepetitionScheduler,
    apply_outcome,
    next_interval,
    round_half_up,
)

TODAY = date(2024, 3, 10)


def word(hanzi: str) -> VocabularyWord:
    return VocabularyWord(level=1, hanzi=hanzi, pinyin="x", meaning_vi="y")


def card(hanzi: str, interval: float = 1.0, review_date: date = TODAY) -> ReviewCard:
    return ReviewCard(word=word(hanzi), interval=interval, review_date=review_date)


@pytest.fixture
def scheduler(durable_store) -> SpacedRepetitionScheduler:
    return SpacedRepetitionScheduler(durable_store)


class TestSchedulingRules:
    @pytest.mark.parametrize(
        "interval, outcome, expected",
        [
            (1.0, ReviewOutcome.HARD, 1.0),
            (16.0, ReviewOutcome.HARD, 1.0),
            (1.0, ReviewOutcome.GOOD, 2.0),
            (3.0, ReviewOutcome.GOOD, 6.0),
            (1.0, ReviewOutcome.EASY, 4.0),
            (2.5, ReviewOutcome.EASY, 10.0),
        ],
    )
    def test_next_interval(self, interval, outcome, expected) -> None:
        assert next_interval(interval, outcome) == expected

    @pytest.mark.parametrize("value, expected", [(0.5, 1), (1.49, 1), (1.5, 2), (2.5, 3), (3.0, 3)])
    def test_round_half_up(self, value, expected) -> None:
        assert round_half_up(value) == expected

    def test_apply_outcome_sets_review_date(self) -> None:
        updated = apply_outcome(card("好", interval=3.0), ReviewOutcome.EASY, TODAY)

        assert updated.interval == 12.0
        assert updated.review_date == TODAY + timedelta(days=12)

    def test_fractional_interval_rounds_half_up(self) -> None:
        updated = apply_outcome(card("好", interval=1.25), ReviewOutcome.GOOD, TODAY)

        assert updated.interval == 2.5
        assert updated.review_date == TODAY + timedelta(days=3)

    def test_apply_outcome_does_not_mutate(self) -> None:
        original = card("好", interval=2.0)

        apply_outcome(original, ReviewOutcome.GOOD, TODAY)

        assert original.interval == 2.0
        assert original.review_date == TODAY

    def test_repeated_good_doubles(self) -> None:
        current = card("好")
        intervals = []
        for _ in range(4):
            current = apply_outcome(current, ReviewOutcome.GOOD, TODAY)
            intervals.append(current.interval)

        assert intervals == [2.0, 4.0, 8.0, 16.0]


class TestDueCards:
    @pytest.mark.asyncio
    async def test_no_cards(self, scheduler) -> None:
        assert await scheduler.due_cards(TODAY) == []

    @pytest.mark.asyncio
    async def test_due_on_or_before_in_storage_order(self, scheduler, durable_store) -> None:
        cards = [
            card("一", review_date=TODAY),
            card("二", review_date=TODAY + timedelta(days=1)),
            card("三", review_date=TODAY - timedelta(days=5)),
        ]
        await durable_store.set(CARDS_KEY, [c.model_dump(mode="json") for c in cards])

        due = await scheduler.due_cards(TODAY)

        assert [c.key for c in due] == ["一", "三"]

    @pytest.mark.asyncio
    async def test_datetime_compared_by_date(self, scheduler) -> None:
        await scheduler.add_card(word("一"), today=TODAY)

        due = await scheduler.due_cards(datetime(2024, 3, 10, 0, 0, 1))

        assert len(due) == 1

    @pytest.mark.asyncio
    async def test_corrupt_collection(self, scheduler, durable_store) -> None:
        await durable_store.set(CARDS_KEY, {"not": "a list"})

        with pytest.raises(PersistenceFailed):
            await scheduler.due_cards(TODAY)

    @pytest.mark.asyncio
    async def test_invalid_card_entry(self, scheduler, durable_store) -> None:
        await durable_store.set(CARDS_KEY, [{"word": {"hanzi": "一"}}])

        with pytest.raises(PersistenceFailed):
            await scheduler.list_cards()


class TestReschedule:
    @pytest.mark.asyncio
    async def test_reschedule_replaces_in_place(self, scheduler) -> None:
        for hanzi in ("一", "二", "三"):
            await scheduler.add_card(word(hanzi), today=TODAY)
        target = await scheduler.find_card("二")

        updated = await scheduler.reschedule(target, ReviewOutcome.EASY, today=TODAY)

        cards = await scheduler.list_cards()
        assert [c.key for c in cards] == ["一", "二", "三"]
        assert cards[1].model_dump() == updated.model_dump()
        assert cards[1].interval == 4.0
        assert cards[1].review_date == TODAY + timedelta(days=4)

    @pytest.mark.asyncio
    async def test_rescheduled_card_no_longer_due(self, scheduler) -> None:
        new = await scheduler.add_card(word("一"), today=TODAY)

        await scheduler.reschedule(new, ReviewOutcome.GOOD, today=TODAY)

        assert await scheduler.due_cards(TODAY) == []
        assert len(await scheduler.due_cards(TODAY + timedelta(days=2))) == 1

    @pytest.mark.asyncio
    async def test_missing_card_is_noop(self, scheduler, durable_store, patched_redis) -> None:
        await scheduler.add_card(word("一"), today=TODAY)
        patched_redis.set.reset_mock()

        updated = await scheduler.reschedule(card("不"), ReviewOutcome.GOOD, today=TODAY)

        assert updated.interval == 2.0
        patched_redis.set.assert_not_called()
        assert [c.key for c in await scheduler.list_cards()] == ["一"]

    @pytest.mark.asyncio
    async def test_concurrent_reviews_do_not_lose_updates(self, scheduler) -> None:
        for hanzi in ("一", "二"):
            await scheduler.add_card(word(hanzi), today=TODAY)
        first, second = await scheduler.list_cards()

        await asyncio.gather(
            scheduler.reschedule(first, ReviewOutcome.GOOD, today=TODAY),
            scheduler.reschedule(second, ReviewOutcome.EASY, today=TODAY),
        )

        intervals = {c.key: c.interval for c in await scheduler.list_cards()}
        assert intervals == {"一": 2.0, "二": 4.0}


class TestCardCollection:
    @pytest.mark.asyncio
    async def test_new_card_due_today(self, scheduler) -> None:
        new = await scheduler.add_card(word("一"), today=TODAY)

        assert new.review_date == TODAY
        assert new.interval == 1.0

    @pytest.mark.asyncio
    async def test_add_existing_returns_existing(self, scheduler) -> None:
        first = await scheduler.add_card(word("一"), today=TODAY)
        await scheduler.reschedule(first, ReviewOutcome.EASY, today=TODAY)

        again = await scheduler.add_card(word("一"), today=TODAY)

        assert again.interval == 4.0
        assert len(await scheduler.list_cards()) == 1

    @pytest.mark.asyncio
    async def test_remove_card(self, scheduler) -> None:
        await scheduler.add_card(word("一"), today=TODAY)

        assert await scheduler.remove_card("一") is True
        assert await scheduler.remove_card("一") is False
        assert await scheduler.list_cards() == []
