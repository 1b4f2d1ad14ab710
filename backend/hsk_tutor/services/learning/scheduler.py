"""
Spaced Repetition Scheduler

Decides when each vocabulary card in a learner's review set is due.

Scheduling uses a fixed multiplier table driven only by the outcome:

    hard → interval = 1 day
    good → interval × 2
    easy → interval × 4

    new review date = today + round(new interval) days  (round half up)

The full card collection lives under one durable key. Every change reads the
whole collection, replaces one card by identity (the word's hanzi) and writes
the whole collection back; an asyncio.Lock serializes these rewrites so two
concurrent reviews cannot lose each other's update.

Usage:
    from hsk_tutor.services.learning.scheduler import SpacedRepetitionScheduler

    scheduler = SpacedRepetitionScheduler(durable_store)

    card = await scheduler.add_card(word)
    due = await scheduler.due_cards(date.today())
    updated = await scheduler.reschedule(due[0], ReviewOutcome.GOOD)
"""

import asyncio
import logging
import math
from datetime import date, datetime, timedelta
from typing import Optional, Union

from pydantic import ValidationError

from hsk_tutor.config import settings
from hsk_tutor.db.redis import KeyValueStore
from hsk_tutor.enums import ReviewOutcome
from hsk_tutor.middleware.error_handling import PersistenceFailed
from hsk_tutor.models.content import VocabularyWord
from hsk_tutor.models.learning import ReviewCard

logger = logging.getLogger(__name__)

CARDS_KEY = "flashcards"

OUTCOME_MULTIPLIERS: dict[ReviewOutcome, float] = {
    ReviewOutcome.GOOD: 2.0,
    ReviewOutcome.EASY: 4.0,
}


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves rounding up."""
    return math.floor(value + 0.5)


def next_interval(interval: float, outcome: ReviewOutcome) -> float:
    """New interval in days for a review outcome."""
    if outcome == ReviewOutcome.HARD:
        return 1.0
    return interval * OUTCOME_MULTIPLIERS[outcome]


def apply_outcome(card: ReviewCard, outcome: ReviewOutcome, today: date) -> ReviewCard:
    """Return a rescheduled copy of a card. The input card is not modified."""
    interval = next_interval(card.interval, outcome)
    return card.model_copy(
        update={
            "interval": interval,
            "review_date": today + timedelta(days=round_half_up(interval)),
        }
    )


def _as_date(value: Union[date, datetime]) -> date:
    # datetime is a subclass of date; compare calendar days only
    if isinstance(value, datetime):
        return value.date()
    return value


class SpacedRepetitionScheduler:
    """
    Review scheduling over a learner's card collection.

    Storage errors are not retried and propagate as PersistenceFailed.
    """

    def __init__(self, store: KeyValueStore, key: str = CARDS_KEY):
        """
        Args:
            store: Durable store scoped to one learner
            key: Store key of the card collection
        """
        self.store = store
        self.key = key
        self._lock = asyncio.Lock()

    async def list_cards(self) -> list[ReviewCard]:
        """Return every card in storage order."""
        data = await self.store.get(self.key)
        if data is None:
            return []
        if not isinstance(data, list):
            raise PersistenceFailed(f"Card collection at {self.key} is not a list")
        try:
            return [ReviewCard.model_validate(entry) for entry in data]
        except ValidationError as e:
            raise PersistenceFailed(f"Card collection at {self.key} is corrupt: {e}") from e

    async def due_cards(self, as_of: Union[date, datetime]) -> list[ReviewCard]:
        """
        Cards whose review date is on or before as_of.

        Only the calendar date is compared. Cards keep their storage order.
        """
        as_of = _as_date(as_of)
        return [card for card in await self.list_cards() if card.review_date <= as_of]

    async def find_card(self, hanzi: str) -> Optional[ReviewCard]:
        for card in await self.list_cards():
            if card.key == hanzi:
                return card
        return None

    async def reschedule(
        self,
        card: ReviewCard,
        outcome: ReviewOutcome,
        today: Optional[date] = None,
    ) -> ReviewCard:
        """
        Reschedule a card after a review.

        The new interval depends only on the outcome and the card's current
        interval. The stored card with the same hanzi is replaced; if there is
        none, nothing is written.

        Returns:
            The rescheduled card.
        """
        today = _as_date(today or date.today())
        updated = apply_outcome(card, outcome, today)

        async with self._lock:
            cards = await self.list_cards()
            for i, existing in enumerate(cards):
                if existing.key == card.key:
                    cards[i] = updated
                    break
            else:
                logger.debug(f"Card {card.key!r} not in review set, nothing to update")
                return updated

            await self._write(cards)

        logger.info(
            f"Rescheduled {card.key!r} ({outcome.value}): interval "
            f"{card.interval:g} → {updated.interval:g}, due {updated.review_date}"
        )
        return updated

    async def add_card(self, word: VocabularyWord, today: Optional[date] = None) -> ReviewCard:
        """
        Add a word to the review set, due immediately.

        Adding a word that is already present returns the existing card.
        """
        today = _as_date(today or date.today())

        async with self._lock:
            cards = await self.list_cards()
            for existing in cards:
                if existing.key == word.hanzi:
                    return existing

            card = ReviewCard(
                word=word,
                review_date=today,
                interval=settings.REVIEW_NEW_CARD_INTERVAL_DAYS,
            )
            cards.append(card)
            await self._write(cards)

        logger.info(f"Added {word.hanzi!r} to review set ({len(cards)} cards)")
        return card

    async def remove_card(self, hanzi: str) -> bool:
        """
        Remove a card by hanzi.

        Returns:
            True if a card was removed.
        """
        async with self._lock:
            cards = await self.list_cards()
            remaining = [card for card in cards if card.key != hanzi]
            if len(remaining) == len(cards):
                return False
            await self._write(remaining)
        return True

    async def _write(self, cards: list[ReviewCard]) -> None:
        await self.store.set(self.key, [card.model_dump(mode="json") for card in cards])
