"""
Review API Router

Endpoints for the learner's spaced repetition review set.

Endpoints:
- GET /api/review/due - Cards due on or before a date (default: today)
- GET /api/review/cards - All cards in storage order
- POST /api/review/cards - Add a word to the review set
- POST /api/review/rate - Report a review outcome (hard, good, easy)
- DELETE /api/review/cards/{hanzi} - Remove a card
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from hsk_tutor.dependencies import get_learner_context
from hsk_tutor.middleware.error_handling import NotFoundError
from hsk_tutor.models.base import SuccessResponse
from hsk_tutor.models.learning import (
    DueCardsResponse,
    ReviewCard,
    ReviewCardCreate,
    ReviewRateRequest,
)
from hsk_tutor.services.learner_context import LearnerContext

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/review", tags=["review"])


@router.get("/due", response_model=DueCardsResponse)
async def get_due_cards(
    as_of: Optional[date] = Query(None, description="Defaults to today"),
    context: LearnerContext = Depends(get_learner_context),
) -> DueCardsResponse:
    """Get cards due for review, in the order they were added."""
    as_of = as_of or date.today()
    cards = await context.scheduler.due_cards(as_of)
    return DueCardsResponse(as_of=as_of, total=len(cards), cards=cards)


@router.get("/cards", response_model=list[ReviewCard])
async def list_cards(
    context: LearnerContext = Depends(get_learner_context),
) -> list[ReviewCard]:
    return await context.scheduler.list_cards()


@router.post("/cards", response_model=ReviewCard)
async def add_card(
    body: ReviewCardCreate,
    context: LearnerContext = Depends(get_learner_context),
) -> ReviewCard:
    """
    Add a word to the review set.

    New cards are due immediately. Adding a word twice returns the existing card.
    """
    return await context.scheduler.add_card(body.word)


@router.post("/rate", response_model=ReviewCard)
async def rate_card(
    body: ReviewRateRequest,
    context: LearnerContext = Depends(get_learner_context),
) -> ReviewCard:
    """Reschedule a card from the learner's outcome."""
    card = await context.scheduler.find_card(body.hanzi)
    if card is None:
        raise NotFoundError(f"No review card for {body.hanzi!r}")
    return await context.scheduler.reschedule(card, body.outcome)


@router.delete("/cards/{hanzi}", response_model=SuccessResponse)
async def remove_card(
    hanzi: str,
    context: LearnerContext = Depends(get_learner_context),
) -> SuccessResponse:
    if not await context.scheduler.remove_card(hanzi):
        raise NotFoundError(f"No review card for {hanzi!r}")
    return SuccessResponse(message=f"Removed {hanzi} from review set")
