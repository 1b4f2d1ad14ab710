"""
Pydantic models for review scheduling, mock exams and learner history.
"""

from datetime import date, datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from pydantic import Field

from hsk_tutor.enums import (
    ExamState,
    FinishReason,
    HistoryKind,
    NavigationDirection,
    ReviewOutcome,
)
from hsk_tutor.models.base import StrictRequest, StrictResponse
from hsk_tutor.models.content import ExamQuestion, HSKLevel, VocabularyWord


# ===========================================
# Review Cards
# ===========================================


class ReviewCard(StrictResponse):
    """
    A vocabulary word in the learner's review set.

    Identity is the word's hanzi. ease_factor is stored alongside the card
    but plays no part in scheduling.
    """

    word: VocabularyWord
    review_date: date
    interval: float = Field(..., gt=0)
    ease_factor: float = 2.5

    @property
    def key(self) -> str:
        return self.word.hanzi


class ReviewCardCreate(StrictRequest):
    """Request to add a word to the review set."""

    word: VocabularyWord


class ReviewRateRequest(StrictRequest):
    """Learner's outcome for one reviewed card."""

    hanzi: str = Field(..., min_length=1)
    outcome: ReviewOutcome


class DueCardsResponse(StrictResponse):
    """Cards due on or before a date, in storage order."""

    as_of: date
    total: int
    cards: list[ReviewCard]


# ===========================================
# Mock Exam
# ===========================================


class ExamResult(StrictResponse):
    """Frozen summary of a finished exam, recorded to history."""

    level: int
    score: int
    total_questions: int
    questions: list[ExamQuestion]
    user_answers: list[Optional[str]]
    finish_reason: FinishReason
    time_left_seconds: int
    finished_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ExamQuestionView(StrictResponse):
    """
    A question as shown to the learner.

    correct_answer and explanation are withheld until the exam is finished.
    """

    section: str
    question_text: str
    audio_script: Optional[str] = None
    options: list[str]
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None


class ExamSessionView(StrictResponse):
    """Snapshot of an exam session for the UI."""

    state: ExamState
    level: Optional[int] = None
    current_index: int = 0
    time_left_seconds: int = 0
    total_questions: int = 0
    unanswered: int = 0
    questions: list[ExamQuestionView] = Field(default_factory=list)
    answers: list[Optional[str]] = Field(default_factory=list)
    score: Optional[int] = None
    finish_reason: Optional[FinishReason] = None


class ExamStartRequest(StrictRequest):
    level: HSKLevel


class ExamAnswerRequest(StrictRequest):
    index: int = Field(..., ge=0)
    choice: str = Field(..., min_length=1)


class ExamNavigateRequest(StrictRequest):
    """Move the question cursor. JUMP requires an index."""

    direction: NavigationDirection
    index: Optional[int] = None


class ExamSubmitRequest(StrictRequest):
    """Explicit submission. Unanswered questions require confirmed=True."""

    confirmed: bool = False


# ===========================================
# History
# ===========================================


class HistoryItem(StrictResponse):
    """A single entry in the learner's history, newest first."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    kind: HistoryKind
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    summary: str
    content: dict[str, Any] = Field(default_factory=dict)


class HistoryResponse(StrictResponse):
    total: int
    items: list[HistoryItem]
