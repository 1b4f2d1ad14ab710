"""
Learning System Enums

Defines enums for review scheduling and the timed mock exam.
"""

from enum import Enum


class ReviewOutcome(str, Enum):
    """
    Learner self-assessment after reviewing a card.

    Each outcome maps to a fixed interval multiplier:
    - HARD: interval resets to 1 day
    - GOOD: interval doubles
    - EASY: interval quadruples
    """

    HARD = "hard"
    GOOD = "good"
    EASY = "easy"


class ExamState(str, Enum):
    """
    Lifecycle states of a timed exam.

    State transitions:
    - SETUP → PLAYING (questions loaded)
    - PLAYING → FINISHED (timeout or submission)
    - any → SETUP (explicit reset)
    """

    SETUP = "setup"
    PLAYING = "playing"
    FINISHED = "finished"


class FinishReason(str, Enum):
    """Why an exam left the PLAYING state."""

    TIMEOUT = "timeout"
    SUBMITTED = "submitted"


class NavigationDirection(str, Enum):
    """Ways of moving the exam's question cursor."""

    NEXT = "next"
    PREV = "prev"
    JUMP = "jump"
