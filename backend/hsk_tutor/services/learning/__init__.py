"""
Learning services.

- scheduler.py: Fixed-multiplier spaced repetition over review cards
- exam.py: Timed mock exam state machine
- history.py: Capped learner activity history
"""

from hsk_tutor.services.learning.exam import TimedExamStateMachine
from hsk_tutor.services.learning.history import HistoryService
from hsk_tutor.services.learning.scheduler import SpacedRepetitionScheduler

__all__ = ["HistoryService", "SpacedRepetitionScheduler", "TimedExamStateMachine"]
