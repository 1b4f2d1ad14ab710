"""
Centralized enum definitions for the application.

All enums are organized by domain:
- content.py: Content kinds, storage lifetimes, history kinds
- learning.py: Review outcomes, exam states, navigation
- api.py: Rate limit categories

Usage:
    from hsk_tutor.enums import ContentKind, ReviewOutcome

    # Or import from specific module
    from hsk_tutor.enums.learning import ExamState
"""

from hsk_tutor.enums.api import RateLimitType
from hsk_tutor.enums.content import ContentKind, HistoryKind, StorageLifetime
from hsk_tutor.enums.learning import (
    ExamState,
    FinishReason,
    NavigationDirection,
    ReviewOutcome,
)

__all__ = [
    # API
    "RateLimitType",
    # Content
    "ContentKind",
    "HistoryKind",
    "StorageLifetime",
    # Learning
    "ExamState",
    "FinishReason",
    "NavigationDirection",
    "ReviewOutcome",
]
