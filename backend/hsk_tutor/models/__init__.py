"""
Pydantic models for API requests/responses and stored records.

Usage:
    from hsk_tutor.models import ContentFingerprint, ReviewCard
"""

from hsk_tutor.models.base import (
    ErrorDetail,
    PaginatedResponse,
    StrictRequest,
    StrictResponse,
    SuccessResponse,
)
from hsk_tutor.models.content import (
    PAYLOAD_MODELS,
    ContentFingerprint,
    ContentItem,
    ConversationContinueRequest,
    ConversationLine,
    ConversationResponse,
    ExampleSentence,
    ExampleWord,
    ExamQuestion,
    HSKLevel,
    NextItemResponse,
    Pool,
    PoolPage,
    TranslateRequest,
    TranslationResult,
    VocabularyWord,
    WritingCharacter,
)
from hsk_tutor.models.learning import (
    DueCardsResponse,
    ExamAnswerRequest,
    ExamNavigateRequest,
    ExamQuestionView,
    ExamResult,
    ExamSessionView,
    ExamStartRequest,
    ExamSubmitRequest,
    HistoryItem,
    HistoryResponse,
    ReviewCard,
    ReviewCardCreate,
    ReviewRateRequest,
)
from hsk_tutor.models.llm_usage import LLMUsage

__all__ = [
    # Base
    "ErrorDetail",
    "PaginatedResponse",
    "StrictRequest",
    "StrictResponse",
    "SuccessResponse",
    # Content
    "PAYLOAD_MODELS",
    "ContentFingerprint",
    "ContentItem",
    "ConversationContinueRequest",
    "ConversationLine",
    "ConversationResponse",
    "ExampleSentence",
    "ExampleWord",
    "ExamQuestion",
    "HSKLevel",
    "NextItemResponse",
    "Pool",
    "PoolPage",
    "TranslateRequest",
    "TranslationResult",
    "VocabularyWord",
    "WritingCharacter",
    # Learning
    "DueCardsResponse",
    "ExamAnswerRequest",
    "ExamNavigateRequest",
    "ExamQuestionView",
    "ExamResult",
    "ExamSessionView",
    "ExamStartRequest",
    "ExamSubmitRequest",
    "HistoryItem",
    "HistoryResponse",
    "ReviewCard",
    "ReviewCardCreate",
    "ReviewRateRequest",
    # LLM
    "LLMUsage",
]
