"""
Content Enums

Defines the kinds of generated content served to the UI and the storage
lifetimes a caller can choose for cached pools.
"""

from enum import Enum


class ContentKind(str, Enum):
    """
    Kinds of content requested from the generative provider.

    Pooled kinds (vocabulary, writing characters, conversations) are fetched
    in batches and served locally. Exam questions are fetched once per exam.
    Translations and dictionary entries are single lookups keyed by text.
    """

    VOCABULARY = "vocabulary"
    WRITING_CHARACTER = "writing_character"
    EXAM_QUESTION = "exam_question"
    TRANSLATION = "translation"
    DICTIONARY_ENTRY = "dictionary_entry"
    CONVERSATION = "conversation"


class StorageLifetime(str, Enum):
    """
    Lifetime of a key-value store namespace.

    - SESSION: cleared when the learner's session ends (sliding TTL)
    - DURABLE: survives indefinitely
    """

    SESSION = "session"
    DURABLE = "durable"


class HistoryKind(str, Enum):
    """Kinds of entries recorded in a learner's history."""

    TRANSLATION = "translation"
    DICTIONARY = "dictionary"
    CONVERSATION = "conversation"
    EXAM = "exam"
