"""
Pydantic models for generated learning content.

Payload models describe what the provider returns for each content kind.
ContentFingerprint, ContentItem and Pool describe how batches of payloads
are identified, stored and served by the pool cache.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from hsk_tutor.enums import ContentKind
from hsk_tutor.models.base import PaginatedResponse, StrictRequest, StrictResponse

HSKLevel = Annotated[int, Field(ge=1, le=6)]


# ===========================================
# Provider Payloads
# ===========================================


class VocabularyWord(StrictResponse):
    """A single HSK vocabulary word with one example sentence."""

    level: Optional[int] = None
    hanzi: str = Field(..., min_length=1)
    pinyin: str = Field(..., min_length=1)
    meaning_vi: str = Field(..., min_length=1)
    pos: str = ""
    example_zh: str = ""
    example_pinyin: str = ""
    example_vi: str = ""


class ExampleWord(StrictResponse):
    """A word that uses a practice character."""

    word: str
    pinyin: str
    meaning_vi: str


class WritingCharacter(StrictResponse):
    """
    A single character for writing practice.

    Strokes are SVG path strings on a 1024x1024 viewbox, in stroke order.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    hanzi: str = Field(..., min_length=1)
    pinyin: str = Field(..., min_length=1)
    vi_meaning: str = Field(..., min_length=1)
    strokes: list[str] = Field(default_factory=list)
    example_words: list[ExampleWord] = Field(default_factory=list)


class ExamQuestion(StrictResponse):
    """
    A multiple-choice mock exam question.

    correct_answer must be byte-identical to one of the options; scoring is
    plain string equality.
    """

    section: str
    question_text: str
    audio_script: Optional[str] = None
    options: list[str]
    correct_answer: str
    explanation: str = ""


class ConversationLine(StrictResponse):
    """One turn of a two-speaker sample conversation."""

    topic: str
    turn: int = Field(..., ge=1)
    zh: str = Field(..., min_length=1)
    pinyin: str = ""
    vi: str = ""


class ExampleSentence(StrictResponse):
    """An example sentence for a translation or dictionary entry."""

    zh: str
    pinyin: str = ""
    vi: str = ""


class TranslationResult(StrictResponse):
    """
    A translation or dictionary entry.

    Text is translated into Chinese or Vietnamese, whichever is the opposite
    of the input language.
    """

    source_lang: str = ""
    target_lang: str = ""
    hanzi: str = Field(..., min_length=1)
    pinyin: str = ""
    vi_meaning: str = Field(..., min_length=1)
    examples: list[ExampleSentence] = Field(default_factory=list)
    grammar_notes: list[str] = Field(default_factory=list)


PAYLOAD_MODELS: dict[ContentKind, type[StrictResponse]] = {
    ContentKind.VOCABULARY: VocabularyWord,
    ContentKind.WRITING_CHARACTER: WritingCharacter,
    ContentKind.EXAM_QUESTION: ExamQuestion,
    ContentKind.CONVERSATION: ConversationLine,
    ContentKind.TRANSLATION: TranslationResult,
    ContentKind.DICTIONARY_ENTRY: TranslationResult,
}


# ===========================================
# Pool Cache Models
# ===========================================


class ContentFingerprint(BaseModel):
    """
    Identifies a request for content: kind, level and optional free-text topic.

    Only fingerprints without a topic are cacheable; a topic always bypasses
    persistence so topical content stays fresh.
    """

    model_config = ConfigDict(frozen=True)

    kind: ContentKind
    level: HSKLevel
    topic: Optional[str] = None

    @property
    def cacheable(self) -> bool:
        """Whether pools for this fingerprint may be persisted."""
        return not self.topic

    @property
    def storage_key(self) -> str:
        """Store key for this fingerprint's persisted pool."""
        return f"pool:{self.kind.value}:hsk{self.level}"

    @property
    def flight_key(self) -> str:
        """Key identifying concurrent loads of the same request."""
        if self.cacheable:
            return self.storage_key
        return f"{self.storage_key}:topic:{self.topic}"


class ContentItem(BaseModel):
    """An immutable generated payload together with the request that produced it."""

    model_config = ConfigDict(frozen=True)

    fingerprint: ContentFingerprint
    payload: dict[str, Any]


class Pool(BaseModel):
    """
    A fully populated batch of validated payloads for one fingerprint.

    Pools are written in one piece and never partially updated.
    """

    fingerprint: ContentFingerprint
    payloads: list[dict[str, Any]] = Field(default_factory=list)
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def items(self) -> list[ContentItem]:
        return [
            ContentItem(fingerprint=self.fingerprint, payload=payload)
            for payload in self.payloads
        ]


# ===========================================
# API Models
# ===========================================


class PoolPage(PaginatedResponse):
    """One page of a content pool."""

    kind: ContentKind
    level: int
    items: list[dict[str, Any]]
    empty: bool = False


class NextItemResponse(StrictResponse):
    """The next item of a learner's cursor, or an explicit empty state."""

    kind: ContentKind
    level: int
    index: int
    item: Optional[dict[str, Any]] = None
    empty: bool = False


class ConversationResponse(StrictResponse):
    """A sample conversation."""

    level: int
    topic: Optional[str] = None
    lines: list[ConversationLine]
    empty: bool = False


class ConversationContinueRequest(StrictRequest):
    """Request to extend an existing conversation by a few turns."""

    level: HSKLevel
    lines: list[ConversationLine]


class TranslateRequest(StrictRequest):
    """Free text to translate between Chinese and Vietnamese."""

    text: str = Field(..., min_length=1, max_length=2000)
