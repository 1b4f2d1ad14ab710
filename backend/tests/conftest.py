"""
Shared Test Fixtures and Configuration

This module provides pytest fixtures used across the unit tests: a
dict-backed Redis double, key-value stores wired to it, and a recording
content provider that returns canned items.
"""

import asyncio
import fnmatch
import os
from pathlib import Path
from typing import Any, Callable, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from dotenv import load_dotenv

# Load .env file from project root BEFORE any fixtures run
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

# Settings are read once at import time, so the test environment has to be in
# place before anything from hsk_tutor is imported
os.environ.update(
    {
        "DEBUG": "true",
        "RATE_LIMIT_ENABLED": "false",
        "REDIS_URL": os.environ.get("REDIS_URL", "redis://localhost:6379/1"),
        "GEMINI_API_KEY": os.environ.get("GEMINI_API_KEY", "test-api-key"),
    }
)

from hsk_tutor.db.redis import KeyValueStore  # noqa: E402
from hsk_tutor.enums import ContentKind, StorageLifetime  # noqa: E402
from hsk_tutor.models.content import ConversationLine  # noqa: E402


# ============================================================================
# Sample Content
# ============================================================================


def make_words(count: int, level: int = 1) -> list[dict[str, Any]]:
    """Raw vocabulary items as a provider would return them."""
    return [
        {
            "level": level,
            "hanzi": f"词{i}",
            "pinyin": f"ci{i}",
            "meaning_vi": f"từ {i}",
            "pos": "noun",
            "example_zh": f"这是词{i}。",
            "example_pinyin": f"zhè shì cí {i}.",
            "example_vi": f"Đây là từ {i}.",
        }
        for i in range(count)
    ]


def make_questions(count: int) -> list[dict[str, Any]]:
    """Raw exam questions; the correct answer is always option A."""
    return [
        {
            "section": "Đọc hiểu",
            "question_text": f"Câu hỏi {i}",
            "options": [f"A{i}", f"B{i}", f"C{i}", f"D{i}"],
            "correct_answer": f"A{i}",
            "explanation": f"Giải thích {i}",
        }
        for i in range(count)
    ]


def make_conversation(topic: str = "Mua sắm", turns: int = 4) -> list[dict[str, Any]]:
    return [
        {
            "topic": topic,
            "turn": turn,
            "zh": f"第{turn}句",
            "pinyin": f"dì {turn} jù",
            "vi": f"Câu {turn}",
        }
        for turn in range(1, turns + 1)
    ]


def make_character(hanzi: str = "学") -> dict[str, Any]:
    return {
        "hanzi": hanzi,
        "pinyin": "xué",
        "vi_meaning": "học",
        "strokes": ["M 100 100 L 900 100"],
        "example_words": [{"word": "学生", "pinyin": "xuésheng", "meaning_vi": "học sinh"}],
    }


def make_entry(hanzi: str = "你好") -> dict[str, Any]:
    return {
        "source_lang": "zh",
        "target_lang": "vi",
        "hanzi": hanzi,
        "pinyin": "nǐ hǎo",
        "vi_meaning": "xin chào",
        "examples": [{"zh": "你好！", "pinyin": "nǐ hǎo!", "vi": "Xin chào!"}],
        "grammar_notes": [],
    }


@pytest.fixture
def sample_words() -> Callable[..., list[dict[str, Any]]]:
    return make_words


@pytest.fixture
def sample_questions() -> Callable[[int], list[dict[str, Any]]]:
    return make_questions


@pytest.fixture
def sample_conversation() -> Callable[..., list[dict[str, Any]]]:
    return make_conversation


@pytest.fixture
def sample_character() -> Callable[..., dict[str, Any]]:
    return make_character


@pytest.fixture
def sample_entry() -> Callable[..., dict[str, Any]]:
    return make_entry


# ============================================================================
# Content Provider Double
# ============================================================================


class FakeProvider:
    """
    ContentProvider returning canned items per content kind.

    Every call is recorded. Set `gate` to an asyncio.Event to hold requests
    until the test releases them, or `error` to make requests fail.
    """

    def __init__(self, responses: Optional[dict[ContentKind, list[dict[str, Any]]]] = None):
        self.responses: dict[ContentKind, list[dict[str, Any]]] = responses or {}
        self.continuation: list[dict[str, Any]] = []
        self.calls: list[tuple[ContentKind, Optional[int], int, Optional[str]]] = []
        self.continue_calls: list[tuple[list[ConversationLine], int]] = []
        self.gate: Optional[asyncio.Event] = None
        self.error: Optional[Exception] = None

    async def request(
        self,
        kind: ContentKind,
        level: Optional[int],
        count: int,
        topic: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        self.calls.append((kind, level, count, topic))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return [dict(item) for item in self.responses.get(kind, [])]

    async def continue_conversation(
        self, lines: list[ConversationLine], level: int
    ) -> list[dict[str, Any]]:
        self.continue_calls.append((lines, level))
        if self.error is not None:
            raise self.error
        return [dict(item) for item in self.continuation]

    def calls_for(self, kind: ContentKind) -> list[tuple]:
        return [call for call in self.calls if call[0] == kind]


@pytest.fixture
def provider() -> FakeProvider:
    """Provider preloaded with a small batch of every content kind."""
    return FakeProvider(
        {
            ContentKind.VOCABULARY: make_words(25),
            ContentKind.WRITING_CHARACTER: [make_character("学"), make_character("字")],
            ContentKind.EXAM_QUESTION: make_questions(5),
            ContentKind.CONVERSATION: make_conversation(),
            ContentKind.DICTIONARY_ENTRY: [make_entry()],
            ContentKind.TRANSLATION: [make_entry("谢谢")],
        }
    )


# ============================================================================
# Redis Double
# ============================================================================


@pytest.fixture
def fake_redis() -> MagicMock:
    """
    In-memory Redis client.

    Values live in `fake_redis.data`; TTLs are recorded in `fake_redis.ttls`
    but never expire anything.
    """
    data: dict[str, str] = {}
    ttls: dict[str, int] = {}

    async def _get(key):
        return data.get(key)

    async def _set(key, value):
        data[key] = value
        ttls.pop(key, None)
        return True

    async def _setex(key, ttl, value):
        data[key] = value
        ttls[key] = ttl
        return True

    async def _delete(*keys):
        removed = 0
        for key in keys:
            if data.pop(key, None) is not None:
                removed += 1
            ttls.pop(key, None)
        return removed

    async def _expire(key, ttl):
        if key not in data:
            return False
        ttls[key] = ttl
        return True

    async def _scan_iter(match=None):
        for key in list(data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    mock = MagicMock()
    mock.data = data
    mock.ttls = ttls
    mock.get = AsyncMock(side_effect=_get)
    mock.set = AsyncMock(side_effect=_set)
    mock.setex = AsyncMock(side_effect=_setex)
    mock.delete = AsyncMock(side_effect=_delete)
    mock.expire = AsyncMock(side_effect=_expire)
    mock.scan_iter = MagicMock(side_effect=_scan_iter)
    return mock


@pytest.fixture
def patched_redis(fake_redis: MagicMock):
    """Route every KeyValueStore through the in-memory client."""
    with patch("hsk_tutor.db.redis.get_redis", AsyncMock(return_value=fake_redis)):
        yield fake_redis


@pytest.fixture
def session_store(patched_redis: MagicMock) -> KeyValueStore:
    return KeyValueStore(StorageLifetime.SESSION, "learner-1:session-1")


@pytest.fixture
def durable_store(patched_redis: MagicMock) -> KeyValueStore:
    return KeyValueStore(StorageLifetime.DURABLE, "learner:learner-1")
