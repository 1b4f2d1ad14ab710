"""
Content Provider

Generates learning content with an LLM. The provider is the only component
that talks to the model; everything else sees a list of raw item dicts or a
ContentFetchFailed.

The provider contract is deliberately small so tests (and alternative
backends) can supply their own implementation:

    class ContentProvider(Protocol):
        async def request(kind, level, count, topic=None) -> list[dict]
        async def continue_conversation(lines, level) -> list[dict]

Usage:
    from hsk_tutor.services.content.provider import GeminiContentProvider

    provider = GeminiContentProvider()
    items = await provider.request(ContentKind.VOCABULARY, level=1, count=100)
"""

import json
import logging
from typing import Any, Optional, Protocol

from hsk_tutor.config import settings
from hsk_tutor.enums import ContentKind
from hsk_tutor.middleware.error_handling import ContentFetchFailed
from hsk_tutor.models.content import ConversationLine
from hsk_tutor.services.content.prompts import (
    CONVERSATION_CONTINUE_PROMPT,
    SYSTEM_PROMPT,
    build_prompt,
)
from hsk_tutor.services.llm.client import LLMClient, build_messages, get_llm_client

logger = logging.getLogger(__name__)


class ContentProvider(Protocol):
    """Asynchronous source of generated content items."""

    async def request(
        self,
        kind: ContentKind,
        level: Optional[int],
        count: int,
        topic: Optional[str] = None,
    ) -> list[dict[str, Any]]: ...

    async def continue_conversation(
        self,
        lines: list[ConversationLine],
        level: int,
    ) -> list[dict[str, Any]]: ...


def extract_items(data: Any) -> list[Any]:
    """
    Pull the item list out of a JSON-mode response.

    Accepts {"items": [...]}, a bare list, or a single object (some models
    answer single lookups without the wrapper).

    Raises:
        ContentFetchFailed: If the response has no recognizable item list.
    """
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        items = data.get("items")
        if isinstance(items, list):
            return items
        if items is None and data:
            return [data]
    raise ContentFetchFailed(
        "Provider returned malformed data",
        details={"type": type(data).__name__},
    )


class GeminiContentProvider:
    """
    ContentProvider backed by the LiteLLM client (Gemini by default).

    Transport retries happen inside LLMClient; anything that still fails is
    surfaced as ContentFetchFailed.
    """

    def __init__(self, llm_client: Optional[LLMClient] = None):
        """
        Args:
            llm_client: LLM client (uses the shared client if not provided)
        """
        self.llm_client = llm_client or get_llm_client()

    async def request(
        self,
        kind: ContentKind,
        level: Optional[int],
        count: int,
        topic: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """
        Request a batch of items.

        Args:
            kind: Content kind to generate
            level: HSK level 1-6 (unused for translation and dictionary entries)
            count: Requested batch size
            topic: Free text; the text to look up for translation and
                dictionary entries, the keyword for a single writing character

        Returns:
            Raw item dicts, not yet validated.

        Raises:
            ContentFetchFailed: If the call fails or the output is malformed.
        """
        prompt = build_prompt(
            kind, level, count, topic=topic, option_count=settings.EXAM_OPTION_COUNT
        )
        return await self._generate(kind, prompt)

    async def continue_conversation(
        self,
        lines: list[ConversationLine],
        level: int,
    ) -> list[dict[str, Any]]:
        """Generate the next 2-4 turns of a conversation."""
        if not lines:
            return []

        last = lines[-1]
        history = "\n".join(
            f"{'A' if line.turn % 2 == 1 else 'B'}: {line.zh}" for line in lines
        )
        prompt = CONVERSATION_CONTINUE_PROMPT.format(
            level=level,
            topic=last.topic,
            history=history,
            last_turn=last.turn,
            next_turn=last.turn + 1,
        )
        return await self._generate(ContentKind.CONVERSATION, prompt)

    async def _generate(self, kind: ContentKind, prompt: str) -> list[dict[str, Any]]:
        try:
            data, usage = await self.llm_client.complete(
                kind=kind,
                messages=build_messages(prompt, system_prompt=SYSTEM_PROMPT),
                json_mode=True,
            )
        except json.JSONDecodeError as e:
            logger.error(f"Provider returned invalid JSON for {kind.value}: {e}")
            raise ContentFetchFailed(f"Provider returned invalid JSON for {kind.value}") from e
        except Exception as e:
            logger.error(f"Content generation failed for {kind.value}: {e}")
            raise ContentFetchFailed(f"Failed to generate {kind.value} content") from e

        items = extract_items(data)
        logger.info(f"Generated {len(items)} {kind.value} item(s) ({usage})")
        return items
