"""
Conversation Service

Sample two-speaker conversations for reading and listening practice.

A conversation for a level without a topic is a pooled item: it is cached
through the pool cache and served again until invalidated. A learner-chosen
topic always produces a fresh, unpersisted conversation. Continuations are
generated on demand and never cached.
"""

import logging
from typing import Optional

from hsk_tutor.db.redis import KeyValueStore
from hsk_tutor.enums import ContentKind, HistoryKind
from hsk_tutor.middleware.error_handling import ContentFetchFailed, PersistenceFailed
from hsk_tutor.models.content import ContentFingerprint, ConversationLine
from hsk_tutor.services.content.pool_cache import ContentPoolCache
from hsk_tutor.services.content.provider import ContentProvider
from hsk_tutor.services.content.validation import validate_items
from hsk_tutor.services.learning.history import HistoryService

logger = logging.getLogger(__name__)


class ConversationService:
    def __init__(
        self,
        provider: ContentProvider,
        pool_cache: ContentPoolCache,
        history: Optional[HistoryService] = None,
    ):
        self.provider = provider
        self.pool_cache = pool_cache
        self.history = history

    async def get_conversation(
        self,
        level: int,
        store: Optional[KeyValueStore],
        topic: Optional[str] = None,
    ) -> list[ConversationLine]:
        """
        Return a conversation for a level, cached unless a topic is given.

        Returns:
            Lines in turn order (empty if the provider produced nothing usable).
        """
        fingerprint = ContentFingerprint(
            kind=ContentKind.CONVERSATION, level=level, topic=(topic or "").strip() or None
        )
        pool = await self.pool_cache.get_pool(fingerprint, store)
        lines = sorted(
            (ConversationLine.model_validate(payload) for payload in pool.payloads),
            key=lambda line: line.turn,
        )

        if lines:
            if fingerprint.topic:
                label = f"Hội thoại tùy chỉnh: {lines[0].topic}"
            else:
                label = f"Hội thoại HSK {level}: {lines[0].topic}"
            await self._record(label, lines)
        return lines

    async def continue_conversation(
        self, lines: list[ConversationLine], level: int
    ) -> list[ConversationLine]:
        """
        Generate the next 2-4 turns of a conversation.

        Returns:
            Only the new lines; an empty input yields an empty result.
        """
        if not lines:
            return []

        try:
            raw_items = await self.provider.continue_conversation(lines, level)
        except ContentFetchFailed:
            raise
        except Exception as e:
            raise ContentFetchFailed("Failed to continue conversation") from e

        last_turn = lines[-1].turn
        new_lines = [
            ConversationLine.model_validate(payload)
            for payload in validate_items(ContentKind.CONVERSATION, raw_items)
        ]
        # Number new turns after the existing ones whatever the model returned
        return [
            line.model_copy(update={"turn": last_turn + offset})
            for offset, line in enumerate(new_lines, start=1)
        ]

    async def _record(self, summary: str, lines: list[ConversationLine]) -> None:
        if self.history is None:
            return
        try:
            await self.history.add_item(
                HistoryKind.CONVERSATION,
                summary,
                {"lines": [line.model_dump(mode="json") for line in lines]},
            )
        except PersistenceFailed as e:
            logger.warning(f"Could not record conversation to history: {e}")
