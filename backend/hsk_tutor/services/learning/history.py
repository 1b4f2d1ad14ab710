"""
History Service

Keeps a learner's recent activity (translations, dictionary lookups,
conversations and exam results) as a capped, newest-first list under one
durable key.
"""

import asyncio
import logging
from typing import Any, Optional

from pydantic import ValidationError

from hsk_tutor.config import settings
from hsk_tutor.db.redis import KeyValueStore
from hsk_tutor.enums import HistoryKind
from hsk_tutor.middleware.error_handling import PersistenceFailed
from hsk_tutor.models.learning import ExamResult, HistoryItem

logger = logging.getLogger(__name__)

HISTORY_KEY = "history"


class HistoryService:
    """Capped activity history for one learner."""

    def __init__(self, store: KeyValueStore, max_items: Optional[int] = None):
        self.store = store
        self.max_items = max_items or settings.HISTORY_MAX_ITEMS
        self._lock = asyncio.Lock()

    async def list_items(self, kind: Optional[HistoryKind] = None) -> list[HistoryItem]:
        """Return history items newest first, optionally filtered by kind."""
        data = await self.store.get(HISTORY_KEY) or []
        try:
            items = [HistoryItem.model_validate(entry) for entry in data]
        except ValidationError as e:
            raise PersistenceFailed(f"History at {HISTORY_KEY} is corrupt: {e}") from e
        if kind is not None:
            items = [item for item in items if item.kind == kind]
        return items

    async def add_item(
        self, kind: HistoryKind, summary: str, content: dict[str, Any]
    ) -> HistoryItem:
        """Prepend an item, dropping the oldest beyond max_items."""
        item = HistoryItem(kind=kind, summary=summary, content=content)
        async with self._lock:
            items = await self.list_items()
            items = [item, *items][: self.max_items]
            await self.store.set(HISTORY_KEY, [entry.model_dump(mode="json") for entry in items])
        return item

    async def record_exam(self, result: ExamResult) -> HistoryItem:
        return await self.add_item(
            HistoryKind.EXAM,
            f"Thi thử HSK {result.level}: {result.score}/{result.total_questions}",
            result.model_dump(mode="json"),
        )

    async def clear(self) -> None:
        await self.store.delete(HISTORY_KEY)
        logger.info(f"Cleared history for {self.store.namespace}")
