"""
Unit tests for the learner activity history.
"""

import pytest

from hsk_tutor.enums import FinishReason, HistoryKind
from hsk_tutor.middleware.error_handling import PersistenceFailed
from hsk_tutor.models.learning import ExamResult
from hsk_tutor.services.learning.history import HISTORY_KEY, HistoryService


@pytest.fixture
def history(durable_store) -> HistoryService:
    return HistoryService(durable_store, max_items=3)


class TestHistoryService:
    @pytest.mark.asyncio
    async def test_empty(self, history) -> None:
        assert await history.list_items() == []

    @pytest.mark.asyncio
    async def test_newest_first(self, history) -> None:
        await history.add_item(HistoryKind.TRANSLATION, "một", {})
        await history.add_item(HistoryKind.DICTIONARY, "hai", {})

        items = await history.list_items()

        assert [item.summary for item in items] == ["hai", "một"]

    @pytest.mark.asyncio
    async def test_capped(self, history) -> None:
        for i in range(5):
            await history.add_item(HistoryKind.TRANSLATION, str(i), {"i": i})

        items = await history.list_items()

        assert [item.summary for item in items] == ["4", "3", "2"]

    @pytest.mark.asyncio
    async def test_filter_by_kind(self, history) -> None:
        await history.add_item(HistoryKind.TRANSLATION, "a", {})
        await history.add_item(HistoryKind.CONVERSATION, "b", {})

        items = await history.list_items(HistoryKind.CONVERSATION)

        assert [item.summary for item in items] == ["b"]

    @pytest.mark.asyncio
    async def test_record_exam(self, history) -> None:
        result = ExamResult(
            level=4,
            score=31,
            total_questions=40,
            questions=[],
            user_answers=[],
            finish_reason=FinishReason.TIMEOUT,
            time_left_seconds=0,
        )

        item = await history.record_exam(result)

        assert item.kind == HistoryKind.EXAM
        assert item.summary == "Thi thử HSK 4: 31/40"
        assert item.content["finish_reason"] == "timeout"

    @pytest.mark.asyncio
    async def test_clear(self, history) -> None:
        await history.add_item(HistoryKind.TRANSLATION, "a", {})

        await history.clear()

        assert await history.list_items() == []

    @pytest.mark.asyncio
    async def test_corrupt_history(self, history, durable_store) -> None:
        await durable_store.set(HISTORY_KEY, [{"kind": "nonsense"}])

        with pytest.raises(PersistenceFailed):
            await history.list_items()
