"""
History API Router

Endpoints:
- GET /api/history - Learner history, newest first
- DELETE /api/history - Clear the learner's history
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from hsk_tutor.dependencies import get_learner_context
from hsk_tutor.enums import HistoryKind
from hsk_tutor.models.base import SuccessResponse
from hsk_tutor.models.learning import HistoryResponse
from hsk_tutor.services.learner_context import LearnerContext

router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("", response_model=HistoryResponse)
async def list_history(
    kind: Optional[HistoryKind] = Query(None),
    context: LearnerContext = Depends(get_learner_context),
) -> HistoryResponse:
    items = await context.history.list_items(kind)
    return HistoryResponse(total=len(items), items=items)


@router.delete("", response_model=SuccessResponse)
async def clear_history(
    context: LearnerContext = Depends(get_learner_context),
) -> SuccessResponse:
    await context.history.clear()
    return SuccessResponse(message="History cleared")
