"""
Session API Router

Endpoints:
- DELETE /api/session - End the learner session: stop the exam countdown,
  drop pool cursors and clear session-lifetime keys
"""

from fastapi import APIRouter, Depends, Header

from hsk_tutor.dependencies import IDENTIFIER_PATTERN, get_registry
from hsk_tutor.models.base import SuccessResponse
from hsk_tutor.services.learner_context import LearnerContextRegistry

router = APIRouter(prefix="/api/session", tags=["session"])


@router.delete("", response_model=SuccessResponse)
async def end_session(
    x_learner_id: str = Header("anonymous", max_length=64, pattern=IDENTIFIER_PATTERN),
    x_session_id: str = Header("default", max_length=64, pattern=IDENTIFIER_PATTERN),
    registry: LearnerContextRegistry = Depends(get_registry),
) -> SuccessResponse:
    await registry.end_session(x_learner_id, x_session_id)
    return SuccessResponse(message="Session ended")
