"""
Exam API Router

Endpoints driving the learner's timed mock exam.

Endpoints:
- GET /api/exam - Current exam session (answers hidden while playing)
- POST /api/exam/start - Generate questions and start the countdown
- POST /api/exam/answer - Answer (or re-answer) a question
- POST /api/exam/navigate - Move to the next/previous question or jump
- POST /api/exam/submit - Submit; unanswered questions need confirmed=true
- POST /api/exam/reset - Discard the session and return to setup
"""

from fastapi import APIRouter, Depends, Request

from hsk_tutor.dependencies import get_learner_context
from hsk_tutor.middleware.rate_limit import limit_llm
from hsk_tutor.models.learning import (
    ExamAnswerRequest,
    ExamNavigateRequest,
    ExamResult,
    ExamSessionView,
    ExamStartRequest,
    ExamSubmitRequest,
)
from hsk_tutor.services.learner_context import LearnerContext

router = APIRouter(prefix="/api/exam", tags=["exam"])


@router.get("", response_model=ExamSessionView)
async def get_exam(
    context: LearnerContext = Depends(get_learner_context),
) -> ExamSessionView:
    return context.exam.snapshot()


@router.post("/start", response_model=ExamSessionView)
@limit_llm
async def start_exam(
    request: Request,
    body: ExamStartRequest,
    context: LearnerContext = Depends(get_learner_context),
) -> ExamSessionView:
    """
    Start a new exam.

    On failure the exam stays in setup and the request can simply be retried.
    """
    return await context.exam.start(body.level)


@router.post("/answer", response_model=ExamSessionView)
async def answer_question(
    body: ExamAnswerRequest,
    context: LearnerContext = Depends(get_learner_context),
) -> ExamSessionView:
    context.exam.answer(body.index, body.choice)
    return context.exam.snapshot()


@router.post("/navigate", response_model=ExamSessionView)
async def navigate(
    body: ExamNavigateRequest,
    context: LearnerContext = Depends(get_learner_context),
) -> ExamSessionView:
    context.exam.navigate(body.direction, body.index)
    return context.exam.snapshot()


@router.post("/submit", response_model=ExamResult)
async def submit_exam(
    body: ExamSubmitRequest,
    context: LearnerContext = Depends(get_learner_context),
) -> ExamResult:
    """Score the exam. Returns 409 confirmation_required if questions are unanswered."""
    return await context.exam.submit(confirmed=body.confirmed)


@router.post("/reset", response_model=ExamSessionView)
async def reset_exam(
    context: LearnerContext = Depends(get_learner_context),
) -> ExamSessionView:
    context.exam.reset()
    return context.exam.snapshot()
