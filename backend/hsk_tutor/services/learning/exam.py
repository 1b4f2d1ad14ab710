"""
Timed Exam State Machine

Governs one HSK mock exam: question set, answer capture, countdown and
scoring.

===============================================================================
States
===============================================================================

    SETUP ──start()──> PLAYING ──finish(timeout | submitted)──> FINISHED
      ^                                                            │
      └────────────────────────── reset() ─────────────────────────┘

- start() fetches EXAM_QUESTION_COUNT questions and starts the countdown.
  A failed start leaves the machine in SETUP so the learner can retry.
- While PLAYING, answer() overwrites the stored answer for a question and
  navigate() moves the read cursor; neither affects anything else.
- The countdown is an asyncio task that calls tick() once per
  EXAM_TICK_SECONDS; tick() checks the state first, so a stale tick after
  the exam has finished or been reset does nothing.
- finish() scores by exact string equality, freezes the session, records an
  ExamResult to history and is idempotent.
- The countdown task is cancelled whenever the machine leaves PLAYING, on
  reset() and on close() (host teardown).

Usage:
    exam = TimedExamStateMachine(provider, history=history_service)

    await exam.start(level=3)
    exam.answer(0, "我")
    exam.navigate(NavigationDirection.NEXT)
    result = await exam.submit(confirmed=True)
"""

import asyncio
import logging
from typing import Optional

from hsk_tutor.config import settings
from hsk_tutor.enums import ContentKind, ExamState, FinishReason, NavigationDirection
from hsk_tutor.middleware.error_handling import (
    ContentFetchFailed,
    ExamStateError,
    InvalidRequestError,
    PersistenceFailed,
    SubmissionNeedsConfirmation,
)
from hsk_tutor.models.content import ExamQuestion
from hsk_tutor.models.learning import ExamQuestionView, ExamResult, ExamSessionView
from hsk_tutor.services.content.provider import ContentProvider
from hsk_tutor.services.content.validation import validate_items
from hsk_tutor.services.learning.history import HistoryService

logger = logging.getLogger(__name__)


class TimedExamStateMachine:
    """A single learner's mock exam session."""

    def __init__(
        self,
        provider: ContentProvider,
        history: Optional[HistoryService] = None,
        question_count: Optional[int] = None,
        duration_seconds: Optional[int] = None,
        tick_seconds: Optional[float] = None,
        autostart_timer: bool = True,
    ):
        """
        Args:
            provider: Source of exam questions
            history: Where finished results are recorded (optional)
            question_count: Questions per exam (default: settings.EXAM_QUESTION_COUNT)
            duration_seconds: Countdown length (default: settings.EXAM_DURATION_SECONDS)
            tick_seconds: Real time between ticks (default: settings.EXAM_TICK_SECONDS)
            autostart_timer: Start the countdown task on start(); disable to drive
                tick() by hand
        """
        self.provider = provider
        self.history = history
        self.question_count = question_count or settings.EXAM_QUESTION_COUNT
        self.duration_seconds = duration_seconds or settings.EXAM_DURATION_SECONDS
        self.tick_seconds = tick_seconds or settings.EXAM_TICK_SECONDS
        self.autostart_timer = autostart_timer

        self.state = ExamState.SETUP
        self.level: Optional[int] = None
        self.questions: list[ExamQuestion] = []
        self.answers: list[Optional[str]] = []
        self.current_index = 0
        self.time_left = 0
        self.score: Optional[int] = None
        self.finish_reason: Optional[FinishReason] = None
        self.result: Optional[ExamResult] = None

        self._timer: Optional[asyncio.Task] = None
        self._loading = False
        # Bumped by reset()/close() so a start() that resolves afterwards is discarded
        self._generation = 0
        self._finished = asyncio.Event()

    # ===========================================
    # Lifecycle
    # ===========================================

    async def start(self, level: int) -> ExamSessionView:
        """
        Load a fresh question set and start the countdown.

        Starting from FINISHED resets the previous session first.

        Raises:
            ExamStateError: An exam is already in progress or loading.
            ContentFetchFailed: No usable questions; the machine stays in SETUP.
        """
        if self.state == ExamState.PLAYING or self._loading:
            raise ExamStateError("An exam is already in progress")
        if self.state == ExamState.FINISHED:
            self.reset()

        generation = self._generation
        self._loading = True
        try:
            questions = await self._fetch_questions(level)
        finally:
            self._loading = False

        if generation != self._generation:
            logger.info("Exam was reset while loading, discarding questions")
            raise ExamStateError("Exam was reset while loading")

        self.level = level
        self.questions = questions
        self.answers = [None] * len(questions)
        self.current_index = 0
        self.time_left = self.duration_seconds
        self.score = None
        self.finish_reason = None
        self.result = None
        self.state = ExamState.PLAYING
        self._finished.clear()

        if self.autostart_timer:
            self._timer = asyncio.create_task(self._run_countdown(generation))

        logger.info(
            f"Exam started: HSK {level}, {len(questions)} questions, "
            f"{self.duration_seconds}s"
        )
        return self.snapshot()

    async def _fetch_questions(self, level: int) -> list[ExamQuestion]:
        try:
            raw_items = await self.provider.request(
                ContentKind.EXAM_QUESTION, level, self.question_count
            )
        except ContentFetchFailed:
            raise
        except Exception as e:
            raise ContentFetchFailed("Failed to generate exam questions") from e

        payloads = validate_items(ContentKind.EXAM_QUESTION, raw_items)[: self.question_count]
        if not payloads:
            raise ContentFetchFailed("Provider returned no usable exam questions")
        if len(payloads) < self.question_count:
            logger.warning(
                f"Exam has {len(payloads)} of {self.question_count} requested questions"
            )
        return [ExamQuestion.model_validate(payload) for payload in payloads]

    async def _run_countdown(self, generation: int) -> None:
        while self.state == ExamState.PLAYING and generation == self._generation:
            await asyncio.sleep(self.tick_seconds)
            await self.tick()

    async def tick(self) -> None:
        """Advance the countdown by one second; finish on reaching zero."""
        if self.state != ExamState.PLAYING:
            return
        self.time_left = max(0, self.time_left - 1)
        if self.time_left == 0:
            await self.finish(FinishReason.TIMEOUT)

    async def finish(self, reason: FinishReason = FinishReason.SUBMITTED) -> ExamResult:
        """
        Score and freeze the exam.

        Idempotent: once FINISHED, further calls return the same result.

        Raises:
            ExamStateError: No exam has been started.
        """
        if self.state == ExamState.FINISHED and self.result is not None:
            return self.result
        if self.state != ExamState.PLAYING:
            raise ExamStateError("No exam in progress")

        # Transition before any await so concurrent finishes see FINISHED
        self.state = ExamState.FINISHED
        self._cancel_timer()

        self.score = sum(
            1
            for question, answer in zip(self.questions, self.answers)
            if answer is not None and answer == question.correct_answer
        )
        self.finish_reason = reason
        self.result = ExamResult(
            level=self.level,
            score=self.score,
            total_questions=len(self.questions),
            questions=list(self.questions),
            user_answers=list(self.answers),
            finish_reason=reason,
            time_left_seconds=self.time_left,
        )
        self._finished.set()

        logger.info(
            f"Exam finished ({reason.value}): {self.score}/{len(self.questions)}, "
            f"{self.time_left}s left"
        )

        if self.history is not None:
            try:
                await self.history.record_exam(self.result)
            except PersistenceFailed as e:
                logger.warning(f"Could not record exam result to history: {e}")

        return self.result

    async def submit(self, confirmed: bool = False) -> ExamResult:
        """
        Explicit submission by the learner.

        Raises:
            SubmissionNeedsConfirmation: Questions are unanswered and the
                learner has not confirmed.
        """
        if self.state == ExamState.FINISHED and self.result is not None:
            return self.result
        if self.state != ExamState.PLAYING:
            raise ExamStateError("No exam in progress")

        unanswered = self.unanswered_count()
        if unanswered and not confirmed:
            raise SubmissionNeedsConfirmation(unanswered)
        return await self.finish(FinishReason.SUBMITTED)

    def reset(self) -> None:
        """Cancel the countdown, clear the session and return to SETUP."""
        self._generation += 1
        self._cancel_timer()
        self.state = ExamState.SETUP
        self.level = None
        self.questions = []
        self.answers = []
        self.current_index = 0
        self.time_left = 0
        self.score = None
        self.finish_reason = None
        self.result = None
        self._finished.clear()

    def close(self) -> None:
        """Host teardown: stop the countdown so nothing mutates a discarded session."""
        self._generation += 1
        self._cancel_timer()

    def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        # finish() may run inside the countdown task itself
        if timer is not None and timer is not asyncio.current_task() and not timer.done():
            timer.cancel()

    async def wait_finished(self, timeout: Optional[float] = None) -> ExamResult:
        """Wait until the exam finishes (by timeout or submission)."""
        await asyncio.wait_for(self._finished.wait(), timeout)
        return self.result

    # ===========================================
    # Learner actions
    # ===========================================

    def answer(self, index: int, choice: str) -> None:
        """
        Record an answer, replacing any earlier answer for the question.

        Raises:
            ExamStateError: The exam is not in progress.
            InvalidRequestError: Unknown question index or a choice that is not
                one of the question's options.
        """
        if self.state != ExamState.PLAYING:
            raise ExamStateError("Answers can only be given while the exam is in progress")
        self._check_index(index)
        if choice not in self.questions[index].options:
            raise InvalidRequestError(
                f"{choice!r} is not an option of question {index}",
                details={"index": index},
            )
        self.answers[index] = choice

    def navigate(
        self, direction: NavigationDirection, index: Optional[int] = None
    ) -> int:
        """
        Move the question cursor, clamped to the question range.

        Returns:
            The new current index.
        """
        if self.state == ExamState.SETUP or not self.questions:
            raise ExamStateError("No exam to navigate")

        last = len(self.questions) - 1
        if direction == NavigationDirection.NEXT:
            target = self.current_index + 1
        elif direction == NavigationDirection.PREV:
            target = self.current_index - 1
        else:
            if index is None:
                raise InvalidRequestError("Jumping requires a question index")
            target = index

        self.current_index = min(max(target, 0), last)
        return self.current_index

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.questions):
            raise InvalidRequestError(
                f"Question index {index} out of range (0-{len(self.questions) - 1})"
            )

    # ===========================================
    # Views
    # ===========================================

    def unanswered_count(self) -> int:
        return sum(1 for answer in self.answers if answer is None)

    @property
    def timer_running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def snapshot(self) -> ExamSessionView:
        """Session view for the UI; answers and explanations stay hidden while playing."""
        reveal = self.state == ExamState.FINISHED
        questions = [
            ExamQuestionView(
                section=question.section,
                question_text=question.question_text,
                audio_script=question.audio_script,
                options=list(question.options),
                correct_answer=question.correct_answer if reveal else None,
                explanation=question.explanation if reveal else None,
            )
            for question in self.questions
        ]
        return ExamSessionView(
            state=self.state,
            level=self.level,
            current_index=self.current_index,
            time_left_seconds=self.time_left,
            total_questions=len(self.questions),
            unanswered=self.unanswered_count(),
            questions=questions,
            answers=list(self.answers),
            score=self.score,
            finish_reason=self.finish_reason,
        )
