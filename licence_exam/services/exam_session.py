"""
services/exam_session.py

Exam Session Controller: one timed exam attempt from question load to a
persisted result.

Lifecycle:
    not_started ──start()──▶ in_progress ──(manual submit | timer expiry | integrity breach)──▶ submitted

Every mutation runs on a single asyncio loop (HTTP handlers plus the ticker
task), so no locks are needed. The only cross-trigger ordering rule is the
submitted guard in _submit(): status is flipped before the first await, so
whichever trigger arrives first scores and persists, and the rest are no-ops.

Time, randomness, the clock and sleeping are all injected so the session
can be driven deterministically in tests.
"""

import asyncio
import logging
import random
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel

from config import (
    EXAM_DURATION_MINUTES, PASS_SCORE, PERSIST_BACKOFF_BASE, PERSIST_RETRIES,
    TAB_SWITCH_WARNINGS_MAX, TOTAL_QUESTIONS,
)
from licence_exam.errors import InvariantViolation, LoadError, PersistError, StoreError
from licence_exam.models.question_model import LANGUAGES, Question
from licence_exam.models.result_model import ExamResult
from licence_exam.models.session_state import ExamState, ExamStatus
from licence_exam.services.exam_service import count_correct, is_passed, percentage
from licence_exam.services.question_store import QuestionStore
from licence_exam.services.result_sink import ResultSink
from licence_exam.services.timer import AsyncioTicker, Ticker

logger = logging.getLogger(__name__)

LOAD_FAILED_MESSAGE = "Failed to load exam questions. Please try again."
NO_QUESTIONS_MESSAGE = "No exam questions available. Please contact administrator."
PERSIST_FAILED_MESSAGE = "Error submitting exam. Please contact support."


# ── Question pool helpers ─────────────────────────────────────────────────────

def normalize_language(language: Optional[str]) -> str:
    """"ne" stays "ne"; anything else is treated as "en"."""
    return "ne" if (language or "").strip().lower() == "ne" else "en"


def alternate_language(language: str) -> str:
    return next(lang for lang in LANGUAGES if lang != language)


async def fetch_pool(store: QuestionStore, language: Optional[str]) -> List[Question]:
    """
    Fetch the question pool with language fallback.

    Order: preferred language → alternate language → no language filter.
    Duplicate ids are dropped (first occurrence wins).

    Raises:
        LoadError(reason="store"): the store failed.
        LoadError(reason="empty"): nothing found after every fallback.
    """
    preferred = normalize_language(language)
    for attempt in (preferred, alternate_language(preferred), None):
        try:
            pool = await store.fetch(attempt)
        except (StoreError, OSError) as e:
            logger.error(f"Question fetch failed (language={attempt}): {e}")
            raise LoadError(LOAD_FAILED_MESSAGE, reason="store") from e

        unique: Dict[str, Question] = {}
        for q in pool:
            unique.setdefault(q.id, q)
        if unique:
            if attempt != preferred:
                logger.info(f"No '{preferred}' questions; fell back to {attempt or 'any language'}")
            return list(unique.values())

    raise LoadError(NO_QUESTIONS_MESSAGE, reason="empty")


def draw_questions(pool: Sequence[Question], count: int, rng: random.Random) -> List[Question]:
    """Uniform Fisher-Yates shuffle (Random.shuffle) of the pool, then the first `count` items."""
    shuffled = list(pool)
    rng.shuffle(shuffled)
    return shuffled[:min(count, len(shuffled))]


# ── Controller ────────────────────────────────────────────────────────────────

class IntegrityEvent(BaseModel):
    """Outcome of one attention change. action: "ignored" | "warn" | "submitted"."""
    warnings: int
    max_warnings: int
    action: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExamSessionController:
    def __init__(
        self,
        user_id: str,
        question_store: QuestionStore,
        result_sink: ResultSink,
        *,
        ticker: Optional[Ticker] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        total_questions: int = TOTAL_QUESTIONS,
        duration_minutes: int = EXAM_DURATION_MINUTES,
        max_warnings: int = TAB_SWITCH_WARNINGS_MAX,
        pass_score: int = PASS_SCORE,
        persist_retries: int = PERSIST_RETRIES,
        persist_backoff_base: float = PERSIST_BACKOFF_BASE,
    ):
        if not user_id:
            raise ValueError("an authenticated user id is required")
        self.user_id = user_id
        self._store = question_store
        self._sink = result_sink
        self._ticker = ticker or AsyncioTicker()
        self._rng = rng or random.SystemRandom()
        self._clock = clock
        self._sleep = sleep

        self.total_questions = total_questions
        self.duration_seconds = duration_minutes * 60
        self.max_warnings = max_warnings
        self.pass_score = pass_score
        self.persist_retries = max(1, persist_retries)
        self.persist_backoff_base = persist_backoff_base

        self.language: Optional[str] = None
        self._questions: List[Question] = []
        self._answers: Dict[str, int] = {}
        self._current_index = 0
        self._time_remaining = self.duration_seconds
        self._warnings = 0
        self._hidden = False
        self._status = ExamStatus.NOT_STARTED
        self._closed = False

        self._result: Optional[ExamResult] = None
        self._persisted = False
        self._persisting = False
        self._persist_error: Optional[str] = None
        self.completed = asyncio.Event()

    # ── read-only views ──────────────────────────────────────────────────────

    @property
    def status(self) -> ExamStatus:
        return self._status

    @property
    def questions(self) -> List[Question]:
        return list(self._questions)

    @property
    def answers(self) -> Dict[str, int]:
        return dict(self._answers)

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def current_question(self) -> Optional[Question]:
        return self._questions[self._current_index] if self._questions else None

    @property
    def time_remaining(self) -> int:
        return self._time_remaining

    @property
    def integrity_warnings(self) -> int:
        return self._warnings

    @property
    def result(self) -> Optional[ExamResult]:
        return self._result

    @property
    def persisted(self) -> bool:
        return self._persisted

    @property
    def persist_error(self) -> Optional[str]:
        return self._persist_error

    @property
    def closed(self) -> bool:
        return self._closed

    def snapshot(self) -> ExamState:
        return ExamState(
            questions=list(self._questions),
            answers=dict(self._answers),
            current_index=self._current_index,
            time_remaining=self._time_remaining,
            integrity_warnings=self._warnings,
            status=self._status,
            score=self._result.score if self._result else None,
            passed=self._result.passed if self._result else None,
            persisted=self._persisted,
            persist_error=self._persist_error,
        )

    # ── loading and starting ─────────────────────────────────────────────────

    async def load_questions(self, language: Optional[str]) -> List[Question]:
        """
        Draw a fresh question set. Replaces any set loaded earlier.

        Raises:
            InvariantViolation: the exam has already started.
            LoadError:          store failure or empty pool (retry is allowed).
        """
        self._ensure_not_started()
        pool = await fetch_pool(self._store, language)
        # start() may have run while the fetch was pending
        self._ensure_not_started()

        self._questions = draw_questions(pool, self.total_questions, self._rng)
        self._answers = {}
        self._current_index = 0
        self.language = normalize_language(language)
        logger.info(
            f"User {self.user_id}: {len(self._questions)} questions drawn from a pool of {len(pool)}"
        )
        return list(self._questions)

    def start(self) -> None:
        self._ensure_not_started()
        if not self._questions:
            raise InvariantViolation("Cannot start an exam without questions.")

        self._status = ExamStatus.IN_PROGRESS
        self._time_remaining = self.duration_seconds
        self._ticker.start(self.tick)
        logger.info(f"User {self.user_id}: exam started ({self.duration_seconds}s)")

    async def tick(self) -> bool:
        """
        One second elapsed. Returns False once the ticker should stop.
        Reaching zero auto-submits.
        """
        if self._closed or self._status is not ExamStatus.IN_PROGRESS:
            return False

        self._time_remaining = max(0, self._time_remaining - 1)
        if self._time_remaining == 0:
            logger.warning(f"User {self.user_id}: time is up, auto-submitting")
            await self._auto_submit("timer")
            return False
        return True

    # ── answering and navigation ─────────────────────────────────────────────

    def select_answer(self, question_id: str, option_index: int) -> None:
        """Record (or overwrite) the selected option for a loaded question."""
        self._ensure_not_submitted()
        question = next((q for q in self._questions if q.id == question_id), None)
        if question is None:
            raise InvariantViolation(f"Question {question_id!r} is not part of this exam.")
        if isinstance(option_index, bool) or not isinstance(option_index, int):
            raise InvariantViolation("Option index must be an integer.")
        if not 0 <= option_index < len(question.options):
            raise InvariantViolation(
                f"Option {option_index} is out of range for question {question_id!r}."
            )
        self._answers[question_id] = option_index

    def go_to_index(self, index: int) -> int:
        self._ensure_not_submitted()
        last = max(0, len(self._questions) - 1)
        self._current_index = max(0, min(index, last))
        return self._current_index

    def next(self) -> int:
        return self.go_to_index(self._current_index + 1)

    def previous(self) -> int:
        return self.go_to_index(self._current_index - 1)

    # ── integrity monitoring ─────────────────────────────────────────────────

    async def attention_changed(self, hidden: bool) -> IntegrityEvent:
        """
        Feed the page-visibility signal. Only a visible → hidden transition
        while in progress counts as a warning. Once the count exceeds
        max_warnings the exam is submitted without confirmation.
        """
        was_hidden, self._hidden = self._hidden, hidden
        if self._closed or self._status is not ExamStatus.IN_PROGRESS or not hidden or was_hidden:
            return self._integrity_event("ignored")

        self._warnings += 1
        if self._warnings > self.max_warnings:
            logger.warning(
                f"User {self.user_id}: focus lost {self._warnings} times, auto-submitting"
            )
            await self._auto_submit("integrity")
            return self._integrity_event("submitted")

        logger.warning(
            f"User {self.user_id}: focus lost ({self._warnings}/{self.max_warnings})"
        )
        return self._integrity_event("warn")

    async def focus_lost(self) -> IntegrityEvent:
        """One discrete attention-loss event (e.g. window blur)."""
        self._hidden = False
        return await self.attention_changed(True)

    def _integrity_event(self, action: str) -> IntegrityEvent:
        return IntegrityEvent(warnings=self._warnings, max_warnings=self.max_warnings, action=action)

    # ── submission ───────────────────────────────────────────────────────────

    async def submit(self, confirmed: bool) -> Optional[ExamResult]:
        """
        User-initiated submission.

        Returns None when the user declined, otherwise the (single) result.
        A second submit returns the existing result without rescoring.

        Raises:
            InvariantViolation: the exam was never started.
            PersistError:       the result could not be stored; state stays submitted.
        """
        if not confirmed:
            return None
        if self._status is ExamStatus.NOT_STARTED:
            raise InvariantViolation("The exam has not started.")
        await self._submit("manual")
        return self._result

    async def retry_persist(self) -> bool:
        """
        Write the already-computed result again after a failure.
        Never rescores. Returns True once the result is stored.
        """
        if self._result is None:
            raise InvariantViolation("There is no submitted result to store.")
        await self._persist()
        return self._persisted

    async def _auto_submit(self, trigger: str) -> None:
        try:
            await self._submit(trigger)
        except PersistError:
            # no caller to report to; persist_error is exposed via snapshot()
            logger.warning(f"User {self.user_id}: {trigger} submission awaiting result retry")

    async def _submit(self, trigger: str) -> bool:
        if self._status is ExamStatus.SUBMITTED:
            return False
        self._status = ExamStatus.SUBMITTED
        self._ticker.stop()

        correct = count_correct(self._questions, self._answers)
        score = percentage(correct, len(self._questions))
        passed = is_passed(score, self.pass_score)
        self._result = ExamResult(
            user_id=self.user_id,
            status="passed" if passed else "failed",
            score=score,
            completed_at=self._clock(),
        )
        logger.info(
            f"User {self.user_id}: submitted by {trigger}, "
            f"{correct}/{len(self._questions)} correct, score {score}, {self._result.status}"
        )

        await self._persist()
        return True

    async def _persist(self) -> None:
        if self._persisted or self._persisting:
            return
        self._persisting = True
        try:
            last_error: Optional[Exception] = None
            for attempt in range(1, self.persist_retries + 1):
                try:
                    await self._sink.write(self._result)
                except StoreError as e:
                    last_error = e
                    if attempt < self.persist_retries:
                        wait = self.persist_backoff_base * (2 ** (attempt - 1))
                        http = f" (HTTP {e.status_code})" if e.status_code else ""
                        logger.warning(
                            f"Result write failed{http}, retrying in {wait:.1f}s ({attempt}/{self.persist_retries})"
                        )
                        await self._sleep(wait)
                else:
                    self._persisted = True
                    self._persist_error = None
                    self.completed.set()
                    return

            self._persist_error = PERSIST_FAILED_MESSAGE
            logger.error(f"User {self.user_id}: result could not be stored: {last_error}")
            raise PersistError(PERSIST_FAILED_MESSAGE) from last_error
        finally:
            self._persisting = False

    # ── teardown ─────────────────────────────────────────────────────────────

    def close(self) -> None:
        """Stop the countdown and detach. An unsubmitted attempt is abandoned, not stored."""
        self._closed = True
        self._ticker.stop()

    # ── guards ───────────────────────────────────────────────────────────────

    def _ensure_not_started(self) -> None:
        if self._status is not ExamStatus.NOT_STARTED:
            raise InvariantViolation("The exam has already started.")

    def _ensure_not_submitted(self) -> None:
        if self._status is ExamStatus.SUBMITTED:
            raise InvariantViolation("The exam has already been submitted.")
