"""
api/routes.py — FastAPI endpoints for the timed exam and the practice exam
"""

import logging
import random
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from config import PRACTICE_QUESTIONS
import api.session as session
from licence_exam.errors import InvariantViolation, LoadError, PersistError
from licence_exam.models.question_model import Question
from licence_exam.models.session_state import ExamStatus
from licence_exam.services.exam_service import grade_practice
from licence_exam.services.exam_session import (
    ExamSessionController, draw_questions, fetch_pool,
)
from licence_exam.services.timer import format_time, is_low_time

logger = logging.getLogger(__name__)

router = APIRouter()

DASHBOARD_URL = "/user/dashboard"


# ── Pydantic request bodies ──────────────────────────────────────────────────

class LoadBody(BaseModel):
    language: str = "en"

class AnswerBody(BaseModel):
    question_id: str
    option_index: int

class NavigateBody(BaseModel):
    index: int = 0

class VisibilityBody(BaseModel):
    hidden: bool

class SubmitBody(BaseModel):
    confirmed: bool = False

class PracticeGradeBody(BaseModel):
    answers: Dict[str, int] = {}


# ── Helpers ──────────────────────────────────────────────────────────────────

def current_user_id(request: Request) -> str:
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise HTTPException(status_code=401, detail="Authentication required.")
    return user_id


def _exam_or_404(user_id: str) -> ExamSessionController:
    exam: Optional[ExamSessionController] = session.get(user_id, "exam")
    if exam is None:
        raise HTTPException(status_code=404, detail="No exam session.")
    return exam


def _rejected(e: InvariantViolation) -> HTTPException:
    return HTTPException(status_code=400, detail=e.message)


def _load_failed(e: LoadError) -> HTTPException:
    return HTTPException(
        status_code=503,
        detail={"message": e.message, "reason": e.reason, "retryable": True},
    )


def _persist_failed(e: PersistError) -> HTTPException:
    # the exam itself is final; only the write can be retried
    return HTTPException(
        status_code=502,
        detail={"message": e.message, "retryable": False, "retry_persist": "/api/exam/retry-persist"},
    )


def _unsaved_result() -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={
            "message": "The submitted exam has not been stored yet.",
            "retryable": False,
            "retry_persist": "/api/exam/retry-persist",
        },
    )


def _state_to_dict(exam: ExamSessionController) -> dict:
    state = exam.snapshot()
    return {
        "status": state.status.value,
        "current_index": state.current_index,
        "total": len(state.questions),
        "answered_count": state.answered_count,
        "answers": state.answers,
        "question_ids": [q.id for q in state.questions],
        "current_question_id": exam.current_question.id if exam.current_question else None,
        "time_remaining": state.time_remaining,
        "time_display": format_time(state.time_remaining),
        "time_low": is_low_time(state.time_remaining),
        "integrity_warnings": state.integrity_warnings,
        "max_warnings": exam.max_warnings,
        "score": state.score,
        "passed": state.passed,
        "persisted": state.persisted,
        "persist_error": state.persist_error,
        "redirect": DASHBOARD_URL if state.persisted else None,
    }


def _question_payload(q: Question, index: int, total: int, saved: Optional[int]) -> dict:
    d = q.public_dict()
    d.update({"index": index, "total": total, "saved_answer": saved})
    return d


# ── Timed exam ───────────────────────────────────────────────────────────────

@router.post("/api/exam/load")
async def load_exam(body: LoadBody, request: Request, user_id: str = Depends(current_user_id)):
    exam: Optional[ExamSessionController] = session.get(user_id, "exam")
    if exam is not None and exam.status is ExamStatus.IN_PROGRESS:
        raise HTTPException(status_code=409, detail="An exam is already in progress for this user.")
    if exam is not None and exam.result is not None and not exam.persisted:
        # a scored attempt must be stored before another one can begin
        raise _unsaved_result()
    if exam is None or exam.status is ExamStatus.SUBMITTED:
        exam = request.app.state.build_exam(user_id)
        session.put(user_id, "exam", exam)

    try:
        questions = await exam.load_questions(body.language)
    except LoadError as e:
        raise _load_failed(e)
    except InvariantViolation as e:
        raise HTTPException(status_code=409, detail=e.message)
    return {"total": len(questions), "language": exam.language, "ok": True}


@router.post("/api/exam/start")
async def start_exam(user_id: str = Depends(current_user_id)):
    exam = _exam_or_404(user_id)
    try:
        exam.start()
    except InvariantViolation as e:
        raise _rejected(e)
    return _state_to_dict(exam)


@router.get("/api/exam/state")
async def get_exam_state(user_id: str = Depends(current_user_id)):
    return _state_to_dict(_exam_or_404(user_id))


@router.get("/api/exam/question/{index}")
async def get_question(index: int, user_id: str = Depends(current_user_id)):
    exam = _exam_or_404(user_id)
    questions = exam.questions
    if exam.status is ExamStatus.NOT_STARTED or not (0 <= index < len(questions)):
        raise HTTPException(status_code=404, detail="Question not found.")
    q = questions[index]
    return _question_payload(q, index, len(questions), exam.answers.get(q.id))


@router.post("/api/exam/answer")
async def save_answer(body: AnswerBody, user_id: str = Depends(current_user_id)):
    exam = _exam_or_404(user_id)
    if exam.status is ExamStatus.NOT_STARTED:
        raise HTTPException(status_code=400, detail="The exam has not started.")
    try:
        exam.select_answer(body.question_id, body.option_index)
    except InvariantViolation as e:
        raise _rejected(e)
    return {"ok": True, "answered_count": len(exam.answers)}


@router.post("/api/exam/navigate")
async def navigate(body: NavigateBody, user_id: str = Depends(current_user_id)):
    exam = _exam_or_404(user_id)
    try:
        idx = exam.go_to_index(body.index)
    except InvariantViolation as e:
        raise _rejected(e)
    return {"index": idx, "ok": True}


@router.post("/api/exam/next")
async def next_question(user_id: str = Depends(current_user_id)):
    exam = _exam_or_404(user_id)
    try:
        idx = exam.next()
    except InvariantViolation as e:
        raise _rejected(e)
    return {"index": idx, "ok": True}


@router.post("/api/exam/previous")
async def previous_question(user_id: str = Depends(current_user_id)):
    exam = _exam_or_404(user_id)
    try:
        idx = exam.previous()
    except InvariantViolation as e:
        raise _rejected(e)
    return {"index": idx, "ok": True}


@router.post("/api/exam/visibility")
async def visibility(body: VisibilityBody, user_id: str = Depends(current_user_id)):
    exam = _exam_or_404(user_id)
    event = await exam.attention_changed(body.hidden)
    return {**event.model_dump(), "state": _state_to_dict(exam)}


@router.post("/api/exam/submit")
async def submit_exam(body: SubmitBody, user_id: str = Depends(current_user_id)):
    exam = _exam_or_404(user_id)
    try:
        result = await exam.submit(body.confirmed)
    except InvariantViolation as e:
        raise _rejected(e)
    except PersistError as e:
        raise _persist_failed(e)
    if result is None:
        return {"submitted": False, "state": _state_to_dict(exam)}
    return {"submitted": True, "state": _state_to_dict(exam)}


@router.post("/api/exam/retry-persist")
async def retry_persist(user_id: str = Depends(current_user_id)):
    exam = _exam_or_404(user_id)
    try:
        stored = await exam.retry_persist()
    except InvariantViolation as e:
        raise _rejected(e)
    except PersistError as e:
        raise _persist_failed(e)
    return {"persisted": stored, "state": _state_to_dict(exam)}


@router.get("/api/exam/result")
async def get_result(user_id: str = Depends(current_user_id)):
    exam = _exam_or_404(user_id)
    result = exam.result
    if result is None:
        raise HTTPException(status_code=400, detail="The exam has not been submitted yet.")
    return {
        "score": result.score,
        "status": result.status,
        "passed": result.passed,
        "completed_at": result.completed_at.isoformat(),
        "total": len(exam.questions),
        "answered_count": len(exam.answers),
        "persisted": exam.persisted,
        "persist_error": exam.persist_error,
    }


@router.delete("/api/exam")
async def abandon_exam(user_id: str = Depends(current_user_id)):
    exam: Optional[ExamSessionController] = session.get(user_id, "exam")
    if exam is not None:
        if exam.result is not None and not exam.persisted:
            try:
                stored = await exam.retry_persist()
            except PersistError:
                stored = False
            if not stored:
                raise _unsaved_result()
        exam.close()
        session.put(user_id, "exam", None)
        logger.info(f"User {user_id}: exam session closed ({exam.status.value})")
    return {"ok": True}


# ── Practice exam ────────────────────────────────────────────────────────────

@router.post("/api/practice/load")
async def load_practice(body: LoadBody, request: Request, user_id: str = Depends(current_user_id)):
    try:
        pool = await fetch_pool(request.app.state.question_store, body.language)
    except LoadError as e:
        raise _load_failed(e)
    questions = draw_questions(pool, PRACTICE_QUESTIONS, random.SystemRandom())
    session.put(user_id, "practice_questions", questions)
    return {
        "total": len(questions),
        "questions": [q.public_dict() for q in questions],
    }


@router.post("/api/practice/grade")
async def grade_practice_exam(body: PracticeGradeBody, user_id: str = Depends(current_user_id)):
    questions = session.get(user_id, "practice_questions", [])
    if not questions:
        raise HTTPException(status_code=400, detail="No practice questions loaded.")
    ids = {q.id for q in questions}
    answers = {qid: idx for qid, idx in body.answers.items() if qid in ids}
    return grade_practice(questions, answers).model_dump()
