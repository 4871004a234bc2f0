"""
models/session_state.py

Read-only snapshot of one exam attempt, as reported to the UI.
The live state is owned by ExamSessionController; this model is what it hands out.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from licence_exam.models.question_model import Question


class ExamStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


class ExamState(BaseModel):
    """
    Snapshot of a single exam session.

    Attributes:
        questions:          Questions drawn for this attempt, in display order.
        answers:            {question.id: selected option index}
        current_index:      Question currently on screen (0-based).
        time_remaining:     Seconds left on the countdown.
        integrity_warnings: Focus-loss events seen while in progress.
        status:             not_started → in_progress → submitted.
        score:              Percentage score, set on submission.
        passed:             score >= pass score, set on submission.
        persisted:          True once the result reached the result sink.
        persist_error:      Last result write failure, if any.
    """

    questions: List[Question] = Field(default_factory=list)
    answers: Dict[str, int] = Field(default_factory=dict)
    current_index: int = Field(default=0, ge=0)
    time_remaining: int = Field(default=0, ge=0)
    integrity_warnings: int = Field(default=0, ge=0)
    status: ExamStatus = ExamStatus.NOT_STARTED
    score: Optional[int] = Field(default=None, ge=0, le=100)
    passed: Optional[bool] = None
    persisted: bool = False
    persist_error: Optional[str] = None

    @property
    def answered_count(self) -> int:
        return len(self.answers)
