from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class ExamResult(BaseModel):
    """
    Outcome of one submitted exam attempt.
    Created exactly once per session, never mutated afterwards.
    """
    user_id: str = Field(..., min_length=1)
    status: Literal["passed", "failed"]
    score: int = Field(..., ge=0, le=100)
    categories: List[str] = Field(default_factory=list)
    completed_at: datetime

    model_config = {"frozen": True}

    @property
    def passed(self) -> bool:
        return self.status == "passed"

    def to_row(self) -> Dict[str, Any]:
        """Row layout of the `exams` table."""
        return {
            "user_id": self.user_id,
            "status": self.status,
            "score": self.score,
            "categories": list(self.categories),
            "completed_at": self.completed_at.isoformat(),
        }


class PracticeItem(BaseModel):
    question_id: str
    selected_index: Optional[int] = None
    correct_index: int
    is_correct: bool


class CategoryScore(BaseModel):
    category: str
    total: int = 0
    correct: int = 0
    incorrect: int = 0
    unanswered: int = 0
    score: int = 0


class PracticeReport(BaseModel):
    """Graded practice attempt. Never persisted."""
    correct: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    percentage: int = Field(..., ge=0, le=100)
    items: List[PracticeItem] = Field(default_factory=list)
    categories: List[CategoryScore] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_counts(self) -> "PracticeReport":
        if self.correct > self.total:
            raise ValueError("correct cannot exceed total")
        return self
