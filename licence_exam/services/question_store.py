"""
services/question_store.py

Read-only question sources.

Public API:
  - QuestionStore.fetch(language)      : questions for one language, or all when None
  - InMemoryQuestionStore              : fixed pool (built-in samples or a JSON file)
  - SupabaseQuestionStore              : `questions` table on the hosted database
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from licence_exam.models.question_model import Question
from licence_exam.services.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


def parse_questions(rows: Iterable[Dict[str, Any]]) -> List[Question]:
    """Validate raw rows. Invalid rows are skipped with a warning, the rest are kept."""
    questions: List[Question] = []
    for row in rows:
        try:
            questions.append(Question.model_validate(row))
        except ValidationError as e:
            logger.warning(f"Skipping invalid question {row.get('id')!r}: {e.error_count()} error(s)")
    return questions


class QuestionStore(ABC):
    @abstractmethod
    async def fetch(self, language: Optional[str] = None) -> List[Question]:
        """Questions tagged `language`; every question when language is None."""


class InMemoryQuestionStore(QuestionStore):
    def __init__(self, questions: Iterable[Question]):
        self._questions = list(questions)

    @classmethod
    def from_json_file(cls, path: str) -> "InMemoryQuestionStore":
        with open(path, "r", encoding="utf-8") as f:
            rows = json.load(f)
        questions = parse_questions(rows)
        logger.info(f"Loaded {len(questions)} questions from {path}")
        return cls(questions)

    async def fetch(self, language: Optional[str] = None) -> List[Question]:
        if language is None:
            return list(self._questions)
        return [q for q in self._questions if q.language == language]


class SupabaseQuestionStore(QuestionStore):
    TABLE = "questions"

    def __init__(self, client: SupabaseClient):
        self._client = client

    async def fetch(self, language: Optional[str] = None) -> List[Question]:
        filters = {"language": language} if language else None
        rows = await self._client.select(self.TABLE, filters=filters)
        return parse_questions(rows)
