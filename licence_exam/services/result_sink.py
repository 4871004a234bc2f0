"""
services/result_sink.py

Append-only destinations for exam results.
"""

import logging
from abc import ABC, abstractmethod
from typing import List

from licence_exam.models.result_model import ExamResult
from licence_exam.services.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


class ResultSink(ABC):
    @abstractmethod
    async def write(self, result: ExamResult) -> None:
        """Append one result. Raises StoreError on failure."""


class InMemoryResultSink(ResultSink):
    def __init__(self):
        self.results: List[ExamResult] = []

    async def write(self, result: ExamResult) -> None:
        self.results.append(result)

    def for_user(self, user_id: str) -> List[ExamResult]:
        return [r for r in self.results if r.user_id == user_id]


class SupabaseResultSink(ResultSink):
    TABLE = "exams"

    def __init__(self, client: SupabaseClient):
        self._client = client

    async def write(self, result: ExamResult) -> None:
        await self._client.insert(self.TABLE, result.to_row())
        logger.info(f"Result stored for user {result.user_id}: {result.status} ({result.score})")
