"""
licence_exam/errors.py

Error types raised by the exam core. Routes translate them to HTTP responses.
"""

from typing import Optional


class ExamError(Exception):
    """Base class for every error the exam core raises."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StoreError(ExamError):
    """Transport or protocol failure talking to the question store or result sink."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LoadError(ExamError):
    """
    The question pool could not be loaded.

    reason:
        "store" — the store failed (network, HTTP error)
        "empty" — no questions in any language after every fallback
    Always recoverable: the caller may retry load_questions().
    """

    def __init__(self, message: str, reason: str = "store"):
        super().__init__(message)
        self.reason = reason


class PersistError(ExamError):
    """Writing the exam result failed. The session stays submitted."""


class InvariantViolation(ExamError):
    """A call that would corrupt session state. Rejected with no side effect."""
