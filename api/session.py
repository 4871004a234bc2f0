"""
api/session.py — per-user in-memory session registry

Each authenticated user id gets one independent state record holding the
exam controller and the current practice set. Records idle longer than
SESSION_TTL are dropped, unless their exam holds a result that is not yet
stored. Dropping a record closes its exam controller so no countdown
outlives it.

One exam controller per user: two browser tabs for the same user drive the
same attempt rather than starting a second one.
"""

import threading
import time
from typing import Any, Dict, List, Optional

from config import SESSION_TTL

_lock = threading.Lock()
_sessions: Dict[str, Dict[str, Any]] = {}
_timestamps: Dict[str, float] = {}


def _new_state() -> Dict[str, Any]:
    return {
        "exam": None,               # ExamSessionController | None
        "practice_questions": [],   # List[Question]
    }


def _close(state: Dict[str, Any]) -> None:
    exam = state.get("exam")
    if exam is not None and not exam.closed:
        exam.close()


def _holds_unsaved_result(state: Dict[str, Any]) -> bool:
    exam = state.get("exam")
    return exam is not None and exam.result is not None and not exam.persisted


def get_session(user_id: str) -> Dict[str, Any]:
    """The user's state record, created on first access. Access refreshes the TTL."""
    with _lock:
        now = time.time()
        state = _sessions.get(user_id)
        if (
            state is not None
            and now - _timestamps[user_id] > SESSION_TTL
            and not _holds_unsaved_result(state)
        ):
            _close(state)
            state = None
        if state is None:
            state = _new_state()
            _sessions[user_id] = state
        _timestamps[user_id] = now
        return state


def get(user_id: str, key: str, default=None):
    return get_session(user_id).get(key, default)


def put(user_id: str, key: str, value) -> None:
    state = get_session(user_id)
    with _lock:
        if key == "exam" and state.get("exam") is not None and state["exam"] is not value:
            state["exam"].close()
        state[key] = value


def reset(user_id: str) -> None:
    """Drop the user's state, abandoning any running exam."""
    with _lock:
        state = _sessions.pop(user_id, None)
        _timestamps.pop(user_id, None)
    if state is not None:
        _close(state)


def cleanup_expired(ttl: Optional[float] = None) -> int:
    """Drop idle sessions, except those still holding an unsaved result. Returns how many were removed."""
    ttl = SESSION_TTL if ttl is None else ttl
    now = time.time()
    removed: List[Dict[str, Any]] = []
    with _lock:
        expired = [
            uid for uid, ts in _timestamps.items()
            if now - ts > ttl and not _holds_unsaved_result(_sessions[uid])
        ]
        for uid in expired:
            removed.append(_sessions.pop(uid))
            del _timestamps[uid]
    for state in removed:
        _close(state)
    return len(removed)


def clear() -> None:
    """Drop every session (shutdown and tests)."""
    with _lock:
        states = list(_sessions.values())
        _sessions.clear()
        _timestamps.clear()
    for state in states:
        _close(state)
