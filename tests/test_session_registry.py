import time

import pytest

import api.session as session
from licence_exam.errors import PersistError
from licence_exam.services.exam_session import ExamSessionController
from licence_exam.services.question_store import InMemoryQuestionStore
from licence_exam.services.result_sink import InMemoryResultSink
from tests.fakes import FailingSink, ManualTicker, RecordingSleep, make_pool


def _exam(user_id="u1"):
    return ExamSessionController(user_id, InMemoryQuestionStore([]), InMemoryResultSink(), ticker=ManualTicker())


def test_state_is_created_per_user():
    session.put("u1", "practice_questions", ["x"])
    assert session.get("u1", "practice_questions") == ["x"]
    assert session.get("u2", "practice_questions") == []


def test_replacing_exam_closes_previous():
    old, new = _exam(), _exam()
    session.put("u1", "exam", old)
    session.put("u1", "exam", new)
    assert old.closed
    assert not new.closed


def test_reset_closes_exam():
    exam = _exam()
    session.put("u1", "exam", exam)
    session.reset("u1")
    assert exam.closed
    assert session.get("u1", "exam") is None


def test_cleanup_expired_closes_idle_exams(monkeypatch):
    exam = _exam()
    session.put("u1", "exam", exam)
    session.get_session("u2")

    later = time.time() + 10
    monkeypatch.setattr(session.time, "time", lambda: later)

    assert session.cleanup_expired(ttl=5) == 2
    assert exam.closed


async def test_cleanup_keeps_session_with_unsaved_result(monkeypatch):
    exam = ExamSessionController(
        "u1", InMemoryQuestionStore(make_pool(20)), FailingSink(),
        ticker=ManualTicker(), sleep=RecordingSleep(),
    )
    await exam.load_questions("en")
    exam.start()
    with pytest.raises(PersistError):
        await exam.submit(confirmed=True)
    session.put("u1", "exam", exam)

    later = time.time() + 10
    monkeypatch.setattr(session.time, "time", lambda: later)

    assert session.cleanup_expired(ttl=5) == 0
    assert session.get_session("u1")["exam"] is exam
