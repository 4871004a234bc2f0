import random

import pytest

import api.session as session
from licence_exam.services.exam_session import ExamSessionController
from licence_exam.services.question_store import InMemoryQuestionStore
from licence_exam.services.result_sink import InMemoryResultSink
from tests.fakes import FIXED_NOW, ManualTicker, RecordingSleep, make_pool


@pytest.fixture
def ticker():
    return ManualTicker()


@pytest.fixture
def sink():
    return InMemoryResultSink()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def make_exam(ticker, sink, sleep):
    def _make(pool=None, store=None, result_sink=None, **kwargs):
        if store is None:
            store = InMemoryQuestionStore(pool if pool is not None else make_pool(30))
        kwargs.setdefault("ticker", ticker)
        kwargs.setdefault("rng", random.Random(1234))
        kwargs.setdefault("clock", lambda: FIXED_NOW)
        kwargs.setdefault("sleep", sleep)
        return ExamSessionController("user-1", store, result_sink or sink, **kwargs)
    return _make


@pytest.fixture(autouse=True)
def _clear_sessions():
    yield
    session.clear()
