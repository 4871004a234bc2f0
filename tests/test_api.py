import random

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from licence_exam.services.exam_session import ExamSessionController
from licence_exam.services.question_store import InMemoryQuestionStore
from licence_exam.services.result_sink import InMemoryResultSink
from tests.fakes import FailingSink, ManualTicker, RecordingSleep, make_pool

USER = {"X-User-Id": "user-42"}


def _app(pool=None, sink=None):
    store = InMemoryQuestionStore(make_pool(30) if pool is None else pool)
    sink = sink or InMemoryResultSink()
    app = create_app(question_store=store, result_sink=sink, ticker_factory=ManualTicker)
    app.state.build_exam = lambda user_id: ExamSessionController(
        user_id, store, sink, ticker=ManualTicker(), rng=random.Random(5), sleep=RecordingSleep(),
    )
    return app, sink


@pytest.fixture
def api():
    app, sink = _app()
    with TestClient(app) as client:
        yield client, sink


def _start(client, language="en"):
    assert client.post("/api/exam/load", json={"language": language}, headers=USER).status_code == 200
    resp = client.post("/api/exam/start", headers=USER)
    assert resp.status_code == 200
    return resp.json()


def _answer_all(client, correct=True):
    state = client.get("/api/exam/state", headers=USER).json()
    for i in range(state["total"]):
        q = client.get(f"/api/exam/question/{i}", headers=USER).json()
        assert "correct_index" not in q
        # the pool makes correct_index == numeric suffix % 4
        right = int(q["id"].split("-")[1]) % 4
        choice = right if correct else (right + 1) % 4
        assert client.post(
            "/api/exam/answer", json={"question_id": q["id"], "option_index": choice}, headers=USER
        ).status_code == 200


def test_identity_is_required(api):
    client, _ = api
    assert client.post("/api/exam/load", json={"language": "en"}).status_code == 401
    assert client.get("/health").json() == {"ok": True}


def test_full_exam_flow(api):
    client, sink = api
    state = _start(client)
    assert state["status"] == "in_progress"
    assert state["total"] == 20
    assert (state["time_remaining"], state["time_display"]) == (1800, "30:00")

    _answer_all(client)

    declined = client.post("/api/exam/submit", json={"confirmed": False}, headers=USER).json()
    assert declined["submitted"] is False
    assert declined["state"]["status"] == "in_progress"

    done = client.post("/api/exam/submit", json={"confirmed": True}, headers=USER).json()
    assert done["submitted"] is True
    assert done["state"]["score"] == 100
    assert done["state"]["persisted"] is True
    assert done["state"]["redirect"] == "/user/dashboard"

    result = client.get("/api/exam/result", headers=USER).json()
    assert (result["score"], result["status"], result["passed"]) == (100, "passed", True)
    assert [r.user_id for r in sink.results] == ["user-42"]


def test_load_is_rejected_while_in_progress(api):
    client, _ = api
    _start(client)
    assert client.post("/api/exam/load", json={"language": "en"}, headers=USER).status_code == 409


def test_new_attempt_after_submission(api):
    client, sink = api
    _start(client)
    client.post("/api/exam/submit", json={"confirmed": True}, headers=USER)
    state = _start(client)
    assert state["status"] == "in_progress"
    assert len(sink.results) == 1


def test_empty_pool_returns_retryable_error():
    app, _ = _app(pool=[])
    with TestClient(app) as client:
        resp = client.post("/api/exam/load", json={"language": "ne"}, headers=USER)
    assert resp.status_code == 503
    assert resp.json()["detail"]["retryable"] is True
    assert resp.json()["detail"]["reason"] == "empty"


def test_question_not_served_before_start(api):
    client, _ = api
    client.post("/api/exam/load", json={"language": "en"}, headers=USER)
    assert client.get("/api/exam/question/0", headers=USER).status_code == 404


def test_invalid_answer_is_rejected(api):
    client, _ = api
    _start(client)
    q = client.get("/api/exam/question/0", headers=USER).json()
    resp = client.post("/api/exam/answer", json={"question_id": q["id"], "option_index": 7}, headers=USER)
    assert resp.status_code == 400
    resp = client.post("/api/exam/answer", json={"question_id": "nope", "option_index": 0}, headers=USER)
    assert resp.status_code == 400


def test_navigation_clamps(api):
    client, _ = api
    _start(client)
    assert client.post("/api/exam/navigate", json={"index": 500}, headers=USER).json()["index"] == 19
    assert client.post("/api/exam/next", headers=USER).json()["index"] == 19
    assert client.post("/api/exam/navigate", json={"index": -2}, headers=USER).json()["index"] == 0
    assert client.post("/api/exam/previous", headers=USER).json()["index"] == 0


def test_visibility_warnings_then_auto_submit(api):
    client, sink = api
    _start(client)
    actions = []
    for _ in range(3):
        actions.append(client.post("/api/exam/visibility", json={"hidden": True}, headers=USER).json()["action"])
        client.post("/api/exam/visibility", json={"hidden": False}, headers=USER)

    assert actions == ["warn", "warn", "submitted"]
    state = client.get("/api/exam/state", headers=USER).json()
    assert state["status"] == "submitted"
    assert state["integrity_warnings"] == 3
    assert len(sink.results) == 1


def test_persist_failure_then_retry():
    sink = FailingSink()
    app, _ = _app(sink=sink)
    with TestClient(app) as client:
        _start(client)
        _answer_all(client, correct=False)

        resp = client.post("/api/exam/submit", json={"confirmed": True}, headers=USER)
        assert resp.status_code == 502
        assert resp.json()["detail"]["retryable"] is False
        assert "contact support" in resp.json()["detail"]["message"]

        state = client.get("/api/exam/state", headers=USER).json()
        assert state["status"] == "submitted"
        assert state["persisted"] is False

        sink.failures = 0
        retried = client.post("/api/exam/retry-persist", headers=USER).json()
        assert retried["persisted"] is True
        assert retried["state"]["score"] == 0
    assert len(sink.results) == 1


def test_load_keeps_unsaved_result_until_stored():
    sink = FailingSink()
    app, _ = _app(sink=sink)
    with TestClient(app) as client:
        _start(client)
        _answer_all(client)
        assert client.post("/api/exam/submit", json={"confirmed": True}, headers=USER).status_code == 502

        resp = client.post("/api/exam/load", json={"language": "en"}, headers=USER)
        assert resp.status_code == 409
        assert resp.json()["detail"]["retry_persist"] == "/api/exam/retry-persist"
        state = client.get("/api/exam/state", headers=USER).json()
        assert (state["status"], state["score"], state["persisted"]) == ("submitted", 100, False)

        sink.failures = 0
        assert client.post("/api/exam/retry-persist", headers=USER).json()["persisted"] is True
        assert [r.score for r in sink.results] == [100]

        assert client.post("/api/exam/load", json={"language": "en"}, headers=USER).status_code == 200
    assert len(sink.results) == 1


def test_abandon_keeps_unsaved_result_until_stored():
    sink = FailingSink()
    app, _ = _app(sink=sink)
    with TestClient(app) as client:
        _start(client)
        assert client.post("/api/exam/submit", json={"confirmed": True}, headers=USER).status_code == 502

        resp = client.delete("/api/exam", headers=USER)
        assert resp.status_code == 409
        assert resp.json()["detail"]["retry_persist"] == "/api/exam/retry-persist"
        assert client.get("/api/exam/state", headers=USER).json()["persisted"] is False
        assert sink.results == []

        # abandoning stores the pending result first when the database is back
        sink.failures = 0
        assert client.delete("/api/exam", headers=USER).json() == {"ok": True}
        assert client.get("/api/exam/state", headers=USER).status_code == 404
    assert len(sink.results) == 1


def test_answer_rejected_before_start(api):
    client, _ = api
    client.post("/api/exam/load", json={"language": "en"}, headers=USER)
    state = client.get("/api/exam/state", headers=USER).json()
    resp = client.post(
        "/api/exam/answer", json={"question_id": state["question_ids"][0], "option_index": 0}, headers=USER
    )
    assert resp.status_code == 400
    assert client.get("/api/exam/state", headers=USER).json()["answered_count"] == 0


def test_state_reports_current_question(api):
    client, _ = api
    state = _start(client)
    assert state["current_question_id"] == state["question_ids"][0]

    client.post("/api/exam/navigate", json={"index": 3}, headers=USER)
    state = client.get("/api/exam/state", headers=USER).json()
    assert state["current_question_id"] == state["question_ids"][3]
    assert client.get("/api/exam/question/3", headers=USER).json()["id"] == state["current_question_id"]


def test_default_exam_factory_uses_injected_backends():
    pool = make_pool(25)
    store = InMemoryQuestionStore(pool)
    sink = InMemoryResultSink()
    app = create_app(question_store=store, result_sink=sink, ticker_factory=ManualTicker)
    with TestClient(app) as client:
        state = _start(client)
        assert (state["status"], state["total"], state["time_remaining"]) == ("in_progress", 20, 1800)
        assert set(state["question_ids"]) <= {q.id for q in pool}

        _answer_all(client)
        done = client.post("/api/exam/submit", json={"confirmed": True}, headers=USER).json()
        assert done["state"]["persisted"] is True
    assert [(r.user_id, r.score) for r in sink.results] == [("user-42", 100)]


def test_result_before_submission(api):
    client, _ = api
    _start(client)
    assert client.get("/api/exam/result", headers=USER).status_code == 400


def test_abandon_discards_session(api):
    client, sink = api
    _start(client)
    assert client.delete("/api/exam", headers=USER).json() == {"ok": True}
    assert client.get("/api/exam/state", headers=USER).status_code == 404
    assert sink.results == []


def test_practice_load_and_grade(api):
    client, sink = api
    loaded = client.post("/api/practice/load", json={"language": "ne"}, headers=USER).json()
    assert loaded["total"] == 10
    assert all("correct_index" not in q for q in loaded["questions"])

    answers = {q["id"]: int(q["id"].split("-")[1]) % 4 for q in loaded["questions"][:8]}
    answers["not-in-set"] = 0
    report = client.post("/api/practice/grade", json={"answers": answers}, headers=USER).json()

    assert (report["correct"], report["total"], report["percentage"]) == (8, 10, 80)
    assert len(report["items"]) == 10
    assert sink.results == []


def test_practice_grade_without_load(api):
    client, _ = api
    assert client.post("/api/practice/grade", json={"answers": {}}, headers=USER).status_code == 400
