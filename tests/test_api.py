"""
Tests for the HTTP API
"""
import threading

import pytest
from fastapi.testclient import TestClient

from examportal import api
from examportal.core.session_manager import SessionManager
from examportal.main import app

from tests.conftest import FlakyStore


@pytest.fixture
def client(manager):
    app.dependency_overrides[api.get_session_manager] = lambda: manager
    yield TestClient(app)
    app.dependency_overrides.clear()


def _start(client, exam_id="exam_1", student_id="student_001"):
    response = client.post("/api/sessions", json={"exam_id": exam_id, "student_id": student_id})
    assert response.status_code == 201, response.text
    return response.json()["session_id"]


class TestExamEndpoints:

    def test_list_exams_hides_reference_answers(self, client):
        response = client.get("/api/exams")
        assert response.status_code == 200
        exams = response.json()
        assert [e["id"] for e in exams] == ["exam_1"]
        assert "EC2" in exams[0]["questions"][0]["options"]
        assert "reference_answer" not in response.text

    def test_get_exam_unknown_404(self, client):
        assert client.get("/api/exams/nope").status_code == 404

    def test_save_exam(self, client, exam_repository):
        body = {
            "id": "exam_2",
            "title": "Geography",
            "duration": 10,
            "questions": [
                {"id": "g1", "kind": "short_answer", "points": 3, "prompt": "Capital of France?",
                 "reference_answer": "Paris"},
            ],
        }
        response = client.put("/api/exams/exam_2", json=body)
        assert response.status_code == 200, response.text
        assert exam_repository.get("exam_2").max_score == 3

    def test_save_exam_invalid_question_422(self, client):
        body = {
            "id": "exam_2",
            "title": "Broken",
            "duration": 10,
            "questions": [
                {"id": "g1", "kind": "single_choice", "points": 3, "prompt": "?",
                 "options": ["a"], "reference_answer": "b"},
            ],
        }
        assert client.put("/api/exams/exam_2", json=body).status_code == 422

    def test_save_exam_id_mismatch_400(self, client):
        body = {"id": "other", "title": "x", "duration": 1}
        assert client.put("/api/exams/exam_2", json=body).status_code == 400


class TestSessionEndpoints:

    def test_start_unknown_exam_404(self, client):
        response = client.post("/api/sessions", json={"exam_id": "nope", "student_id": "s"})
        assert response.status_code == 404

    def test_full_attempt_and_review(self, client):
        session_id = _start(client)

        response = client.put(f"/api/sessions/{session_id}/answers", json={"question_id": "q1", "answer": "EC2"})
        assert response.status_code == 200
        assert response.json()["answers"] == {"q1": "EC2"}

        response = client.post(f"/api/sessions/{session_id}/navigate", json={"index": 1})
        assert response.status_code == 200
        assert response.json()["id"] == "q2"
        assert response.json()["options"] == ["True", "False"]

        client.put(f"/api/sessions/{session_id}/answers", json={"question_id": "q2", "answer": "True"})

        response = client.post(f"/api/sessions/{session_id}/finish")
        assert response.status_code == 200
        finish = response.json()
        assert finish["state"] == "submitted"

        submission_id = finish["submission_id"]
        submission = client.get(f"/api/submissions/{submission_id}").json()
        assert (submission["score"], submission["max_score"]) == (10, 15)

        report = client.get(f"/api/submissions/{submission_id}/review").json()
        assert report["mastery_index"] == 67
        assert report["passed"] is False
        assert [item["correct"] for item in report["items"]] == [True, False]

    def test_finish_twice_returns_same_submission(self, client, submission_store):
        session_id = _start(client)
        first = client.post(f"/api/sessions/{session_id}/finish").json()["submission_id"]
        second = client.post(f"/api/sessions/{session_id}/finish").json()["submission_id"]
        assert first == second
        assert len(submission_store.list()) == 1

    def test_answer_after_finish_409(self, client):
        session_id = _start(client)
        client.post(f"/api/sessions/{session_id}/finish")
        response = client.put(f"/api/sessions/{session_id}/answers", json={"question_id": "q1", "answer": "EC2"})
        assert response.status_code == 409

    def test_navigate_out_of_range_400(self, client):
        session_id = _start(client)
        response = client.post(f"/api/sessions/{session_id}/navigate", json={"index": -1})
        assert response.status_code == 400
        assert client.get(f"/api/sessions/{session_id}").json()["cursor"] == 0

    def test_unknown_question_400(self, client):
        session_id = _start(client)
        response = client.put(f"/api/sessions/{session_id}/answers", json={"question_id": "zz", "answer": "x"})
        assert response.status_code == 400

    def test_unknown_session_404(self, client):
        assert client.get("/api/sessions/nope").status_code == 404
        assert client.post("/api/sessions/nope/finish").status_code == 404

    def test_store_failure_then_retry(self, exam_repository, clocks):
        store = FlakyStore(failures=1)
        manager = SessionManager(exam_repository, store, clock_factory=clocks)
        app.dependency_overrides[api.get_session_manager] = lambda: manager
        try:
            client = TestClient(app)
            session_id = _start(client)

            response = client.post(f"/api/sessions/{session_id}/finish")
            assert response.status_code == 503
            status = client.get(f"/api/sessions/{session_id}").json()
            assert status["state"] == "terminating"
            assert "database is locked" in status["last_error"]

            response = client.post(f"/api/sessions/{session_id}/retry")
            assert response.status_code == 200
            assert response.json()["state"] == "submitted"
            assert len(store.list()) == 1
        finally:
            app.dependency_overrides.clear()


class TestSessionManagerDependency:

    def test_concurrent_first_requests_share_one_manager(self):
        seen = []
        threads = [threading.Thread(target=lambda: seen.append(api.get_session_manager())) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)
        assert len(seen) == 8
        assert all(m is seen[0] for m in seen)
        assert isinstance(seen[0], SessionManager)

    def test_status_after_finish_comes_from_archive(self, client):
        session_id = _start(client)
        client.put(f"/api/sessions/{session_id}/answers", json={"question_id": "q1", "answer": "EC2"})
        submission_id = client.post(f"/api/sessions/{session_id}/finish").json()["submission_id"]

        status = client.get(f"/api/sessions/{session_id}").json()
        assert status["state"] == "submitted"
        assert status["submission_id"] == submission_id
        assert status["answers"] == {"q1": "EC2"}


class TestSubmissionEndpoints:

    def test_list_submissions_filters(self, client):
        for student in ("a", "b", "a"):
            session_id = _start(client, student_id=student)
            client.post(f"/api/sessions/{session_id}/finish")
        assert len(client.get("/api/submissions", params={"student_id": "a"}).json()) == 2
        assert len(client.get("/api/submissions", params={"exam_id": "exam_1"}).json()) == 3

    def test_unknown_submission_404(self, client):
        assert client.get("/api/submissions/nope").status_code == 404
        assert client.get("/api/submissions/nope/review").status_code == 404

    def test_feedback_attached_once(self, client, monkeypatch):
        calls = []

        async def fake_feedback(exam, submission):
            calls.append(submission.id)
            return "Solid start. Review serverless concepts."

        monkeypatch.setattr(api, "generate_advisory_feedback", fake_feedback)
        session_id = _start(client)
        submission_id = client.post(f"/api/sessions/{session_id}/finish").json()["submission_id"]

        response = client.post(f"/api/submissions/{submission_id}/feedback")
        assert response.status_code == 200
        assert response.json()["advisory_feedback"].startswith("Solid start")
        assert response.json()["score"] == 0

        assert client.post(f"/api/submissions/{submission_id}/feedback").status_code == 409
        assert calls == [submission_id]

        report = client.get(f"/api/submissions/{submission_id}/review").json()
        assert report["advisory_feedback"].startswith("Solid start")
        assert report["score"] == 0


def test_health(client):
    response = client.get("/api/health")
    assert response.json() == {"status": "ok", "live_sessions": 0}
