"""
Tests for the in-memory and SQL exam repositories and submission stores
"""
from datetime import datetime, timedelta, timezone

import pytest

from examportal.core.exam_repository import SqlExamRepository
from examportal.core.exceptions import (
    FeedbackAlreadyAttached, SubmissionNotFound, SubmissionStoreError,
)
from examportal.core.models import ExamStatus, Question, QuestionKind, Submission
from examportal.core.session_manager import SessionManager
from examportal.core.submission_store import InMemorySubmissionStore, SqlSubmissionStore
from examportal.database.seed_data import DEMO_EXAM, seed_initial_data

from tests.conftest import ClockRecorder, make_cloud_exam


def _submission(submission_id="sub_1", student_id="student_001", exam_id="exam_1", answers=None):
    return Submission(
        id=submission_id,
        exam_id=exam_id,
        student_id=student_id,
        session_id="sess_1",
        answers=answers if answers is not None else {"q1": "EC2", "q2": "True"},
        score=10,
        max_score=15,
    )


@pytest.fixture(params=["memory", "sql"])
def store(request, session_factory):
    if request.param == "memory":
        return InMemorySubmissionStore()
    return SqlSubmissionStore(session_factory)


class TestSubmissionStores:

    def test_persist_then_fetch(self, store):
        submission_id = store.persist(_submission())
        fetched = store.fetch(submission_id)
        assert fetched.answers == {"q1": "EC2", "q2": "True"}
        assert (fetched.score, fetched.max_score) == (10, 15)
        assert fetched.session_id == "sess_1"
        assert fetched.advisory_feedback is None

    def test_timestamps_come_back_as_utc(self, store):
        started = datetime(2026, 10, 19, 15, 0, 0, 250000, tzinfo=timezone.utc)
        submitted = datetime(2026, 10, 19, 17, 40, 8, tzinfo=timezone(timedelta(hours=2)))
        store.persist(_submission().model_copy(update={"started_at": started, "submitted_at": submitted}))

        fetched = store.fetch("sub_1")
        assert fetched.started_at == started
        assert fetched.submitted_at == submitted
        assert fetched.started_at.utcoffset() == timedelta(0)
        assert fetched.submitted_at.utcoffset() is not None

    def test_fetch_unknown_is_none(self, store):
        assert store.fetch("missing") is None

    def test_no_dedup_by_exam_and_student(self, store):
        store.persist(_submission("sub_1"))
        store.persist(_submission("sub_2"))
        assert {s.id for s in store.list(student_id="student_001", exam_id="exam_1")} == {"sub_1", "sub_2"}

    def test_list_filters(self, store):
        store.persist(_submission("sub_1", student_id="a"))
        store.persist(_submission("sub_2", student_id="b", exam_id="exam_2"))
        assert [s.id for s in store.list(student_id="b")] == ["sub_2"]
        assert [s.id for s in store.list(exam_id="exam_1")] == ["sub_1"]
        assert len(store.list()) == 2

    def test_persist_same_id_twice_fails(self, store):
        store.persist(_submission())
        with pytest.raises(SubmissionStoreError):
            store.persist(_submission())

    def test_empty_answers_round_trip(self, store):
        store.persist(_submission(answers={}))
        assert store.fetch("sub_1").answers == {}

    def test_attach_feedback_once(self, store):
        store.persist(_submission())
        updated = store.attach_feedback("sub_1", "Good work")
        assert updated.advisory_feedback == "Good work"
        assert updated.score == 10
        with pytest.raises(FeedbackAlreadyAttached):
            store.attach_feedback("sub_1", "Again")
        assert store.fetch("sub_1").advisory_feedback == "Good work"

    def test_attach_feedback_unknown_submission(self, store):
        with pytest.raises(SubmissionNotFound):
            store.attach_feedback("missing", "text")


class TestSqlExamRepository:

    def test_save_and_get(self, session_factory):
        repository = SqlExamRepository(session_factory)
        repository.save(make_cloud_exam())
        exam = repository.get("exam_1")
        assert exam.title == "Introduction to Cloud Computing"
        assert [q.id for q in exam.questions] == ["q1", "q2"]
        assert exam.questions[0].options == ("S3", "EC2", "RDS", "Lambda")
        assert exam.questions[1].kind == QuestionKind.TRUE_FALSE
        assert exam.questions[1].rationale == "The provider still runs servers."
        assert exam.max_score == 15

    def test_created_at_comes_back_as_utc(self, session_factory):
        repository = SqlExamRepository(session_factory)
        created = datetime(2026, 1, 5, 9, 30, tzinfo=timezone.utc)
        repository.save(make_cloud_exam().model_copy(update={"created_at": created}))
        exam = repository.get("exam_1")
        assert exam.created_at == created
        assert exam.created_at.tzinfo is not None

    def test_get_unknown_is_none(self, session_factory):
        assert SqlExamRepository(session_factory).get("missing") is None

    def test_save_replaces_questions(self, session_factory):
        repository = SqlExamRepository(session_factory)
        repository.save(make_cloud_exam())
        revised = make_cloud_exam().model_copy(update={
            "title": "Cloud 101",
            "status": ExamStatus.ARCHIVED,
            "questions": (
                Question(id="q2", kind=QuestionKind.SHORT_ANSWER, points=4, prompt="Name a region",
                         reference_answer="us-east-1"),
            ),
        })
        repository.save(revised)

        exam = repository.get("exam_1")
        assert exam.title == "Cloud 101"
        assert exam.status == ExamStatus.ARCHIVED
        assert [(q.id, q.points) for q in exam.questions] == [("q2", 4)]
        assert len(repository.list()) == 1

    def test_seed_is_idempotent(self, session_factory):
        repository = SqlExamRepository(session_factory)
        seed_initial_data(repository)
        seed_initial_data(repository)
        assert [e.id for e in repository.list()] == [DEMO_EXAM.id]


class TestSqlBackedSession:

    def test_attempt_end_to_end_on_sql(self, session_factory):
        repository = SqlExamRepository(session_factory)
        repository.save(make_cloud_exam())
        store = SqlSubmissionStore(session_factory)
        manager = SessionManager(repository, store, clock_factory=ClockRecorder())

        session = manager.start_session("exam_1", "student_001")
        manager.record_answer(session.id, "q1", "EC2")
        manager.record_answer(session.id, "q2", "True")
        submission_id = manager.finish(session.id)

        stored = store.fetch(submission_id)
        assert (stored.score, stored.max_score) == (10, 15)
        assert stored.answers == {"q1": "EC2", "q2": "True"}
