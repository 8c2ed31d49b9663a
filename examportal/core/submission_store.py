"""
Submission stores

A store keeps every submission it is given. It never merges or
deduplicates by exam and student: retakes produce separate records.
"""
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from examportal.core import db_models
from examportal.core.database import get_db_session
from examportal.core.exceptions import (
    FeedbackAlreadyAttached, SubmissionNotFound, SubmissionStoreError,
)
from examportal.core.models import Submission


class SubmissionStore(ABC):

    @abstractmethod
    def persist(self, submission: Submission) -> str:
        """Store a new submission and return its identifier"""

    @abstractmethod
    def fetch(self, submission_id: str) -> Optional[Submission]:
        ...

    @abstractmethod
    def list(self, student_id: str = None, exam_id: str = None) -> List[Submission]:
        ...

    @abstractmethod
    def attach_feedback(self, submission_id: str, feedback: str) -> Submission:
        """Set the advisory feedback of a submission. Allowed once."""


class InMemorySubmissionStore(SubmissionStore):

    def __init__(self):
        self._submissions: Dict[str, Submission] = {}
        self._lock = threading.Lock()

    def persist(self, submission: Submission) -> str:
        with self._lock:
            if submission.id in self._submissions:
                raise SubmissionStoreError(f"Submission {submission.id} already exists")
            self._submissions[submission.id] = submission
        print(f"[STORE] Persisted submission {submission.id} ({submission.score}/{submission.max_score})", flush=True)
        return submission.id

    def fetch(self, submission_id: str) -> Optional[Submission]:
        return self._submissions.get(submission_id)

    def list(self, student_id: str = None, exam_id: str = None) -> List[Submission]:
        with self._lock:
            subs = list(self._submissions.values())
        if student_id:
            subs = [s for s in subs if s.student_id == student_id]
        if exam_id:
            subs = [s for s in subs if s.exam_id == exam_id]
        return subs

    def attach_feedback(self, submission_id: str, feedback: str) -> Submission:
        with self._lock:
            submission = self._submissions.get(submission_id)
            if submission is None:
                raise SubmissionNotFound(f"Submission {submission_id} not found")
            if submission.advisory_feedback is not None:
                raise FeedbackAlreadyAttached()
            updated = submission.model_copy(update={"advisory_feedback": feedback})
            self._submissions[submission_id] = updated
            return updated


def _submission_from_row(row: db_models.Submission) -> Submission:
    return Submission(
        id=row.id,
        exam_id=row.exam_id,
        student_id=row.student_id,
        session_id=row.session_id,
        answers={a.question_key: a.student_answer for a in row.answers},
        score=row.score,
        max_score=row.max_score,
        started_at=row.started_at,
        submitted_at=row.submitted_at,
        advisory_feedback=row.advisory_feedback,
    )


class SqlSubmissionStore(SubmissionStore):
    """Stores each submission and its answers in one transaction"""

    def __init__(self, session_factory: sessionmaker = None):
        self.session_factory = session_factory

    def persist(self, submission: Submission) -> str:
        try:
            with get_db_session(self.session_factory) as db:
                row = db_models.Submission(
                    id=submission.id,
                    exam_id=submission.exam_id,
                    student_id=submission.student_id,
                    session_id=submission.session_id,
                    score=submission.score,
                    max_score=submission.max_score,
                    started_at=submission.started_at,
                    submitted_at=submission.submitted_at,
                    advisory_feedback=submission.advisory_feedback,
                )
                row.answers = [
                    db_models.Answer(question_key=key, student_answer=value)
                    for key, value in submission.answers.items()
                ]
                db.add(row)
        except SQLAlchemyError as e:
            print(f"[STORE] Failed to persist submission {submission.id}: {type(e).__name__}: {e}", flush=True)
            raise SubmissionStoreError(f"Could not persist submission: {e}") from e

        print(f"[STORE] Persisted submission {submission.id} ({submission.score}/{submission.max_score})", flush=True)
        return submission.id

    def fetch(self, submission_id: str) -> Optional[Submission]:
        with get_db_session(self.session_factory) as db:
            row = db.query(db_models.Submission).filter(db_models.Submission.id == submission_id).first()
            return _submission_from_row(row) if row else None

    def list(self, student_id: str = None, exam_id: str = None) -> List[Submission]:
        with get_db_session(self.session_factory) as db:
            query = db.query(db_models.Submission)
            if student_id:
                query = query.filter(db_models.Submission.student_id == student_id)
            if exam_id:
                query = query.filter(db_models.Submission.exam_id == exam_id)
            rows = query.order_by(db_models.Submission.submitted_at.desc()).all()
            return [_submission_from_row(row) for row in rows]

    def attach_feedback(self, submission_id: str, feedback: str) -> Submission:
        with get_db_session(self.session_factory) as db:
            # Conditional update so two concurrent attaches cannot both win
            updated = db.query(db_models.Submission).filter(
                db_models.Submission.id == submission_id,
                db_models.Submission.advisory_feedback.is_(None),
            ).update({"advisory_feedback": feedback}, synchronize_session=False)

            if not updated:
                exists = db.query(db_models.Submission.id).filter(
                    db_models.Submission.id == submission_id
                ).first()
                if not exists:
                    raise SubmissionNotFound(f"Submission {submission_id} not found")
                raise FeedbackAlreadyAttached()

        return self.fetch(submission_id)
