"""
Exam lookup and authoring storage
"""
import json
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from sqlalchemy.orm import Session, sessionmaker

from examportal.core import db_models
from examportal.core.database import get_db_session
from examportal.core.models import ExamDefinition, ExamStatus, Question, QuestionKind


class ExamRepository(ABC):
    """Resolves exam identifiers to definitions"""

    @abstractmethod
    def get(self, exam_id: str) -> Optional[ExamDefinition]:
        ...

    @abstractmethod
    def list(self) -> List[ExamDefinition]:
        ...

    @abstractmethod
    def save(self, exam: ExamDefinition) -> ExamDefinition:
        """Insert or replace an exam"""


class InMemoryExamRepository(ExamRepository):

    def __init__(self, exams: List[ExamDefinition] = None):
        self._exams: Dict[str, ExamDefinition] = {}
        self._lock = threading.Lock()
        for exam in exams or []:
            self.save(exam)

    def get(self, exam_id: str) -> Optional[ExamDefinition]:
        return self._exams.get(exam_id)

    def list(self) -> List[ExamDefinition]:
        with self._lock:
            return list(self._exams.values())

    def save(self, exam: ExamDefinition) -> ExamDefinition:
        with self._lock:
            self._exams[exam.id] = exam
        return exam


def _question_from_row(row: db_models.Question) -> Question:
    return Question(
        id=row.question_key,
        kind=QuestionKind(row.kind),
        points=row.points_possible,
        prompt=row.prompt,
        options=tuple(json.loads(row.options_json or "[]")),
        reference_answer=row.reference_answer,
        rationale=row.rationale,
    )


def _exam_from_row(row: db_models.Exam) -> ExamDefinition:
    return ExamDefinition(
        id=row.id,
        title=row.title,
        description=row.description or "",
        duration=row.time_limit_units,
        questions=tuple(_question_from_row(q) for q in row.questions),
        instructor_id=row.instructor_id,
        status=ExamStatus(row.status),
        created_at=row.created_at,
    )


def _question_rows(exam: ExamDefinition) -> List[db_models.Question]:
    return [
        db_models.Question(
            q_index=index,
            question_key=q.id,
            kind=q.kind.value,
            points_possible=q.points,
            prompt=q.prompt,
            options_json=json.dumps(list(q.options)),
            reference_answer=q.reference_answer,
            rationale=q.rationale,
        )
        for index, q in enumerate(exam.questions)
    ]


class SqlExamRepository(ExamRepository):

    def __init__(self, session_factory: sessionmaker = None):
        self.session_factory = session_factory

    def get(self, exam_id: str) -> Optional[ExamDefinition]:
        with get_db_session(self.session_factory) as db:
            row = db.query(db_models.Exam).filter(db_models.Exam.id == exam_id).first()
            return _exam_from_row(row) if row else None

    def list(self) -> List[ExamDefinition]:
        with get_db_session(self.session_factory) as db:
            rows = db.query(db_models.Exam).order_by(db_models.Exam.created_at).all()
            return [_exam_from_row(row) for row in rows]

    def save(self, exam: ExamDefinition) -> ExamDefinition:
        with get_db_session(self.session_factory) as db:
            row = db.query(db_models.Exam).filter(db_models.Exam.id == exam.id).first()
            if row is None:
                row = db_models.Exam(id=exam.id)
                db.add(row)
            else:
                # Drop old questions first so re-used keys don't hit the unique constraint
                row.questions.clear()
                db.flush()
            self._apply(db, row, exam)
        return exam

    @staticmethod
    def _apply(db: Session, row: db_models.Exam, exam: ExamDefinition):
        row.title = exam.title
        row.description = exam.description
        row.time_limit_units = exam.duration
        row.instructor_id = exam.instructor_id
        row.status = exam.status.value
        row.created_at = exam.created_at
        row.questions.extend(_question_rows(exam))
        db.flush()
