"""
SQLAlchemy ORM models for exams, questions, submissions and answers
"""
from datetime import timezone

from sqlalchemy import (
    Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.types import TypeDecorator

from examportal.core.database import Base


class UTCDateTime(TypeDecorator):
    """Stores UTC and always hands back aware datetimes (SQLite drops the offset)"""
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class Exam(Base):
    __tablename__ = "exams"

    id = Column(String(64), primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    time_limit_units = Column(Integer, nullable=False)
    instructor_id = Column(String(64), nullable=True)
    status = Column(String(16), nullable=False, default="published")
    created_at = Column(UTCDateTime(timezone=True), nullable=False)

    questions = relationship(
        "Question",
        back_populates="exam",
        order_by="Question.q_index",
        cascade="all, delete-orphan",
    )


class Question(Base):
    __tablename__ = "questions"
    __table_args__ = (UniqueConstraint("exam_id", "question_key", name="uq_questions_exam_key"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    exam_id = Column(String(64), ForeignKey("exams.id", ondelete="CASCADE"), nullable=False)
    q_index = Column(Integer, nullable=False)
    question_key = Column(String(64), nullable=False)
    kind = Column(String(32), nullable=False)
    points_possible = Column(Integer, nullable=False)
    prompt = Column(Text, nullable=False)
    options_json = Column(Text, nullable=False, default="[]")
    reference_answer = Column(Text, nullable=False)
    rationale = Column(Text, nullable=True)

    exam = relationship("Exam", back_populates="questions")


class Submission(Base):
    __tablename__ = "submissions"
    __table_args__ = (
        Index("ix_submissions_exam_student", "exam_id", "student_id"),
    )

    # Exam ids are not foreign keys: the store is independent of the exam repository
    id = Column(String(64), primary_key=True)
    exam_id = Column(String(64), nullable=False)
    student_id = Column(String(64), nullable=False)
    session_id = Column(String(64), nullable=True)
    score = Column(Integer, nullable=False)
    max_score = Column(Integer, nullable=False)
    started_at = Column(UTCDateTime(timezone=True), nullable=True)
    submitted_at = Column(UTCDateTime(timezone=True), nullable=False)
    advisory_feedback = Column(Text, nullable=True)

    answers = relationship("Answer", back_populates="submission", cascade="all, delete-orphan")


class Answer(Base):
    __tablename__ = "answers"
    __table_args__ = (UniqueConstraint("submission_id", "question_key", name="uq_answers_submission_key"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    submission_id = Column(String(64), ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False)
    question_key = Column(String(64), nullable=False)
    student_answer = Column(Text, nullable=False)

    submission = relationship("Submission", back_populates="answers")
