"""
Pydantic data models for exams, submissions, grading results and API payloads
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


TRUE_FALSE_OPTIONS = ("True", "False")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuestionKind(str, Enum):
    SINGLE_CHOICE = "single_choice"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"


class ExamStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    COMPLETED = "completed"
    ARCHIVED = "archived"


# ============================================================================
# Exam definitions
# ============================================================================

class Question(BaseModel):
    """A single exam question with the one answer string considered correct"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    kind: QuestionKind
    points: int = Field(ge=1)
    prompt: str
    options: Tuple[str, ...] = ()
    reference_answer: str
    rationale: Optional[str] = None

    @model_validator(mode="after")
    def check_reference_answer(self):
        if self.kind == QuestionKind.SINGLE_CHOICE:
            if not self.options:
                raise ValueError(f"single-choice question {self.id!r} requires a non-empty option list")
            if self.reference_answer not in self.options:
                raise ValueError(f"reference answer of question {self.id!r} is not one of its options")
        elif self.kind == QuestionKind.TRUE_FALSE:
            if self.options and set(self.options) != set(TRUE_FALSE_OPTIONS):
                raise ValueError(f"true/false question {self.id!r} may only offer 'True' and 'False'")
            if self.reference_answer not in TRUE_FALSE_OPTIONS:
                raise ValueError(f"reference answer of true/false question {self.id!r} must be 'True' or 'False'")
        return self

    @property
    def choices(self) -> Tuple[str, ...]:
        """Options presented to the student (empty for short answer)"""
        if self.kind == QuestionKind.TRUE_FALSE:
            return TRUE_FALSE_OPTIONS
        if self.kind == QuestionKind.SINGLE_CHOICE:
            return self.options
        return ()


class ExamDefinition(BaseModel):
    """An authored exam. Immutable once a session has loaded it."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: str
    description: str = ""
    duration: int = Field(ge=1, description="Time limit in clock units")
    questions: Tuple[Question, ...] = ()
    instructor_id: Optional[str] = None
    status: ExamStatus = ExamStatus.PUBLISHED
    created_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def check_unique_question_ids(self):
        seen = set()
        for question in self.questions:
            if question.id in seen:
                raise ValueError(f"duplicate question id {question.id!r} in exam {self.id!r}")
            seen.add(question.id)
        return self

    @property
    def max_score(self) -> int:
        return sum(q.points for q in self.questions)

    def question(self, question_id: str) -> Optional[Question]:
        for q in self.questions:
            if q.id == question_id:
                return q
        return None


class PublicQuestion(BaseModel):
    """Question as shown to a student during an attempt (no reference answer)"""
    id: str
    kind: QuestionKind
    points: int
    prompt: str
    options: List[str]

    @classmethod
    def from_question(cls, question: Question) -> "PublicQuestion":
        return cls(
            id=question.id,
            kind=question.kind,
            points=question.points,
            prompt=question.prompt,
            options=list(question.choices),
        )


class PublicExam(BaseModel):
    id: str
    title: str
    description: str
    duration: int
    status: ExamStatus
    question_count: int
    max_score: int
    questions: List[PublicQuestion]

    @classmethod
    def from_definition(cls, exam: ExamDefinition) -> "PublicExam":
        return cls(
            id=exam.id,
            title=exam.title,
            description=exam.description,
            duration=exam.duration,
            status=exam.status,
            question_count=len(exam.questions),
            max_score=exam.max_score,
            questions=[PublicQuestion.from_question(q) for q in exam.questions],
        )


# ============================================================================
# Submissions and grading
# ============================================================================

class Submission(BaseModel):
    """One scored attempt. Only advisory_feedback may be set after creation, once."""
    model_config = ConfigDict(frozen=True)

    id: str
    exam_id: str
    student_id: str
    session_id: Optional[str] = None
    answers: Dict[str, str] = Field(default_factory=dict)
    score: int = Field(ge=0)
    max_score: int = Field(ge=0)
    started_at: Optional[datetime] = None
    submitted_at: datetime = Field(default_factory=utcnow)
    advisory_feedback: Optional[str] = None

    @model_validator(mode="after")
    def check_score_bounds(self):
        if self.score > self.max_score:
            raise ValueError(f"score {self.score} exceeds max score {self.max_score}")
        return self


class QuestionOutcome(BaseModel):
    question_id: str
    answer: Optional[str] = None
    correct: bool
    points_awarded: int
    points_possible: int


class GradeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int
    max_score: int
    outcomes: Tuple[QuestionOutcome, ...] = ()


class ReviewItem(BaseModel):
    question_id: str
    kind: QuestionKind
    prompt: str
    options: List[str]
    points: int
    submitted_answer: Optional[str] = None
    reference_answer: str
    rationale: Optional[str] = None
    correct: bool


class ReviewReport(BaseModel):
    submission_id: str
    exam_id: str
    exam_title: str
    student_id: str
    submitted_at: datetime
    score: int
    max_score: int
    mastery_index: int
    passed: bool
    items: List[ReviewItem]
    advisory_feedback: Optional[str] = None


# ============================================================================
# API request / response models
# ============================================================================

class StartSessionRequest(BaseModel):
    exam_id: str
    student_id: str


class RecordAnswerRequest(BaseModel):
    question_id: str
    answer: str


class NavigateRequest(BaseModel):
    index: int


class SessionStatus(BaseModel):
    session_id: str
    exam_id: str
    student_id: str
    state: str
    cursor: int
    question_count: int
    remaining: Optional[int] = None
    answers: Dict[str, str]
    current_question: Optional[PublicQuestion] = None
    submission_id: Optional[str] = None
    last_error: Optional[str] = None


class FinishResponse(BaseModel):
    session_id: str
    state: str
    submission_id: str
