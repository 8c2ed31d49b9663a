"""
Timed exam session: Loading -> Active -> Terminating -> Submitted

A finish request from the student and expiry of the clock are the two
ways out of Active. Whichever arrives first wins the transition; the
other is dropped. The termination payload (cancel clock, freeze ledger,
grade, persist) runs at most once per session. A failed persistence
leaves the session in Terminating, where only the persistence step is
retried.
"""
import threading
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from examportal.core.clock import CountdownClock
from examportal.core.exam_repository import ExamRepository
from examportal.core.exceptions import (
    AlreadyTerminating, ExamNotFound, InvalidConfiguration,
    InvalidQuestionIndex, SessionNotActive, UnknownQuestion,
)
from examportal.core.grading import grade
from examportal.core.ledger import AnswerLedger
from examportal.core.models import (
    ExamDefinition, PublicQuestion, Question, SessionStatus, Submission, utcnow,
)
from examportal.core.submission_store import SubmissionStore


SessionListener = Callable[[str, Dict[str, Any]], None]


class SessionState(str, Enum):
    LOADING = "loading"
    ACTIVE = "active"
    TERMINATING = "terminating"
    SUBMITTED = "submitted"


class ExamSession:
    """One student's timed attempt at one exam"""

    def __init__(
        self,
        exam_id: str,
        student_id: str,
        exam_repository: ExamRepository,
        submission_store: SubmissionStore,
        clock: CountdownClock,
        session_id: str = None,
    ):
        self.id = session_id or uuid.uuid4().hex
        self.exam_id = exam_id
        self.student_id = student_id
        self.exam: Optional[ExamDefinition] = None
        self.state = SessionState.LOADING
        self.cursor = 0
        self.clock = clock
        self.ledger = AnswerLedger(is_active=lambda: self.state == SessionState.ACTIVE)
        self.started_at: Optional[datetime] = None
        self.termination_reason: Optional[str] = None
        self.submission_id: Optional[str] = None
        self.last_error: Optional[str] = None

        self._exam_repository = exam_repository
        self._submission_store = submission_store
        self._lock = threading.RLock()
        self._pending: Optional[Submission] = None
        self._persisting = False
        self._listeners: List[SessionListener] = []

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def subscribe(self, listener: SessionListener):
        """Register for tick / expired / state_changed / submitted / error events"""
        self._listeners.append(listener)

    def _notify(self, event: str, **data):
        for listener in list(self._listeners):
            listener(event, data)

    def _transition(self, new_state: SessionState):
        old_state = self.state
        self.state = new_state
        print(f"[SESSION] {self.id}: {old_state.value} -> {new_state.value}", flush=True)
        self._notify("state_changed", old=old_state.value, new=new_state.value)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> ExamDefinition:
        """Fetch the exam, enter Active and start the clock"""
        with self._lock:
            if self.state != SessionState.LOADING:
                raise SessionNotActive(f"Session {self.id} has already been loaded")

            exam = self._exam_repository.get(self.exam_id)
            if exam is None:
                raise ExamNotFound(f"Exam {self.exam_id} not found")
            if not exam.questions:
                raise InvalidConfiguration(f"Exam {self.exam_id} has no questions")

            self.clock.on_tick(self._on_tick)
            self.clock.on_expire(self._on_expire)
            # Expiry needs self._lock, so it cannot fire before Active is entered
            self.clock.start(exam.duration)
            self.exam = exam
            self.started_at = utcnow()
            self._transition(SessionState.ACTIVE)
        return exam

    # ------------------------------------------------------------------
    # Active window
    # ------------------------------------------------------------------

    @property
    def remaining(self) -> Optional[int]:
        return self.clock.remaining

    @property
    def current_question(self) -> Optional[Question]:
        if self.exam is None:
            return None
        return self.exam.questions[self.cursor]

    def record_answer(self, question_id: str, answer: str):
        with self._lock:
            if self.state != SessionState.ACTIVE:
                raise SessionNotActive(f"Session {self.id} is {self.state.value}, answers are closed")
            if self.exam.question(question_id) is None:
                raise UnknownQuestion(f"Question {question_id!r} is not part of exam {self.exam.id}")
            self.ledger.set_answer(question_id, answer)

    def navigate(self, index: int) -> Question:
        with self._lock:
            if self.state != SessionState.ACTIVE:
                raise SessionNotActive(f"Session {self.id} is {self.state.value}")
            count = len(self.exam.questions)
            if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < count:
                raise InvalidQuestionIndex(f"Question index {index!r} is outside 0..{count - 1}")
            self.cursor = index
            return self.exam.questions[index]

    # ------------------------------------------------------------------
    # Termination
    # ------------------------------------------------------------------

    def finish(self) -> str:
        """Submit the attempt and return the submission id.

        Once Submitted, repeated calls return the same id. While a
        submission is in flight further calls raise AlreadyTerminating.
        After a failed persistence a call retries persistence only.
        """
        with self._lock:
            if self.state == SessionState.SUBMITTED:
                return self.submission_id
            if self.state == SessionState.TERMINATING:
                self._claim_retry()
            else:
                self._begin_termination("finished")
        return self._complete()

    def retry_submission(self) -> str:
        """Re-run the persistence step after a store failure"""
        with self._lock:
            if self.state == SessionState.SUBMITTED:
                return self.submission_id
            if self.state != SessionState.TERMINATING:
                raise SessionNotActive(f"Session {self.id} has nothing to retry")
            self._claim_retry()
        return self._complete()

    def _begin_termination(self, reason: str):
        # caller holds self._lock; this is the single Active -> Terminating guard
        if self.state != SessionState.ACTIVE:
            raise SessionNotActive(f"Session {self.id} is {self.state.value}")
        self.termination_reason = reason
        self._persisting = True
        self._transition(SessionState.TERMINATING)
        self.clock.cancel()
        self.ledger.freeze()

    def _claim_retry(self):
        if self._persisting:
            raise AlreadyTerminating(f"Session {self.id} is already being submitted")
        self._persisting = True

    def _complete(self) -> str:
        try:
            if self._pending is None:
                self._pending = self._build_submission()
            submission_id = self._submission_store.persist(self._pending)
        except Exception as e:
            with self._lock:
                self._persisting = False
                self.last_error = f"{type(e).__name__}: {e}"
            print(f"[SESSION] {self.id}: submission failed, still terminating ({self.last_error})", flush=True)
            self._notify("error", error=self.last_error)
            raise

        with self._lock:
            self._persisting = False
            self.last_error = None
            self.submission_id = submission_id
            self._transition(SessionState.SUBMITTED)
        self._notify("submitted", submission_id=submission_id)
        return submission_id

    def _build_submission(self) -> Submission:
        answers = self.ledger.freeze()
        result = grade(self.exam, answers)
        return Submission(
            id=uuid.uuid4().hex,
            exam_id=self.exam.id,
            student_id=self.student_id,
            session_id=self.id,
            answers=dict(answers),
            score=result.score,
            max_score=result.max_score,
            started_at=self.started_at,
            submitted_at=utcnow(),
        )

    # ------------------------------------------------------------------
    # Clock events
    # ------------------------------------------------------------------

    def _on_tick(self, remaining: int):
        self._notify("tick", remaining=remaining)

    def _on_expire(self):
        with self._lock:
            if self.state != SessionState.ACTIVE:
                return
            print(f"[SESSION] {self.id}: time expired, submitting", flush=True)
            self._notify("expired")
            self._begin_termination("expired")
        try:
            self._complete()
        except Exception:
            # Recorded in last_error and broadcast; the host retries from Terminating
            return

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def status(self) -> SessionStatus:
        with self._lock:
            current = self.current_question
            return SessionStatus(
                session_id=self.id,
                exam_id=self.exam_id,
                student_id=self.student_id,
                state=self.state.value,
                cursor=self.cursor,
                question_count=len(self.exam.questions) if self.exam else 0,
                remaining=self.remaining,
                answers=self.ledger.as_dict(),
                current_question=PublicQuestion.from_question(current) if current else None,
                submission_id=self.submission_id,
                last_error=self.last_error,
            )
