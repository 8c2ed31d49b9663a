"""
Session manager: the host-facing entry points for timed attempts
"""
import threading
from typing import Callable, Dict, List, Union

from examportal.core.clock import CountdownClock, ThreadedCountdownClock
from examportal.core.config import CLOCK_UNIT_SECONDS
from examportal.core.exam_repository import ExamRepository
from examportal.core.exceptions import SessionNotActive, SessionNotFound
from examportal.core.models import Question, SessionStatus
from examportal.core.session_machine import ExamSession, SessionListener, SessionState
from examportal.core.submission_store import SubmissionStore


ClockFactory = Callable[[], CountdownClock]


def threaded_clock_factory(unit_seconds: float = CLOCK_UNIT_SECONDS) -> ClockFactory:
    return lambda: ThreadedCountdownClock(unit_seconds)


class ArchivedSession:
    """What is kept of a submitted session: its final status and submission id"""

    state = SessionState.SUBMITTED

    def __init__(self, final_status: SessionStatus):
        self.id = final_status.session_id
        self.submission_id = final_status.submission_id
        self._final_status = final_status

    def status(self) -> SessionStatus:
        return self._final_status

    def finish(self) -> str:
        return self.submission_id

    def retry_submission(self) -> str:
        return self.submission_id

    def record_answer(self, question_id: str, answer: str):
        raise SessionNotActive(f"Session {self.id} is submitted, answers are closed")

    def navigate(self, index: int) -> Question:
        raise SessionNotActive(f"Session {self.id} is submitted")

    def subscribe(self, listener: SessionListener):
        raise SessionNotActive(f"Session {self.id} is submitted, no further events")


class SessionManager:
    """Tracks live sessions and archives them once they are submitted"""

    def __init__(
        self,
        exam_repository: ExamRepository,
        submission_store: SubmissionStore,
        clock_factory: ClockFactory = None,
    ):
        self.exam_repository = exam_repository
        self.submission_store = submission_store
        self.clock_factory = clock_factory or threaded_clock_factory()
        self._live: Dict[str, ExamSession] = {}
        self._archived: Dict[str, ArchivedSession] = {}
        self._lock = threading.Lock()

    def start_session(self, exam_id: str, student_id: str) -> ExamSession:
        session = ExamSession(
            exam_id=exam_id,
            student_id=student_id,
            exam_repository=self.exam_repository,
            submission_store=self.submission_store,
            clock=self.clock_factory(),
        )
        session.subscribe(self._archive_on_submit(session))
        # Registered before the clock starts; dropped again if the exam does not load
        with self._lock:
            self._live[session.id] = session
        try:
            session.load()
        except Exception:
            with self._lock:
                self._live.pop(session.id, None)
            raise
        print(f"[SESSION] Started {session.id} for student {student_id} on exam {exam_id}", flush=True)
        return session

    def _archive_on_submit(self, session: ExamSession) -> SessionListener:
        def listener(event, data):
            if event == "submitted":
                archived = ArchivedSession(session.status())
                with self._lock:
                    self._live.pop(session.id, None)
                    self._archived[session.id] = archived
        return listener

    def get_session(self, session_id: str) -> Union[ExamSession, ArchivedSession]:
        with self._lock:
            session = self._live.get(session_id) or self._archived.get(session_id)
        if session is None:
            raise SessionNotFound(f"Session {session_id} not found")
        return session

    def live_sessions(self) -> List[ExamSession]:
        with self._lock:
            return list(self._live.values())

    def record_answer(self, session_id: str, question_id: str, answer: str):
        self.get_session(session_id).record_answer(question_id, answer)

    def navigate(self, session_id: str, index: int) -> Question:
        return self.get_session(session_id).navigate(index)

    def finish(self, session_id: str) -> str:
        return self.get_session(session_id).finish()

    def retry_submission(self, session_id: str) -> str:
        return self.get_session(session_id).retry_submission()

    def subscribe(self, session_id: str, listener: SessionListener):
        self.get_session(session_id).subscribe(listener)

    def shutdown(self):
        """Stop the clocks of every live session without submitting anything"""
        for session in self.live_sessions():
            if session.state == SessionState.ACTIVE:
                session.clock.cancel()
