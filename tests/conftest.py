import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from examportal.core.clock import CountdownClock
from examportal.core.database import init_db, make_engine
from examportal.core.exam_repository import InMemoryExamRepository
from examportal.core.exceptions import SubmissionStoreError
from examportal.core.models import ExamDefinition, Question, QuestionKind
from examportal.core.session_manager import SessionManager
from examportal.core.submission_store import InMemorySubmissionStore


def make_cloud_exam(duration: int = 3) -> ExamDefinition:
    """Two questions worth 10 and 5 points, answers 'EC2' and 'False'"""
    return ExamDefinition(
        id="exam_1",
        title="Introduction to Cloud Computing",
        description="Covers basic AWS, GCP, and Azure concepts.",
        duration=duration,
        questions=(
            Question(
                id="q1",
                kind=QuestionKind.SINGLE_CHOICE,
                points=10,
                prompt="Which service is used for scalable virtual servers in AWS?",
                options=("S3", "EC2", "RDS", "Lambda"),
                reference_answer="EC2",
            ),
            Question(
                id="q2",
                kind=QuestionKind.TRUE_FALSE,
                points=5,
                prompt="Serverless computing means there are no servers involved.",
                reference_answer="False",
                rationale="The provider still runs servers.",
            ),
        ),
    )


class FlakyStore(InMemorySubmissionStore):
    """Fails the first `failures` persist calls, then behaves normally"""

    def __init__(self, failures: int = 1):
        super().__init__()
        self.failures = failures
        self.persist_calls = 0

    def persist(self, submission):
        self.persist_calls += 1
        if self.persist_calls <= self.failures:
            raise SubmissionStoreError("database is locked")
        return super().persist(submission)


class ClockRecorder:
    """Clock factory handing out manual clocks and remembering them"""

    def __init__(self):
        self.clocks = []

    def __call__(self):
        clock = CountdownClock()
        self.clocks.append(clock)
        return clock

    @property
    def last(self) -> CountdownClock:
        return self.clocks[-1]


@pytest.fixture
def cloud_exam():
    return make_cloud_exam()


@pytest.fixture
def exam_repository(cloud_exam):
    return InMemoryExamRepository([cloud_exam])


@pytest.fixture
def submission_store():
    return InMemorySubmissionStore()


@pytest.fixture
def clocks():
    return ClockRecorder()


@pytest.fixture
def manager(exam_repository, submission_store, clocks):
    return SessionManager(exam_repository, submission_store, clock_factory=clocks)


@pytest.fixture
def session_factory():
    """sessionmaker bound to a fresh in-memory SQLite database"""
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()
