"""
Seed data script - Creates the demo exam
Run this after database initialization: python -m examportal.database.seed_data
"""
from examportal.core.exam_repository import ExamRepository, SqlExamRepository
from examportal.core.models import ExamDefinition, ExamStatus, Question, QuestionKind


DEMO_EXAM = ExamDefinition(
    id="exam_1",
    title="Introduction to Cloud Computing",
    description="Covers basic AWS, GCP, and Azure concepts.",
    duration=45,
    status=ExamStatus.PUBLISHED,
    questions=(
        Question(
            id="q1",
            kind=QuestionKind.SINGLE_CHOICE,
            points=10,
            prompt="Which service is used for scalable virtual servers in AWS?",
            options=("S3", "EC2", "RDS", "Lambda"),
            reference_answer="EC2",
            rationale="EC2 provides resizable compute capacity; S3 is object storage, "
                      "RDS managed databases and Lambda serverless functions.",
        ),
        Question(
            id="q2",
            kind=QuestionKind.TRUE_FALSE,
            points=5,
            prompt="Serverless computing means there are no servers involved.",
            reference_answer="False",
            rationale="Servers still run the code; the provider manages them for you.",
        ),
    ),
)


def seed_initial_data(repository: ExamRepository = None):
    """Create the demo exam if it does not exist yet"""
    print("=" * 60)
    print("Seeding initial database data...")
    print("=" * 60)

    repository = repository or SqlExamRepository()
    if repository.get(DEMO_EXAM.id) is None:
        repository.save(DEMO_EXAM)
        print(f"[OK] Created demo exam: {DEMO_EXAM.title}")
    else:
        print(f"[OK] Demo exam already exists: {DEMO_EXAM.title}")

    print("=" * 60)


if __name__ == "__main__":
    seed_initial_data()
