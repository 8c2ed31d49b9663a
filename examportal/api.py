"""
All API endpoints for the exam portal
Exams, timed sessions, submissions, review reports and advisory feedback
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from examportal.core.exam_repository import SqlExamRepository
from examportal.core.exceptions import (
    ExamNotFound, ExamPortalError, FeedbackAlreadyAttached, SubmissionNotFound,
)
from examportal.core.grading import review
from examportal.core.llm_service import generate_advisory_feedback
from examportal.core.models import (
    ExamDefinition, FinishResponse, NavigateRequest, PublicExam, PublicQuestion,
    RecordAnswerRequest, ReviewReport, SessionStatus, StartSessionRequest, Submission,
)
from examportal.core.session_manager import SessionManager
from examportal.core.submission_store import SqlSubmissionStore

router = APIRouter()

# Built at import so concurrent first requests share one manager
_manager = SessionManager(SqlExamRepository(), SqlSubmissionStore())


def get_session_manager() -> SessionManager:
    """Dependency returning the process-wide session manager (SQL-backed)"""
    return _manager


def _http_error(e: ExamPortalError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)


def _load_exam(manager: SessionManager, exam_id: str) -> ExamDefinition:
    exam = manager.exam_repository.get(exam_id)
    if exam is None:
        raise _http_error(ExamNotFound(f"Exam {exam_id} not found"))
    return exam


def _load_submission(manager: SessionManager, submission_id: str) -> Submission:
    submission = manager.submission_store.fetch(submission_id)
    if submission is None:
        raise _http_error(SubmissionNotFound(f"Submission {submission_id} not found"))
    return submission


# ============================================================================
# Health
# ============================================================================

@router.get("/api/health", tags=["health"])
def health(manager: SessionManager = Depends(get_session_manager)):
    return {"status": "ok", "live_sessions": len(manager.live_sessions())}


# ============================================================================
# Exam Endpoints
# ============================================================================

@router.get("/api/exams", tags=["exams"], response_model=List[PublicExam])
def list_exams(manager: SessionManager = Depends(get_session_manager)):
    """List exams without reference answers"""
    return [PublicExam.from_definition(exam) for exam in manager.exam_repository.list()]


@router.get("/api/exams/{exam_id}", tags=["exams"], response_model=PublicExam)
def get_exam(exam_id: str, manager: SessionManager = Depends(get_session_manager)):
    """Exam as a student sees it: prompts and options, no reference answers"""
    return PublicExam.from_definition(_load_exam(manager, exam_id))


@router.put("/api/exams/{exam_id}", tags=["exams"], response_model=ExamDefinition)
def save_exam(exam_id: str, exam: ExamDefinition, manager: SessionManager = Depends(get_session_manager)):
    """Create or replace an exam (instructor authoring)"""
    if exam.id != exam_id:
        raise HTTPException(status_code=400, detail="Exam id in body does not match the URL")
    return manager.exam_repository.save(exam)


# ============================================================================
# Session Endpoints
# ============================================================================

@router.post("/api/sessions", tags=["sessions"], response_model=SessionStatus, status_code=201)
def start_session(request: StartSessionRequest, manager: SessionManager = Depends(get_session_manager)):
    """Start a timed attempt"""
    try:
        session = manager.start_session(request.exam_id, request.student_id)
    except ExamPortalError as e:
        raise _http_error(e)
    return session.status()


@router.get("/api/sessions/{session_id}", tags=["sessions"], response_model=SessionStatus)
def get_session_status(session_id: str, manager: SessionManager = Depends(get_session_manager)):
    try:
        return manager.get_session(session_id).status()
    except ExamPortalError as e:
        raise _http_error(e)


@router.put("/api/sessions/{session_id}/answers", tags=["sessions"], response_model=SessionStatus)
def record_answer(session_id: str, request: RecordAnswerRequest,
                  manager: SessionManager = Depends(get_session_manager)):
    try:
        manager.record_answer(session_id, request.question_id, request.answer)
        return manager.get_session(session_id).status()
    except ExamPortalError as e:
        raise _http_error(e)


@router.post("/api/sessions/{session_id}/navigate", tags=["sessions"], response_model=PublicQuestion)
def navigate(session_id: str, request: NavigateRequest, manager: SessionManager = Depends(get_session_manager)):
    try:
        question = manager.navigate(session_id, request.index)
    except ExamPortalError as e:
        raise _http_error(e)
    return PublicQuestion.from_question(question)


@router.post("/api/sessions/{session_id}/finish", tags=["sessions"], response_model=FinishResponse)
def finish_session(session_id: str, manager: SessionManager = Depends(get_session_manager)):
    """Submit the attempt. Repeating the call after submission returns the same id."""
    try:
        submission_id = manager.finish(session_id)
        session = manager.get_session(session_id)
    except ExamPortalError as e:
        raise _http_error(e)
    return FinishResponse(session_id=session.id, state=session.state.value, submission_id=submission_id)


@router.post("/api/sessions/{session_id}/retry", tags=["sessions"], response_model=FinishResponse)
def retry_submission(session_id: str, manager: SessionManager = Depends(get_session_manager)):
    """Retry persisting a graded attempt whose first store call failed"""
    try:
        submission_id = manager.retry_submission(session_id)
        session = manager.get_session(session_id)
    except ExamPortalError as e:
        raise _http_error(e)
    return FinishResponse(session_id=session.id, state=session.state.value, submission_id=submission_id)


# ============================================================================
# Submission Endpoints
# ============================================================================

@router.get("/api/submissions", tags=["submissions"], response_model=List[Submission])
def list_submissions(student_id: Optional[str] = None, exam_id: Optional[str] = None,
                     manager: SessionManager = Depends(get_session_manager)):
    return manager.submission_store.list(student_id=student_id, exam_id=exam_id)


@router.get("/api/submissions/{submission_id}", tags=["submissions"], response_model=Submission)
def get_submission(submission_id: str, manager: SessionManager = Depends(get_session_manager)):
    return _load_submission(manager, submission_id)


@router.get("/api/submissions/{submission_id}/review", tags=["submissions"], response_model=ReviewReport)
def get_review(submission_id: str, manager: SessionManager = Depends(get_session_manager)):
    """Per-question correctness, recomputed from the stored answers"""
    submission = _load_submission(manager, submission_id)
    exam = _load_exam(manager, submission.exam_id)
    return review(exam, submission)


@router.post("/api/submissions/{submission_id}/feedback", tags=["submissions"], response_model=Submission)
async def create_feedback(submission_id: str, manager: SessionManager = Depends(get_session_manager)):
    """Generate advisory feedback with the LLM and attach it to the submission"""
    submission = _load_submission(manager, submission_id)
    if submission.advisory_feedback is not None:
        raise _http_error(FeedbackAlreadyAttached())
    exam = _load_exam(manager, submission.exam_id)

    feedback = await generate_advisory_feedback(exam, submission)
    try:
        return manager.submission_store.attach_feedback(submission_id, feedback)
    except ExamPortalError as e:
        raise _http_error(e)
