"""
Exact-match grading and the review report built on it

grade() is the single source of truth for correctness. It is used when a
session is submitted and again, from the stored answers, whenever a
submission is reviewed.
"""
from typing import Mapping, Optional

from examportal.core.config import MASTERY_PASS_THRESHOLD
from examportal.core.models import (
    ExamDefinition, GradeResult, Question, QuestionOutcome, ReviewItem,
    ReviewReport, Submission,
)


def is_correct(question: Question, answer: Optional[str]) -> bool:
    """Present and string-equal to the reference answer. No trimming, no case folding."""
    return answer is not None and answer == question.reference_answer


def grade(exam: ExamDefinition, answers: Mapping[str, str]) -> GradeResult:
    score = 0
    max_score = 0
    outcomes = []
    for question in exam.questions:
        max_score += question.points
        answer = answers.get(question.id)
        correct = is_correct(question, answer)
        awarded = question.points if correct else 0
        score += awarded
        outcomes.append(QuestionOutcome(
            question_id=question.id,
            answer=answer,
            correct=correct,
            points_awarded=awarded,
            points_possible=question.points,
        ))
    return GradeResult(score=score, max_score=max_score, outcomes=tuple(outcomes))


def mastery_index(score: int, max_score: int) -> int:
    """Percentage score, rounded half up to a whole number"""
    return int(score * 100 / (max_score or 1) + 0.5)


def review(exam: ExamDefinition, submission: Submission,
           pass_threshold: int = MASTERY_PASS_THRESHOLD) -> ReviewReport:
    """Rebuild per-question correctness for a stored submission.

    Score and max score are re-derived from the exam's current questions,
    not copied from the submission.
    """
    result = grade(exam, submission.answers)
    items = []
    for question, outcome in zip(exam.questions, result.outcomes):
        items.append(ReviewItem(
            question_id=question.id,
            kind=question.kind,
            prompt=question.prompt,
            options=list(question.choices),
            points=question.points,
            submitted_answer=outcome.answer,
            reference_answer=question.reference_answer,
            rationale=question.rationale,
            correct=outcome.correct,
        ))

    mastery = mastery_index(result.score, result.max_score)
    return ReviewReport(
        submission_id=submission.id,
        exam_id=exam.id,
        exam_title=exam.title,
        student_id=submission.student_id,
        submitted_at=submission.submitted_at,
        score=result.score,
        max_score=result.max_score,
        mastery_index=mastery,
        passed=mastery >= pass_threshold,
        items=items,
        advisory_feedback=submission.advisory_feedback,
    )
