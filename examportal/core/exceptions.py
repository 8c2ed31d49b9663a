"""
Domain errors for the assessment engine

Every error carries the HTTP status the API layer maps it to.
"""


class ExamPortalError(Exception):
    """Base class for all engine errors"""
    status_code = 500

    def __init__(self, message: str = None):
        super().__init__(message or self.__doc__)
        self.message = message or self.__doc__


class InvalidConfiguration(ExamPortalError):
    """Invalid clock or exam configuration"""
    status_code = 400


class ExamNotFound(ExamPortalError):
    """Exam not found"""
    status_code = 404


class SessionNotFound(ExamPortalError):
    """Session not found"""
    status_code = 404


class SubmissionNotFound(ExamPortalError):
    """Submission not found"""
    status_code = 404


class SessionNotActive(ExamPortalError):
    """Session is not accepting answers"""
    status_code = 409


class InvalidQuestionIndex(ExamPortalError):
    """Question index out of range"""
    status_code = 400


class UnknownQuestion(ExamPortalError):
    """Question does not belong to this exam"""
    status_code = 400


class AlreadyTerminating(ExamPortalError):
    """Session is already being submitted"""
    status_code = 409


class FeedbackAlreadyAttached(ExamPortalError):
    """Advisory feedback has already been attached to this submission"""
    status_code = 409


class SubmissionStoreError(ExamPortalError):
    """Submission could not be persisted"""
    status_code = 503
