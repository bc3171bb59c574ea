# ats_intake/core/exceptions.py

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from ats_intake.schemas.submission import FieldError


class IntakeError(Exception):
    """Base exception for candidate intake errors.

    Every subclass carries the HTTP status it maps to, so the API layer can
    render it without knowing which component raised it.
    """
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SubmissionValidationError(IntakeError):
    """Raised when a submission fails validation. Carries every field error."""
    status_code = 400

    def __init__(self, errors: List["FieldError"], message: str = "Validation failed"):
        super().__init__(message)
        self.errors = list(errors)


class ConflictError(IntakeError):
    """Raised when a candidate with the same email already exists."""
    status_code = 409


class NotFoundError(IntakeError):
    """Raised when a requested record does not exist."""
    status_code = 404


class StorageError(IntakeError):
    """Raised when the file store or the database fails.

    The message shown to the client is generic; the original cause is kept on
    ``cause`` for logging.
    """
    status_code = 500

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
