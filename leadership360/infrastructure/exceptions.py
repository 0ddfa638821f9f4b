"""
Custom exception classes for the leadership assessment engine.

Provides structured error handling with user-friendly messages and a clear
split between fatal configuration problems, rejected input and storage failures.
"""

from __future__ import annotations

from typing import Any


class LeadershipAssessmentError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        user_message: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.user_message = user_message or self._get_default_user_message()

    def _get_default_user_message(self) -> str:
        """Provide a user-friendly version of the error message."""
        return "An unexpected error occurred. Please try again."

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"


class ValidationError(LeadershipAssessmentError):
    """Raised when input validation fails."""

    def __init__(
        self, field: str, message: str, value: Any = None, details: dict[str, Any] | None = None
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=f"Validation failed for field '{field}': {message}",
            details=details or {"field": field, "value": value},
            user_message=f"Invalid {field.replace('_', ' ')}: {message}",
        )


class MultipleValidationError(LeadershipAssessmentError):
    """Raised when a submission carries several invalid values at once."""

    def __init__(self, errors: list[ValidationError]):
        self.validation_errors = errors
        messages = [f"{e.field}: {e.message}" for e in errors]
        super().__init__(
            message=f"Multiple validation errors: {'; '.join(messages)}",
            details={
                "errors": [
                    {"field": e.field, "message": e.message, "value": e.value} for e in errors
                ]
            },
            user_message=f"Please correct {len(errors)} invalid answers and try again.",
        )


class ConfigurationError(LeadershipAssessmentError):
    """Raised when a catalog, theme map, level table or setting is invalid."""

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            details=details or {"config_key": config_key},
            user_message="Configuration error. Please check your settings.",
        )


class QuestionNotFoundError(LeadershipAssessmentError):
    """Raised when a question id is not part of the active catalog."""

    def __init__(self, question_id: Any):
        self.question_id = question_id
        super().__init__(
            message=f"Question with ID {question_id} not found in catalog",
            details={"question_id": question_id},
        )

    def _get_default_user_message(self) -> str:
        return "The selected question could not be found. Please refresh and try again."


class InvalidScoreError(LeadershipAssessmentError, ValueError):
    """Raised when a score outside the 1-5 scale reaches the ingestion boundary."""

    def __init__(self, score: Any):
        self.score = score
        super().__init__(
            message=f"Invalid score: {score}. Must be an integer between 1 and 5",
            details={"score": score},
        )

    def _get_default_user_message(self) -> str:
        return "Please select a score between 1 (Strongly Disagree) and 5 (Strongly Agree)."


class UserNotFoundError(LeadershipAssessmentError):
    """Raised when a user is not found."""

    def __init__(self, user_id: Any):
        self.user_id = user_id
        super().__init__(
            message=f"User with ID {user_id} not found",
            details={"user_id": user_id},
        )

    def _get_default_user_message(self) -> str:
        return "The selected user could not be found."


class RequestNotFoundError(LeadershipAssessmentError):
    """Raised when a manager-assessment request is not found."""

    def __init__(self, request_id: Any):
        self.request_id = request_id
        super().__init__(
            message=f"Assessment request with ID {request_id} not found",
            details={"request_id": request_id},
        )

    def _get_default_user_message(self) -> str:
        return "The assessment request could not be found. It may already be completed."


class ExportError(LeadershipAssessmentError):
    """Raised when an assessment result cannot be exported."""

    def __init__(
        self,
        message: str,
        export_format: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.export_format = export_format
        super().__init__(
            message=message,
            details=details or {"export_format": export_format},
            user_message="Export failed. Please try again or choose a different format.",
        )


class DataImportError(LeadershipAssessmentError):
    """Raised when a score file cannot be imported."""

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.file_path = file_path
        super().__init__(
            message=message,
            details=details or {"file_path": file_path},
            user_message="Import failed. Please check your file and try again.",
        )


class DatabaseError(LeadershipAssessmentError):
    """Raised when database operations fail."""

    def __init__(self, message: str, operation: str, details: dict[str, Any] | None = None):
        self.operation = operation
        super().__init__(
            message=f"Database error during {operation}: {message}",
            details=details or {"operation": operation},
            user_message="A database error occurred. Please try again in a moment.",
        )


class ConnectionError(DatabaseError):
    """Raised when database connection fails."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, operation="connection", details=details)
        self.user_message = (
            "Unable to connect to the database. Please check your connection and try again."
        )


class IntegrityError(DatabaseError):
    """Raised when database integrity constraints are violated."""

    def __init__(
        self,
        message: str,
        constraint: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.constraint = constraint
        super().__init__(
            message=message,
            operation="integrity_check",
            details=details or {"constraint": constraint},
        )
        self.user_message = self._constraint_message()

    def _constraint_message(self) -> str:
        if self.constraint:
            if "unique" in self.constraint.lower():
                return "This record already exists. Please use a different value."
            elif "foreign" in self.constraint.lower():
                return "Referenced user no longer exists. Please refresh and try again."
            elif "check" in self.constraint.lower():
                return "A stored value failed a constraint check. Please verify your input."
        return "Data integrity error. Please check your input and try again."


def handle_database_error(e: Exception, operation: str = "database operation") -> DatabaseError:
    """
    Convert generic database exceptions to appropriate custom exceptions.

    Args:
        e: The original exception
        operation: Description of the operation that failed

    Returns:
        Appropriate DatabaseError subclass
    """
    error_msg = str(e).lower()

    if "connection" in error_msg or "timeout" in error_msg:
        return ConnectionError(str(e))
    elif "unique constraint" in error_msg or "duplicate" in error_msg:
        return IntegrityError(str(e), constraint="unique")
    elif "foreign key" in error_msg or "foreign_key" in error_msg:
        return IntegrityError(str(e), constraint="foreign_key")
    elif "check constraint" in error_msg:
        return IntegrityError(str(e), constraint="check")
    else:
        return DatabaseError(str(e), operation)


def create_user_friendly_error_message(error: Exception) -> str:
    """
    Create a user-friendly error message from any exception.

    Example:
        >>> error = ValidationError("email", "cannot be empty")
        >>> create_user_friendly_error_message(error)
        'Invalid email: cannot be empty'
    """
    if isinstance(error, LeadershipAssessmentError):
        return error.user_message

    error_type = type(error).__name__
    messages = {
        "ValueError": "Invalid input provided. Please check your data and try again.",
        "KeyError": "Required information is missing. Please check your input.",
        "TypeError": "Incorrect data type provided. Please check your input format.",
    }
    return messages.get(
        error_type, "An unexpected error occurred. Please try again or contact support."
    )


def log_error_details(error: Exception, context: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Create structured error details for logging.

    Args:
        error: The exception to log
        context: Additional context information

    Returns:
        Dictionary with structured error details
    """
    details = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context or {},
    }

    if isinstance(error, LeadershipAssessmentError):
        details.update({"user_message": error.user_message, "error_details": error.details})

    return details
