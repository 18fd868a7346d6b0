"""Application error taxonomy and classification into API responses."""

from enum import Enum

from pydantic import BaseModel


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_AUTHENTICATION_FAILED = "ERR_AUTHENTICATION_FAILED"
    ERR_PERMISSION_DENIED = "ERR_PERMISSION_DENIED"
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_CONFLICT = "ERR_CONFLICT"
    ERR_INTERNAL = "ERR_INTERNAL"


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    code: str = ErrorCode.ERR_INTERNAL
    severity: ErrorSeverity = ErrorSeverity.HIGH

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Missing or malformed input fields."""

    status_code = 400
    code = ErrorCode.ERR_VALIDATION
    severity = ErrorSeverity.LOW

    @classmethod
    def from_messages(cls, messages: list[str]) -> "ValidationError":
        """Build a single error listing every field problem."""
        return cls(", ".join(messages))


class AuthenticationError(AppError):
    """Missing or bad credentials or bearer token."""

    status_code = 401
    code = ErrorCode.ERR_AUTHENTICATION_FAILED
    severity = ErrorSeverity.MEDIUM


class AuthorizationError(AppError):
    """Authenticated actor is not allowed to perform the operation."""

    status_code = 403
    code = ErrorCode.ERR_PERMISSION_DENIED
    severity = ErrorSeverity.MEDIUM


class NotFoundError(AppError):
    """Referenced resource does not exist."""

    status_code = 404
    code = ErrorCode.ERR_NOT_FOUND
    severity = ErrorSeverity.LOW


class ConflictError(AppError):
    """Operation conflicts with current state (already decided, duplicate email)."""

    status_code = 400
    code = ErrorCode.ERR_CONFLICT
    severity = ErrorSeverity.LOW


class ErrorResponse(BaseModel):
    """Structured error classification used to build the response envelope."""

    status_code: int
    code: str
    message: str
    severity: ErrorSeverity


INTERNAL_ERROR_MESSAGE = "Server error"


def classify_error_with_response(exception: Exception, *, expose_internal: bool = True) -> ErrorResponse:
    """Classify an error raised while handling a request.

    Args:
        exception: The exception raised during execution
        expose_internal: Whether unexpected error details may be shown to the client

    Returns:
        ErrorResponse with status code, code, message, and severity
    """
    if isinstance(exception, AppError):
        return ErrorResponse(
            status_code=exception.status_code,
            code=exception.code,
            message=exception.message,
            severity=exception.severity,
        )

    message = f"{INTERNAL_ERROR_MESSAGE}: {exception}" if expose_internal else INTERNAL_ERROR_MESSAGE
    return ErrorResponse(
        status_code=500,
        code=ErrorCode.ERR_INTERNAL,
        message=message,
        severity=ErrorSeverity.CRITICAL,
    )
