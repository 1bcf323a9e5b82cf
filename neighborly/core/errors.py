"""Lifecycle error taxonomy and classification into user-facing responses."""

from enum import Enum

from pydantic import BaseModel

from neighborly.core.db_client import RecordNotFoundError, StoreError, StoreTimeoutError


class LifecycleError(Exception):
    """Base class for errors raised by lifecycle operations."""


class ValidationError(LifecycleError, ValueError):
    """Malformed input that the caller can correct locally."""


class PermissionDeniedError(LifecycleError, PermissionError):
    """The actor lacks the rights for the operation (or is unauthenticated)."""


class NotFoundError(LifecycleError, KeyError):
    """A referenced help request or task does not exist."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class ConflictError(LifecycleError):
    """A concurrent state change invalidated the operation."""


class ConcurrentUpdateError(ConflictError):
    """A task changed status between being read and being written."""


class InvalidTransitionError(LifecycleError, ValueError):
    """The requested status change is not allowed by the state machine."""


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_PERMISSION_DENIED = "ERR_PERMISSION_DENIED"
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_ALREADY_CLAIMED = "ERR_ALREADY_CLAIMED"
    ERR_CONCURRENT_UPDATE = "ERR_CONCURRENT_UPDATE"
    ERR_INVALID_STATE_TRANSITION = "ERR_INVALID_STATE_TRANSITION"
    ERR_STORE_TIMEOUT = "ERR_STORE_TIMEOUT"
    ERR_STORE_UNAVAILABLE = "ERR_STORE_UNAVAILABLE"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


def classify_error_with_response(exception: Exception) -> ErrorResponse:  # noqa: PLR0911
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised by a lifecycle operation

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    if isinstance(exception, ConcurrentUpdateError):
        return ErrorResponse(
            code=ErrorCode.ERR_CONCURRENT_UPDATE,
            message="This task was updated by someone else while you were changing it.",
            suggestion="Refresh the task to see its current status, then try again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, ConflictError):
        return ErrorResponse(
            code=ErrorCode.ERR_ALREADY_CLAIMED,
            message="This request has already been claimed by someone else.",
            suggestion="Refresh the list of open requests and pick another one.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, InvalidTransitionError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_STATE_TRANSITION,
            message="This action cannot be performed in the current state.",
            suggestion="Tasks move from pending to in progress to done, one step at a time.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, ValidationError):
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION,
            message=str(exception) or "Some of the submitted fields are invalid.",
            suggestion="Correct the highlighted fields and try again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, PermissionError):
        return ErrorResponse(
            code=ErrorCode.ERR_PERMISSION_DENIED,
            message="You don't have permission for this action.",
            suggestion="Sign in with the account that owns this item, or ask an admin.",
            severity=ErrorSeverity.MEDIUM,
        )

    if isinstance(exception, NotFoundError | RecordNotFoundError):
        return ErrorResponse(
            code=ErrorCode.ERR_NOT_FOUND,
            message="That item no longer exists.",
            suggestion="It may have been deleted. Refresh and try again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, StoreTimeoutError):
        return ErrorResponse(
            code=ErrorCode.ERR_STORE_TIMEOUT,
            message="The request took too long to complete.",
            suggestion="Check the current state before retrying; the change may already be saved.",
            severity=ErrorSeverity.HIGH,
        )

    if isinstance(exception, StoreError):
        return ErrorResponse(
            code=ErrorCode.ERR_STORE_UNAVAILABLE,
            message="The data store is currently unavailable.",
            suggestion="Please try again later.",
            severity=ErrorSeverity.HIGH,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
    )
