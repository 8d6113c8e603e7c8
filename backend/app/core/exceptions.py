import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str | int):
        super().__init__(
            message=f"{resource} not found",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "identifier": str(identifier)},
        )


class UnauthorizedError(AppException):
    """Authentication required."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class ForbiddenError(AppException):
    """Insufficient permissions."""

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
        )


class ValidationError(AppException):
    """Validation error."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"field": field} if field else {},
        )


class GradingTimeoutError(AppException):
    """Grading exceeded its processing budget."""

    def __init__(self, elapsed_seconds: float, graded_count: int):
        super().__init__(
            message="Test submission took too long to process. Please try again.",
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
        )
        self.elapsed_seconds = elapsed_seconds
        self.graded_count = graded_count


class SubmissionSaveError(AppException):
    """
    A graded attempt could not be persisted after all retries.

    Grading succeeded; only the write failed. `backup_id` lets support match
    the logged backup payload to the user.
    """

    def __init__(self, backup_id: str, attempts: int, retryable: bool = True):
        super().__init__(
            message="Your test was graded but could not be saved. Please try submitting again.",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"attempts": attempts},
        )
        self.error_code = "SAVE_FAILED"
        self.backup_id = backup_id
        self.attempts = attempts
        self.retryable = retryable


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.message,
            "details": exc.details,
        },
    )


async def submission_save_exception_handler(
    request: Request, exc: SubmissionSaveError
) -> JSONResponse:
    """Handler for exhausted submission saves."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "errorCode": exc.error_code,
            "retryable": exc.retryable,
            "backupId": exc.backup_id,
            "message": exc.message,
        },
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail,
        },
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected errors in full and return a message that leaks nothing."""
    logger.exception(
        "Unhandled error on %s %s",
        request.method,
        request.url.path,
        extra={"error_type": type(exc).__name__},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )
