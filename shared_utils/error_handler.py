"""
Structured error handling and response formatting.
Provides consistent ``{"error": ..., "code": ...}`` responses.
"""

from typing import Optional, Dict, Any, List
import logging

from shared_utils.constants import ErrorCode, LogScope
from shared_utils.logging_utils import get_scoped_logger


class AppException(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        error_code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        http_status: int = 500
    ):
        self.error_code = error_code
        self.message = message
        self.context = context or {}
        self.http_status = http_status
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to response dictionary.

        Context is logged, never returned to the client.
        """
        return {
            "error": self.message,
            "code": self.error_code,
        }


class ValidationError(AppException):
    """Validation/input error."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            error_code=ErrorCode.INVALID_INPUT.value,
            message=message,
            context=context,
            http_status=400
        )


class NotFoundError(AppException):
    """Referenced meeting or report does not exist."""

    def __init__(self, resource: str, resource_id: Any, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            error_code=ErrorCode.NOT_FOUND.value,
            message=f"{resource} not found",
            context={**(context or {}), "resource": resource, "id": resource_id},
            http_status=404
        )


class StorageError(AppException):
    """Underlying store unavailable or constraint violated.

    The client only sees ``message``; driver details go into ``context``.
    """

    def __init__(
        self,
        message: str = "Storage operation failed",
        context: Optional[Dict[str, Any]] = None,
        error_code: str = ErrorCode.STORAGE_ERROR.value,
    ):
        super().__init__(
            error_code=error_code,
            message=message,
            context=context,
            http_status=500
        )


class PartialFetchError(StorageError):
    """One or more legs of a fan-out read failed."""

    def __init__(self, failed: List[str], context: Optional[Dict[str, Any]] = None):
        self.failed = list(failed)
        super().__init__(
            message=f"Failed to fetch reports: {', '.join(self.failed)}",
            context={**(context or {}), "failed": self.failed},
            error_code=ErrorCode.PARTIAL_FETCH_FAILED.value,
        )


def log_exception(
    exc: Exception,
    scope: str = LogScope.ERROR_HANDLER,
    logger: Optional[logging.Logger] = None
) -> None:
    """Log exception with structured context.

    Args:
        exc: Exception to log
        scope: Log scope identifier
        logger: Optional custom logger (uses structlog if not provided)
    """
    if logger is None:
        logger = get_scoped_logger(scope)

    if isinstance(exc, AppException):
        logger.error(
            "app_exception",
            error_code=exc.error_code,
            message=exc.message,
            http_status=exc.http_status,
            context=exc.context
        )
    else:
        logger.error(
            "unexpected_exception",
            error_type=type(exc).__name__,
            message=str(exc),
            exc_info=exc,
        )


def handle_error(
    exc: Exception,
    scope: str = LogScope.ERROR_HANDLER,
    default_error_code: str = ErrorCode.UNEXPECTED_ERROR.value
) -> Dict[str, Any]:
    """Log an exception and return the client-facing error body.

    Args:
        exc: Exception to handle
        scope: Log scope
        default_error_code: Code for non-AppException errors

    Returns:
        Error response dictionary without internal details.
    """
    log_exception(exc, scope)

    if isinstance(exc, AppException):
        return exc.to_dict()
    return {
        "error": "An unexpected error occurred",
        "code": default_error_code,
    }
