"""
Domain error taxonomy.

Every failure a handler can surface maps to one of these classes. The HTTP
layer converts them to structured JSON via ``study_app_exception_handler``.
``ServiceError`` is the exception: the AI chat pipeline absorbs it and turns
it into an in-band assistant message.
"""

import logging
from enum import Enum
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in API error bodies."""

    UNAUTHENTICATED = "UNAUTHENTICATED"
    NOT_FOUND = "NOT_FOUND"
    ACCESS_DENIED = "ACCESS_DENIED"
    CONFLICT = "CONFLICT"
    INVALID_OPERATION = "INVALID_OPERATION"
    SERVICE_ERROR = "SERVICE_ERROR"


class StudyAppError(Exception):
    """Base class for all domain errors."""

    error_code: ErrorCode = ErrorCode.INVALID_OPERATION
    status_code: int = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details,
        }


class Unauthenticated(StudyAppError):
    """No caller identity on a mutation."""

    error_code = ErrorCode.UNAUTHENTICATED
    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class NotFound(StudyAppError):
    """Referenced entity does not exist."""

    error_code = ErrorCode.NOT_FOUND
    status_code = 404


class AccessDenied(StudyAppError):
    """Entity exists (or may exist) but the caller lacks ownership or membership."""

    error_code = ErrorCode.ACCESS_DENIED
    status_code = 403


class Conflict(StudyAppError):
    """Uniqueness violation."""

    error_code = ErrorCode.CONFLICT
    status_code = 409


class InvalidOperation(StudyAppError):
    """Self-referential or otherwise nonsensical request."""

    error_code = ErrorCode.INVALID_OPERATION
    status_code = 400


class ServiceError(StudyAppError):
    """External completion service failed (network, quota, malformed response)."""

    error_code = ErrorCode.SERVICE_ERROR
    status_code = 502


async def study_app_exception_handler(request: Request, exc: StudyAppError) -> JSONResponse:
    """Convert a domain error into a structured JSON response."""
    logger.warning(
        "%s on %s %s: %s",
        exc.error_code.value,
        request.method,
        request.url.path,
        exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
