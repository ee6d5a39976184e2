"""Domain exceptions raised by crud and service code.

Routers translate these into the standard error envelope; see
``app.utils.response_utils.raise_http_error``.
"""
from typing import Any, Dict, Optional

from fastapi import status


class AppError(Exception):
    """Base exception for Fleet Admin domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_FAILURE"

    def __init__(
        self,
        message: str = "An error occurred",
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class NotFoundError(AppError):
    """Raised when a requested entity does not exist."""
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"


class DuplicateKeyError(AppError):
    """Raised on a uniqueness violation, e.g. re-creating a named permission."""
    status_code = status.HTTP_409_CONFLICT
    error_code = "DUPLICATE_KEY"


class ConflictError(AppError):
    """Raised when an operation would break a referential or business rule."""
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"


class ForbiddenError(AppError):
    """Raised on authorization denial or a protected-resource mutation."""
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"


class ValidationFailedError(AppError):
    """Raised when input is malformed or incomplete."""
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_FAILED"


class InternalFailureError(AppError):
    """Raised when a collaborator fails unexpectedly (storage, parser)."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "INTERNAL_FAILURE"
