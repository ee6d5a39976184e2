import re
from typing import Any, Dict, NoReturn, Optional
from fastapi import HTTPException, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from pydantic import ValidationError as PydanticValidationError
from app.schemas.base import (
    create_success_response,
    create_error_response,
)
from app.core.exceptions import (
    AppError, DuplicateKeyError, ConflictError, InternalFailureError, ValidationFailedError,
)
from app.core.logging_config import get_logger

logger = get_logger(__name__)


class ResponseWrapper:
    """Utility class for wrapping responses in standard format"""

    @staticmethod
    def success(data: Any = None, message: str = "Success") -> Dict[str, Any]:
        return jsonable_encoder(create_success_response(data, message))

    @staticmethod
    def error(
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Wrap error response and make it JSON-safe"""
        raw = create_error_response(message, error_code, details)
        return jsonable_encoder(raw)

    @staticmethod
    def created(data: Any = None, message: str = "Resource created successfully") -> Dict[str, Any]:
        return ResponseWrapper.success(data, message)

    @staticmethod
    def deleted(data: Any = None, message: str = "Resource deleted successfully") -> Dict[str, Any]:
        return ResponseWrapper.success(data, message)


def _conflicting_fields(error_msg: str) -> Dict[str, str]:
    match = re.search(r"Key \((.*?)\)=\((.*?)\)", error_msg)
    if not match:
        return {}
    columns = match.group(1).split(", ")
    values = match.group(2).split(", ")
    return {col: val for col, val in zip(columns, values)}


def translate_db_error(error: Exception) -> AppError:
    """Convert database errors to domain errors with detailed info"""
    error_msg = str(getattr(error, "orig", error)).strip().replace("\n", " ")
    lowered = error_msg.lower()

    if isinstance(error, IntegrityError) and ("duplicate key" in lowered or "unique" in lowered):
        return DuplicateKeyError(
            message="Resource already exists with the same values",
            details={"db_error": error_msg, "conflicting_fields": _conflicting_fields(error_msg)},
        )

    if "foreign key" in lowered:
        return ConflictError(
            message="Referenced resource not found or still in use",
            error_code="FOREIGN_KEY_VIOLATION",
            details={"db_error": error_msg, "conflicting_fields": _conflicting_fields(error_msg)},
        )

    return InternalFailureError(
        message="Database operation failed",
        error_code="DATABASE_ERROR",
        details={"db_error": error_msg},
    )


def to_http_exception(error: AppError) -> HTTPException:
    """Build the HTTPException carrying the standard error envelope"""
    return HTTPException(
        status_code=error.status_code,
        detail=ResponseWrapper.error(
            message=error.message,
            error_code=error.error_code,
            details=error.details,
        ),
    )


def raise_http_error(error: Exception, context: str) -> NoReturn:
    """
    Re-raise any failure from a route body as an HTTPException.

    Domain errors keep their status; anything else is logged and reported as
    an internal failure.
    """
    if isinstance(error, HTTPException):
        raise error
    if isinstance(error, PydanticValidationError):
        error = ValidationFailedError(
            "Invalid request payload",
            details={"errors": error.errors(include_url=False, include_context=False)},
        )
    elif isinstance(error, SQLAlchemyError):
        error = translate_db_error(error)
    if isinstance(error, AppError):
        if isinstance(error, InternalFailureError):
            logger.error(f"{context}: {error.message} {error.details or ''}")
        else:
            logger.warning(f"{context}: {error.message}")
        raise to_http_exception(error) from error

    logger.exception(f"Unexpected error while {context}: {error}")
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=ResponseWrapper.error(
            message=f"Unexpected error while {context}",
            error_code="INTERNAL_FAILURE",
            details={"error": str(error)},
        ),
    ) from error

