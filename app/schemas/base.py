from typing import Any, Dict, Optional
from pydantic import BaseModel, Field
from datetime import datetime
from zoneinfo import ZoneInfo

from app.config import settings

LOCAL_TZ = ZoneInfo(settings.TIMEZONE)


def _now() -> str:
    return datetime.now(LOCAL_TZ).strftime("%Y-%m-%d %H:%M:%S")


class PaginationMeta(BaseModel):
    """
    Pagination block of every list endpoint. ``page`` is zero-based and
    ``endIndex`` falls below ``startIndex`` on an empty page.
    """
    page: int = Field(..., description="Current page number (0-based)")
    size: int = Field(..., description="Items per page")
    total: int = Field(..., description="Total number of matching items")
    totalPages: int = Field(..., description="Total number of pages")
    startIndex: int = Field(..., description="Index of the first item on this page")
    endIndex: int = Field(..., description="Index of the last item on this page")


def create_success_response(data: Any = None, message: str = "Success") -> Dict[str, Any]:
    """Envelope for a successful call, timestamped in the configured timezone"""
    return {"success": True, "message": message, "data": data, "timestamp": _now()}


def create_error_response(message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "success": False,
        "message": message,
        "error_code": error_code,
        "details": details,
        "timestamp": _now(),
    }


def build_pagination(page: int, size: int, total: int) -> Dict[str, int]:
    offset = page * size
    return PaginationMeta(
        page=page,
        size=size,
        total=total,
        totalPages=(total + size - 1) // size if size else 0,
        startIndex=offset,
        endIndex=min(offset + size - 1, total - 1),
    ).model_dump()
