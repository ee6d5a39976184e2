from typing import List, Optional
from fastapi import UploadFile
from app.core.exceptions import ValidationFailedError
from app.core.logging_config import get_logger

logger = get_logger(__name__)


async def file_size_validator(
    file: Optional[UploadFile],
    allowed_types: List[str],
    max_size_mb: int,
    required: bool = True
) -> Optional[bytes]:
    """
    Validate an upload's type and size and return its content.

    Args:
        file: Uploaded file
        allowed_types: List of allowed MIME types
        max_size_mb: Maximum file size in MB
        required: Whether file is required

    Returns:
        bytes: File content, or None when an optional file is absent
    """
    if not file or not file.filename:
        if required:
            raise ValidationFailedError("No Excel file uploaded")
        return None

    is_xlsx = file.filename.lower().endswith(".xlsx")
    if file.content_type not in allowed_types and not is_xlsx:
        raise ValidationFailedError(
            f"File type {file.content_type} not allowed",
            details={"allowed_types": allowed_types},
        )

    content = await file.read()
    max_size_bytes = max_size_mb * 1024 * 1024
    if len(content) > max_size_bytes:
        raise ValidationFailedError(
            f"File size {len(content)} bytes exceeds maximum allowed size of {max_size_mb}MB"
        )

    logger.debug(f"Accepted upload '{file.filename}' ({len(content)} bytes)")
    return content
