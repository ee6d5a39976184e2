from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from app.core.logging_config import get_logger
from app.database.session import get_db
from app.services.authorization_service import has_any_permission
from app.utils.response_utils import ResponseWrapper

from .token_validation import validate_bearer_token

logger = get_logger(__name__)


class PermissionChecker:
    """
    Route dependency allowing the request when the caller's role holds any of
    ``required_permissions``. Grants are read from the database on every call.
    """

    def __init__(self, required_permissions: List[str]):
        self.required_permissions = required_permissions

    async def __call__(
        self,
        user_data=Depends(validate_bearer_token()),
        db: Session = Depends(get_db),
    ):
        role = user_data.get("role")
        logger.debug(f"PermissionChecker: role={role} required={self.required_permissions}")

        if not role or not has_any_permission(db, role, self.required_permissions):
            logger.warning(
                f"Permission denied for user {user_data.get('user_id')} with role '{role}'. "
                f"Required: {self.required_permissions}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=ResponseWrapper.error(
                    message="Insufficient permissions",
                    error_code="FORBIDDEN",
                    details={"required_permissions": self.required_permissions},
                ),
            )

        return user_data
