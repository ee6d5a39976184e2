from typing import Dict, Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.logging_config import get_logger
from app.utils.response_utils import ResponseWrapper
from common_utils.auth.utils import verify_token

logger = get_logger(__name__)

# auto_error=False so a missing header gets the standard error envelope
security = HTTPBearer(auto_error=False)


def validate_bearer_token():
    async def get_token_data(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    ) -> Dict:
        if credentials is None or not credentials.credentials:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=ResponseWrapper.error(
                    message="Missing bearer token",
                    error_code="NOT_AUTHENTICATED",
                ),
                headers={"WWW-Authenticate": "Bearer"},
            )

        payload = verify_token(credentials.credentials)
        user_id = payload.get("user_id")
        if not user_id or payload.get("token_type", "access") != "access":
            logger.warning("Rejected token without a user or of the wrong type")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=ResponseWrapper.error(
                    message="Invalid authentication token",
                    error_code="INVALID_TOKEN",
                ),
                headers={"WWW-Authenticate": "Bearer"},
            )

        return {
            "user_id": user_id,
            "role": payload.get("role"),
        }

    return get_token_data
