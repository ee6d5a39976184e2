from datetime import datetime, timedelta, timezone
from typing import Optional, Dict
import jwt
from fastapi import HTTPException, status
from app.config import settings
from app.utils.response_utils import ResponseWrapper

# Configuration - use centralized settings
SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES


def create_access_token(
    user_id: str,
    role: Optional[str] = None,
    custom_claims: Optional[Dict] = None,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Signed access token; ``role`` is the only claim authorization reads."""
    to_encode = {
        "user_id": str(user_id),
        "role": role,
        "token_type": "access",
    }

    if custom_claims:
        to_encode.update(custom_claims)

    # remove all None values
    to_encode = {k: v for k, v in to_encode.items() if v is not None}

    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "iat": now})

    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def _unauthorized(message: str, error_code: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=ResponseWrapper.error(message=message, error_code=error_code),
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_token(token: str) -> Dict:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token expired", "TOKEN_EXPIRED")
    except jwt.InvalidTokenError:
        raise _unauthorized("Invalid token", "INVALID_TOKEN")
