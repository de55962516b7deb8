# Implements token handling shared by the REST API and the Socket.IO server:
# JWT access token generation (issued by the external auth service, used by tests)
# Bearer token verification for HTTP requests and socket connections

from datetime import datetime, timedelta
from typing import Any, Optional, Union
import logging

from jose import jwt, JWTError

from podhub.core.config import settings

logger = logging.getLogger("app")

def create_access_token(subject: Union[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {"exp": expire, "sub": str(subject)}
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt

def verify_access_token(token: str) -> Optional[str]:
    """Return the user id carried by ``token``, or None if it is not acceptable."""
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
        user_id: str = payload.get("sub")
        if user_id is None:
            logger.warning("Token payload missing 'sub' field")
            return None

        # python-jose already rejects expired tokens; a missing exp is rejected here
        if payload.get("exp") is None:
            logger.warning("Token has no expiry")
            return None

        return user_id
    except JWTError as e:
        logger.warning(f"JWT verification error: {e}")
        return None

def extract_bearer_token(header_value: Optional[str]) -> Optional[str]:
    if not header_value:
        return None
    scheme, _, token = header_value.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
