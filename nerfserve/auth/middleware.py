"""Authentication dependency for bearer token verification.

Tokens are issued by ``POST /auth/login``; the ``sub`` claim is the user id.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import ExpiredSignatureError, JWTError

from nerfserve.auth.crypto import decode_token
from nerfserve.logging_config import logger

# Security scheme for extracting Bearer token
security = HTTPBearer()


class AuthUser:
    """Authenticated user context extracted from the access token."""

    def __init__(self, user_id: str):
        self.user_id = user_id


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> AuthUser:
    """Get current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer credentials

    Returns:
        Authenticated user context

    Raises:
        HTTPException: If authentication fails
    """
    try:
        payload = decode_token(credentials.credentials)
    except ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        logger.warning("Token missing subject or wrong type")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user ID",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return AuthUser(user_id=user_id)
