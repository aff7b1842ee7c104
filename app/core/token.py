"""
Bearer token validation.

The engine does not issue user sessions. It trusts the `sub` claim of an
access token signed with the shared secret and uses it as the acting user ID,
so the claim has to satisfy the same rules as any other relationship user ID.
"""

from datetime import timedelta
from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.core.config import settings
from app.core.errors import AuthenticationError
from app.core.time import utcnow
from app.relationship.types import is_valid_user_id

ACCESS_TOKEN_TYPE = "access"

# HTTP Bearer scheme (Only shows a token input box in Swagger)
security_scheme = HTTPBearer()


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign an access token; the identity service does this in production, tooling and tests here"""
    now = utcnow()
    to_encode = data.copy()
    to_encode.update(
        {
            "exp": now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes)),
            "iat": now,
            "type": ACCESS_TOKEN_TYPE,
        }
    )
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate JWT token string"""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def verify_token(token: str) -> Optional[str]:
    """Return the acting user ID, or None for anything but a valid access token"""
    payload = decode_token(token)
    if payload is None:
        return None
    # Refresh tokens and other token kinds never authorize actions
    if payload.get("type", ACCESS_TOKEN_TYPE) != ACCESS_TOKEN_TYPE:
        return None

    user_id = payload.get("sub")
    return user_id if is_valid_user_id(user_id) else None


async def get_current_user_id(auth: Annotated[HTTPAuthorizationCredentials, Depends(security_scheme)]) -> str:
    """
    FastAPI dependency to validate token and return current user ID.
    Used in protected routes.
    """
    user_id = verify_token(auth.credentials)
    if not user_id:
        raise AuthenticationError("Could not validate credentials")
    return user_id


# Frequently used Dependency Annotation
CurrentUserDep = Annotated[str, Depends(get_current_user_id)]
