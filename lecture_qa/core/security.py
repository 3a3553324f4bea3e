"""
Security Module - Session token authentication

Clients (the extension and the web front-end) send the session JWT in one of
three places: the ``token`` query parameter (EventSource cannot set headers),
the ``Authorization`` header, or the ``x-access-token`` header.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request
from jose import JWTError, jwt
from pydantic import BaseModel

from lecture_qa.core.config import settings
from lecture_qa.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class AuthenticatedUser(BaseModel):
    """Authenticated user information decoded from the session token."""
    user_id: str
    auth_method: str = "jwt"


# =============================================================================
# JWT Token Functions
# =============================================================================

def create_access_token(
    subject: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token.

    The subject is written both as ``sub`` and as ``_id`` so tokens minted
    here are accepted by the existing front-end session handling.
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))

    payload = {
        "sub": subject,
        "_id": subject,
        "exp": expire,
        "iat": now,
    }

    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def normalize_token(raw: Optional[str]) -> Optional[str]:
    """
    Strip whitespace, a ``Bearer `` prefix and surrounding double quotes.

    Returns None when nothing usable is left.
    """
    if raw is None:
        return None
    token = raw.strip()
    if token.startswith("Bearer "):
        token = token[len("Bearer "):].strip()
    if len(token) >= 2 and token[0] == '"' and token[-1] == '"':
        token = token[1:-1]
    return token or None


def extract_token(request: Request) -> Optional[str]:
    """Pick the session token from query, Authorization or x-access-token."""
    raw = (
        request.query_params.get("token")
        or request.headers.get("authorization")
        or request.headers.get("x-access-token")
    )
    return normalize_token(raw)


def verify_token(token: Optional[str]) -> AuthenticatedUser:
    """
    Verify a session token and resolve the user it belongs to.

    Raises:
        AuthenticationError: token missing, invalid, expired or without subject
    """
    if not token:
        raise AuthenticationError("Authentication token is required")

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        raise AuthenticationError("Invalid JWT token") from e

    user_id = payload.get("_id") or payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid JWT Token")

    return AuthenticatedUser(user_id=str(user_id))


# =============================================================================
# Authentication Dependencies
# =============================================================================

async def require_auth(request: Request) -> AuthenticatedUser:
    """
    Require a valid session token.

    Runs before any response is started, so a failure is always a plain
    HTTP 401 even on the streaming endpoint.
    """
    return verify_token(extract_token(request))
