"""
Identity provider integration

The identity provider issues signed JWTs; this service only verifies them.
Claims used: `sub` (user id), `name`, `picture`, `email`.
"""
import logging
from typing import Optional

from fastapi import Header
from jose import JWTError, jwt
from pydantic import BaseModel

from lingo.config import settings
from lingo.exceptions import Unauthorized

logger = logging.getLogger(__name__)


class CurrentUser(BaseModel):
    """Caller identity taken from a verified token"""
    user_id: str
    name: str = "User"
    image_src: str = "/mascot.svg"
    email: Optional[str] = None


def create_access_token(claims: dict) -> str:
    """Sign a token with the shared secret (used by tooling and tests)"""
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: Optional[str]) -> CurrentUser:
    """
    Decode and verify a bearer token

    Raises:
        Unauthorized: missing, malformed or expired token, or no subject
    """
    if not token:
        raise Unauthorized("Missing token")

    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"Token verification failed: {str(e)}")
        raise Unauthorized("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise Unauthorized("Invalid token")

    return CurrentUser(
        user_id=str(user_id),
        name=payload.get("name") or "User",
        image_src=payload.get("picture") or "/mascot.svg",
        email=payload.get("email"),
    )


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def get_current_user(authorization: Optional[str] = Header(None)) -> CurrentUser:
    """FastAPI dependency: the authenticated caller, or 401"""
    return verify_token(_bearer_token(authorization))


def peek_user_id(authorization: Optional[str]) -> Optional[str]:
    """Best-effort subject lookup for middleware; never raises"""
    try:
        return verify_token(_bearer_token(authorization)).user_id
    except Unauthorized:
        return None
