"""Bearer token helpers (PyJWT)."""

from datetime import timedelta

import jwt

from src.core.config import settings
from src.core.models import utcnow


def create_access_token(subject: str, expires_minutes: int | None = None) -> str:
    """Issue a signed access token for a user id."""
    minutes = expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    payload = {
        "sub": str(subject),
        "exp": utcnow() + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> str | None:
    """Return the user id in a valid token, or None."""
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
    except jwt.InvalidTokenError:
        return None
    return payload.get("sub")
