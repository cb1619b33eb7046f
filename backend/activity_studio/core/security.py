"""JWT helpers shared by the HTTP layer and background jobs."""
from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from activity_studio.core import config
from activity_studio.domain.activity.models import Viewer


def create_token(user_id: str, username: str, role: str, email: Optional[str] = None) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": user_id,
        "username": username,
        "role": role,
        "email": email,
        "exp": expire,
    }
    return jwt.encode(payload, config.SECRET_KEY, algorithm=config.ALGORITHM)


def decode_token(token: str) -> dict:
    """Raises jose.JWTError on a bad or expired token."""
    return jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])


def viewer_from_claims(claims: dict) -> Viewer:
    return Viewer(
        id=claims["sub"],
        is_admin=claims.get("role") == "admin",
        name=claims.get("username"),
        email=claims.get("email"),
    )


def viewer_from_token(token: Optional[str]) -> Optional[Viewer]:
    """Identify the holder of a bearer token; None if absent or invalid."""
    if not token:
        return None
    try:
        return viewer_from_claims(decode_token(token))
    except (JWTError, KeyError):
        return None
