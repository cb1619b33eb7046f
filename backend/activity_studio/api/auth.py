"""Auth API: login and profile endpoints, plus the current-user dependencies."""
from __future__ import annotations
from typing import Optional

import bcrypt
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from pydantic import BaseModel

from activity_studio.core.security import create_token, decode_token, viewer_from_claims
from activity_studio.domain.activity.models import Viewer
from activity_studio.persistence.db import get_connection

router = APIRouter(prefix="/auth", tags=["auth"])

_bearer = HTTPBearer(auto_error=False)


# ------------------------------------------------------------------
# Password hashing (Direct bcrypt to avoid passlib compatibility issues)
# ------------------------------------------------------------------
def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class LoginRequest(BaseModel):
    username: str
    password: str


# ------------------------------------------------------------------
# Dependencies: current user from Bearer token
# ------------------------------------------------------------------
def _decode(token: str) -> dict:
    try:
        return decode_token(token)
    except JWTError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}")


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)) -> Viewer:
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return viewer_from_claims(_decode(credentials.credentials))


def optional_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)) -> Optional[Viewer]:
    if not credentials:
        return None
    try:
        return viewer_from_claims(_decode(credentials.credentials))
    except HTTPException:
        return None


def get_bearer_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)) -> Optional[str]:
    return credentials.credentials if credentials else None


def require_admin(current_user: Viewer = Depends(get_current_user)) -> Viewer:
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user


# ------------------------------------------------------------------
# DB helpers
# ------------------------------------------------------------------
def _get_user(column: str, value: str) -> Optional[dict]:
    conn = get_connection()
    row = conn.execute(f"SELECT * FROM users WHERE {column} = ?", (value,)).fetchone()
    conn.close()
    return dict(row) if row else None


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------
@router.post("/login")
def login(body: LoginRequest):
    user = _get_user("username", body.username)
    if not user or not verify_password(body.password, user["password_hash"]):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = create_token(user["id"], user["username"], user["role"], user.get("email"))
    return {
        "token": token,
        "user": {
            "id": user["id"],
            "username": user["username"],
            "role": user["role"],
            "display_name": user.get("display_name"),
            "email": user.get("email"),
        },
    }


@router.get("/profile")
def get_profile(current_user: Viewer = Depends(get_current_user)):
    user = _get_user("id", current_user.id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return {
        "id": user["id"],
        "username": user["username"],
        "role": user["role"],
        "display_name": user.get("display_name"),
        "email": user.get("email"),
    }
