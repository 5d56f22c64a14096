# task_manager/auth/jwt_handler.py
# Uses python-jose to create/verify the session token stored in the login cookie
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional

from jose import jwt, JWTError

from task_manager.config import settings


def session_lifetime(remember_me: bool) -> timedelta:
    """1 day for a normal login, 30 days for "remember me" (both configurable)."""
    days = settings.remember_me_days if remember_me else settings.session_days
    return timedelta(days=days)


def create_access_token(payload: Dict[str, Any], expires_delta: timedelta) -> str:
    """
    Create a JWT token with an 'exp' claim.
    payload: a dict, e.g. {"sub": "4", "role": "Employee"}
    """
    to_encode = payload.copy()
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_jwt(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a JWT token. Returns payload dict on success, otherwise None.
    """
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
