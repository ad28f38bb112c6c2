"""
app/core/security.py

Purpose: Password hashing and session cookie policy

- bcrypt hashing with a configurable cost factor
- Constant-time verification via bcrypt's own checkpw
- Session cookie set/clear with HTTP-only, strict same-site flags
"""

from typing import Optional

import bcrypt
from fastapi import Response

from app.core.config import settings


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """
    Hashes a password with a fresh salt.

    Args:
        password: Plaintext password
        rounds: bcrypt cost factor (defaults to BCRYPT_ROUNDS)

    Returns:
        The encoded bcrypt hash
    """
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Checks a plaintext password against a stored bcrypt hash.
    A malformed stored hash counts as a mismatch.
    """
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def set_session_cookie(response: Response, token: str):
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.session_max_age_seconds,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def clear_session_cookie(response: Response):
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
