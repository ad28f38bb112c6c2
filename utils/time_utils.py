"""
utils/time_utils.py

Purpose: Time and expiry helpers

- Naive UTC timestamps (what MongoDB returns)
- Session expiry calculations
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """
    Current UTC time as a naive datetime, matching what pymongo returns.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def session_lifetime(days: int) -> timedelta:
    return timedelta(days=days)


def is_session_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """
    Checks if a session has expired. Expiry is strict: a session is
    still valid at exactly expires_at.
    """
    if not expires_at:
        return True
    return (now or utcnow()) > expires_at

