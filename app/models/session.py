"""
app/models/session.py

Purpose: Session document model

- Opaque token is the session's ObjectId
- Absolute expiry fixed at creation, no sliding renewal
- ACTIVE while now <= expiresAt, EXPIRED (terminal) afterwards
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict

from bson import ObjectId

from utils.time_utils import is_session_expired


class SessionState(str, Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"


def new_session_document(user_id: ObjectId, now: datetime, lifetime: timedelta) -> Dict[str, Any]:
    return {
        "_id": ObjectId(),
        "userId": user_id,
        "createdAt": now,
        "expiresAt": now + lifetime,
    }


def get_session_state(session: Dict[str, Any], now: datetime) -> SessionState:
    """
    A session validated exactly at its expiry instant is still active.
    """
    if is_session_expired(session.get("expiresAt"), now):
        return SessionState.EXPIRED
    return SessionState.ACTIVE
