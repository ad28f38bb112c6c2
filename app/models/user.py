"""
app/models/user.py

Purpose: User document model

- Identity (ObjectId), display name, unique email
- bcrypt password hash (never leaves the service layer)
- hasPaid unlock flag, set only by the payment reconciler
"""

from datetime import datetime
from typing import Any, Dict

from bson import ObjectId
from pydantic import BaseModel


class PublicUser(BaseModel):
    """
    Sanitized view of a user returned to clients.
    """
    id: str
    name: str
    email: str
    hasPaid: bool = False

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "PublicUser":
        return cls(
            id=str(doc["_id"]),
            name=doc.get("name") or doc.get("email", "").split("@")[0],
            email=doc["email"],
            hasPaid=bool(doc.get("hasPaid", False)),
        )


def new_user_document(name: str, email: str, password_hash: str, now: datetime) -> Dict[str, Any]:
    return {
        "_id": ObjectId(),
        "name": name,
        "email": email,
        "passwordHash": password_hash,
        "hasPaid": False,
        "createdAt": now,
    }
