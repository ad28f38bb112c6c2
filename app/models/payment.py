"""
app/models/payment.py

Purpose: Payment record model

- One record per Stripe checkout session (sessionId is unique)
- Status moves pending -> completed exactly once
- Keeps the creation context reported by Stripe
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from bson import ObjectId


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


def new_payment_document(
    checkout_session_id: str,
    user_id: ObjectId,
    now: datetime,
    status: PaymentStatus = PaymentStatus.PENDING,
    amount_total: Optional[int] = None,
    currency: Optional[str] = None,
) -> Dict[str, Any]:
    doc = {
        "sessionId": checkout_session_id,
        "userId": user_id,
        "status": status.value,
        "createdAt": now,
        "amountTotal": amount_total,
        "currency": currency,
    }
    if status == PaymentStatus.COMPLETED:
        doc["completedAt"] = now
    return doc
