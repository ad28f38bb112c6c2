"""
app/schemas/stripe_events.py

Purpose: Stripe webhook event schemas and parser

- Closed set of event variants the payment reconciler acts on
- Everything else becomes IgnoredEvent (acknowledged, not acted on)
- Normalizes Stripe's nested payload into flat, typed fields
"""

from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"

# Key under which the user id is stored in Stripe metadata
USER_ID_METADATA_KEY = "userId"


class CheckoutSessionCompleted(BaseModel):
    """
    A checkout session finished. Carries the checkout id (the
    payment record's idempotency key) and the correlated user.
    """
    type: Literal["checkout.session.completed"] = CHECKOUT_SESSION_COMPLETED
    event_id: str
    checkout_session_id: str
    client_reference_id: Optional[str] = None
    metadata_user_id: Optional[str] = None
    payment_status: Optional[str] = None
    payment_intent_id: Optional[str] = None
    amount_total: Optional[int] = None
    currency: Optional[str] = None

    @property
    def user_id(self) -> Optional[str]:
        return self.client_reference_id or self.metadata_user_id


class PaymentIntentSucceeded(BaseModel):
    """
    A payment intent succeeded. Has no checkout id, only metadata.
    """
    type: Literal["payment_intent.succeeded"] = PAYMENT_INTENT_SUCCEEDED
    event_id: str
    payment_intent_id: str
    metadata_user_id: Optional[str] = None
    amount: Optional[int] = None
    currency: Optional[str] = None

    @property
    def user_id(self) -> Optional[str]:
        return self.metadata_user_id


class IgnoredEvent(BaseModel):
    """
    Any other event type. Acknowledged so Stripe does not retry it.
    """
    type: str
    event_id: str = Field(default="")

    @property
    def user_id(self) -> Optional[str]:
        return None


StripeEvent = Union[CheckoutSessionCompleted, PaymentIntentSucceeded, IgnoredEvent]


def _metadata_user_id(obj: Dict[str, Any]) -> Optional[str]:
    metadata = obj.get("metadata") or {}
    if not isinstance(metadata, dict):
        return None
    return metadata.get(USER_ID_METADATA_KEY)


def parse_stripe_event(payload: Dict[str, Any]) -> StripeEvent:
    """
    Parses a verified Stripe event payload.

    Stripe format (JSON):
    {
        "id": "evt_...",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": "cs_test_...",
                "client_reference_id": "65f...",
                "metadata": {"userId": "65f..."},
                "payment_status": "paid",
                ...
            }
        }
    }

    Raises:
        ValueError: If the payload is not a Stripe event envelope, or a
            field has an unexpected type (pydantic ValidationError)
    """
    if not isinstance(payload, dict) or "type" not in payload:
        raise ValueError("Not a Stripe event payload")

    event_type = payload["type"]
    event_id = payload.get("id") or ""
    data = payload.get("data")
    obj = data.get("object") if isinstance(data, dict) else None
    if not isinstance(obj, dict):
        obj = {}

    if event_type == CHECKOUT_SESSION_COMPLETED and obj.get("id"):
        return CheckoutSessionCompleted(
            event_id=event_id,
            checkout_session_id=obj["id"],
            client_reference_id=obj.get("client_reference_id"),
            metadata_user_id=_metadata_user_id(obj),
            payment_status=obj.get("payment_status"),
            payment_intent_id=obj.get("payment_intent") if isinstance(obj.get("payment_intent"), str) else None,
            amount_total=obj.get("amount_total"),
            currency=obj.get("currency"),
        )

    if event_type == PAYMENT_INTENT_SUCCEEDED and obj.get("id"):
        return PaymentIntentSucceeded(
            event_id=event_id,
            payment_intent_id=obj["id"],
            metadata_user_id=_metadata_user_id(obj),
            amount=obj.get("amount"),
            currency=obj.get("currency"),
        )

    return IgnoredEvent(type=event_type, event_id=event_id)
