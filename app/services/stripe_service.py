"""
app/services/stripe_service.py

Purpose: Stripe integration

- Creates one-time checkout sessions
- Retrieves checkout sessions for out-of-band status checks
- Verifies webhook signatures over the raw request body
- Blocking SDK calls run in the threadpool
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import stripe
from fastapi.concurrency import run_in_threadpool

from app.core.config import Settings
from app.core.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    SignatureVerificationError,
)
from app.core.logging import get_logger
from app.schemas.stripe_events import IgnoredEvent, StripeEvent, parse_stripe_event, USER_ID_METADATA_KEY
from utils.constants import (
    CHECKOUT_FAILED_MESSAGE,
    NOT_CONFIGURED_MESSAGE,
    PAYMENT_VERIFY_FAILED_MESSAGE,
    STRIPE_PAID_STATUS,
)

logger = get_logger(__name__)

SIGNATURE_HEADER = "stripe-signature"


@dataclass
class CheckoutSession:
    """
    The parts of a Stripe checkout session this service relies on.
    """
    id: str
    url: Optional[str] = None
    payment_status: Optional[str] = None
    client_reference_id: Optional[str] = None
    amount_total: Optional[int] = None
    currency: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == STRIPE_PAID_STATUS

    @classmethod
    def from_stripe(cls, obj: Any) -> "CheckoutSession":
        return cls(
            id=obj.id,
            url=getattr(obj, "url", None),
            payment_status=getattr(obj, "payment_status", None),
            client_reference_id=getattr(obj, "client_reference_id", None),
            amount_total=getattr(obj, "amount_total", None),
            currency=getattr(obj, "currency", None),
        )


class StripeGateway:
    """
    Thin wrapper around the Stripe SDK.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def _require_api_key(self) -> str:
        if not self.settings.STRIPE_SECRET_KEY:
            raise ConfigurationError(
                NOT_CONFIGURED_MESSAGE,
                details="STRIPE_SECRET_KEY is not set"
            )
        return self.settings.STRIPE_SECRET_KEY

    def build_line_items(self) -> List[Dict[str, Any]]:
        """
        Single line item for the premium unlock, from a price id or inline price data.

        Raises:
            ConfigurationError: If neither STRIPE_PRICE_ID nor PRODUCT_UNIT_AMOUNT is set
        """
        if self.settings.STRIPE_PRICE_ID:
            return [{"price": self.settings.STRIPE_PRICE_ID, "quantity": 1}]

        if self.settings.PRODUCT_UNIT_AMOUNT is None:
            raise ConfigurationError(
                NOT_CONFIGURED_MESSAGE,
                details="STRIPE_PRICE_ID or PRODUCT_UNIT_AMOUNT must be set"
            )

        return [{
            "price_data": {
                "currency": self.settings.PRODUCT_CURRENCY,
                "product_data": {
                    "name": self.settings.PRODUCT_NAME,
                    "description": self.settings.PRODUCT_DESCRIPTION,
                },
                "unit_amount": self.settings.PRODUCT_UNIT_AMOUNT,
            },
            "quantity": 1,
        }]

    def build_redirect_urls(self) -> Dict[str, str]:
        if not self.settings.APP_URL:
            raise ConfigurationError(
                NOT_CONFIGURED_MESSAGE,
                details="APP_URL is not set"
            )
        base_url = self.settings.APP_URL.rstrip("/")
        return {
            "success_url": f"{base_url}{self.settings.SUCCESS_PATH}?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{base_url}{self.settings.CANCEL_PATH}",
        }

    def build_checkout_params(self, user_id: str) -> Dict[str, Any]:
        """
        Parameters for a one-time, single line-item checkout correlated to a user.
        """
        return {
            "payment_method_types": ["card"],
            "line_items": self.build_line_items(),
            "mode": "payment",
            "client_reference_id": user_id,
            "metadata": {USER_ID_METADATA_KEY: user_id},
            "payment_intent_data": {"metadata": {USER_ID_METADATA_KEY: user_id}},
            **self.build_redirect_urls(),
        }

    async def create_checkout_session(self, user_id: str) -> CheckoutSession:
        """
        Creates a Stripe checkout session.

        Raises:
            ConfigurationError: Missing key, price or redirect settings
            ExternalServiceError: Stripe rejected the request
        """
        api_key = self._require_api_key()
        params = self.build_checkout_params(user_id)

        try:
            session = await run_in_threadpool(
                stripe.checkout.Session.create, api_key=api_key, **params
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout creation failed: {e}")
            raise ExternalServiceError(CHECKOUT_FAILED_MESSAGE, details=str(e))

        return CheckoutSession.from_stripe(session)

    async def retrieve_checkout_session(self, checkout_session_id: str) -> CheckoutSession:
        """
        Fetches the authoritative state of a checkout session from Stripe.

        Raises:
            ExternalServiceError: Stripe call failed
        """
        api_key = self._require_api_key()

        try:
            session = await run_in_threadpool(
                stripe.checkout.Session.retrieve, checkout_session_id, api_key=api_key
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout retrieval failed for {checkout_session_id}: {e}")
            raise ExternalServiceError(PAYMENT_VERIFY_FAILED_MESSAGE, details=str(e))

        return CheckoutSession.from_stripe(session)

    def construct_event(self, payload: bytes, sig_header: Optional[str]) -> StripeEvent:
        """
        Verifies a webhook signature and parses the event.

        The signature binds to the exact bytes received, so the payload
        must be the raw request body, never re-serialized JSON.

        Raises:
            ConfigurationError: STRIPE_WEBHOOK_SECRET is not set
            SignatureVerificationError: Header missing, signature mismatch or body not JSON

        A signed event that does not parse comes back as an IgnoredEvent.
        """
        secret = self.settings.STRIPE_WEBHOOK_SECRET
        if not secret:
            raise ConfigurationError(
                "Webhook is not configured",
                details="STRIPE_WEBHOOK_SECRET is not set"
            )

        if not sig_header:
            raise SignatureVerificationError("Missing Stripe signature header")

        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError:
            raise SignatureVerificationError("Webhook payload is not valid UTF-8")

        try:
            stripe.WebhookSignature.verify_header(
                body, sig_header, secret, stripe.Webhook.DEFAULT_TOLERANCE
            )
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Invalid Stripe webhook signature: {e}")
            raise SignatureVerificationError()

        try:
            data = json.loads(body)
        except ValueError as e:
            logger.warning(f"Invalid Stripe webhook payload: {e}")
            raise SignatureVerificationError("Invalid webhook payload")

        # Signed by Stripe from here on: an event we cannot read is
        # acknowledged, or Stripe keeps redelivering it
        try:
            return parse_stripe_event(data)
        except ValueError as e:
            event_type = data.get("type") if isinstance(data, dict) else None
            logger.warning(f"Unreadable Stripe event {event_type!r} acknowledged without action: {e}")
            return IgnoredEvent(type=str(event_type or "unknown"))
