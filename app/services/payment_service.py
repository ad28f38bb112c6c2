"""
app/services/payment_service.py

Purpose: Payment reconciliation

- Creates checkout sessions and their pending payment records
- Verifies Stripe webhooks and applies them idempotently
- Polls Stripe directly when the client returns before the webhook
- Payment record moves pending -> completed exactly once, keyed by checkout id
"""

from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from app.db.mongo import PAYMENTS_COLLECTION
from app.core.exceptions import ResourceNotFoundError
from app.core.logging import get_logger, LogContext
from app.models.payment import PaymentStatus, new_payment_document
from app.schemas.stripe_events import (
    CheckoutSessionCompleted,
    IgnoredEvent,
    PaymentIntentSucceeded,
    StripeEvent,
)
from app.services.stripe_service import StripeGateway
from app.services.user_service import UserService
from utils.constants import PAYMENT_RECORD_NOT_FOUND_MESSAGE, USER_NOT_FOUND_MESSAGE
from utils.time_utils import utcnow
from utils.validation_utils import parse_object_id

logger = get_logger(__name__)


class PaymentCheckResult(str, Enum):
    PAID = "paid"
    NOT_PAID = "not_paid"


class PaymentService:
    """
    Connects Stripe checkout sessions to the users' paid flag.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        gateway: StripeGateway,
        users: Optional[UserService] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.payments = db[PAYMENTS_COLLECTION]
        self.gateway = gateway
        self.clock = clock
        self.users = users or UserService(db, clock=clock)

    async def create_checkout(self, user_id: str) -> str:
        """
        Starts a one-time checkout for the user.

        Returns:
            Stripe checkout session id, for the client-side redirect

        Raises:
            ResourceNotFoundError: Unknown user
            ConfigurationError: Stripe or redirect settings missing
            ExternalServiceError: Stripe rejected the request
        """
        with LogContext(user_id=user_id):
            oid = parse_object_id(user_id)
            if oid is None or not await self.users.get_user_by_id(oid):
                raise ResourceNotFoundError(USER_NOT_FOUND_MESSAGE)

            session = await self.gateway.create_checkout_session(user_id)

            record = new_payment_document(
                session.id,
                oid,
                self.clock(),
                amount_total=session.amount_total,
                currency=session.currency,
            )
            try:
                await self.payments.insert_one(record)
            except DuplicateKeyError:
                # The webhook for this checkout got here first
                logger.warning(f"Payment record for {session.id} already exists")

            logger.info(f"Checkout session {session.id} created")
            return session.id

    def verify_callback(self, raw_body: bytes, signature_header: Optional[str]) -> StripeEvent:
        """
        Authenticates a webhook delivery. See StripeGateway.construct_event.
        """
        return self.gateway.construct_event(raw_body, signature_header)

    async def apply_payment(self, event: StripeEvent) -> bool:
        """
        Applies a verified event. Redelivery and concurrent delivery are
        safe: the paid flag is a single idempotent write and the payment
        record only leaves 'pending' once.

        Unattributable events are logged and dropped, never raised, so
        Stripe does not redeliver them forever.

        A checkout for a user that no longer exists still completes its
        payment record: Stripe took the money, so the record stays accurate.

        Returns:
            True if the event marked a user as paid
        """
        with LogContext(event_type=event.type):
            if isinstance(event, IgnoredEvent):
                logger.info(f"Unhandled event type {event.type}")
                return False

            user_oid = parse_object_id(event.user_id)
            if user_oid is None:
                logger.warning(
                    "Payment event has no usable user reference",
                    extra={"stripe_event_id": event.event_id, "raw_user_id": event.user_id}
                )
                return False

            marked = await self.users.mark_user_paid(user_oid)

            if isinstance(event, CheckoutSessionCompleted):
                if not marked:
                    logger.warning(
                        f"Checkout {event.checkout_session_id} paid for unknown user {user_oid}, "
                        "recording payment without unlocking anyone"
                    )
                await self.complete_payment_record(
                    event.checkout_session_id,
                    user_oid,
                    amount_total=event.amount_total,
                    currency=event.currency,
                )
            elif isinstance(event, PaymentIntentSucceeded):
                logger.debug(
                    "Payment intent has no checkout id, payment record left to checkout event",
                    extra={"payment_intent_id": event.payment_intent_id}
                )

            return marked

    async def complete_payment_record(
        self,
        checkout_session_id: str,
        user_id: ObjectId,
        amount_total: Optional[int] = None,
        currency: Optional[str] = None,
    ) -> bool:
        """
        Moves the payment record from pending to completed.

        Returns:
            True only for the call that performed the transition
        """
        now = self.clock()

        with LogContext(checkout_session_id=checkout_session_id):
            result = await self.payments.update_one(
                {"sessionId": checkout_session_id, "status": PaymentStatus.PENDING.value},
                {"$set": {"status": PaymentStatus.COMPLETED.value, "completedAt": now}}
            )
            if result.modified_count > 0:
                logger.info("Payment record completed")
                return True

            existing = await self.payments.find_one({"sessionId": checkout_session_id})
            if existing is not None:
                logger.info("Payment record already completed, duplicate delivery")
                return False

            # Checkout created outside this service, or its record was never written
            record = new_payment_document(
                checkout_session_id,
                user_id,
                now,
                status=PaymentStatus.COMPLETED,
                amount_total=amount_total,
                currency=currency,
            )
            try:
                await self.payments.insert_one(record)
            except DuplicateKeyError:
                logger.info("Payment record written concurrently, duplicate delivery")
                return False

            logger.warning("Payment record was missing, recorded as completed")
            return True

    async def poll_status(self, checkout_session_id: str) -> PaymentCheckResult:
        """
        Asks Stripe directly whether a checkout was paid and applies it.
        Covers a client reaching the success page before the webhook.

        Raises:
            ResourceNotFoundError: No payment record for this checkout
            ExternalServiceError: Stripe call failed
        """
        with LogContext(checkout_session_id=checkout_session_id):
            record = await self.payments.find_one({"sessionId": checkout_session_id})
            if not record:
                raise ResourceNotFoundError(PAYMENT_RECORD_NOT_FOUND_MESSAGE)

            session = await self.gateway.retrieve_checkout_session(checkout_session_id)
            if not session.is_paid:
                logger.info(f"Checkout not paid yet (status={session.payment_status})")
                return PaymentCheckResult.NOT_PAID

            await self.users.mark_user_paid(record["userId"])
            await self.complete_payment_record(checkout_session_id, record["userId"])
            return PaymentCheckResult.PAID
