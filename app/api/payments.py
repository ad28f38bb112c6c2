"""
app/api/payments.py

Purpose: Payment endpoints

- Creates Stripe checkout sessions
- Receives Stripe webhooks (raw body + Stripe-Signature header)
- Lets the success page confirm a payment before the webhook lands
"""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from app.api.deps import get_payment_service
from app.core.logging import get_logger
from app.schemas.payment import CheckoutRequest, CheckoutResponse, VerifyPaymentResponse, WebhookAck
from app.services.payment_service import PaymentCheckResult, PaymentService
from app.services.stripe_service import SIGNATURE_HEADER
from utils.constants import PAYMENT_NOT_COMPLETED_MESSAGE

logger = get_logger(__name__)
router = APIRouter()


@router.post("/create-checkout-session", response_model=CheckoutResponse)
async def create_checkout_session(
    body: CheckoutRequest,
    payments: PaymentService = Depends(get_payment_service),
):
    checkout_session_id = await payments.create_checkout(body.userId)
    return CheckoutResponse(checkoutSessionId=checkout_session_id)


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    payments: PaymentService = Depends(get_payment_service),
):
    """
    Stripe webhook endpoint.

    Reads the raw body: the signature covers the exact bytes Stripe sent.
    Responds 400 on a bad signature. Every verified event gets a 200,
    acted on or not, so Stripe stops redelivering it.
    """
    payload = await request.body()
    event = payments.verify_callback(payload, request.headers.get(SIGNATURE_HEADER))

    logger.info(f"Received Stripe webhook event: {event.type}")
    await payments.apply_payment(event)

    return WebhookAck()


@router.get("/verify-payment", response_model=VerifyPaymentResponse)
async def verify_payment(
    session_id: str = Query(..., min_length=1, description="Stripe checkout session id"),
    payments: PaymentService = Depends(get_payment_service),
):
    result = await payments.poll_status(session_id)

    if result == PaymentCheckResult.PAID:
        return VerifyPaymentResponse(success=True)

    return JSONResponse(
        status_code=400,
        content=VerifyPaymentResponse(success=False, error=PAYMENT_NOT_COMPLETED_MESSAGE).model_dump()
    )
