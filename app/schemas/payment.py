"""
app/schemas/payment.py

Purpose: Request/response schemas for checkout, webhook and payment polling
"""

from typing import Optional

from pydantic import BaseModel, Field, validator


class CheckoutRequest(BaseModel):
    userId: str = Field(..., description="Identifier of the user who is paying")

    @validator("userId")
    def user_id_present(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("userId is required")
        return v


class CheckoutResponse(BaseModel):
    checkoutSessionId: str


class WebhookAck(BaseModel):
    received: bool = True


class VerifyPaymentResponse(BaseModel):
    success: bool
    error: Optional[str] = None
