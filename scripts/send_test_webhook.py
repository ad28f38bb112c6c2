"""
Sends a signed checkout.session.completed event to a running server.

Simulates what Stripe sends after a successful checkout, signed with
STRIPE_WEBHOOK_SECRET from .env:
    python scripts/send_test_webhook.py <user_id> [checkout_session_id]
"""

import hashlib
import hmac
import json
import os
import sys
import time

import httpx
from dotenv import load_dotenv

load_dotenv()

WEBHOOK_URL = os.getenv("WEBHOOK_URL", "http://localhost:8000/api/webhook")
WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")


def build_event(user_id: str, checkout_session_id: str) -> bytes:
    event = {
        "id": f"evt_local_{int(time.time())}",
        "object": "event",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": checkout_session_id,
                "object": "checkout.session",
                "client_reference_id": user_id,
                "metadata": {"userId": user_id},
                "payment_status": "paid",
            }
        },
    }
    return json.dumps(event).encode("utf-8")


def sign(payload: bytes, secret: str) -> str:
    timestamp = int(time.time())
    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    signature = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    if not WEBHOOK_SECRET:
        raise ValueError("❌ STRIPE_WEBHOOK_SECRET must be set in .env file")

    user_id = sys.argv[1]
    checkout_session_id = sys.argv[2] if len(sys.argv) > 2 else f"cs_test_local_{int(time.time())}"
    payload = build_event(user_id, checkout_session_id)

    print(f"🧪 Sending checkout.session.completed to {WEBHOOK_URL}")
    response = httpx.post(
        WEBHOOK_URL,
        content=payload,
        headers={
            "Content-Type": "application/json",
            "Stripe-Signature": sign(payload, WEBHOOK_SECRET),
        },
        timeout=10.0,
    )

    print(f"✅ Status: {response.status_code}")
    print(f"📥 Response: {response.text[:200]}")


if __name__ == "__main__":
    main()
