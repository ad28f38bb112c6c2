import asyncio
import hashlib
import hmac
import json
import time
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from app.main import app
from app.api.deps import get_stripe_gateway
from app.core.config import Settings, get_settings
from app.core.exceptions import ExternalServiceError
from app.db.indexes import create_indexes
from app.db.mongo import get_database
from app.services.stripe_service import CheckoutSession, StripeGateway

WEBHOOK_SECRET = "whsec_test_secret"


class FakeStripeGateway(StripeGateway):
    """
    Keeps the real parameter building and signature verification,
    replaces the two remote calls.
    """

    def __init__(self, settings):
        super().__init__(settings)
        self.created = []
        self.payment_status = {}
        self.fail_next = False
        self._counter = 0

    async def create_checkout_session(self, user_id):
        self._require_api_key()
        params = self.build_checkout_params(user_id)
        if self.fail_next:
            self.fail_next = False
            raise ExternalServiceError("Error creating checkout session", details="card_declined")
        self._counter += 1
        session = CheckoutSession(
            id=f"cs_test_{self._counter:04d}",
            url=f"https://checkout.stripe.com/c/pay/cs_test_{self._counter:04d}",
            payment_status="unpaid",
            client_reference_id=user_id,
            amount_total=50,
            currency="eur",
        )
        self.created.append((session, params))
        self.payment_status[session.id] = "unpaid"
        return session

    async def retrieve_checkout_session(self, checkout_session_id):
        self._require_api_key()
        return CheckoutSession(
            id=checkout_session_id,
            payment_status=self.payment_status.get(checkout_session_id, "unpaid"),
        )


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Stripe-Signature header for payload, v1 scheme."""
    timestamp = timestamp or int(time.time())
    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    signature = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def checkout_completed_payload(checkout_session_id: str, user_id: str = None, metadata_user_id: str = None) -> bytes:
    event = {
        "id": f"evt_{checkout_session_id}",
        "object": "event",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": checkout_session_id,
                "object": "checkout.session",
                "client_reference_id": user_id,
                "metadata": {"userId": metadata_user_id} if metadata_user_id else {},
                "payment_status": "paid",
                "amount_total": 50,
                "currency": "eur",
            }
        },
    }
    return json.dumps(event, separators=(",", ":")).encode("utf-8")


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def test_settings():
    return Settings(
        ENVIRONMENT="development",
        STRIPE_SECRET_KEY="sk_test_123",
        STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET,
        PRODUCT_UNIT_AMOUNT=50,
        APP_URL="http://localhost:3000",
        BCRYPT_ROUNDS=4,
    )


@pytest.fixture
def db():
    database = AsyncMongoMockClient()["memento_test"]
    loop = asyncio.new_event_loop()
    try:
        loop.run_until_complete(create_indexes(database))
    finally:
        loop.close()
    return database


@pytest.fixture
def gateway(test_settings):
    return FakeStripeGateway(test_settings)


@pytest.fixture
def client(db, test_settings, gateway):
    async def override_database():
        return db

    app.dependency_overrides[get_database] = override_database
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_stripe_gateway] = lambda: gateway

    yield TestClient(app)

    app.dependency_overrides.clear()


class FrozenClock:
    """Settable clock for expiry tests."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
