import asyncio
import json

import pytest
from bson import ObjectId

from app.core.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    ResourceNotFoundError,
    SignatureVerificationError,
)
from app.schemas.stripe_events import (
    CheckoutSessionCompleted,
    IgnoredEvent,
    PaymentIntentSucceeded,
    parse_stripe_event,
)
from app.services.payment_service import PaymentCheckResult, PaymentService
from app.services.session_service import SessionService
from conftest import FakeStripeGateway, checkout_completed_payload, sign

pytestmark = pytest.mark.anyio


@pytest.fixture
def payments(db, gateway):
    return PaymentService(db, gateway)


@pytest.fixture
async def user(db, test_settings):
    public_user, _ = await SessionService(db, test_settings).register("Ada", "ada@example.com", "hunter22")
    return public_user


async def _has_paid(db, user_id):
    doc = await db.users.find_one({"_id": ObjectId(user_id)})
    return doc["hasPaid"]


async def test_create_checkout_records_pending_payment(payments, gateway, user, db):
    checkout_id = await payments.create_checkout(user.id)

    record = await db.payments.find_one({"sessionId": checkout_id})
    assert record["status"] == "pending"
    assert record["userId"] == ObjectId(user.id)

    _, params = gateway.created[0]
    assert params["mode"] == "payment"
    assert params["client_reference_id"] == user.id
    assert params["metadata"] == {"userId": user.id}
    assert len(params["line_items"]) == 1
    assert params["line_items"][0]["quantity"] == 1
    assert params["success_url"].startswith("http://localhost:3000/payment-success")
    assert params["cancel_url"] == "http://localhost:3000/payment-cancelled"


async def test_create_checkout_unknown_user(payments):
    with pytest.raises(ResourceNotFoundError):
        await payments.create_checkout(str(ObjectId()))
    with pytest.raises(ResourceNotFoundError):
        await payments.create_checkout("nope")


async def test_create_checkout_without_price_is_configuration_error(db, test_settings, user):
    settings = test_settings.model_copy(update={"PRODUCT_UNIT_AMOUNT": None, "STRIPE_PRICE_ID": None})
    service = PaymentService(db, FakeStripeGateway(settings))

    with pytest.raises(ConfigurationError):
        await service.create_checkout(user.id)
    assert await db.payments.count_documents({}) == 0


async def test_price_id_takes_precedence(test_settings):
    settings = test_settings.model_copy(update={"STRIPE_PRICE_ID": "price_123"})
    items = FakeStripeGateway(settings).build_line_items()
    assert items == [{"price": "price_123", "quantity": 1}]


async def test_create_checkout_upstream_failure(payments, gateway, user, db):
    gateway.fail_next = True

    with pytest.raises(ExternalServiceError):
        await payments.create_checkout(user.id)
    assert await db.payments.count_documents({}) == 0


async def test_apply_payment_twice_is_idempotent(payments, user, db):
    checkout_id = await payments.create_checkout(user.id)
    event = parse_stripe_event(json.loads(checkout_completed_payload(checkout_id, user.id)))

    assert await payments.apply_payment(event) is True
    assert await _has_paid(db, user.id) is True

    assert await payments.apply_payment(event) is True
    assert await _has_paid(db, user.id) is True

    record = await db.payments.find_one({"sessionId": checkout_id})
    assert record["status"] == "completed"


async def test_apply_payment_falls_back_to_metadata(payments, user, db):
    checkout_id = await payments.create_checkout(user.id)
    event = parse_stripe_event(json.loads(checkout_completed_payload(checkout_id, None, metadata_user_id=user.id)))

    assert event.user_id == user.id
    assert await payments.apply_payment(event) is True
    assert await _has_paid(db, user.id) is True


async def test_apply_payment_without_user_reference_is_a_noop(payments, user, db):
    checkout_id = await payments.create_checkout(user.id)
    event = parse_stripe_event(json.loads(checkout_completed_payload(checkout_id)))

    assert await payments.apply_payment(event) is False
    assert await _has_paid(db, user.id) is False
    record = await db.payments.find_one({"sessionId": checkout_id})
    assert record["status"] == "pending"


async def test_apply_payment_for_unknown_user_does_not_raise(payments, db):
    event = CheckoutSessionCompleted(
        event_id="evt_1", checkout_session_id="cs_orphan", client_reference_id=str(ObjectId())
    )
    assert await payments.apply_payment(event) is False

    # the money was taken, so the payment is still on record
    record = await db.payments.find_one({"sessionId": "cs_orphan"})
    assert record["status"] == "completed"


async def test_ignored_event_changes_nothing(payments, user, db):
    event = parse_stripe_event({"id": "evt_x", "type": "customer.created", "data": {"object": {"id": "cus_1"}}})

    assert isinstance(event, IgnoredEvent)
    assert await payments.apply_payment(event) is False
    assert await _has_paid(db, user.id) is False


async def test_payment_intent_succeeded_marks_paid(payments, user, db):
    event = parse_stripe_event({
        "id": "evt_pi",
        "type": "payment_intent.succeeded",
        "data": {"object": {"id": "pi_1", "metadata": {"userId": user.id}, "amount": 50, "currency": "eur"}},
    })

    assert isinstance(event, PaymentIntentSucceeded)
    assert await payments.apply_payment(event) is True
    assert await _has_paid(db, user.id) is True


async def test_concurrent_deliveries_complete_record_once(payments, user, db):
    checkout_id = await payments.create_checkout(user.id)
    payload = checkout_completed_payload(checkout_id, user.id)
    header = sign(payload)

    results = await asyncio.gather(
        payments.apply_payment(payments.verify_callback(payload, header)),
        payments.apply_payment(payments.verify_callback(payload, header)),
    )

    assert results == [True, True]
    assert await _has_paid(db, user.id) is True
    assert await db.payments.count_documents({"sessionId": checkout_id}) == 1
    record = await db.payments.find_one({"sessionId": checkout_id})
    assert record["status"] == "completed"


async def test_payment_record_leaves_pending_once(payments, user, db):
    checkout_id = await payments.create_checkout(user.id)

    results = await asyncio.gather(
        payments.complete_payment_record(checkout_id, ObjectId(user.id)),
        payments.complete_payment_record(checkout_id, ObjectId(user.id)),
    )

    assert sorted(results) == [False, True]
    assert await db.payments.count_documents({"sessionId": checkout_id}) == 1


async def test_missing_payment_record_is_recorded_completed(payments, user, db):
    assert await payments.complete_payment_record("cs_external", ObjectId(user.id)) is True
    assert await payments.complete_payment_record("cs_external", ObjectId(user.id)) is False

    record = await db.payments.find_one({"sessionId": "cs_external"})
    assert record["status"] == "completed"


async def test_poll_status_paid(payments, gateway, user, db):
    checkout_id = await payments.create_checkout(user.id)
    gateway.payment_status[checkout_id] = "paid"

    assert await payments.poll_status(checkout_id) == PaymentCheckResult.PAID
    assert await _has_paid(db, user.id) is True
    record = await db.payments.find_one({"sessionId": checkout_id})
    assert record["status"] == "completed"


async def test_poll_status_not_paid(payments, user, db):
    checkout_id = await payments.create_checkout(user.id)

    assert await payments.poll_status(checkout_id) == PaymentCheckResult.NOT_PAID
    assert await _has_paid(db, user.id) is False


async def test_poll_status_unknown_checkout(payments):
    with pytest.raises(ResourceNotFoundError):
        await payments.poll_status("cs_unknown")


async def test_verify_callback_accepts_exact_body(payments):
    payload = checkout_completed_payload("cs_test_1", str(ObjectId()))
    event = payments.verify_callback(payload, sign(payload))
    assert isinstance(event, CheckoutSessionCompleted)
    assert event.checkout_session_id == "cs_test_1"


async def test_verify_callback_rejects_reserialized_body(payments):
    payload = checkout_completed_payload("cs_test_1", str(ObjectId()))
    header = sign(payload)
    reserialized = json.dumps(json.loads(payload), indent=2, sort_keys=True).encode("utf-8")

    with pytest.raises(SignatureVerificationError):
        payments.verify_callback(reserialized, header)


async def test_verify_callback_rejects_wrong_secret_and_missing_header(payments):
    payload = checkout_completed_payload("cs_test_1", str(ObjectId()))

    with pytest.raises(SignatureVerificationError):
        payments.verify_callback(payload, sign(payload, secret="whsec_other"))
    with pytest.raises(SignatureVerificationError):
        payments.verify_callback(payload, None)


async def test_verify_callback_without_secret_is_configuration_error(db, test_settings):
    settings = test_settings.model_copy(update={"STRIPE_WEBHOOK_SECRET": None})
    service = PaymentService(db, FakeStripeGateway(settings))
    payload = checkout_completed_payload("cs_test_1")

    with pytest.raises(ConfigurationError):
        service.verify_callback(payload, sign(payload))


async def test_verify_callback_acknowledges_signed_event_with_bad_field_types(payments):
    payload = json.dumps({
        "id": "evt_bad",
        "type": "checkout.session.completed",
        "data": {"object": {"id": "cs_test_1", "client_reference_id": 12345}},
    }).encode("utf-8")

    event = payments.verify_callback(payload, sign(payload))

    assert isinstance(event, IgnoredEvent)
    assert event.type == "checkout.session.completed"
    assert await payments.apply_payment(event) is False


async def test_verify_callback_acknowledges_signed_non_event(payments):
    payload = b'{"data": []}'

    event = payments.verify_callback(payload, sign(payload))

    assert isinstance(event, IgnoredEvent)


async def test_verify_callback_rejects_signed_non_json(payments):
    payload = b"not json"

    with pytest.raises(SignatureVerificationError):
        payments.verify_callback(payload, sign(payload))
