"""Tests for the Stripe gateway wrapper."""

import hashlib
import hmac
import json
import time
from types import SimpleNamespace
from unittest.mock import patch

import pytest
import stripe

from golive.exceptions import InvalidInputError, ServiceUnavailableError, UpstreamFailureError
from golive.resources.stripe_gateway import StripeGateway

WEBHOOK_SECRET = "whsec_test_secret"


def sign(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


@pytest.fixture
def gateway() -> StripeGateway:
    return StripeGateway(api_key="sk_test_123", webhook_secret=WEBHOOK_SECRET)


CHECKOUT_ARGS = {
    "idempotency_key": "pay-1",
    "amount_minor": 999,
    "currency": "USD",
    "product_name": "Event access: Final",
    "client_reference_id": "evt-1:c1",
    "metadata": {"paymentId": "pay-1"},
    "success_url": "https://app.test/ok",
    "cancel_url": "https://app.test/cancel",
}


@pytest.mark.asyncio
async def test_create_checkout_session(gateway):
    session = SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.test/cs_test_1")

    with patch("golive.resources.stripe_gateway.stripe.checkout.Session.create", return_value=session) as create:
        result = await gateway.create_checkout_session(customer_email="ada@example.com", **CHECKOUT_ARGS)

    assert result == {"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}
    kwargs = create.call_args.kwargs
    assert kwargs["idempotency_key"] == "pay-1"
    assert kwargs["api_key"] == "sk_test_123"
    assert kwargs["line_items"][0]["price_data"]["unit_amount"] == 999
    assert kwargs["line_items"][0]["price_data"]["currency"] == "usd"
    assert kwargs["payment_intent_data"] == {"metadata": {"paymentId": "pay-1"}}
    assert kwargs["customer_email"] == "ada@example.com"


@pytest.mark.asyncio
async def test_gateway_error_becomes_upstream_failure(gateway):
    with patch(
        "golive.resources.stripe_gateway.stripe.checkout.Session.create",
        side_effect=stripe.APIConnectionError("network down"),
    ):
        with pytest.raises(UpstreamFailureError) as exc_info:
            await gateway.create_checkout_session(**CHECKOUT_ARGS)

    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_checkout_without_api_key():
    with pytest.raises(ServiceUnavailableError):
        await StripeGateway(api_key="", webhook_secret=WEBHOOK_SECRET).create_checkout_session(**CHECKOUT_ARGS)


@pytest.mark.asyncio
async def test_payment_intent_details(gateway):
    card = SimpleNamespace(brand="visa", last4="4242")
    charge = SimpleNamespace(
        payment_method_details=SimpleNamespace(type="card", card=card),
        receipt_url="https://pay.stripe.test/receipt",
    )
    intent = SimpleNamespace(latest_charge=charge, payment_method="pm_1")

    with patch("golive.resources.stripe_gateway.stripe.PaymentIntent.retrieve", return_value=intent):
        details = await gateway.retrieve_payment_intent("pi_1")

    assert details == {
        "paymentMethodId": "pm_1",
        "paymentMethodType": "card",
        "paymentMethodDetails": {"type": "card", "brand": "visa", "last4": "4242"},
        "receiptUrl": "https://pay.stripe.test/receipt",
    }


@pytest.mark.asyncio
async def test_payment_intent_lookup_failure_is_soft(gateway):
    with patch(
        "golive.resources.stripe_gateway.stripe.PaymentIntent.retrieve",
        side_effect=stripe.InvalidRequestError("No such payment_intent", param="id"),
    ):
        assert await gateway.retrieve_payment_intent("pi_missing") is None


@pytest.mark.asyncio
async def test_verify_webhook_accepts_valid_signature(gateway):
    payload = json.dumps({"id": "evt_1", "type": "checkout.session.completed", "data": {"object": {}}})

    event = await gateway.verify_webhook(payload.encode("utf-8"), sign(payload))

    assert event["type"] == "checkout.session.completed"


@pytest.mark.asyncio
async def test_verify_webhook_rejects_tampered_payload(gateway):
    payload = json.dumps({"id": "evt_1", "type": "checkout.session.completed"})
    signature = sign(payload)

    with pytest.raises(InvalidInputError, match="Invalid webhook signature"):
        await gateway.verify_webhook(payload.replace("evt_1", "evt_2").encode("utf-8"), signature)


@pytest.mark.asyncio
async def test_verify_webhook_rejects_stale_signature(gateway):
    payload = json.dumps({"id": "evt_1", "type": "checkout.session.completed"})

    with pytest.raises(InvalidInputError):
        await gateway.verify_webhook(payload.encode("utf-8"), sign(payload, timestamp=int(time.time()) - 3600))


@pytest.mark.asyncio
async def test_verify_webhook_requires_signature(gateway):
    with pytest.raises(InvalidInputError, match="Missing Stripe-Signature"):
        await gateway.verify_webhook(b"{}", None)


@pytest.mark.asyncio
async def test_verify_webhook_requires_event_type(gateway):
    payload = json.dumps({"id": "evt_1"})

    with pytest.raises(InvalidInputError, match="Invalid webhook payload"):
        await gateway.verify_webhook(payload.encode("utf-8"), sign(payload))


@pytest.mark.asyncio
async def test_verify_webhook_without_secret():
    with pytest.raises(ServiceUnavailableError):
        await StripeGateway(api_key="sk", webhook_secret="").verify_webhook(b"{}", "t=1,v1=x")
