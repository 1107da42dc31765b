"""Stripe payment gateway: hosted checkout, payment intents and webhook signatures."""

import asyncio
import json
from typing import Any

import stripe

from golive.config import settings
from golive.exceptions import (
    InvalidInputError,
    ServiceUnavailableError,
    UpstreamFailureError,
)
from golive.logging.config import get_logger

logger = get_logger(__name__)


class StripeGateway:
    """
    Async wrapper around the synchronous Stripe SDK.

    SDK calls run in worker threads so the event loop is never blocked.
    Checkout creation is idempotent on the caller-supplied key.
    """

    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.stripe_secret_key
        self.webhook_secret = (
            webhook_secret if webhook_secret is not None else settings.stripe_webhook_secret
        )
        stripe.max_network_retries = settings.stripe_max_network_retries

    def _require_api_key(self) -> None:
        if not self.api_key:
            raise ServiceUnavailableError("Payments are not configured", service="stripe")

    async def create_checkout_session(
        self,
        *,
        idempotency_key: str,
        amount_minor: int,
        currency: str,
        product_name: str,
        client_reference_id: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
        customer_email: str | None = None,
    ) -> dict[str, str]:
        """
        Create a hosted checkout session for a single event ticket.

        Args:
            idempotency_key: Key that makes retries return the same session
            amount_minor: Price in minor units
            currency: ISO 4217 code
            product_name: Line item name shown on the checkout page
            client_reference_id: ``eventId:clientViewerId``
            metadata: Copied onto both the session and its payment intent
            success_url: Redirect after payment
            cancel_url: Redirect after abandonment
            customer_email: Prefill for the checkout form

        Returns:
            Dict with the session ``id`` and hosted ``url``

        Raises:
            UpstreamFailureError: If Stripe rejects or cannot process the request
        """
        self._require_api_key()
        params: dict[str, Any] = {
            "mode": "payment",
            "line_items": [
                {
                    "price_data": {
                        "currency": currency.lower(),
                        "product_data": {"name": product_name},
                        "unit_amount": amount_minor,
                    },
                    "quantity": 1,
                }
            ],
            "client_reference_id": client_reference_id,
            "metadata": metadata,
            "payment_intent_data": {"metadata": metadata},
            "success_url": success_url,
            "cancel_url": cancel_url,
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create,
                api_key=self.api_key,
                idempotency_key=idempotency_key,
                **params,
            )
        except stripe.StripeError as exc:
            logger.error(
                "Stripe checkout creation failed",
                extra={"context": {"payment_id": idempotency_key, "error": str(exc)}},
            )
            raise UpstreamFailureError(
                "Payment gateway could not create a checkout session", service="stripe"
            ) from exc

        return {"id": session.id, "url": session.url}

    async def retrieve_payment_intent(self, payment_intent_id: str) -> dict[str, Any] | None:
        """
        Fetch receipt and payment-method details for a payment intent.

        Enrichment is best effort: failures are logged and yield None.
        """
        if not self.api_key:
            return None
        try:
            intent = await asyncio.to_thread(
                stripe.PaymentIntent.retrieve,
                payment_intent_id,
                api_key=self.api_key,
                expand=["latest_charge"],
            )
        except stripe.StripeError as exc:
            logger.warning(
                "Could not retrieve payment intent",
                extra={"context": {"payment_intent_id": payment_intent_id, "error": str(exc)}},
            )
            return None

        charge = getattr(intent, "latest_charge", None)
        if isinstance(charge, str):
            charge = None
        method_details = getattr(charge, "payment_method_details", None) if charge else None
        method_type = getattr(method_details, "type", None) if method_details else None
        card = getattr(method_details, "card", None) if method_details else None
        payment_method = getattr(intent, "payment_method", None)

        details = {
            "type": method_type,
            "brand": getattr(card, "brand", None) if card else None,
            "last4": getattr(card, "last4", None) if card else None,
        }
        return {
            "paymentMethodId": payment_method if isinstance(payment_method, str) else None,
            "paymentMethodType": method_type,
            "paymentMethodDetails": {k: v for k, v in details.items() if v is not None} or None,
            "receiptUrl": getattr(charge, "receipt_url", None) if charge else None,
        }

    async def verify_webhook(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """
        Verify a webhook signature and parse the event.

        Args:
            payload: Raw request body exactly as received
            signature: ``Stripe-Signature`` header value

        Returns:
            The webhook event as a plain dict

        Raises:
            InvalidInputError: If the signature or payload is invalid
        """
        if not self.webhook_secret:
            raise ServiceUnavailableError("Webhook secret is not configured", service="stripe")
        if not signature:
            raise InvalidInputError("Missing Stripe-Signature header")

        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidInputError("Invalid webhook payload")

        try:
            await asyncio.to_thread(
                stripe.WebhookSignature.verify_header,
                text,
                signature,
                self.webhook_secret,
                settings.stripe_webhook_tolerance_seconds,
            )
        except stripe.SignatureVerificationError:
            raise InvalidInputError("Invalid webhook signature")

        try:
            event = json.loads(text)
        except ValueError:
            raise InvalidInputError("Invalid webhook payload")
        if not isinstance(event, dict) or "type" not in event:
            raise InvalidInputError("Invalid webhook payload")
        return event
