"""
Payment coordination: checkout creation, webhook reconciliation, status reads.

Writes are ordered from least to most user-visible: the Payment record is
updated before the Viewer, and the Viewer before any new credential.
Terminal payment states never change once written.
"""

from typing import Any, NamedTuple, Optional

from golive.config import settings
from golive.exceptions import (
    ConditionFailedError,
    ConflictError,
    InvalidInputError,
    InvariantViolationError,
    NotFoundError,
)
from golive.logging.config import get_logger
from golive.models.event import Event
from golive.models.payment import Payment
from golive.models.viewer import Viewer
from golive.repositories.event_repository import EventRepository
from golive.repositories.payment_repository import PaymentRepository
from golive.repositories.viewer_repository import ViewerRepository
from golive.resources.stripe_gateway import StripeGateway
from golive.utils.clock import Clock, system_clock
from golive.utils.ids import new_id
from golive.utils.money import to_minor_units
from golive.utils.pagination import decode_cursor, encode_cursor

logger = get_logger(__name__)

PAID_STATUSES = frozenset({"paid", "succeeded"})


class MappedOutcome(NamedTuple):
    status: str
    failure_reason: Optional[str] = None


def map_gateway_event(event_type: str, obj: dict[str, Any]) -> MappedOutcome | None:
    """
    Map a Stripe webhook event to a payment status.

    Returns:
        MappedOutcome, or None for event types that do not concern payments
    """
    if event_type in ("checkout.session.completed", "checkout.session.async_payment_succeeded"):
        if obj.get("payment_status") in PAID_STATUSES:
            return MappedOutcome("succeeded")
        return MappedOutcome("pending")
    if event_type == "checkout.session.async_payment_failed":
        return MappedOutcome("failed", "Stripe checkout payment failed")
    if event_type == "checkout.session.expired":
        return MappedOutcome("canceled", "Stripe checkout session expired")
    if event_type == "payment_intent.payment_failed":
        error = obj.get("last_payment_error") or {}
        return MappedOutcome("failed", error.get("message") or "Payment failed at Stripe")
    return None


def _gateway_fields(event_type: str, obj: dict[str, Any]) -> dict[str, Any]:
    """Payment attributes carried by the webhook object itself."""
    if event_type.startswith("checkout.session."):
        customer_details = obj.get("customer_details") or {}
        fields = {
            "checkoutSessionId": obj.get("id"),
            "paymentIntentId": obj.get("payment_intent"),
            "gatewaySessionStatus": obj.get("status"),
            "gatewayPaymentStatus": obj.get("payment_status"),
            "customerId": obj.get("customer"),
            "customerEmail": customer_details.get("email") or obj.get("customer_email"),
        }
    else:
        fields = {
            "paymentIntentId": obj.get("id"),
            "gatewayPaymentStatus": obj.get("status"),
            "customerId": obj.get("customer"),
        }
    fields["gatewayEventType"] = event_type
    return {key: value for key, value in fields.items() if value is not None}


class PaymentService:
    """
    Service layer for paid access.

    ``paymentId`` is minted per checkout attempt and doubles as the gateway
    idempotency key, so a retried create never opens two checkouts.
    """

    def __init__(
        self,
        payments: PaymentRepository | None = None,
        viewers: ViewerRepository | None = None,
        events: EventRepository | None = None,
        gateway: StripeGateway | None = None,
        clock: Clock = system_clock,
    ) -> None:
        self.payments = payments or PaymentRepository()
        self.viewers = viewers or ViewerRepository()
        self.events = events or EventRepository()
        self.gateway = gateway or StripeGateway()
        self.clock = clock

    async def _load_paid_event(self, event_id: str) -> Event:
        event = await self.events.get_by_id(event_id)
        if event is None:
            raise NotFoundError(message="Event not found", resource="event", resource_id=event_id)
        if event.access_mode != "paidAccess":
            raise InvalidInputError("Event does not require payment")
        if event.payment_amount is None or not event.currency:
            raise InvalidInputError("Event payment is not configured")
        return event

    async def _load_viewer(self, event_id: str, client_viewer_id: str) -> Viewer:
        viewer = await self.viewers.get(event_id, client_viewer_id)
        if viewer is None:
            raise NotFoundError(
                message="Viewer not found", resource="viewer", resource_id=client_viewer_id
            )
        return viewer

    async def create_checkout(self, event_id: str, client_viewer_id: str) -> dict[str, Any]:
        """
        Open a hosted checkout for a registered viewer.

        Args:
            event_id: Paid event
            client_viewer_id: Viewer from the credential

        Returns:
            Dict with paymentId, createdAt, status, sessionId and url, or
            ``alreadyPaid`` when the viewer holds paid access

        Raises:
            NotFoundError: Unknown event or viewer
            InvalidInputError: Event is not a configured paid event
            UpstreamFailureError: The gateway rejected the checkout
            ServiceUnavailableError: Payments are not configured
        """
        event = await self._load_paid_event(event_id)
        viewer = await self._load_viewer(event_id, client_viewer_id)
        if viewer.is_paid_viewer:
            return {
                "success": True,
                "alreadyPaid": True,
                "paymentStatus": "succeeded",
            }

        payment_id = new_id()
        created_at = self.clock.now_iso()
        amount_minor = to_minor_units(event.payment_amount)
        metadata = {
            "paymentId": payment_id,
            "eventId": event_id,
            "clientViewerId": client_viewer_id,
            "createdAt": created_at,
        }
        player_url = f"{settings.frontend_url.rstrip('/')}/player/{event_id}"

        session = await self.gateway.create_checkout_session(
            idempotency_key=payment_id,
            amount_minor=amount_minor,
            currency=event.currency,
            product_name=f"{settings.payment_product_name}: {event.title}",
            client_reference_id=f"{event_id}:{client_viewer_id}",
            metadata=metadata,
            success_url=f"{player_url}?payment=success&session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{player_url}?payment=cancel",
            customer_email=viewer.email,
        )

        payment = Payment(
            payment_id=payment_id,
            created_at=created_at,
            event_id=event_id,
            client_viewer_id=client_viewer_id,
            amount=event.payment_amount,
            amount_minor=amount_minor,
            currency=event.currency,
            status="pending",
            checkout_session_id=session["id"],
            checkout_url=session["url"],
            customer_email=viewer.email,
            updated_at=created_at,
        )
        try:
            await self.payments.create(payment)
        except ConditionFailedError:
            raise ConflictError("Payment already exists", details={"paymentId": payment_id})

        await self.viewers.update_fields(
            event_id,
            client_viewer_id,
            {
                "paymentStatus": "pending",
                "lastPaymentId": payment_id,
                "lastPaymentCreatedAt": created_at,
                "lastStripeCheckoutSessionId": session["id"],
                "updatedAt": created_at,
            },
        )

        logger.info(
            "Checkout session created",
            extra={
                "context": {
                    "event_id": event_id,
                    "client_viewer_id": client_viewer_id,
                    "payment_id": payment_id,
                    "amount_minor": amount_minor,
                    "currency": event.currency,
                }
            },
        )
        return {
            "success": True,
            "paymentId": payment_id,
            "createdAt": created_at,
            "status": "pending",
            "sessionId": session["id"],
            "url": session["url"],
        }

    async def handle_webhook(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """
        Verify and reconcile one gateway webhook delivery.

        Returns:
            Dict with ``received`` and an ``outcome`` of processed, replayed
            or ignored

        Raises:
            InvalidInputError: Bad signature or payload (400, gateway retries)
            InvariantViolationError: Payment changed state under us (500)
        """
        webhook = await self.gateway.verify_webhook(payload, signature)
        event_type = webhook.get("type", "")
        obj = (webhook.get("data") or {}).get("object") or {}
        context = {"webhook_id": webhook.get("id"), "type": event_type}

        mapped = map_gateway_event(event_type, obj)
        if mapped is None:
            logger.info("Webhook type ignored", extra={"context": context})
            return {"received": True, "outcome": "ignored"}

        metadata = obj.get("metadata") or {}
        payment_id = metadata.get("paymentId")
        if not payment_id:
            logger.warning("Webhook without paymentId ignored", extra={"context": context})
            return {"received": True, "outcome": "ignored"}
        context["payment_id"] = payment_id

        created_at = metadata.get("createdAt")
        if created_at:
            payment = await self.payments.get(payment_id, created_at)
        else:
            payment = await self.payments.get_latest(payment_id)
        if payment is None:
            logger.warning("Webhook for unknown payment ignored", extra={"context": context})
            return {"received": True, "outcome": "ignored"}

        if payment.is_terminal:
            if payment.status == mapped.status:
                await self._mirror_onto_viewer(payment, repair_only=True)
                logger.info("Webhook replay", extra={"context": context})
                return {"received": True, "outcome": "replayed"}
            logger.info(
                "Terminal payment kept",
                extra={"context": {**context, "status": payment.status, "mapped": mapped.status}},
            )
            return {"received": True, "outcome": "ignored"}

        fields: dict[str, Any] = {
            **_gateway_fields(event_type, obj),
            "status": mapped.status,
            "updatedAt": self.clock.now_iso(),
        }
        if mapped.failure_reason:
            fields["failureReason"] = mapped.failure_reason
        intent_id = fields.get("paymentIntentId")
        if intent_id:
            details = await self.gateway.retrieve_payment_intent(intent_id)
            if details:
                fields.update({key: value for key, value in details.items() if value is not None})

        try:
            payment = await self.payments.transition(payment, "pending", fields)
        except ConditionFailedError:
            current = await self.payments.get(payment.payment_id, payment.created_at)
            if current is None or current.status != mapped.status:
                raise InvariantViolationError(
                    "Payment changed state during reconciliation",
                    details={"paymentId": payment_id},
                )
            payment = current

        await self._mirror_onto_viewer(payment)
        logger.info(
            "Webhook reconciled",
            extra={"context": {**context, "status": payment.status}},
        )
        return {"received": True, "outcome": "processed"}

    async def _mirror_onto_viewer(self, payment: Payment, repair_only: bool = False) -> None:
        viewer = await self.viewers.get(payment.event_id, payment.client_viewer_id)
        if viewer is None:
            logger.warning(
                "Payment for unknown viewer",
                extra={"context": {"payment_id": payment.payment_id}},
            )
            return

        granted = payment.status == "succeeded"
        if repair_only and viewer.is_paid_viewer == granted and (
            viewer.payment_status == payment.status or viewer.is_paid_viewer
        ):
            return
        if not granted and viewer.is_paid_viewer:
            # Another payment already unlocked this viewer
            return

        fields: dict[str, Any] = {
            "isPaidViewer": granted,
            "paymentStatus": payment.status,
            "lastPaymentId": payment.payment_id,
            "lastPaymentCreatedAt": payment.created_at,
            "updatedAt": self.clock.now_iso(),
        }
        if payment.checkout_session_id:
            fields["lastStripeCheckoutSessionId"] = payment.checkout_session_id
        if payment.payment_intent_id:
            fields["lastStripePaymentIntentId"] = payment.payment_intent_id
        if granted and viewer.password_verified:
            fields["accessVerified"] = True
            fields["registrationComplete"] = True
            if viewer.registration_completed_at is None:
                fields["registrationCompletedAt"] = fields["updatedAt"]

        try:
            await self.viewers.apply_payment_state(
                payment.event_id, payment.client_viewer_id, fields, grants_access=granted
            )
        except ConditionFailedError:
            logger.info(
                "Viewer already holds paid access",
                extra={"context": {"payment_id": payment.payment_id}},
            )

    async def check_status(self, event_id: str, client_viewer_id: str) -> dict[str, Any]:
        """Latest payment and entitlement for a viewer (polled after redirect)."""
        viewer = await self._load_viewer(event_id, client_viewer_id)
        payment = await self.payments.latest_for_viewer(event_id, client_viewer_id)
        return {
            "success": True,
            "payment": payment.model_dump(mode="json", by_alias=True, exclude_none=True)
            if payment
            else None,
            "paymentStatus": payment.status if payment else viewer.payment_status,
            "isPaidViewer": viewer.is_paid_viewer,
        }

    async def list_for_event(
        self, event_id: str, limit: int = 50, cursor: str | None = None
    ) -> dict[str, Any]:
        page_size = min(limit, settings.max_list_limit)
        payments, next_key = await self.payments.list_for_event(
            event_id, limit=page_size, exclusive_start_key=decode_cursor(cursor)
        )
        return {
            "success": True,
            "payments": [
                payment.model_dump(mode="json", by_alias=True, exclude_none=True)
                for payment in payments
            ],
            "count": len(payments),
            "nextCursor": encode_cursor(next_key),
        }

    async def get_payment(self, payment_id: str, created_at: str | None = None) -> Payment:
        """
        Load one payment; without ``created_at`` the newest record is returned.

        Raises:
            NotFoundError: If no such payment exists
        """
        if created_at:
            payment = await self.payments.get(payment_id, created_at)
        else:
            payment = await self.payments.get_latest(payment_id)
        if payment is None:
            raise NotFoundError(
                message="Payment not found", resource="payment", resource_id=payment_id
            )
        return payment
