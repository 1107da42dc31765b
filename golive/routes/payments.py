"""Payment API routes: checkout, status polling, gateway webhook, admin reads."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request

from golive.auth.dependencies import require_admin, require_viewer
from golive.auth.tokens import AdminPrincipal, ViewerClaims
from golive.exceptions import ForbiddenError
from golive.schemas.payment import ListPaymentsRequest
from golive.services.payment_service import PaymentService

router = APIRouter(prefix="/api/payments", tags=["Payments"])


@router.post(
    "/stripe/webhook",
    responses={
        200: {"description": "Event reconciled or safely ignored"},
        400: {"description": "Invalid signature or payload"},
        500: {"description": "Reconciliation failed; the gateway will retry"},
    },
)
async def stripe_webhook(request: Request) -> dict[str, Any]:
    """
    Receive a Stripe webhook.

    The signature covers the exact bytes sent, so the raw body is read
    before any JSON parsing.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    service = PaymentService()
    return await service.handle_webhook(payload, signature)


def _check_event(event_id: str, claims: ViewerClaims) -> None:
    if claims.event_id != event_id:
        raise ForbiddenError("Event mismatch")


@router.post(
    "/{event_id}/create-session",
    responses={
        200: {
            "description": "Checkout opened (or viewer already paid)",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "paymentId": "7a0c3f7e-0d4e-4f55-9d0a-1f1d2c3b4a59",
                        "createdAt": "2025-11-11T12:00:00.000Z",
                        "status": "pending",
                        "sessionId": "cs_test_a1b2c3",
                        "url": "https://checkout.stripe.com/c/pay/cs_test_a1b2c3",
                    }
                }
            },
        },
        403: {"description": "Credential is for another event"},
        404: {"description": "Event or viewer not found"},
        502: {"description": "Payment gateway failure"},
        503: {"description": "Payments not configured"},
    },
)
async def create_checkout_session(
    event_id: str,
    claims: ViewerClaims = Depends(require_viewer),
) -> dict[str, Any]:
    _check_event(event_id, claims)
    service = PaymentService()
    return await service.create_checkout(event_id, claims.client_viewer_id)


@router.get("/{event_id}/verify")
async def verify_payment(
    event_id: str,
    claims: ViewerClaims = Depends(require_viewer),
) -> dict[str, Any]:
    """Latest payment and entitlement, polled after the checkout redirect."""
    _check_event(event_id, claims)
    service = PaymentService()
    return await service.check_status(event_id, claims.client_viewer_id)


@router.post("/{event_id}/list")
async def list_payments(
    event_id: str,
    body: Optional[ListPaymentsRequest] = None,
    admin: AdminPrincipal = Depends(require_admin),
) -> dict[str, Any]:
    body = body or ListPaymentsRequest()
    service = PaymentService()
    return await service.list_for_event(event_id, limit=body.limit, cursor=body.cursor)


@router.get("/detail/{payment_id}")
async def get_payment(
    payment_id: str,
    created_at: Optional[str] = Query(None, alias="createdAt"),
    admin: AdminPrincipal = Depends(require_admin),
) -> dict[str, Any]:
    service = PaymentService()
    payment = await service.get_payment(payment_id, created_at)
    return {
        "success": True,
        "payment": payment.model_dump(mode="json", by_alias=True, exclude_none=True),
    }
