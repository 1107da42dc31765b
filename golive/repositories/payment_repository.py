"""Payment repository for DynamoDB operations."""

from typing import Any

from golive.config import settings
from golive.models.payment import Payment
from golive.repositories.base import BaseRepository, build_set_expression

EVENT_INDEX = "eventId-index"
EVENT_VIEWER_INDEX = "eventId-clientViewerId-index"


class PaymentRepository(BaseRepository):
    """
    Repository for Payment operations in DynamoDB.

    Payments are keyed by (paymentId, createdAt). Status changes go through
    ``transition``, which is conditional on the status the caller observed.
    """

    decimal_fields = frozenset({"amount"})

    def __init__(self) -> None:
        """Initialize PaymentRepository with payments table."""
        super().__init__(settings.dynamodb_table_payments)

    async def create(self, payment: Payment) -> Payment:
        """
        Persist a new pending payment.

        Raises:
            ConditionFailedError: If the paymentId already exists
        """
        await self.put_item(
            payment.to_item(), condition_expression="attribute_not_exists(paymentId)"
        )
        return payment

    async def get(self, payment_id: str, created_at: str) -> Payment | None:
        item = await self.get_item({"paymentId": payment_id, "createdAt": created_at})
        return Payment.model_validate(item) if item else None

    async def get_latest(self, payment_id: str) -> Payment | None:
        """Get the newest record for a paymentId when createdAt is unknown."""
        items, _ = await self.query(
            "paymentId = :paymentId",
            {":paymentId": payment_id},
            limit=1,
            scan_forward=False,
        )
        return Payment.model_validate(items[0]) if items else None

    async def latest_for_viewer(
        self, event_id: str, client_viewer_id: str
    ) -> Payment | None:
        """Most recent payment a viewer started for an event."""
        items = await self.query_all(
            "eventId = :eventId AND clientViewerId = :clientViewerId",
            {":eventId": event_id, ":clientViewerId": client_viewer_id},
            index_name=EVENT_VIEWER_INDEX,
        )
        if not items:
            return None
        newest = max(items, key=lambda item: item.get("createdAt", ""))
        return Payment.model_validate(newest)

    async def list_for_event(
        self,
        event_id: str,
        limit: int = 50,
        exclusive_start_key: dict[str, Any] | None = None,
    ) -> tuple[list[Payment], dict[str, Any] | None]:
        """List an event's payments, newest first."""
        items, next_key = await self.query(
            "eventId = :eventId",
            {":eventId": event_id},
            index_name=EVENT_INDEX,
            limit=limit,
            exclusive_start_key=exclusive_start_key,
            scan_forward=False,
        )
        return [Payment.model_validate(item) for item in items], next_key

    async def transition(
        self,
        payment: Payment,
        expected_status: str,
        fields: dict[str, Any],
    ) -> Payment:
        """
        Update a payment only if its status is still ``expected_status``.

        Raises:
            ConditionFailedError: If another writer changed the status first
        """
        expression, names, values = build_set_expression(fields)
        names["#currentStatus"] = "status"
        values[":expectedStatus"] = expected_status
        item = await self.update_item(
            {"paymentId": payment.payment_id, "createdAt": payment.created_at},
            expression,
            expression_values=values,
            expression_names=names,
            condition_expression="#currentStatus = :expectedStatus",
        )
        return Payment.model_validate(item)
