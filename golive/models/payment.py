"""Payment model for DynamoDB."""

from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel

PaymentState = Literal["pending", "succeeded", "failed", "canceled"]

TERMINAL_STATES = frozenset({"succeeded", "failed", "canceled"})


class Payment(BaseModel):
    """
    One checkout attempt, keyed by (payment_id, created_at).

    ``payment_id`` doubles as the gateway idempotency key. Terminal states
    never change once written.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    payment_id: str
    created_at: str
    event_id: str
    client_viewer_id: str
    amount: Decimal
    amount_minor: int
    currency: str
    status: PaymentState = "pending"

    checkout_session_id: Optional[str] = None
    checkout_url: Optional[str] = None
    payment_intent_id: Optional[str] = None
    payment_method_id: Optional[str] = None
    payment_method_type: Optional[str] = None
    payment_method_details: Optional[dict[str, Any]] = None
    receipt_url: Optional[str] = None
    failure_reason: Optional[str] = None
    gateway_event_type: Optional[str] = None
    gateway_session_status: Optional[str] = None
    gateway_payment_status: Optional[str] = None
    customer_id: Optional[str] = None
    customer_email: Optional[str] = None
    updated_at: str

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, value: Decimal) -> float:
        return float(value)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def to_item(self) -> dict[str, Any]:
        """Serialize for DynamoDB (camelCase keys, None dropped, Decimals kept)."""
        return self.model_dump(by_alias=True, exclude_none=True)
