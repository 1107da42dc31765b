"""Viewer model for DynamoDB."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

PaymentStatus = Literal["none", "pending", "succeeded", "failed", "canceled"]


class Viewer(BaseModel):
    """
    A viewer's registration for one event, keyed by (event_id, client_viewer_id).

    ``client_viewer_id`` is chosen by the browser and stays stable on that
    device. Access flags here are authoritative for playback decisions;
    credentials only carry a snapshot.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    event_id: str
    client_viewer_id: str = Field(..., min_length=1)

    email: Optional[str] = None
    normalized_email: Optional[str] = None
    name: Optional[str] = None
    form_data: dict[str, Any] = Field(default_factory=dict)
    registration_identity_key: Optional[str] = None
    form_submitted_at: Optional[str] = None

    access_verified: bool = False
    password_verified: bool = False
    password_verified_at: Optional[str] = None
    is_paid_viewer: bool = False
    payment_status: PaymentStatus = "none"
    registration_complete: bool = False
    registration_completed_at: Optional[str] = None

    last_payment_id: Optional[str] = None
    last_payment_created_at: Optional[str] = None
    last_stripe_checkout_session_id: Optional[str] = None
    last_stripe_payment_intent_id: Optional[str] = None

    device: Optional[dict[str, Any]] = None
    network: Optional[dict[str, Any]] = None
    first_join_at: Optional[str] = None
    last_join_at: Optional[str] = None
    last_active_at: Optional[str] = None
    total_sessions: int = 0
    total_watch_time: int = 0

    created_at: str
    updated_at: str

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_paid_flag(cls, data: Any) -> Any:
        """Read ``viewerpaid`` from records written before ``isPaidViewer`` existed."""
        if isinstance(data, dict) and "isPaidViewer" not in data and "viewerpaid" in data:
            data = dict(data)
            data["isPaidViewer"] = bool(data["viewerpaid"])
        return data

    def to_item(self) -> dict[str, Any]:
        """Serialize for DynamoDB (camelCase keys, None dropped)."""
        return self.model_dump(by_alias=True, exclude_none=True)
