"""Pydantic schemas for the viewer access and playback API."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AccessSteps(BaseModel):
    """Progress through the registration steps of an event's access mode."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    form_submitted: bool
    password_verified: bool
    payment_verified: bool
    registration_complete: bool


class RegisterRequest(BaseModel):
    """
    Request schema for registering a viewer.

    Attributes:
        client_viewer_id: Browser-chosen identifier, stable on that device
        form_data: Answers to the event's registration form
        email: Viewer email (also accepted inside form_data)
        name: Display name (else derived from firstName/lastName)
        device_info: Best-effort device description from the client
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "clientViewerId": "c-5d1f9a",
                "email": "fan@example.com",
                "formData": {"firstName": "Ada", "lastName": "Lovelace"},
                "deviceInfo": {"deviceType": "desktop", "browser": "Firefox"},
            }
        },
    )

    client_viewer_id: str = Field(..., min_length=1, max_length=200)
    form_data: Optional[dict[str, Any]] = None
    email: Optional[str] = None
    name: Optional[str] = None
    device_info: Optional[dict[str, Any]] = None


class VerifyPasswordRequest(BaseModel):
    """Password submission; the viewer comes from the body or the credential."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    client_viewer_id: Optional[str] = None
    password: str = ""
