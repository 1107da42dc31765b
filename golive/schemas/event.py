"""Pydantic schemas for event API requests and responses."""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from golive.models.event import Event

# Never returned to API callers
SECRET_FIELDS = {"access_password_hash", "access_password"}


class CreateEventRequest(BaseModel):
    """
    Request schema for creating a new event.

    Shapes are loose on purpose: enumerations, dates, money and the
    registration form are validated by the service so every failure carries
    the same human-readable message style.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "title": "Quarter-final",
                "description": "Live from the main court",
                "eventType": "scheduled",
                "accessMode": "paidAccess",
                "startTime": "2030-06-01T18:00:00Z",
                "videoConfig": {"resolution": "1080p", "frameRate": 30, "bitrateProfile": "high"},
                "accessPassword": "court-side",
                "paymentAmount": 9.99,
                "currency": "USD",
            }
        },
    )

    title: Optional[str] = None
    description: Optional[str] = None
    event_type: Optional[str] = None
    access_mode: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    s3_key: Optional[str] = None
    vod_status: Optional[str] = None
    vod_cloud_front_url: Optional[str] = None
    video_config: Optional[dict[str, Any]] = None
    access_password: Optional[str] = None
    payment_amount: Optional[Union[float, str]] = None
    currency: Optional[str] = None
    registration_fields: Optional[Any] = None
    # Older clients send the form schema as an object or a JSON string
    form_fields: Optional[Any] = None


class UpdateEventRequest(BaseModel):
    """Sparse patch; only the fields present in the body are applied."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={"example": {"title": "Final", "status": "ended"}},
    )

    title: Optional[str] = None
    description: Optional[str] = None
    event_type: Optional[str] = None
    status: Optional[str] = None
    access_mode: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    video_config: Optional[dict[str, Any]] = None
    access_password: Optional[str] = None
    payment_amount: Optional[Union[float, str]] = None
    currency: Optional[str] = None
    registration_fields: Optional[Any] = None
    form_fields: Optional[Any] = None


class ProvisioningResultRequest(BaseModel):
    """Completion signal from the live provisioner."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    provisioning_status: str = Field("ready", description="ready or failed")
    provisioning_error: Optional[str] = None

    input_id: Optional[str] = None
    input_security_group_id: Optional[str] = None
    live_channel_id: Optional[str] = None
    packager_channel_id: Optional[str] = None
    packager_endpoint_id: Optional[str] = None
    distribution_id: Optional[str] = None
    origin_id: Optional[str] = None
    cache_behavior_ids: Optional[list[str]] = None
    cloud_front_url: Optional[str] = None
    packager_url: Optional[str] = None
    recording_bucket: Optional[str] = None
    recording_prefix: Optional[str] = None


class VodStatusRequest(BaseModel):
    """Transcoder progress for an uploaded or recorded event."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    vod_status: str
    vod_cloud_front_url: Optional[str] = None
    vod_1080p_url: Optional[str] = Field(None, alias="vod1080pUrl")
    vod_720p_url: Optional[str] = Field(None, alias="vod720pUrl")
    vod_480p_url: Optional[str] = Field(None, alias="vod480pUrl")
    vod_output_path: Optional[str] = None


def public_event(event: Event) -> dict[str, Any]:
    """Render an event for API responses without its password material."""
    body = event.model_dump(
        mode="json", by_alias=True, exclude_none=True, exclude=SECRET_FIELDS
    )
    body["hasAccessPassword"] = event.has_password
    return body
