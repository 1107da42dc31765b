"""Event model for DynamoDB."""

from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator
from pydantic.alias_generators import to_camel

EventType = Literal["live", "scheduled", "vod"]
AccessMode = Literal["freeAccess", "emailAccess", "passwordAccess", "paidAccess"]
EventStatus = Literal["draft", "scheduled", "live", "uploaded", "ended", "archived"]
VodStatus = Literal["UPLOADED", "PROCESSING", "READY", "FAILED"]

EVENT_TYPES: tuple[str, ...] = ("live", "scheduled", "vod")
ACCESS_MODES: tuple[str, ...] = ("freeAccess", "emailAccess", "passwordAccess", "paidAccess")
EVENT_STATUSES: tuple[str, ...] = ("draft", "scheduled", "live", "uploaded", "ended", "archived")
VOD_STATUSES: tuple[str, ...] = ("UPLOADED", "PROCESSING", "READY", "FAILED")
RESOLUTIONS: tuple[str, ...] = ("1080p", "720p", "480p")
FRAME_RATES: tuple[int, ...] = (25, 30, 60)
BITRATE_PROFILES: tuple[str, ...] = ("low", "medium", "high")

# Unambiguous renames from the older access-mode vocabulary
LEGACY_ACCESS_MODES: dict[str, str] = {
    "paymentAccess": "paidAccess",
    "openAccess": "freeAccess",
}

INITIAL_STATUS_BY_TYPE: dict[str, str] = {
    "live": "live",
    "scheduled": "scheduled",
    "vod": "uploaded",
}

PASSWORD_MODES = frozenset({"passwordAccess", "paidAccess"})
FORM_MODES = frozenset({"emailAccess", "passwordAccess", "paidAccess"})

# Provisioning handles written by the live provisioner and read by teardown
RESOURCE_HANDLE_FIELDS: tuple[str, ...] = (
    "input_id",
    "input_security_group_id",
    "live_channel_id",
    "packager_channel_id",
    "packager_endpoint_id",
    "distribution_id",
    "origin_id",
    "cache_behavior_ids",
    "cloud_front_url",
    "packager_url",
    "vod_cloud_front_url",
    "vod_1080p_url",
    "vod_720p_url",
    "vod_480p_url",
    "vod_output_path",
    "recording_bucket",
    "recording_prefix",
)


class VideoConfig(BaseModel):
    """Encoder profile requested for a live or scheduled event."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    resolution: Literal["1080p", "720p", "480p"] = "1080p"
    frame_rate: Literal[25, 30, 60] = 30
    bitrate_profile: Literal["low", "medium", "high"] = "medium"


class RegistrationField(BaseModel):
    """One entry of an event's registration form schema."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    field_id: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    required: bool = False
    type: str = "string"


DEFAULT_EMAIL_FIELDS: tuple[RegistrationField, ...] = (
    RegistrationField(field_id="firstName", label="First name", required=True),
    RegistrationField(field_id="lastName", label="Last name", required=True),
    RegistrationField(field_id="email", label="Email", required=True, type="email"),
)


class Event(BaseModel):
    """
    Event record: access policy, lifecycle state and provisioned resource handles.

    Attribute names are snake_case in Python and camelCase in DynamoDB and
    JSON. ``access_password_hash`` is a bcrypt hash; ``access_password`` only
    appears on legacy records and is rewritten by the migration.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    event_id: str = Field(..., description="Unique event identifier (UUID)")
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    event_type: EventType
    access_mode: AccessMode = "freeAccess"
    status: EventStatus

    start_time: Optional[str] = None
    end_time: Optional[str] = None

    s3_key: Optional[str] = None
    s3_prefix: Optional[str] = None
    vod_status: Optional[VodStatus] = None

    video_config: Optional[VideoConfig] = None

    access_password_hash: Optional[str] = None
    access_password: Optional[str] = None
    payment_amount: Optional[Decimal] = None
    currency: Optional[str] = None
    registration_fields: list[RegistrationField] = Field(default_factory=list)

    input_id: Optional[str] = None
    input_security_group_id: Optional[str] = None
    live_channel_id: Optional[str] = None
    packager_channel_id: Optional[str] = None
    packager_endpoint_id: Optional[str] = None
    distribution_id: Optional[str] = None
    origin_id: Optional[str] = None
    cache_behavior_ids: list[str] = Field(default_factory=list)
    cloud_front_url: Optional[str] = None
    packager_url: Optional[str] = None
    vod_cloud_front_url: Optional[str] = None
    vod_1080p_url: Optional[str] = Field(None, alias="vod1080pUrl")
    vod_720p_url: Optional[str] = Field(None, alias="vod720pUrl")
    vod_480p_url: Optional[str] = Field(None, alias="vod480pUrl")
    vod_output_path: Optional[str] = None
    recording_bucket: Optional[str] = None
    recording_prefix: Optional[str] = None
    provisioning_status: Optional[str] = None
    provisioning_error: Optional[str] = None

    is_deletion_in_progress: bool = False
    deletion_started_at: Optional[str] = None
    deletion_error: Optional[str] = None
    deletion_failed_at: Optional[str] = None

    created_by: Optional[str] = None
    created_at: str
    updated_at: str

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_vocabulary(cls, data: Any) -> Any:
        """Read records written with the older access-mode names or ``type`` field."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        mode = data.get("accessMode")
        if mode in LEGACY_ACCESS_MODES:
            data["accessMode"] = LEGACY_ACCESS_MODES[mode]
        if "eventType" not in data and data.get("type") in ("live", "vod"):
            data["eventType"] = data["type"]
        return data

    @field_serializer("payment_amount", when_used="json")
    def serialize_amount(self, value: Optional[Decimal]) -> Optional[float]:
        return float(value) if value is not None else None

    @property
    def has_password(self) -> bool:
        return bool(self.access_password_hash or self.access_password)

    @property
    def live_url(self) -> Optional[str]:
        return self.cloud_front_url or self.packager_url

    @property
    def vod_url(self) -> Optional[str]:
        return (
            self.vod_cloud_front_url
            or self.vod_1080p_url
            or self.vod_720p_url
            or self.vod_480p_url
        )

    def to_item(self) -> dict[str, Any]:
        """Serialize for DynamoDB (camelCase keys, None dropped, Decimals kept)."""
        return self.model_dump(by_alias=True, exclude_none=True)
