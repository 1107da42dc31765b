"""Event service layer: creation, field-level update rules, deletion marking."""

import json
from decimal import Decimal
from typing import Any

from pydantic import ValidationError

from golive.auth.passwords import hash_password_async
from golive.config import settings
from golive.exceptions import (
    ConditionFailedError,
    ConflictError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
)
from golive.logging.config import get_logger
from golive.models.event import (
    ACCESS_MODES,
    DEFAULT_EMAIL_FIELDS,
    EVENT_TYPES,
    EVENT_STATUSES,
    INITIAL_STATUS_BY_TYPE,
    LEGACY_ACCESS_MODES,
    PASSWORD_MODES,
    VOD_STATUSES,
    Event,
    RegistrationField,
    VideoConfig,
)
from golive.repositories.event_repository import EventRepository
from golive.repositories.event_secret_repository import EventSecretRepository
from golive.resources.workers import ProvisioningDispatcher
from golive.schemas.event import (
    CreateEventRequest,
    ProvisioningResultRequest,
    UpdateEventRequest,
    VodStatusRequest,
)
from golive.utils.clock import Clock, normalize_iso, parse_iso, system_clock
from golive.utils.ids import new_id
from golive.utils.money import normalize_currency, parse_amount
from golive.utils.pagination import decode_cursor, encode_cursor
from golive.utils.sealing import seal

logger = get_logger(__name__)

# Allowed status changes through update
STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    "draft": frozenset({"scheduled"}),
    "scheduled": frozenset({"live", "ended"}),
    "live": frozenset({"ended"}),
    "uploaded": frozenset({"ended"}),
    "ended": frozenset({"archived"}),
    "archived": frozenset(),
}

SCHEDULE_FIELDS = ("start_time", "end_time", "video_config")

NOT_BEING_DELETED = (
    "attribute_exists(eventId) AND "
    "(attribute_not_exists(isDeletionInProgress) OR isDeletionInProgress = :notDeleting)"
)


def normalize_enum(
    value: Any,
    allowed: tuple[str, ...],
    field: str,
    legacy: dict[str, str] | None = None,
) -> str:
    """
    Match a value case-insensitively against an enumeration.

    Args:
        value: Raw input
        allowed: Canonical spellings
        field: Field name used in the error message
        legacy: Older spellings mapped to canonical ones

    Returns:
        Canonical spelling

    Raises:
        InvalidInputError: If the value is missing or not in the enumeration
    """
    if value is None or not str(value).strip():
        raise InvalidInputError(f"{field} is required")
    text = str(value).strip()
    lookup = {option.lower(): option for option in allowed}
    for old, new in (legacy or {}).items():
        lookup[old.lower()] = new
    try:
        return lookup[text.lower()]
    except KeyError:
        raise InvalidInputError(
            f"Invalid {field}. Must be one of: {', '.join(allowed)}",
            details={"field": field, "value": text},
        )


def parse_video_config(value: dict[str, Any] | None) -> VideoConfig | None:
    if value is None:
        return None
    try:
        return VideoConfig.model_validate(value)
    except ValidationError as exc:
        raise InvalidInputError(
            "Invalid videoConfig",
            details={"errors": [error["msg"] for error in exc.errors()]},
        )


def parse_registration_fields(value: Any) -> list[RegistrationField]:
    """
    Parse a registration form schema.

    Accepts an ordered list of field objects, the older object form keyed by
    fieldId, or either of those encoded as a JSON string.

    Raises:
        InvalidInputError: If the JSON is malformed or a field is invalid
    """
    if value is None:
        return []
    if isinstance(value, str):
        if not value.strip():
            return []
        try:
            value = json.loads(value)
        except ValueError:
            raise InvalidInputError("formFields must be valid JSON")

    if isinstance(value, dict):
        entries = []
        for field_id, spec in value.items():
            if isinstance(spec, dict):
                entries.append(
                    {
                        "fieldId": field_id,
                        "label": spec.get("label") or field_id,
                        "required": bool(spec.get("required", False)),
                        "type": spec.get("type") or "string",
                    }
                )
            else:
                entries.append({"fieldId": field_id, "label": field_id, "required": bool(spec)})
        value = entries

    if not isinstance(value, list):
        raise InvalidInputError("registrationFields must be a list")

    try:
        fields = [RegistrationField.model_validate(entry) for entry in value]
    except ValidationError as exc:
        raise InvalidInputError(
            "Invalid registrationFields",
            details={"errors": [error["msg"] for error in exc.errors()]},
        )

    seen: set[str] = set()
    for field in fields:
        if field.field_id in seen:
            raise InvalidInputError(
                "Duplicate registration field", details={"fieldId": field.field_id}
            )
        seen.add(field.field_id)
    return fields


def derive_s3_prefix(s3_key: str) -> str:
    """Folder of an uploaded object: ``v/a.mp4`` -> ``v/``."""
    if "/" in s3_key:
        return s3_key.rsplit("/", 1)[0] + "/"
    return s3_key


def _require_text(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise InvalidInputError(f"{field} is required")
    return value.strip()


class EventService:
    """
    Service layer for event operations.

    Validates every lifecycle rule before writing, keeps password material
    hashed on the event and sealed in the secrets table, and claims the
    single deletion slot before any teardown starts.
    """

    def __init__(
        self,
        repository: EventRepository | None = None,
        secrets: EventSecretRepository | None = None,
        provisioner: ProvisioningDispatcher | None = None,
        clock: Clock = system_clock,
    ) -> None:
        """
        Initialize EventService.

        Args:
            repository: EventRepository instance (creates new if None)
            secrets: EventSecretRepository instance (creates new if None)
            provisioner: Live provisioning dispatcher (creates new if None)
            clock: Wall clock for timestamps and start-time checks
        """
        self.repository = repository or EventRepository()
        self.secrets = secrets or EventSecretRepository()
        self.provisioner = provisioner or ProvisioningDispatcher()
        self.clock = clock

    async def create(self, request: CreateEventRequest, created_by: str | None = None) -> Event:
        """
        Validate and persist a new event.

        Args:
            request: CreateEventRequest with event data
            created_by: Admin id recorded on the event

        Returns:
            The stored Event

        Raises:
            InvalidInputError: If any field is missing or out of domain
            ConflictError: If the generated eventId collides
        """
        title = _require_text(request.title, "title")
        description = _require_text(request.description, "description")
        event_type = normalize_enum(request.event_type, EVENT_TYPES, "eventType")
        access_mode = normalize_enum(
            request.access_mode or "freeAccess", ACCESS_MODES, "accessMode", LEGACY_ACCESS_MODES
        )

        now = self.clock.now()
        now_iso = self.clock.now_iso()
        event_id = new_id()
        fields: dict[str, Any] = {}

        start_time = end_time = None
        if request.start_time:
            start = parse_iso(request.start_time, "startTime")
            if event_type == "scheduled" and start <= now:
                raise InvalidInputError("startTime must be in the future")
            start_time = normalize_iso(request.start_time, "startTime")
        elif event_type == "scheduled":
            raise InvalidInputError("startTime is required for scheduled events")
        if request.end_time:
            end_time = normalize_iso(request.end_time, "endTime")
            if start_time and parse_iso(end_time) <= parse_iso(start_time):
                raise InvalidInputError("endTime must be after startTime")

        if event_type == "vod":
            s3_key = _require_text(request.s3_key, "s3Key")
            fields["s3_key"] = s3_key
            fields["s3_prefix"] = derive_s3_prefix(s3_key)
            fields["vod_status"] = (
                normalize_enum(request.vod_status, VOD_STATUSES, "vodStatus")
                if request.vod_status
                else "UPLOADED"
            )
            fields["vod_cloud_front_url"] = request.vod_cloud_front_url
        else:
            fields["video_config"] = parse_video_config(request.video_config) or VideoConfig()

        if access_mode == "paidAccess":
            fields["payment_amount"] = parse_amount(request.payment_amount)
            fields["currency"] = normalize_currency(request.currency)

        password = request.access_password
        if access_mode in PASSWORD_MODES:
            password = _require_text(password, "accessPassword")
        if password:
            password = password.strip()
            fields["access_password_hash"] = await hash_password_async(password)

        registration = parse_registration_fields(
            request.registration_fields
            if request.registration_fields is not None
            else request.form_fields
        )
        if not registration and access_mode == "emailAccess":
            registration = list(DEFAULT_EMAIL_FIELDS)

        event = Event(
            event_id=event_id,
            title=title,
            description=description,
            event_type=event_type,
            access_mode=access_mode,
            status=INITIAL_STATUS_BY_TYPE[event_type],
            start_time=start_time,
            end_time=end_time,
            registration_fields=registration,
            created_by=created_by,
            created_at=now_iso,
            updated_at=now_iso,
            **fields,
        )

        try:
            await self.repository.create(event)
        except ConditionFailedError:
            raise ConflictError("Event already exists", details={"eventId": event_id})

        # Only the writer of the event record may write its secret
        if password:
            await self._store_password(event_id, password, now_iso)

        logger.info(
            "Event created",
            extra={
                "context": {
                    "event_id": event_id,
                    "event_type": event_type,
                    "access_mode": access_mode,
                }
            },
        )

        if event_type in ("live", "scheduled"):
            try:
                await self.provisioner.dispatch(event_id)
            except Exception as exc:
                # The admin can re-run provisioning; the event itself is valid
                logger.error(
                    "Provisioning dispatch failed",
                    extra={"context": {"event_id": event_id, "error": str(exc)}},
                )

        return event

    async def get(self, event_id: str) -> Event:
        """
        Get an event by ID.

        Raises:
            NotFoundError: If the event does not exist
        """
        event = await self.repository.get_by_id(event_id)
        if not event:
            raise NotFoundError(
                message=f"Event not found: {event_id}",
                resource="event",
                resource_id=event_id,
            )
        return event

    async def list_events(
        self,
        query: str | None = None,
        event_type: str | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> tuple[list[Event], str | None]:
        """
        List events with an optional search string and type filter.

        Args:
            query: Case-insensitive title/description search
            event_type: Restrict to one event type
            limit: Page size (default and maximum from settings)
            cursor: Opaque cursor from a previous page

        Returns:
            Tuple of (events, next cursor or None)
        """
        if event_type:
            event_type = normalize_enum(event_type, EVENT_TYPES, "type")
        page_size = min(limit or settings.default_list_limit, settings.max_list_limit)
        events, next_key = await self.repository.list_events(
            query=query,
            event_type=event_type,
            limit=page_size,
            exclusive_start_key=decode_cursor(cursor),
        )
        return events, encode_cursor(next_key)

    async def update(self, event_id: str, request: UpdateEventRequest) -> Event:
        """
        Apply a sparse patch under the lifecycle rules.

        Rules:
            - eventType never changes
            - startTime, endTime and videoConfig only change while scheduled;
              a new startTime must be in the future
            - status follows STATUS_TRANSITIONS
            - switching accessMode requires that mode's fields, either in the
              patch or already stored; fields of other modes stay dormant
            - title and description may always change

        Raises:
            NotFoundError: If the event does not exist
            InvalidTransitionError: If a lifecycle rule is broken
            InvalidInputError: If a value is malformed
            ConflictError: If the event is being deleted
        """
        event = await self.get(event_id)
        patch = request.model_dump(exclude_unset=True)
        now_iso = self.clock.now_iso()
        fields: dict[str, Any] = {}
        remove: list[str] = []

        if patch.get("event_type") is not None:
            new_type = normalize_enum(patch["event_type"], EVENT_TYPES, "eventType")
            if new_type != event.event_type:
                raise InvalidTransitionError("eventType cannot be changed after creation")

        for name in ("title", "description"):
            if name in patch:
                fields[name] = _require_text(patch[name], name)

        changed_schedule = [name for name in SCHEDULE_FIELDS if patch.get(name) is not None]
        if changed_schedule and event.status != "scheduled":
            raise InvalidTransitionError(
                "startTime, endTime and videoConfig can only change while the event is scheduled",
                details={"status": event.status, "fields": changed_schedule},
            )
        start_time = event.start_time
        if patch.get("start_time") is not None:
            if parse_iso(patch["start_time"], "startTime") <= self.clock.now():
                raise InvalidInputError("startTime must be in the future")
            start_time = normalize_iso(patch["start_time"], "startTime")
            fields["startTime"] = start_time
        if patch.get("end_time") is not None:
            end_time = normalize_iso(patch["end_time"], "endTime")
            if start_time and parse_iso(end_time) <= parse_iso(start_time):
                raise InvalidInputError("endTime must be after startTime")
            fields["endTime"] = end_time
        if patch.get("video_config") is not None:
            video_config = parse_video_config(patch["video_config"])
            fields["videoConfig"] = video_config.model_dump(by_alias=True)

        if patch.get("status") is not None:
            new_status = normalize_enum(patch["status"], EVENT_STATUSES, "status")
            if new_status != event.status:
                if new_status not in STATUS_TRANSITIONS.get(event.status, frozenset()):
                    raise InvalidTransitionError(
                        f"Cannot change status from {event.status} to {new_status}"
                    )
                fields["status"] = new_status

        new_password = await self._apply_access_patch(event, patch, fields, remove)

        if not fields and not remove:
            return event

        fields["updatedAt"] = now_iso
        try:
            updated = await self.repository.update_fields(
                event_id,
                fields,
                remove=remove,
                condition_expression=NOT_BEING_DELETED,
                condition_values={":notDeleting": False},
            )
        except ConditionFailedError:
            if await self.repository.get_by_id(event_id) is None:
                raise NotFoundError(
                    message=f"Event not found: {event_id}",
                    resource="event",
                    resource_id=event_id,
                )
            raise ConflictError("Event deletion is in progress", details={"eventId": event_id})

        if new_password is not None:
            await self._store_password(event_id, new_password, now_iso)

        logger.info(
            "Event updated",
            extra={"context": {"event_id": event_id, "fields": sorted(fields)}},
        )
        return updated

    async def _apply_access_patch(
        self,
        event: Event,
        patch: dict[str, Any],
        fields: dict[str, Any],
        remove: list[str],
    ) -> str | None:
        """Fold access-mode and password changes into ``fields``; returns a new plaintext password."""
        mode = event.access_mode
        if patch.get("access_mode") is not None:
            mode = normalize_enum(patch["access_mode"], ACCESS_MODES, "accessMode", LEGACY_ACCESS_MODES)
            if mode != event.access_mode:
                fields["accessMode"] = mode

        password = patch.get("access_password")
        if password is not None:
            password = _require_text(password, "accessPassword")
            fields["accessPasswordHash"] = await hash_password_async(password)
            if event.access_password:
                remove.append("accessPassword")
        elif mode in PASSWORD_MODES and not event.has_password:
            raise InvalidInputError(f"accessPassword is required for {mode}")

        amount: Decimal | None = event.payment_amount
        if patch.get("payment_amount") is not None:
            amount = parse_amount(patch["payment_amount"])
            fields["paymentAmount"] = amount
        if patch.get("currency") is not None:
            fields["currency"] = normalize_currency(patch["currency"])
        if mode == "paidAccess":
            if amount is None:
                raise InvalidInputError("paymentAmount is required for paidAccess")
            if not (fields.get("currency") or event.currency):
                raise InvalidInputError("currency is required for paidAccess")

        raw_fields = patch.get("registration_fields")
        if raw_fields is None:
            raw_fields = patch.get("form_fields")
        if raw_fields is not None:
            registration = parse_registration_fields(raw_fields)
        else:
            registration = None
        if registration is None and mode == "emailAccess" and not event.registration_fields:
            registration = list(DEFAULT_EMAIL_FIELDS)
        if registration is not None:
            fields["registrationFields"] = [
                field.model_dump(by_alias=True) for field in registration
            ]

        if "accessMode" in fields:
            logger.info(
                "Event access mode changed",
                extra={
                    "context": {
                        "event_id": event.event_id,
                        "from": event.access_mode,
                        "to": mode,
                    }
                },
            )
        return password

    async def _store_password(self, event_id: str, password: str, now_iso: str) -> None:
        await self.secrets.put_sealed_password(event_id, seal(password), now_iso)

    async def mark_for_deletion(self, event_id: str) -> Event:
        """
        Claim the deletion slot; the teardown runs afterwards in the background.

        Raises:
            NotFoundError: If the event does not exist
            ConflictError: If a deletion is already in progress
        """
        event = await self.get(event_id)
        if event.is_deletion_in_progress:
            raise ConflictError(
                "Event deletion already in progress", details={"eventId": event_id}
            )
        try:
            marked = await self.repository.mark_deletion_started(
                event_id, self.clock.now_iso()
            )
        except ConditionFailedError:
            raise ConflictError(
                "Event deletion already in progress", details={"eventId": event_id}
            )
        logger.info("Event deletion started", extra={"context": {"event_id": event_id}})
        return marked

    def _deletion_abandoned(self, event: Event) -> bool:
        """A run still marked in progress past the teardown budget (plus grace) is dead."""
        if not event.deletion_started_at:
            return True
        started = parse_iso(event.deletion_started_at, "deletionStartedAt")
        elapsed = (self.clock.now() - started).total_seconds()
        return elapsed > settings.teardown_budget_seconds + settings.teardown_stale_grace_seconds

    async def claim_teardown(self, event_id: str, deletion_started_at: str | None = None) -> Event:
        """
        Decide whether the caller may run the teardown of an event.

        A dispatched run presents the ``deletionStartedAt`` written when its
        delete was accepted and runs only while that claim is current. An
        out-of-band resume claims a free slot, or takes over a slot whose run
        has been abandoned.

        Raises:
            NotFoundError: If the event does not exist
            ConflictError: If another run holds the deletion slot
        """
        event = await self.get(event_id)
        conflict = ConflictError(
            "Event deletion already in progress",
            details={"eventId": event_id, "deletionStartedAt": event.deletion_started_at},
        )
        if deletion_started_at is not None:
            if event.is_deletion_in_progress and event.deletion_started_at == deletion_started_at:
                return event
            raise conflict
        if not event.is_deletion_in_progress:
            return await self.mark_for_deletion(event_id)
        if not self._deletion_abandoned(event):
            raise conflict

        try:
            claimed = await self.repository.take_over_deletion(
                event_id, event.deletion_started_at, self.clock.now_iso()
            )
        except ConditionFailedError:
            raise conflict
        logger.warning(
            "Took over an abandoned event deletion",
            extra={
                "context": {
                    "event_id": event_id,
                    "abandoned_started_at": event.deletion_started_at,
                }
            },
        )
        return claimed

    async def record_deletion_failure(self, event_id: str, error: str) -> Event:
        """Release the deletion slot, keeping the reason on the event."""
        return await self.repository.mark_deletion_failed(event_id, error, self.clock.now_iso())

    async def apply_provisioning_result(
        self, event_id: str, request: ProvisioningResultRequest
    ) -> Event:
        """
        Record the resource handles (or failure) reported by the live provisioner.

        Raises:
            NotFoundError: If the event does not exist
            InvalidInputError: If the status is not ready or failed
        """
        status = normalize_enum(request.provisioning_status, ("ready", "failed"), "provisioningStatus")
        handles = request.model_dump(
            by_alias=True,
            exclude_none=True,
            exclude={"provisioning_status", "provisioning_error"},
        )
        fields: dict[str, Any] = {
            **handles,
            "provisioningStatus": status,
            "updatedAt": self.clock.now_iso(),
        }
        remove: list[str] = []
        if status == "failed":
            fields["provisioningError"] = request.provisioning_error or "Provisioning failed"
        else:
            remove.append("provisioningError")

        updated = await self._update_existing(event_id, fields, remove)
        logger.info(
            "Provisioning result recorded",
            extra={"context": {"event_id": event_id, "status": status}},
        )
        return updated

    async def apply_vod_status(self, event_id: str, request: VodStatusRequest) -> Event:
        """
        Record transcoder progress and output URLs.

        Raises:
            NotFoundError: If the event does not exist
            InvalidInputError: If the status is unknown
        """
        vod_status = normalize_enum(request.vod_status, VOD_STATUSES, "vodStatus")
        fields = request.model_dump(by_alias=True, exclude_none=True, exclude={"vod_status"})
        fields["vodStatus"] = vod_status
        fields["updatedAt"] = self.clock.now_iso()
        updated = await self._update_existing(event_id, fields)
        logger.info(
            "VOD status recorded",
            extra={"context": {"event_id": event_id, "vod_status": vod_status}},
        )
        return updated

    async def _update_existing(
        self, event_id: str, fields: dict[str, Any], remove: list[str] | None = None
    ) -> Event:
        try:
            return await self.repository.update_fields(event_id, fields, remove=remove or ())
        except ConditionFailedError:
            raise NotFoundError(
                message=f"Event not found: {event_id}",
                resource="event",
                resource_id=event_id,
            )
