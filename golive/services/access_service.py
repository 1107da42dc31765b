"""Viewer registration, password verification and the public access config."""

from typing import Any

from golive.auth.passwords import verify_event_password
from golive.auth.tokens import mint_viewer_token
from golive.config import settings
from golive.exceptions import (
    ConditionFailedError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from golive.logging.config import get_logger
from golive.models.event import FORM_MODES, PASSWORD_MODES, Event
from golive.models.viewer import Viewer
from golive.repositories.event_repository import EventRepository
from golive.repositories.event_secret_repository import EventSecretRepository
from golive.repositories.viewer_repository import ViewerRepository
from golive.resources.workers import PasswordMailer
from golive.schemas.playback import RegisterRequest
from golive.services.access_policy import (
    access_fields,
    derive_access_verified,
    evaluate_steps,
    satisfies_gate,
)
from golive.utils.clock import Clock, system_clock
from golive.utils.identity import (
    derive_name,
    is_valid_email,
    normalize_email,
    normalize_form_data,
    registration_identity_key,
)
from golive.utils.sealing import unseal
from golive.utils.viewer_context import normalize_device

logger = get_logger(__name__)


class AccessService:
    """
    Drives a viewer through an event's access gate.

    The viewer record is the source of truth for every access decision; the
    credential minted here only identifies the viewer.
    """

    def __init__(
        self,
        events: EventRepository | None = None,
        viewers: ViewerRepository | None = None,
        secrets: EventSecretRepository | None = None,
        mailer: PasswordMailer | None = None,
        clock: Clock = system_clock,
    ) -> None:
        self.events = events or EventRepository()
        self.viewers = viewers or ViewerRepository()
        self.secrets = secrets or EventSecretRepository()
        self.mailer = mailer or PasswordMailer()
        self.clock = clock

    async def _load_event(self, event_id: str) -> Event:
        event = await self.events.get_by_id(event_id)
        if not event or event.is_deletion_in_progress:
            raise NotFoundError(
                message="Event not found", resource="event", resource_id=event_id
            )
        return event

    async def get_access_config(self, event_id: str) -> dict[str, Any]:
        """
        Public description of what a viewer must do to watch an event.

        Returns:
            Dict with accessMode, requiresForm, requiresPassword,
            registrationFields, payment (paid events only), eventType and title
        """
        event = await self._load_event(event_id)
        mode = event.access_mode
        payment = None
        if mode == "paidAccess":
            payment = {
                "amount": float(event.payment_amount) if event.payment_amount is not None else None,
                "currency": event.currency,
            }
        return {
            "success": True,
            "eventId": event.event_id,
            "title": event.title,
            "eventType": event.event_type,
            "accessMode": mode,
            "requiresForm": mode in FORM_MODES,
            "requiresPassword": mode in PASSWORD_MODES,
            "registrationFields": [
                field.model_dump(by_alias=True) for field in event.registration_fields
            ],
            "payment": payment,
        }

    async def register(
        self,
        event_id: str,
        request: RegisterRequest,
        network: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Register a viewer and mint their credential.

        A first-time ``clientViewerId`` whose identity matches an earlier
        viewer that already cleared the gate takes over that viewer's
        registration (identity reuse); the credential is then minted for the
        earlier ``clientViewerId``.

        Args:
            event_id: Event being joined
            request: Registration payload
            network: Network context captured from the request headers

        Returns:
            Dict with viewerToken, resolvedClientViewerId, reused,
            accessVerified, accessMode and steps

        Raises:
            NotFoundError: If the event does not exist
            InvalidInputError: If the mode needs identity data that is missing
        """
        event = await self._load_event(event_id)
        mode = event.access_mode
        client_viewer_id = request.client_viewer_id.strip()
        if not client_viewer_id:
            raise InvalidInputError("clientViewerId is required")

        form_data = normalize_form_data(request.form_data)
        email = normalize_email(request.email or form_data.get("email"))
        name = derive_name(request.name, form_data)
        if mode in FORM_MODES:
            self._check_identity(event, email, name, form_data)
        elif email and not is_valid_email(email):
            email = None

        identity_key = None
        if email or form_data:
            identity_key = registration_identity_key(
                name,
                email,
                form_data,
                salt=event_id if settings.identity_key_per_event_salt else None,
            )

        now = self.clock.now_iso()
        identity = {
            "email": email,
            "normalizedEmail": email,
            "name": name,
            "formData": form_data,
            "registrationIdentityKey": identity_key,
            "updatedAt": now,
        }
        if request.device_info is not None:
            identity["device"] = normalize_device(request.device_info)
        if network is not None:
            identity["network"] = network
        identity = {key: value for key, value in identity.items() if value is not None}

        existing = await self.viewers.get(event_id, client_viewer_id)
        reused = False
        viewer = None
        if existing is None and mode != "freeAccess":
            prior = await self._find_reusable(event, identity_key, email)
            if prior is not None:
                viewer = await self.viewers.update_fields(
                    event_id,
                    prior.client_viewer_id,
                    {**identity, **access_fields(mode, prior, now)},
                )
                reused = True
                logger.info(
                    "Registration reused an earlier viewer",
                    extra={
                        "context": {
                            "event_id": event_id,
                            "client_viewer_id": client_viewer_id,
                            "resolved_client_viewer_id": prior.client_viewer_id,
                        }
                    },
                )

        if viewer is None:
            viewer = await self._upsert(event, client_viewer_id, existing, identity, now)

        steps = evaluate_steps(mode, viewer)
        if mode in PASSWORD_MODES and not viewer.password_verified and viewer.email:
            await self._send_password_email(event, viewer.email)

        token = mint_viewer_token(event_id, viewer.client_viewer_id, viewer.is_paid_viewer)
        return {
            "success": True,
            "viewerToken": token,
            "resolvedClientViewerId": viewer.client_viewer_id,
            "reused": reused,
            "accessVerified": viewer.access_verified,
            "isPaidViewer": viewer.is_paid_viewer,
            "accessMode": mode,
            "steps": steps.model_dump(by_alias=True),
        }

    def _check_identity(
        self,
        event: Event,
        email: str | None,
        name: str | None,
        form_data: dict[str, Any],
    ) -> None:
        if not email:
            raise InvalidInputError(f"email is required for {event.access_mode}")
        if not is_valid_email(email):
            raise InvalidInputError("email is invalid")
        provided = set(form_data) | {"email"}
        if name:
            provided.add("name")
        missing = [
            field.field_id
            for field in event.registration_fields
            if field.required and field.field_id not in provided
        ]
        if missing:
            raise InvalidInputError(
                "Missing required registration fields", details={"missing": missing}
            )

    async def _find_reusable(
        self, event: Event, identity_key: str | None, email: str | None
    ) -> Viewer | None:
        if event.access_mode == "emailAccess":
            # Email-gated events match on the email alone
            identity_key = None
        candidates = await self.viewers.find_by_identity(event.event_id, identity_key, email)
        for candidate in candidates:
            if satisfies_gate(event.access_mode, candidate):
                return candidate
        return None

    async def _upsert(
        self,
        event: Event,
        client_viewer_id: str,
        existing: Viewer | None,
        identity: dict[str, Any],
        now: str,
    ) -> Viewer:
        mode = event.access_mode
        if existing is None:
            viewer = Viewer.model_validate(
                {
                    **identity,
                    "eventId": event.event_id,
                    "clientViewerId": client_viewer_id,
                    "formSubmittedAt": now,
                    "firstJoinAt": now,
                    "lastJoinAt": now,
                    "createdAt": now,
                }
            )
            verified = derive_access_verified(mode, viewer)
            viewer = viewer.model_copy(
                update={
                    "access_verified": verified,
                    "registration_complete": verified,
                    "registration_completed_at": now if verified else None,
                }
            )
            try:
                return await self.viewers.create(viewer)
            except ConditionFailedError:
                # Same device registered concurrently; fall through to update
                existing = await self.viewers.get(event.event_id, client_viewer_id)
                if existing is None:
                    raise

        # Paid and password flags are kept; access is re-derived under the current mode
        fields = dict(identity)
        if existing.form_submitted_at is None:
            fields["formSubmittedAt"] = now
        fields["lastJoinAt"] = now
        projected = existing.model_copy(update={"form_submitted_at": existing.form_submitted_at or now})
        fields.update(access_fields(mode, projected, now))
        return await self.viewers.update_fields(event.event_id, client_viewer_id, fields)

    async def _send_password_email(self, event: Event, email: str) -> None:
        """Queue the password email; failures are logged, never raised."""
        try:
            sealed = await self.secrets.get_sealed_password(event.event_id)
            if sealed:
                password = unseal(sealed)
            elif event.access_password:
                password = event.access_password
            else:
                logger.warning(
                    "No deliverable password for event",
                    extra={"context": {"event_id": event.event_id}},
                )
                return
            await self.mailer.send_event_password(
                email=email,
                event_id=event.event_id,
                event_title=event.title,
                password=password,
            )
        except Exception as exc:
            logger.error(
                "Password email dispatch failed",
                extra={"context": {"event_id": event.event_id, "error": str(exc)}},
            )

    async def verify_password(
        self, event_id: str, client_viewer_id: str | None, password: str
    ) -> dict[str, Any]:
        """
        Check the event password for a viewer.

        Raises:
            InvalidInputError: If the event has no password gate or input is missing
            NotFoundError: If the event or viewer does not exist
            UnauthorizedError: If the password does not match
        """
        event = await self._load_event(event_id)
        mode = event.access_mode
        if mode not in PASSWORD_MODES:
            raise InvalidInputError("Invalid event access mode")
        if not event.has_password:
            raise InvalidInputError("Event password not configured")
        if not client_viewer_id:
            raise InvalidInputError("clientViewerId is required")
        if not password:
            raise InvalidInputError("password is required")

        viewer = await self.viewers.get(event_id, client_viewer_id)
        if viewer is None:
            raise NotFoundError(
                message="Viewer not found", resource="viewer", resource_id=client_viewer_id
            )

        if not await verify_event_password(event, password):
            logger.info(
                "Password rejected",
                extra={"context": {"event_id": event_id, "client_viewer_id": client_viewer_id}},
            )
            raise UnauthorizedError(message="Invalid password")

        now = self.clock.now_iso()
        fields: dict[str, Any] = {
            "passwordVerified": True,
            "passwordVerifiedAt": now,
            "updatedAt": now,
        }
        projected = viewer.model_copy(update={"password_verified": True})
        fields.update(access_fields(mode, projected, now))

        viewer = await self.viewers.update_fields(event_id, client_viewer_id, fields)
        steps = evaluate_steps(mode, viewer)
        return {
            "success": True,
            "accessVerified": viewer.access_verified,
            "passwordVerified": viewer.password_verified,
            "registrationComplete": viewer.registration_complete,
            "steps": steps.model_dump(by_alias=True),
        }
