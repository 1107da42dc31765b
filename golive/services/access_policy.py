"""
Per-mode access gate.

| accessMode     | form     | password | payment  | identity reuse      |
|----------------|----------|----------|----------|---------------------|
| freeAccess     | implicit | n/a      | n/a      | n/a                 |
| emailAccess    | required | n/a      | n/a      | by email            |
| passwordAccess | required | required | n/a      | by identity / email |
| paidAccess     | required | required | required | by identity / email |
"""

from typing import Any

from golive.exceptions import ForbiddenError, PaymentRequiredError
from golive.models.event import PASSWORD_MODES
from golive.models.viewer import Viewer
from golive.schemas.playback import AccessSteps


def evaluate_steps(access_mode: str, viewer: Viewer) -> AccessSteps:
    """Derive step progress from the viewer record under the current mode."""
    form_submitted = access_mode == "freeAccess" or viewer.form_submitted_at is not None
    password_verified = viewer.password_verified if access_mode in PASSWORD_MODES else True
    payment_verified = viewer.is_paid_viewer if access_mode == "paidAccess" else True
    return AccessSteps(
        form_submitted=form_submitted,
        password_verified=password_verified,
        payment_verified=payment_verified,
        registration_complete=form_submitted and password_verified and payment_verified,
    )


def derive_access_verified(access_mode: str, viewer: Viewer) -> bool:
    """
    Whether the viewer has cleared every gate of the mode.

    For paidAccess this implies ``is_paid_viewer``.
    """
    return evaluate_steps(access_mode, viewer).registration_complete


def satisfies_gate(access_mode: str, viewer: Viewer) -> bool:
    """Whether a prior registration may hand its access to a new device."""
    if access_mode == "paidAccess":
        return viewer.is_paid_viewer
    if access_mode in ("emailAccess", "passwordAccess"):
        return derive_access_verified(access_mode, viewer)
    return False


def enforce_stream_gate(access_mode: str, viewer: Viewer) -> None:
    """
    Check the viewer record (never the credential) before handing out a stream.

    Steps are re-derived under the event's current mode; a stored
    ``accessVerified`` from an earlier mode does not open the gate.

    Raises:
        ForbiddenError: If email or password access has not been verified
        PaymentRequiredError: If a paid event has not been paid for
    """
    if access_mode in ("emailAccess", "passwordAccess") and not derive_access_verified(
        access_mode, viewer
    ):
        raise ForbiddenError("Access not verified")
    if access_mode == "paidAccess" and not viewer.is_paid_viewer:
        raise PaymentRequiredError("Payment required to watch this event")


def access_fields(access_mode: str, viewer: Viewer, now: str) -> dict[str, Any]:
    """
    Stored flags that disagree with the steps derived under ``access_mode``.

    Empty when the record is already consistent.
    """
    verified = derive_access_verified(access_mode, viewer)
    fields: dict[str, Any] = {}
    if viewer.access_verified != verified:
        fields["accessVerified"] = verified
    if viewer.registration_complete != verified:
        fields["registrationComplete"] = verified
    if verified and viewer.registration_completed_at is None:
        fields["registrationCompletedAt"] = now
    return fields
