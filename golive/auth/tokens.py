"""Signed bearer credentials for viewers and administrators (HS256 JWT)."""

from datetime import datetime, timedelta

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel

from golive.config import settings
from golive.exceptions import UnauthorizedError
from golive.utils.clock import system_clock

ALGORITHM = "HS256"
VIEWER_TOKEN_TYPE = "viewer"
ADMIN_TOKEN_TYPE = "access"
ADMIN_TOKEN_TTL_SECONDS = 15 * 60


class ViewerClaims(BaseModel):
    """Claims carried by a viewer credential; a snapshot, never authoritative."""

    event_id: str
    client_viewer_id: str
    is_paid_viewer: bool = False


class AdminPrincipal(BaseModel):
    """Administrator identified by a verified access token."""

    admin_id: str
    email: str | None = None


def mint_viewer_token(
    event_id: str,
    client_viewer_id: str,
    is_paid_viewer: bool,
    now: datetime | None = None,
) -> str:
    """
    Issue a viewer credential.

    Args:
        event_id: Event the credential is bound to
        client_viewer_id: Viewer identity on that event
        is_paid_viewer: Payment flag at issue time
        now: Issue instant (defaults to the system clock)

    Returns:
        Compact JWT string
    """
    issued = now or system_clock.now()
    claims = {
        "eventId": event_id,
        "clientViewerId": client_viewer_id,
        "isPaidViewer": is_paid_viewer,
        "typ": VIEWER_TOKEN_TYPE,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(seconds=settings.viewer_token_ttl_seconds)).timestamp()),
    }
    return jwt.encode(claims, settings.viewer_jwt_secret, algorithm=ALGORITHM)


def _decode(token: str, secret: str, label: str) -> dict:
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            options={"leeway": settings.jwt_leeway_seconds},
        )
    except ExpiredSignatureError:
        raise UnauthorizedError(message=f"{label} credential has expired")
    except JWTError:
        raise UnauthorizedError(message=f"Invalid {label.lower()} credential")


def decode_viewer_token(token: str) -> ViewerClaims:
    """
    Verify a viewer credential and return its claims.

    Raises:
        UnauthorizedError: If the token is expired, tampered with or not a viewer token
    """
    payload = _decode(token, settings.viewer_jwt_secret, "Viewer")
    event_id = payload.get("eventId")
    client_viewer_id = payload.get("clientViewerId")
    if payload.get("typ") != VIEWER_TOKEN_TYPE or not event_id or not client_viewer_id:
        raise UnauthorizedError(message="Invalid viewer credential")
    return ViewerClaims(
        event_id=event_id,
        client_viewer_id=client_viewer_id,
        is_paid_viewer=bool(payload.get("isPaidViewer")),
    )


def mint_admin_token(
    admin_id: str,
    email: str | None = None,
    now: datetime | None = None,
    ttl_seconds: int = ADMIN_TOKEN_TTL_SECONDS,
) -> str:
    """Issue an administrator access token."""
    issued = now or system_clock.now()
    claims = {
        "sub": admin_id,
        "email": email,
        "typ": ADMIN_TOKEN_TYPE,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(seconds=ttl_seconds)).timestamp()),
    }
    return jwt.encode(claims, settings.admin_jwt_secret, algorithm=ALGORITHM)


def decode_admin_token(token: str) -> AdminPrincipal:
    """
    Verify an administrator access token.

    Raises:
        UnauthorizedError: If the token is expired, invalid or not an access token
    """
    payload = _decode(token, settings.admin_jwt_secret, "Admin")
    if payload.get("typ") != ADMIN_TOKEN_TYPE or not payload.get("sub"):
        raise UnauthorizedError(message="Invalid admin credential")
    return AdminPrincipal(admin_id=payload["sub"], email=payload.get("email"))
