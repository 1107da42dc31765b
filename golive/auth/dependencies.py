"""FastAPI dependencies for viewer and admin bearer authentication."""

from fastapi import Header, Request

from golive.auth.tokens import (
    AdminPrincipal,
    ViewerClaims,
    decode_admin_token,
    decode_viewer_token,
)
from golive.exceptions import UnauthorizedError


def extract_bearer_token(authorization: str | None) -> str:
    """
    Extract the token from an Authorization header.

    Args:
        authorization: Authorization header value

    Returns:
        Token extracted from the Bearer scheme

    Raises:
        UnauthorizedError: If header is missing or malformed
    """
    if not authorization:
        raise UnauthorizedError(
            message="Missing Authorization header",
            details={"hint": "Include 'Authorization: Bearer <token>'"},
        )

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise UnauthorizedError(
            message="Invalid Authorization header format",
            details={"hint": "Use format 'Authorization: Bearer <token>'"},
        )

    return parts[1]


async def require_viewer(
    request: Request,
    authorization: str | None = Header(None),
) -> ViewerClaims:
    """
    Validate a viewer credential.

    The viewer id is attached to ``request.state`` for request logging.

    Raises:
        UnauthorizedError: If the credential is missing or invalid
    """
    claims = decode_viewer_token(extract_bearer_token(authorization))
    request.state.principal = f"viewer:{claims.client_viewer_id}"
    return claims


async def optional_viewer(
    request: Request,
    authorization: str | None = Header(None),
) -> ViewerClaims | None:
    """Like ``require_viewer`` but a missing header yields None."""
    if not authorization:
        return None
    return await require_viewer(request, authorization)


async def require_admin(
    request: Request,
    authorization: str | None = Header(None),
) -> AdminPrincipal:
    """
    Validate an administrator access token.

    Raises:
        UnauthorizedError: If the token is missing or invalid
    """
    principal = decode_admin_token(extract_bearer_token(authorization))
    request.state.principal = f"admin:{principal.admin_id}"
    return principal
