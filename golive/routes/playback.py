"""Viewer API routes: access config, registration, password gate, stream."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Request, status

from golive.auth.dependencies import optional_viewer, require_viewer
from golive.auth.tokens import ViewerClaims
from golive.schemas.playback import RegisterRequest, VerifyPasswordRequest
from golive.services.access_service import AccessService
from golive.services.playback_service import PlaybackService
from golive.utils.viewer_context import extract_network_context

router = APIRouter(prefix="/api/playback/event", tags=["Playback"])


@router.get("/{event_id}/access")
async def get_access_config(event_id: str) -> dict[str, Any]:
    """What a viewer must provide (form, password, payment) to watch."""
    service = AccessService()
    return await service.get_access_config(event_id)


@router.post(
    "/{event_id}/register",
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {
            "description": "Viewer registered; credential issued",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "viewerToken": "eyJhbGciOiJIUzI1NiIs...",
                        "resolvedClientViewerId": "c-5d1f9a",
                        "reused": False,
                        "accessVerified": False,
                        "accessMode": "passwordAccess",
                        "steps": {
                            "formSubmitted": True,
                            "passwordVerified": False,
                            "paymentVerified": True,
                            "registrationComplete": False,
                        },
                    }
                }
            },
        },
        400: {"description": "Missing identity data for this access mode"},
        404: {"description": "Event not found"},
    },
)
async def register_viewer(
    event_id: str,
    body: RegisterRequest,
    request: Request,
) -> dict[str, Any]:
    """
    Register a viewer for an event and issue their credential.

    Password and paid events email the event password to the viewer.
    """
    network = extract_network_context(
        request.headers, request.client.host if request.client else None
    )
    service = AccessService()
    return await service.register(event_id, body, network=network)


@router.post(
    "/{event_id}/verify-password",
    responses={
        400: {"description": "Event has no password gate"},
        401: {"description": "Invalid password"},
        404: {"description": "Viewer not found"},
    },
)
async def verify_password(
    event_id: str,
    body: VerifyPasswordRequest,
    claims: Optional[ViewerClaims] = Depends(optional_viewer),
) -> dict[str, Any]:
    """Check the event password; the viewer comes from the credential or the body."""
    client_viewer_id = body.client_viewer_id
    if claims is not None and claims.event_id == event_id:
        client_viewer_id = claims.client_viewer_id
    service = AccessService()
    return await service.verify_password(event_id, client_viewer_id, body.password)


@router.get(
    "/{event_id}/stream",
    responses={
        401: {"description": "Missing or invalid viewer credential"},
        402: {"description": "Payment required"},
        403: {"description": "Gate not satisfied or stream not available yet"},
        404: {"description": "Event not found"},
    },
)
async def get_stream(
    event_id: str,
    claims: ViewerClaims = Depends(require_viewer),
) -> dict[str, Any]:
    """Resolve the playback URL for an authorized viewer."""
    service = PlaybackService()
    return await service.get_stream(event_id, claims)
