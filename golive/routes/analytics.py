"""Viewer API routes for playback session telemetry."""

from typing import Any

from fastapi import APIRouter, Depends, Request, status

from golive.auth.dependencies import require_viewer
from golive.auth.tokens import ViewerClaims
from golive.schemas.session import EndSessionRequest, HeartbeatRequest, StartSessionRequest
from golive.services.session_service import SessionService
from golive.utils.viewer_context import extract_network_context

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])


@router.post("/event/{event_id}/session/start", status_code=status.HTTP_201_CREATED)
async def start_session(
    event_id: str,
    body: StartSessionRequest,
    request: Request,
    claims: ViewerClaims = Depends(require_viewer),
) -> dict[str, Any]:
    """Open a playback session for the viewer in the credential."""
    network = extract_network_context(
        request.headers, request.client.host if request.client else None
    )
    service = SessionService()
    return await service.start(event_id, claims, body, network=network)


@router.post("/session/{session_id}/heartbeat")
async def heartbeat(
    session_id: str,
    body: HeartbeatRequest,
    claims: ViewerClaims = Depends(require_viewer),
) -> dict[str, Any]:
    service = SessionService()
    return await service.heartbeat(session_id, claims, body.seconds)


@router.post("/session/{session_id}/end")
async def end_session(
    session_id: str,
    body: EndSessionRequest,
    claims: ViewerClaims = Depends(require_viewer),
) -> dict[str, Any]:
    service = SessionService()
    return await service.end(session_id, claims, body.duration)
