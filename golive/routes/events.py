"""Admin API routes for event lifecycle operations."""

from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from golive.auth.dependencies import require_admin
from golive.auth.tokens import AdminPrincipal
from golive.exceptions import UpstreamFailureError
from golive.resources.workers import TeardownDispatcher
from golive.schemas.event import (
    CreateEventRequest,
    ProvisioningResultRequest,
    UpdateEventRequest,
    VodStatusRequest,
    public_event,
)
from golive.services.event_service import EventService
from golive.services.teardown import TeardownPipeline
from golive.services.vod_service import VodService

router = APIRouter(prefix="/api/events", tags=["Events"])

ADMIN_ERRORS: dict[int | str, dict[str, Any]] = {
    400: {"description": "Validation error or invalid lifecycle transition"},
    401: {"description": "Missing or invalid admin credential"},
    404: {"description": "Event not found"},
}


@router.post(
    "/create",
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {
            "description": "Event created",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "message": "Event created",
                        "eventId": "550e8400-e29b-41d4-a716-446655440000",
                    }
                }
            },
        },
        409: {"description": "Event id collision"},
        **ADMIN_ERRORS,
    },
)
async def create_event(
    body: CreateEventRequest,
    admin: AdminPrincipal = Depends(require_admin),
) -> dict[str, Any]:
    """
    Create a live, scheduled or VOD event.

    Live and scheduled events are handed to the provisioner; the stream
    handles arrive later through the resources endpoint.
    """
    service = EventService()
    event = await service.create(body, created_by=admin.admin_id)
    return {
        "success": True,
        "message": "Event created",
        "eventId": event.event_id,
        "event": public_event(event),
    }


@router.get("/list", responses=ADMIN_ERRORS)
async def list_events(
    q: Optional[str] = Query(None, description="Search title and description"),
    event_type: Optional[str] = Query(None, alias="type", description="live, scheduled or vod"),
    limit: Optional[int] = Query(None, ge=1, le=200, description="Page size (1-200)"),
    cursor: Optional[str] = Query(None, description="Cursor from the previous page"),
    admin: AdminPrincipal = Depends(require_admin),
) -> dict[str, Any]:
    """List events, newest pages first, with cursor pagination."""
    service = EventService()
    events, next_cursor = await service.list_events(
        query=q, event_type=event_type, limit=limit, cursor=cursor
    )
    return {
        "success": True,
        "events": [public_event(event) for event in events],
        "count": len(events),
        "nextCursor": next_cursor,
    }


@router.get("/event/{event_id}", responses=ADMIN_ERRORS)
async def get_event(
    event_id: str,
    admin: AdminPrincipal = Depends(require_admin),
) -> dict[str, Any]:
    service = EventService()
    event = await service.get(event_id)
    return {"success": True, "event": public_event(event)}


@router.put("/update/{event_id}", responses={409: {"description": "Deletion in progress"}, **ADMIN_ERRORS})
async def update_event(
    event_id: str,
    body: UpdateEventRequest,
    admin: AdminPrincipal = Depends(require_admin),
) -> dict[str, Any]:
    """
    Apply a sparse update.

    eventType never changes; schedule and video settings only change while
    the event is scheduled; status follows the lifecycle transitions.
    """
    service = EventService()
    event = await service.update(event_id, body)
    return {"success": True, "message": "Event updated", "event": public_event(event)}


@router.delete(
    "/delete/{event_id}",
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        202: {
            "description": "Deletion accepted; teardown runs in the background",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "message": "Event deletion started",
                        "eventId": "550e8400-e29b-41d4-a716-446655440000",
                    }
                }
            },
        },
        409: {"description": "Deletion already in progress"},
        502: {"description": "Teardown could not be dispatched"},
        **ADMIN_ERRORS,
    },
)
async def delete_event(
    event_id: str,
    background_tasks: BackgroundTasks,
    admin: AdminPrincipal = Depends(require_admin),
) -> dict[str, Any]:
    """
    Start deleting an event.

    Marks the event and responds immediately; stream resources, stored
    media and finally the record itself are removed by a separate teardown
    invocation (a background task when no teardown function is configured).
    Failures are written to the event's deletionError field.
    """
    service = EventService()
    event = await service.mark_for_deletion(event_id)
    try:
        dispatched = await TeardownDispatcher().dispatch(event_id, event.deletion_started_at)
    except Exception as exc:
        await service.record_deletion_failure(event_id, f"Teardown dispatch failed: {exc}")
        raise UpstreamFailureError(
            "Could not start event teardown", service="lambda", details={"eventId": event_id}
        ) from exc
    if not dispatched:
        background_tasks.add_task(TeardownPipeline().run, event_id)
    return {
        "success": True,
        "message": "Event deletion started",
        "eventId": event_id,
        "deletionStartedAt": event.deletion_started_at,
    }


@router.put("/resources/{event_id}", responses=ADMIN_ERRORS)
async def record_provisioning_result(
    event_id: str,
    body: ProvisioningResultRequest,
    admin: AdminPrincipal = Depends(require_admin),
) -> dict[str, Any]:
    """Record stream handles (or a failure) reported by the provisioner."""
    service = EventService()
    event = await service.apply_provisioning_result(event_id, body)
    return {"success": True, "event": public_event(event)}


@router.put("/vod-status/{event_id}", responses=ADMIN_ERRORS)
async def record_vod_status(
    event_id: str,
    body: VodStatusRequest,
    admin: AdminPrincipal = Depends(require_admin),
) -> dict[str, Any]:
    """Record transcoder progress; READY with a URL switches playback to VOD."""
    service = EventService()
    event = await service.apply_vod_status(event_id, body)
    return {"success": True, "event": public_event(event)}


@router.get("/vod/presign", responses=ADMIN_ERRORS)
async def presign_vod_upload(
    filename: Optional[str] = Query(None, description="Name of the file being uploaded"),
    content_type: str = Query("video/mp4", alias="contentType"),
    admin: AdminPrincipal = Depends(require_admin),
) -> dict[str, Any]:
    """
    Issue a pre-signed PUT URL for a VOD source file.

    The returned ``s3Key`` is what the subsequent create call passes as
    ``s3Key``.
    """
    service = VodService()
    upload = await service.presign_upload(filename, content_type)
    return {"success": True, **upload}


@router.get("/vod/download/{event_id}", responses=ADMIN_ERRORS)
async def vod_download_url(
    event_id: str,
    admin: AdminPrincipal = Depends(require_admin),
) -> dict[str, Any]:
    service = VodService()
    download = await service.download_url(event_id)
    return {"success": True, **download}
