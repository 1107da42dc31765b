"""Tests for the admin event routes."""

from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from golive.auth.dependencies import require_admin
from golive.auth.tokens import AdminPrincipal
from golive.exceptions import ConflictError, InvalidTransitionError, NotFoundError
from golive.main import app
from tests.fakes import NOW_ISO, admin_headers, make_event, viewer_headers


@pytest.fixture
def mock_service():
    """EventService stand-in patched into the route module."""
    service = MagicMock()
    with patch("golive.routes.events.EventService", return_value=service):
        yield service


@pytest.fixture
def client():
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_create_event(mock_service, client):
    event = make_event(access_mode="passwordAccess", access_password_hash="$2b$secret")
    mock_service.create = AsyncMock(return_value=event)

    async with client:
        response = await client.post(
            "/api/events/create",
            json={"title": "Quarter-final", "description": "d", "eventType": "live", "accessPassword": "p"},
            headers=admin_headers("admin-9"),
        )

    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["eventId"] == "evt-1"
    assert data["event"]["hasAccessPassword"] is True
    assert "accessPasswordHash" not in data["event"]
    request, = mock_service.create.await_args.args
    assert request.access_password == "p"
    assert mock_service.create.await_args.kwargs["created_by"] == "admin-9"


@pytest.mark.asyncio
async def test_admin_credential_required(mock_service, client):
    async with client:
        missing = await client.post("/api/events/create", json={})
        viewer = await client.get("/api/events/list", headers=viewer_headers("evt-1", "c1"))

    assert missing.status_code == 401
    assert missing.json()["error_code"] == "UNAUTHORIZED"
    assert viewer.status_code == 401


@pytest.mark.asyncio
async def test_list_events_passes_filters(mock_service, client):
    mock_service.list_events = AsyncMock(return_value=([make_event()], "next-page"))
    app.dependency_overrides[require_admin] = lambda: AdminPrincipal(admin_id="admin-1")

    try:
        async with client:
            response = await client.get("/api/events/list", params={"q": "final", "type": "live", "limit": 5})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json()["nextCursor"] == "next-page"
    assert response.json()["count"] == 1
    mock_service.list_events.assert_awaited_once_with(query="final", event_type="live", limit=5, cursor=None)


@pytest.mark.asyncio
async def test_list_limit_bounds(mock_service, client):
    async with client:
        response = await client.get("/api/events/list", params={"limit": 500}, headers=admin_headers())

    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_get_missing_event(mock_service, client):
    mock_service.get = AsyncMock(side_effect=NotFoundError("Event not found: nope", resource="event", resource_id="nope"))

    async with client:
        response = await client.get("/api/events/event/nope", headers=admin_headers())

    assert response.status_code == 404
    assert response.json()["details"] == {"resource": "event", "id": "nope"}


@pytest.mark.asyncio
async def test_update_invalid_transition(mock_service, client):
    mock_service.update = AsyncMock(side_effect=InvalidTransitionError("eventType cannot be changed after creation"))

    async with client:
        response = await client.put("/api/events/update/evt-1", json={"eventType": "vod"}, headers=admin_headers())

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_TRANSITION"


@pytest.mark.asyncio
async def test_update_event(mock_service, client):
    mock_service.update = AsyncMock(return_value=make_event(title="Renamed"))

    async with client:
        response = await client.put("/api/events/update/evt-1", json={"title": "Renamed"}, headers=admin_headers())

    assert response.status_code == 200
    assert response.json()["event"]["title"] == "Renamed"
    request = mock_service.update.await_args.args[1]
    assert request.model_dump(exclude_unset=True) == {"title": "Renamed"}


@pytest.mark.asyncio
async def test_delete_schedules_teardown(mock_service, client):
    mock_service.mark_for_deletion = AsyncMock(
        return_value=make_event(is_deletion_in_progress=True, deletion_started_at=NOW_ISO)
    )
    pipeline = Mock()
    pipeline.run = AsyncMock(return_value=True)
    dispatcher = Mock()
    dispatcher.dispatch = AsyncMock(return_value=False)

    with patch("golive.routes.events.TeardownPipeline", return_value=pipeline), patch(
        "golive.routes.events.TeardownDispatcher", return_value=dispatcher
    ):
        async with client:
            response = await client.delete("/api/events/delete/evt-1", headers=admin_headers())

    assert response.status_code == 202
    assert response.json() == {
        "success": True,
        "message": "Event deletion started",
        "eventId": "evt-1",
        "deletionStartedAt": NOW_ISO,
    }
    pipeline.run.assert_awaited_once_with("evt-1")
    dispatcher.dispatch.assert_awaited_once_with("evt-1", NOW_ISO)


@pytest.mark.asyncio
async def test_delete_hands_teardown_to_worker(mock_service, client):
    mock_service.mark_for_deletion = AsyncMock(
        return_value=make_event(is_deletion_in_progress=True, deletion_started_at=NOW_ISO)
    )
    dispatcher = Mock()
    dispatcher.dispatch = AsyncMock(return_value=True)

    with patch("golive.routes.events.TeardownPipeline") as pipeline, patch(
        "golive.routes.events.TeardownDispatcher", return_value=dispatcher
    ):
        async with client:
            response = await client.delete("/api/events/delete/evt-1", headers=admin_headers())

    assert response.status_code == 202
    dispatcher.dispatch.assert_awaited_once_with("evt-1", NOW_ISO)
    pipeline.assert_not_called()


@pytest.mark.asyncio
async def test_delete_releases_slot_when_dispatch_fails(mock_service, client):
    mock_service.mark_for_deletion = AsyncMock(
        return_value=make_event(is_deletion_in_progress=True, deletion_started_at=NOW_ISO)
    )
    mock_service.record_deletion_failure = AsyncMock(return_value=make_event())
    dispatcher = Mock()
    dispatcher.dispatch = AsyncMock(side_effect=ConnectionError("lambda unreachable"))

    with patch("golive.routes.events.TeardownPipeline") as pipeline, patch(
        "golive.routes.events.TeardownDispatcher", return_value=dispatcher
    ):
        async with client:
            response = await client.delete("/api/events/delete/evt-1", headers=admin_headers())

    assert response.status_code == 502
    assert response.json()["error_code"] == "UPSTREAM_FAILURE"
    event_id, error = mock_service.record_deletion_failure.await_args.args
    assert event_id == "evt-1"
    assert "lambda unreachable" in error
    pipeline.assert_not_called()


@pytest.mark.asyncio
async def test_delete_twice_conflicts(mock_service, client):
    mock_service.mark_for_deletion = AsyncMock(side_effect=ConflictError("Event deletion already in progress"))

    with patch("golive.routes.events.TeardownPipeline") as pipeline:
        async with client:
            response = await client.delete("/api/events/delete/evt-1", headers=admin_headers())

    assert response.status_code == 409
    pipeline.assert_not_called()


@pytest.mark.asyncio
async def test_record_provisioning_result(mock_service, client):
    mock_service.apply_provisioning_result = AsyncMock(return_value=make_event(live_channel_id="ch-1"))

    async with client:
        response = await client.put(
            "/api/events/resources/evt-1",
            json={"provisioningStatus": "ready", "liveChannelId": "ch-1", "cacheBehaviorIds": ["/live/evt-1/*"]},
            headers=admin_headers(),
        )

    assert response.status_code == 200
    request = mock_service.apply_provisioning_result.await_args.args[1]
    assert request.cache_behavior_ids == ["/live/evt-1/*"]


@pytest.mark.asyncio
async def test_record_vod_status(mock_service, client):
    mock_service.apply_vod_status = AsyncMock(return_value=make_event(vod_status="READY"))

    async with client:
        response = await client.put(
            "/api/events/vod-status/evt-1", json={"vodStatus": "READY", "vod1080pUrl": "https://cdn.test/1080.m3u8"}, headers=admin_headers()
        )

    assert response.status_code == 200
    assert mock_service.apply_vod_status.await_args.args[1].vod_1080p_url == "https://cdn.test/1080.m3u8"


@pytest.fixture
def vod_service():
    service = MagicMock()
    with patch("golive.routes.events.VodService", return_value=service):
        yield service


@pytest.mark.asyncio
async def test_vod_presign(vod_service, client):
    vod_service.presign_upload = AsyncMock(
        return_value={"uploadUrl": "https://s3.test/put", "bucket": "b", "s3Key": "uploads/u1/a.mp4", "expiresIn": 3600}
    )

    async with client:
        response = await client.get(
            "/api/events/vod/presign",
            params={"filename": "a.mp4"},
            headers=admin_headers(),
        )

    assert response.status_code == 200
    assert response.json()["s3Key"] == "uploads/u1/a.mp4"
    vod_service.presign_upload.assert_awaited_once_with("a.mp4", "video/mp4")


@pytest.mark.asyncio
async def test_vod_download_not_found(vod_service, client):
    vod_service.download_url = AsyncMock(
        side_effect=NotFoundError("Full-length MP4 not found for this event", resource="vod")
    )

    async with client:
        response = await client.get("/api/events/vod/download/evt-1", headers=admin_headers())
        anonymous = await client.get("/api/events/vod/download/evt-1")

    assert response.status_code == 404
    assert response.json()["message"] == "Full-length MP4 not found for this event"
    assert anonymous.status_code == 401
