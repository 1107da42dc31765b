"""Tests for the session telemetry routes."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from golive.exceptions import NotFoundError
from golive.main import app
from tests.fakes import viewer_headers


@pytest.fixture
def mock_service():
    service = MagicMock()
    with patch("golive.routes.analytics.SessionService", return_value=service):
        yield service


@pytest.fixture
def client():
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_start_session(mock_service, client):
    mock_service.start = AsyncMock(return_value={"success": True, "sessionId": "s-1", "startTime": "t"})

    async with client:
        response = await client.post(
            "/api/analytics/event/evt-1/session/start",
            json={"playbackType": "live", "deviceInfo": {"type": "mobile"}},
            headers={**viewer_headers("evt-1", "c1"), "CloudFront-Viewer-City": "Auckland"},
        )

    assert response.status_code == 201
    assert response.json()["sessionId"] == "s-1"
    event_id, claims, body = mock_service.start.await_args.args
    assert event_id == "evt-1"
    assert claims.client_viewer_id == "c1"
    assert body.playback_type == "live"
    assert mock_service.start.await_args.kwargs["network"]["geo"]["city"] == "Auckland"


@pytest.mark.asyncio
async def test_session_routes_require_credential(mock_service, client):
    async with client:
        start = await client.post("/api/analytics/event/evt-1/session/start", json={})
        beat = await client.post("/api/analytics/session/s-1/heartbeat", json={"seconds": 10})
        end = await client.post("/api/analytics/session/s-1/end", json={"duration": 10})

    assert [start.status_code, beat.status_code, end.status_code] == [401, 401, 401]


@pytest.mark.asyncio
async def test_heartbeat(mock_service, client):
    mock_service.heartbeat = AsyncMock(return_value={"success": True, "duration": 40})

    async with client:
        response = await client.post(
            "/api/analytics/session/s-1/heartbeat", json={"seconds": 10.6}, headers=viewer_headers("evt-1", "c1")
        )

    assert response.json() == {"success": True, "duration": 40}
    session_id, claims, seconds = mock_service.heartbeat.await_args.args
    assert session_id == "s-1"
    assert seconds == 10.6


@pytest.mark.asyncio
async def test_heartbeat_rejects_non_numeric(mock_service, client):
    async with client:
        response = await client.post(
            "/api/analytics/session/s-1/heartbeat", json={"seconds": "lots"}, headers=viewer_headers("evt-1", "c1")
        )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_end_foreign_session(mock_service, client):
    mock_service.end = AsyncMock(
        side_effect=NotFoundError("Session not found: s-1", resource="session", resource_id="s-1")
    )

    async with client:
        response = await client.post(
            "/api/analytics/session/s-1/end", json={"duration": 90}, headers=viewer_headers("evt-1", "c2")
        )

    assert response.status_code == 404
    assert mock_service.end.await_args.args[2] == 90
