"""Tests for GET /status endpoint."""

from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from golive.config import settings
from golive.main import app


@pytest.mark.asyncio
async def test_status_endpoint_returns_200() -> None:
    """Status needs no credential and answers JSON."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        response = await client.get("/status")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json"


@pytest.mark.asyncio
async def test_status_endpoint_has_required_fields() -> None:
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        response = await client.get("/status")

    data: dict[str, Any] = response.json()
    assert data["status"] == "ok"
    assert data["service"] == settings.api_title
    assert data["version"] == settings.api_version
    assert isinstance(data["uptime_seconds"], int)
    assert data["uptime_seconds"] >= 0


@pytest.mark.asyncio
async def test_status_reports_payment_configuration(monkeypatch) -> None:
    monkeypatch.setattr(settings, "stripe_secret_key", "sk_test_123")
    monkeypatch.setattr(settings, "stripe_webhook_secret", "")

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        response = await client.get("/status")

    assert response.json()["payments"] == {"checkout": True, "webhooks": False}


@pytest.mark.asyncio
async def test_root_lists_documentation() -> None:
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        response = await client.get("/")

    assert response.status_code == 200
