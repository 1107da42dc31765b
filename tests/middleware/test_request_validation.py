"""Tests for the request size limit."""

import pytest
from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient

from golive.config import settings
from golive.middleware.request_validation import RequestSizeValidationMiddleware


@pytest.fixture
def sized_app(monkeypatch) -> FastAPI:
    monkeypatch.setattr(settings, "max_request_size_bytes", 1024)
    app = FastAPI()
    app.add_middleware(RequestSizeValidationMiddleware)

    @app.post("/echo")
    async def echo(request: Request) -> dict[str, int]:
        return {"size": len(await request.body())}

    return app


@pytest.mark.asyncio
async def test_small_request_passes(sized_app):
    async with AsyncClient(transport=ASGITransport(app=sized_app), base_url="http://test") as client:
        response = await client.post("/echo", content=b"x" * 100)

    assert response.status_code == 200
    assert response.json() == {"size": 100}


@pytest.mark.asyncio
async def test_oversized_request_rejected(sized_app):
    async with AsyncClient(transport=ASGITransport(app=sized_app), base_url="http://test") as client:
        response = await client.post("/echo", content=b"x" * 2048, headers={"X-Request-ID": "req-1"})

    assert response.status_code == 413
    body = response.json()
    assert body["error_code"] == "PAYLOAD_TOO_LARGE"
    assert body["correlation_id"] == "req-1"
    assert body["details"] == {"request_size": "2.0KB", "max_size": "1KB"}
