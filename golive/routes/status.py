"""Health check endpoint."""

import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from golive.config import settings

# Set when the module is first imported, i.e. on cold start
_app_start_time = time.time()

router = APIRouter(tags=["Health"])


@router.get("/status")
async def get_status() -> JSONResponse:
    """
    Liveness check for load balancers and uptime checks.

    No credential is required and no table is touched. ``payments`` reports
    whether Stripe keys are present, so a misconfigured deploy is visible
    before the first checkout fails.

    Returns:
        JSONResponse with status, service, version, uptime_seconds and payments
    """
    uptime_seconds = int(time.time() - _app_start_time)

    return JSONResponse(
        status_code=200,
        content={
            "status": "ok",
            "service": settings.api_title,
            "version": settings.api_version,
            "uptime_seconds": uptime_seconds,
            "payments": {
                "checkout": bool(settings.stripe_secret_key),
                "webhooks": bool(settings.stripe_webhook_secret),
            },
        },
    )
