"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from golive.config import settings
from golive.exceptions import GoLiveError
from golive.handlers.exception_handler import (
    generic_exception_handler,
    golive_exception_handler,
    validation_exception_handler,
)
from golive.logging.config import configure_logging
from golive.middleware.logging import LoggingMiddleware
from golive.middleware.request_validation import RequestSizeValidationMiddleware
from golive.routes import analytics, events, payments, playback, status

# Configure logging before creating the app
configure_logging()

app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="""
## GoLive Events API

Control plane for ticketed live and on-demand video events. Operators create
events; viewers register, satisfy the event's access gate and receive a
playback URL.

### Event types

- **live**: streams as soon as provisioning completes
- **scheduled**: streams inside its start/end window, then replays the recording
- **vod**: plays an uploaded video once transcoding is READY

### Access modes

| Mode | Viewer must |
|------|-------------|
| `freeAccess` | nothing |
| `emailAccess` | submit the registration form |
| `passwordAccess` | submit the form and the event password |
| `paidAccess` | submit the form, pay, and enter the emailed password |

### Credentials

Admin endpoints take an admin access token; viewer endpoints take the viewer
token returned by registration:

```
Authorization: Bearer <token>
```

### Payments

Checkout runs on Stripe. Entitlements are granted only by signed webhooks,
so polling `/api/payments/{eventId}/verify` after the redirect is safe.

### Deletion

`DELETE /api/events/delete/{eventId}` answers 202 at once. Stream resources,
recordings and finally the event record are removed in the background; a
failure is written to the event's `deletionError`.
""",
    docs_url="/docs",
    redoc_url="/redoc",
    contact={
        "name": "GoLive Platform Team",
        "email": "platform@golive.events",
    },
    license_info={
        "name": "Proprietary",
    },
)

# Register middleware (the last one added is the outermost layer)
# Logging wraps the size check so rejected requests are logged too
app.add_middleware(RequestSizeValidationMiddleware)
app.add_middleware(LoggingMiddleware)

# Register exception handlers
app.add_exception_handler(GoLiveError, golive_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Register routers
app.include_router(events.router)
app.include_router(playback.router)
app.include_router(payments.router)
app.include_router(analytics.router)
app.include_router(status.router)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """
    Root endpoint with API information.

    Returns:
        Dict with welcome message and docs link
    """
    return {
        "message": f"Welcome to {settings.api_title}",
        "version": settings.api_version,
        "docs": "/docs",
        "health": "/status",
    }
