"""Request size limit, applied before any body is read."""

import uuid
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from golive.config import settings
from golive.exceptions import RequestTooLargeError
from golive.handlers.exception_handler import create_error_response


def _declared_size(request: Request) -> int:
    try:
        return int(request.headers.get("content-length") or 0)
    except ValueError:
        return 0


class RequestSizeValidationMiddleware(BaseHTTPMiddleware):
    """
    Reject bodies larger than ``max_request_size_bytes`` with 413.

    Only the declared Content-Length is checked. Webhook deliveries and
    registration forms are small, so the default limit is generous.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = (
            getattr(request.state, "correlation_id", None)
            or request.headers.get("X-Request-ID")
            or str(uuid.uuid4())
        )
        request.state.correlation_id = correlation_id

        size = _declared_size(request)
        limit = settings.max_request_size_bytes
        if size <= limit:
            return await call_next(request)

        # Exceptions raised in middleware never reach the app's handlers
        error = RequestTooLargeError(
            message=f"Request size {size / 1024:.1f}KB exceeds maximum {limit / 1024:.0f}KB",
            max_size=f"{limit / 1024:.0f}KB",
            details={"request_size": f"{size / 1024:.1f}KB"},
        )
        return create_error_response(
            error_code=error.error_code,
            message=error.message,
            status_code=error.status_code,
            details=error.details,
            correlation_id=correlation_id,
        )
