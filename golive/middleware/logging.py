"""Request logging middleware with correlation ID support."""

import time
import uuid
from collections.abc import Callable
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from golive.logging.config import REDACTED_KEYS, get_logger

logger = get_logger(__name__)


def _correlation_id(request: Request) -> str:
    # The size middleware may already have assigned one
    existing = getattr(request.state, "correlation_id", None)
    return request.headers.get("X-Request-ID") or existing or str(uuid.uuid4())


def _query_params(request: Request) -> dict[str, str]:
    return {
        key: "[REDACTED]" if key in REDACTED_KEYS else value
        for key, value in request.query_params.items()
    }


def _request_context(request: Request) -> dict[str, Any]:
    route = request.scope.get("route")
    return {
        "method": request.method,
        "path": request.url.path,
        "route": getattr(route, "path", None),
    }


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every request once on arrival and once on completion.

    Features:
    - Adds a correlation ID (X-Request-ID) to request state and response
    - Logs status code, response time and the authenticated principal
      (``viewer:<clientViewerId>`` or ``admin:<adminId>``)
    - Never logs headers or bodies (credentials, passwords, webhook payloads);
      credential-like query parameters are redacted
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = _correlation_id(request)
        request.state.correlation_id = correlation_id
        started = time.perf_counter()

        logger.info(
            "Request started",
            extra={
                "correlation_id": correlation_id,
                "context": {
                    "method": request.method,
                    "path": request.url.path,
                    "query_params": _query_params(request),
                    "client_host": request.client.host if request.client else None,
                },
            },
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "Request failed with exception",
                exc_info=exc,
                extra={
                    "correlation_id": correlation_id,
                    "context": {
                        **_request_context(request),
                        "response_time_ms": round((time.perf_counter() - started) * 1000, 2),
                    },
                },
            )
            raise

        logger.info(
            "Request completed",
            extra={
                "correlation_id": correlation_id,
                "context": {
                    **_request_context(request),
                    "status_code": response.status_code,
                    "response_time_ms": round((time.perf_counter() - started) * 1000, 2),
                    "principal": getattr(request.state, "principal", None),
                },
            },
        )
        response.headers["X-Request-ID"] = correlation_id
        return response
