"""Middleware components for request processing."""

from golive.middleware.logging import LoggingMiddleware
from golive.middleware.request_validation import RequestSizeValidationMiddleware

__all__ = [
    "LoggingMiddleware",
    "RequestSizeValidationMiddleware",
]
