"""Global exception handlers for consistent error responses."""

from typing import Any

from botocore.exceptions import ClientError
from botocore.exceptions import ConnectionError as BotoCoreConnectionError
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from golive.exceptions import GoLiveError, ServiceUnavailableError
from golive.logging.config import get_logger

logger = get_logger(__name__)

STORE_RETRY_AFTER_SECONDS = 60


def create_error_response(
    error_code: str,
    message: str,
    status_code: int,
    details: dict[str, Any] | None = None,
    correlation_id: str | None = None,
) -> JSONResponse:
    """
    Create standardized error response.

    Args:
        error_code: Machine-readable error code
        message: Human-readable error message
        status_code: HTTP status code
        details: Additional error details
        correlation_id: Request correlation ID for tracing

    Returns:
        JSONResponse with ``success: false`` and error information
    """
    content = {
        "success": False,
        "message": message,
        "error_code": error_code,
        "details": details or {},
    }

    if correlation_id:
        content["correlation_id"] = correlation_id

    return JSONResponse(status_code=status_code, content=content)


async def golive_exception_handler(request: Request, exc: GoLiveError) -> JSONResponse:
    """
    Handle domain errors raised by services, auth and middleware.

    Args:
        request: FastAPI request
        exc: GoLiveError instance

    Returns:
        JSONResponse with error details
    """
    correlation_id = getattr(request.state, "correlation_id", None)

    if exc.status_code >= 500:
        logger.error(
            exc.message,
            extra={
                "correlation_id": correlation_id,
                "context": {"error_code": exc.error_code, "path": request.url.path},
            },
        )

    response = create_error_response(
        error_code=exc.error_code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        correlation_id=correlation_id,
    )

    if isinstance(exc, ServiceUnavailableError):
        response.headers["Retry-After"] = str(exc.retry_after)

    return response


# Field-error types rewritten into plain messages; others keep pydantic's text
FIELD_MESSAGES = {
    "missing": "Field is required",
    "json_invalid": "Malformed JSON body",
}

# DynamoDB answers with these when it sheds load; the caller should retry
THROTTLING_CODES = frozenset(
    {
        "ProvisionedThroughputExceededException",
        "ThrottlingException",
        "RequestLimitExceeded",
        "ServiceUnavailable",
        "InternalServerError",
    }
)


def _describe_field_error(error: dict[str, Any]) -> dict[str, str]:
    parts = [str(loc) for loc in error["loc"] if loc != "body"]
    error_type = error["type"]
    message = FIELD_MESSAGES.get(error_type, error["msg"])
    if error_type == "value_error":
        message = f"Invalid value: {error['msg']}"
    return {"field": ".".join(parts) or "request", "message": message, "type": error_type}


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Turn request validation failures into a 400 listing every bad field.

    The message names the first field and counts the rest, e.g.
    ``title: Field is required (and 2 more errors)``.
    """
    field_errors = [_describe_field_error(error) for error in exc.errors()]

    if field_errors:
        first = field_errors[0]
        summary = f"{first['field']}: {first['message']}"
        if len(field_errors) > 1:
            summary += f" (and {len(field_errors) - 1} more errors)"
    else:
        summary = "Invalid request data"

    return create_error_response(
        error_code="VALIDATION_ERROR",
        message=summary,
        status_code=status.HTTP_400_BAD_REQUEST,
        details={"validation_errors": field_errors},
        correlation_id=getattr(request.state, "correlation_id", None),
    )


def is_store_outage(exc: Exception) -> bool:
    """Whether an unhandled error means DynamoDB (or the network to it) is unavailable."""
    if isinstance(exc, (ConnectionError, TimeoutError, BotoCoreConnectionError)):
        return True
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code") in THROTTLING_CODES
    return False


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Logs the traceback and hides the details from the client. Store outages
    and throttling become 503 with Retry-After so callers (and the payment
    gateway's webhook retries) try again; everything else is a 500.
    """
    correlation_id = getattr(request.state, "correlation_id", None)
    outage = is_store_outage(exc)

    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=exc,
        extra={
            "correlation_id": correlation_id,
            "context": {
                "exception_type": type(exc).__name__,
                "method": request.method,
                "path": request.url.path,
                "store_outage": outage,
            },
        },
    )

    if outage:
        response = create_error_response(
            error_code="SERVICE_UNAVAILABLE",
            message="Service temporarily unavailable. Please try again later.",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"retry_after": STORE_RETRY_AFTER_SECONDS},
            correlation_id=correlation_id,
        )
        response.headers["Retry-After"] = str(STORE_RETRY_AFTER_SECONDS)
        return response

    return create_error_response(
        error_code="INTERNAL_ERROR",
        message="An internal error occurred. Please contact support with the correlation ID.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        correlation_id=correlation_id,
    )
