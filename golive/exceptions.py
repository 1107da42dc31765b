"""Custom exception classes for the GoLive Events API."""

from typing import Any


class GoLiveError(Exception):
    """Base exception for the GoLive Events API."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code
            error_code: Machine-readable error code
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class InvalidInputError(GoLiveError):
    """Raised when request data is missing, malformed or out of domain (400)."""

    def __init__(
        self,
        message: str = "Invalid request data",
        details: dict[str, Any] | None = None,
        error_code: str = "INVALID_INPUT",
    ) -> None:
        """
        Initialize InvalidInputError.

        Args:
            message: Error message
            details: Additional error details
            error_code: Machine-readable error code
        """
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details,
        )


class InvalidTransitionError(InvalidInputError):
    """Raised when an update would break an event lifecycle rule (400)."""

    def __init__(
        self,
        message: str = "Invalid state transition",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            details=details,
            error_code="INVALID_TRANSITION",
        )


class UnauthorizedError(GoLiveError):
    """Raised when a credential is missing or cannot be verified (401)."""

    def __init__(
        self,
        message: str = "Unauthorized: Invalid or missing credential",
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize UnauthorizedError.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(
            message=message,
            status_code=401,
            error_code="UNAUTHORIZED",
            details=details,
        )


class PaymentRequiredError(GoLiveError):
    """Raised when a paid event is requested by a viewer who has not paid (402)."""

    def __init__(
        self,
        message: str = "Payment required",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=402,
            error_code="PAYMENT_REQUIRED",
            details=details,
        )


class ForbiddenError(GoLiveError):
    """Raised when access is denied (403)."""

    def __init__(
        self,
        message: str = "Forbidden: Access denied",
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize ForbiddenError.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(
            message=message,
            status_code=403,
            error_code="FORBIDDEN",
            details=details,
        )


class NotFoundError(GoLiveError):
    """Raised when an event, viewer, payment or session is not found (404)."""

    def __init__(
        self,
        message: str = "Resource not found",
        resource: str | None = None,
        resource_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize NotFoundError.

        Args:
            message: Error message
            resource: Kind of resource that was not found
            resource_id: Identifier that was not found
            details: Additional error details
        """
        error_details = details or {}
        if resource:
            error_details["resource"] = resource
        if resource_id:
            error_details["id"] = resource_id
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND",
            details=error_details,
        )


class ConflictError(GoLiveError):
    """Raised when a write conflicts with the current state (409)."""

    def __init__(
        self,
        message: str = "Conflict with current state",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=409,
            error_code="CONFLICT",
            details=details,
        )


class RequestTooLargeError(GoLiveError):
    """Raised when request payload exceeds size limit (413)."""

    def __init__(
        self,
        message: str = "Request payload too large",
        max_size: str = "512KB",
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize RequestTooLargeError.

        Args:
            message: Error message
            max_size: Maximum allowed size
            details: Additional error details
        """
        error_details = details or {}
        error_details["max_size"] = max_size
        super().__init__(
            message=message,
            status_code=413,
            error_code="PAYLOAD_TOO_LARGE",
            details=error_details,
        )


class InvariantViolationError(GoLiveError):
    """Raised when a state check fails; state is left unchanged (500)."""

    def __init__(
        self,
        message: str = "Invariant violation",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=500,
            error_code="INVARIANT_VIOLATION",
            details=details,
        )


class UpstreamFailureError(GoLiveError):
    """Raised when an external resource or the payment gateway fails (502)."""

    def __init__(
        self,
        message: str = "Upstream service failure",
        service: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize UpstreamFailureError.

        Args:
            message: Error message
            service: Name of the failing upstream service
            details: Additional error details
        """
        error_details = details or {}
        if service:
            error_details["service"] = service
        super().__init__(
            message=message,
            status_code=502,
            error_code="UPSTREAM_FAILURE",
            details=error_details,
        )
        self.service = service


class ServiceUnavailableError(GoLiveError):
    """Raised when a dependent service is unavailable (503)."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        service: str | None = None,
        retry_after: int = 60,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize ServiceUnavailableError.

        Args:
            message: Error message
            service: Name of the unavailable service
            retry_after: Seconds until retry is recommended
            details: Additional error details
        """
        error_details = details or {}
        error_details["retry_after"] = retry_after
        if service:
            error_details["service"] = service
        super().__init__(
            message=message,
            status_code=503,
            error_code="SERVICE_UNAVAILABLE",
            details=error_details,
        )
        self.retry_after = retry_after


class ConditionFailedError(Exception):
    """Raised by repositories when a conditional write is rejected by the store."""
