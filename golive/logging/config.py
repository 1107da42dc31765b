"""Structured JSON logging for the API, background teardown and CLIs."""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from golive.config import settings

# Context keys whose values must never reach the log stream
REDACTED_KEYS = frozenset(
    {"password", "accessPassword", "authorization", "viewerToken", "token", "payload"}
)


def _redact(context: dict[str, Any]) -> dict[str, Any]:
    return {
        key: "[REDACTED]" if key in REDACTED_KEYS else value
        for key, value in context.items()
    }


class JSONFormatter(logging.Formatter):
    """
    Formatter that renders each record as one JSON object.

    Fields: timestamp (UTC ISO 8601), level, logger, message, correlation_id
    when the caller passed one in ``extra``, every key of the ``context``
    dict (sensitive keys redacted) and the formatted exception if any.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "correlation_id"):
            log_data["correlation_id"] = record.correlation_id

        if hasattr(record, "context") and isinstance(record.context, dict):
            log_data.update(_redact(record.context))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.levelno == logging.DEBUG:
            log_data["file"] = record.pathname
            log_data["line"] = record.lineno
            log_data["function"] = record.funcName

        return json.dumps(log_data, default=str)


def configure_logging() -> None:
    """
    Configure the root logger to emit JSON lines on stdout.

    The level comes from the LOG_LEVEL setting. Noisy AWS SDK loggers are
    capped at WARNING.
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates (Lambda pre-installs one)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(console_handler)

    for noisy in ("botocore", "aiobotocore", "boto3", "urllib3", "stripe"):
        logging.getLogger(noisy).setLevel(max(log_level, logging.WARNING))

    root_logger.info(
        "Logging configured",
        extra={"context": {"log_level": settings.log_level}},
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: The name of the logger (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
