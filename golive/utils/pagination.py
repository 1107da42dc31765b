"""Opaque pagination cursors wrapping DynamoDB's LastEvaluatedKey."""

import base64
import binascii
import json
from decimal import Decimal
from typing import Any

from golive.exceptions import InvalidInputError


def _default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    raise TypeError(f"Unsupported cursor value: {type(value).__name__}")


def encode_cursor(last_evaluated_key: dict[str, Any] | None) -> str | None:
    """
    Encode a LastEvaluatedKey as a URL-safe opaque cursor.

    Args:
        last_evaluated_key: Key returned by a query or scan, or None

    Returns:
        Cursor string, or None when there are no more pages
    """
    if not last_evaluated_key:
        return None
    raw = json.dumps(last_evaluated_key, sort_keys=True, default=_default)
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(cursor: str | None) -> dict[str, Any] | None:
    """
    Decode a cursor produced by ``encode_cursor``.

    Raises:
        InvalidInputError: If the cursor is not one this service issued
    """
    if not cursor:
        return None
    padded = cursor + "=" * (-len(cursor) % 4)
    try:
        decoded = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (binascii.Error, ValueError, UnicodeError):
        raise InvalidInputError("Invalid pagination cursor")
    if not isinstance(decoded, dict):
        raise InvalidInputError("Invalid pagination cursor")
    return decoded
