"""Wall clock used for every time comparison and timestamp."""

from datetime import UTC, datetime

from golive.exceptions import InvalidInputError


def format_iso(moment: datetime) -> str:
    """
    Render a datetime as ISO 8601 UTC with millisecond precision and a Z suffix.

    Args:
        moment: Aware or naive (assumed UTC) datetime

    Returns:
        Timestamp string such as ``2025-11-11T12:00:00.000Z``
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str, field: str = "date") -> datetime:
    """
    Parse an ISO 8601 timestamp into an aware UTC datetime.

    Args:
        value: Timestamp string; a trailing Z and explicit offsets are accepted
        field: Field name used in the error message

    Returns:
        Aware datetime in UTC

    Raises:
        InvalidInputError: If the value is not a valid ISO 8601 timestamp
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"Invalid {field} value")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise InvalidInputError(f"Invalid {field} value", details={"field": field})
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def normalize_iso(value: str, field: str = "date") -> str:
    """Parse and re-render a timestamp in the canonical stored form."""
    return format_iso(parse_iso(value, field))


class Clock:
    """System wall clock. Services receive one so tests can freeze time."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    def now_iso(self) -> str:
        return format_iso(self.now())


class FrozenClock(Clock):
    """Clock pinned to a fixed instant, movable with ``advance``."""

    def __init__(self, moment: datetime) -> None:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=UTC)
        self._moment = moment

    def now(self) -> datetime:
        return self._moment

    def advance(self, delta) -> None:
        self._moment = self._moment + delta


system_clock = Clock()
