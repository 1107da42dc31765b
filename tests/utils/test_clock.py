"""Tests for timestamp parsing and the injectable clock."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from golive.exceptions import InvalidInputError
from golive.utils.clock import FrozenClock, format_iso, normalize_iso, parse_iso


def test_format_iso_uses_millisecond_z_form():
    moment = datetime(2025, 11, 11, 12, 0, 5, 123456, tzinfo=UTC)

    assert format_iso(moment) == "2025-11-11T12:00:05.123Z"


def test_format_iso_treats_naive_as_utc():
    assert format_iso(datetime(2025, 1, 1)) == "2025-01-01T00:00:00.000Z"


def test_parse_iso_accepts_z_and_offsets():
    assert parse_iso("2025-11-11T12:00:00Z") == datetime(2025, 11, 11, 12, tzinfo=UTC)
    assert parse_iso("2025-11-11T14:00:00+02:00") == datetime(2025, 11, 11, 12, tzinfo=UTC)


@pytest.mark.parametrize("value", ["", "   ", "tomorrow", "2025-13-40T00:00:00Z", None])
def test_parse_iso_rejects_invalid(value):
    with pytest.raises(InvalidInputError) as exc_info:
        parse_iso(value, "startTime")

    assert "startTime" in exc_info.value.message


def test_normalize_iso_converts_offsets_to_utc():
    value = datetime(2025, 6, 1, 20, tzinfo=timezone(timedelta(hours=2))).isoformat()

    assert normalize_iso(value) == "2025-06-01T18:00:00.000Z"


def test_frozen_clock_advances():
    clock = FrozenClock(datetime(2030, 1, 1, tzinfo=UTC))

    clock.advance(timedelta(minutes=90))

    assert clock.now_iso() == "2030-01-01T01:30:00.000Z"
