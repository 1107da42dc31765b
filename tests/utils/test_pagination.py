"""Tests for pagination utilities and cursor handling."""

from decimal import Decimal

import pytest

from golive.exceptions import InvalidInputError
from golive.utils.pagination import decode_cursor, encode_cursor


def test_cursor_encoding_decoding():
    """Test cursor can be encoded and decoded correctly."""
    key = {"paymentId": "pay-123", "createdAt": "2025-11-11T12:00:00.000Z", "eventId": "evt-1"}

    cursor = encode_cursor(key)

    assert decode_cursor(cursor) == key


def test_cursor_is_url_safe():
    """Cursor contains no characters that need escaping in a query string."""
    cursor = encode_cursor({"eventId": "test-!@#$%^&*()_+-=[]{}|;:',.<>?"})

    assert "=" not in cursor
    assert "+" not in cursor
    assert "/" not in cursor


def test_cursor_with_unicode_characters():
    """Test cursor with unicode characters."""
    key = {"eventId": "test-unicode-éèê中文"}

    assert decode_cursor(encode_cursor(key)) == key


def test_decimal_key_values_become_numbers():
    """DynamoDB returns numbers as Decimal; cursors carry them as JSON numbers."""
    cursor = encode_cursor({"eventId": "evt-1", "amount": Decimal("10"), "ratio": Decimal("0.5")})

    assert decode_cursor(cursor) == {"eventId": "evt-1", "amount": 10, "ratio": 0.5}


def test_no_more_pages():
    assert encode_cursor(None) is None
    assert encode_cursor({}) is None
    assert decode_cursor(None) is None
    assert decode_cursor("") is None


@pytest.mark.parametrize("cursor", ["not-base64!!", "bm90IGpzb24", "WzEsIDJd"])
def test_invalid_cursor_rejected(cursor):
    """Garbage, non-JSON and non-object cursors are all InvalidInput."""
    with pytest.raises(InvalidInputError, match="Invalid pagination cursor"):
        decode_cursor(cursor)
