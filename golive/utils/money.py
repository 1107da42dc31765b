"""Money helpers: decimal major units, minor-unit conversion, ISO 4217 codes."""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from golive.exceptions import InvalidInputError

CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")
TWO_PLACES = Decimal("0.01")


def parse_amount(value: object, field: str = "paymentAmount") -> Decimal:
    """
    Parse a positive decimal amount in major units.

    Args:
        value: Number or numeric string
        field: Field name used in error messages

    Returns:
        Decimal amount

    Raises:
        InvalidInputError: If the value is not numeric or not strictly positive
    """
    if value is None or value == "" or isinstance(value, bool):
        raise InvalidInputError(f"{field} is required")
    try:
        # str() keeps 0.015 as typed rather than its binary float expansion
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidInputError(f"{field} must be a number")
    if not amount.is_finite() or amount <= 0:
        raise InvalidInputError(f"{field} must be greater than zero")
    return amount


def to_minor_units(amount: object) -> int:
    """
    Convert a major-unit amount to integer minor units.

    Rounds half-up at two decimals, then scales by 100: ``0.015`` becomes 2.

    Raises:
        InvalidInputError: If the amount is not strictly positive
    """
    value = parse_amount(amount, field="amount")
    minor = int((value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP) * 100).to_integral_value())
    if minor <= 0:
        raise InvalidInputError("amount must be at least one minor unit")
    return minor


def normalize_currency(value: object) -> str:
    """
    Normalize and validate an ISO 4217 currency code.

    Raises:
        InvalidInputError: If the value is not a three-letter code
    """
    if value is None or not str(value).strip():
        raise InvalidInputError("currency is required")
    code = str(value).strip().upper()
    if not CURRENCY_PATTERN.match(code):
        raise InvalidInputError("currency must be a valid ISO 4217 code")
    return code
