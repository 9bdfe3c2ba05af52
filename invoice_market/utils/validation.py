"""
Input Validation - sanitization of values crossing the engine boundary.

Amounts arrive as strings (form input), ints, floats or Decimals and are
normalized to Decimal here. Anything non-numeric, non-finite or out of
bounds is rejected before it can reach an invoice or a wallet.
"""

import math
from decimal import Decimal, InvalidOperation
from typing import Any, Tuple

from invoice_market.core.errors import ValidationError

# =============================================================================
# Constants
# =============================================================================

MAX_TITLE_LENGTH = 200
MAX_AMOUNT = Decimal("1000000000000")
AMOUNT_QUANTUM = Decimal("0.01")


# =============================================================================
# Validation Functions
# =============================================================================


def parse_amount(value: Any, name: str = "amount") -> Decimal:
    """
    Convert a user-supplied amount to Decimal.

    Args:
        value: str, int, float or Decimal
        name: Field name for error messages

    Returns:
        Decimal value

    Raises:
        ValidationError: if the value is missing, non-numeric or not finite
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{name} must be numeric, got {type(value).__name__}")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError(f"{name} must be finite, got {value}")
        # repr keeps 0.1 as 0.1 rather than its binary expansion
        amount = Decimal(repr(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValidationError(f"{name} is required")
        try:
            amount = Decimal(text)
        except InvalidOperation:
            raise ValidationError(f"{name} must be numeric, got {value!r}") from None
    else:
        raise ValidationError(f"{name} must be numeric, got {type(value).__name__}")

    if not amount.is_finite():
        raise ValidationError(f"{name} must be finite, got {value}")

    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"{name} exceeds maximum {MAX_AMOUNT}")

    return amount


def parse_positive_amount(value: Any, name: str = "amount") -> Decimal:
    """Parse an amount that must be strictly greater than zero."""
    amount = parse_amount(value, name)
    if amount <= 0:
        raise ValidationError(f"{name} must be > 0, got {amount}")
    return amount


def validate_amount(value: Any, name: str = "amount") -> Tuple[bool, str]:
    """
    Validate an amount without raising.

    Returns:
        (is_valid, error_message)
    """
    try:
        parse_positive_amount(value, name)
    except ValidationError as e:
        return False, e.message
    return True, ""


def validate_title(title: Any) -> Tuple[bool, str]:
    """Validate an invoice title."""
    if not isinstance(title, str):
        return False, f"title must be str, got {type(title).__name__}"

    if not title.strip():
        return False, "title is required"

    if len(title) > MAX_TITLE_LENGTH:
        return False, f"title exceeds max length {MAX_TITLE_LENGTH}, got {len(title)}"

    return True, ""


def validate_timestamp(value: Any, name: str = "timestamp") -> Tuple[bool, str]:
    """Validate an epoch-seconds timestamp. Past instants are allowed."""
    if value is None or isinstance(value, bool):
        return False, f"{name} is required"

    if not isinstance(value, (int, float)):
        return False, f"{name} must be a number of seconds, got {type(value).__name__}"

    if not math.isfinite(value) or value < 0:
        return False, f"{name} must be a finite non-negative instant, got {value}"

    return True, ""


def format_amount(amount: Decimal, currency: str = "EUR") -> str:
    """Render an amount for log lines and CLI output."""
    symbol = "€" if currency == "EUR" else f"{currency} "
    return f"{symbol}{amount.quantize(AMOUNT_QUANTUM)}"
