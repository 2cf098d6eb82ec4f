"""Amount parsing utilities."""

import re
from decimal import Decimal, InvalidOperation
from typing import Any

CENTS = Decimal("0.01")


def parse_amount(value: Any, decimal_separator: str = ".", invert: bool = False) -> Decimal:
    """Parse an amount into a Decimal rounded to minor units.

    Handles various formats:
    - 123.45 (int, float or Decimal cells)
    - "$123.45", "-€123.45"
    - "1,234.56" with decimal_separator "."
    - "1.234,56" and "1 234,56" with decimal_separator ","
    - "(123.45)" (negative in parentheses)
    - "123.45-" (trailing minus)

    Args:
        value: Raw cell or field value
        decimal_separator: "." or ","
        invert: Flip the sign (bank uses the opposite debit/credit convention)

    Returns:
        Decimal amount quantized to cents

    Raises:
        ValueError: If the value is empty, not numeric or not finite
    """
    if isinstance(value, bool):
        raise ValueError(f"Could not parse amount '{value}'")
    if isinstance(value, (int, float, Decimal)):
        amount = Decimal(str(value))
    else:
        amount = _parse_amount_string("" if value is None else str(value), decimal_separator)

    if not amount.is_finite():
        raise ValueError(f"Amount '{value}' is not finite")

    try:
        amount = amount.quantize(CENTS)
    except InvalidOperation:
        raise ValueError(f"Amount '{value}' is out of range")
    return -amount if invert else amount


def _parse_amount_string(amount_str: str, decimal_separator: str) -> Decimal:
    # Remove all whitespace, including non-breaking thousand separators
    amount_str = re.sub(r"\s", "", amount_str)
    if not amount_str:
        raise ValueError("Empty amount string")

    # Handle parentheses and trailing-minus notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]
    elif amount_str.endswith("-"):
        is_negative = True
        amount_str = amount_str[:-1]

    # Remove currency symbols
    amount_str = re.sub(r"[$€£¥]", "", amount_str)

    if decimal_separator == ",":
        amount_str = amount_str.replace(".", "").replace("'", "").replace(",", ".")
    else:
        amount_str = amount_str.replace(",", "").replace("'", "")

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e!r}")
    return -amount if is_negative else amount
