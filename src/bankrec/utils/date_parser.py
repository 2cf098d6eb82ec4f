"""Date parsing utilities."""

import re
from datetime import date, datetime
from typing import Any, Optional

from dateutil import parser as date_parser

# Longest tokens first so "yyyy" wins over "yy" and "dd" over "d".
_TOKEN_RE = re.compile(r"yyyy|yy|MM|M|dd|d")
_TOKEN_MAP = {
    "yyyy": "%Y",
    "yy": "%y",
    "MM": "%m",
    "M": "%m",
    "dd": "%d",
    "d": "%d",
}


def to_strptime_format(date_format: str) -> str:
    """Translate a pattern such as ``dd/MM/yyyy`` into a strptime format.

    Formats that already contain ``%`` directives are returned unchanged.

    Args:
        date_format: Pattern using dd, d, MM, M, yyyy and yy tokens

    Returns:
        Format string usable with ``datetime.strptime``
    """
    if "%" in date_format:
        return date_format
    return _TOKEN_RE.sub(lambda m: _TOKEN_MAP[m.group(0)], date_format)


def parse_date(value: Any, date_format: Optional[str] = None, dayfirst: bool = True) -> date:
    """Parse a statement date into a date object.

    Handles:
    - date and datetime objects (spreadsheet cells)
    - strings in an explicit pattern ("dd/MM/yyyy", "%Y-%m-%d", ...)
    - free-form strings through dateutil when no pattern is given

    Args:
        value: Raw cell or field value
        date_format: Optional pattern; when given the string must match it
        dayfirst: Day-first interpretation for free-form strings

    Returns:
        Date object

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        raise ValueError("Empty date string")

    date_str = str(value).strip()
    if not date_str:
        raise ValueError("Empty date string")

    if date_format:
        try:
            return datetime.strptime(date_str, to_strptime_format(date_format)).date()
        except ValueError as e:
            raise ValueError(f"Could not parse date '{date_str}' as '{date_format}': {e}")

    # dayfirst would swap month and day of ISO dates
    try:
        return date.fromisoformat(date_str)
    except ValueError:
        pass

    try:
        return date_parser.parse(date_str, dayfirst=dayfirst).date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def parse_ofx_date(value: Optional[str]) -> date:
    """Extract the calendar date from OFX timestamps.

    Handles:
        20241231120000.000[-7:MST]
        20241231120000[0:GMT]
        20241231

    Raises:
        ValueError: If fewer than eight leading digits or an invalid date
    """
    if not value or len(value.strip()) < 8:
        raise ValueError(f"Invalid OFX date '{value}'")
    digits = value.strip()[:8]
    if not digits.isdigit():
        raise ValueError(f"Invalid OFX date '{value}'")
    return date(int(digits[:4]), int(digits[4:6]), int(digits[6:8]))


def parse_qif_date(value: str, date_format: Optional[str] = None) -> date:
    """Parse QIF dates such as 7/4'25, 07/04/25 or 07/04/2025.

    Month-first formats are tried before day-first ones unless an explicit
    pattern is configured.

    Raises:
        ValueError: If no known layout matches
    """
    raw = (value or "").strip()
    if not raw:
        raise ValueError("Empty date string")
    norm = raw.replace("'", "/").replace(" ", "")
    if date_format:
        return parse_date(norm, date_format)
    for fmt in ("%m/%d/%Y", "%m/%d/%y", "%m-%d-%Y", "%m-%d-%y", "%d/%m/%Y", "%d/%m/%y", "%Y-%m-%d"):
        try:
            return datetime.strptime(norm, fmt).date()
        except ValueError:
            pass
    raise ValueError(f"Unrecognized QIF date: {value!r}")
