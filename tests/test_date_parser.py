"""Tests for date parsing utilities."""

from datetime import date, datetime
import pytest

from bankrec.utils.date_parser import (
    parse_date,
    parse_ofx_date,
    parse_qif_date,
    to_strptime_format,
)


def test_to_strptime_format():
    """Test pattern token translation."""
    assert to_strptime_format("dd/MM/yyyy") == "%d/%m/%Y"
    assert to_strptime_format("yyyy-MM-dd") == "%Y-%m-%d"
    assert to_strptime_format("d.M.yy") == "%d.%m.%y"
    assert to_strptime_format("%Y%m%d") == "%Y%m%d"


def test_parse_date_with_format():
    """Test explicit patterns."""
    assert parse_date("15/01/2025", "dd/MM/yyyy") == date(2025, 1, 15)
    assert parse_date("2025-01-15", "yyyy-MM-dd") == date(2025, 1, 15)
    assert parse_date("15.01.25", "dd.MM.yy") == date(2025, 1, 15)


def test_parse_date_format_mismatch():
    """Test that a value not matching the pattern raises."""
    with pytest.raises(ValueError):
        parse_date("2025-01-15", "dd/MM/yyyy")


def test_parse_date_free_form_is_day_first():
    """Test free-form parsing through dateutil."""
    assert parse_date("02/03/2025") == date(2025, 3, 2)
    assert parse_date("2025-03-02") == date(2025, 3, 2)


def test_parse_date_passes_through_date_objects():
    """Test spreadsheet cells typed as dates."""
    assert parse_date(date(2025, 1, 15)) == date(2025, 1, 15)
    assert parse_date(datetime(2025, 1, 15, 10, 30)) == date(2025, 1, 15)


@pytest.mark.parametrize("value", ["", "   ", None, "not a date", "31/02/2025"])
def test_parse_date_invalid(value):
    """Test unusable dates."""
    with pytest.raises(ValueError):
        parse_date(value, "dd/MM/yyyy" if value == "31/02/2025" else None)


def test_parse_ofx_date():
    """Test OFX timestamps with and without time zone suffixes."""
    assert parse_ofx_date("20250115") == date(2025, 1, 15)
    assert parse_ofx_date("20250115120000.000[-5:EST]") == date(2025, 1, 15)
    with pytest.raises(ValueError):
        parse_ofx_date("2025")
    with pytest.raises(ValueError):
        parse_ofx_date("20251341")


def test_parse_qif_date():
    """Test QIF date layouts."""
    assert parse_qif_date("1/15'25") == date(2025, 1, 15)
    assert parse_qif_date("01/15/2025") == date(2025, 1, 15)
    assert parse_qif_date("15/01/2025") == date(2025, 1, 15)
    assert parse_qif_date("15/01/2025", "dd/MM/yyyy") == date(2025, 1, 15)
    with pytest.raises(ValueError):
        parse_qif_date("yesterday")
