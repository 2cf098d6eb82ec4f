"""Tests for merchant pattern extraction."""

from datetime import date
import pytest

from bankrec.utils.merchant import (
    analyze_bank_description,
    extract_card_last4,
    extract_merchant_pattern,
    extract_purchase_date,
)


@pytest.mark.parametrize(
    "description,expected",
    [
        ("CARTE 15/01/25 CAFE DU COIN CB*1234", "cafe du coin"),
        ("PAIEMENT PAR CARTE CARTE 02/02/2025 Boulangerie Paul CB*9876", "boulangerie paul"),
        ("PRLV SEPA EDF CLIENTS", "edf clients"),
        ("VIR SEPA SALAIRE ACME", "salaire acme"),
        ("RETRAIT DAB 12/03 PARIS", "1203 paris"),
        ("CHQ. 1234567", "1234567"),
        ("POS PURCHASE WHOLE FOODS #123", "whole foods 123"),
        ("ACH DEBIT NETFLIX.COM", "netflixcom"),
        ("Amazon Marketplace", "amazon marketplace"),
    ],
)
def test_extract_merchant_pattern(description, expected):
    """Test boilerplate stripping."""
    assert extract_merchant_pattern(description) == expected


def test_extract_merchant_pattern_empty():
    """Test empty descriptions."""
    assert extract_merchant_pattern("") == ""
    assert extract_merchant_pattern(None) == ""


def test_same_merchant_same_pattern():
    """Test that a recurring merchant keeps its pattern across lines."""
    first = extract_merchant_pattern("CARTE 15/01/25 CAFE DU COIN CB*1234")
    second = extract_merchant_pattern("CARTE 28/02/25 CAFE DU COIN CB*5678")
    assert first == second


def test_extract_card_last4():
    """Test card suffix detection."""
    assert extract_card_last4("CARTE 15/01/25 CAFE CB*1234") == "1234"
    assert extract_card_last4("CAFE CB * 4321") == "4321"
    assert extract_card_last4("PRLV SEPA EDF") is None
    assert extract_card_last4(None) is None


def test_extract_purchase_date():
    """Test purchase date tokens."""
    assert extract_purchase_date("CARTE 15/01/25 CAFE") == date(2025, 1, 15)
    assert extract_purchase_date("CARTE 15/01/2025 CAFE") == date(2025, 1, 15)
    assert extract_purchase_date("CARTE 31/12/99 CAFE") == date(1999, 12, 31)
    assert extract_purchase_date("CARTE 31/02/25 CAFE") is None
    assert extract_purchase_date("CAFE") is None


def test_analyze_bank_description():
    """Test the combined analysis."""
    result = analyze_bank_description("CARTE 15/01/25 CAFE DU COIN CB*1234")
    assert result.merchant_pattern == "cafe du coin"
    assert result.card_last4 == "1234"
    assert result.purchase_date == date(2025, 1, 15)
    assert result.is_card_payment is True

    transfer = analyze_bank_description("VIR SEPA LOYER")
    assert transfer.card_last4 is None
    assert transfer.is_card_payment is False
