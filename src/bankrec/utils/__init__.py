"""Utility functions for bankrec."""

from bankrec.utils.date_parser import parse_date
from bankrec.utils.amount_parser import parse_amount
from bankrec.utils.normalize import normalize_description, fingerprint
from bankrec.utils.merchant import extract_merchant_pattern

__all__ = [
    "parse_date",
    "parse_amount",
    "normalize_description",
    "fingerprint",
    "extract_merchant_pattern",
]
