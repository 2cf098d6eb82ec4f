"""Merchant signature extraction from raw bank descriptions.

Bank exports decorate the merchant name with boilerplate that changes from
one line to the next (purchase date, card suffix, transfer/direct-debit
prefixes). Stripping it yields a coarse signature that stays stable for a
recurring merchant, used as the join key into the payee alias store.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

from bankrec.utils.normalize import normalize_description

_PURCHASE_DATE_RE = re.compile(r"CARTE\s+(\d{2})/(\d{2})/(\d{2,4})", re.IGNORECASE)
_PURCHASE_DATE_TOKEN_RE = re.compile(r"CARTE\s+\d{2}/\d{2}/\d{2,4}\s*", re.IGNORECASE)
_CARD_SUFFIX_RE = re.compile(r"CB\s?\*\s?(\d{4})\s*$", re.IGNORECASE)
_CARD_SUFFIX_TOKEN_RE = re.compile(r"\s*CB\s?\*\s?\d{4}\s*$", re.IGNORECASE)
_CARD_PAYMENT_RE = re.compile(r"CARTE\s+\d{2}/\d{2}", re.IGNORECASE)

# Applied in order, each anchored at the start of what is left.
_PREFIX_RES = [
    re.compile(r"^VIR(?:EMENT)?\s+SEPA\s*", re.IGNORECASE),
    re.compile(r"^PRLV\s+SEPA\s*", re.IGNORECASE),
    re.compile(r"^PAIEMENT\s+PAR\s+CARTE\s*", re.IGNORECASE),
    re.compile(r"^PAIEMENT\s+CB\s*", re.IGNORECASE),
    re.compile(r"^RETRAIT\s+DAB\s*", re.IGNORECASE),
    re.compile(r"^CHQ\s*\.?\s*", re.IGNORECASE),
    re.compile(r"^CHEQUE\s*", re.IGNORECASE),
    re.compile(r"^ACH\s+(?:DEBIT|CREDIT)\b\s*", re.IGNORECASE),
    re.compile(r"^(?:POS|DEBIT\s+CARD)\s+PURCHASE\b\s*", re.IGNORECASE),
    re.compile(r"^ATM\s+WITHDRAWAL\b\s*", re.IGNORECASE),
]


@dataclass(frozen=True)
class BankDescription:
    """Metadata extracted from a raw bank description."""

    merchant_pattern: str
    card_last4: Optional[str]
    purchase_date: Optional[date]
    is_card_payment: bool


def extract_card_last4(description: Optional[str]) -> Optional[str]:
    """Return the card suffix digits of "... CB*1234", or None."""
    if not description:
        return None
    match = _CARD_SUFFIX_RE.search(description)
    return match.group(1) if match else None


def extract_purchase_date(description: Optional[str]) -> Optional[date]:
    """Return the purchase date embedded as "CARTE dd/MM/yy[yy]", or None.

    Two-digit years >= 70 map to the 1900s, others to the 2000s.
    """
    if not description:
        return None
    match = _PURCHASE_DATE_RE.search(description)
    if not match:
        return None

    day, month, year = match.groups()
    if len(year) == 2:
        year = ("19" if int(year) >= 70 else "20") + year
    elif len(year) != 4:
        return None
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def extract_merchant_pattern(description: Optional[str]) -> str:
    """Strip bank boilerplate and normalize what remains.

    The purchase-date token and card suffix go first; the prefix phrases are
    then stripped from the start of the remaining text.

    >>> extract_merchant_pattern("CARTE 15/01/25 CAFE DU COIN CB*1234")
    'cafe du coin'
    """
    if not description:
        return ""

    cleaned = _PURCHASE_DATE_TOKEN_RE.sub("", description, count=1)
    cleaned = _CARD_SUFFIX_TOKEN_RE.sub("", cleaned)
    cleaned = cleaned.strip()
    for prefix_re in _PREFIX_RES:
        cleaned = prefix_re.sub("", cleaned)

    return normalize_description(cleaned)


def analyze_bank_description(description: Optional[str]) -> BankDescription:
    """Extract every piece of metadata available in a bank description."""
    card_last4 = extract_card_last4(description)
    return BankDescription(
        merchant_pattern=extract_merchant_pattern(description),
        card_last4=card_last4,
        purchase_date=extract_purchase_date(description),
        is_card_payment=bool(card_last4 or _CARD_PAYMENT_RE.search(description or "")),
    )
