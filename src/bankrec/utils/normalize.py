"""Description normalization and content fingerprints for staged records."""

import hashlib
import re
import unicodedata
from datetime import date
from decimal import Decimal
from typing import Optional

from bankrec.utils.amount_parser import CENTS


def normalize_description(text: Optional[str]) -> str:
    """Canonicalize free text for comparison.

    - Lowercase
    - Strip diacritics ("Café" -> "cafe")
    - Drop everything except ASCII letters, digits and whitespace
    - Collapse whitespace
    """
    if not text:
        return ""
    text = unicodedata.normalize("NFD", text.lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"[^a-z0-9\s]", "", text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def fingerprint(txn_date: date, amount: Decimal, description: Optional[str]) -> str:
    """Content hash of (date, amount, normalized description).

    MD5 (128-bit) over ``YYYY-MM-DD|amount|normalized``; the amount is
    rendered with two decimals so 42, 42.0 and 42.00 agree.
    """
    key = f"{txn_date.isoformat()}|{Decimal(amount).quantize(CENTS)}|{normalize_description(description)}"
    return hashlib.md5(key.encode("utf-8"), usedforsecurity=False).hexdigest()
