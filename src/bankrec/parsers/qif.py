"""QIF statement parser.

QIF is line oriented: each line starts with a one-character field code and
records end with a line holding only ``^``. Only the fields needed for a
staged record are read:

    D  date            T/U  amount
    P  payee/description   M  memo
    N  check or reference number
"""

from __future__ import annotations

import logging
from typing import Optional

from bankrec.domain.entities import ParseResult, SkippedRow, StagedRecord
from bankrec.domain.parse_config import QifConfig
from bankrec.utils.amount_parser import parse_amount
from bankrec.utils.date_parser import parse_qif_date

from .base import BaseParser, build_record, decode

logger = logging.getLogger(__name__)

QIF_HEADER_PREFIX = "!"
QIF_RECORD_END = "^"


class QifParser(BaseParser):
    """Parse QIF bank exports (``!Type:Bank``, ``!Type:CCard`` ...)."""

    def __init__(self, config: QifConfig):
        self.config = config

    def parse(self, raw: bytes) -> ParseResult:
        text = decode(raw, self.config.encoding)

        records: list[StagedRecord] = []
        skipped: list[SkippedRow] = []
        fields: dict[str, str] = {}
        record_index = 0

        def finalize() -> None:
            nonlocal record_index
            record_index += 1
            try:
                records.append(self._build(record_index, fields))
            except ValueError as e:
                logger.debug("Skipping QIF record %d: %s", record_index, e)
                skipped.append(SkippedRow(row_index=record_index, reason=str(e)))

        for raw_line in text.splitlines():
            line = raw_line.strip()
            if not line:
                continue
            if line.startswith(QIF_HEADER_PREFIX):
                if fields:
                    finalize()
                    fields = {}
                continue
            if line == QIF_RECORD_END:
                if fields:
                    finalize()
                fields = {}
                continue

            code, value = line[0], line[1:].strip()
            if code == "M" and "M" in fields:
                fields["M"] = f"{fields['M']} {value}".strip()
            else:
                fields.setdefault(code, value)

        # Trailing record without a terminator
        if fields:
            finalize()

        return ParseResult(records=records, skipped=skipped)

    def _build(self, record_index: int, fields: dict[str, str]) -> StagedRecord:
        date_value = fields.get("D")
        if not date_value:
            raise ValueError("Missing date")
        txn_date = parse_qif_date(date_value, self.config.date_format)

        amount_value: Optional[str] = fields.get("T") or fields.get("U")
        if not amount_value:
            raise ValueError("Missing amount")
        amount = parse_amount(amount_value, ".", self.config.invert_amounts)

        description = fields.get("P") or fields.get("M") or ""
        return build_record(record_index, txn_date, amount, description, reference=fields.get("N"))
