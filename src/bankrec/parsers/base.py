"""Base parser: shared interface and the row-to-record plumbing."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Sequence

from bankrec.domain.entities import ParseResult, SkippedRow, StagedRecord
from bankrec.domain.errors import FileError
from bankrec.domain.parse_config import ColumnMap, DelimitedConfig, SpreadsheetConfig
from bankrec.utils.amount_parser import parse_amount
from bankrec.utils.date_parser import parse_date
from bankrec.utils.normalize import fingerprint

logger = logging.getLogger(__name__)


def build_record(
    row_index: int,
    txn_date: date,
    amount: Decimal,
    description: str,
    value_date: Optional[date] = None,
    reference: Optional[str] = None,
) -> StagedRecord:
    """Create a staged record and derive its fingerprint."""
    return StagedRecord(
        source_row_index=row_index,
        date=txn_date,
        amount=amount,
        description=description,
        fingerprint=fingerprint(txn_date, amount, description),
        value_date=value_date,
        reference=reference or None,
    )


def decode(raw: bytes, encoding: str, errors: str = "strict") -> str:
    """Decode file bytes, dropping a UTF-8 byte order mark.

    Raises:
        FileError: If the bytes are not valid in the given encoding
    """
    codec = "utf-8-sig" if encoding.lower() == "utf-8" else encoding
    try:
        return raw.decode(codec, errors=errors)
    except UnicodeDecodeError as e:
        raise FileError(f"File is not valid {encoding} text: {e.reason} at byte {e.start}")


class BaseParser(ABC):
    """Abstract base for all statement parsers.

    A parser turns raw file bytes into staged records. Rows without a usable
    date or amount are not errors: they end up in ``ParseResult.skipped``.
    File-level problems raise ``FileError``.
    """

    @abstractmethod
    def parse(self, raw: bytes) -> ParseResult:
        """Parse file bytes into staged records."""


class TabularParser(BaseParser):
    """Shared logic for column-addressed formats (delimited text, spreadsheets)."""

    def __init__(self, config: DelimitedConfig | SpreadsheetConfig):
        self.config = config

    @abstractmethod
    def read_rows(self, raw: bytes) -> list[Sequence[Any]]:
        """Return every row of the file as a list of cell values."""

    def parse(self, raw: bytes) -> ParseResult:
        # skip_rows counts physical rows, blank ones included
        rows = [row for row in self.read_rows(raw)[self.config.skip_rows :] if not _is_blank(row)]
        header_rows = 1 if self.config.has_header else 0
        first_data = self.config.skip_rows + header_rows

        records: list[StagedRecord] = []
        skipped: list[SkippedRow] = []
        for offset, row in enumerate(rows[header_rows:]):
            row_index = first_data + offset + 1
            try:
                records.append(self._parse_row(row_index, row))
            except ValueError as e:
                logger.debug("Skipping row %d: %s", row_index, e)
                skipped.append(SkippedRow(row_index=row_index, reason=str(e)))

        return ParseResult(records=records, skipped=skipped)

    def _parse_row(self, row_index: int, row: Sequence[Any]) -> StagedRecord:
        columns = self.config.columns

        date_cell = _cell(row, columns.date)
        if _is_empty(date_cell):
            raise ValueError("Missing date")
        txn_date = parse_date(date_cell, self.config.date_format)

        amount = self._parse_amount(row, columns)
        description = _text(_cell(row, columns.description)) or ""

        value_date = None
        if columns.value_date is not None and not _is_empty(_cell(row, columns.value_date)):
            try:
                value_date = parse_date(_cell(row, columns.value_date), self.config.date_format)
            except ValueError:
                value_date = None

        reference = None
        if columns.reference is not None:
            reference = _text(_cell(row, columns.reference))

        return build_record(row_index, txn_date, amount, description, value_date, reference)

    def _parse_amount(self, row: Sequence[Any], columns: ColumnMap) -> Decimal:
        separator = self.config.decimal_separator
        if columns.amount is not None:
            cell = _cell(row, columns.amount)
            if _is_empty(cell):
                raise ValueError("Missing amount")
            return parse_amount(cell, separator, self.config.invert_amounts)

        debit = _cell(row, columns.debit) if columns.debit is not None else None
        credit = _cell(row, columns.credit) if columns.credit is not None else None
        if not _is_empty(debit):
            amount = -abs(parse_amount(debit, separator))
        elif not _is_empty(credit):
            amount = abs(parse_amount(credit, separator))
        else:
            raise ValueError("Missing both debit and credit values")
        return -amount if self.config.invert_amounts else amount


def _cell(row: Sequence[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _is_blank(row: Sequence[Any]) -> bool:
    return all(_is_empty(cell) for cell in row)


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
