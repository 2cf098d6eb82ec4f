"""Spreadsheet (xlsx) statement parser."""

from __future__ import annotations

import io
import zipfile
from typing import Any, Sequence
from xml.etree.ElementTree import ParseError

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from bankrec.domain.errors import FileError
from bankrec.domain.parse_config import SpreadsheetConfig

from .base import TabularParser


class SpreadsheetParser(TabularParser):
    """Parse the configured worksheet of an Excel workbook.

    Date cells typed as dates by Excel are taken as-is; text cells go
    through the configured date format.
    """

    config: SpreadsheetConfig

    def read_rows(self, raw: bytes) -> list[Sequence[Any]]:
        try:
            workbook = load_workbook(io.BytesIO(raw), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, ParseError, KeyError, OSError) as e:
            raise FileError(f"Unreadable spreadsheet: {e}") from e

        try:
            sheet_names = workbook.sheetnames
            if self.config.sheet_index >= len(sheet_names):
                raise FileError(
                    f"Sheet index {self.config.sheet_index} out of range "
                    f"(workbook has {len(sheet_names)} sheet{'s' if len(sheet_names) != 1 else ''})"
                )
            sheet = workbook[sheet_names[self.config.sheet_index]]
            return [list(row) for row in sheet.iter_rows(values_only=True)]
        finally:
            workbook.close()
