"""Delimited-text (CSV) statement parser."""

from __future__ import annotations

import csv
import io
from typing import Any, Sequence

from bankrec.domain.errors import FileError
from bankrec.domain.parse_config import DelimitedConfig

from .base import TabularParser, decode


class DelimitedParser(TabularParser):
    """Parse delimited text exports.

    Column positions, delimiter, encoding and decimal separator all come from
    the DelimitedConfig; nothing is sniffed.
    """

    config: DelimitedConfig

    def read_rows(self, raw: bytes) -> list[Sequence[Any]]:
        text = decode(raw, self.config.encoding)
        try:
            return list(csv.reader(io.StringIO(text, newline=""), delimiter=self.config.delimiter))
        except csv.Error as e:
            raise FileError(f"Malformed delimited file: {e}")
