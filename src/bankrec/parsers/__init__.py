"""Statement file parsers, one per supported format."""

from typing import Any, Mapping, Optional, Union

from bankrec.domain.entities import FileType, ParseResult
from bankrec.domain.errors import FileError, unsupported_file_type
from bankrec.domain.parse_config import (
    DelimitedConfig,
    OfxConfig,
    ParseConfig,
    QifConfig,
    SpreadsheetConfig,
    parse_config,
)
from bankrec.parsers.base import BaseParser
from bankrec.parsers.delimited import DelimitedParser
from bankrec.parsers.ofx import OfxParser
from bankrec.parsers.qif import QifParser
from bankrec.parsers.spreadsheet import SpreadsheetParser

__all__ = [
    "BaseParser",
    "DelimitedParser",
    "SpreadsheetParser",
    "QifParser",
    "OfxParser",
    "get_parser",
    "parse_statement",
]

PARSERS = {
    DelimitedConfig: DelimitedParser,
    SpreadsheetConfig: SpreadsheetParser,
    QifConfig: QifParser,
    OfxConfig: OfxParser,
}


def get_parser(config: ParseConfig) -> BaseParser:
    """Return the parser for a validated configuration."""
    return PARSERS[type(config)](config)


def parse_statement(
    raw: bytes,
    file_type: Union[FileType, str],
    config: Optional[Union[ParseConfig, Mapping[str, Any]]] = None,
) -> ParseResult:
    """Parse statement bytes of any supported format.

    Args:
        raw: File contents
        file_type: csv, excel, qif, ofx or qfx
        config: Typed configuration, or a mapping to validate

    Returns:
        ParseResult with accepted records and skipped rows

    Raises:
        FileError: Unsupported format or unreadable file
        ValidationError: Invalid configuration mapping
    """
    try:
        FileType(file_type)
    except ValueError:
        raise FileError(unsupported_file_type(str(file_type)))

    if config is None or isinstance(config, Mapping):
        config = parse_config(file_type, config)
    return get_parser(config).parse(raw)
