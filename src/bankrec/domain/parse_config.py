"""Typed per-format parse configuration.

Callers hand over plain mappings (decoded from JSON/YAML request bodies or
config files, camelCase or snake_case keys). They are validated once, here,
into frozen dataclasses that the parsers consume.
"""

import dataclasses
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from openpyxl.utils import column_index_from_string

from bankrec.domain.entities import FileType
from bankrec.domain.errors import ValidationError

DELIMITERS = {",", ";", "\t", "|"}
ENCODINGS = {"utf-8", "iso-8859-1", "windows-1252"}
DECIMAL_SEPARATORS = {".", ","}


@dataclass(frozen=True)
class ColumnMap:
    """Zero-based column positions of the semantic fields.

    Either ``amount`` or at least one of ``debit``/``credit`` is set.
    """

    date: int
    description: int
    amount: Optional[int] = None
    debit: Optional[int] = None
    credit: Optional[int] = None
    value_date: Optional[int] = None
    reference: Optional[int] = None


@dataclass(frozen=True)
class DelimitedConfig:
    columns: ColumnMap
    delimiter: str = ";"
    encoding: str = "utf-8"
    has_header: bool = True
    date_format: str = "dd/MM/yyyy"
    decimal_separator: str = ","
    skip_rows: int = 0
    invert_amounts: bool = False


@dataclass(frozen=True)
class SpreadsheetConfig:
    columns: ColumnMap
    sheet_index: int = 0
    has_header: bool = True
    date_format: str = "dd/MM/yyyy"
    decimal_separator: str = "."
    skip_rows: int = 0
    invert_amounts: bool = False


@dataclass(frozen=True)
class QifConfig:
    encoding: str = "utf-8"
    date_format: Optional[str] = None
    invert_amounts: bool = False


@dataclass(frozen=True)
class OfxConfig:
    encoding: str = "utf-8"
    invert_amounts: bool = False


ParseConfig = Union[DelimitedConfig, SpreadsheetConfig, QifConfig, OfxConfig]

_CONFIG_CLASSES = {
    FileType.CSV: DelimitedConfig,
    FileType.EXCEL: SpreadsheetConfig,
    FileType.QIF: QifConfig,
    FileType.OFX: OfxConfig,
    FileType.QFX: OfxConfig,
}


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _column_index(name: str, value: Any) -> int:
    """Resolve a column given as zero-based index or spreadsheet letter."""
    if isinstance(value, bool):
        raise ValidationError(f"Column '{name}' must be an index or a column letter")
    if isinstance(value, int):
        if value < 0:
            raise ValidationError(f"Column '{name}' must be >= 0")
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return int(text)
        try:
            return column_index_from_string(text.upper()) - 1
        except ValueError:
            raise ValidationError(f"Column '{name}' has invalid letter '{value}'")
    raise ValidationError(f"Column '{name}' must be an index or a column letter")


def parse_column_map(raw: Any) -> ColumnMap:
    """Validate a column mapping.

    Raises:
        ValidationError: If required columns are missing or malformed
    """
    if not isinstance(raw, Mapping):
        raise ValidationError("A 'columns' mapping is required for this file type")

    fields = {f.name for f in dataclasses.fields(ColumnMap)}
    values: dict[str, int] = {}
    for key, value in raw.items():
        name = _snake_case(str(key))
        if name not in fields:
            raise ValidationError(f"Unknown column field '{key}'")
        if value is None:
            continue
        values[name] = _column_index(name, value)

    missing = [name for name in ("date", "description") if name not in values]
    if missing:
        raise ValidationError(f"Column mapping is missing required fields: {', '.join(missing)}")
    if "amount" not in values and "debit" not in values and "credit" not in values:
        raise ValidationError("Column mapping needs 'amount' or a 'debit'/'credit' pair")
    return ColumnMap(**values)


def _check_option(name: str, value: Any) -> Any:
    if name in ("has_header", "invert_amounts"):
        if not isinstance(value, bool):
            raise ValidationError(f"Option '{name}' must be true or false")
    elif name in ("skip_rows", "sheet_index"):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(f"Option '{name}' must be a non-negative integer")
    elif name == "delimiter":
        if value not in DELIMITERS:
            raise ValidationError(f"Unsupported delimiter {value!r}")
    elif name == "encoding":
        if str(value).lower() not in ENCODINGS:
            raise ValidationError(
                f"Unsupported encoding '{value}'. Must be one of: {', '.join(sorted(ENCODINGS))}"
            )
        value = str(value).lower()
    elif name == "decimal_separator":
        if value not in DECIMAL_SEPARATORS:
            raise ValidationError(f"Unsupported decimal separator {value!r}")
    elif name == "date_format":
        if value is not None and (not isinstance(value, str) or not value.strip()):
            raise ValidationError("Option 'date_format' must be a non-empty string")
    return value


def parse_config(file_type: Union[FileType, str], raw: Optional[Mapping[str, Any]] = None) -> ParseConfig:
    """Build the typed configuration for a file type.

    Args:
        file_type: Statement format
        raw: Mapping of options (camelCase or snake_case keys)

    Returns:
        Frozen configuration dataclass for that format

    Raises:
        ValidationError: On unknown file type, unknown keys or invalid values
    """
    try:
        file_type = FileType(file_type)
    except ValueError:
        raise ValidationError(f"Unsupported file type '{file_type}'")

    config_cls = _CONFIG_CLASSES[file_type]
    allowed = {f.name for f in dataclasses.fields(config_cls)}
    options: dict[str, Any] = {}
    for key, value in (raw or {}).items():
        name = _snake_case(str(key))
        if name not in allowed:
            raise ValidationError(f"Unknown option '{key}' for {file_type.value} files")
        if name == "columns":
            options[name] = parse_column_map(value)
        else:
            options[name] = _check_option(name, value)

    if "columns" in allowed and "columns" not in options:
        raise ValidationError("A 'columns' mapping is required for this file type")
    return config_cls(**options)


def config_to_dict(config: ParseConfig) -> dict[str, Any]:
    """Plain-dict view of a configuration, as stored on the Import."""
    return dataclasses.asdict(config)
