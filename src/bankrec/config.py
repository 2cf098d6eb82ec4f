"""Runtime settings: the ledger location and the matching tolerances.

Defaults can be overridden per process through ``BANKREC_*`` environment
variables, e.g. ``BANKREC_DATE_TOLERANCE_DAYS=3`` or ``BANKREC_DB_PATH``.
"""

import dataclasses
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Mapping, Optional

from bankrec.domain.errors import ValidationError

ENV_PREFIX = "BANKREC_"
DB_PATH_VAR = ENV_PREFIX + "DB_PATH"
DEFAULT_DATA_DIR = ".bankrec"
DEFAULT_DB_NAME = "bankrec.db"


def resolve_database_path(
    database_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> str:
    """Pick the SQLite ledger file.

    An explicit path wins, then ``BANKREC_DB_PATH``, then
    ``~/.bankrec/bankrec.db``; the default directory is created on demand.
    """
    if database_path:
        return database_path
    environ = os.environ if environ is None else environ
    if environ.get(DB_PATH_VAR, "").strip():
        return environ[DB_PATH_VAR].strip()
    data_dir = (home or Path.home()) / DEFAULT_DATA_DIR
    data_dir.mkdir(parents=True, exist_ok=True)
    return str(data_dir / DEFAULT_DB_NAME)


@dataclass(frozen=True)
class ImportSettings:
    """Tolerances and limits used while analyzing a statement."""

    date_tolerance_days: int = 2
    amount_tolerance: Decimal = Decimal("0.01")
    secondary_date_window_days: int = 5
    ledger_window_padding_days: int = 30
    ledger_window_limit: int = 5000
    exact_threshold: int = 80
    probable_threshold: int = 50

    def __post_init__(self):
        if not 0 <= self.date_tolerance_days <= 10:
            raise ValidationError("date_tolerance_days must be between 0 and 10")
        if not Decimal("0") <= Decimal(self.amount_tolerance) <= Decimal("0.1"):
            raise ValidationError("amount_tolerance must be between 0 and 0.1")
        if self.secondary_date_window_days < self.date_tolerance_days:
            raise ValidationError("secondary_date_window_days must be >= date_tolerance_days")
        if self.ledger_window_padding_days < 0 or self.ledger_window_limit <= 0:
            raise ValidationError("Ledger window padding must be >= 0 and limit > 0")
        if not 0 < self.probable_threshold <= self.exact_threshold <= 100:
            raise ValidationError("Thresholds must satisfy 0 < probable <= exact <= 100")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ImportSettings":
        """Build settings from defaults overridden by BANKREC_* variables.

        Raises:
            ValidationError: If a variable holds an invalid value
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for field in dataclasses.fields(cls):
            raw = environ.get(ENV_PREFIX + field.name.upper())
            if raw is None or raw.strip() == "":
                continue
            try:
                if field.name == "amount_tolerance":
                    overrides[field.name] = Decimal(raw.strip())
                else:
                    overrides[field.name] = int(raw.strip())
            except (ValueError, InvalidOperation):
                raise ValidationError(f"Invalid value for {ENV_PREFIX}{field.name.upper()}: '{raw}'")
        return cls(**overrides)
