"""Domain model entities for bankrec.

These are pure data classes representing business concepts, independent of
database schema. Persistent entities (Account, Transaction, Import, ...) are
produced by the database mappers; ephemeral ones (StagedRecord,
MatchCandidate, ...) only live for the duration of an analysis or a
confirmation.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class FileType(str, Enum):
    """Supported statement export formats."""

    CSV = "csv"
    EXCEL = "excel"
    QIF = "qif"
    OFX = "ofx"
    QFX = "qfx"


class ImportStatus(str, Enum):
    """Lifecycle states of an Import."""

    PENDING = "pending"
    ANALYZING = "analyzing"
    ANALYZED = "analyzed"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class MatchClassification(str, Enum):
    """How a staged record relates to the existing ledger."""

    DUPLICATE = "duplicate"
    EXACT = "exact"
    PROBABLE = "probable"
    NEW = "new"


class RowAction(str, Enum):
    """Action requested for one staged record during confirmation."""

    CREATE = "create"
    SKIP = "skip"
    MATCH = "match"


class AliasSource(str, Enum):
    """Origin of a payee alias."""

    MANUAL = "manual"
    IMPORT_LEARN = "import_learn"


@dataclass(frozen=True)
class Account:
    """Bank account domain entity."""

    id: int
    user_id: int
    name: str
    bank_name: str
    initial_balance: Decimal
    current_balance: Decimal
    created_at: datetime


@dataclass(frozen=True)
class Payee:
    """Payee domain entity."""

    id: int
    user_id: int
    name: str
    created_at: datetime


@dataclass(frozen=True)
class Category:
    """Category domain entity."""

    id: int
    user_id: int
    name: str
    created_at: datetime


@dataclass(frozen=True)
class Transaction:
    """Ledger entry domain entity."""

    id: int
    user_id: int
    account_id: int
    date: date
    amount: Decimal
    description: Optional[str]
    reference_number: Optional[str]
    category_id: Optional[int]
    payee_id: Optional[int]
    status: str
    is_reconciled: bool
    reconciled_at: Optional[datetime]
    value_date: Optional[date]
    purchase_date: Optional[date]
    import_id: Optional[int]
    import_hash: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class ImportErrorDetail:
    """One failure recorded on an Import.

    row_id is None for file-level errors.
    """

    row_id: Optional[str]
    error: str


@dataclass(frozen=True)
class Import:
    """Import domain entity (audit trail of one statement file)."""

    id: int
    user_id: int
    account_id: int
    filename: str
    file_type: str
    status: ImportStatus
    total_rows: int
    imported_count: int
    duplicate_count: int
    matched_count: int
    error_count: int
    error_details: list[ImportErrorDetail]
    config: dict[str, Any]
    created_at: datetime
    started_at: Optional[datetime]
    completed_at: Optional[datetime]


@dataclass(frozen=True)
class PayeeAlias:
    """Learned or manual mapping from a merchant pattern to a payee."""

    id: int
    user_id: int
    payee_id: int
    bank_description: str
    normalized_pattern: str
    source: AliasSource
    times_matched: int
    last_matched_at: Optional[datetime]
    created_at: datetime


@dataclass(frozen=True)
class RuleCondition:
    """Single condition of a categorization rule."""

    field: str
    operator: str
    value: Any
    case_sensitive: bool = False


@dataclass(frozen=True)
class Rule:
    """Categorization rule domain entity."""

    id: int
    user_id: int
    name: str
    priority: int
    is_active: bool
    conditions: list[RuleCondition]
    action_category_id: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class StagedRecord:
    """A parsed, not-yet-committed statement line."""

    source_row_index: int
    date: date
    amount: Decimal
    description: str
    fingerprint: str
    value_date: Optional[date] = None
    reference: Optional[str] = None

    @property
    def row_id(self) -> str:
        """Identifier used for this record in decision maps."""
        return str(self.source_row_index)


@dataclass(frozen=True)
class SkippedRow:
    """A source row excluded from the staged set, with the reason."""

    row_index: int
    reason: str


@dataclass(frozen=True)
class ParseResult:
    """Accepted staged records plus the rows that were dropped."""

    records: list[StagedRecord]
    skipped: list[SkippedRow] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


@dataclass(frozen=True)
class MatchCandidate:
    """Classification of one staged record against the ledger."""

    staged_record: StagedRecord
    classification: MatchClassification
    matched_transaction_id: Optional[int] = None
    score: Optional[int] = None
    suggested_payee_id: Optional[int] = None
    merchant_pattern: str = ""
    card_last4: Optional[str] = None
    purchase_date: Optional[date] = None


@dataclass(frozen=True)
class AnalysisSummary:
    """Counts over an analysis report."""

    total: int = 0
    new: int = 0
    duplicate: int = 0
    matched: int = 0


@dataclass(frozen=True)
class DetectedCard:
    """Card number suffix seen in a statement and how often."""

    last4: str
    count: int


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of analyzing a statement file."""

    import_id: int
    candidates: list[MatchCandidate]
    summary: AnalysisSummary
    skipped: list[SkippedRow]
    detected_cards: list[DetectedCard]


@dataclass(frozen=True)
class RowDecision:
    """Caller-chosen action for one staged record."""

    action: RowAction
    matched_transaction_id: Optional[int] = None
    payee_id: Optional[int] = None
    category_id: Optional[int] = None
    description: Optional[str] = None
    merchant_pattern: Optional[str] = None


@dataclass(frozen=True)
class ConfirmResult:
    """Counts written to an Import once its confirmation ran."""

    imported_count: int
    duplicate_count: int
    matched_count: int
    error_count: int
    error_details: list[ImportErrorDetail]
    aliases_learned: int = 0


@dataclass(frozen=True)
class PreviewResult:
    """First parsed rows of a file, without any Import being created."""

    records: list[StagedRecord]
    total: int
    skipped: list[SkippedRow]
