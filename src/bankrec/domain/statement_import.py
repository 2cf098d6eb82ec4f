"""Statement import orchestrator.

Owns the Import lifecycle::

    pending -> analyzing -> analyzed -> processing -> completed
                    \\                       \\
                     +-> failed              +-> failed (supervisory sweep)

``analyze`` parses a file and classifies every row without touching the
ledger; its result is stored on the Import as a snapshot. ``confirm`` then
applies the caller's per-row decisions through LedgerCommit.
"""

import logging
import time
from datetime import date, datetime, timedelta, UTC
from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from bankrec.config import ImportSettings
from bankrec.database.base import Database
from bankrec.domain.account import AccountService
from bankrec.domain.commit import LedgerCommit
from bankrec.domain.entities import (
    AnalysisResult,
    ConfirmResult,
    FileType,
    Import as ImportEntity,
    ImportErrorDetail,
    ImportStatus,
    MatchCandidate,
    MatchClassification,
    PreviewResult,
    RowAction,
    RowDecision,
    StagedRecord,
)
from bankrec.domain.errors import (
    ConfirmationTimeout,
    ConflictError,
    DomainError,
    FileError,
    NotFoundError,
    RowCommitError,
    ValidationError,
    import_not_confirmable,
    import_not_found,
    unsupported_file_type,
)
from bankrec.domain.matching import MatchingEngine, detect_cards, summarize
from bankrec.domain.parse_config import config_to_dict, parse_config
from bankrec.parsers import parse_statement

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_LIMIT = 10

# Accepted spellings of RowDecision fields in decision payloads
_DECISION_KEYS = {
    "action": "action",
    "matched_transaction_id": "matched_transaction_id",
    "matchedTransactionId": "matched_transaction_id",
    "payee_id": "payee_id",
    "payeeId": "payee_id",
    "category_id": "category_id",
    "categoryId": "category_id",
    "description": "description",
    "merchant_pattern": "merchant_pattern",
    "merchantPattern": "merchant_pattern",
}


def _now() -> datetime:
    return datetime.now(UTC)


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _from_iso(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def candidate_to_snapshot(candidate: MatchCandidate) -> dict[str, Any]:
    """JSON-ready form of an analyzed row, as stored on the Import."""
    record = candidate.staged_record
    return {
        "row_id": record.row_id,
        "source_row_index": record.source_row_index,
        "date": record.date.isoformat(),
        "amount": str(record.amount),
        "description": record.description,
        "fingerprint": record.fingerprint,
        "value_date": _iso(record.value_date),
        "reference": record.reference,
        "classification": candidate.classification.value,
        "matched_transaction_id": candidate.matched_transaction_id,
        "score": candidate.score,
        "suggested_payee_id": candidate.suggested_payee_id,
        "merchant_pattern": candidate.merchant_pattern,
        "card_last4": candidate.card_last4,
        "purchase_date": _iso(candidate.purchase_date),
    }


def candidate_from_snapshot(data: Mapping[str, Any]) -> MatchCandidate:
    """Rebuild a MatchCandidate from its stored form."""
    record = StagedRecord(
        source_row_index=int(data["source_row_index"]),
        date=date.fromisoformat(data["date"]),
        amount=Decimal(data["amount"]),
        description=data["description"],
        fingerprint=data["fingerprint"],
        value_date=_from_iso(data.get("value_date")),
        reference=data.get("reference"),
    )
    return MatchCandidate(
        staged_record=record,
        classification=MatchClassification(data["classification"]),
        matched_transaction_id=data.get("matched_transaction_id"),
        score=data.get("score"),
        suggested_payee_id=data.get("suggested_payee_id"),
        merchant_pattern=data.get("merchant_pattern") or "",
        card_last4=data.get("card_last4"),
        purchase_date=_from_iso(data.get("purchase_date")),
    )


def default_decisions(candidates: list[MatchCandidate]) -> dict[str, dict[str, Any]]:
    """Decisions accepting the analysis as is.

    new -> create, exact/probable -> match the proposed transaction,
    duplicate -> skip.
    """
    decisions: dict[str, dict[str, Any]] = {}
    for candidate in candidates:
        classification = candidate.classification
        if classification == MatchClassification.NEW:
            decisions[candidate.staged_record.row_id] = {"action": RowAction.CREATE.value}
        elif classification == MatchClassification.DUPLICATE:
            decisions[candidate.staged_record.row_id] = {"action": RowAction.SKIP.value}
        else:
            decisions[candidate.staged_record.row_id] = {
                "action": RowAction.MATCH.value,
                "matched_transaction_id": candidate.matched_transaction_id,
            }
    return decisions


def _optional_id(row_id: str, name: str, value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"Row {row_id}: '{name}' must be an integer ID")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Row {row_id}: '{name}' must be an integer ID")


def parse_decision(row_id: str, raw: Any, candidate: MatchCandidate) -> RowDecision:
    """Validate one row's decision.

    ``raw`` is either an action name or a mapping with an ``action`` key plus
    optional overrides. A ``match`` without an explicit transaction falls
    back to the transaction proposed by the analysis.

    Raises:
        ValidationError: On a missing or unknown action, unknown keys, bad IDs,
            or a match with no transaction to match
    """
    if isinstance(raw, str):
        raw = {"action": raw}
    if not isinstance(raw, Mapping):
        raise ValidationError(f"Row {row_id}: decision must be an action name or a mapping")

    values: dict[str, Any] = {}
    for key, value in raw.items():
        name = _DECISION_KEYS.get(str(key))
        if name is None:
            raise ValidationError(f"Row {row_id}: unknown decision field '{key}'")
        values[name] = value

    action = values.get("action")
    if action is None:
        raise ValidationError(f"Row {row_id}: an action is required")
    try:
        action = RowAction(action)
    except ValueError:
        raise ValidationError(
            f"Row {row_id}: invalid action '{action}'. Must be one of: "
            + ", ".join(a.value for a in RowAction)
        )

    matched_id = _optional_id(row_id, "matched_transaction_id", values.get("matched_transaction_id"))
    if action == RowAction.MATCH:
        if matched_id is None:
            matched_id = candidate.matched_transaction_id
        if matched_id is None:
            raise ValidationError(f"Row {row_id}: 'match' needs a transaction to match")

    return RowDecision(
        action=action,
        matched_transaction_id=matched_id,
        payee_id=_optional_id(row_id, "payee_id", values.get("payee_id")),
        category_id=_optional_id(row_id, "category_id", values.get("category_id")),
        description=values.get("description") or None,
        merchant_pattern=values.get("merchant_pattern") or None,
    )


def parse_decisions(
    raw: Mapping[Any, Any], candidates: Mapping[str, MatchCandidate]
) -> dict[str, RowDecision]:
    """Validate a whole decision map against the analyzed rows.

    Row IDs may be given as strings or integers.

    Raises:
        ValidationError: On unknown row IDs or any invalid decision
    """
    if not isinstance(raw, Mapping):
        raise ValidationError("Decisions must be a mapping of row ID to action")

    decisions: dict[str, RowDecision] = {}
    for key, value in raw.items():
        row_id = str(key).strip()
        candidate = candidates.get(row_id)
        if candidate is None:
            raise ValidationError(f"Unknown row ID '{key}'")
        if row_id in decisions:
            raise ValidationError(f"Row {row_id} has more than one decision")
        decisions[row_id] = parse_decision(row_id, value, candidate)
    return decisions


class StatementImportService:
    """Service driving statement imports from analysis to confirmation."""

    def __init__(self, db: Database, settings: Optional[ImportSettings] = None):
        """Initialize statement import service.

        Args:
            db: Database instance
            settings: Matching settings (defaults when omitted)
        """
        self.db = db
        self.settings = settings or ImportSettings()
        self.accounts = AccountService(db)
        self.matching = MatchingEngine(db, self.settings)
        self.commit = LedgerCommit(db)

    # Queries
    def get_import(self, import_id: int, user_id: int) -> ImportEntity:
        """Get one of the user's imports.

        Raises:
            NotFoundError: If the import does not exist or belongs to someone else
        """
        record = self.db.get_import(import_id)
        if record is None or record.user_id != user_id:
            raise NotFoundError(import_not_found(import_id))
        return record

    def list_imports(
        self,
        user_id: int,
        account_id: Optional[int] = None,
        status: Optional[Union[ImportStatus, str]] = None,
        limit: Optional[int] = None,
    ) -> list[ImportEntity]:
        """List the user's imports, newest first.

        Raises:
            ValidationError: If ``status`` is not a known status
        """
        if status is not None:
            try:
                status = ImportStatus(status)
            except ValueError:
                raise ValidationError(f"Unknown import status '{status}'")
        return self.db.list_imports(user_id, account_id=account_id, status=status, limit=limit)

    def get_candidates(self, import_id: int, user_id: int) -> list[MatchCandidate]:
        """Analyzed rows stored on an import, in file order."""
        self.get_import(import_id, user_id)
        return [candidate_from_snapshot(item) for item in self.db.get_import_snapshot(import_id)]

    # Analysis
    def preview(
        self,
        file_bytes: bytes,
        file_type: Union[FileType, str],
        config: Optional[Mapping[str, Any]] = None,
        limit: int = DEFAULT_PREVIEW_LIMIT,
    ) -> PreviewResult:
        """Parse a file and return its first rows, without creating an Import.

        Raises:
            ValidationError: Invalid configuration or limit
            FileError: Unsupported or unreadable file
        """
        if limit <= 0:
            raise ValidationError("Preview limit must be positive")
        result = parse_statement(file_bytes, file_type, config)
        return PreviewResult(
            records=result.records[:limit],
            total=len(result.records),
            skipped=result.skipped,
        )

    def analyze(
        self,
        user_id: int,
        account_id: int,
        file_bytes: bytes,
        file_type: Union[FileType, str],
        config: Optional[Mapping[str, Any]] = None,
        filename: Optional[str] = None,
    ) -> AnalysisResult:
        """Parse a statement and classify every row against the ledger.

        Args:
            user_id: Importing user
            account_id: Destination account
            file_bytes: File contents
            file_type: csv, excel, qif, ofx or qfx
            config: Parse options for the format
            filename: Original file name, kept for the audit trail

        Returns:
            AnalysisResult with the import ID, candidates and summary

        Raises:
            NotFoundError: If the account is not the user's
            ValidationError: If the configuration is invalid (no Import is created)
            FileError: If the file cannot be parsed; the Import is left ``failed``
        """
        self.accounts.require_account(user_id, account_id)

        try:
            file_type = FileType(file_type)
        except ValueError:
            file_type = str(file_type)

        if isinstance(file_type, FileType):
            parse_options = parse_config(file_type, config)
            stored_config = config_to_dict(parse_options)
        else:
            parse_options = None
            stored_config = dict(config or {})

        type_name = file_type.value if isinstance(file_type, FileType) else file_type
        import_id = self.db.create_import(
            user_id=user_id,
            account_id=account_id,
            filename=filename or f"statement.{type_name}",
            file_type=type_name,
            config=stored_config,
        )
        logger.info("Import %s created for account %s (%s)", import_id, account_id, type_name)

        if parse_options is None:
            message = unsupported_file_type(type_name)
            self._fail(import_id, message)
            raise FileError(message, import_id=import_id)

        if not self.db.transition_import_status(import_id, ImportStatus.PENDING, ImportStatus.ANALYZING):
            raise ConflictError(f"Import {import_id} is already being analyzed")

        try:
            parsed = parse_statement(file_bytes, file_type, parse_options)
            for skipped in parsed.skipped:
                logger.debug("Import %s: row %s skipped: %s", import_id, skipped.row_index, skipped.reason)

            candidates = self.matching.match_records(user_id, account_id, parsed.records)
            summary = summarize(candidates)
            self.db.transition_import_status(
                import_id,
                ImportStatus.ANALYZING,
                ImportStatus.ANALYZED,
                total_rows=summary.total,
                matched_count=summary.matched + summary.duplicate,
                staged_data=[candidate_to_snapshot(c) for c in candidates],
            )
        except Exception as e:
            logger.exception("Analysis of import %s failed", import_id)
            self._fail(import_id, str(e))
            if isinstance(e, FileError):
                e.import_id = import_id
                raise
            if isinstance(e, DomainError):
                raise
            raise FileError(str(e), import_id=import_id) from e

        logger.info(
            "Import %s analyzed: %d rows (%d new, %d duplicate, %d matched, %d skipped)",
            import_id,
            summary.total,
            summary.new,
            summary.duplicate,
            summary.matched,
            parsed.skipped_count,
        )
        return AnalysisResult(
            import_id=import_id,
            candidates=candidates,
            summary=summary,
            skipped=parsed.skipped,
            detected_cards=detect_cards(candidates),
        )

    # Confirmation
    def confirm(
        self,
        import_id: int,
        user_id: int,
        decisions: Mapping[Any, Any],
        auto_categorize: bool = True,
        timeout: Optional[float] = None,
    ) -> ConfirmResult:
        """Apply per-row decisions to the ledger.

        Row failures do not stop the batch: they are counted and listed in
        ``error_details`` and the Import still ends ``completed``.

        Args:
            import_id: Analyzed import
            user_id: Owner of the import
            decisions: Row ID -> action name or mapping with overrides
            auto_categorize: Categorize created rows through rules when no
                category is given
            timeout: Optional wall-clock limit in seconds for the whole call

        Returns:
            ConfirmResult with the counts written to the Import

        Raises:
            NotFoundError: If the import is not the user's
            ConflictError: If the import is not ``analyzed`` or another
                confirmation got there first
            ValidationError: If the decision map is malformed (nothing is applied)
            ConfirmationTimeout: If ``timeout`` expired; processed rows stay
                committed and the Import stays ``processing``
        """
        record = self.get_import(import_id, user_id)
        if record.status != ImportStatus.ANALYZED:
            raise ConflictError(import_not_confirmable(import_id, record.status.value))
        if timeout is not None and timeout <= 0:
            raise ValidationError("Timeout must be positive")

        candidates = {c.staged_record.row_id: c for c in self.get_candidates(import_id, user_id)}
        parsed = parse_decisions(decisions, candidates)

        if not self.db.transition_import_status(
            import_id, ImportStatus.ANALYZED, ImportStatus.PROCESSING, started_at=_now()
        ):
            current = self.db.get_import(import_id)
            status = current.status.value if current else "unknown"
            raise ConflictError(import_not_confirmable(import_id, status))

        deadline = time.monotonic() + timeout if timeout is not None else None
        pending = [(row_id, parsed[row_id]) for row_id in candidates if row_id in parsed]
        imported = matched = skipped = aliases_learned = 0
        errors: list[ImportErrorDetail] = []

        for position, (row_id, decision) in enumerate(pending):
            if deadline is not None and time.monotonic() >= deadline:
                self.db.update_import(
                    import_id,
                    imported_count=imported,
                    duplicate_count=skipped,
                    matched_count=matched,
                    error_count=len(errors),
                    error_details=_error_json(errors),
                )
                logger.warning(
                    "Confirmation of import %s timed out with %d rows left", import_id, len(pending) - position
                )
                raise ConfirmationTimeout(import_id, position, len(pending) - position)

            try:
                outcome = self.commit.apply(
                    user_id,
                    record.account_id,
                    import_id,
                    candidates[row_id],
                    decision,
                    auto_categorize=auto_categorize,
                )
            except RowCommitError as e:
                logger.warning("Import %s row %s failed: %s", import_id, e.row_id, e)
                errors.append(ImportErrorDetail(row_id=e.row_id, error=str(e)))
                continue

            if outcome.action == RowAction.CREATE:
                imported += 1
            elif outcome.action == RowAction.MATCH:
                matched += 1
            else:
                skipped += 1
            if outcome.alias_learned:
                aliases_learned += 1

        result = ConfirmResult(
            imported_count=imported,
            duplicate_count=skipped,
            matched_count=matched,
            error_count=len(errors),
            error_details=errors,
            aliases_learned=aliases_learned,
        )
        completed = self.db.transition_import_status(
            import_id,
            ImportStatus.PROCESSING,
            ImportStatus.COMPLETED,
            imported_count=imported,
            duplicate_count=skipped,
            matched_count=matched,
            error_count=len(errors),
            error_details=_error_json(errors),
            completed_at=_now(),
        )
        if not completed:
            logger.warning("Import %s left 'processing' before its confirmation finished", import_id)
        logger.info(
            "Import %s confirmed: %d created, %d matched, %d skipped, %d errors",
            import_id,
            imported,
            matched,
            skipped,
            len(errors),
        )
        return result

    # Supervision
    def fail_stale_imports(self, older_than: timedelta) -> list[int]:
        """Fail imports stuck in ``processing`` for longer than ``older_than``.

        Returns:
            IDs of the imports moved to ``failed``
        """
        cutoff = _now() - older_than
        failed = []
        for record in self.db.find_stale_imports(ImportStatus.PROCESSING, cutoff):
            details = record.error_details + [
                ImportErrorDetail(
                    row_id=None,
                    error=f"Confirmation did not finish (processing since {record.started_at})",
                )
            ]
            if self.db.transition_import_status(
                record.id,
                ImportStatus.PROCESSING,
                ImportStatus.FAILED,
                error_count=record.error_count + 1,
                error_details=_error_json(details),
                completed_at=_now(),
            ):
                logger.warning("Import %s failed by supervisory sweep", record.id)
                failed.append(record.id)
        return failed

    def _fail(self, import_id: int, message: str) -> None:
        self.db.update_import(
            import_id,
            status=ImportStatus.FAILED,
            error_count=1,
            error_details=[{"row_id": None, "error": message}],
            completed_at=_now(),
        )
        logger.info("Import %s failed: %s", import_id, message)


def _error_json(details: list[ImportErrorDetail]) -> list[dict[str, Any]]:
    return [{"row_id": detail.row_id, "error": detail.error} for detail in details]
