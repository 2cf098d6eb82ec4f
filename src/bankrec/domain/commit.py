"""Ledger commit: materialize one confirmed decision.

Each decision runs inside its own unit of work, so an inserted transaction,
its account balance and the learned alias are written together or not at
all. A failure surfaces as RowCommitError for the caller to record.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from bankrec.database.base import Database
from bankrec.domain.account import AccountService
from bankrec.domain.entities import MatchCandidate, RowAction, RowDecision
from bankrec.domain.errors import RowCommitError
from bankrec.domain.ledger import LedgerService
from bankrec.domain.payee_alias import PayeeAliasService
from bankrec.domain.rules import RuleService, transaction_fields
from bankrec.utils.normalize import normalize_description

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitOutcome:
    """What applying one decision did."""

    action: RowAction
    transaction_id: Optional[int] = None
    alias_learned: bool = False


class LedgerCommit:
    """Applies row decisions to the ledger."""

    def __init__(self, db: Database):
        """Initialize ledger commit.

        Args:
            db: Database instance
        """
        self.db = db
        self.accounts = AccountService(db)
        self.ledger = LedgerService(db)
        self.rules = RuleService(db)
        self.aliases = PayeeAliasService(db)

    def apply(
        self,
        user_id: int,
        account_id: int,
        import_id: int,
        candidate: MatchCandidate,
        decision: RowDecision,
        auto_categorize: bool = True,
    ) -> CommitOutcome:
        """Apply one decision.

        Args:
            user_id: Importing user
            account_id: Destination account
            import_id: Import the row belongs to
            candidate: Analysis of the staged row
            decision: Action chosen by the caller
            auto_categorize: Resolve a category through rules when none is given

        Returns:
            CommitOutcome describing the change

        Raises:
            RowCommitError: If the decision could not be applied; nothing of
                it is persisted
        """
        row_id = candidate.staged_record.row_id
        if decision.action == RowAction.SKIP:
            return CommitOutcome(action=RowAction.SKIP)

        try:
            with self.db.unit_of_work():
                if decision.action == RowAction.MATCH:
                    return self._match(user_id, account_id, decision)
                return self._create(user_id, account_id, import_id, candidate, decision, auto_categorize)
        except RowCommitError:
            raise
        except Exception as e:
            raise RowCommitError(row_id, str(e)) from e

    def _match(self, user_id: int, account_id: int, decision: RowDecision) -> CommitOutcome:
        self.ledger.mark_reconciled(user_id, decision.matched_transaction_id, account_id=account_id)
        return CommitOutcome(action=RowAction.MATCH, transaction_id=decision.matched_transaction_id)

    def _create(
        self,
        user_id: int,
        account_id: int,
        import_id: int,
        candidate: MatchCandidate,
        decision: RowDecision,
        auto_categorize: bool,
    ) -> CommitOutcome:
        record = candidate.staged_record
        description = decision.description or record.description

        category_id = decision.category_id
        if category_id is None and auto_categorize:
            rule = self.rules.match_transaction(
                user_id, transaction_fields(record.date, record.amount, record.description)
            )
            if rule is not None:
                category_id = rule.action_category_id

        payee_id = decision.payee_id if decision.payee_id is not None else candidate.suggested_payee_id

        transaction_id = self.ledger.insert_transaction(
            user_id=user_id,
            account_id=account_id,
            date=record.date,
            amount=record.amount,
            description=description,
            reference_number=record.reference,
            category_id=category_id,
            payee_id=payee_id,
            status="cleared",
            is_reconciled=True,
            value_date=record.value_date,
            purchase_date=candidate.purchase_date,
            import_id=import_id,
            import_hash=record.fingerprint,
        )
        self.accounts.recalculate_balance(account_id)

        pattern = candidate.merchant_pattern
        if decision.merchant_pattern:
            pattern = normalize_description(decision.merchant_pattern)
        alias = None
        if payee_id is not None and pattern:
            alias = self.aliases.learn_alias(user_id, payee_id, record.description, pattern)

        return CommitOutcome(action=RowAction.CREATE, transaction_id=transaction_id, alias_learned=alias is not None)
