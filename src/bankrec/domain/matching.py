"""Matching engine: classify staged records against the existing ledger.

Every staged record becomes a MatchCandidate:

1. ``duplicate`` when a ledger transaction carries its fingerprint as
   ``import_hash`` (definitive, no score).
2. Otherwise unreconciled ledger transactions within the date and amount
   tolerances are scored (amount 50/30, date 30/15/5, description 20/10)
   and the best one decides between ``exact``, ``probable`` and ``new``.

Independently, the merchant pattern of the description is looked up in the
payee alias store to suggest a payee.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from functools import reduce
from typing import Optional, Sequence

from bankrec.config import ImportSettings
from bankrec.database.base import Database
from bankrec.domain.entities import (
    AnalysisSummary,
    DetectedCard,
    MatchCandidate,
    MatchClassification,
    PayeeAlias,
    StagedRecord,
    Transaction,
)
from bankrec.domain.ledger import LedgerService
from bankrec.domain.payee_alias import best_alias_match
from bankrec.utils.merchant import analyze_bank_description
from bankrec.utils.normalize import normalize_description

logger = logging.getLogger(__name__)

AMOUNT_EXACT_POINTS = 50
AMOUNT_CLOSE_POINTS = 30
DATE_EXACT_POINTS = 30
DATE_CLOSE_POINTS = 15
DATE_NEAR_POINTS = 5
DESCRIPTION_EXACT_POINTS = 20
DESCRIPTION_PARTIAL_POINTS = 10


@dataclass
class LedgerWindow:
    """Existing transactions a batch of staged records is compared with.

    ``transactions`` is the bounded date window used for fuzzy matching;
    ``by_hash`` indexes previously imported transactions by import_hash.
    """

    transactions: list[Transaction] = field(default_factory=list)
    by_hash: dict[str, Transaction] = field(default_factory=dict)


def _day_distance(record: StagedRecord, transaction: Transaction) -> int:
    return abs((record.date - transaction.date).days)


def _relative_amount_difference(reference: Decimal, other: Decimal) -> Optional[Decimal]:
    if reference == 0:
        return None
    return abs(reference - other) / abs(reference)


def is_candidate(record: StagedRecord, transaction: Transaction, settings: ImportSettings) -> bool:
    """Whether a ledger transaction is close enough to be scored at all."""
    if transaction.is_reconciled:
        return False
    if _day_distance(record, transaction) > settings.date_tolerance_days:
        return False
    difference = _relative_amount_difference(record.amount, transaction.amount)
    return difference is not None and difference <= settings.amount_tolerance


def score_match(record: StagedRecord, transaction: Transaction, settings: ImportSettings) -> int:
    """Similarity score (0-100) between a staged record and a transaction."""
    score = 0

    if record.amount == transaction.amount:
        score += AMOUNT_EXACT_POINTS
    else:
        difference = _relative_amount_difference(record.amount, transaction.amount)
        if difference is not None and difference <= settings.amount_tolerance:
            score += AMOUNT_CLOSE_POINTS

    days = _day_distance(record, transaction)
    if days == 0:
        score += DATE_EXACT_POINTS
    elif days <= settings.date_tolerance_days:
        score += DATE_CLOSE_POINTS
    elif days <= settings.secondary_date_window_days:
        score += DATE_NEAR_POINTS

    staged_text = normalize_description(record.description)
    ledger_text = normalize_description(transaction.description)
    if staged_text and ledger_text:
        if staged_text == ledger_text:
            score += DESCRIPTION_EXACT_POINTS
        elif staged_text in ledger_text or ledger_text in staged_text:
            score += DESCRIPTION_PARTIAL_POINTS

    return score


def classify_score(score: int, settings: ImportSettings) -> MatchClassification:
    if score >= settings.exact_threshold:
        return MatchClassification.EXACT
    if score >= settings.probable_threshold:
        return MatchClassification.PROBABLE
    return MatchClassification.NEW


def _fold_summary(summary: AnalysisSummary, candidate: MatchCandidate) -> AnalysisSummary:
    classification = candidate.classification
    return dataclasses.replace(
        summary,
        total=summary.total + 1,
        new=summary.new + (classification == MatchClassification.NEW),
        duplicate=summary.duplicate + (classification == MatchClassification.DUPLICATE),
        matched=summary.matched
        + (classification in (MatchClassification.EXACT, MatchClassification.PROBABLE)),
    )


def summarize(candidates: Sequence[MatchCandidate]) -> AnalysisSummary:
    """Fold candidates into their summary counts."""
    return reduce(_fold_summary, candidates, AnalysisSummary())


def _fold_cards(counts: dict[str, int], candidate: MatchCandidate) -> dict[str, int]:
    if not candidate.card_last4:
        return counts
    return {**counts, candidate.card_last4: counts.get(candidate.card_last4, 0) + 1}


def detect_cards(candidates: Sequence[MatchCandidate]) -> list[DetectedCard]:
    """Card suffixes seen in the statement, in order of first appearance."""
    counts = reduce(_fold_cards, candidates, {})
    return [DetectedCard(last4=last4, count=count) for last4, count in counts.items()]


class MatchingEngine:
    """Classifies staged records against an account's ledger."""

    def __init__(self, db: Database, settings: Optional[ImportSettings] = None):
        """Initialize matching engine.

        Args:
            db: Database instance
            settings: Tolerances and thresholds (defaults when omitted)
        """
        self.db = db
        self.settings = settings or ImportSettings()
        self.ledger = LedgerService(db)

    def load_ledger_window(self, account_id: int, records: Sequence[StagedRecord]) -> LedgerWindow:
        """Fetch the ledger slice relevant to a batch of staged records.

        The fuzzy window spans the batch's dates padded on both sides and
        keeps the most recent ``ledger_window_limit`` transactions.
        Fingerprint lookups use the import_hash index instead of the window.
        """
        if not records:
            return LedgerWindow()

        padding = timedelta(days=self.settings.ledger_window_padding_days)
        start = min(r.date for r in records) - padding
        end = max(r.date for r in records) + padding
        transactions = self.ledger.find_existing_in_window(
            account_id, start, end, self.settings.ledger_window_limit
        )

        by_hash: dict[str, Transaction] = {}
        for transaction in self.ledger.find_by_import_hashes(account_id, [r.fingerprint for r in records]):
            by_hash.setdefault(transaction.import_hash, transaction)

        logger.debug(
            "Ledger window for account %s: %d transactions between %s and %s",
            account_id,
            len(transactions),
            start,
            end,
        )
        return LedgerWindow(transactions=transactions, by_hash=by_hash)

    def classify(
        self,
        record: StagedRecord,
        window: LedgerWindow,
        aliases: Sequence[PayeeAlias] = (),
    ) -> MatchCandidate:
        """Classify one staged record.

        Args:
            record: Staged record to classify
            window: Ledger slice from ``load_ledger_window``
            aliases: The user's aliases, most used first

        Returns:
            MatchCandidate with classification, matched transaction and
            suggested payee
        """
        description = analyze_bank_description(record.description)
        alias = best_alias_match(aliases, description.merchant_pattern)
        enrichment = {
            "suggested_payee_id": alias.payee_id if alias else None,
            "merchant_pattern": description.merchant_pattern,
            "card_last4": description.card_last4,
            "purchase_date": description.purchase_date,
        }

        duplicate = window.by_hash.get(record.fingerprint)
        if duplicate is not None:
            return MatchCandidate(
                staged_record=record,
                classification=MatchClassification.DUPLICATE,
                matched_transaction_id=duplicate.id,
                **enrichment,
            )

        scored = [
            (score_match(record, transaction, self.settings), transaction)
            for transaction in window.transactions
            if is_candidate(record, transaction, self.settings)
        ]
        if scored:
            score, best = min(
                scored,
                key=lambda item: (
                    -item[0],
                    _day_distance(record, item[1]),
                    abs(record.amount - item[1].amount),
                    item[1].id,
                ),
            )
            classification = classify_score(score, self.settings)
            if classification != MatchClassification.NEW:
                return MatchCandidate(
                    staged_record=record,
                    classification=classification,
                    matched_transaction_id=best.id,
                    score=score,
                    **enrichment,
                )

        return MatchCandidate(
            staged_record=record,
            classification=MatchClassification.NEW,
            **enrichment,
        )

    def match_records(
        self, user_id: int, account_id: int, records: Sequence[StagedRecord]
    ) -> list[MatchCandidate]:
        """Classify a batch of staged records for an account.

        Reads the ledger and alias store once for the whole batch; writes
        nothing.
        """
        window = self.load_ledger_window(account_id, records)
        aliases = self.db.list_payee_aliases(user_id)
        return [self.classify(record, window, aliases) for record in records]
