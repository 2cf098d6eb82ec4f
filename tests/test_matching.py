"""Tests for the matching engine."""

from datetime import date, datetime
from decimal import Decimal
import pytest

from bankrec.config import ImportSettings
from bankrec.domain.entities import (
    AliasSource,
    MatchCandidate,
    MatchClassification,
    PayeeAlias,
    Transaction,
)
from bankrec.domain.matching import (
    LedgerWindow,
    MatchingEngine,
    classify_score,
    detect_cards,
    is_candidate,
    score_match,
    summarize,
)
from bankrec.parsers.base import build_record
from conftest import USER_ID

SETTINGS = ImportSettings()
CARD_DESCRIPTION = "CARTE 15/01/25 CAFE DU COIN CB*1234"


def _record(txn_date=date(2025, 1, 15), amount="-42.00", description=CARD_DESCRIPTION, row=2):
    return build_record(row, txn_date, Decimal(amount), description)


def _transaction(
    transaction_id, txn_date, amount, description, is_reconciled=False, account_id=1, import_hash=None
):
    return Transaction(
        id=transaction_id,
        user_id=USER_ID,
        account_id=account_id,
        date=txn_date,
        amount=Decimal(amount),
        description=description,
        reference_number=None,
        category_id=None,
        payee_id=None,
        status="cleared",
        is_reconciled=is_reconciled,
        reconciled_at=None,
        value_date=None,
        purchase_date=None,
        import_id=None,
        import_hash=import_hash,
        created_at=datetime(2025, 1, 1),
    )


def _alias(alias_id, payee_id, pattern, times_matched=1):
    return PayeeAlias(
        id=alias_id,
        user_id=USER_ID,
        payee_id=payee_id,
        bank_description=pattern.upper(),
        normalized_pattern=pattern,
        source=AliasSource.IMPORT_LEARN,
        times_matched=times_matched,
        last_matched_at=None,
        created_at=datetime(2025, 1, 1),
    )


@pytest.fixture
def engine(temp_db):
    """Create a MatchingEngine with default settings."""
    return MatchingEngine(temp_db)


def test_probable_example(engine):
    """Test the one-day, substring-description example scores 75."""
    record = _record()
    ledger = _transaction(10, date(2025, 1, 16), "-42.00", "CAFE DU COIN")

    assert score_match(record, ledger, SETTINGS) == 75

    candidate = engine.classify(record, LedgerWindow(transactions=[ledger]))
    assert candidate.classification == MatchClassification.PROBABLE
    assert candidate.matched_transaction_id == 10
    assert candidate.score == 75


def test_new_against_empty_window(engine):
    """Test a record with nothing to match."""
    candidate = engine.classify(_record(), LedgerWindow())

    assert candidate.classification == MatchClassification.NEW
    assert candidate.matched_transaction_id is None
    assert candidate.score is None
    assert candidate.merchant_pattern == "cafe du coin"
    assert candidate.card_last4 == "1234"
    assert candidate.purchase_date == date(2025, 1, 15)


def test_exact_match(engine):
    """Test same date, amount and description."""
    record = _record(description="PRLV SEPA EDF")
    ledger = _transaction(11, date(2025, 1, 15), "-42.00", "prlv sepa edf")

    candidate = engine.classify(record, LedgerWindow(transactions=[ledger]))

    assert candidate.classification == MatchClassification.EXACT
    assert candidate.score == 100


def test_duplicate_wins_over_scoring(engine):
    """Test that a fingerprint hit is definitive."""
    record = _record()
    imported = _transaction(12, record.date, "-42.00", record.description, import_hash=record.fingerprint)
    other = _transaction(13, record.date, "-42.00", record.description)

    candidate = engine.classify(
        record, LedgerWindow(transactions=[other, imported], by_hash={record.fingerprint: imported})
    )

    assert candidate.classification == MatchClassification.DUPLICATE
    assert candidate.matched_transaction_id == 12
    assert candidate.score is None


def test_score_monotonicity():
    """Test description and date points stack on top of the amount."""
    record = _record(description="LOYER JANVIER")
    full = _transaction(1, record.date, "-42.00", "LOYER JANVIER")
    amount_and_date = _transaction(2, record.date, "-42.00", "SOMETHING ELSE")
    amount_only = _transaction(3, date(2025, 2, 15), "-42.00", "SOMETHING ELSE")

    scores = [score_match(record, t, SETTINGS) for t in (full, amount_and_date, amount_only)]

    assert scores == [100, 80, 50]


def test_date_points():
    """Test exact, close and near date points."""
    record = _record(description="A")
    assert score_match(record, _transaction(1, date(2025, 1, 15), "-1.00", "B"), SETTINGS) == 30
    assert score_match(record, _transaction(1, date(2025, 1, 13), "-1.00", "B"), SETTINGS) == 15
    assert score_match(record, _transaction(1, date(2025, 1, 20), "-1.00", "B"), SETTINGS) == 5
    assert score_match(record, _transaction(1, date(2025, 1, 21), "-1.00", "B"), SETTINGS) == 0


def test_close_amount_points():
    """Test an amount within the relative tolerance."""
    record = _record(amount="-100.00", description="A")
    close = _transaction(1, date(2025, 3, 1), "-100.90", "B")
    far = _transaction(2, date(2025, 3, 1), "-102.00", "B")

    assert score_match(record, close, SETTINGS) == 30
    assert score_match(record, far, SETTINGS) == 0


def test_empty_descriptions_earn_nothing():
    """Test that blank descriptions never count as equal."""
    record = _record(description="***")
    ledger = _transaction(1, date(2025, 1, 15), "-42.00", "")
    assert score_match(record, ledger, SETTINGS) == 80


def test_is_candidate_filters():
    """Test the date, amount and reconciliation filters."""
    record = _record()
    assert is_candidate(record, _transaction(1, date(2025, 1, 17), "-42.00", "X"), SETTINGS)
    assert not is_candidate(record, _transaction(1, date(2025, 1, 18), "-42.00", "X"), SETTINGS)
    assert not is_candidate(record, _transaction(1, date(2025, 1, 15), "-43.00", "X"), SETTINGS)
    assert not is_candidate(
        record, _transaction(1, date(2025, 1, 15), "-42.00", "X", is_reconciled=True), SETTINGS
    )


def test_opposite_sign_is_not_a_candidate(engine):
    """Test that a refund never reconciles the purchase it mirrors."""
    record = _record(amount="42.00", description="CAFE DU COIN")
    purchase = _transaction(1, record.date, "-42.00", "CAFE DU COIN")

    assert not is_candidate(record, purchase, SETTINGS)

    candidate = engine.classify(record, LedgerWindow(transactions=[purchase]))
    assert candidate.classification == MatchClassification.NEW
    assert candidate.matched_transaction_id is None


def test_zero_amount_has_no_candidates(engine):
    """Test that a zero amount never matches."""
    record = _record(amount="0")
    ledger = _transaction(1, record.date, "0", record.description)

    assert not is_candidate(record, ledger, SETTINGS)
    assert engine.classify(record, LedgerWindow(transactions=[ledger])).classification == MatchClassification.NEW


def test_reconciled_transaction_not_matched(engine):
    """Test that already reconciled transactions are left alone."""
    record = _record(description="PRLV SEPA EDF")
    ledger = _transaction(1, record.date, "-42.00", "PRLV SEPA EDF", is_reconciled=True)

    candidate = engine.classify(record, LedgerWindow(transactions=[ledger]))

    assert candidate.classification == MatchClassification.NEW


def test_tie_break_on_date_distance(engine):
    """Test that equal scores prefer the closest date."""
    record = _record(description="ZZZ")
    two_days = _transaction(1, date(2025, 1, 17), "-42.00", "OTHER")
    one_day = _transaction(2, date(2025, 1, 14), "-42.00", "OTHER")

    candidate = engine.classify(record, LedgerWindow(transactions=[two_days, one_day]))

    assert candidate.score == 65
    assert candidate.matched_transaction_id == 2


def test_tie_break_on_amount_distance(engine):
    """Test that equal scores and dates prefer the closest amount."""
    record = _record(amount="-42.00", description="ZZZ")
    further = _transaction(1, date(2025, 1, 15), "-41.70", "OTHER")
    closer = _transaction(2, date(2025, 1, 15), "-42.20", "OTHER")

    candidate = engine.classify(record, LedgerWindow(transactions=[further, closer]))

    assert candidate.score == 60
    assert candidate.matched_transaction_id == 2


def test_low_score_is_new(engine):
    """Test that a candidate under the probable threshold is ignored."""
    record = _record(amount="-100.00", description="ZZZ")
    ledger = _transaction(1, date(2025, 1, 17), "-100.50", "OTHER")

    candidate = engine.classify(record, LedgerWindow(transactions=[ledger]))

    assert candidate.classification == MatchClassification.NEW
    assert candidate.matched_transaction_id is None


def test_classify_score_thresholds():
    """Test threshold boundaries."""
    assert classify_score(80, SETTINGS) == MatchClassification.EXACT
    assert classify_score(79, SETTINGS) == MatchClassification.PROBABLE
    assert classify_score(50, SETTINGS) == MatchClassification.PROBABLE
    assert classify_score(49, SETTINGS) == MatchClassification.NEW


def test_suggested_payee_from_aliases(engine):
    """Test exact alias patterns beyond more used substring aliases."""
    aliases = [_alias(1, 100, "cafe", times_matched=9), _alias(2, 200, "cafe du coin", times_matched=1)]

    candidate = engine.classify(_record(), LedgerWindow(), aliases)

    assert candidate.suggested_payee_id == 200


def test_suggested_payee_from_substring(engine):
    """Test substring alias lookup in list order."""
    aliases = [_alias(1, 100, "edf"), _alias(2, 200, "cafe du")]

    candidate = engine.classify(_record(), LedgerWindow(), aliases)

    assert candidate.suggested_payee_id == 200


def test_summarize_and_detect_cards():
    """Test summary counts and card detection."""
    candidates = [
        MatchCandidate(_record(row=2), MatchClassification.NEW, card_last4="1234"),
        MatchCandidate(_record(row=3), MatchClassification.DUPLICATE, matched_transaction_id=1),
        MatchCandidate(_record(row=4), MatchClassification.EXACT, matched_transaction_id=2, card_last4="9876"),
        MatchCandidate(_record(row=5), MatchClassification.PROBABLE, matched_transaction_id=3, card_last4="1234"),
    ]

    summary = summarize(candidates)

    assert (summary.total, summary.new, summary.duplicate, summary.matched) == (4, 1, 1, 2)
    assert [(c.last4, c.count) for c in detect_cards(candidates)] == [("1234", 2), ("9876", 1)]
    assert summarize([]).total == 0


def test_match_records_against_database(temp_db, sample_account, ledger_service, alias_service, sample_payee):
    """Test loading the ledger window and aliases from the database."""
    records = [_record(row=2), _record(date(2025, 1, 16), "-61.30", "PRLV SEPA EDF", row=3)]
    imported_id = ledger_service.insert_transaction(
        USER_ID,
        sample_account.id,
        date(2025, 1, 16),
        Decimal("-61.30"),
        "PRLV SEPA EDF",
        import_hash=records[1].fingerprint,
    )
    ledger_service.insert_transaction(
        USER_ID, sample_account.id, date(2025, 1, 16), Decimal("-42.00"), "CAFE DU COIN"
    )
    alias_service.learn_alias(USER_ID, sample_payee, CARD_DESCRIPTION, "cafe du coin")

    engine = MatchingEngine(temp_db)
    window = engine.load_ledger_window(sample_account.id, records)
    candidates = engine.match_records(USER_ID, sample_account.id, records)

    assert len(window.transactions) == 2
    assert list(window.by_hash) == [records[1].fingerprint]
    assert candidates[0].classification == MatchClassification.PROBABLE
    assert candidates[0].suggested_payee_id == sample_payee
    assert candidates[1].classification == MatchClassification.DUPLICATE
    assert candidates[1].matched_transaction_id == imported_id


def test_load_ledger_window_without_records(engine):
    """Test that an empty batch reads nothing."""
    window = engine.load_ledger_window(1, [])
    assert window.transactions == []
    assert window.by_hash == {}
