"""Tests for the payee alias store."""

import pytest

from bankrec.domain.entities import AliasSource
from bankrec.domain.errors import ConflictError, NotFoundError, ValidationError
from conftest import OTHER_USER_ID, USER_ID

CARD_DESCRIPTION = "CARTE 15/01/25 CAFE DU COIN CB*1234"


def test_learn_alias_converges(alias_service, sample_payee):
    """Test that repeated learning increments a single alias."""
    counts = []
    for _ in range(3):
        alias = alias_service.learn_alias(USER_ID, sample_payee, CARD_DESCRIPTION, "cafe du coin")
        counts.append(alias.times_matched)

    aliases = alias_service.list_aliases(USER_ID)
    assert counts == [1, 2, 3]
    assert len(aliases) == 1
    assert aliases[0].source == AliasSource.IMPORT_LEARN
    assert aliases[0].last_matched_at is not None


def test_learn_alias_reassigns_payee(alias_service, ledger_service, sample_payee):
    """Test that the latest confirmation decides the payee."""
    other_payee = ledger_service.create_payee(USER_ID, "Coin Cafe SARL")
    alias_service.learn_alias(USER_ID, sample_payee, CARD_DESCRIPTION, "cafe du coin")

    alias = alias_service.learn_alias(USER_ID, other_payee, "CAFE DU COIN", "cafe du coin")

    assert alias.payee_id == other_payee
    assert alias.times_matched == 2
    assert alias.bank_description == "CAFE DU COIN"


def test_learn_alias_empty_pattern(alias_service, sample_payee):
    """Test that an empty pattern learns nothing."""
    assert alias_service.learn_alias(USER_ID, sample_payee, "***", "") is None
    assert alias_service.list_aliases(USER_ID) == []


def test_find_best_match(alias_service, ledger_service, sample_payee):
    """Test exact, substring and missing lookups."""
    edf = ledger_service.create_payee(USER_ID, "EDF")
    alias_service.learn_alias(USER_ID, sample_payee, CARD_DESCRIPTION, "cafe du coin")
    alias_service.learn_alias(USER_ID, edf, "PRLV SEPA EDF", "edf")

    assert alias_service.find_best_match(USER_ID, "cafe du coin").payee_id == sample_payee
    assert alias_service.find_best_match(USER_ID, "edf clients").payee_id == edf
    assert alias_service.find_best_match(USER_ID, "cafe").payee_id == sample_payee
    assert alias_service.find_best_match(USER_ID, "netflixcom") is None
    assert alias_service.find_best_match(USER_ID, "") is None
    assert alias_service.find_best_match(OTHER_USER_ID, "cafe du coin") is None


def test_substring_prefers_most_used(alias_service, ledger_service, sample_payee):
    """Test ordering by times_matched among substring hits."""
    other = ledger_service.create_payee(USER_ID, "Cafe Chain")
    alias_service.learn_alias(USER_ID, sample_payee, "CAFE DU", "cafe du")
    for _ in range(2):
        alias_service.learn_alias(USER_ID, other, "DU COIN", "du coin")

    assert alias_service.find_best_match(USER_ID, "cafe du coin").payee_id == other


def test_create_manual_alias(alias_service, sample_payee):
    """Test manual aliases derived from a bank description."""
    alias_id = alias_service.create_alias(USER_ID, sample_payee, CARD_DESCRIPTION)

    aliases = alias_service.list_aliases(USER_ID, payee_id=sample_payee)
    assert [a.id for a in aliases] == [alias_id]
    assert aliases[0].normalized_pattern == "cafe du coin"
    assert aliases[0].source == AliasSource.MANUAL
    assert aliases[0].times_matched == 0


def test_create_manual_alias_explicit_pattern(alias_service, sample_payee):
    """Test that an explicit pattern is normalized."""
    alias_service.create_alias(USER_ID, sample_payee, CARD_DESCRIPTION, pattern="  Café-du-Coin ")
    assert alias_service.list_aliases(USER_ID)[0].normalized_pattern == "cafeducoin"


def test_create_manual_alias_errors(alias_service, ledger_service, sample_payee):
    """Test duplicate patterns, empty patterns and foreign payees."""
    alias_service.create_alias(USER_ID, sample_payee, CARD_DESCRIPTION)
    with pytest.raises(ConflictError):
        alias_service.create_alias(USER_ID, sample_payee, "CAFE DU COIN")
    with pytest.raises(ValidationError):
        alias_service.create_alias(USER_ID, sample_payee, "***")

    foreign = ledger_service.create_payee(OTHER_USER_ID, "Theirs")
    with pytest.raises(NotFoundError):
        alias_service.create_alias(USER_ID, foreign, "SOMETHING")


def test_same_pattern_for_different_users(alias_service, ledger_service, sample_payee):
    """Test that patterns are unique per user only."""
    foreign = ledger_service.create_payee(OTHER_USER_ID, "Theirs")
    alias_service.create_alias(USER_ID, sample_payee, CARD_DESCRIPTION)
    alias_service.create_alias(OTHER_USER_ID, foreign, CARD_DESCRIPTION)

    assert len(alias_service.list_aliases(OTHER_USER_ID)) == 1


def test_delete_alias(alias_service, sample_payee):
    """Test deleting an alias, and only one's own."""
    alias_id = alias_service.create_alias(USER_ID, sample_payee, CARD_DESCRIPTION)

    with pytest.raises(NotFoundError):
        alias_service.delete_alias(OTHER_USER_ID, alias_id)

    alias_service.delete_alias(USER_ID, alias_id)
    assert alias_service.list_aliases(USER_ID) == []
    with pytest.raises(NotFoundError):
        alias_service.delete_alias(USER_ID, alias_id)
