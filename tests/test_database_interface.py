"""Tests for the Database interface: domain models, units of work, status CAS."""

from datetime import date, datetime, timedelta, UTC
from decimal import Decimal
import pytest

from bankrec.domain import entities
from bankrec.domain.entities import ImportStatus
from conftest import USER_ID


class TestDatabaseInterface:
    """Tests to verify Database interface returns domain models."""

    def test_get_account_returns_domain_model(self, temp_db):
        """Test that get_account returns a domain Account entity."""
        account_id = temp_db.create_account(user_id=USER_ID, name="Test Account", bank_name="Test Bank")

        account = temp_db.get_account(account_id)

        assert isinstance(account, entities.Account)
        assert account.id == account_id
        assert account.current_balance == Decimal("0.00")
        assert isinstance(account.created_at, datetime)

    def test_get_missing_entities(self, temp_db):
        """Test that lookups of unknown IDs return None."""
        assert temp_db.get_account(999) is None
        assert temp_db.get_transaction(999) is None
        assert temp_db.get_import(999) is None
        assert temp_db.get_payee_alias(999) is None

    def test_transaction_round_trip(self, temp_db, sample_account):
        """Test that every transaction column survives storage."""
        txn_id = temp_db.create_transaction(
            user_id=USER_ID,
            account_id=sample_account.id,
            date=date(2025, 1, 15),
            amount=Decimal("-42.00"),
            description="CAFE DU COIN",
            reference_number="FIT-1",
            value_date=date(2025, 1, 16),
            purchase_date=date(2025, 1, 14),
            import_hash="f" * 32,
        )

        transaction = temp_db.get_transaction(txn_id)

        assert isinstance(transaction, entities.Transaction)
        assert transaction.amount == Decimal("-42.00")
        assert transaction.reference_number == "FIT-1"
        assert transaction.value_date == date(2025, 1, 16)
        assert transaction.purchase_date == date(2025, 1, 14)
        assert transaction.status == "cleared"
        assert transaction.is_reconciled is False


class TestUnitOfWork:
    """Tests for grouped writes."""

    def test_commits_on_success(self, temp_db, sample_account):
        """Test that writes inside a unit of work are committed together."""
        with temp_db.unit_of_work():
            temp_db.create_transaction(
                user_id=USER_ID, account_id=sample_account.id, date=date(2025, 1, 1), amount=Decimal("-10")
            )
            temp_db.recalculate_balance(sample_account.id)

        assert temp_db.get_account(sample_account.id).current_balance == Decimal("90.00")

    def test_rolls_back_on_error(self, temp_db, sample_account):
        """Test that a failure discards every write of the unit."""
        with pytest.raises(RuntimeError):
            with temp_db.unit_of_work():
                temp_db.create_transaction(
                    user_id=USER_ID, account_id=sample_account.id, date=date(2025, 1, 1), amount=Decimal("-10")
                )
                temp_db.recalculate_balance(sample_account.id)
                raise RuntimeError("boom")

        assert temp_db.list_transactions(USER_ID) == []
        assert temp_db.get_account(sample_account.id).current_balance == Decimal("100.00")

    def test_nested_units_commit_once(self, temp_db, sample_account):
        """Test that an inner unit only commits with the outer one."""
        with pytest.raises(ValueError):
            with temp_db.unit_of_work():
                temp_db.create_payee(USER_ID, "Outer")
                with temp_db.unit_of_work():
                    temp_db.create_payee(USER_ID, "Inner")
                raise ValueError("outer failure")

        assert temp_db.list_payees(USER_ID) == []


class TestImportStatus:
    """Tests for import status transitions."""

    def _create_import(self, temp_db, account_id):
        return temp_db.create_import(
            user_id=USER_ID, account_id=account_id, filename="a.csv", file_type="csv", config={"delimiter": ";"}
        )

    def test_transition_compare_and_set(self, temp_db, sample_account):
        """Test that only the expected current status transitions."""
        import_id = self._create_import(temp_db, sample_account.id)

        assert temp_db.transition_import_status(import_id, ImportStatus.PENDING, ImportStatus.ANALYZING)
        assert not temp_db.transition_import_status(import_id, ImportStatus.PENDING, ImportStatus.ANALYZING)
        assert temp_db.transition_import_status(
            import_id, ImportStatus.ANALYZING, ImportStatus.ANALYZED, total_rows=4, staged_data=[{"row_id": "2"}]
        )

        record = temp_db.get_import(import_id)
        assert record.status == ImportStatus.ANALYZED
        assert record.total_rows == 4
        assert record.config == {"delimiter": ";"}
        assert temp_db.get_import_snapshot(import_id) == [{"row_id": "2"}]

    def test_update_import_and_find_stale(self, temp_db, sample_account):
        """Test free updates and the stale processing lookup."""
        import_id = self._create_import(temp_db, sample_account.id)
        started = datetime.now(UTC) - timedelta(hours=2)
        temp_db.update_import(import_id, status=ImportStatus.PROCESSING, started_at=started, imported_count=1)

        stale = temp_db.find_stale_imports(ImportStatus.PROCESSING, datetime.now(UTC) - timedelta(hours=1))
        fresh = temp_db.find_stale_imports(ImportStatus.PROCESSING, datetime.now(UTC) - timedelta(hours=3))

        assert [r.id for r in stale] == [import_id]
        assert stale[0].imported_count == 1
        assert fresh == []


class TestPayeeAliases:
    """Tests for alias storage."""

    def test_record_use_increments(self, temp_db, sample_payee):
        """Test the counter increment and payee reassignment."""
        other = temp_db.create_payee(USER_ID, "Other")
        alias_id = temp_db.create_payee_alias(
            user_id=USER_ID,
            payee_id=sample_payee,
            bank_description="CAFE",
            normalized_pattern="cafe",
            source="import_learn",
        )

        temp_db.record_payee_alias_use(alias_id, other, "CAFE 2", datetime.now(UTC))

        alias = temp_db.get_payee_alias_by_pattern(USER_ID, "cafe")
        assert alias.times_matched == 2
        assert alias.payee_id == other
        assert alias.bank_description == "CAFE 2"
        assert alias.last_matched_at is not None

    def test_list_orders_by_use(self, temp_db, sample_payee):
        """Test most-used-first ordering."""
        rare = temp_db.create_payee_alias(
            user_id=USER_ID, payee_id=sample_payee, bank_description="A", normalized_pattern="a", source="manual", times_matched=0
        )
        common = temp_db.create_payee_alias(
            user_id=USER_ID, payee_id=sample_payee, bank_description="B", normalized_pattern="b", source="import_learn", times_matched=5
        )

        assert [a.id for a in temp_db.list_payee_aliases(USER_ID)] == [common, rare]

        temp_db.delete_payee_alias(common)
        assert [a.id for a in temp_db.list_payee_aliases(USER_ID, payee_id=sample_payee)] == [rare]
