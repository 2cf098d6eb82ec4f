"""Tests for database mappers."""

from datetime import datetime, date, UTC
from decimal import Decimal

from bankrec.database.models import (
    Account as ORMAccount,
    Transaction as ORMTransaction,
    Import as ORMImport,
    PayeeAlias as ORMPayeeAlias,
    Rule as ORMRule,
)
from bankrec.database.mappers import (
    account_to_domain,
    error_details_to_domain,
    import_to_domain,
    payee_alias_to_domain,
    rule_to_domain,
    transaction_to_domain,
)
from bankrec.domain.entities import (
    Account,
    AliasSource,
    Import,
    ImportErrorDetail,
    ImportStatus,
    PayeeAlias,
    Rule,
    RuleCondition,
    Transaction,
)


class TestAccountMapper:
    """Tests for Account mapper."""

    def test_account_to_domain(self):
        """Test converting ORM Account to domain Account."""
        orm_account = ORMAccount(
            id=1,
            user_id=7,
            name="Checking",
            bank_name="Test Bank",
            initial_balance=100.1,
            current_balance=Decimal("250.555"),
            created_at=datetime.now(UTC),
        )
        domain_account = account_to_domain(orm_account)

        assert isinstance(domain_account, Account)
        assert domain_account.user_id == 7
        assert domain_account.initial_balance == Decimal("100.10")
        assert domain_account.current_balance == Decimal("250.56")
        assert domain_account.created_at == orm_account.created_at

    def test_missing_balance_is_zero(self):
        """Test that an unset balance maps to zero."""
        orm_account = ORMAccount(id=1, user_id=1, name="New", bank_name="Bank")
        assert account_to_domain(orm_account).current_balance == Decimal("0.00")


class TestTransactionMapper:
    """Tests for Transaction mapper."""

    def test_transaction_to_domain(self):
        """Test converting ORM Transaction to domain Transaction."""
        orm_transaction = ORMTransaction(
            id=5,
            user_id=1,
            account_id=2,
            date=date(2025, 1, 15),
            amount=Decimal("-42.00"),
            description="CAFE DU COIN",
            status="cleared",
            is_reconciled=1,
            purchase_date=date(2025, 1, 14),
            import_id=3,
            import_hash="0" * 32,
            created_at=datetime.now(UTC),
        )
        domain_transaction = transaction_to_domain(orm_transaction)

        assert isinstance(domain_transaction, Transaction)
        assert domain_transaction.amount == Decimal("-42.00")
        assert domain_transaction.is_reconciled is True
        assert domain_transaction.purchase_date == date(2025, 1, 14)
        assert domain_transaction.import_hash == "0" * 32
        assert domain_transaction.category_id is None


class TestImportMapper:
    """Tests for Import mapper."""

    def test_import_to_domain(self):
        """Test converting ORM Import with JSON columns."""
        orm_import = ORMImport(
            id=9,
            user_id=1,
            account_id=2,
            filename="releve.csv",
            file_type="csv",
            status="completed",
            total_rows=3,
            imported_count=2,
            error_count=1,
            error_details=[{"row_id": "3", "error": "Payee 999 not found"}],
            config={"delimiter": ";"},
            created_at=datetime.now(UTC),
        )
        domain_import = import_to_domain(orm_import)

        assert isinstance(domain_import, Import)
        assert domain_import.status == ImportStatus.COMPLETED
        assert domain_import.duplicate_count == 0
        assert domain_import.error_details == [ImportErrorDetail(row_id="3", error="Payee 999 not found")]
        assert domain_import.config == {"delimiter": ";"}
        assert domain_import.started_at is None

    def test_error_details_to_domain(self):
        """Test file-level and empty error lists."""
        assert error_details_to_domain(None) == []
        assert error_details_to_domain([{"row_id": None, "error": "Bad file"}]) == [
            ImportErrorDetail(row_id=None, error="Bad file")
        ]


class TestAliasAndRuleMappers:
    """Tests for PayeeAlias and Rule mappers."""

    def test_payee_alias_to_domain(self):
        """Test converting ORM PayeeAlias."""
        orm_alias = ORMPayeeAlias(
            id=1,
            user_id=1,
            payee_id=4,
            bank_description="PRLV SEPA EDF",
            normalized_pattern="edf",
            source="manual",
            times_matched=None,
        )
        alias = payee_alias_to_domain(orm_alias)

        assert isinstance(alias, PayeeAlias)
        assert alias.source == AliasSource.MANUAL
        assert alias.times_matched == 0

    def test_rule_to_domain(self):
        """Test converting ORM Rule conditions."""
        orm_rule = ORMRule(
            id=1,
            user_id=1,
            name="Groceries",
            priority=5,
            is_active=1,
            conditions=[
                {"field": "description", "operator": "contains", "value": "carrefour"},
                {"field": "amount", "operator": "between", "value": ["-50", "0"], "case_sensitive": True},
            ],
            action_category_id=3,
        )
        rule = rule_to_domain(orm_rule)

        assert isinstance(rule, Rule)
        assert rule.is_active is True
        assert rule.conditions == [
            RuleCondition("description", "contains", "carrefour"),
            RuleCondition("amount", "between", ["-50", "0"], case_sensitive=True),
        ]
