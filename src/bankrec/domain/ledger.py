"""Ledger domain service: transactions, payees and categories."""

import logging
from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Optional

from bankrec.database.base import Database
from bankrec.domain.entities import (
    Category as CategoryEntity,
    Payee as PayeeEntity,
    Transaction as TransactionEntity,
)
from bankrec.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    account_not_found,
    category_not_found,
    payee_not_found,
    transaction_not_found,
)

logger = logging.getLogger(__name__)

VOID_STATUS = "void"
TRANSACTION_STATUSES = ("pending", "cleared", VOID_STATUS)


class LedgerService:
    """Service for reading and writing ledger entries.

    Analysis only uses the read side (``find_existing_in_window``,
    ``find_by_import_hashes``); writes happen during confirmation.
    """

    def __init__(self, db: Database):
        """Initialize ledger service.

        Args:
            db: Database instance
        """
        self.db = db

    # Payees
    def create_payee(self, user_id: int, name: str) -> int:
        """Create a payee.

        Raises:
            ValidationError: If the name is empty
            ConflictError: If the user already has a payee with that name
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Payee name is required")
        if self.db.get_payee_by_name(user_id, name) is not None:
            raise ConflictError(f"Payee with name '{name}' already exists")
        return self.db.create_payee(user_id, name)

    def list_payees(self, user_id: int) -> list[PayeeEntity]:
        return self.db.list_payees(user_id)

    def require_payee(self, user_id: int, payee_id: int) -> PayeeEntity:
        """Get a payee owned by ``user_id``.

        Raises:
            NotFoundError: If the payee does not exist or belongs to someone else
        """
        payee = self.db.get_payee(payee_id)
        if payee is None or payee.user_id != user_id:
            raise NotFoundError(payee_not_found(payee_id))
        return payee

    # Categories
    def create_category(self, user_id: int, name: str) -> int:
        """Create a category.

        Raises:
            ValidationError: If the name is empty
            ConflictError: If the user already has a category with that name
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required")
        if self.db.get_category_by_name(user_id, name) is not None:
            raise ConflictError(f"Category with name '{name}' already exists")
        return self.db.create_category(user_id, name)

    def list_categories(self, user_id: int) -> list[CategoryEntity]:
        return self.db.list_categories(user_id)

    def require_category(self, user_id: int, category_id: int) -> CategoryEntity:
        """Get a category owned by ``user_id``.

        Raises:
            NotFoundError: If the category does not exist or belongs to someone else
        """
        category = self.db.get_category(category_id)
        if category is None or category.user_id != user_id:
            raise NotFoundError(category_not_found(category_id))
        return category

    # Transactions
    def get_transaction(self, transaction_id: int) -> Optional[TransactionEntity]:
        return self.db.get_transaction(transaction_id)

    def list_transactions(
        self,
        user_id: int,
        account_id: Optional[int] = None,
        import_id: Optional[int] = None,
    ) -> list[TransactionEntity]:
        """List a user's transactions, most recent first."""
        return self.db.list_transactions(user_id, account_id=account_id, import_id=import_id)

    def find_existing_in_window(
        self, account_id: int, start_date: date, end_date: date, limit: int
    ) -> list[TransactionEntity]:
        """Existing non-void transactions of an account in a date range.

        Args:
            account_id: Account whose ledger is searched
            start_date: First date included
            end_date: Last date included
            limit: Maximum number of (most recent) transactions returned

        Returns:
            Transactions ordered most recent first
        """
        if start_date > end_date:
            raise ValidationError("Start date must be on or before end date")
        return self.db.find_transactions_in_window(account_id, start_date, end_date, limit)

    def find_by_import_hashes(self, account_id: int, hashes: list[str]) -> list[TransactionEntity]:
        """Non-void transactions previously imported with one of ``hashes``."""
        if not hashes:
            return []
        return self.db.find_transactions_by_import_hashes(account_id, hashes)

    def insert_transaction(
        self,
        user_id: int,
        account_id: int,
        date: date,
        amount: Decimal,
        description: Optional[str] = None,
        reference_number: Optional[str] = None,
        category_id: Optional[int] = None,
        payee_id: Optional[int] = None,
        status: str = "cleared",
        is_reconciled: bool = False,
        value_date: Optional[date] = None,
        purchase_date: Optional[date] = None,
        import_id: Optional[int] = None,
        import_hash: Optional[str] = None,
    ) -> int:
        """Insert a ledger transaction.

        The account balance is not touched; callers pair this with
        ``AccountService.recalculate_balance`` inside one unit of work.

        Returns:
            Transaction ID

        Raises:
            NotFoundError: If the account, payee or category is missing or not the user's
            ValidationError: If the status is unknown
        """
        account = self.db.get_account(account_id)
        if account is None or account.user_id != user_id:
            raise NotFoundError(account_not_found(account_id))
        if payee_id is not None:
            self.require_payee(user_id, payee_id)
        if category_id is not None:
            self.require_category(user_id, category_id)
        if status not in TRANSACTION_STATUSES:
            raise ValidationError(f"Unknown transaction status '{status}'")

        return self.db.create_transaction(
            user_id=user_id,
            account_id=account_id,
            date=date,
            amount=amount,
            description=description,
            reference_number=reference_number,
            category_id=category_id,
            payee_id=payee_id,
            status=status,
            is_reconciled=is_reconciled,
            reconciled_at=datetime.now(UTC) if is_reconciled else None,
            value_date=value_date,
            purchase_date=purchase_date,
            import_id=import_id,
            import_hash=import_hash,
        )

    def mark_reconciled(self, user_id: int, transaction_id: int, account_id: Optional[int] = None) -> None:
        """Mark an existing transaction as reconciled.

        Args:
            user_id: Owner of the transaction
            transaction_id: Transaction to reconcile
            account_id: When given, the transaction must belong to this account

        Raises:
            NotFoundError: If the transaction is missing, void, or not the user's
        """
        transaction = self.db.get_transaction(transaction_id)
        if (
            transaction is None
            or transaction.user_id != user_id
            or transaction.status == VOID_STATUS
            or (account_id is not None and transaction.account_id != account_id)
        ):
            raise NotFoundError(transaction_not_found(transaction_id))
        self.db.mark_transaction_reconciled(transaction_id, datetime.now(UTC))

    def void_transaction(self, user_id: int, transaction_id: int) -> None:
        """Void a transaction and refresh its account balance.

        Void transactions no longer count towards balances, duplicate
        detection or matching.

        Raises:
            NotFoundError: If the transaction is missing or not the user's
        """
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None or transaction.user_id != user_id:
            raise NotFoundError(transaction_not_found(transaction_id))
        with self.db.unit_of_work():
            self.db.update_transaction_status(transaction_id, VOID_STATUS)
            self.db.recalculate_balance(transaction.account_id)
        logger.info("Transaction %s voided", transaction_id)
