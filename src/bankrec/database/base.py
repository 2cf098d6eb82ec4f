"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional, Any
from datetime import date, datetime
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from bankrec.domain.entities import (
    Account,
    Payee,
    Category,
    Transaction,
    Import,
    ImportStatus,
    PayeeAlias,
    Rule,
)


class Database(ABC):
    """Abstract database interface for bankrec."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def unit_of_work(self) -> AbstractContextManager[None]:
        """Group the writes made inside the block into one transaction.

        Commits when the block exits normally, rolls everything back when it
        raises. Blocks may nest; only the outermost one commits.
        """
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self, user_id: int, name: str, bank_name: str, initial_balance: Decimal = Decimal("0")
    ) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def list_accounts(self, user_id: int) -> list[Account]:
        """List a user's accounts."""
        pass

    @abstractmethod
    def recalculate_balance(self, account_id: int) -> Decimal:
        """Recompute the cached balance from the ledger. Returns the new balance."""
        pass

    # Payee operations
    @abstractmethod
    def create_payee(self, user_id: int, name: str) -> int:
        """Create a new payee. Returns payee ID."""
        pass

    @abstractmethod
    def get_payee(self, payee_id: int) -> Optional[Payee]:
        """Get payee by ID."""
        pass

    @abstractmethod
    def get_payee_by_name(self, user_id: int, name: str) -> Optional[Payee]:
        """Get a user's payee by name."""
        pass

    @abstractmethod
    def list_payees(self, user_id: int) -> list[Payee]:
        """List a user's payees."""
        pass

    # Category operations
    @abstractmethod
    def create_category(self, user_id: int, name: str) -> int:
        """Create a new category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def get_category_by_name(self, user_id: int, name: str) -> Optional[Category]:
        """Get a user's category by name."""
        pass

    @abstractmethod
    def list_categories(self, user_id: int) -> list[Category]:
        """List a user's categories."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(
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
        reconciled_at: Optional[datetime] = None,
        value_date: Optional[date] = None,
        purchase_date: Optional[date] = None,
        import_id: Optional[int] = None,
        import_hash: Optional[str] = None,
    ) -> int:
        """Create a new transaction. Returns transaction ID."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        user_id: int,
        account_id: Optional[int] = None,
        import_id: Optional[int] = None,
    ) -> list[Transaction]:
        """List a user's transactions, most recent first."""
        pass

    @abstractmethod
    def find_transactions_in_window(
        self,
        account_id: int,
        start_date: date,
        end_date: date,
        limit: int,
    ) -> list[Transaction]:
        """Non-void transactions of an account dated within [start_date, end_date].

        Most recent first, at most ``limit`` rows.
        """
        pass

    @abstractmethod
    def find_transactions_by_import_hashes(self, account_id: int, hashes: list[str]) -> list[Transaction]:
        """Non-void transactions of an account whose import_hash is in ``hashes``."""
        pass

    @abstractmethod
    def mark_transaction_reconciled(self, transaction_id: int, reconciled_at: datetime) -> None:
        """Flag a transaction as reconciled against a statement."""
        pass

    @abstractmethod
    def update_transaction_status(self, transaction_id: int, status: str) -> None:
        """Change a transaction's status (e.g. to 'void')."""
        pass

    # Import operations
    @abstractmethod
    def create_import(
        self,
        user_id: int,
        account_id: int,
        filename: str,
        file_type: str,
        config: dict[str, Any],
    ) -> int:
        """Create a pending import. Returns import ID."""
        pass

    @abstractmethod
    def get_import(self, import_id: int) -> Optional[Import]:
        """Get import by ID."""
        pass

    @abstractmethod
    def get_import_snapshot(self, import_id: int) -> list[dict[str, Any]]:
        """Staged rows stored on an import by its analysis (empty if none)."""
        pass

    @abstractmethod
    def transition_import_status(
        self,
        import_id: int,
        from_status: ImportStatus,
        to_status: ImportStatus,
        **fields: Any,
    ) -> bool:
        """Compare-and-set an import's status.

        The update (status plus any extra ``fields``) only applies when the
        persisted status still equals ``from_status``.

        Returns:
            True if this call performed the transition, False otherwise
        """
        pass

    @abstractmethod
    def update_import(self, import_id: int, **fields: Any) -> None:
        """Update columns of an import."""
        pass

    @abstractmethod
    def list_imports(
        self,
        user_id: int,
        account_id: Optional[int] = None,
        status: Optional[ImportStatus] = None,
        limit: Optional[int] = None,
    ) -> list[Import]:
        """List a user's imports, newest first."""
        pass

    @abstractmethod
    def find_stale_imports(self, status: ImportStatus, started_before: datetime) -> list[Import]:
        """Imports of any user left in ``status`` since before ``started_before``."""
        pass

    # Payee alias operations
    @abstractmethod
    def create_payee_alias(
        self,
        user_id: int,
        payee_id: int,
        bank_description: str,
        normalized_pattern: str,
        source: str,
        times_matched: int = 1,
        last_matched_at: Optional[datetime] = None,
    ) -> int:
        """Create a payee alias. Returns alias ID."""
        pass

    @abstractmethod
    def get_payee_alias(self, alias_id: int) -> Optional[PayeeAlias]:
        """Get payee alias by ID."""
        pass

    @abstractmethod
    def get_payee_alias_by_pattern(self, user_id: int, normalized_pattern: str) -> Optional[PayeeAlias]:
        """Get a user's alias for an exact normalized pattern."""
        pass

    @abstractmethod
    def list_payee_aliases(self, user_id: int, payee_id: Optional[int] = None) -> list[PayeeAlias]:
        """List a user's aliases, most used first (ties by ID)."""
        pass

    @abstractmethod
    def record_payee_alias_use(
        self, alias_id: int, payee_id: int, bank_description: str, matched_at: datetime
    ) -> None:
        """Increment an alias' usage counter and (re)assign its payee."""
        pass

    @abstractmethod
    def delete_payee_alias(self, alias_id: int) -> None:
        """Delete a payee alias."""
        pass

    # Rule operations
    @abstractmethod
    def create_rule(
        self,
        user_id: int,
        name: str,
        conditions: list[dict[str, Any]],
        action_category_id: Optional[int] = None,
        priority: int = 0,
        is_active: bool = True,
    ) -> int:
        """Create a categorization rule. Returns rule ID."""
        pass

    @abstractmethod
    def list_rules(self, user_id: int, active_only: bool = False) -> list[Rule]:
        """List a user's rules, highest priority first (ties by ID)."""
        pass
