"""Account domain service."""

import logging
from decimal import Decimal
from typing import Optional

from bankrec.database.base import Database
from bankrec.domain.entities import Account as AccountEntity
from bankrec.domain.errors import ConflictError, NotFoundError, ValidationError, account_not_found

logger = logging.getLogger(__name__)


class AccountService:
    """Service for managing accounts and their cached balances."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(
        self, user_id: int, name: str, bank_name: str, initial_balance: Decimal = Decimal("0")
    ) -> int:
        """Create a new account.

        Args:
            user_id: Owning user
            name: Account name
            bank_name: Bank name
            initial_balance: Opening balance the ledger amounts add to

        Returns:
            Account ID

        Raises:
            ValidationError: If the name is empty
            ConflictError: If the user already has an account with that name
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Account name is required")

        # Check if account with same name exists
        for acc in self.db.list_accounts(user_id):
            if acc.name == name:
                raise ConflictError(f"Account with name '{name}' already exists")

        return self.db.create_account(
            user_id=user_id, name=name, bank_name=bank_name, initial_balance=Decimal(initial_balance)
        )

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def require_account(self, user_id: int, account_id: int) -> AccountEntity:
        """Get an account owned by ``user_id``.

        Raises:
            NotFoundError: If the account does not exist or belongs to someone else
        """
        account = self.db.get_account(account_id)
        if account is None or account.user_id != user_id:
            raise NotFoundError(account_not_found(account_id))
        return account

    def list_accounts(self, user_id: int) -> list[AccountEntity]:
        """List a user's accounts.

        Returns:
            List of account entities
        """
        return self.db.list_accounts(user_id)

    def recalculate_balance(self, account_id: int) -> Decimal:
        """Recompute an account's cached balance from its non-void transactions.

        Args:
            account_id: Account ID

        Returns:
            The new current balance

        Raises:
            NotFoundError: If the account does not exist
        """
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))
        balance = self.db.recalculate_balance(account_id)
        logger.debug("Account %s balance recalculated to %s", account_id, balance)
        return balance
