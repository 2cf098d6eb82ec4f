"""Shared domain error messages and error types."""

from typing import Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist (or belongs to another user)."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations or a lost status race."""


class FileError(DomainError):
    """Statement file is unreadable or of an unsupported format.

    Raised after the owning Import has been moved to ``failed``.
    """

    def __init__(self, message: str, import_id: Optional[int] = None):
        super().__init__(message)
        self.import_id = import_id


class RowCommitError(DomainError):
    """A single confirmed decision could not be materialized."""

    def __init__(self, row_id: str, message: str):
        super().__init__(message)
        self.row_id = row_id


class ConfirmationTimeout(DomainError):
    """Confirmation ran past its deadline; the Import stays ``processing``."""

    def __init__(self, import_id: int, processed: int, remaining: int):
        super().__init__(
            f"Confirmation of import {import_id} timed out after {processed} row"
            f"{'s' if processed != 1 else ''} ({remaining} left unprocessed)"
        )
        self.import_id = import_id
        self.processed = processed
        self.remaining = remaining


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def payee_not_found(payee_id: int) -> str:
    """Return message for missing payee."""
    return f"Payee {payee_id} not found"


def category_not_found(category_id: int) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing or voided ledger transaction."""
    return f"Transaction {transaction_id} not found"


def import_not_found(import_id: int) -> str:
    """Return message for missing import."""
    return f"Import {import_id} not found"


def alias_not_found(alias_id: int) -> str:
    """Return message for missing payee alias."""
    return f"Payee alias {alias_id} not found"


def unsupported_file_type(file_type: str) -> str:
    """Return message for a file type no parser handles."""
    return f"Unsupported file type '{file_type}'"


def import_not_confirmable(import_id: int, status: str) -> str:
    """Return message when an import cannot enter confirmation."""
    return (
        f"Import {import_id} cannot be confirmed while '{status}': "
        "it is not analyzed yet or a confirmation already ran"
    )


def duplicate_alias_pattern(pattern: str) -> str:
    """Return message for an alias pattern that already exists for the user."""
    return f"An alias for pattern '{pattern}' already exists"
