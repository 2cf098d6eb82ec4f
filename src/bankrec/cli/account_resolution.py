"""CLI helpers for resolving names or IDs to entities."""

from __future__ import annotations

import click
from bankrec.domain.account import AccountService
from bankrec.domain.ledger import LedgerService


def _as_id(value: str | int) -> int | None:
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def resolve_account(account_service: AccountService, user_id: int, account: str | int) -> int:
    """Resolve an account name or ID to an ID owned by ``user_id``.

    Raises:
        ValueError: If the account is not found
    """
    account_id = _as_id(account)
    if account_id is not None:
        account_obj = account_service.get_account(account_id)
        if account_obj is None or account_obj.user_id != user_id:
            raise ValueError(f"Account ID {account_id} not found")
        return account_id

    for acc in account_service.list_accounts(user_id):
        if acc.name == account:
            return acc.id
    raise ValueError(f"Account '{account}' not found")


def resolve_account_or_exit(
    ctx: click.Context, account_service: AccountService, user_id: int, account: str | int
) -> int:
    """Resolve account name or ID, or exit with a CLI error.

    This keeps error messaging and exit behavior consistent across commands.
    """
    try:
        return resolve_account(account_service, user_id, account)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)


def resolve_payee_or_exit(ctx: click.Context, ledger: LedgerService, user_id: int, payee: str | int) -> int:
    """Resolve a payee name or ID, or exit with a CLI error."""
    payee_id = _as_id(payee)
    for item in ledger.list_payees(user_id):
        if item.id == payee_id or item.name == payee:
            return item.id
    click.echo(f"Error: Payee '{payee}' not found", err=True)
    ctx.exit(1)


def resolve_category_or_exit(
    ctx: click.Context, ledger: LedgerService, user_id: int, category: str | int
) -> int:
    """Resolve a category name or ID, or exit with a CLI error."""
    category_id = _as_id(category)
    for item in ledger.list_categories(user_id):
        if item.id == category_id or item.name == category:
            return item.id
    click.echo(f"Error: Category '{category}' not found", err=True)
    ctx.exit(1)
