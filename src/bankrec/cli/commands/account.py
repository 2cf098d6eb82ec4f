"""Account management commands."""

from decimal import Decimal, InvalidOperation

import click
from bankrec.cli.error_handling import handle_domain_error
from bankrec.domain.account import AccountService
from bankrec.domain.errors import DomainError


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--bank", help="Bank name (defaults to account name if not provided)")
@click.option("--initial-balance", default="0", show_default=True, help="Opening balance")
@click.pass_context
def create_account(ctx, name: str, bank: str | None, initial_balance: str):
    """Create a new account.

    If --bank is not provided, the bank name will be set to the account name.

    Examples:
        bankrec account create "Checking"
        bankrec account create "Joint" --bank "BNP" --initial-balance 1250.00
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    # If bank not provided, use account name as bank name
    bank_name = bank if bank is not None else name

    try:
        balance = Decimal(initial_balance)
    except InvalidOperation:
        click.echo(f"Error: Invalid initial balance '{initial_balance}'", err=True)
        ctx.exit(1)

    try:
        account_id = service.create_account(
            user_id=ctx.obj["user_id"], name=name, bank_name=bank_name, initial_balance=balance
        )
        click.echo(f"Created account '{name}' (ID: {account_id})")
        if bank is None:
            click.echo(f"Bank name set to '{bank_name}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List your accounts with their balances."""
    db = ctx.obj["db"]
    service = AccountService(db)

    accounts = service.list_accounts(ctx.obj["user_id"])
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 72)
    for acc in accounts:
        click.echo(
            f"ID: {acc.id:3d} | {acc.name:20s} | Bank: {acc.bank_name:15s} | Balance: {acc.current_balance:>12}"
        )


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
