"""Payee and payee alias commands."""

import click
from bankrec.cli.account_resolution import resolve_payee_or_exit
from bankrec.cli.error_handling import handle_domain_error
from bankrec.domain.errors import DomainError
from bankrec.domain.ledger import LedgerService
from bankrec.domain.payee_alias import PayeeAliasService


@click.group()
def payee_group():
    """Manage payees."""
    pass


@payee_group.command("create")
@click.argument("name")
@click.pass_context
def create_payee(ctx, name: str):
    """Create a payee.

    Examples:
        bankrec payee create "Carrefour"
    """
    service = LedgerService(ctx.obj["db"])
    try:
        payee_id = service.create_payee(ctx.obj["user_id"], name)
        click.echo(f"Created payee '{name}' (ID: {payee_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@payee_group.command("list")
@click.pass_context
def list_payees(ctx):
    """List your payees."""
    service = LedgerService(ctx.obj["db"])
    payees = service.list_payees(ctx.obj["user_id"])
    if not payees:
        click.echo("No payees found.")
        return

    click.echo("\nPayees:")
    click.echo("-" * 60)
    for payee in payees:
        click.echo(f"ID: {payee.id:3d} | {payee.name}")


@click.group()
def alias_group():
    """Manage merchant pattern aliases of payees."""
    pass


@alias_group.command("add")
@click.argument("payee")
@click.argument("bank_description")
@click.option("--pattern", help="Explicit pattern (derived from BANK_DESCRIPTION by default)")
@click.pass_context
def add_alias(ctx, payee: str, bank_description: str, pattern: str | None):
    """Map a bank description to a payee.

    PAYEE can be a payee name or ID.

    Examples:
        bankrec alias add Carrefour "CARTE 12/03/25 CARREFOUR MARKET CB*1234"
        bankrec alias add 3 "PRLV SEPA EDF" --pattern "edf"
    """
    db = ctx.obj["db"]
    user_id = ctx.obj["user_id"]
    payee_id = resolve_payee_or_exit(ctx, LedgerService(db), user_id, payee)

    service = PayeeAliasService(db)
    try:
        alias_id = service.create_alias(user_id, payee_id, bank_description, pattern=pattern)
        alias = service.db.get_payee_alias(alias_id)
        click.echo(f"Created alias '{alias.normalized_pattern}' (ID: {alias_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@alias_group.command("list")
@click.option("--payee", help="Only aliases of this payee (name or ID)")
@click.pass_context
def list_aliases(ctx, payee: str | None):
    """List aliases, most used first."""
    db = ctx.obj["db"]
    user_id = ctx.obj["user_id"]
    ledger = LedgerService(db)
    payee_id = resolve_payee_or_exit(ctx, ledger, user_id, payee) if payee else None

    aliases = PayeeAliasService(db).list_aliases(user_id, payee_id=payee_id)
    if not aliases:
        click.echo("No aliases found.")
        return

    names = {p.id: p.name for p in ledger.list_payees(user_id)}
    click.echo("\nAliases:")
    click.echo("-" * 80)
    for alias in aliases:
        click.echo(
            f"ID: {alias.id:3d} | {alias.normalized_pattern:30s} | "
            f"Payee: {names.get(alias.payee_id, alias.payee_id)} | "
            f"Used: {alias.times_matched} | {alias.source.value}"
        )


@alias_group.command("remove")
@click.argument("alias_id", type=int)
@click.pass_context
def remove_alias(ctx, alias_id: int):
    """Delete an alias."""
    service = PayeeAliasService(ctx.obj["db"])
    try:
        service.delete_alias(ctx.obj["user_id"], alias_id)
        click.echo(f"Deleted alias {alias_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register payee and alias commands with main CLI."""
    cli.add_command(payee_group, name="payee")
    cli.add_command(alias_group, name="alias")
