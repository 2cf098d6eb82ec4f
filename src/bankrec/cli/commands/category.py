"""Category management commands."""

import click
from bankrec.cli.error_handling import handle_domain_error
from bankrec.domain.errors import DomainError
from bankrec.domain.ledger import LedgerService


@click.group()
def category_group():
    """Manage categories."""
    pass


@category_group.command("create")
@click.argument("name")
@click.pass_context
def create_category(ctx, name: str):
    """Create a category.

    Examples:
        bankrec category create "Groceries"
    """
    service = LedgerService(ctx.obj["db"])
    try:
        category_id = service.create_category(ctx.obj["user_id"], name)
        click.echo(f"Created category '{name}' (ID: {category_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@category_group.command("list")
@click.pass_context
def list_categories(ctx):
    """List your categories."""
    service = LedgerService(ctx.obj["db"])
    categories = service.list_categories(ctx.obj["user_id"])
    if not categories:
        click.echo("No categories found.")
        return

    click.echo("\nCategories:")
    click.echo("-" * 60)
    for cat in categories:
        click.echo(f"ID: {cat.id:3d} | {cat.name}")


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
