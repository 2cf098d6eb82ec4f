"""Categorization rule commands."""

import click
from bankrec.cli.account_resolution import resolve_category_or_exit
from bankrec.cli.error_handling import handle_domain_error
from bankrec.domain.errors import DomainError
from bankrec.domain.ledger import LedgerService
from bankrec.domain.rules import CONDITION_OPERATORS, RuleService


def _parse_condition(ctx: click.Context, text: str) -> dict:
    """Parse FIELD:OPERATOR:VALUE (VALUE may itself contain colons)."""
    parts = text.split(":", 2)
    if len(parts) != 3:
        click.echo(f"Error: Condition '{text}' must look like FIELD:OPERATOR:VALUE", err=True)
        ctx.exit(1)
    field, operator, value = parts
    if operator == "between":
        return {"field": field, "operator": operator, "value": value.split(",")}
    return {"field": field, "operator": operator, "value": value}


@click.group()
def rule_group():
    """Manage categorization rules."""
    pass


@rule_group.command("add")
@click.argument("name")
@click.option(
    "--when",
    "conditions",
    multiple=True,
    required=True,
    help=f"Condition FIELD:OPERATOR:VALUE; operators: {', '.join(CONDITION_OPERATORS)}",
)
@click.option("--category", required=True, help="Category assigned when the rule matches (name or ID)")
@click.option("--priority", type=int, default=0, show_default=True, help="Higher runs first")
@click.option("--case-sensitive", is_flag=True, help="Compare text case-sensitively")
@click.pass_context
def add_rule(ctx, name: str, conditions: tuple[str, ...], category: str, priority: int, case_sensitive: bool):
    """Add a categorization rule.

    Examples:
        bankrec rule add Groceries --when description:contains:carrefour --category Groceries
        bankrec rule add "Big spend" --when amount:less_than:-500 --category Review --priority 10
    """
    db = ctx.obj["db"]
    user_id = ctx.obj["user_id"]
    category_id = resolve_category_or_exit(ctx, LedgerService(db), user_id, category)

    parsed = [_parse_condition(ctx, text) for text in conditions]
    for condition in parsed:
        condition["case_sensitive"] = case_sensitive

    try:
        rule_id = RuleService(db).create_rule(
            user_id, name, parsed, action_category_id=category_id, priority=priority
        )
        click.echo(f"Created rule '{name}' (ID: {rule_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@rule_group.command("list")
@click.pass_context
def list_rules(ctx):
    """List rules, highest priority first."""
    db = ctx.obj["db"]
    user_id = ctx.obj["user_id"]
    rules = RuleService(db).list_rules(user_id)
    if not rules:
        click.echo("No rules found.")
        return

    names = {c.id: c.name for c in LedgerService(db).list_categories(user_id)}
    click.echo("\nRules:")
    click.echo("-" * 80)
    for rule in rules:
        state = "active" if rule.is_active else "inactive"
        conditions = " AND ".join(f"{c.field} {c.operator} {c.value}" for c in rule.conditions)
        click.echo(
            f"ID: {rule.id:3d} | {rule.name:20s} | Priority: {rule.priority:3d} | {state} | "
            f"{conditions} -> {names.get(rule.action_category_id, '-')}"
        )


def register_commands(cli):
    """Register rule commands with main CLI."""
    cli.add_command(rule_group, name="rule")
