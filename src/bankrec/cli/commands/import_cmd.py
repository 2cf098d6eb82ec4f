"""Statement import commands."""

from datetime import timedelta
from pathlib import Path

import click
from bankrec.cli.account_resolution import resolve_account_or_exit
from bankrec.cli.error_handling import handle_domain_error, load_mapping_file
from bankrec.config import ImportSettings
from bankrec.domain.account import AccountService
from bankrec.domain.entities import FileType, ImportStatus
from bankrec.domain.errors import ConfirmationTimeout, DomainError
from bankrec.domain.statement_import import StatementImportService, default_decisions

EXTENSION_TYPES = {
    ".csv": FileType.CSV,
    ".txt": FileType.CSV,
    ".xlsx": FileType.EXCEL,
    ".xlsm": FileType.EXCEL,
    ".qif": FileType.QIF,
    ".ofx": FileType.OFX,
    ".qfx": FileType.QFX,
}


def _file_type(ctx: click.Context, path: str, file_type: str | None) -> str:
    if file_type:
        return file_type
    detected = EXTENSION_TYPES.get(Path(path).suffix.lower())
    if detected is None:
        click.echo(f"Error: Cannot infer file type of '{path}', use --type", err=True)
        ctx.exit(1)
    return detected.value


def _service(ctx: click.Context) -> StatementImportService:
    try:
        settings = ImportSettings.from_env()
    except DomainError as e:
        handle_domain_error(ctx, e)
    return StatementImportService(ctx.obj["db"], settings)


def _describe(text: str, width: int = 40) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


@click.group()
def import_group():
    """Import and reconcile bank statements."""
    pass


@import_group.command("preview")
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--type", "file_type", type=click.Choice([t.value for t in FileType]), help="File format")
@click.option("--config", "config_file", type=click.Path(exists=True), help="YAML/JSON parse options")
@click.option("--limit", type=int, default=10, show_default=True, help="Rows to show")
@click.pass_context
def preview_statement(ctx, statement_file: str, file_type: str | None, config_file: str | None, limit: int):
    """Show the first parsed rows of a statement without importing it."""
    config = load_mapping_file(ctx, config_file) if config_file else None
    file_type = _file_type(ctx, statement_file, file_type)

    try:
        result = _service(ctx).preview(Path(statement_file).read_bytes(), file_type, config, limit=limit)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\n{result.total} rows parsed, {len(result.skipped)} skipped")
    click.echo("-" * 80)
    for record in result.records:
        click.echo(
            f"Row {record.source_row_index:4d} | {record.date} | {record.amount:>12} | "
            f"{_describe(record.description)}"
        )
    for skipped in result.skipped:
        click.echo(f"  Skipped row {skipped.row_index}: {skipped.reason}")


@import_group.command("analyze")
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--account", required=True, help="Destination account (name or ID)")
@click.option("--type", "file_type", type=click.Choice([t.value for t in FileType]), help="File format")
@click.option("--config", "config_file", type=click.Path(exists=True), help="YAML/JSON parse options")
@click.pass_context
def analyze_statement(ctx, statement_file: str, account: str, file_type: str | None, config_file: str | None):
    """Analyze a statement against an account's ledger.

    Nothing is written to the ledger; run 'import confirm' afterwards.

    Examples:
        bankrec import analyze releve.csv --account Checking --config bnp.yaml
        bankrec import analyze export.ofx --account 2
    """
    user_id = ctx.obj["user_id"]
    account_id = resolve_account_or_exit(ctx, AccountService(ctx.obj["db"]), user_id, account)
    config = load_mapping_file(ctx, config_file) if config_file else None
    file_type = _file_type(ctx, statement_file, file_type)

    try:
        result = _service(ctx).analyze(
            user_id,
            account_id,
            Path(statement_file).read_bytes(),
            file_type,
            config,
            filename=Path(statement_file).name,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    summary = result.summary
    click.echo(f"\nImport {result.import_id} analyzed:")
    click.echo(f"  Total: {summary.total}")
    click.echo(f"  New: {summary.new}")
    click.echo(f"  Duplicates: {summary.duplicate}")
    click.echo(f"  Matched: {summary.matched}")
    if result.skipped:
        click.echo(f"  Skipped rows: {len(result.skipped)}")
    for card in result.detected_cards:
        click.echo(f"  Card *{card.last4}: {card.count} transaction{'s' if card.count != 1 else ''}")

    click.echo("-" * 96)
    for candidate in result.candidates:
        record = candidate.staged_record
        match = f"-> #{candidate.matched_transaction_id}" if candidate.matched_transaction_id else ""
        score = f"({candidate.score})" if candidate.score is not None else ""
        payee = f"payee {candidate.suggested_payee_id}" if candidate.suggested_payee_id else ""
        click.echo(
            f"Row {record.row_id:>4s} | {record.date} | {record.amount:>12} | {_describe(record.description, 32):32s} | "
            f"{candidate.classification.value:9s} {match} {score} {payee}".rstrip()
        )


@import_group.command("confirm")
@click.argument("import_id", type=int)
@click.option("--decisions", "decisions_file", type=click.Path(exists=True), help="YAML/JSON map of row ID to action")
@click.option("--accept-all", is_flag=True, help="Create new rows, match proposed matches, skip duplicates")
@click.option("--no-auto-categorize", is_flag=True, help="Do not apply categorization rules")
@click.option("--timeout", type=float, help="Give up after this many seconds")
@click.pass_context
def confirm_import(
    ctx,
    import_id: int,
    decisions_file: str | None,
    accept_all: bool,
    no_auto_categorize: bool,
    timeout: float | None,
):
    """Apply decisions to an analyzed import.

    The decisions file maps row IDs to 'create', 'skip' or 'match', or to a
    mapping with overrides:

    \b
        "3": create
        "4": {action: create, payee_id: 2, category_id: 5}
        "7": {action: match, matched_transaction_id: 41}
    """
    if bool(decisions_file) == accept_all:
        click.echo("Error: Provide exactly one of --decisions or --accept-all", err=True)
        ctx.exit(1)

    user_id = ctx.obj["user_id"]
    service = _service(ctx)
    try:
        if accept_all:
            decisions = default_decisions(service.get_candidates(import_id, user_id))
        else:
            decisions = load_mapping_file(ctx, decisions_file)
        result = service.confirm(
            import_id,
            user_id,
            decisions,
            auto_categorize=not no_auto_categorize,
            timeout=timeout,
        )
    except ConfirmationTimeout as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(2)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nImport {import_id} complete:")
    click.echo(f"  Imported: {result.imported_count} transactions")
    click.echo(f"  Matched: {result.matched_count}")
    click.echo(f"  Skipped: {result.duplicate_count}")
    click.echo(f"  Aliases learned: {result.aliases_learned}")
    if result.error_count:
        click.echo(f"  Errors: {result.error_count}")
        for detail in result.error_details:
            click.echo(f"    Row {detail.row_id}: {detail.error}", err=True)


@import_group.command("show")
@click.argument("import_id", type=int)
@click.pass_context
def show_import(ctx, import_id: int):
    """Show status and counts of an import."""
    try:
        record = _service(ctx).get_import(import_id, ctx.obj["user_id"])
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nImport {record.id}: {record.filename} ({record.file_type})")
    click.echo(f"  Status: {record.status.value}")
    click.echo(f"  Account: {record.account_id}")
    click.echo(f"  Rows: {record.total_rows}")
    click.echo(f"  Imported: {record.imported_count}")
    click.echo(f"  Matched: {record.matched_count}")
    click.echo(f"  Skipped: {record.duplicate_count}")
    click.echo(f"  Errors: {record.error_count}")
    for detail in record.error_details:
        where = f"Row {detail.row_id}" if detail.row_id is not None else "File"
        click.echo(f"    {where}: {detail.error}")


@import_group.command("history")
@click.option("--account", help="Only imports into this account (name or ID)")
@click.option("--status", type=click.Choice([s.value for s in ImportStatus]), help="Only imports in this status")
@click.option("--limit", type=int, default=20, show_default=True)
@click.pass_context
def import_history(ctx, account: str | None, status: str | None, limit: int):
    """List past imports, newest first."""
    user_id = ctx.obj["user_id"]
    account_id = (
        resolve_account_or_exit(ctx, AccountService(ctx.obj["db"]), user_id, account) if account else None
    )
    try:
        imports = _service(ctx).list_imports(user_id, account_id=account_id, status=status, limit=limit)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not imports:
        click.echo("No imports found.")
        return

    click.echo("\nImports:")
    click.echo("-" * 88)
    for record in imports:
        created = record.created_at.strftime("%Y-%m-%d %H:%M") if record.created_at else ""
        click.echo(
            f"ID: {record.id:4d} | {created} | {record.filename:24s} | {record.status.value:10s} | "
            f"rows {record.total_rows} / new {record.imported_count} / errors {record.error_count}"
        )


@import_group.command("sweep")
@click.option("--older-than", type=int, default=60, show_default=True, help="Minutes in 'processing'")
@click.pass_context
def sweep_imports(ctx, older_than: int):
    """Fail imports whose confirmation never finished."""
    failed = _service(ctx).fail_stale_imports(timedelta(minutes=older_than))
    if not failed:
        click.echo("No stale imports.")
        return
    click.echo(f"Failed {len(failed)} stale import{'s' if len(failed) != 1 else ''}: {', '.join(map(str, failed))}")


def register_commands(cli):
    """Register import commands with main CLI."""
    cli.add_command(import_group, name="import")
