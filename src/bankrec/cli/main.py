"""Main CLI entry point."""

import logging

import click
from bankrec.database.factories import create_sqlite_database

# Import and register all commands at module level
from bankrec.cli.commands import (
    account,
    payee,
    category,
    rule,
    import_cmd,
)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _setup_logging(level: str) -> None:
    """Configure root logging for a CLI run."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides BANKREC_DB_PATH environment variable)",
    envvar="BANKREC_DB_PATH",
)
@click.option(
    "--user",
    "user_id",
    type=int,
    default=1,
    show_default=True,
    help="Acting user ID",
    envvar="BANKREC_USER_ID",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity",
    envvar="BANKREC_LOG_LEVEL",
)
@click.pass_context
def cli(ctx, db_path: str | None, user_id: int, log_level: str):
    """Bankrec - Bank statement import and reconciliation.

    Import CSV, Excel, QIF and OFX/QFX statements into your accounts,
    detect duplicates, reconcile them with existing transactions and
    learn which payee each merchant belongs to.
    """
    ctx.ensure_object(dict)
    _setup_logging(log_level)
    ctx.obj["user_id"] = user_id

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
payee.register_commands(cli)
category.register_commands(cli)
rule.register_commands(cli)
import_cmd.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
