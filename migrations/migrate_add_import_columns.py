#!/usr/bin/env python3
"""Migration script to add import tracking columns to the transactions table.

Ledgers created before statement imports existed lack the columns that
link a transaction to the import that created it. This migration adds:
- is_reconciled (INTEGER, default=0)
- reconciled_at (DATETIME)
- value_date (DATE)
- purchase_date (DATE)
- import_id (INTEGER, references imports.id)
- import_hash (VARCHAR(32)), indexed together with account_id

Missing tables (imports, payee_aliases, rules, ...) are created by the
schema initialization that runs when the database is opened.

Usage:
    python migrations/migrate_add_import_columns.py [--db-path PATH]
"""

import sys
from pathlib import Path

# Add src to path so we can import bankrec modules
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy import text, inspect
from bankrec.database.factories import create_sqlite_database

NEW_COLUMNS = [
    ("is_reconciled", "INTEGER NOT NULL DEFAULT 0"),
    ("reconciled_at", "DATETIME"),
    ("value_date", "DATE"),
    ("purchase_date", "DATE"),
    ("import_id", "INTEGER REFERENCES imports(id)"),
    ("import_hash", "VARCHAR(32)"),
]

IMPORT_HASH_INDEX = "ix_transactions_account_import_hash"


def column_exists(engine, table_name: str, column_name: str) -> bool:
    """Check if a column exists in a table.

    Args:
        engine: SQLAlchemy engine
        table_name: Name of the table
        column_name: Name of the column

    Returns:
        True if column exists, False otherwise
    """
    inspector = inspect(engine)
    columns = [col["name"] for col in inspector.get_columns(table_name)]
    return column_name in columns


def migrate_database(database_path: str | None = None) -> list[str]:
    """Migrate database to add import tracking columns.

    Args:
        database_path: Path to database file. If None, uses default location.

    Returns:
        Names of the columns that were added (empty if already migrated)

    Raises:
        Exception: If migration fails
    """
    # Create database instance
    db = create_sqlite_database(database_path=database_path)
    db.connect()

    try:
        # Get engine from sessionmaker by creating a session and accessing its bind
        session = db.session_factory()
        try:
            engine = session.bind
            if engine is None:
                raise Exception("Could not get database engine from session")
        finally:
            session.close()

        # Check if table exists
        inspector = inspect(engine)
        if "transactions" not in inspector.get_table_names():
            raise Exception("Table 'transactions' does not exist. Please initialize the database schema first.")

        missing = [(name, ddl) for name, ddl in NEW_COLUMNS if not column_exists(engine, "transactions", name)]
        if not missing:
            print("Migration already applied: columns exist in transactions table")
            return []

        print("Starting migration: adding import tracking columns...")

        with engine.begin() as conn:
            # SQLite supports ALTER TABLE ADD COLUMN with DEFAULT since version 3.25.0
            for name, ddl in missing:
                conn.execute(text(f"ALTER TABLE transactions ADD COLUMN {name} {ddl}"))
                print(f"  Added column: {name}")

            conn.execute(
                text(
                    f"CREATE INDEX IF NOT EXISTS {IMPORT_HASH_INDEX} "
                    "ON transactions (account_id, import_hash)"
                )
            )
            print(f"  Created index: {IMPORT_HASH_INDEX}")

        print("Migration completed successfully!")
        return [name for name, _ in missing]

    except Exception as e:
        print(f"Migration failed: {e}")
        raise
    finally:
        db.disconnect()


def main():
    """Main entry point for migration script."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Migrate database to add import tracking columns"
    )
    parser.add_argument(
        "--db-path",
        type=str,
        help="Path to database file (overrides BANKREC_DB_PATH environment variable)",
    )
    args = parser.parse_args()

    try:
        migrate_database(database_path=args.db_path)
        return 0
    except Exception as e:
        print(f"\nMigration failed: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
