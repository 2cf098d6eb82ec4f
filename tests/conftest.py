"""Shared pytest fixtures for bankrec tests."""

import tempfile
import os
from decimal import Decimal
import pytest

from bankrec.database.factories import create_sqlite_database
from bankrec.domain.account import AccountService
from bankrec.domain.ledger import LedgerService
from bankrec.domain.payee_alias import PayeeAliasService
from bankrec.domain.rules import RuleService
from bankrec.domain.statement_import import StatementImportService

USER_ID = 1
OTHER_USER_ID = 2

# Semicolon-separated export with decimal commas, as French banks produce
SAMPLE_CSV = (
    "Date;Libelle;Montant\n"
    "15/01/2025;CARTE 15/01/25 CAFE DU COIN CB*1234;-42,00\n"
    "16/01/2025;PRLV SEPA EDF;-61,30\n"
    "17/01/2025;VIR SEPA SALAIRE ACME;2 500,00\n"
)

SAMPLE_CSV_CONFIG = {
    "columns": {"date": 0, "description": 1, "amount": 2},
}


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def ledger_service(temp_db):
    """Create a LedgerService with a temporary database."""
    return LedgerService(temp_db)


@pytest.fixture
def alias_service(temp_db):
    """Create a PayeeAliasService with a temporary database."""
    return PayeeAliasService(temp_db)


@pytest.fixture
def rule_service(temp_db):
    """Create a RuleService with a temporary database."""
    return RuleService(temp_db)


@pytest.fixture
def import_service(temp_db):
    """Create a StatementImportService with a temporary database."""
    return StatementImportService(temp_db)


@pytest.fixture
def sample_account(account_service):
    """Create a sample account for testing."""
    account_id = account_service.create_account(
        user_id=USER_ID, name="Checking", bank_name="Test Bank", initial_balance=Decimal("100.00")
    )
    return account_service.get_account(account_id)


@pytest.fixture
def sample_payee(ledger_service):
    """Create a sample payee and return its ID."""
    return ledger_service.create_payee(USER_ID, "Cafe du Coin")


@pytest.fixture
def sample_category(ledger_service):
    """Create a sample category and return its ID."""
    return ledger_service.create_category(USER_ID, "Restaurants")


@pytest.fixture
def sample_csv_bytes():
    """Sample delimited statement."""
    return SAMPLE_CSV.encode("utf-8")


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
