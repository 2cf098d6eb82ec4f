"""SQLAlchemy models for bankrec database."""

from datetime import datetime, UTC
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _now() -> datetime:
    return datetime.now(UTC)


class Account(Base):
    """Bank account model with its cached balance."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    bank_name = Column(String, nullable=False)
    initial_balance = Column(Numeric(14, 2), default=0, nullable=False)
    current_balance = Column(Numeric(14, 2), default=0, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_account_user_name"),)

    # Relationships
    transactions = relationship("Transaction", back_populates="account", cascade="all, delete-orphan")
    imports = relationship("Import", back_populates="account", cascade="all, delete-orphan")


class Payee(Base):
    """Payee model."""

    __tablename__ = "payees"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    aliases = relationship("PayeeAlias", back_populates="payee", cascade="all, delete-orphan")


class Category(Base):
    """Category model."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)


class Transaction(Base):
    """Ledger transaction model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    date = Column(Date, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    description = Column(String, nullable=True)
    reference_number = Column(String, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    payee_id = Column(Integer, ForeignKey("payees.id"), nullable=True)
    status = Column(String, default="cleared", nullable=False)
    is_reconciled = Column(Boolean, default=False, nullable=False)
    reconciled_at = Column(DateTime, nullable=True)
    value_date = Column(Date, nullable=True)
    purchase_date = Column(Date, nullable=True)
    import_id = Column(Integer, ForeignKey("imports.id"), nullable=True)
    import_hash = Column(String(32), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (
        Index("ix_transactions_account_date", "account_id", "date"),
        Index("ix_transactions_account_import_hash", "account_id", "import_hash"),
    )

    # Relationships
    account = relationship("Account", back_populates="transactions")


class Import(Base):
    """Statement import model (audit trail, never deleted automatically)."""

    __tablename__ = "imports"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    filename = Column(String, nullable=False)
    file_type = Column(String, nullable=False)
    status = Column(String, default="pending", nullable=False, index=True)
    total_rows = Column(Integer, default=0, nullable=False)
    imported_count = Column(Integer, default=0, nullable=False)
    duplicate_count = Column(Integer, default=0, nullable=False)
    matched_count = Column(Integer, default=0, nullable=False)
    error_count = Column(Integer, default=0, nullable=False)
    error_details = Column(JSON, nullable=True)
    config = Column(JSON, nullable=True)
    # Staged records and their analysis, read back at confirmation
    staged_data = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    account = relationship("Account", back_populates="imports")


class PayeeAlias(Base):
    """Merchant pattern to payee mapping."""

    __tablename__ = "payee_aliases"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    payee_id = Column(Integer, ForeignKey("payees.id"), nullable=False, index=True)
    bank_description = Column(Text, nullable=False)
    normalized_pattern = Column(Text, nullable=False)
    source = Column(String, default="import_learn", nullable=False)
    times_matched = Column(Integer, default=1, nullable=False)
    last_matched_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    # One alias per pattern per user
    __table_args__ = (
        UniqueConstraint("user_id", "normalized_pattern", name="uq_alias_user_pattern"),
    )

    # Relationships
    payee = relationship("Payee", back_populates="aliases")


class Rule(Base):
    """Categorization rule model."""

    __tablename__ = "rules"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    priority = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    conditions = Column(JSON, nullable=False)
    action_category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
