"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so schema changes (JSON columns,
new audit fields) stay out of the domain services.
"""

from decimal import Decimal
from typing import Any, Optional

from bankrec.domain import entities as domain
from bankrec.database.models import (
    Account as ORMAccount,
    Payee as ORMPayee,
    Category as ORMCategory,
    Transaction as ORMTransaction,
    Import as ORMImport,
    PayeeAlias as ORMPayeeAlias,
    Rule as ORMRule,
)
from bankrec.utils.amount_parser import CENTS


def _money(value: Any) -> Decimal:
    """Numeric columns can come back as float on SQLite; pin them to cents."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENTS)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        user_id=orm_account.user_id,
        name=orm_account.name,
        bank_name=orm_account.bank_name,
        initial_balance=_money(orm_account.initial_balance),
        current_balance=_money(orm_account.current_balance),
        created_at=orm_account.created_at,
    )


def payee_to_domain(orm_payee: ORMPayee) -> domain.Payee:
    """Convert SQLAlchemy Payee model to domain Payee entity."""
    return domain.Payee(
        id=orm_payee.id,
        user_id=orm_payee.user_id,
        name=orm_payee.name,
        created_at=orm_payee.created_at,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        user_id=orm_category.user_id,
        name=orm_category.name,
        created_at=orm_category.created_at,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        user_id=orm_transaction.user_id,
        account_id=orm_transaction.account_id,
        date=orm_transaction.date,
        amount=_money(orm_transaction.amount),
        description=orm_transaction.description,
        reference_number=orm_transaction.reference_number,
        category_id=orm_transaction.category_id,
        payee_id=orm_transaction.payee_id,
        status=orm_transaction.status,
        is_reconciled=bool(orm_transaction.is_reconciled),
        reconciled_at=orm_transaction.reconciled_at,
        value_date=orm_transaction.value_date,
        purchase_date=orm_transaction.purchase_date,
        import_id=orm_transaction.import_id,
        import_hash=orm_transaction.import_hash,
        created_at=orm_transaction.created_at,
    )


def error_details_to_domain(raw: Optional[list[dict[str, Any]]]) -> list[domain.ImportErrorDetail]:
    """Convert the stored JSON error list to ImportErrorDetail entities."""
    return [
        domain.ImportErrorDetail(row_id=item.get("row_id"), error=item.get("error", ""))
        for item in (raw or [])
    ]


def import_to_domain(orm_import: ORMImport) -> domain.Import:
    """Convert SQLAlchemy Import model to domain Import entity."""
    return domain.Import(
        id=orm_import.id,
        user_id=orm_import.user_id,
        account_id=orm_import.account_id,
        filename=orm_import.filename,
        file_type=orm_import.file_type,
        status=domain.ImportStatus(orm_import.status),
        total_rows=orm_import.total_rows or 0,
        imported_count=orm_import.imported_count or 0,
        duplicate_count=orm_import.duplicate_count or 0,
        matched_count=orm_import.matched_count or 0,
        error_count=orm_import.error_count or 0,
        error_details=error_details_to_domain(orm_import.error_details),
        config=dict(orm_import.config or {}),
        created_at=orm_import.created_at,
        started_at=orm_import.started_at,
        completed_at=orm_import.completed_at,
    )


def payee_alias_to_domain(orm_alias: ORMPayeeAlias) -> domain.PayeeAlias:
    """Convert SQLAlchemy PayeeAlias model to domain PayeeAlias entity."""
    return domain.PayeeAlias(
        id=orm_alias.id,
        user_id=orm_alias.user_id,
        payee_id=orm_alias.payee_id,
        bank_description=orm_alias.bank_description,
        normalized_pattern=orm_alias.normalized_pattern,
        source=domain.AliasSource(orm_alias.source),
        times_matched=orm_alias.times_matched or 0,
        last_matched_at=orm_alias.last_matched_at,
        created_at=orm_alias.created_at,
    )


def rule_to_domain(orm_rule: ORMRule) -> domain.Rule:
    """Convert SQLAlchemy Rule model to domain Rule entity."""
    conditions = [
        domain.RuleCondition(
            field=item["field"],
            operator=item["operator"],
            value=item.get("value"),
            case_sensitive=bool(item.get("case_sensitive", False)),
        )
        for item in (orm_rule.conditions or [])
    ]
    return domain.Rule(
        id=orm_rule.id,
        user_id=orm_rule.user_id,
        name=orm_rule.name,
        priority=orm_rule.priority,
        is_active=bool(orm_rule.is_active),
        conditions=conditions,
        action_category_id=orm_rule.action_category_id,
        created_at=orm_rule.created_at,
    )
