"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, making it easy to change when
the database schema changes.
"""

from decimal import Decimal

from ofxledger.domain import entities as domain
from ofxledger.database.models import (
    Account as ORMAccount,
    Category as ORMCategory,
    CategoryMapping as ORMCategoryMapping,
    Transaction as ORMTransaction,
    StatementImport as ORMStatementImport,
)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        bank_name=orm_account.bank_name,
        currency=orm_account.currency or "",
        balance=Decimal(orm_account.balance if orm_account.balance is not None else 0),
        created_at=orm_account.created_at,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        name=orm_category.name,
        parent_id=orm_category.parent_id,
        created_at=orm_category.created_at,
        category_type=domain.CategoryType(orm_category.category_type or 0),
    )


def category_mapping_to_domain(orm_mapping: ORMCategoryMapping) -> domain.CategoryMapping:
    """Convert SQLAlchemy CategoryMapping model to domain CategoryMapping entity."""
    return domain.CategoryMapping(
        id=orm_mapping.id,
        pattern=orm_mapping.pattern,
        category_id=orm_mapping.category_id,
        is_active=orm_mapping.is_active,
        created_at=orm_mapping.created_at,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        account_id=orm_transaction.account_id,
        date=orm_transaction.date,
        amount=Decimal(orm_transaction.amount),
        description=orm_transaction.description,
        reference_number=orm_transaction.reference_number,
        category_id=orm_transaction.category_id,
        notes=orm_transaction.notes,
        external_id=orm_transaction.external_id,
        imported_at=orm_transaction.imported_at,
    )


def statement_import_to_domain(orm_import: ORMStatementImport) -> domain.StatementImport:
    """Convert SQLAlchemy StatementImport model to domain StatementImport entity."""
    return domain.StatementImport(
        id=orm_import.id,
        account_id=orm_import.account_id,
        file_name=orm_import.file_name,
        bank_id=orm_import.bank_id,
        bank_account_id=orm_import.bank_account_id,
        transaction_count=orm_import.transaction_count,
        duplicate_count=orm_import.duplicate_count,
        start_date=orm_import.start_date,
        end_date=orm_import.end_date,
        balance_change=Decimal(orm_import.balance_change),
        created_at=orm_import.created_at,
    )
