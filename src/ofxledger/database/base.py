"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional, Iterable
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from ofxledger.domain.entities import (
    Account,
    Category,
    CategoryMapping,
    CategoryType,
    Transaction,
    StatementImport,
)


class Database(ABC):
    """Abstract database interface for ofxledger."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Open a single transaction scope.

        Writes made inside the scope are committed together when the block
        exits normally and rolled back together when it raises.
        """
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self, name: str, bank_name: str, currency: str = "", balance: Decimal = Decimal("0.00")
    ) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """List all accounts."""
        pass

    @abstractmethod
    def lock_account(self, account_id: int) -> Optional[Account]:
        """Take the write lock on an account row and return its current state.

        Must be called inside ``atomic()``; the lock is held until the scope ends.
        """
        pass

    @abstractmethod
    def adjust_account_balance(self, account_id: int, delta: Decimal) -> Decimal:
        """Add delta to an account balance. Returns the new balance."""
        pass

    # Category operations
    @abstractmethod
    def create_category(
        self,
        name: str,
        parent_id: Optional[int] = None,
        category_type: CategoryType = CategoryType.EXPENSE,
    ) -> int:
        """Create a category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def get_category_by_path(self, path: str) -> Optional[Category]:
        """Get category by path (e.g., 'Food & Dining > Groceries')."""
        pass

    @abstractmethod
    def list_categories(self) -> list[Category]:
        """List all categories."""
        pass

    @abstractmethod
    def create_category_mapping(self, pattern: str, category_id: int) -> int:
        """Create a description pattern rule. Returns mapping ID."""
        pass

    @abstractmethod
    def list_category_mappings(self, active_only: bool = True) -> list[CategoryMapping]:
        """List category mappings in creation order."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(
        self,
        account_id: int,
        date: date,
        amount: Decimal,
        description: Optional[str] = None,
        reference_number: Optional[str] = None,
        category_id: Optional[int] = None,
        notes: Optional[str] = None,
        external_id: Optional[str] = None,
    ) -> int:
        """Create a transaction. Returns transaction ID."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        account_id: Optional[int] = None,
        categorized_only: bool = False,
    ) -> list[Transaction]:
        """List transactions, newest first.

        Args:
            account_id: Optional account ID filter
            categorized_only: If True, only return transactions with a category
        """
        pass

    # Imported external id operations
    @abstractmethod
    def find_imported_external_ids(self, account_id: int, external_ids: Iterable[str]) -> set[str]:
        """Return the subset of external_ids already imported for account."""
        pass

    @abstractmethod
    def record_imported_external_id(self, account_id: int, external_id: str, transaction_id: int) -> int:
        """Record an external id as imported. Returns record ID."""
        pass

    # Statement import history
    @abstractmethod
    def record_statement_import(
        self,
        account_id: int,
        transaction_count: int,
        duplicate_count: int,
        balance_change: Decimal,
        file_name: Optional[str] = None,
        bank_id: Optional[str] = None,
        bank_account_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> int:
        """Record a committed statement import. Returns import ID."""
        pass

    @abstractmethod
    def list_statement_imports(self, account_id: Optional[int] = None) -> list[StatementImport]:
        """List statement imports, newest first."""
        pass
