"""Domain model entities for ofxledger.

These are pure data classes representing business concepts, independent of
database schema. Ledger entities (accounts, categories, transactions) are
read back from the database; statement entities (parsed statements,
candidates, batches) only live for the duration of one review or commit.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Optional


class CategoryType(IntEnum):
    """Category type as stored in the database."""

    EXPENSE = 0
    INCOME = 1
    TRANSFER = 2


class Direction(str, Enum):
    """Direction of money movement relative to the account."""

    CREDIT = "credit"
    DEBIT = "debit"

    @property
    def ledger_type(self) -> str:
        """Ledger name for the direction (income or expense)."""
        return "income" if self is Direction.CREDIT else "expense"

    def matches(self, category_type: CategoryType) -> bool:
        """Return True if a category of the given type fits this direction."""
        if category_type == CategoryType.TRANSFER:
            return True
        if self is Direction.CREDIT:
            return category_type == CategoryType.INCOME
        return category_type == CategoryType.EXPENSE


@dataclass(frozen=True)
class Account:
    """Bank account domain entity."""

    id: int
    name: str
    bank_name: str
    currency: str
    balance: Decimal
    created_at: datetime


@dataclass(frozen=True)
class Category:
    """Category domain entity with hierarchical structure."""

    id: int
    name: str
    parent_id: Optional[int]
    created_at: datetime
    category_type: CategoryType = CategoryType.EXPENSE


@dataclass(frozen=True)
class CategoryMapping:
    """Description pattern that maps to a category."""

    id: int
    pattern: str
    category_id: int
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class Transaction:
    """Ledger transaction domain entity.

    The amount is signed: credits are positive, debits negative.
    """

    id: int
    account_id: int
    date: date
    amount: Decimal
    description: Optional[str]
    reference_number: Optional[str]
    category_id: Optional[int]
    notes: Optional[str]
    external_id: Optional[str]
    imported_at: datetime

    @property
    def direction(self) -> Direction:
        return Direction.DEBIT if self.amount < 0 else Direction.CREDIT


@dataclass(frozen=True)
class StatementImport:
    """History record of one committed statement import."""

    id: int
    account_id: int
    file_name: Optional[str]
    bank_id: Optional[str]
    bank_account_id: Optional[str]
    transaction_count: int
    duplicate_count: int
    start_date: Optional[date]
    end_date: Optional[date]
    balance_change: Decimal
    created_at: datetime


@dataclass(frozen=True)
class RawEntry:
    """One transaction record as found in a statement file."""

    external_id: str
    posted_date: date
    signed_amount: Decimal
    raw_description: str
    raw_memo: Optional[str] = None
    transaction_type: str = ""
    reference_number: Optional[str] = None


@dataclass(frozen=True)
class ParsedStatement:
    """Normalized in-memory view of a statement file."""

    bank_id: str
    bank_account_id: str
    account_type: str
    currency: str
    entries: tuple[RawEntry, ...]
    closing_balance: Optional[Decimal] = None
    balance_date: Optional[date] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None


@dataclass(frozen=True)
class TransactionCandidate:
    """A statement entry prepared for review and commit."""

    external_id: str
    date: date
    amount: Decimal
    direction: Direction
    description: str
    is_duplicate: bool = False
    suggested_category_id: Optional[int] = None
    selected: bool = True
    memo: Optional[str] = None
    reference_number: Optional[str] = None
    zero_amount: bool = False
    synthetic_id: bool = False

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.direction is Direction.CREDIT else -self.amount


@dataclass(frozen=True)
class ReviewSummary:
    """Counts shown alongside a review."""

    total: int
    new: int
    duplicates: int


@dataclass(frozen=True)
class StatementReview:
    """Result of reviewing a statement file against an account."""

    account_id: int
    statement: ParsedStatement
    transactions: tuple[TransactionCandidate, ...]
    file_name: Optional[str] = None

    @property
    def summary(self) -> ReviewSummary:
        duplicates = sum(1 for c in self.transactions if c.is_duplicate)
        return ReviewSummary(
            total=len(self.transactions),
            new=len(self.transactions) - duplicates,
            duplicates=duplicates,
        )


@dataclass(frozen=True)
class ImportBatch:
    """Caller-approved candidates to commit as one unit."""

    target_account_id: Optional[int]
    candidates: tuple[TransactionCandidate, ...]
    adjust_balance: bool = True
    bank_id: Optional[str] = None
    bank_account_id: Optional[str] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    file_name: Optional[str] = None
    reviewed_duplicates: int = 0

    @property
    def selected(self) -> tuple[TransactionCandidate, ...]:
        return tuple(c for c in self.candidates if c.selected)


@dataclass(frozen=True)
class ImportReceipt:
    """Outcome of a successful commit."""

    imported: int
    duplicates_skipped: int
    balance_change: Decimal
    import_id: Optional[int] = None
    transaction_ids: tuple[int, ...] = field(default=())
