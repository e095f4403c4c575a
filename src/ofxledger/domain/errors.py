"""Shared domain error messages and error types."""

from enum import Enum
from typing import Any, Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class ParseErrorKind(str, Enum):
    """Reasons a statement file could not be turned into a statement."""

    NOT_A_STATEMENT_FILE = "not_a_statement_file"
    MALFORMED_AMOUNT = "malformed_amount"
    MALFORMED_DATE = "malformed_date"
    EMPTY_STATEMENT = "empty_statement"


class StatementParseError(ValidationError):
    """A statement file could not be parsed.

    For EMPTY_STATEMENT the otherwise valid statement is attached as
    ``statement`` so callers can decide to accept an empty import.
    """

    def __init__(self, kind: ParseErrorKind, message: str, statement: Optional[Any] = None):
        super().__init__(message)
        self.kind = kind
        self.statement = statement


class CommitErrorKind(str, Enum):
    """Reasons an import batch was not committed."""

    UNKNOWN_ACCOUNT = "unknown_account"
    DUPLICATE_SELECTED = "duplicate_selected"
    NON_POSITIVE_AMOUNT = "non_positive_amount"
    STORAGE_FAILURE = "storage_failure"


class CommitError(DomainError):
    """An import batch was rejected or rolled back. Nothing was written."""

    def __init__(self, kind: CommitErrorKind, message: str):
        super().__init__(message)
        self.kind = kind

    @property
    def retryable(self) -> bool:
        """Only storage failures may be retried with the identical batch."""
        return self.kind is CommitErrorKind.STORAGE_FAILURE


def account_not_found(account_id: Optional[int]) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def category_not_found(category_id: int) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def category_path_not_found(path: str) -> str:
    """Return message for missing category by path."""
    return f"Category '{path}' not found"


def duplicate_account_name(name: str) -> str:
    """Return message for an account name that is already taken."""
    return f"Account with name '{name}' already exists"


def duplicate_selected(external_id: str, account_id: int) -> str:
    """Return message for a duplicate entry selected for commit."""
    return (
        f"Transaction with external id '{external_id}' is already imported "
        f"for account {account_id} and cannot be selected"
    )


def repeated_external_id(external_id: str) -> str:
    """Return message for an external id that appears twice in one batch."""
    return f"External id '{external_id}' appears more than once in the batch"


def non_positive_amount(external_id: str, amount: Any) -> str:
    """Return message for a selected entry without a positive amount."""
    return f"Transaction '{external_id}' has non-positive amount {amount}"
