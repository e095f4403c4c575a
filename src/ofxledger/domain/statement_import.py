"""Statement import domain service."""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Iterable, Mapping, Optional, Union

from ofxledger.database.base import Database
from ofxledger.domain.account import AccountService
from ofxledger.domain.category_suggester import CategorySuggester
from ofxledger.domain.duplicates import DuplicateResolver
from ofxledger.domain.entities import (
    ImportBatch,
    ImportReceipt,
    StatementImport,
    StatementReview,
)
from ofxledger.domain.errors import (
    NotFoundError,
    ParseErrorKind,
    StatementParseError,
    ValidationError,
    account_not_found,
)
from ofxledger.domain.import_commit import ImportCommitService
from ofxledger.domain.normalizer import normalize_entry
from ofxledger.domain.statement_parser import parse_statement

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".ofx", ".qfx")

# Uploads above this size are rejected before they are read
MAX_FILE_SIZE = 5 * 1024 * 1024


class StatementImportService:
    """Service for reviewing and committing bank statement imports.

    Reviewing is read-only and can be repeated freely. Committing is the
    only operation that writes, and it re-validates everything it is given.
    No state is kept between the two calls.
    """

    def __init__(self, db: Database):
        """Initialize statement import service.

        Args:
            db: Database instance
        """
        self.db = db
        self.account_service = AccountService(db)
        self.duplicate_resolver = DuplicateResolver(db)
        self.commit_service = ImportCommitService(db)

    def check_upload(self, file_name: Optional[str], size: int) -> None:
        """Validate file name and size before the file is read.

        Raises:
            ValidationError: If the extension is unsupported or the file is too large
        """
        if file_name is not None and Path(file_name).suffix.lower() not in SUPPORTED_EXTENSIONS:
            raise ValidationError(
                f"Unsupported statement file '{file_name}': expected {', '.join(SUPPORTED_EXTENSIONS)}"
            )
        if size > MAX_FILE_SIZE:
            raise ValidationError(
                f"Statement file is too large ({size} bytes, maximum {MAX_FILE_SIZE})"
            )

    def review_file(self, file_path: str, account_id: int, allow_empty: bool = False) -> StatementReview:
        """Review a statement file from disk.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValidationError: If the file is rejected or cannot be parsed
            NotFoundError: If the account doesn't exist
        """
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"Statement file not found: {file_path}")

        self.check_upload(path.name, path.stat().st_size)
        return self.review(path.read_bytes(), account_id, file_name=path.name, allow_empty=allow_empty)

    def review(
        self,
        content: Union[bytes, str],
        account_id: int,
        file_name: Optional[str] = None,
        allow_empty: bool = False,
    ) -> StatementReview:
        """Parse a statement and compare it with the ledger.

        Args:
            content: Statement file contents
            account_id: Account the statement will be imported into
            file_name: Optional declared file name
            allow_empty: If True, a statement without transactions yields an
                empty review instead of an EMPTY_STATEMENT error

        Returns:
            StatementReview with one candidate per statement entry

        Raises:
            NotFoundError: If the account doesn't exist
            StatementParseError: If the statement cannot be parsed
            ValidationError: If the file is rejected
        """
        if isinstance(content, str):
            content = content.encode("utf-8")
        self.check_upload(file_name, len(content))

        if not account_id or self.account_service.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        try:
            statement = parse_statement(content)
        except StatementParseError as exc:
            if exc.kind is not ParseErrorKind.EMPTY_STATEMENT or not allow_empty:
                raise
            statement = exc.statement

        candidates = [normalize_entry(entry) for entry in statement.entries]
        candidates = self.duplicate_resolver.resolve(candidates, account_id)

        suggester = CategorySuggester.from_database(self.db)
        candidates = [
            c if c.is_duplicate else replace(c, suggested_category_id=suggester.suggest(c))
            for c in candidates
        ]

        review = StatementReview(
            account_id=account_id,
            statement=statement,
            transactions=tuple(candidates),
            file_name=file_name,
        )
        summary = review.summary
        logger.info(
            "Reviewed %s for account %s: %d entries, %d new, %d duplicates",
            file_name or "statement",
            account_id,
            summary.total,
            summary.new,
            summary.duplicates,
        )
        return review

    def build_batch(
        self,
        review: StatementReview,
        adjust_balance: bool = True,
        exclude: Iterable[str] = (),
        category_overrides: Optional[Mapping[str, Optional[int]]] = None,
        use_suggestions: bool = True,
    ) -> ImportBatch:
        """Turn a review plus the user's corrections into a commit batch.

        Args:
            review: Result of review()
            adjust_balance: Whether the account balance follows the import
            exclude: External ids the user deselected
            category_overrides: External id to category ID (None clears it)
            use_suggestions: If False, suggested categories are not kept

        Raises:
            ValidationError: If an excluded or overridden id is not in the review
        """
        exclude = set(exclude)
        overrides = dict(category_overrides or {})
        known_ids = {c.external_id for c in review.transactions}
        unknown = (exclude | set(overrides)) - known_ids
        if unknown:
            raise ValidationError(f"Unknown external ids: {', '.join(sorted(unknown))}")

        candidates = []
        for candidate in review.transactions:
            if not candidate.selected or candidate.external_id in exclude:
                continue
            if candidate.external_id in overrides:
                candidate = replace(candidate, suggested_category_id=overrides[candidate.external_id])
            elif not use_suggestions:
                candidate = replace(candidate, suggested_category_id=None)
            candidates.append(candidate)

        statement = review.statement
        return ImportBatch(
            target_account_id=review.account_id,
            candidates=tuple(candidates),
            adjust_balance=adjust_balance,
            bank_id=statement.bank_id,
            bank_account_id=statement.bank_account_id,
            period_start=statement.period_start,
            period_end=statement.period_end,
            file_name=review.file_name,
            reviewed_duplicates=review.summary.duplicates,
        )

    def commit(self, batch: ImportBatch) -> ImportReceipt:
        """Commit a batch. See ImportCommitService.commit."""
        return self.commit_service.commit(batch)

    def list_imports(self, account_id: Optional[int] = None) -> list[StatementImport]:
        """List the statement import history, newest first."""
        return self.db.list_statement_imports(account_id=account_id)
