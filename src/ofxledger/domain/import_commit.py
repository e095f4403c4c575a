"""Atomic commit of reviewed statement entries."""

import logging
from dataclasses import replace
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from ofxledger.database.base import Database
from ofxledger.domain.entities import ImportBatch, ImportReceipt, TransactionCandidate
from ofxledger.domain.errors import (
    CommitError,
    CommitErrorKind,
    account_not_found,
    duplicate_selected,
    non_positive_amount,
    repeated_external_id,
)

logger = logging.getLogger(__name__)


class CommitState(str, Enum):
    """States of one commit run. FINALIZED and ABORTED are terminal."""

    PENDING = "pending"
    VALIDATED = "validated"
    RESERVED = "reserved"
    WRITTEN = "written"
    FINALIZED = "finalized"
    ABORTED = "aborted"


_NEXT_STATE = {
    CommitState.PENDING: CommitState.VALIDATED,
    CommitState.VALIDATED: CommitState.RESERVED,
    CommitState.RESERVED: CommitState.WRITTEN,
    CommitState.WRITTEN: CommitState.FINALIZED,
}

_TERMINAL_STATES = (CommitState.FINALIZED, CommitState.ABORTED)


class CommitPipeline:
    """One run of the commit state machine for a single batch.

    VALIDATED -> RESERVED -> WRITTEN -> FINALIZED, or ABORTED from any
    non-terminal state. Everything from RESERVED on happens inside one
    database transaction, so an abort leaves no transactions, no imported
    external ids and no balance change behind.
    """

    def __init__(self, db: Database, batch: ImportBatch):
        self.db = db
        self.batch = batch
        self.state = CommitState.PENDING
        self._new: list[TransactionCandidate] = []
        self._skipped = 0
        self._transaction_ids: list[int] = []

    def _advance(self, state: CommitState) -> None:
        if self.state in _TERMINAL_STATES:
            raise RuntimeError(f"Commit already {self.state.value}")
        if state is not CommitState.ABORTED and _NEXT_STATE[self.state] is not state:
            raise RuntimeError(f"Illegal commit transition {self.state.value} -> {state.value}")
        logger.debug("Commit for account %s: %s -> %s", self.batch.target_account_id, self.state.value, state.value)
        self.state = state

    def _abort(self) -> None:
        if self.state not in _TERMINAL_STATES:
            self._advance(CommitState.ABORTED)

    def run(self) -> ImportReceipt:
        """Execute the batch.

        Returns:
            ImportReceipt for the committed batch

        Raises:
            CommitError: Batch rejected during validation, or rolled back
            RuntimeError: The pipeline was already run
        """
        if self.state is not CommitState.PENDING:
            raise RuntimeError("A commit pipeline can only run once")

        try:
            self._validate()
            with self.db.atomic():
                self._reserve()
                self._write()
                receipt = self._finalize()
        except SQLAlchemyError as exc:
            self._abort()
            logger.error(
                "Import into account %s rolled back: %s", self.batch.target_account_id, exc
            )
            raise CommitError(
                CommitErrorKind.STORAGE_FAILURE,
                f"Import into account {self.batch.target_account_id} was rolled back: {exc}",
            ) from exc
        except BaseException:
            self._abort()
            raise

        self._advance(CommitState.FINALIZED)
        logger.info(
            "Imported %d transactions into account %s (%d duplicates skipped, balance change %s)",
            receipt.imported,
            self.batch.target_account_id,
            receipt.duplicates_skipped,
            receipt.balance_change,
        )
        return receipt

    def _validate(self) -> None:
        account_id = self.batch.target_account_id
        if not account_id or self.db.get_account(account_id) is None:
            raise CommitError(CommitErrorKind.UNKNOWN_ACCOUNT, account_not_found(account_id))

        selected = self.batch.selected
        seen: set[str] = set()
        for candidate in selected:
            if candidate.is_duplicate:
                raise CommitError(
                    CommitErrorKind.DUPLICATE_SELECTED,
                    duplicate_selected(candidate.external_id, account_id),
                )
            if candidate.external_id in seen:
                raise CommitError(
                    CommitErrorKind.DUPLICATE_SELECTED, repeated_external_id(candidate.external_id)
                )
            seen.add(candidate.external_id)
            if candidate.amount <= 0:
                raise CommitError(
                    CommitErrorKind.NON_POSITIVE_AMOUNT,
                    non_positive_amount(candidate.external_id, candidate.amount),
                )

        # Review-time duplicate flags are advisory; this check is authoritative
        already_imported = self.db.find_imported_external_ids(account_id, seen)
        if already_imported:
            logger.info(
                "Skipping %d entries already imported into account %s",
                len(already_imported),
                account_id,
            )
        self._skipped = len(already_imported)

        known_categories: dict[int, bool] = {}
        for candidate in selected:
            if candidate.external_id in already_imported:
                continue
            self._new.append(self._with_known_category(candidate, known_categories))

        self._advance(CommitState.VALIDATED)

    def _with_known_category(
        self, candidate: TransactionCandidate, known: dict[int, bool]
    ) -> TransactionCandidate:
        category_id = candidate.suggested_category_id
        if category_id is None:
            return candidate
        if category_id not in known:
            known[category_id] = self.db.get_category(category_id) is not None
        if known[category_id]:
            return candidate
        logger.warning(
            "Dropping unknown category %s from transaction '%s'", category_id, candidate.external_id
        )
        return replace(candidate, suggested_category_id=None)

    def _reserve(self) -> None:
        account_id = self.batch.target_account_id
        if self.db.lock_account(account_id) is None:
            raise CommitError(CommitErrorKind.UNKNOWN_ACCOUNT, account_not_found(account_id))
        self._advance(CommitState.RESERVED)

    def _write(self) -> None:
        account_id = self.batch.target_account_id
        for candidate in self._new:
            transaction_id = self.db.create_transaction(
                account_id=account_id,
                date=candidate.date,
                amount=candidate.signed_amount,
                description=candidate.description,
                reference_number=candidate.reference_number,
                category_id=candidate.suggested_category_id,
                notes=candidate.memo,
                external_id=candidate.external_id,
            )
            self.db.record_imported_external_id(account_id, candidate.external_id, transaction_id)
            self._transaction_ids.append(transaction_id)
        self._advance(CommitState.WRITTEN)

    def _finalize(self) -> ImportReceipt:
        account_id = self.batch.target_account_id
        balance_change = Decimal("0.00")
        if self.batch.adjust_balance and self._new:
            balance_change = sum((c.signed_amount for c in self._new), Decimal("0.00"))
            self.db.adjust_account_balance(account_id, balance_change)

        duplicates = self.batch.reviewed_duplicates + self._skipped
        import_id = self.db.record_statement_import(
            account_id=account_id,
            transaction_count=len(self._new),
            duplicate_count=duplicates,
            balance_change=balance_change,
            file_name=self.batch.file_name,
            bank_id=self.batch.bank_id or None,
            bank_account_id=self.batch.bank_account_id or None,
            start_date=self.batch.period_start,
            end_date=self.batch.period_end,
        )

        return ImportReceipt(
            imported=len(self._new),
            duplicates_skipped=duplicates,
            balance_change=balance_change,
            import_id=import_id,
            transaction_ids=tuple(self._transaction_ids),
        )


class ImportCommitService:
    """Service for committing import batches."""

    def __init__(self, db: Database):
        """Initialize import commit service.

        Args:
            db: Database instance
        """
        self.db = db
        self.last_pipeline: Optional[CommitPipeline] = None

    def commit(self, batch: ImportBatch) -> ImportReceipt:
        """Commit a batch as a single unit.

        Args:
            batch: Caller-approved batch; only selected candidates are written

        Returns:
            ImportReceipt with imported count, duplicates skipped and balance change

        Raises:
            CommitError: UNKNOWN_ACCOUNT, DUPLICATE_SELECTED or NON_POSITIVE_AMOUNT
                when the batch is rejected, STORAGE_FAILURE when it was rolled back
        """
        pipeline = CommitPipeline(self.db, batch)
        self.last_pipeline = pipeline
        return pipeline.run()
