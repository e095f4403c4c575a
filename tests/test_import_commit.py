"""Tests for the atomic import commit."""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from ofxledger.database.factories import create_sqlite_database
from ofxledger.domain.entities import Direction, ImportBatch, TransactionCandidate
from ofxledger.domain.errors import CommitError, CommitErrorKind
from ofxledger.domain.import_commit import CommitPipeline, CommitState, ImportCommitService


def _candidate(external_id, signed_amount, description="Statement entry", **overrides):
    amount = Decimal(signed_amount)
    values = dict(
        external_id=external_id,
        date=date(2024, 1, 15),
        amount=abs(amount),
        direction=Direction.CREDIT if amount > 0 else Direction.DEBIT,
        description=description,
    )
    values.update(overrides)
    return TransactionCandidate(**values)


def _batch(account_id, *candidates, **overrides):
    return ImportBatch(target_account_id=account_id, candidates=tuple(candidates), **overrides)


def _balance(db, account_id):
    return db.get_account(account_id).balance


@pytest.fixture
def commit_service(temp_db):
    return ImportCommitService(temp_db)


@pytest.fixture
def three_entries():
    return (
        _candidate("E1", "100.00", "Refund"),
        _candidate("E2", "-40.00", "Hardware store"),
        _candidate("E3", "-15.50", "Lunch"),
    )


class TestCommit:
    """Tests for successful commits."""

    def test_writes_transactions(self, temp_db, commit_service, sample_account, sample_categories):
        groceries = sample_categories["Food & Dining > Groceries"]
        batch = _batch(
            sample_account.id,
            _candidate(
                "A1",
                "-35.20",
                "Market",
                suggested_category_id=groceries,
                memo="Card 1234",
                reference_number="REF-9",
            ),
        )

        receipt = commit_service.commit(batch)

        assert receipt.imported == 1
        assert len(receipt.transaction_ids) == 1
        txn = temp_db.get_transaction(receipt.transaction_ids[0])
        assert txn.account_id == sample_account.id
        assert txn.date == date(2024, 1, 15)
        assert txn.amount == Decimal("-35.20")
        assert txn.description == "Market"
        assert txn.category_id == groceries
        assert txn.notes == "Card 1234"
        assert txn.reference_number == "REF-9"
        assert txn.external_id == "A1"
        assert temp_db.find_imported_external_ids(sample_account.id, ["A1"]) == {"A1"}

    def test_balance_arithmetic(self, temp_db, commit_service, sample_account, three_entries):
        """Test the balance moves by exactly the sum of signed amounts."""
        receipt = commit_service.commit(_batch(sample_account.id, *three_entries))

        assert receipt.imported == 3
        assert receipt.balance_change == Decimal("44.50")
        assert _balance(temp_db, sample_account.id) == Decimal("1044.50")

    def test_balance_untouched_without_adjustment(self, temp_db, commit_service, sample_account, three_entries):
        receipt = commit_service.commit(_batch(sample_account.id, *three_entries, adjust_balance=False))

        assert receipt.imported == 3
        assert receipt.balance_change == Decimal("0.00")
        assert _balance(temp_db, sample_account.id) == Decimal("1000.00")

    def test_commit_is_idempotent(self, temp_db, commit_service, sample_account, three_entries):
        """Test committing the same candidates twice imports them once."""
        batch = _batch(sample_account.id, *three_entries)

        first = commit_service.commit(batch)
        second = commit_service.commit(batch)

        assert first.imported == 3
        assert second.imported == 0
        assert second.duplicates_skipped == 3
        assert second.balance_change == Decimal("0.00")
        assert _balance(temp_db, sample_account.id) == Decimal("1044.50")
        assert len(temp_db.list_transactions(account_id=sample_account.id)) == 3

    def test_partly_imported_batch(self, temp_db, commit_service, sample_account, three_entries):
        commit_service.commit(_batch(sample_account.id, three_entries[0]))

        receipt = commit_service.commit(_batch(sample_account.id, *three_entries))

        assert receipt.imported == 2
        assert receipt.duplicates_skipped == 1
        assert receipt.balance_change == Decimal("-55.50")
        assert _balance(temp_db, sample_account.id) == Decimal("1044.50")

    def test_empty_selection(self, temp_db, commit_service, sample_account):
        """Test that committing nothing still reports reviewed duplicates."""
        batch = _batch(
            sample_account.id,
            _candidate("A1", "-35.20", is_duplicate=True, selected=False),
            reviewed_duplicates=1,
        )

        receipt = commit_service.commit(batch)

        assert receipt.imported == 0
        assert receipt.duplicates_skipped == 1
        assert receipt.balance_change == Decimal("0.00")
        assert _balance(temp_db, sample_account.id) == Decimal("1000.00")

    def test_unselected_candidates_are_not_written(self, temp_db, commit_service, sample_account):
        batch = _batch(
            sample_account.id,
            _candidate("A1", "-10.00"),
            _candidate("A2", "-20.00", selected=False),
        )

        receipt = commit_service.commit(batch)

        assert receipt.imported == 1
        assert temp_db.find_imported_external_ids(sample_account.id, ["A1", "A2"]) == {"A1"}

    def test_unknown_category_is_dropped(self, temp_db, commit_service, sample_account):
        receipt = commit_service.commit(
            _batch(sample_account.id, _candidate("A1", "-10.00", suggested_category_id=999))
        )

        assert temp_db.get_transaction(receipt.transaction_ids[0]).category_id is None

    def test_records_import_history(self, temp_db, commit_service, sample_account, three_entries):
        receipt = commit_service.commit(
            _batch(
                sample_account.id,
                *three_entries,
                file_name="jan.ofx",
                bank_id="123456789",
                bank_account_id="987654321",
                period_start=date(2024, 1, 1),
                period_end=date(2024, 1, 31),
                reviewed_duplicates=2,
            )
        )

        imports = temp_db.list_statement_imports(account_id=sample_account.id)
        assert len(imports) == 1
        record = imports[0]
        assert record.id == receipt.import_id
        assert record.file_name == "jan.ofx"
        assert record.bank_id == "123456789"
        assert record.transaction_count == 3
        assert record.duplicate_count == 2
        assert record.balance_change == Decimal("44.50")
        assert record.start_date == date(2024, 1, 1)
        assert record.end_date == date(2024, 1, 31)

    def test_sequential_commits_compose(self, temp_db, commit_service, sample_account, other_account):
        commit_service.commit(_batch(sample_account.id, _candidate("A1", "-10.00")))
        commit_service.commit(_batch(sample_account.id, _candidate("A2", "-20.00")))
        commit_service.commit(_batch(other_account.id, _candidate("A1", "5.00")))

        assert _balance(temp_db, sample_account.id) == Decimal("970.00")
        assert _balance(temp_db, other_account.id) == Decimal("5.00")

    def test_simultaneous_commits_all_land(self, temp_db, sample_account):
        """Test commits racing on one account each reach the balance."""
        workers = 3
        per_batch = 20
        start = threading.Barrier(workers)

        def run(worker):
            db = create_sqlite_database(temp_db.database_path)
            db.connect()
            try:
                service = ImportCommitService(db)
                batch = _batch(
                    sample_account.id,
                    *(_candidate(f"W{worker}-{i}", "-1.00") for i in range(per_batch)),
                )
                start.wait()
                for _ in range(5):
                    try:
                        return service.commit(batch).imported
                    except CommitError as e:
                        if not e.retryable:
                            raise
                return 0
            finally:
                db.disconnect()

        with ThreadPoolExecutor(max_workers=workers) as pool:
            imported = list(pool.map(run, range(workers)))

        assert imported == [per_batch] * workers
        assert len(temp_db.list_transactions()) == workers * per_batch
        assert _balance(temp_db, sample_account.id) == Decimal("1000.00") - workers * per_batch

    def test_pipeline_finalized(self, commit_service, sample_account):
        commit_service.commit(_batch(sample_account.id, _candidate("A1", "-10.00")))

        assert commit_service.last_pipeline.state is CommitState.FINALIZED


class TestValidation:
    """Tests for rejected batches."""

    @pytest.mark.parametrize("account_id", [None, 0, 999])
    def test_unknown_account(self, temp_db, commit_service, account_id):
        with pytest.raises(CommitError) as excinfo:
            commit_service.commit(_batch(account_id, _candidate("A1", "-10.00")))

        assert excinfo.value.kind is CommitErrorKind.UNKNOWN_ACCOUNT
        assert excinfo.value.retryable is False
        assert commit_service.last_pipeline.state is CommitState.ABORTED

    def test_duplicate_selected(self, temp_db, commit_service, sample_account):
        with pytest.raises(CommitError) as excinfo:
            commit_service.commit(
                _batch(
                    sample_account.id,
                    _candidate("A1", "-10.00"),
                    _candidate("A2", "-20.00", is_duplicate=True),
                )
            )

        assert excinfo.value.kind is CommitErrorKind.DUPLICATE_SELECTED
        assert temp_db.list_transactions() == []

    def test_repeated_external_id(self, temp_db, commit_service, sample_account):
        with pytest.raises(CommitError) as excinfo:
            commit_service.commit(
                _batch(sample_account.id, _candidate("A1", "-10.00"), _candidate("A1", "-10.00"))
            )

        assert excinfo.value.kind is CommitErrorKind.DUPLICATE_SELECTED
        assert "more than once" in str(excinfo.value)

    @pytest.mark.parametrize("amount", ["0.00", "-5.00"])
    def test_non_positive_amount(self, temp_db, commit_service, sample_account, amount):
        candidate = _candidate("A1", "-10.00", amount=Decimal(amount))

        with pytest.raises(CommitError) as excinfo:
            commit_service.commit(_batch(sample_account.id, candidate))

        assert excinfo.value.kind is CommitErrorKind.NON_POSITIVE_AMOUNT
        assert _balance(temp_db, sample_account.id) == Decimal("1000.00")
        assert temp_db.list_statement_imports() == []

    def test_pipeline_runs_once(self, temp_db, sample_account):
        pipeline = CommitPipeline(temp_db, _batch(sample_account.id, _candidate("A1", "-10.00")))
        pipeline.run()

        with pytest.raises(RuntimeError):
            pipeline.run()


class TestRollback:
    """Tests for storage failures in the middle of a commit."""

    def test_failure_mid_batch_leaves_nothing(
        self, temp_db, commit_service, sample_account, three_entries, monkeypatch
    ):
        """Test that a failure after the first write rolls everything back."""
        original = temp_db.create_transaction
        calls = []

        def flaky_create_transaction(**kwargs):
            calls.append(kwargs["external_id"])
            if len(calls) == 2:
                raise OperationalError("INSERT INTO transactions", {}, Exception("disk I/O error"))
            return original(**kwargs)

        monkeypatch.setattr(temp_db, "create_transaction", flaky_create_transaction)

        with pytest.raises(CommitError) as excinfo:
            commit_service.commit(_batch(sample_account.id, *three_entries))

        assert excinfo.value.kind is CommitErrorKind.STORAGE_FAILURE
        assert excinfo.value.retryable is True
        assert commit_service.last_pipeline.state is CommitState.ABORTED
        assert calls == ["E1", "E2"]
        assert temp_db.list_transactions() == []
        assert temp_db.find_imported_external_ids(sample_account.id, ["E1", "E2", "E3"]) == set()
        assert temp_db.list_statement_imports() == []
        assert _balance(temp_db, sample_account.id) == Decimal("1000.00")

    def test_retry_after_failure(self, temp_db, commit_service, sample_account, three_entries, monkeypatch):
        """Test the identical batch succeeds once storage recovers."""
        original = temp_db.create_transaction

        def failing_create_transaction(**kwargs):
            raise OperationalError("INSERT INTO transactions", {}, Exception("database is locked"))

        monkeypatch.setattr(temp_db, "create_transaction", failing_create_transaction)
        batch = _batch(sample_account.id, *three_entries)
        with pytest.raises(CommitError):
            commit_service.commit(batch)

        monkeypatch.setattr(temp_db, "create_transaction", original)
        receipt = commit_service.commit(batch)

        assert receipt.imported == 3
        assert _balance(temp_db, sample_account.id) == Decimal("1044.50")

    def test_concurrent_import_of_same_id(self, temp_db, commit_service, sample_account, monkeypatch):
        """Test the unique index rejects an id imported after validation."""
        commit_service.commit(_batch(sample_account.id, _candidate("A1", "-10.00")))

        # Simulate another commit winning the race between validation and write
        monkeypatch.setattr(temp_db, "find_imported_external_ids", lambda account_id, ids: set())

        with pytest.raises(CommitError) as excinfo:
            commit_service.commit(
                _batch(sample_account.id, _candidate("A2", "-5.00"), _candidate("A1", "-10.00"))
            )

        assert excinfo.value.kind is CommitErrorKind.STORAGE_FAILURE
        assert [t.external_id for t in temp_db.list_transactions()] == ["A1"]
        assert _balance(temp_db, sample_account.id) == Decimal("990.00")
