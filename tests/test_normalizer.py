"""Tests for statement entry normalization."""

from datetime import date
from decimal import Decimal

from ofxledger.domain.entities import Direction, RawEntry
from ofxledger.domain.normalizer import (
    DEFAULT_DESCRIPTION,
    SYNTHETIC_ID_PREFIX,
    direction_for,
    normalize_entry,
    synthesize_external_id,
)


def _entry(**overrides) -> RawEntry:
    values = dict(
        external_id="FIT-1",
        posted_date=date(2024, 1, 5),
        signed_amount=Decimal("-35.20"),
        raw_description="Market",
    )
    values.update(overrides)
    return RawEntry(**values)


def test_debit_entry():
    """Test a negative amount becomes a debit with a positive amount."""
    candidate = normalize_entry(_entry())

    assert candidate.external_id == "FIT-1"
    assert candidate.date == date(2024, 1, 5)
    assert candidate.amount == Decimal("35.20")
    assert candidate.direction is Direction.DEBIT
    assert candidate.signed_amount == Decimal("-35.20")
    assert candidate.description == "Market"
    assert candidate.selected is True
    assert candidate.is_duplicate is False
    assert candidate.suggested_category_id is None
    assert candidate.synthetic_id is False


def test_credit_entry():
    """Test a positive amount becomes a credit."""
    candidate = normalize_entry(_entry(signed_amount=Decimal("100.00")))

    assert candidate.direction is Direction.CREDIT
    assert candidate.amount == Decimal("100.00")


def test_empty_description_gets_default():
    """Test that blank descriptions fall back to a placeholder."""
    candidate = normalize_entry(_entry(raw_description="   "))

    assert candidate.description == DEFAULT_DESCRIPTION


def test_memo_kept_only_when_different():
    """Test that a memo repeating the description is dropped."""
    assert normalize_entry(_entry(raw_memo="Market")).memo is None
    assert normalize_entry(_entry(raw_memo="Card 1234")).memo == "Card 1234"


def test_zero_amount_is_flagged_and_unselected():
    """Test zero-amount entries stay in the review but are not selected."""
    candidate = normalize_entry(_entry(signed_amount=Decimal("0.00"), transaction_type="INT"))

    assert candidate.zero_amount is True
    assert candidate.selected is False
    assert candidate.direction is Direction.CREDIT


def test_missing_external_id_is_synthesized():
    """Test that entries without an id get a deterministic one."""
    first = normalize_entry(_entry(external_id=""))
    second = normalize_entry(_entry(external_id="  "))

    assert first.external_id.startswith(SYNTHETIC_ID_PREFIX)
    assert first.synthetic_id is True
    assert first.external_id == second.external_id


class TestSynthesizeExternalId:
    """Tests for synthesize_external_id."""

    def test_deterministic(self):
        args = (date(2024, 1, 5), Decimal("-35.20"), "Market")
        assert synthesize_external_id(*args) == synthesize_external_id(*args)

    def test_amount_scale_does_not_matter(self):
        """Test that -35.2 and -35.20 give the same id."""
        assert synthesize_external_id(date(2024, 1, 5), Decimal("-35.2"), "Market") == synthesize_external_id(
            date(2024, 1, 5), Decimal("-35.20"), "Market"
        )

    def test_any_field_changes_id(self):
        base = synthesize_external_id(date(2024, 1, 5), Decimal("-35.20"), "Market")

        assert synthesize_external_id(date(2024, 1, 6), Decimal("-35.20"), "Market") != base
        assert synthesize_external_id(date(2024, 1, 5), Decimal("35.20"), "Market") != base
        assert synthesize_external_id(date(2024, 1, 5), Decimal("-35.20"), "Bakery") != base


class TestDirectionFor:
    """Tests for direction_for."""

    def test_sign_wins_over_type(self):
        assert direction_for(Decimal("-1"), "CREDIT") is Direction.DEBIT
        assert direction_for(Decimal("1"), "DEBIT") is Direction.CREDIT

    def test_zero_uses_transaction_type(self):
        assert direction_for(Decimal("0"), "dep") is Direction.CREDIT
        assert direction_for(Decimal("0"), "FEE") is Direction.DEBIT
        assert direction_for(Decimal("0")) is Direction.DEBIT
