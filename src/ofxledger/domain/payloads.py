"""Conversion between review/commit contracts and plain JSON-ready dicts.

Decimals travel as strings and dates as ISO strings so that nothing is
rounded through floating point on the way.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Optional

from ofxledger.domain.entities import (
    Direction,
    ImportBatch,
    ImportReceipt,
    StatementReview,
    TransactionCandidate,
)
from ofxledger.domain.errors import ValidationError
from ofxledger.domain.normalizer import synthesize_external_id
from ofxledger.utils.amount_parser import parse_amount, require_cents
from ofxledger.utils.date_parser import parse_date

_DIRECTIONS = {
    "credit": Direction.CREDIT,
    "income": Direction.CREDIT,
    "debit": Direction.DEBIT,
    "expense": Direction.DEBIT,
}


def _decimal_str(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)


def _date_str(value: Optional[date]) -> Optional[str]:
    return None if value is None else value.isoformat()


def candidate_to_dict(candidate: TransactionCandidate) -> dict[str, Any]:
    """Review payload entry for one candidate."""
    return {
        "externalId": candidate.external_id,
        "date": candidate.date.isoformat(),
        "amount": str(candidate.amount),
        "direction": candidate.direction.value,
        "description": candidate.description,
        "isDuplicate": candidate.is_duplicate,
        "selected": candidate.selected,
        "suggestedCategoryId": candidate.suggested_category_id,
        "memo": candidate.memo,
        "referenceNumber": candidate.reference_number,
        "zeroAmount": candidate.zero_amount,
    }


def review_to_dict(review: StatementReview) -> dict[str, Any]:
    """Review response payload."""
    statement = review.statement
    summary = review.summary
    return {
        "accountId": review.account_id,
        "fileName": review.file_name,
        "bankId": statement.bank_id,
        "bankAccountId": statement.bank_account_id,
        "accountType": statement.account_type,
        "currency": statement.currency,
        "balance": _decimal_str(statement.closing_balance),
        "startDate": _date_str(statement.period_start),
        "endDate": _date_str(statement.period_end),
        "transactions": [candidate_to_dict(c) for c in review.transactions],
        "summary": {
            "total": summary.total,
            "new": summary.new,
            "duplicates": summary.duplicates,
        },
    }


def commit_request_from_review(review: StatementReview, adjust_balance: bool = True) -> dict[str, Any]:
    """Commit request that accepts every selected candidate as reviewed."""
    statement = review.statement
    return {
        "accountId": review.account_id,
        "fileName": review.file_name,
        "bankId": statement.bank_id,
        "bankAccountId": statement.bank_account_id,
        "startDate": _date_str(statement.period_start),
        "endDate": _date_str(statement.period_end),
        "adjustBalance": adjust_balance,
        "reviewedDuplicates": review.summary.duplicates,
        "transactions": [
            {
                "externalId": c.external_id,
                "date": c.date.isoformat(),
                "amount": str(c.amount),
                "direction": c.direction.value,
                "description": c.description,
                "categoryId": c.suggested_category_id,
                "memo": c.memo,
                "referenceNumber": c.reference_number,
            }
            for c in review.transactions
            if c.selected
        ],
    }


def _optional_int(payload: Mapping[str, Any], key: str) -> Optional[int]:
    value = payload.get(key)
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"'{key}' must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"'{key}' must be an integer, got {value!r}") from None


def _optional_date(payload: Mapping[str, Any], key: str) -> Optional[date]:
    value = payload.get(key)
    if not value:
        return None
    try:
        return parse_date(str(value))
    except ValueError as e:
        raise ValidationError(f"'{key}': {e}") from None


def _optional_str(payload: Mapping[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    return str(value).strip() or None


def candidate_from_dict(payload: Mapping[str, Any], index: int) -> TransactionCandidate:
    """Build a selected candidate from one commit request entry."""
    if not isinstance(payload, Mapping):
        raise ValidationError(f"Transaction {index} must be an object")

    txn_date = _optional_date(payload, "date")
    if txn_date is None:
        raise ValidationError(f"Transaction {index}: missing date")

    try:
        amount = require_cents(parse_amount(str(payload.get("amount", ""))))
    except ValueError as e:
        raise ValidationError(f"Transaction {index}: {e}") from None

    direction = _DIRECTIONS.get(str(payload.get("direction", "")).strip().lower())
    if direction is None:
        raise ValidationError(
            f"Transaction {index}: direction must be one of {', '.join(sorted(_DIRECTIONS))}"
        )

    description = str(payload.get("description") or "").strip()
    external_id = str(payload.get("externalId") or "").strip()
    synthetic = not external_id
    if synthetic:
        signed = amount if direction is Direction.CREDIT else -amount
        external_id = synthesize_external_id(txn_date, signed, description)

    return TransactionCandidate(
        external_id=external_id,
        date=txn_date,
        amount=amount,
        direction=direction,
        description=description,
        is_duplicate=bool(payload.get("isDuplicate", False)),
        suggested_category_id=_optional_int(payload, "categoryId"),
        selected=bool(payload.get("selected", True)),
        memo=_optional_str(payload, "memo"),
        reference_number=_optional_str(payload, "referenceNumber"),
        zero_amount=amount == 0,
        synthetic_id=synthetic,
    )


def batch_from_request(payload: Mapping[str, Any]) -> ImportBatch:
    """Build an ImportBatch from a commit request payload.

    A missing accountId is not rejected here; the commit reports it as an
    unknown account.

    Raises:
        ValidationError: If the payload is malformed
    """
    if not isinstance(payload, Mapping):
        raise ValidationError("Commit request must be an object")

    transactions = payload.get("transactions", [])
    if not isinstance(transactions, list):
        raise ValidationError("'transactions' must be a list")

    adjust_balance = payload.get("adjustBalance", True)
    if not isinstance(adjust_balance, bool):
        raise ValidationError("'adjustBalance' must be true or false")

    reviewed_duplicates = _optional_int(payload, "reviewedDuplicates") or 0
    if reviewed_duplicates < 0:
        raise ValidationError("'reviewedDuplicates' must not be negative")

    start_date = _optional_date(payload, "startDate")
    end_date = _optional_date(payload, "endDate")
    if start_date and end_date and start_date > end_date:
        raise ValidationError("'startDate' must not be after 'endDate'")

    return ImportBatch(
        target_account_id=_optional_int(payload, "accountId"),
        candidates=tuple(
            candidate_from_dict(entry, index) for index, entry in enumerate(transactions, start=1)
        ),
        adjust_balance=adjust_balance,
        bank_id=_optional_str(payload, "bankId"),
        bank_account_id=_optional_str(payload, "bankAccountId"),
        period_start=start_date,
        period_end=end_date,
        file_name=_optional_str(payload, "fileName"),
        reviewed_duplicates=reviewed_duplicates,
    )


def receipt_to_dict(receipt: ImportReceipt) -> dict[str, Any]:
    """Commit response payload."""
    return {
        "imported": receipt.imported,
        "duplicatesSkipped": receipt.duplicates_skipped,
        "balanceChange": str(receipt.balance_change),
        "importId": receipt.import_id,
    }
