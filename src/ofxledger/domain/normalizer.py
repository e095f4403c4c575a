"""Statement entry normalization."""

import hashlib
from datetime import date
from decimal import Decimal

from ofxledger.domain.entities import Direction, RawEntry, TransactionCandidate

DEFAULT_DESCRIPTION = "OFX transaction"

SYNTHETIC_ID_PREFIX = "synth-"

# Length of the hash prefix used for synthesized external ids
HASH_PREFIX_LENGTH = 16

# OFX TRNTYPE values that mean money coming in; everything else is a debit.
# Only consulted when the amount itself is zero.
CREDIT_TRANSACTION_TYPES = frozenset({"CREDIT", "DEP", "DIRECTDEP", "INT", "DIV"})


def synthesize_external_id(posted_date: date, signed_amount: Decimal, description: str) -> str:
    """Build a deterministic external id for an entry that has none.

    The id only depends on (date, amount, description), so re-importing the
    same file yields the same ids. Two genuinely identical transactions on
    the same day collapse onto one id.
    """
    canonical_amount = format(signed_amount.normalize(), "f")
    payload = f"{posted_date.isoformat()}|{canonical_amount}|{description.strip()}"
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    return f"{SYNTHETIC_ID_PREFIX}{digest[:HASH_PREFIX_LENGTH]}"


def direction_for(signed_amount: Decimal, transaction_type: str = "") -> Direction:
    """Direction from the amount sign, falling back to TRNTYPE for zero."""
    if signed_amount > 0:
        return Direction.CREDIT
    if signed_amount < 0:
        return Direction.DEBIT
    if transaction_type.upper() in CREDIT_TRANSACTION_TYPES:
        return Direction.CREDIT
    return Direction.DEBIT


def normalize_entry(entry: RawEntry) -> TransactionCandidate:
    """Map a raw statement entry to a transaction candidate.

    Zero-amount entries are kept but flagged and left unselected so the
    caller decides what to do with them.
    """
    description = entry.raw_description.strip() or DEFAULT_DESCRIPTION
    memo = entry.raw_memo.strip() if entry.raw_memo else None
    zero_amount = entry.signed_amount == 0

    external_id = entry.external_id.strip()
    synthetic = not external_id
    if synthetic:
        external_id = synthesize_external_id(entry.posted_date, entry.signed_amount, description)

    return TransactionCandidate(
        external_id=external_id,
        date=entry.posted_date,
        amount=abs(entry.signed_amount),
        direction=direction_for(entry.signed_amount, entry.transaction_type),
        description=description,
        is_duplicate=False,
        suggested_category_id=None,
        selected=not zero_amount,
        memo=memo if memo != description else None,
        reference_number=entry.reference_number,
        zero_amount=zero_amount,
        synthetic_id=synthetic,
    )
