"""Duplicate detection against previously imported external ids."""

import logging
from dataclasses import replace
from typing import Iterable

from ofxledger.database.base import Database
from ofxledger.domain.entities import TransactionCandidate

logger = logging.getLogger(__name__)


class DuplicateResolver:
    """Flags candidates whose external id is already imported for an account.

    This is an exact set-membership test on (account_id, external_id).
    Candidates that share date, amount and description but carry different
    external ids are never treated as duplicates of each other.
    """

    def __init__(self, db: Database):
        """Initialize duplicate resolver.

        Args:
            db: Database instance
        """
        self.db = db

    def resolve(
        self, candidates: Iterable[TransactionCandidate], account_id: int
    ) -> list[TransactionCandidate]:
        """Return candidates with is_duplicate and selected filled in.

        Args:
            candidates: Normalized candidates, in statement order
            account_id: Account the statement is being imported into

        Returns:
            New candidate list in the same order
        """
        candidates = list(candidates)
        known = self.db.find_imported_external_ids(account_id, (c.external_id for c in candidates))

        resolved = []
        for candidate in candidates:
            is_duplicate = candidate.external_id in known
            resolved.append(
                replace(
                    candidate,
                    is_duplicate=is_duplicate,
                    selected=not is_duplicate and not candidate.zero_amount,
                )
            )

        logger.debug(
            "Resolved %d candidates for account %s: %d already imported",
            len(resolved),
            account_id,
            sum(1 for c in resolved if c.is_duplicate),
        )
        return resolved
