"""Category suggestions for imported statement entries."""

import logging
import re
from collections import Counter
from dataclasses import dataclass
from typing import Optional

from ofxledger.database.base import Database
from ofxledger.domain.entities import (
    Category,
    CategoryMapping,
    Transaction,
    TransactionCandidate,
)

logger = logging.getLogger(__name__)

# Below this similarity no category is suggested
MIN_SIMILARITY = 0.5

# Shorter strings are too generic for the substring rule
MIN_SUBSTRING_LENGTH = 3

_TOKEN_RE = re.compile(r"[^\W_]+")


def _tokens(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


def description_similarity(first: str, second: str) -> float:
    """Similarity of two descriptions in [0, 1].

    1.0 when one normalized description contains the other, otherwise the
    Jaccard overlap of their word tokens.
    """
    first_tokens = _tokens(first)
    second_tokens = _tokens(second)
    if not first_tokens or not second_tokens:
        return 0.0

    first_text = " ".join(first_tokens)
    second_text = " ".join(second_tokens)
    shorter, longer = sorted((first_text, second_text), key=len)
    if len(shorter) >= MIN_SUBSTRING_LENGTH and shorter in longer:
        return 1.0

    first_set = set(first_tokens)
    second_set = set(second_tokens)
    return len(first_set & second_set) / len(first_set | second_set)


@dataclass(frozen=True)
class SuggestionSnapshot:
    """Point-in-time view of the data suggestions are computed from."""

    categories: dict[int, Category]
    mappings: tuple[CategoryMapping, ...]
    history: tuple[Transaction, ...]


class CategorySuggester:
    """Suggests a category for a candidate from rules and past transactions.

    Suggestions are advisory: they pre-fill the review, and the commit never
    requires a category.
    """

    def __init__(self, snapshot: SuggestionSnapshot):
        """Initialize category suggester.

        Args:
            snapshot: Categories, active mappings and categorized history
        """
        self.snapshot = snapshot

    @classmethod
    def from_database(cls, db: Database) -> "CategorySuggester":
        """Take a snapshot of the ledger and build a suggester from it."""
        snapshot = SuggestionSnapshot(
            categories={category.id: category for category in db.list_categories()},
            mappings=tuple(db.list_category_mappings(active_only=True)),
            history=tuple(db.list_transactions(categorized_only=True)),
        )
        return cls(snapshot)

    def suggest(self, candidate: TransactionCandidate) -> Optional[int]:
        """Return the best-guess category ID for a candidate, or None."""
        category_id = self._from_mappings(candidate)
        if category_id is None:
            category_id = self._from_history(candidate)
        return category_id

    def _matches_direction(self, candidate: TransactionCandidate, category_id: Optional[int]) -> bool:
        if category_id is None:
            return False
        category = self.snapshot.categories.get(category_id)
        return category is not None and candidate.direction.matches(category.category_type)

    def _from_mappings(self, candidate: TransactionCandidate) -> Optional[int]:
        description = candidate.description.lower()
        for mapping in self.snapshot.mappings:
            pattern = mapping.pattern.strip().lower()
            if not mapping.is_active or not pattern:
                continue
            if pattern in description and self._matches_direction(candidate, mapping.category_id):
                return mapping.category_id
        return None

    def _from_history(self, candidate: TransactionCandidate) -> Optional[int]:
        best_score = 0.0
        best_matches: list[Transaction] = []

        for txn in self.snapshot.history:
            if not self._matches_direction(candidate, txn.category_id):
                continue
            score = description_similarity(candidate.description, txn.description or "")
            if score <= 0:
                continue
            if score > best_score:
                best_score = score
                best_matches = [txn]
            elif score == best_score:
                best_matches.append(txn)

        if best_score < MIN_SIMILARITY:
            return None

        counts = Counter(txn.category_id for txn in best_matches)
        last_used: dict[int, tuple] = {}
        for txn in best_matches:
            key = (txn.date, txn.id)
            if txn.category_id not in last_used or key > last_used[txn.category_id]:
                last_used[txn.category_id] = key

        # Most frequent first, most recently used breaks ties
        return max(counts, key=lambda category_id: (counts[category_id], last_used[category_id]))
