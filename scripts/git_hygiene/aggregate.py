"""Per-author score aggregation and ranking.

Totals live in an insertion-ordered dict, and ranking uses a stable sort,
so authors with equal totals keep their first-seen order. Rankings are
derived views; they never mutate the totals.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum

from .heuristics import DEFAULT_HEURISTICS, Heuristics
from .models import AggregateEntry, AuthorIdentity, CommitFacts, RankedEntry
from .scoring import score

log = logging.getLogger(__name__)


class IdentityMode(str, Enum):
    """How commits are bucketed by author."""

    FULL = "full"                 # name + email + issuer key id
    NAME_EMAIL = "name-email"     # merge signed and unsigned history

    def normalize(self, author: AuthorIdentity) -> AuthorIdentity:
        if self is IdentityMode.NAME_EMAIL:
            return author.without_key()
        return author


class ScoreAggregator:
    """Folds (author, facts) pairs into per-author totals."""

    def __init__(
        self,
        heuristics: Heuristics = DEFAULT_HEURISTICS,
        mode: IdentityMode = IdentityMode.FULL,
    ) -> None:
        self.heuristics = heuristics
        self.mode = mode
        self._entries: dict[AuthorIdentity, AggregateEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, author: AuthorIdentity, facts: CommitFacts) -> int:
        """Score one commit and add it to its author's total.

        Returns the commit's score.
        """
        key = self.mode.normalize(author)
        points = score(facts, self.heuristics)
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = AggregateEntry(author=key)
        entry.total += points
        entry.commits += 1
        return points

    def extend(self, pairs: Iterable[tuple[AuthorIdentity, CommitFacts]]) -> None:
        count = 0
        for author, facts in pairs:
            self.add(author, facts)
            count += 1
        log.info("Aggregated %d commits into %d authors", count, len(self._entries))

    def entries(self) -> list[AggregateEntry]:
        """Entries in first-seen order."""
        return list(self._entries.values())

    def total_for(self, author: AuthorIdentity) -> int:
        entry = self._entries.get(self.mode.normalize(author))
        return entry.total if entry else 0

    def ranking(self) -> list[RankedEntry]:
        """Full ranking by total descending; ties keep first-seen order."""
        ordered = sorted(self._entries.values(), key=lambda e: e.total, reverse=True)
        return [
            RankedEntry(rank=i + 1, author=e.author, total=e.total)
            for i, e in enumerate(ordered)
        ]

    def top_n(self, n: int) -> list[RankedEntry]:
        """The n best authors (fewer when there are fewer authors)."""
        if n <= 0:
            return []
        return self.ranking()[:n]

    def find_by_pattern(self, pattern: str) -> list[RankedEntry]:
        """Ranked entries whose identity contains pattern.

        Ranks refer to the full ranking, not the filtered subsequence.
        """
        needle = pattern.lower()
        return [r for r in self.ranking() if r.author.matches(needle)]
