"""Data models for git hygiene scoring.

Zero external dependencies -- pure Python dataclasses.

  - AuthorIdentity: who wrote a commit (name, email, optional issuer key id)
  - CommitFacts: the raw per-commit attributes the scorer consumes
  - ScoreParts: gain/loss decomposition of one commit's score
  - CommitRecord: one commit in traversal order (sha + identity + facts)
  - AggregateEntry / RankedEntry: per-author totals and ranked views
  - TimeSeries: cumulative per-author series for charting (computed, not stored)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class AuthorIdentity:
    """A human contributor as seen by the aggregator.

    Equality and hashing cover all three fields, so "signed as X" and
    "unsigned as X" are distinct unless identities are merged upstream.
    """

    name: str
    email: str
    key_id: bytes | None = None   # 8-byte issuer key id, when extracted

    def __post_init__(self) -> None:
        if self.key_id is not None and len(self.key_id) != 8:
            raise ValueError(f"key_id must be 8 bytes, got {len(self.key_id)}")

    def __str__(self) -> str:
        return f"{self.name} {self.email}"

    @property
    def key_hex(self) -> str | None:
        """Lowercase hex encoding of the key id, or None."""
        return self.key_id.hex() if self.key_id is not None else None

    def without_key(self) -> AuthorIdentity:
        """Same person with the key id dropped."""
        if self.key_id is None:
            return self
        return replace(self, key_id=None)

    def matches(self, pattern: str) -> bool:
        """Substring match against name, email or key id hex.

        The caller lower-cases the pattern.
        """
        if pattern in self.name.lower() or pattern in self.email.lower():
            return True
        key_hex = self.key_hex
        return key_hex is not None and pattern in key_hex

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a flat dict for --json output."""
        return {
            "name": self.name,
            "email": self.email,
            "key_id": self.key_hex,
        }


@dataclass(frozen=True)
class CommitFacts:
    """Raw attributes of one commit.

    insertions/deletions are zero for merge and root commits.
    """

    summary: str
    insertions: int = 0
    deletions: int = 0
    signed: bool = False
    timestamp: int = 0            # seconds since epoch

    @property
    def is_capitalized(self) -> bool:
        """True when the summary starts with an uppercase character."""
        return bool(self.summary) and self.summary[0].isupper()


@dataclass(frozen=True)
class ScoreParts:
    """Independent gain and loss accumulators for one commit."""

    gain: int
    loss: int

    @property
    def score(self) -> int:
        return max(self.gain - self.loss, 0)


@dataclass(frozen=True)
class CommitRecord:
    """One commit as produced by the history walk."""

    sha: str
    author: AuthorIdentity
    facts: CommitFacts

    def as_pair(self) -> tuple[AuthorIdentity, CommitFacts]:
        return self.author, self.facts


@dataclass
class AggregateEntry:
    """Running total for one author identity."""

    author: AuthorIdentity
    total: int = 0
    commits: int = 0


@dataclass(frozen=True)
class RankedEntry:
    """An aggregate entry with its 1-based position in the full ranking."""

    rank: int
    author: AuthorIdentity
    total: int

    def display(self) -> str:
        """Tab-separated output line: #rank, (total), author."""
        return f"#{self.rank}\t({self.total})\t{self.author}"

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"rank": self.rank, "total": self.total}
        d.update(self.author.to_dict())
        return d


@dataclass
class TimeSeries:
    """Cumulative score series for one author.

    Computed view -- three equal-length sequences ordered by time.
    """

    author: AuthorIdentity
    x: list[int] = field(default_factory=list)
    score: list[int] = field(default_factory=list)
    score_with_loss: list[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.x)

    @property
    def plottable(self) -> bool:
        """A single point cannot be charted meaningfully."""
        return len(self.x) >= 2
