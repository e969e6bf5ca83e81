"""Heuristic tables for commit scoring.

All word sets and curve constants live in one frozen dataclass so they can
be swapped per test or per repository config without touching the scoring
control flow. Defaults are hardcoded (tunable via .git-hygiene.conf).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

# ---------------------------------------------------------------------------
# Default tables
# ---------------------------------------------------------------------------

IMPERATIVE_VERBS = frozenset({"add", "remove", "fix", "move", "merge", "update"})

NON_IMPERATIVE_FORMS = frozenset({
    "added", "adds",
    "removed", "removes",
    "fixed", "fixes",
    "moved", "moves",
    "merged", "merges",
    "updated", "updates",
})

PUNCTUATION = ".!?,;"


@dataclass(frozen=True)
class Heuristics:
    """Immutable configuration for the gain/loss heuristic."""

    imperative_verbs: frozenset[str] = IMPERATIVE_VERBS
    non_imperative: frozenset[str] = NON_IMPERATIVE_FORMS
    punctuation: str = PUNCTUATION

    # Message wording
    verb_cap: int = 2
    verb_weight: int = 3
    penalty_cap: int = 5
    penalty_weight: int = 4

    # Capitalisation / signing
    capitalized_bonus: int = 3
    uncapitalized_penalty: int = 3
    signed_bonus: int = 10
    unsigned_penalty: int = 5

    # Length curve: downward parabola peaking at ideal_length
    ideal_length: int = 25
    curve_divisor: int = 36
    curve_height: int = 15
    curve_gain_clip: int = 10

    # Diff size
    gain_exponent: float = 0.5
    loss_exponent: float = 0.55
    max_insertions: int = 10**12   # larger diffs score as this size

    def with_overrides(self, **changes: Any) -> Heuristics:
        """Return a copy with the given fields replaced.

        Word sets given as any iterable are normalised to lowercase
        frozensets.
        """
        for key in ("imperative_verbs", "non_imperative"):
            if key in changes:
                changes[key] = frozenset(w.lower() for w in changes[key])
        return replace(self, **changes)


DEFAULT_HEURISTICS = Heuristics()
