"""Commit scorer -- gain/loss heuristic over one commit's facts.

score = max(gain - loss, 0)

Gain rewards short, capitalised, imperative, signed commits of moderate
size. Loss punishes run-on, non-imperative, unsigned, oversized or
uncapitalised commits. Both accumulators are non-negative integers; the
final clamp keeps one pathological commit from dragging an author's
running total down.
"""

from __future__ import annotations

import logging
import math

from .heuristics import DEFAULT_HEURISTICS, Heuristics
from .models import CommitFacts, ScoreParts

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


def length_curve(length: int, h: Heuristics = DEFAULT_HEURISTICS) -> int:
    """Downward parabola over summary length, peaking at ideal_length.

    floor(-((length - 25)^2 / 36) + 15) with the default tables, so
    length_curve(25) == 15 and the value never increases as
    |length - 25| grows.
    """
    offset = length - h.ideal_length
    return math.floor(-(offset * offset) / h.curve_divisor + h.curve_height)


def _tokens(summary: str) -> list[str]:
    return [t.lower() for t in summary.split()]


def count_words(summary: str, words: frozenset[str]) -> int:
    """Whitespace tokens equal (case-insensitively) to a word in the set."""
    return sum(1 for t in _tokens(summary) if t in words)


def count_punctuation(summary: str, h: Heuristics = DEFAULT_HEURISTICS) -> int:
    return sum(summary.count(p) for p in h.punctuation)


def _counted_insertions(insertions: int, h: Heuristics) -> int:
    """Insertions as seen by both size terms, clamped to [0, max_insertions]."""
    return min(max(insertions, 0), h.max_insertions)


def size_bonus(insertions: int, h: Heuristics = DEFAULT_HEURISTICS) -> int:
    insertions = _counted_insertions(insertions, h)
    if insertions == 0:
        return 0
    if h.gain_exponent == 0.5:
        return math.isqrt(insertions)
    return math.floor(insertions ** h.gain_exponent)


def oversize_penalty(insertions: int, h: Heuristics = DEFAULT_HEURISTICS) -> int:
    """floor(insertions^0.55 - insertions^0.5), never below zero.

    The term grows with the diff and outpaces the size bonus for large
    commits. Float rounding near one insertion can dip just below zero.
    """
    insertions = _counted_insertions(insertions, h)
    if insertions == 0:
        return 0
    raw = math.floor(insertions ** h.loss_exponent - insertions ** h.gain_exponent)
    return max(raw, 0)


# ---------------------------------------------------------------------------
# Gain / loss
# ---------------------------------------------------------------------------


def gain(facts: CommitFacts, h: Heuristics = DEFAULT_HEURISTICS) -> int:
    summary = facts.summary
    total = min(count_words(summary, h.imperative_verbs), h.verb_cap) * h.verb_weight
    if facts.is_capitalized:
        total += h.capitalized_bonus
    if facts.signed:
        total += h.signed_bonus
    curve = length_curve(len(summary), h)
    if curve > 0:
        total += min(curve, h.curve_gain_clip)
    total += size_bonus(facts.insertions, h)
    return total


def loss(facts: CommitFacts, h: Heuristics = DEFAULT_HEURISTICS) -> int:
    summary = facts.summary
    wording = count_punctuation(summary, h) + count_words(summary, h.non_imperative)
    total = min(wording, h.penalty_cap) * h.penalty_weight
    if not facts.is_capitalized:
        total += h.uncapitalized_penalty
    if not facts.signed:
        total += h.unsigned_penalty
    curve = length_curve(len(summary), h)
    if curve < 0:
        total -= curve
    total += oversize_penalty(facts.insertions, h)
    return total


def score_parts(facts: CommitFacts, h: Heuristics = DEFAULT_HEURISTICS) -> ScoreParts:
    """Decomposed score, used by the time-series path."""
    return ScoreParts(gain=gain(facts, h), loss=loss(facts, h))


def score(facts: CommitFacts, h: Heuristics = DEFAULT_HEURISTICS) -> int:
    """Final commit score, floored at zero."""
    return score_parts(facts, h).score
