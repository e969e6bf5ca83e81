"""Cumulative score series for one author, for charting."""

from __future__ import annotations

from collections.abc import Iterable

from .aggregate import IdentityMode
from .heuristics import DEFAULT_HEURISTICS, Heuristics
from .models import AuthorIdentity, CommitFacts, TimeSeries
from .scoring import score_parts


def build_time_series(
    pairs: Iterable[tuple[AuthorIdentity, CommitFacts]],
    target: AuthorIdentity,
    heuristics: Heuristics = DEFAULT_HEURISTICS,
    mode: IdentityMode = IdentityMode.FULL,
) -> TimeSeries:
    """Running sums of score and score + loss over the target's commits.

    Commits are ordered oldest first; the sort is stable, so commits
    sharing a timestamp keep their traversal order. Since loss >= 0,
    score_with_loss[i] >= score[i] for every i.
    """
    key = mode.normalize(target)
    mine = [facts for author, facts in pairs if mode.normalize(author) == key]
    mine.sort(key=lambda f: f.timestamp)   # git log yields newest first

    series = TimeSeries(author=key)
    running_score = 0
    running_with_loss = 0
    for facts in mine:
        parts = score_parts(facts, heuristics)
        running_score += parts.score
        running_with_loss += parts.score + parts.loss
        series.x.append(facts.timestamp)
        series.score.append(running_score)
        series.score_with_loss.append(running_with_loss)
    return series
