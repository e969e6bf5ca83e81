"""Git hygiene -- per-author commit quality scores.

Scores each commit on message wording, summary length, diff size and
signing, then ranks authors by their totals. Reads history through the
git CLI.

Modules:
  - models: Data classes (AuthorIdentity, CommitFacts, ScoreParts, ...)
  - heuristics: Immutable word tables and curve constants
  - scoring: gain/loss commit scorer
  - signature: Issuer key id extraction from armored OpenPGP signatures
  - aggregate: Per-author totals, ranking and pattern lookup
  - timeseries: Cumulative per-author series for charting
  - history: git log / cat-file walk via subprocess
  - config: .git-hygiene.conf loader
  - plotting: ASCII and matplotlib charts
"""

from __future__ import annotations
