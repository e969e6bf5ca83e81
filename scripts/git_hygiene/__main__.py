"""CLI entry point for git_hygiene.

Usage:
  python -m git_hygiene [path]                  # Top 10 authors
  python -m git_hygiene [path] -n 25            # Top 25 authors
  python -m git_hygiene [path] -a alice         # Authors matching "alice" (+ chart)
  python -m git_hygiene [path] -a alice --nice  # Chart in a matplotlib window
  python -m git_hygiene [path] --issuer         # Track signing key ids
  python -m git_hygiene [path] --json           # JSON output

Output lines: #<rank>\\t(<total>)\\t<name> <email>
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from git_hygiene.aggregate import IdentityMode, ScoreAggregator
from git_hygiene.config import ConfigError, load_config
from git_hygiene.history import HistoryError, collect_records, open_repository
from git_hygiene.models import RankedEntry
from git_hygiene.plotting import plot
from git_hygiene.timeseries import build_time_series

log = logging.getLogger(__name__)


def _print_entries(entries: list[RankedEntry], json_output: bool) -> None:
    if json_output:
        print(json.dumps([e.to_dict() for e in entries]))
        return
    for entry in entries:
        print(entry.display())


# ---------------------------------------------------------------------------
# Score command
# ---------------------------------------------------------------------------


def cmd_score(args: argparse.Namespace) -> int:
    """Score every commit reachable from HEAD and report per author."""
    try:
        repo = open_repository(args.path)
        cfg = load_config(repo)
    except (HistoryError, ConfigError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    issuer = cfg.issuer if args.issuer is None else args.issuer
    top = cfg.top if args.n is None else args.n
    mode = IdentityMode.NAME_EMAIL if args.merge_identities else cfg.identity_mode

    try:
        records = collect_records(repo, with_issuer=issuer)
    except HistoryError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    pairs = [r.as_pair() for r in records]
    aggregator = ScoreAggregator(cfg.heuristics, mode)
    aggregator.extend(pairs)

    if args.author is None:
        _print_entries(aggregator.top_n(top), args.json)
        return 0

    matches = aggregator.find_by_pattern(args.author)
    _print_entries(matches, args.json)
    if not matches:
        print(f"No author matches {args.author!r}", file=sys.stderr)
        return 0

    if len(matches) != 1 or args.json or args.no_plot:
        return 0
    series = build_time_series(pairs, matches[0].author, cfg.heuristics, mode)
    if not series.plottable:
        log.info("Only %d commit(s) for %s, skipping chart", len(series), series.author)
        return 0
    plot(series, nice=args.nice)
    return 0


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-hygiene",
        description="Judge the git hygiene of a repository's authors",
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Repository to score (default: current directory)",
    )
    parser.add_argument(
        "--author", "-a",
        help="Show authors whose name, email or issuer key id contains this",
    )
    parser.add_argument(
        "-n",
        type=int,
        default=None,
        help="Number of authors to show (default: 10)",
    )
    parser.add_argument(
        "--issuer",
        action="store_true",
        default=None,
        help="Distinguish authors by signature issuer key id",
    )
    parser.add_argument(
        "--merge-identities",
        action="store_true",
        help="Bucket by name and email only, ignoring issuer key ids",
    )
    parser.add_argument(
        "--nice",
        action="store_true",
        help="Draw the author chart in a window instead of the terminal",
    )
    parser.add_argument("--no-plot", action="store_true", help="Never draw a chart")
    parser.add_argument("--json", action="store_true", help="JSON output")
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for git_hygiene."""
    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    return cmd_score(args)


if __name__ == "__main__":
    sys.exit(main())
