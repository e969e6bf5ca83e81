"""Commit history via subprocess + git CLI.

Reads every commit reachable from HEAD in `git log` order (reverse
chronological) with three git calls per run:

  - git rev-parse            -- open the repository, detect an empty one
  - git log --numstat        -- traversal order + insertion/deletion counts
  - git cat-file --batch     -- raw commit objects (author, parents, gpgsig)

Merge and root commits get zero insertions/deletions: only single-parent
diffs are scored. Any failure here is fatal to the run (HistoryError);
unreadable signatures are not -- they are handled by the signature module.
"""

from __future__ import annotations

import logging
import re
import subprocess
from collections.abc import Iterator
from dataclasses import dataclass, replace
from pathlib import Path

from .models import AuthorIdentity, CommitFacts, CommitRecord
from .signature import issuer_key_id

log = logging.getLogger(__name__)

_GIT_TIMEOUT = 300  # seconds; full-history log on large repos is slow

_SIGNATURE_HEADERS = (b"gpgsig", b"gpgsig-sha256")

_PERSON_PATTERN = re.compile(rb"^(.*?) <(.*?)> (-?\d+)(?: [+-]\d{4})?$")


class HistoryError(RuntimeError):
    """A git operation needed for the history walk failed."""


class RepositoryOpenError(HistoryError):
    """The given path is not a usable git repository."""


@dataclass(frozen=True)
class RawCommit:
    """Facts about one commit as read from git, before scoring."""

    sha: str
    parents: tuple[str, ...]
    author_name: str
    author_email: str
    timestamp: int                # committer time, seconds since epoch
    summary: str
    signature: str | None = None  # armored detached signature
    insertions: int = 0
    deletions: int = 0

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _git(args: list[str], cwd: str | Path, *, input_data: bytes | None = None) -> bytes:
    """Run a git command, return raw stdout. Raises HistoryError on failure."""
    log.debug("$ git %s", " ".join(args))
    try:
        result = subprocess.run(
            ["git"] + args,
            cwd=str(cwd),
            input=input_data,
            capture_output=True,
            timeout=_GIT_TIMEOUT,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise HistoryError(f"git {args[0]} timed out after {_GIT_TIMEOUT}s") from exc
    except OSError as exc:
        raise HistoryError(f"git {args[0]} could not be run: {exc}") from exc
    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        raise HistoryError(f"git {args[0]} failed: {stderr or 'exit ' + str(result.returncode)}")
    return result.stdout


def open_repository(path: str | Path) -> Path:
    """Root of the repository containing path.

    The work tree root for a normal checkout, the git directory for a
    bare repository.
    """
    p = Path(path)
    if not p.is_dir():
        raise RepositoryOpenError(f"Failed to locate the git repository: {path} is not a directory")
    try:
        git_dir = _git(["rev-parse", "--git-dir"], cwd=p).decode("utf-8").strip()
    except HistoryError as exc:
        raise RepositoryOpenError(f"Failed to locate the git repository at {path}: {exc}") from exc

    try:
        top = _git(["rev-parse", "--show-toplevel"], cwd=p).decode("utf-8").strip()
    except HistoryError:
        top = ""
    if not top:
        # Bare repository: no work tree
        log.debug("No work tree for %s, using git dir %s", path, git_dir)
        return (p / git_dir).resolve()
    return Path(top).resolve()


def has_head(repo: str | Path) -> bool:
    """False for a repository without any commits yet."""
    try:
        _git(["rev-parse", "--verify", "--quiet", "HEAD"], cwd=repo)
    except HistoryError:
        return False
    return True


# ---------------------------------------------------------------------------
# git log --numstat -> order + diff stats
# ---------------------------------------------------------------------------


def _parse_numstat(out: str) -> list[tuple[str, int, int]]:
    """Parse NUL-separated `git log --numstat --format=%x00%H` output."""
    results: list[tuple[str, int, int]] = []
    for chunk in out.split("\0"):
        lines = chunk.strip("\n").split("\n")
        sha = lines[0].strip()
        if not sha:
            continue
        insertions = deletions = 0
        for line in lines[1:]:
            parts = line.split("\t", 2)
            if len(parts) < 3:
                continue
            # Binary files report "-" for both counts
            if parts[0].isdigit():
                insertions += int(parts[0])
            if parts[1].isdigit():
                deletions += int(parts[1])
        results.append((sha, insertions, deletions))
    return results


def _log_numstat(repo: str | Path) -> list[tuple[str, int, int]]:
    out = _git(
        ["log", "--no-show-signature", "--no-renames", "--numstat",
         "--format=%x00%H", "HEAD"],
        cwd=repo,
    )
    return _parse_numstat(out.decode("utf-8", errors="replace"))


# ---------------------------------------------------------------------------
# git cat-file --batch -> raw commit objects
# ---------------------------------------------------------------------------


def _cat_commits(repo: str | Path, shas: list[str]) -> dict[str, bytes]:
    """Fetch raw commit object bodies in a single cat-file call."""
    if not shas:
        return {}
    out = _git(["cat-file", "--batch"], cwd=repo,
               input_data=("\n".join(shas) + "\n").encode("ascii"))

    bodies: dict[str, bytes] = {}
    pos = 0
    for sha in shas:
        nl = out.find(b"\n", pos)
        if nl < 0:
            raise HistoryError(f"git cat-file output ended before commit {sha}")
        header = out[pos:nl].decode("ascii", errors="replace").split()
        if len(header) != 3 or header[1] != "commit":
            raise HistoryError(f"Failed to read commit object {sha}: {' '.join(header)}")
        size = int(header[2])
        bodies[header[0]] = out[nl + 1:nl + 1 + size]
        pos = nl + 1 + size + 1   # object body is followed by a newline
    return bodies


def _summary(message: str) -> str:
    """First paragraph of a commit message, lines joined with spaces."""
    paragraph = message.strip().split("\n\n", 1)[0]
    return " ".join(line.strip() for line in paragraph.splitlines() if line.strip())


def _decode(raw: bytes, encoding: str) -> str:
    try:
        return raw.decode(encoding, errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


def parse_commit(sha: str, body: bytes) -> RawCommit:
    """Parse a raw commit object into a RawCommit (diff counts left zero)."""
    header_blob, _, message = body.partition(b"\n\n")

    headers: list[tuple[bytes, bytes]] = []
    for line in header_blob.split(b"\n"):
        if line.startswith(b" ") and headers:
            # Continuation of a multi-line header (gpgsig)
            key, value = headers[-1]
            headers[-1] = (key, value + b"\n" + line[1:])
            continue
        key, _, value = line.partition(b" ")
        headers.append((key, value))

    parents: list[str] = []
    author = committer = b""
    signature: bytes | None = None
    encoding = "utf-8"
    for key, value in headers:
        if key == b"parent":
            parents.append(value.decode("ascii", errors="replace"))
        elif key == b"author":
            author = value
        elif key == b"committer":
            committer = value
        elif key in _SIGNATURE_HEADERS and signature is None:
            signature = value
        elif key == b"encoding":
            encoding = value.decode("ascii", errors="replace").strip()

    name, email, author_time = "", "", 0
    match = _PERSON_PATTERN.match(author)
    if match:
        name = _decode(match.group(1), encoding)
        email = _decode(match.group(2), encoding)
        author_time = int(match.group(3))
    else:
        log.warning("Commit %s has an unreadable author header", sha[:12])
        name = _decode(author, encoding)

    commit_match = _PERSON_PATTERN.match(committer)
    timestamp = int(commit_match.group(3)) if commit_match else author_time

    return RawCommit(
        sha=sha,
        parents=tuple(parents),
        author_name=name,
        author_email=email,
        timestamp=timestamp,
        summary=_summary(_decode(message, encoding)),
        signature=signature.decode("ascii", errors="replace") if signature else None,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def read_commits(repo: str | Path) -> Iterator[RawCommit]:
    """Yield every commit reachable from HEAD in `git log` order."""
    if not has_head(repo):
        log.info("Repository %s has no commits", repo)
        return

    order = _log_numstat(repo)
    bodies = _cat_commits(repo, [sha for sha, _, _ in order])
    log.info("Read %d commits from %s", len(order), repo)

    for sha, insertions, deletions in order:
        raw = parse_commit(sha, bodies[sha])
        if len(raw.parents) == 1:
            raw = replace(raw, insertions=insertions, deletions=deletions)
        yield raw


def build_record(raw: RawCommit, with_issuer: bool = False) -> CommitRecord:
    """Derive the identity and scoring facts of one commit.

    A commit counts as signed when it carries a signature at all; the
    issuer key id is only looked up when with_issuer is set.
    """
    key_id = issuer_key_id(raw.signature) if with_issuer else None
    author = AuthorIdentity(name=raw.author_name, email=raw.author_email, key_id=key_id)
    facts = CommitFacts(
        summary=raw.summary,
        insertions=raw.insertions,
        deletions=raw.deletions,
        signed=raw.signature is not None,
        timestamp=raw.timestamp,
    )
    return CommitRecord(sha=raw.sha, author=author, facts=facts)


def collect_records(repo: str | Path, with_issuer: bool = False) -> list[CommitRecord]:
    """Read and convert the whole history of repo."""
    return [build_record(raw, with_issuer) for raw in read_commits(repo)]
