"""Tests for git_hygiene.history -- the git CLI history walk.

Integration tests build throwaway repositories with the real git binary.
"""

# pylint: disable=missing-class-docstring,missing-function-docstring,redefined-outer-name

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import DAY, KEY, T0, git, need_git, signed_blob
from git_hygiene.history import (
    HistoryError,
    RawCommit,
    RepositoryOpenError,
    _parse_numstat,
    _summary,
    build_record,
    collect_records,
    has_head,
    open_repository,
    parse_commit,
    read_commits,
)

# ---------------------------------------------------------------------------
# Parsing helpers (no git needed)
# ---------------------------------------------------------------------------


class TestParseNumstat:
    def test_sums_per_commit(self) -> None:
        out = (
            "\0aaa\n\n3\t1\tsrc/a.py\n2\t0\tsrc/b.py\n"
            "\0bbb\n"
            "\0ccc\n\n-\t-\timage.png\n4\t4\tREADME\n"
        )
        assert _parse_numstat(out) == [("aaa", 5, 1), ("bbb", 0, 0), ("ccc", 4, 4)]

    def test_empty(self) -> None:
        assert _parse_numstat("") == []


class TestSummary:
    def test_first_paragraph_joined(self) -> None:
        assert _summary("\n  Fix the\n  login bug\n\nDetails here\n") == "Fix the login bug"

    def test_single_line(self) -> None:
        assert _summary("Add parser\n") == "Add parser"

    def test_empty(self) -> None:
        assert _summary("") == ""


class TestParseCommit:
    def _body(self, extra_headers: str = "", parents: int = 1) -> bytes:
        lines = ["tree " + "1" * 40]
        lines += [f"parent {str(i) * 40}" for i in range(2, 2 + parents)]
        lines += [
            "author Ada Lovelace <ada@example.com> 1700000000 +0100",
            "committer Charles <charles@example.com> 1700000500 -0500",
        ]
        text = "\n".join(lines) + "\n" + extra_headers + "\nAdd engine\n\nBody text\n"
        return text.encode("utf-8")

    def test_basic_fields(self) -> None:
        raw = parse_commit("f" * 40, self._body())
        assert raw.author_name == "Ada Lovelace"
        assert raw.author_email == "ada@example.com"
        assert raw.timestamp == 1700000500
        assert raw.summary == "Add engine"
        assert raw.parents == ("2" * 40,)
        assert raw.signature is None
        assert not raw.is_merge

    def test_merge(self) -> None:
        raw = parse_commit("f" * 40, self._body(parents=2))
        assert raw.is_merge

    def test_root(self) -> None:
        raw = parse_commit("f" * 40, self._body(parents=0))
        assert raw.parents == ()

    def test_gpgsig_continuation(self) -> None:
        blob = signed_blob()
        header = "gpgsig " + "\n ".join(blob.rstrip("\n").split("\n")) + "\n"
        raw = parse_commit("f" * 40, self._body(extra_headers=header))
        assert raw.signature == blob.rstrip("\n")
        assert raw.summary == "Add engine"

    def test_sha256_signature_header(self) -> None:
        blob = signed_blob()
        header = "gpgsig-sha256 " + "\n ".join(blob.rstrip("\n").split("\n")) + "\n"
        raw = parse_commit("f" * 40, self._body(extra_headers=header))
        assert raw.signature is not None

    def test_non_utf8_encoding_header(self) -> None:
        body = (
            "tree " + "1" * 40 + "\n"
            "author J\xfcrgen <j@example.com> 1700000000 +0000\n"
            "committer J\xfcrgen <j@example.com> 1700000000 +0000\n"
            "encoding ISO-8859-1\n"
            "\n"
            "Add \xfcmlaut support\n"
        ).encode("latin-1")
        raw = parse_commit("f" * 40, body)
        assert raw.author_name == "Jürgen"
        assert raw.summary == "Add ümlaut support"

    def test_unreadable_author(self) -> None:
        body = b"tree " + b"1" * 40 + b"\nauthor garbage\ncommitter garbage\n\nFix\n"
        raw = parse_commit("f" * 40, body)
        assert raw.author_name == "garbage"
        assert raw.author_email == ""
        assert raw.timestamp == 0


class TestBuildRecord:
    def _raw(self, signature: str | None) -> RawCommit:
        return RawCommit(
            sha="f" * 40,
            parents=("e" * 40,),
            author_name="Ada",
            author_email="ada@example.com",
            timestamp=T0,
            summary="Fix login bug",
            signature=signature,
            insertions=7,
            deletions=2,
        )

    def test_unsigned(self) -> None:
        record = build_record(self._raw(None), with_issuer=True)
        assert record.author.key_id is None
        assert record.facts.signed is False
        assert record.facts.insertions == 7
        assert record.facts.deletions == 2
        assert record.facts.timestamp == T0

    def test_signed_without_issuer_lookup(self) -> None:
        record = build_record(self._raw(signed_blob()))
        assert record.facts.signed is True
        assert record.author.key_id is None

    def test_signed_with_issuer_lookup(self) -> None:
        record = build_record(self._raw(signed_blob()), with_issuer=True)
        assert record.author.key_id == KEY

    def test_unreadable_signature_still_signed(self) -> None:
        record = build_record(self._raw("-----BEGIN SSH SIGNATURE-----\n..."), with_issuer=True)
        assert record.facts.signed is True
        assert record.author.key_id is None


# ---------------------------------------------------------------------------
# Repository access (real git)
# ---------------------------------------------------------------------------


class TestOpenRepository:
    def test_missing_path(self, tmp_path: Path) -> None:
        with pytest.raises(RepositoryOpenError):
            open_repository(tmp_path / "nope")

    @need_git
    def test_not_a_repository(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
        plain = tmp_path / "plain"
        plain.mkdir()
        with pytest.raises(RepositoryOpenError):
            open_repository(plain)

    @need_git
    def test_valid(self, history_repo: Path) -> None:
        assert open_repository(history_repo) == history_repo.resolve()

    @need_git
    def test_subdirectory_resolves_to_root(self, history_repo: Path) -> None:
        sub = history_repo / "sub" / "deeper"
        sub.mkdir(parents=True)
        assert open_repository(sub) == history_repo.resolve()

    @need_git
    def test_bare_repository(self, history_repo: Path, tmp_path: Path) -> None:
        bare = tmp_path / "bare.git"
        git(tmp_path, "clone", "-q", "--bare", str(history_repo), str(bare))
        assert open_repository(bare) == bare.resolve()
        assert len(list(read_commits(bare))) == 4

    def test_open_error_is_history_error(self) -> None:
        assert issubclass(RepositoryOpenError, HistoryError)


class TestReadCommits:
    @need_git
    def test_empty_repository(self, empty_repo: Path) -> None:
        assert not has_head(empty_repo)
        assert list(read_commits(empty_repo)) == []

    @need_git
    def test_order_and_summaries(self, history_repo: Path) -> None:
        commits = list(read_commits(history_repo))
        assert [c.summary for c in commits] == [
            "Add signed file", "fixed stuff.", "Update readme", "Add readme",
        ]
        assert [c.timestamp for c in commits] == [T0 + 3 * DAY, T0 + 2 * DAY, T0 + DAY, T0]

    @need_git
    def test_authors(self, history_repo: Path) -> None:
        commits = list(read_commits(history_repo))
        assert [(c.author_name, c.author_email) for c in commits] == [
            ("Alice", "alice@example.com"),
            ("Bob", "bob@example.com"),
            ("Alice", "alice@example.com"),
            ("Alice", "alice@example.com"),
        ]

    @need_git
    def test_diff_stats(self, history_repo: Path) -> None:
        commits = list(read_commits(history_repo))
        # the root commit is not diffed
        assert [c.insertions for c in commits] == [5, 2, 4, 0]
        assert all(c.deletions == 0 for c in commits)

    @need_git
    def test_signature(self, history_repo: Path) -> None:
        newest, *rest = list(read_commits(history_repo))
        assert newest.signature is not None
        assert newest.signature.startswith("-----BEGIN PGP SIGNATURE-----")
        assert all(c.signature is None for c in rest)

    @need_git
    def test_merge_commit_not_diffed(self, history_repo: Path) -> None:
        tree = git(history_repo, "rev-parse", "HEAD^{tree}")
        head = git(history_repo, "rev-parse", "HEAD")
        side = git(history_repo, "rev-parse", "HEAD~2")
        stamp = f"@{T0 + 4 * DAY} +0000"
        merge = git(
            history_repo, "commit-tree", tree, "-p", head, "-p", side, "-m", "Merge side",
            env={
                "GIT_AUTHOR_NAME": "Carol", "GIT_AUTHOR_EMAIL": "carol@example.com",
                "GIT_AUTHOR_DATE": stamp,
                "GIT_COMMITTER_NAME": "Carol", "GIT_COMMITTER_EMAIL": "carol@example.com",
                "GIT_COMMITTER_DATE": stamp,
            },
        )
        git(history_repo, "update-ref", "HEAD", merge)

        first = next(iter(read_commits(history_repo)))
        assert first.sha == merge
        assert first.is_merge
        assert first.insertions == 0
        assert first.deletions == 0


class TestCollectRecords:
    @need_git
    def test_issuer_lookup(self, history_repo: Path) -> None:
        records = collect_records(history_repo, with_issuer=True)
        assert records[0].author.key_id == KEY
        assert records[0].facts.signed is True
        assert all(r.author.key_id is None for r in records[1:])

    @need_git
    def test_without_issuer(self, history_repo: Path) -> None:
        records = collect_records(history_repo)
        assert all(r.author.key_id is None for r in records)
        assert [r.facts.signed for r in records] == [True, False, False, False]
