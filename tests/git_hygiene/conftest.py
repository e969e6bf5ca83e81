"""Shared fixtures: throwaway git repositories built with the real git CLI."""

# pylint: disable=missing-function-docstring,redefined-outer-name

from __future__ import annotations

import base64
import os
import shutil
import subprocess
from pathlib import Path

import pytest

from git_hygiene.signature import ARMOR_BEGIN, ARMOR_END, crc24

KEY = bytes.fromhex("a1b2c3d4e5f60708")

DAY = 86400
T0 = 1704067200  # 2024-01-01T00:00:00Z

need_git: pytest.MarkDecorator = pytest.mark.skipif(
    shutil.which("git") is None, reason="git not installed"
)


# ---------------------------------------------------------------------------
# Packet builders
# ---------------------------------------------------------------------------


def encode_length(n: int) -> bytes:
    """One- or two-octet OpenPGP length (n < 8384)."""
    if n < 192:
        return bytes([n])
    n -= 192
    return bytes([(n >> 8) + 192, n & 0xFF])


def subpacket(kind: int, body: bytes) -> bytes:
    data = bytes([kind]) + body
    return encode_length(len(data)) + data


def new_packet(tag: int, body: bytes) -> bytes:
    return bytes([0xC0 | tag]) + encode_length(len(body)) + body


def v4_signature(hashed: bytes = b"", unhashed: bytes = b"") -> bytes:
    """A v4 RSA/SHA256 binary signature packet with the given subpackets."""
    body = (
        bytes([4, 0x00, 1, 8])
        + len(hashed).to_bytes(2, "big") + hashed
        + len(unhashed).to_bytes(2, "big") + unhashed
        + b"\xab\xcd"            # left 16 bits of hash
        + b"\x00\x08\xff"        # one-byte MPI
    )
    return new_packet(2, body)


def armor(data: bytes, line_length: int = 64) -> str:
    """Wrap raw packet bytes in a PGP SIGNATURE armor envelope."""
    body = base64.b64encode(data).decode("ascii")
    lines = [ARMOR_BEGIN, ""]
    lines.extend(body[i:i + line_length] for i in range(0, len(body), line_length))
    lines.append("=" + base64.b64encode(crc24(data).to_bytes(3, "big")).decode("ascii"))
    lines.append(ARMOR_END)
    return "\n".join(lines) + "\n"


def signed_blob(key_id: bytes = KEY) -> str:
    """An armored signature naming key_id, the way gpg lays it out."""
    creation = subpacket(2, (T0).to_bytes(4, "big"))
    return armor(v4_signature(hashed=creation, unhashed=subpacket(16, key_id)))


# ---------------------------------------------------------------------------
# Repository builders
# ---------------------------------------------------------------------------


def git(repo: Path, *args: str, input_text: str | None = None,
        env: dict[str, str] | None = None) -> str:
    full_env = {
        **os.environ,
        "GIT_CONFIG_NOSYSTEM": "1",
        "GIT_CONFIG_GLOBAL": os.devnull,
        **(env or {}),
    }
    result = subprocess.run(
        ["git", *args],
        cwd=str(repo),
        input=input_text,
        capture_output=True,
        text=True,
        check=True,
        env=full_env,
    )
    return result.stdout.strip()


def commit(repo: Path, name: str, email: str, when: int, message: str) -> str:
    stamp = f"@{when} +0000"
    git(
        repo, "-c", "commit.gpgsign=false", "commit", "-q", "-m", message,
        env={
            "GIT_AUTHOR_NAME": name,
            "GIT_AUTHOR_EMAIL": email,
            "GIT_AUTHOR_DATE": stamp,
            "GIT_COMMITTER_NAME": name,
            "GIT_COMMITTER_EMAIL": email,
            "GIT_COMMITTER_DATE": stamp,
        },
    )
    return git(repo, "rev-parse", "HEAD")


def signed_commit(repo: Path, name: str, email: str, when: int,
                  message: str, blob: str) -> str:
    """Write a commit object carrying a gpgsig header and move HEAD to it."""
    tree = git(repo, "write-tree")
    parent = git(repo, "rev-parse", "HEAD")
    sig_header = "gpgsig " + "\n ".join(blob.rstrip("\n").split("\n"))
    person = f"{name} <{email}> {when} +0000"
    content = (
        f"tree {tree}\n"
        f"parent {parent}\n"
        f"author {person}\n"
        f"committer {person}\n"
        f"{sig_header}\n"
        f"\n"
        f"{message}\n"
    )
    sha = git(repo, "hash-object", "-t", "commit", "-w", "--stdin", input_text=content)
    git(repo, "update-ref", "HEAD", sha)
    return sha


@pytest.fixture()
def empty_repo(tmp_path: Path) -> Path:
    repo = tmp_path / "empty"
    repo.mkdir()
    git(repo, "init", "-q")
    return repo


@pytest.fixture()
def history_repo(tmp_path: Path) -> Path:
    """Four commits, newest first in git log:

      c4  Alice, signed by KEY   "Add signed file"   +5 lines
      c3  Bob                    "fixed stuff."      +2 lines
      c2  Alice                  "Update readme"     +4 lines
      c1  Alice (root)           "Add readme"        +3 lines (root: scored as 0)
    """
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "-q")

    (repo / "a.txt").write_text("one\ntwo\nthree\n")
    git(repo, "add", "a.txt")
    commit(repo, "Alice", "alice@example.com", T0, "Add readme")

    with open(repo / "a.txt", "a", encoding="utf-8") as fh:
        fh.write("four\nfive\nsix\nseven\n")
    git(repo, "add", "a.txt")
    commit(repo, "Alice", "alice@example.com", T0 + DAY,
           "Update readme\n\nExplain the setup steps\nin more detail.")

    (repo / "b.txt").write_text("x\ny\n")
    git(repo, "add", "b.txt")
    commit(repo, "Bob", "bob@example.com", T0 + 2 * DAY, "fixed stuff.")

    (repo / "c.txt").write_text("1\n2\n3\n4\n5\n")
    git(repo, "add", "c.txt")
    signed_commit(repo, "Alice", "alice@example.com", T0 + 3 * DAY,
                  "Add signed file", signed_blob())
    return repo
