"""Repository-local configuration: <repo>/.git-hygiene.conf.

Format: one entry per line, # comments and blank lines ignored, entries
grouped under [section] headers.

  [imperative]        words earning the verb bonus (replaces defaults)
  [non-imperative]    words counted as wording penalties (replaces defaults)
  [punctuation]       a single line of penalised characters
  [options]           key = value: identity, issuer, top

CLI flags override everything read here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .aggregate import IdentityMode
from .heuristics import DEFAULT_HEURISTICS, Heuristics

log = logging.getLogger(__name__)

CONFIG_NAME = ".git-hygiene.conf"

_WORD_SECTIONS = {
    "imperative": "imperative_verbs",
    "non-imperative": "non_imperative",
}
_SECTIONS = set(_WORD_SECTIONS) | {"punctuation", "options"}
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class ConfigError(ValueError):
    """The config file is malformed."""


@dataclass
class HygieneConfig:
    """Effective settings for one run."""

    heuristics: Heuristics = field(default=DEFAULT_HEURISTICS)
    identity_mode: IdentityMode = IdentityMode.FULL
    issuer: bool = False
    top: int = 10


def _parse_bool(key: str, value: str) -> bool:
    v = value.lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ConfigError(f"{key}: expected true/false, got {value!r}")


def _read_sections(text: str, source: str) -> dict[str, list[str]]:
    sections: dict[str, list[str]] = {}
    current: str | None = None
    for lineno, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("["):
            if not line.endswith("]"):
                raise ConfigError(f"{source}:{lineno}: malformed section header {line!r}")
            current = line[1:-1].strip().lower()
            if current not in _SECTIONS:
                raise ConfigError(f"{source}:{lineno}: unknown section [{current}]")
            sections.setdefault(current, [])
            continue
        if current is None:
            raise ConfigError(f"{source}:{lineno}: entry outside of a section")
        sections[current].append(line)
    return sections


def parse_config(text: str, source: str = CONFIG_NAME) -> HygieneConfig:
    """Build a HygieneConfig from config file text."""
    sections = _read_sections(text, source)
    cfg = HygieneConfig()

    overrides: dict[str, object] = {}
    for section, attr in _WORD_SECTIONS.items():
        if section in sections:
            overrides[attr] = [w for line in sections[section] for w in line.split()]
    if "punctuation" in sections:
        overrides["punctuation"] = "".join("".join(line.split()) for line in sections["punctuation"])
    if overrides:
        cfg.heuristics = DEFAULT_HEURISTICS.with_overrides(**overrides)

    for line in sections.get("options", []):
        key, sep, value = line.partition("=")
        key, value = key.strip().lower(), value.strip()
        if not sep:
            raise ConfigError(f"{source}: option {line!r} is not key = value")
        if key == "identity":
            try:
                cfg.identity_mode = IdentityMode(value.lower())
            except ValueError:
                raise ConfigError(
                    f"{source}: identity must be 'full' or 'name-email', got {value!r}"
                ) from None
        elif key == "issuer":
            cfg.issuer = _parse_bool(key, value)
        elif key == "top":
            try:
                cfg.top = int(value)
            except ValueError:
                raise ConfigError(f"{source}: top must be an integer, got {value!r}") from None
        else:
            raise ConfigError(f"{source}: unknown option {key!r}")
    return cfg


def load_config(repo: str | Path) -> HygieneConfig:
    """Read <repo>/.git-hygiene.conf, or defaults when it is absent."""
    conf = Path(repo) / CONFIG_NAME
    if not conf.exists():
        return HygieneConfig()
    log.debug("Loading config from %s", conf)
    return parse_config(conf.read_text(encoding="utf-8"), source=str(conf))
