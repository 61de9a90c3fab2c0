"""Ignore-pattern matching for both trees.

A path is ignored when any pattern matches it:

  - as a glob against the full ``/``-separated path (``*`` may cross ``/``,
    a leading ``**/`` may match zero directories, dotfiles are not special),
  - as a glob against the last segment when the pattern has no ``/``
    (``*.lock`` and ``package-lock.json`` match at any depth),
  - by exact string equality with any path segment (``out`` hides
    ``a/b/out/main.js`` but not ``output/main.js``).

Matching is case-sensitive. A pattern that is not a valid glob never matches.

Pattern settings come in two shapes: a legacy list of strings, or a mapping of
pattern to an enabled flag. Both normalize to a flat list of enabled patterns.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Tuple

import yaml

from reviewctx.config.loader import ConfigError

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    """Return *path* with forward slashes and no leading ``./`` or ``/``."""
    norm = str(path).replace("\\", "/")
    while norm.startswith("./"):
        norm = norm[2:]
    return norm.lstrip("/")


def _safe_glob(name: str, pattern: str) -> bool:
    try:
        return fnmatchcase(name, pattern)
    except re.error as exc:
        logger.debug("Ignoring malformed pattern %r: %s", pattern, exc)
        return False


def _pattern_matches(path: str, segments: List[str], pattern: str) -> bool:
    if pattern in segments:
        return True
    if _safe_glob(path, pattern):
        return True
    if pattern.startswith("**/") and _safe_glob(path, pattern[3:]):
        return True
    if "/" not in pattern and segments and _safe_glob(segments[-1], pattern):
        return True
    return False


def matches(path: str, patterns: Iterable[str]) -> bool:
    """Return True if *path* is hidden by any of *patterns*."""
    norm = normalize_path(path)
    segments = [s for s in norm.split("/") if s]
    for raw in patterns:
        pattern = raw.strip()
        if not pattern:
            continue
        if _pattern_matches(norm, segments, pattern):
            return True
    return False


def normalize_pattern_config(value: Any) -> List[str]:
    """Flatten a list or ``{pattern: enabled}`` setting into enabled patterns."""
    if value is None:
        return []
    if isinstance(value, dict):
        return [str(pattern) for pattern, enabled in value.items() if enabled]
    if isinstance(value, (list, tuple)):
        return [p for p in value if isinstance(p, str)]
    logger.debug("Unsupported ignore-pattern setting: %r", value)
    return []


@dataclass(frozen=True)
class IgnoreRuleSet:
    """Ordered, de-duplicated set of ignore patterns."""

    patterns: Tuple[str, ...] = ()

    @classmethod
    def of(cls, patterns: Iterable[str]) -> "IgnoreRuleSet":
        seen: dict[str, None] = {}
        for raw in patterns:
            pattern = raw.strip()
            if pattern:
                seen.setdefault(pattern, None)
        return cls(tuple(seen))

    @classmethod
    def from_config(cls, value: Any) -> "IgnoreRuleSet":
        return cls.of(normalize_pattern_config(value))

    def merged(self, other: "IgnoreRuleSet") -> "IgnoreRuleSet":
        return IgnoreRuleSet.of([*self.patterns, *other.patterns])

    def is_ignored(self, path: str) -> bool:
        return matches(path, self.patterns)

    def __iter__(self) -> Iterator[str]:
        return iter(self.patterns)

    def __len__(self) -> int:
        return len(self.patterns)


def load_pattern_file(path: Path) -> List[str]:
    """Load a YAML pattern file holding a list or a ``{pattern: bool}`` mapping."""
    if not path.is_file():
        return []
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc
    if data is not None and not isinstance(data, (list, dict)):
        raise ConfigError(f"{path} must hold a list or a mapping of patterns")
    return normalize_pattern_config(data)


def build_ignore_rules(value: Any, repo_root: Path, filename: str) -> IgnoreRuleSet:
    """Combine configured patterns with an optional YAML file in *repo_root*."""
    rules = IgnoreRuleSet.from_config(value)
    return rules.merged(IgnoreRuleSet.of(load_pattern_file(repo_root / filename)))
