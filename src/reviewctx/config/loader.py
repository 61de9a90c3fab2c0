"""Load and merge configuration from .reviewctx.toml, CLI flags, and env vars."""

from __future__ import annotations

import dataclasses
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from reviewctx.config.schema import (
    OUTPUT_FORMATS,
    IgnoreConfig,
    OutputConfig,
    PatternConfig,
    ReviewConfig,
    ReviewCtxConfig,
)

CONFIG_FILENAME = ".reviewctx.toml"


class ConfigError(Exception):
    """Raised when config is malformed or unreadable."""


def find_config_file(repo_root: Path, override: Optional[str] = None) -> Optional[Path]:
    """Locate the config file. *override* takes precedence."""
    if override:
        p = Path(override)
        if not p.is_file():
            raise ConfigError(f"Config file not found: {override}")
        return p
    candidate = repo_root / CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def _parse_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc


def _split_env_list(value: str) -> List[str]:
    return [p.strip() for p in value.split(os.pathsep) if p.strip()]


def extend_patterns(current: PatternConfig, extra: List[str]) -> PatternConfig:
    """Append *extra* patterns to either config form, keeping its shape."""
    if isinstance(current, dict):
        merged = dict(current)
        for pattern in extra:
            merged[pattern] = True
        return merged
    return [*current, *(p for p in extra if p not in current)]


def _merge_env_overrides(cfg: ReviewCtxConfig) -> None:
    """Apply REVIEWCTX_* environment variable overrides."""
    if val := os.environ.get("REVIEWCTX_TARGET"):
        cfg.review.target = val.strip()
    if val := os.environ.get("REVIEWCTX_SOURCE"):
        cfg.review.source = val.strip()
    if val := os.environ.get("REVIEWCTX_FORMAT"):
        if val in OUTPUT_FORMATS:
            cfg.output.format = val  # type: ignore[assignment]
    if val := os.environ.get("REVIEWCTX_IGNORE"):
        cfg.ignore.project = extend_patterns(cfg.ignore.project, _split_env_list(val))
    if val := os.environ.get("REVIEWCTX_DIFF_IGNORE"):
        cfg.ignore.diff = extend_patterns(cfg.ignore.diff, _split_env_list(val))


def _build_section(data: Dict[str, Any], cls: type, section: str):
    """Build a dataclass from a TOML section dict, ignoring unknown keys."""
    raw = data.get(section, {})
    if not isinstance(raw, dict):
        raise ConfigError(f"[{section}] must be a table, got {type(raw).__name__}")
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in raw.items() if k in valid_fields}
    return cls(**filtered)


def _check_patterns(section: str, value: Any) -> None:
    if isinstance(value, list) and all(isinstance(p, str) for p in value):
        return
    if isinstance(value, dict) and all(isinstance(v, bool) for v in value.values()):
        return
    raise ConfigError(
        f"ignore.{section} must be a list of patterns or a table of pattern = true/false"
    )


def load_config(
    repo_root: Path,
    config_override: Optional[str] = None,
) -> ReviewCtxConfig:
    """Load, validate, and return a ReviewCtxConfig."""
    config_path = find_config_file(repo_root, config_override)

    if config_path is None:
        cfg = ReviewCtxConfig()
    else:
        raw = _parse_toml(config_path)
        cfg = ReviewCtxConfig(
            version=str(raw.get("version", "1.0")),
            review=_build_section(raw, ReviewConfig, "review"),
            ignore=_build_section(raw, IgnoreConfig, "ignore"),
            output=_build_section(raw, OutputConfig, "output"),
        )
        _check_patterns("project", cfg.ignore.project)
        _check_patterns("diff", cfg.ignore.diff)
        if cfg.output.format not in OUTPUT_FORMATS:
            raise ConfigError(
                f"output.format must be one of {', '.join(OUTPUT_FORMATS)}: {cfg.output.format}"
            )

    _merge_env_overrides(cfg)
    return cfg
