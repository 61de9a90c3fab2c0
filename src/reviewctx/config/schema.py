"""Configuration schema — dataclasses for every config section."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Union

OutputFormat = Literal["terminal", "json", "prompt"]

OUTPUT_FORMATS: tuple[str, ...] = ("terminal", "json", "prompt")

# Legacy settings store a plain list; current settings map pattern -> enabled.
PatternConfig = Union[List[str], Dict[str, bool]]

DEFAULT_PROJECT_IGNORE: tuple[str, ...] = (
    ".git",
    "node_modules",
    "out",
    "dist",
    "build",
    ".vscode",
    ".idea",
    ".DS_Store",
    "coverage",
)

DEFAULT_INSTRUCTION = "Review changes."


@dataclass
class ReviewConfig:
    target: str = ""  # base ref
    source: str = ""  # compare ref
    instruction: str = DEFAULT_INSTRUCTION


@dataclass
class IgnoreConfig:
    project: PatternConfig = field(default_factory=lambda: list(DEFAULT_PROJECT_IGNORE))
    diff: PatternConfig = field(default_factory=list)


@dataclass
class OutputConfig:
    format: OutputFormat = "terminal"
    show_tokens: bool = True


@dataclass
class ReviewCtxConfig:
    version: str = "1.0"
    review: ReviewConfig = field(default_factory=ReviewConfig)
    ignore: IgnoreConfig = field(default_factory=IgnoreConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
