"""Configuration loading, schema, and defaults."""

from reviewctx.config.loader import ConfigError, load_config
from reviewctx.config.schema import (
    DEFAULT_PROJECT_IGNORE,
    PatternConfig,
    ReviewCtxConfig,
)

__all__ = [
    "ConfigError",
    "DEFAULT_PROJECT_IGNORE",
    "PatternConfig",
    "ReviewCtxConfig",
    "load_config",
]
