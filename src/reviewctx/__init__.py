"""reviewctx — select changed and context files between two refs and pack them for review."""

__version__ = "0.1.0"
