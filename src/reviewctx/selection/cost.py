"""Per-file cost (token) estimates, memoized by absolute path."""

from __future__ import annotations

import logging
import math
import os
import threading
from pathlib import Path
from typing import Callable, Dict, Optional, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
Fallback = Callable[[], str]


def estimate_text(text: str) -> int:
    # Rough heuristic: ~4 characters per token.
    if not text:
        return 0
    return max(1, math.ceil(len(text) / 4))


def format_tokens(count: int) -> str:
    """Render *count* for display: ``950``, ``1K``, ``1.5K``, ``12.3K``."""
    if count >= 1000:
        shortened = math.floor(count / 100 + 0.5) / 10
        if shortened == int(shortened):
            return f"{int(shortened)}K"
        return f"{shortened}K"
    return str(count)


def _key(path: PathLike) -> str:
    return os.path.abspath(os.fspath(path))


class CostEstimator:
    """Memoized cost estimates shared by the change-set and project trees.

    Entries live until :meth:`invalidate` or :meth:`clear` is called; a file
    edited on disk keeps its old estimate until then.
    """

    def __init__(self) -> None:
        self._cache: Dict[str, int] = {}
        self._lock = threading.Lock()

    def estimate(self, path: PathLike, fallback: Optional[Fallback] = None) -> int:
        key = _key(path)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        content = ""
        try:
            content = Path(key).read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            if fallback is not None:
                try:
                    content = fallback()
                except Exception as fb_exc:  # noqa: BLE001
                    logger.debug("Cost fallback failed for %s: %s", key, fb_exc)
                    content = ""
            else:
                logger.debug("Cannot read %s for cost: %s", key, exc)

        result = estimate_text(content)
        with self._lock:
            self._cache[key] = result
        return result

    def cached(self, path: PathLike) -> bool:
        with self._lock:
            return _key(path) in self._cache

    def invalidate(self, path: PathLike) -> bool:
        """Drop the memoized estimate for *path*. Returns True if one existed."""
        with self._lock:
            return self._cache.pop(_key(path), None) is not None

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
