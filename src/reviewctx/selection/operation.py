"""Cancelable, observable scope for long-running tree walks."""

from __future__ import annotations

import threading
from typing import Callable, Optional

ProgressCallback = Callable[[str, int], None]


class LongOperation:
    """Tracks one long-running walk.

    ``cancel()`` may be called from a progress callback or from another
    thread; the walk checks :attr:`cancelled` between directory reads and
    stops, keeping whatever it already did.
    """

    def __init__(self, title: str = "", on_progress: Optional[ProgressCallback] = None) -> None:
        self.title = title
        self._on_progress = on_progress
        self._cancel = threading.Event()
        self.running = False
        self.finished = False
        self.processed = 0

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        self._cancel.set()

    def report(self, message: str, processed: int) -> None:
        self.processed = processed
        if self._on_progress is not None:
            self._on_progress(message, processed)

    def __enter__(self) -> "LongOperation":
        self.running = True
        self.finished = False
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.running = False
        self.finished = True
