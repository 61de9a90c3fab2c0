"""Shared behaviour of both checkbox trees.

Batch propagation for one user gesture:

  1. split the batch into file changes and folder changes;
  2. apply every file change;
  3. only when the batch has no file changes, cascade each folder change to
     all of its descendants. With file changes present, folder entries are the
     host's redraw of a derived state and are not cascaded;
  4. recompute the affected folders bottom-up;
  5. emit one change event.

Mutations of one tree never interleave: a mutation requested while another
is running (typically from a change listener) is queued and runs after the
current change event has been emitted.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque, Iterable, List, Optional, Sequence, Tuple, TypeVar, Union

from reviewctx.selection.nodes import FileNode, FolderNode, Selection, TreeNode

logger = logging.getLogger(__name__)

T = TypeVar("T")

BatchChange = Tuple[TreeNode, Union[Selection, bool]]
Listener = Callable[..., None]


class SelectionError(Exception):
    """Raised when the selection engine is used incorrectly."""


class Event:
    """Minimal synchronous signal."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def connect(self, listener: Listener) -> Listener:
        self._listeners.append(listener)
        return listener

    def disconnect(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def emit(self, *args: object) -> None:
        for listener in list(self._listeners):
            listener(*args)


class SelectionTree:
    """Base for :class:`ChangeSetTree` and :class:`ProjectTree`."""

    name = "tree"

    def __init__(self) -> None:
        self.on_changed = Event()
        self._selected: set[str] = set()
        self._busy = False
        self._pending: Deque[Callable[[], object]] = deque()

    # ---- serialized mutation ----

    def _run(self, mutation: Callable[[], T]) -> Optional[T]:
        """Run *mutation*, then emit one change event.

        Returns None when the mutation was queued behind a running one.
        """
        if self._busy:
            self._pending.append(mutation)
            return None
        self._busy = True
        try:
            result = mutation()
            self.on_changed.emit(self)
            while self._pending:
                self._pending.popleft()()
                self.on_changed.emit(self)
        except BaseException:
            self._pending.clear()
            raise
        finally:
            self._busy = False
        return result

    # ---- batch propagation ----

    def apply_batch(self, changes: Iterable[BatchChange]) -> Optional[int]:
        """Apply one gesture's checkbox changes. Returns the number of files changed."""
        batch = [(node, Selection.coerce(state)) for node, state in changes]
        return self._run(lambda: self._apply_batch(batch))

    def _apply_batch(self, batch: Sequence[Tuple[TreeNode, Selection]]) -> int:
        file_changes: List[Tuple[FileNode, Selection]] = []
        folder_changes: List[Tuple[FolderNode, Selection]] = []
        for node, selection in batch:
            match node:
                case FileNode():
                    file_changes.append((node, selection))
                case FolderNode():
                    folder_changes.append((node, selection))

        touched: List[str] = []
        for file_node, selection in file_changes:
            if self._apply_file(file_node, selection):
                touched.append(file_node.path)

        if not file_changes:
            for folder, selection in folder_changes:
                touched.extend(self._cascade(folder, selection))
        elif folder_changes:
            logger.debug(
                "%s: %d derived folder entries not cascaded", self.name, len(folder_changes)
            )

        self._settle(touched, [folder for folder, _ in folder_changes])
        return len(touched)

    def _apply_file(self, node: FileNode, selection: Selection) -> bool:
        raise NotImplementedError

    def _cascade(self, folder: FolderNode, selection: Selection) -> List[str]:
        raise NotImplementedError

    def _settle(self, touched: List[str], folders: List[FolderNode]) -> None:
        raise NotImplementedError

    def _mark(self, path: str, selection: Selection) -> None:
        if selection.is_checked:
            self._selected.add(path)
        else:
            self._selected.discard(path)

    # ---- queries ----

    def is_checked(self, path: str) -> bool:
        return path in self._selected

    def checked_paths(self) -> List[str]:
        raise NotImplementedError

    def set_all_checked(self, checked: bool) -> Optional[int]:
        raise NotImplementedError
