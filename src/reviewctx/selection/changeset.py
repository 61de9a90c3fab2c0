"""Checkbox tree over the files that differ between two refs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from reviewctx.git.models import ChangedFile
from reviewctx.selection.base import SelectionTree
from reviewctx.selection.cost import CostEstimator
from reviewctx.selection.nodes import (
    FileNode,
    FolderNode,
    InvariantError,
    NodeIndex,
    Selection,
    TreeNode,
    recompute_subtree,
)
from reviewctx.selection.patterns import IgnoreRuleSet

logger = logging.getLogger(__name__)

BlobReader = Callable[[str], str]


class RebuildKind(str, Enum):
    READY = "ready"
    NO_CHANGES = "no_changes"
    ALL_HIDDEN = "all_hidden"


@dataclass(frozen=True)
class RebuildOutcome:
    total: int  # changed paths before filtering
    visible: int  # after the ignore rules

    @property
    def hidden(self) -> int:
        return self.total - self.visible

    @property
    def kind(self) -> RebuildKind:
        if self.total == 0:
            return RebuildKind.NO_CHANGES
        if self.visible == 0:
            return RebuildKind.ALL_HIDDEN
        return RebuildKind.READY


class ChangeSetTree(SelectionTree):
    """Folders by path segment over the change set, every file checked on load."""

    name = "changes"

    def __init__(
        self,
        ignore_rules: Optional[IgnoreRuleSet] = None,
        estimator: Optional[CostEstimator] = None,
        root: Optional[Path] = None,
        blob_reader: Optional[BlobReader] = None,
    ) -> None:
        super().__init__()
        self.ignore_rules = ignore_rules or IgnoreRuleSet()
        self.estimator = estimator
        self.root = root
        self.blob_reader = blob_reader
        self._index = NodeIndex()
        self._entries: List[ChangedFile] = []
        self._files: List[ChangedFile] = []
        self.outcome: Optional[RebuildOutcome] = None

    # ---- construction ----

    def rebuild(self, entries: Iterable[ChangedFile]) -> Optional[RebuildOutcome]:
        """Replace the tree with *entries*, all files checked.

        Returns None when called from a change listener of this tree; the
        rebuild then runs right after the current change event.
        """
        entries = list(entries)
        return self._run(lambda: self._rebuild(entries))

    def _rebuild(self, entries: List[ChangedFile]) -> RebuildOutcome:
        self._entries = entries
        self._index.clear()
        self._selected.clear()
        self._files = []
        for changed in entries:
            if self.ignore_rules.is_ignored(changed.path):
                continue
            node = FileNode(
                changed.path,
                selection=Selection.CHECKED,
                cost=self._estimate(changed.path),
                status=changed.status,
            )
            try:
                self._index.add_file(node)
            except InvariantError:
                # e.g. file "a" deleted while "a/b" was added
                logger.warning("Skipping %s: path clashes with a folder", changed.path)
                continue
            self._files.append(changed)
            self._selected.add(node.path)
        recompute_subtree(self._index.root)
        self.outcome = RebuildOutcome(total=len(entries), visible=len(self._files))
        return self.outcome

    def set_ignore_rules(self, rules: IgnoreRuleSet) -> Optional[RebuildOutcome]:
        """Swap the ignore rules and rebuild from the last unfiltered entries."""
        self.ignore_rules = rules
        return self.rebuild(self._entries)

    def _estimate(self, path: str) -> int:
        if self.estimator is None or self.root is None:
            return 0
        fallback = partial(self.blob_reader, path) if self.blob_reader is not None else None
        return self.estimator.estimate(self.root / path, fallback=fallback)

    # ---- mutation ----

    def set_all_checked(self, checked: bool) -> Optional[int]:
        selection = Selection.coerce(checked)

        def run() -> int:
            files = list(self._index.files())
            for node in files:
                node.selection = selection
                self._mark(node.path, selection)
            recompute_subtree(self._index.root)
            return len(files)

        return self._run(run)

    def _current(self, node: TreeNode) -> Optional[TreeNode]:
        current = self._index.get(node.path)
        if current is None or current.kind != node.kind:
            return None
        return current

    def _apply_file(self, node: FileNode, selection: Selection) -> bool:
        current = self._current(node)
        if current is None:
            return False
        current.selection = selection
        if current is not node:
            node.selection = selection
        self._mark(current.path, selection)
        return True

    def _cascade(self, folder: FolderNode, selection: Selection) -> List[str]:
        current = self._current(folder)
        if current is None:
            return []
        touched: List[str] = []
        for node in self._index.files(current):
            node.selection = selection
            self._mark(node.path, selection)
            touched.append(node.path)
        return touched

    def _settle(self, touched: List[str], folders: List[FolderNode]) -> None:
        for folder in folders:
            current = self._current(folder)
            if current is not None:
                recompute_subtree(current)
                touched.append(current.path)
        self._index.refresh_ancestors(touched)

    # ---- queries ----

    def roots(self) -> List[TreeNode]:
        """Top-level folders (sorted), then top-level files (sorted)."""
        return self._index.root.ordered_children()

    def children(self, folder: Optional[FolderNode] = None) -> List[TreeNode]:
        if folder is None:
            return self.roots()
        current = self._current(folder)
        return current.ordered_children() if current is not None else []

    def get(self, path: str) -> Optional[TreeNode]:
        return self._index.get(path)

    def checked_paths(self) -> List[str]:
        return [n.path for n in self._index.files() if n.selection.is_checked]

    def changed_files(self) -> List[ChangedFile]:
        """The visible change set, in load order."""
        return list(self._files)

    def checked_files(self) -> List[ChangedFile]:
        by_path = {f.path: f for f in self._files}
        return [by_path[p] for p in self.checked_paths()]

    def selected_cost_total(self) -> int:
        return sum(n.cost for n in self._index.files() if n.selection.is_checked)

    @property
    def total_cost(self) -> int:
        return self._index.root.cost

    @property
    def is_empty(self) -> bool:
        return not self._files

    def check_invariants(self) -> None:
        self._index.check_invariants()
