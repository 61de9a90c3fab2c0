"""Lazily expanded checkbox tree over the whole project directory."""

from __future__ import annotations

import logging
import os
import posixpath
import weakref
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

from reviewctx.selection.base import SelectionError, SelectionTree
from reviewctx.selection.cost import CostEstimator
from reviewctx.selection.nodes import FileNode, FolderNode, Selection, TreeNode, sort_nodes
from reviewctx.selection.operation import LongOperation
from reviewctx.selection.patterns import IgnoreRuleSet

logger = logging.getLogger(__name__)


class ProjectTree(SelectionTree):
    """Checkbox tree over *root*, read from disk one folder at a time.

    Files that are also in the change set are ``locked``: they are listed but
    cannot be selected and never count towards folder rollups. A folder's
    selection and cost are recomputed from disk every time it is listed.
    """

    name = "project"

    def __init__(
        self,
        root: Path,
        ignore_rules: Optional[IgnoreRuleSet] = None,
        estimator: Optional[CostEstimator] = None,
    ) -> None:
        super().__init__()
        self.root = Path(root)
        self.ignore_rules = ignore_rules or IgnoreRuleSet()
        self.estimator = estimator or CostEstimator()
        self._locked: frozenset[str] = frozenset()
        # Nodes handed out by children(), kept only while the caller holds them.
        self._live: "weakref.WeakValueDictionary[str, TreeNode]" = weakref.WeakValueDictionary()

    # ---- directory access ----

    def _list_dir(self, rel: str) -> List[Tuple[str, bool]]:
        """Return visible ``(relative_path, is_dir)`` entries of *rel*, unsorted."""
        directory = self.root / rel if rel else self.root
        entries: List[Tuple[str, bool]] = []
        try:
            with os.scandir(directory) as it:
                for entry in it:
                    child = posixpath.join(rel, entry.name) if rel else entry.name
                    if self.ignore_rules.is_ignored(child):
                        continue
                    try:
                        is_dir = entry.is_dir(follow_symlinks=False)
                    except OSError:
                        is_dir = False
                    entries.append((child, is_dir))
        except OSError as exc:
            logger.debug("Cannot list %s: %s", directory, exc)
            return []
        return entries

    def _iter_files(self, rel: str, operation: Optional[LongOperation] = None) -> Iterator[str]:
        """Yield every visible file below *rel*, depth first."""
        stack = [rel]
        while stack:
            if operation is not None and operation.cancelled:
                return
            entries = sorted(self._list_dir(stack.pop()))
            for child, is_dir in entries:
                if not is_dir:
                    yield child
            stack.extend(child for child, is_dir in reversed(entries) if is_dir)

    def _cost(self, rel: str) -> int:
        return self.estimator.estimate(self.root / rel)

    def _summarize(self, rel: str) -> Tuple[int, int, int]:
        """Walk *rel* and return ``(checked, eligible, cost)`` over unlocked files."""
        checked = eligible = cost = 0
        for path in self._iter_files(rel):
            if path in self._locked:
                continue
            eligible += 1
            cost += self._cost(path)
            if path in self._selected:
                checked += 1
        return checked, eligible, cost

    # ---- nodes ----

    def _file_node(self, rel: str) -> FileNode:
        locked = rel in self._locked
        selected = not locked and rel in self._selected
        node = FileNode(
            rel,
            selection=Selection.coerce(selected),
            locked=locked,
            cost=self._cost(rel),
        )
        self._live[rel] = node
        return node

    def _folder_node(self, rel: str) -> FolderNode:
        node = FolderNode(rel)
        node.set_counts(*self._summarize(rel))
        self._live[rel] = node
        return node

    def children(self, folder: Optional[FolderNode] = None) -> List[TreeNode]:
        """List *folder* (or the root), folders first, each group sorted.

        An unreadable folder lists as empty.
        """
        rel = folder.path if folder is not None else ""
        nodes: List[TreeNode] = []
        for child, is_dir in self._list_dir(rel):
            nodes.append(self._folder_node(child) if is_dir else self._file_node(child))
        return sort_nodes(nodes)

    def node(self, rel: str) -> Optional[TreeNode]:
        """Build a node for one relative path, or None if missing or ignored."""
        rel = rel.strip("/")
        if not rel or self.ignore_rules.is_ignored(rel):
            return None
        full = self.root / rel
        if full.is_dir() and not full.is_symlink():
            return self._folder_node(rel)
        if full.exists() or full.is_symlink():
            return self._file_node(rel)
        return None

    # ---- mutation ----

    @property
    def locked_paths(self) -> frozenset[str]:
        return self._locked

    def update_change_set(self, paths: Iterable[str]) -> None:
        """Replace the locked paths. The selection set itself is left alone."""
        locked = frozenset(paths)

        def run() -> None:
            self._locked = locked
            for path, node in list(self._live.items()):
                if node.kind == "file":
                    node.locked = path in locked
                    node.selection = Selection.coerce(
                        not node.locked and path in self._selected
                    )
            self._refresh_live_folders()

        self._run(run)

    def set_ignore_rules(self, rules: IgnoreRuleSet) -> None:
        """Replace the ignore rules, dropping selected paths they now hide."""

        def run() -> None:
            self.ignore_rules = rules
            hidden = {p for p in self._selected if self._is_hidden(p)}
            if hidden:
                logger.debug("Dropping %d selected paths hidden by new rules", len(hidden))
                self._selected -= hidden
            self._sync_live()

        self._run(run)

    def _is_hidden(self, rel: str) -> bool:
        """True if *rel* or any folder above it is ignored."""
        while rel:
            if self.ignore_rules.is_ignored(rel):
                return True
            rel = posixpath.dirname(rel)
        return False

    def set_all_checked(
        self, checked: bool, operation: Optional[LongOperation] = None
    ) -> Optional[int]:
        """Select every visible unlocked file, or clear the selection.

        Selecting walks the whole tree inside *operation*. A cancelled walk
        keeps the paths it already added. Returns the number of paths added
        (or removed).
        """
        if not checked:
            def clear() -> int:
                removed = len(self._selected)
                self._selected.clear()
                for node in list(self._live.values()):
                    match node:
                        case FileNode():
                            node.selection = Selection.UNCHECKED
                        case FolderNode():
                            node.set_counts(0, node.eligible_files, node.cost)
                return removed

            return self._run(clear)

        op = operation or LongOperation("Selecting all project files")
        if op.running:
            raise SelectionError(f"{op.title or 'operation'} is already running")
        return self._run(lambda: self._select_all(op))

    def _select_all(self, operation: LongOperation) -> int:
        added = 0
        with operation:
            for path in self._iter_files("", operation):
                if path in self._locked or path in self._selected:
                    continue
                self._selected.add(path)
                added += 1
                if added % 100 == 0:
                    operation.report(path, added)
            operation.report("cancelled" if operation.cancelled else "done", added)
        if operation.cancelled:
            logger.info("Select-all cancelled after %d paths", added)
        self._sync_live()
        return added

    def toggle(self, node: FileNode) -> Optional[int]:
        target = not self.is_checked(node.path)
        return self.apply_batch([(node, target)])

    def _apply_file(self, node: FileNode, selection: Selection) -> bool:
        if node.locked or node.path in self._locked:
            return False
        node.selection = selection
        self._mark(node.path, selection)
        return True

    def _cascade(self, folder: FolderNode, selection: Selection) -> List[str]:
        touched: List[str] = []
        for path in self._iter_files(folder.path):
            if path in self._locked:
                continue
            self._mark(path, selection)
            touched.append(path)
        return touched

    def _settle(self, touched: List[str], folders: List[FolderNode]) -> None:
        for path in touched:
            node = self._live.get(path)
            if node is not None and node.kind == "file":
                node.selection = Selection.coerce(path in self._selected)
        for folder in folders:
            folder.set_counts(*self._summarize(folder.path))
        affected = {folder.path for folder in folders}
        for path in touched:
            parent = posixpath.dirname(path)
            while parent:
                affected.add(parent)
                parent = posixpath.dirname(parent)
        self._refresh_live_folders(affected)

    def _sync_live(self) -> None:
        for path, node in list(self._live.items()):
            if node.kind == "file":
                node.selection = Selection.coerce(
                    not node.locked and path in self._selected
                )
        self._refresh_live_folders()

    def _refresh_live_folders(self, only: Optional[Iterable[str]] = None) -> None:
        wanted = set(only) if only is not None else None
        for path, node in list(self._live.items()):
            if node.kind != "folder":
                continue
            if wanted is not None and path not in wanted:
                continue
            node.set_counts(*self._summarize(path))

    # ---- queries ----

    def checked_paths(self) -> List[str]:
        """Checked paths, sorted. Paths locked since they were checked are left out."""
        return sorted(p for p in self._selected if p not in self._locked)

    def selected_cost_total(self) -> int:
        return sum(self._cost(p) for p in self.checked_paths())
