"""Tree nodes for the selection engine.

``TreeNode`` is a closed union of :class:`FileNode` and :class:`FolderNode`,
dispatched with ``match``. Nodes never point at their parent; the parent of a
node is found through :class:`NodeIndex` by its parent path.
"""

from __future__ import annotations

import posixpath
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Literal, Optional, Union

from reviewctx.git.models import ChangeStatus


class InvariantError(AssertionError):
    """Raised when a tree no longer satisfies its structural invariants."""


class Selection(str, Enum):
    CHECKED = "checked"
    UNCHECKED = "unchecked"

    @classmethod
    def coerce(cls, value: Union["Selection", bool]) -> "Selection":
        if isinstance(value, Selection):
            return value
        return cls.CHECKED if value else cls.UNCHECKED

    @property
    def is_checked(self) -> bool:
        return self is Selection.CHECKED


class FileNode:
    """A selectable leaf. ``locked`` files are shown but never selectable."""

    __slots__ = ("_path", "selection", "locked", "cost", "status", "__weakref__")

    kind: Literal["file"] = "file"

    def __init__(
        self,
        path: str,
        selection: Selection = Selection.UNCHECKED,
        locked: bool = False,
        cost: int = 0,
        status: Optional[ChangeStatus] = None,
    ) -> None:
        self._path = path
        self.selection = selection
        self.locked = locked
        self.cost = cost
        self.status = status

    @property
    def path(self) -> str:
        return self._path

    @property
    def name(self) -> str:
        return posixpath.basename(self._path)

    def __repr__(self) -> str:
        flag = " locked" if self.locked else ""
        return f"FileNode({self._path!r}, {self.selection.value}{flag}, cost={self.cost})"


class FolderNode:
    """A folder whose selection and cost are derived from its descendants."""

    __slots__ = (
        "_path",
        "children",
        "selection",
        "cost",
        "checked_files",
        "eligible_files",
        "__weakref__",
    )

    kind: Literal["folder"] = "folder"

    def __init__(self, path: str) -> None:
        self._path = path
        self.children: Dict[str, TreeNode] = {}
        self.selection = Selection.UNCHECKED
        self.cost = 0
        self.checked_files = 0
        self.eligible_files = 0

    @property
    def path(self) -> str:
        return self._path

    @property
    def name(self) -> str:
        return posixpath.basename(self._path)

    @property
    def is_partial(self) -> bool:
        """Some but not all eligible files are checked (display hint only)."""
        return 0 < self.checked_files < self.eligible_files

    def set_counts(self, checked: int, eligible: int, cost: int) -> None:
        self.checked_files = checked
        self.eligible_files = eligible
        self.cost = cost
        self.selection = Selection.coerce(eligible > 0 and checked == eligible)

    def ordered_children(self) -> List["TreeNode"]:
        return sort_nodes(self.children.values())

    def __repr__(self) -> str:
        return (
            f"FolderNode({self._path!r}, {self.selection.value}, "
            f"{self.checked_files}/{self.eligible_files}, cost={self.cost})"
        )


TreeNode = Union[FileNode, FolderNode]


def sort_nodes(nodes: Iterable[TreeNode]) -> List[TreeNode]:
    """Folders first, then files, each group lexicographic by name."""
    return sorted(nodes, key=lambda n: (n.kind == "file", n.name))


def recompute(folder: FolderNode) -> None:
    """Re-derive *folder* from its direct children (children already current)."""
    checked = eligible = cost = 0
    for child in folder.children.values():
        match child:
            case FolderNode():
                checked += child.checked_files
                eligible += child.eligible_files
                cost += child.cost
            case FileNode(locked=False):
                eligible += 1
                cost += child.cost
                if child.selection.is_checked:
                    checked += 1
            case FileNode():
                pass
    folder.set_counts(checked, eligible, cost)


def recompute_subtree(folder: FolderNode) -> None:
    for child in folder.children.values():
        if child.kind == "folder":
            recompute_subtree(child)
    recompute(folder)


class NodeIndex:
    """Arena of nodes keyed by path, rooted at an unnamed folder ``""``."""

    def __init__(self) -> None:
        self.root = FolderNode("")
        self._nodes: Dict[str, TreeNode] = {}

    def __contains__(self, path: str) -> bool:
        return path in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, path: str) -> Optional[TreeNode]:
        return self._nodes.get(path)

    def clear(self) -> None:
        self.root = FolderNode("")
        self._nodes.clear()

    def parent(self, path: str) -> FolderNode:
        parent_path = posixpath.dirname(path)
        if not parent_path:
            return self.root
        node = self._nodes.get(parent_path)
        if node is None or node.kind != "folder":
            raise KeyError(parent_path)
        return node

    def ancestors(self, path: str) -> Iterator[FolderNode]:
        """Yield the folders above *path*, nearest first, ending with the root."""
        current = path
        while current:
            folder = self.parent(current)
            yield folder
            current = folder.path

    def folder(self, path: str) -> FolderNode:
        """Return the folder at *path*, creating it and its parents if needed."""
        if not path:
            return self.root
        existing = self._nodes.get(path)
        if existing is not None:
            if existing.kind != "folder":
                raise InvariantError(f"{path!r} is already a file")
            return existing
        parent = self.folder(posixpath.dirname(path))
        node = FolderNode(path)
        parent.children[node.name] = node
        self._nodes[path] = node
        return node

    def add_file(self, node: FileNode) -> FileNode:
        existing = self._nodes.get(node.path)
        if existing is not None:
            if existing.kind != "file":
                raise InvariantError(f"{node.path!r} is already a folder")
            return existing
        parent = self.folder(posixpath.dirname(node.path))
        parent.children[node.name] = node
        self._nodes[node.path] = node
        return node

    def files(self, start: Optional[FolderNode] = None) -> Iterator[FileNode]:
        """Yield files under *start* in hierarchy order."""
        for child in (start or self.root).ordered_children():
            match child:
                case FolderNode():
                    yield from self.files(child)
                case FileNode():
                    yield child

    def refresh_ancestors(self, paths: Iterable[str]) -> None:
        """Recompute every folder above *paths*, deepest first."""
        folders: Dict[str, FolderNode] = {}
        for path in paths:
            for folder in self.ancestors(path):
                folders[folder.path] = folder
        for path in sorted(folders, key=_depth, reverse=True):
            recompute(folders[path])

    def check_invariants(self) -> None:
        """Assert path containment and derived folder state for the whole tree."""
        _check_folder(self.root)


def _depth(path: str) -> int:
    return path.count("/") + 1 if path else 0


def _check_folder(folder: FolderNode) -> tuple[int, int, int]:
    checked = eligible = cost = 0
    prefix = folder.path + "/" if folder.path else ""
    for child in folder.children.values():
        if not child.path.startswith(prefix) or child.path == prefix:
            raise InvariantError(f"{child.path!r} is not under {folder.path!r}")
        match child:
            case FolderNode():
                c, e, k = _check_folder(child)
                checked, eligible, cost = checked + c, eligible + e, cost + k
            case FileNode(locked=False):
                eligible += 1
                cost += child.cost
                checked += 1 if child.selection.is_checked else 0
            case FileNode():
                if child.selection.is_checked:
                    raise InvariantError(f"locked file {child.path!r} is checked")
    expected = Selection.coerce(eligible > 0 and checked == eligible)
    if (folder.checked_files, folder.eligible_files, folder.cost) != (checked, eligible, cost):
        raise InvariantError(
            f"folder {folder.path!r} counts {folder.checked_files}/{folder.eligible_files}"
            f" cost {folder.cost}, expected {checked}/{eligible} cost {cost}"
        )
    if folder.selection is not expected:
        raise InvariantError(f"folder {folder.path!r} is {folder.selection.value}")
    return checked, eligible, cost
