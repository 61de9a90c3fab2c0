"""Rich terminal rendering — checkbox trees and the selection summary."""

from __future__ import annotations

from typing import Optional, Union

from rich.console import Console
from rich.text import Text
from rich.tree import Tree

from reviewctx.selection.changeset import ChangeSetTree
from reviewctx.selection.coordinator import SelectionSummary
from reviewctx.selection.cost import format_tokens
from reviewctx.selection.nodes import FileNode, FolderNode, TreeNode
from reviewctx.selection.project import ProjectTree

_STATUS_STYLE = {
    "A": "green",
    "M": "yellow",
    "D": "red",
    "R": "cyan",
    "U": "magenta",
    "?": "dim",
}


def _checkbox(node: TreeNode) -> str:
    match node:
        case FileNode(locked=True):
            return "   "
        case FolderNode() if node.is_partial:
            return "[-]"
    return "[x]" if node.selection.is_checked else "[ ]"


def node_label(node: TreeNode, *, show_tokens: bool = True) -> Text:
    label = Text(f"{_checkbox(node)} ")
    match node:
        case FolderNode():
            label.append(f"{node.name}/", style="bold blue")
        case FileNode(locked=True):
            label.append(node.name, style="dim")
            label.append(" (In Changes)", style="dim italic")
        case FileNode():
            label.append(node.name)
            if node.status is not None:
                label.append(f"  {node.status.label}", style=_STATUS_STYLE[node.status.value])
    if show_tokens and node.cost:
        label.append(f"  ~{format_tokens(node.cost)} tokens", style="dim")
    return label


def _add_children(
    branch: Tree,
    tree: Union[ChangeSetTree, ProjectTree],
    folder: Optional[FolderNode],
    depth: int,
    show_tokens: bool,
) -> None:
    for child in tree.children(folder):
        sub = branch.add(node_label(child, show_tokens=show_tokens))
        if child.kind == "folder" and depth > 1:
            _add_children(sub, tree, child, depth - 1, show_tokens)


def build_tree(
    tree: Union[ChangeSetTree, ProjectTree],
    title: str,
    *,
    folder: Optional[FolderNode] = None,
    depth: int = 1,
    show_tokens: bool = True,
) -> Tree:
    """Build a rich Tree for *tree*, expanding *depth* levels below *folder*."""
    root = Tree(Text(title, style="bold"), guide_style="dim")
    _add_children(root, tree, folder, depth, show_tokens)
    return root


def render_tree(
    tree: Union[ChangeSetTree, ProjectTree],
    title: str,
    console: Optional[Console] = None,
    **options,
) -> None:
    console = console or Console(stderr=True)
    console.print(build_tree(tree, title, **options))


def render_summary(summary: SelectionSummary, console: Optional[Console] = None) -> None:
    console = console or Console(stderr=True)
    console.print()
    console.print(f"[dim]Changed files:[/dim]  {summary.change_files}")
    console.print(f"[dim]Context files:[/dim]  {summary.context_files}")
    console.print(f"[dim]Tokens (est.):[/dim]  ~{summary.tokens_label}")
