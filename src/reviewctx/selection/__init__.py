"""Selection engine — pattern filtering, cost estimates, checkbox trees."""

from reviewctx.selection.base import Event, SelectionError, SelectionTree
from reviewctx.selection.changeset import ChangeSetTree, RebuildKind, RebuildOutcome
from reviewctx.selection.coordinator import SelectionCoordinator, SelectionSummary
from reviewctx.selection.cost import CostEstimator, estimate_text, format_tokens
from reviewctx.selection.nodes import (
    FileNode,
    FolderNode,
    InvariantError,
    NodeIndex,
    Selection,
    TreeNode,
)
from reviewctx.selection.operation import LongOperation
from reviewctx.selection.patterns import (
    IgnoreRuleSet,
    load_pattern_file,
    matches,
    normalize_pattern_config,
)
from reviewctx.selection.project import ProjectTree

__all__ = [
    "ChangeSetTree",
    "CostEstimator",
    "Event",
    "FileNode",
    "FolderNode",
    "IgnoreRuleSet",
    "InvariantError",
    "LongOperation",
    "NodeIndex",
    "ProjectTree",
    "RebuildKind",
    "RebuildOutcome",
    "Selection",
    "SelectionCoordinator",
    "SelectionError",
    "SelectionSummary",
    "SelectionTree",
    "TreeNode",
    "estimate_text",
    "format_tokens",
    "load_pattern_file",
    "matches",
    "normalize_pattern_config",
]
