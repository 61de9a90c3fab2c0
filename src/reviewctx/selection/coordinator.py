"""Wires the change-set tree and the project tree together."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Optional, Union

from reviewctx.config.schema import DEFAULT_INSTRUCTION, ReviewCtxConfig
from reviewctx.git.adapter import GitClient
from reviewctx.git.models import ChangedFile
from reviewctx.selection.base import BatchChange, Event, SelectionError, SelectionTree
from reviewctx.selection.changeset import ChangeSetTree, RebuildOutcome
from reviewctx.selection.cost import CostEstimator, format_tokens
from reviewctx.selection.operation import LongOperation
from reviewctx.selection.patterns import IgnoreRuleSet, build_ignore_rules
from reviewctx.selection.project import ProjectTree

if TYPE_CHECKING:
    from reviewctx.output.prompt import DocumentAssembler

logger = logging.getLogger(__name__)

PROJECT_IGNORE_FILE = ".reviewctx-ignore.yaml"
DIFF_IGNORE_FILE = ".reviewctx-diff-ignore.yaml"

TreeRef = Union[str, SelectionTree]


@dataclass(frozen=True)
class SelectionSummary:
    change_files: int
    context_files: int
    tokens: int

    @property
    def total_files(self) -> int:
        return self.change_files + self.context_files

    @property
    def tokens_label(self) -> str:
        return format_tokens(self.tokens)


class SelectionCoordinator:
    """Owns both trees, one shared CostEstimator and the ref pair."""

    def __init__(
        self,
        repo_root: Path,
        client: Optional[GitClient] = None,
        estimator: Optional[CostEstimator] = None,
        project_ignore: Optional[IgnoreRuleSet] = None,
        diff_ignore: Optional[IgnoreRuleSet] = None,
    ) -> None:
        self.repo_root = Path(repo_root)
        self.client = client or GitClient(self.repo_root)
        self.estimator = estimator or CostEstimator()
        self.target: Optional[str] = None
        self.source: Optional[str] = None
        self.instruction = DEFAULT_INSTRUCTION

        self.changes = ChangeSetTree(
            diff_ignore,
            estimator=self.estimator,
            root=self.repo_root,
            blob_reader=self._read_source_blob,
        )
        self.project = ProjectTree(self.repo_root, project_ignore, self.estimator)

        self.on_selection_changed = Event()
        self._forwarding_changes = False
        self.changes.on_changed.connect(self._on_changes_changed)
        self.project.on_changed.connect(self._on_project_changed)

    @classmethod
    def from_config(
        cls, repo_root: Path, cfg: ReviewCtxConfig, client: Optional[GitClient] = None
    ) -> "SelectionCoordinator":
        coordinator = cls(repo_root, client=client)
        coordinator.apply_config(cfg)
        return coordinator

    # ---- wiring ----

    def _read_source_blob(self, path: str) -> str:
        if not self.source:
            return ""
        return self.client.read_blob(self.source, path)

    def _on_changes_changed(self, tree: ChangeSetTree) -> None:
        changed = {f.path for f in tree.changed_files()}
        if changed != self.project.locked_paths:
            # The project event for the new locks is folded into this one.
            self._forwarding_changes = True
            try:
                self.project.update_change_set(changed)
            finally:
                self._forwarding_changes = False
        self.on_selection_changed.emit(self)

    def _on_project_changed(self, tree: ProjectTree) -> None:
        if not self._forwarding_changes:
            self.on_selection_changed.emit(self)

    def tree(self, ref: TreeRef) -> SelectionTree:
        if isinstance(ref, SelectionTree):
            if ref is self.changes or ref is self.project:
                return ref
            raise SelectionError("tree does not belong to this coordinator")
        if ref == ChangeSetTree.name:
            return self.changes
        if ref == ProjectTree.name:
            return self.project
        raise SelectionError(f"unknown tree: {ref!r} (expected 'changes' or 'project')")

    # ---- configuration ----

    def apply_config(self, cfg: ReviewCtxConfig) -> None:
        """Rebuild both ignore rule sets and pick up default refs/instruction."""
        self.instruction = cfg.review.instruction or DEFAULT_INSTRUCTION
        self.project.set_ignore_rules(
            build_ignore_rules(cfg.ignore.project, self.repo_root, PROJECT_IGNORE_FILE)
        )
        diff_rules = build_ignore_rules(cfg.ignore.diff, self.repo_root, DIFF_IGNORE_FILE)
        refs = (cfg.review.target, cfg.review.source)
        if all(refs) and refs != (self.target, self.source):
            self.changes.ignore_rules = diff_rules
            self.set_refs(cfg.review.target, cfg.review.source)
        elif self.target and self.source:
            self.changes.set_ignore_rules(diff_rules)
        else:
            self.changes.ignore_rules = diff_rules

    def set_refs(self, target: str, source: str) -> Optional[RebuildOutcome]:
        """Reload the change set when the ref pair changes."""
        if (target, source) == (self.target, self.source):
            return None
        self.target, self.source = target or None, source or None
        if not (self.target and self.source):
            return None
        return self.reload()

    def reload(self) -> Optional[RebuildOutcome]:
        if not (self.target and self.source):
            raise SelectionError("select both a target and a source ref first")
        entries = self.client.list_changed_paths(self.target, self.source)
        outcome = self.changes.rebuild(entries)
        if outcome is not None:
            logger.info(
                "Loaded %d changed files (%d hidden) for %s..%s",
                outcome.visible, outcome.hidden, self.target, self.source,
            )
        return outcome

    # ---- mutation routing ----

    def apply_batch(self, tree: TreeRef, changes: Iterable[BatchChange]) -> Optional[int]:
        return self.tree(tree).apply_batch(changes)

    def set_all_checked(
        self, tree: TreeRef, checked: bool, operation: Optional[LongOperation] = None
    ) -> Optional[int]:
        target = self.tree(tree)
        if target is self.project:
            return self.project.set_all_checked(checked, operation)
        return target.set_all_checked(checked)

    # ---- queries ----

    def checked_changes(self) -> List[ChangedFile]:
        return self.changes.checked_files()

    def checked_context_paths(self) -> List[str]:
        in_changes = {f.path for f in self.changes.changed_files()}
        return [p for p in self.project.checked_paths() if p not in in_changes]

    def checked_paths(self) -> List[str]:
        """Checked change-set paths, then checked project paths, no duplicates."""
        return [*self.changes.checked_paths(), *self.checked_context_paths()]

    def selected_cost_total(self) -> int:
        context = sum(
            self.estimator.estimate(self.repo_root / p) for p in self.checked_context_paths()
        )
        return self.changes.selected_cost_total() + context

    def summary(self) -> SelectionSummary:
        return SelectionSummary(
            change_files=len(self.changes.checked_paths()),
            context_files=len(self.checked_context_paths()),
            tokens=self.selected_cost_total(),
        )

    def assemble(self, assembler: Optional["DocumentAssembler"] = None) -> str:
        """Render the review document for the current selection."""
        from reviewctx.output.prompt import DocumentAssembler

        if not (self.target and self.source):
            raise SelectionError("select both a target and a source ref first")
        assembler = assembler or DocumentAssembler(self.client)
        return assembler.render(
            self.checked_changes(),
            target=self.target,
            source=self.source,
            instruction=self.instruction,
            context_paths=self.checked_context_paths(),
            root=self.repo_root,
        )
