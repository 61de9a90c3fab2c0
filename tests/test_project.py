"""Tests for the lazily listed project tree."""

from pathlib import Path

import pytest

from conftest import write_files

from reviewctx.selection.base import SelectionError
from reviewctx.selection.cost import CostEstimator
from reviewctx.selection.nodes import FolderNode, Selection
from reviewctx.selection.operation import LongOperation
from reviewctx.selection.patterns import IgnoreRuleSet
from reviewctx.selection.project import ProjectTree

IGNORE = IgnoreRuleSet.of(["*.lock", "node_modules"])


@pytest.fixture
def tree(project_dir: Path) -> ProjectTree:
    return ProjectTree(project_dir, IGNORE, CostEstimator())


def _by_name(nodes):
    return {n.name: n for n in nodes}


class TestListing:
    def test_ignored_entries_hidden(self, tmp_path: Path):
        write_files(tmp_path, {"a.ts": "a", "yarn.lock": "l", "node_modules/x.js": "x"})
        tree = ProjectTree(tmp_path, IGNORE)
        assert [n.name for n in tree.children()] == ["a.ts"]

    def test_folders_first_then_files(self, tree: ProjectTree):
        assert [n.name for n in tree.children()] == ["docs", "src", "a.ts"]
        src = _by_name(tree.children())["src"]
        assert [n.name for n in tree.children(src)] == ["lib", "a.ts", "b.ts"]

    def test_folder_rollup(self, tree: ProjectTree):
        src = _by_name(tree.children())["src"]
        assert src.cost == 10
        assert src.eligible_files == 3
        assert src.selection is Selection.UNCHECKED

    def test_unreadable_folder_lists_empty(self, tree: ProjectTree):
        assert tree.children(FolderNode("does-not-exist")) == []

    def test_node_lookup(self, tree: ProjectTree):
        assert tree.node("src").kind == "folder"
        assert tree.node("src/a.ts").kind == "file"
        assert tree.node("yarn.lock") is None
        assert tree.node("missing.ts") is None


class TestLockedFiles:
    def test_locked_file_excluded_from_rollup(self, tree: ProjectTree):
        tree.update_change_set({"src/a.ts"})
        src = tree.node("src")
        a = _by_name(tree.children(src))["a.ts"]
        assert a.locked
        assert a.selection is Selection.UNCHECKED
        assert src.cost == 8
        assert src.eligible_files == 2

    def test_locked_file_cannot_be_selected(self, tree: ProjectTree):
        tree.update_change_set({"src/a.ts"})
        a = tree.node("src/a.ts")
        assert tree.toggle(a) == 0
        assert tree.apply_batch([(a, True)]) == 0
        assert tree.checked_paths() == []

    def test_folder_cascade_skips_locked(self, tree: ProjectTree):
        tree.update_change_set({"src/a.ts"})
        src = tree.node("src")
        tree.apply_batch([(src, True)])
        assert tree.checked_paths() == ["src/b.ts", "src/lib/c.ts"]
        assert src.selection is Selection.CHECKED

    def test_lock_does_not_drop_selection(self, tree: ProjectTree):
        tree.toggle(tree.node("src/a.ts"))
        tree.update_change_set({"src/a.ts"})
        assert tree.checked_paths() == []
        tree.update_change_set(set())
        assert tree.checked_paths() == ["src/a.ts"]

    def test_live_nodes_follow_lock_changes(self, tree: ProjectTree):
        a = tree.node("src/a.ts")
        tree.update_change_set({"src/a.ts"})
        assert a.locked


class TestBatchPropagation:
    def test_folder_cascade_updates_live_nodes(self, tree: ProjectTree):
        src = _by_name(tree.children())["src"]
        b = _by_name(tree.children(src))["b.ts"]
        assert tree.apply_batch([(src, True)]) == 3
        assert b.selection is Selection.CHECKED
        assert src.selection is Selection.CHECKED
        assert tree.selected_cost_total() == 10

    def test_file_with_derived_folder_entry(self, tree: ProjectTree):
        src = tree.node("src")
        tree.apply_batch([(src, True)])
        a = tree.node("src/a.ts")
        assert tree.apply_batch([(a, False), (src, False)]) == 1
        assert tree.checked_paths() == ["src/b.ts", "src/lib/c.ts"]
        assert src.is_partial
        assert src.selection is Selection.UNCHECKED

    def test_one_event_per_mutation(self, tree: ProjectTree):
        events = []
        tree.on_changed.connect(events.append)
        tree.apply_batch([(tree.node("src"), True)])
        tree.update_change_set({"a.ts"})
        tree.set_all_checked(False)
        assert len(events) == 3


class TestSetAllChecked:
    def _many(self, root: Path, count: int) -> None:
        write_files(root, {f"d{i % 10}/f{i:03d}.txt": "abcd" for i in range(count)})
        write_files(root, {"node_modules/skip.js": "x", "d0/skip.lock": "x"})

    def test_select_then_clear(self, tmp_path: Path):
        self._many(tmp_path, 500)
        tree = ProjectTree(tmp_path, IGNORE, CostEstimator())
        assert tree.set_all_checked(True) == 500
        assert len(tree.checked_paths()) == 500
        assert tree.selected_cost_total() == 500

        tree.set_all_checked(False)
        assert tree.checked_paths() == []
        assert tree.selected_cost_total() == 0

    def test_select_all_skips_locked(self, tree: ProjectTree):
        tree.update_change_set({"src/a.ts"})
        tree.set_all_checked(True)
        assert tree.checked_paths() == [
            "a.ts", "docs/readme.md", "src/b.ts", "src/lib/c.ts",
        ]

    def test_progress_reported(self, tmp_path: Path):
        self._many(tmp_path, 250)
        reports = []
        op = LongOperation("select", on_progress=lambda msg, n: reports.append((msg, n)))
        ProjectTree(tmp_path, IGNORE).set_all_checked(True, op)
        assert [n for _, n in reports] == [100, 200, 250]
        assert reports[-1] == ("done", 250)
        assert op.finished and not op.running
        assert op.processed == 250

    def test_cancel_keeps_partial_result(self, tmp_path: Path):
        self._many(tmp_path, 500)
        tree = ProjectTree(tmp_path, IGNORE)

        def on_progress(msg: str, processed: int) -> None:
            if processed >= 100:
                op.cancel()

        op = LongOperation("select", on_progress=on_progress)
        added = tree.set_all_checked(True, op)
        assert op.cancelled
        assert 100 <= added < 500
        assert len(tree.checked_paths()) == added
        assert op.processed == added

    def test_reentrant_walk_raises(self, tmp_path: Path):
        self._many(tmp_path, 150)
        tree = ProjectTree(tmp_path, IGNORE)
        op = LongOperation("select", on_progress=lambda msg, n: tree.set_all_checked(True, op))
        with pytest.raises(SelectionError, match="already running"):
            tree.set_all_checked(True, op)
        assert not op.running

    def test_clear_keeps_folder_totals_without_walking(self, tree: ProjectTree, monkeypatch):
        src = tree.node("src")
        tree.set_all_checked(True)
        monkeypatch.setattr(tree, "_summarize", lambda rel: pytest.fail(f"walked {rel}"))
        tree.set_all_checked(False)
        assert (src.checked_files, src.eligible_files, src.cost) == (0, 3, 10)
        assert src.selection is Selection.UNCHECKED


class TestIgnoreRules:
    def test_new_rules_drop_hidden_selection(self, tmp_path: Path):
        write_files(tmp_path, {"a.ts": "a", "dist/b.js": "b", "dist/sub/c.js": "c"})
        tree = ProjectTree(tmp_path)
        tree.set_all_checked(True)
        assert tree.checked_paths() == ["a.ts", "dist/b.js", "dist/sub/c.js"]

        tree.set_ignore_rules(IgnoreRuleSet.of(["dist"]))
        assert [n.name for n in tree.children()] == ["a.ts"]
        assert tree.checked_paths() == ["a.ts"]
        assert tree.selected_cost_total() == 1

    def test_hidden_folder_ancestor(self, tmp_path: Path):
        write_files(tmp_path, {"build/out/x.js": "x", "keep.ts": "k"})
        tree = ProjectTree(tmp_path)
        tree.set_all_checked(True)
        tree.set_ignore_rules(IgnoreRuleSet.of(["build/out"]))
        assert tree.checked_paths() == ["keep.ts"]

    def test_live_folders_follow_new_rules(self, tree: ProjectTree):
        src = tree.node("src")
        tree.set_all_checked(True)
        tree.set_ignore_rules(IgnoreRuleSet.of(["lib"]))
        assert (src.checked_files, src.eligible_files, src.cost) == (2, 2, 5)
        assert src.selection is Selection.CHECKED


class TestFolderRollups:
    """Every listed folder matches a fresh walk of the disk after each mutation."""

    def _list_all(self, tree: ProjectTree, folder=None, out=None):
        out = {} if out is None else out
        for child in tree.children(folder):
            out[child.path] = child
            if child.kind == "folder":
                self._list_all(tree, child, out)
        return out

    def _visible_files(self, tree: ProjectTree):
        files = []
        for path in tree.root.rglob("*"):
            rel = path.relative_to(tree.root).as_posix()
            parts = rel.split("/")
            prefixes = ["/".join(parts[:i]) for i in range(1, len(parts) + 1)]
            if path.is_file() and not any(tree.ignore_rules.is_ignored(p) for p in prefixes):
                files.append(rel)
        return files

    def _assert_consistent(self, tree: ProjectTree, nodes) -> None:
        checked = set(tree.checked_paths())
        eligible = [f for f in self._visible_files(tree) if f not in tree.locked_paths]
        for path, node in nodes.items():
            if node.kind == "file":
                assert node.locked == (path in tree.locked_paths), path
                assert node.selection.is_checked == (path in checked), path
                continue
            below = [f for f in eligible if f.startswith(path + "/")]
            n_checked = sum(1 for f in below if f in checked)
            expected = (
                Selection.coerce(bool(below) and n_checked == len(below)),
                sum(tree.estimator.estimate(tree.root / f) for f in below),
                n_checked,
                len(below),
            )
            actual = (node.selection, node.cost, node.checked_files, node.eligible_files)
            assert actual == expected, path

    def test_after_each_mutation(self, tree: ProjectTree):
        nodes = self._list_all(tree)
        assert set(nodes) >= {"src", "src/lib", "docs", "src/a.ts"}
        self._assert_consistent(tree, nodes)

        tree.apply_batch([(nodes["src"], True)])
        self._assert_consistent(tree, nodes)

        tree.apply_batch([(nodes["src/lib/c.ts"], False), (nodes["src/lib"], False)])
        self._assert_consistent(tree, nodes)

        tree.update_change_set({"src/a.ts", "docs/readme.md"})
        self._assert_consistent(tree, nodes)

        tree.set_all_checked(True)
        self._assert_consistent(tree, nodes)

        tree.update_change_set(set())
        self._assert_consistent(tree, nodes)

        tree.set_all_checked(False)
        self._assert_consistent(tree, nodes)
