"""Shared test fixtures — temp git repos, project directories, a fake git client."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from reviewctx.git.models import ChangedFile, ChangeStatus


def _git(repo: Path, *args: str) -> None:
    subprocess.run(["git", *args], cwd=repo, capture_output=True, check=True)


def write_files(root: Path, files: Dict[str, str]) -> None:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


def changed(*pairs: str) -> List[ChangedFile]:
    """``changed("src/a.ts:M", "b.ts:A")`` -> ChangedFile list."""
    out = []
    for pair in pairs:
        path, code = pair.rsplit(":", 1)
        out.append(ChangedFile(path, ChangeStatus.from_code(code)))
    return out


class FakeGitClient:
    """In-memory stand-in for GitClient."""

    def __init__(
        self,
        changes: Optional[List[ChangedFile]] = None,
        blobs: Optional[Dict[str, str]] = None,
        diffs: Optional[Dict[str, str]] = None,
    ) -> None:
        self.changes = changes or []
        self.blobs = blobs or {}
        self.diffs = diffs or {}
        self.calls: List[tuple] = []

    def list_branches(self) -> List[str]:
        return ["feature", "main"]

    def list_changed_paths(self, target: str, source: str) -> List[ChangedFile]:
        self.calls.append((target, source))
        return list(self.changes)

    def file_diff(self, target: str, source: str, path: str) -> str:
        return self.diffs.get(path, "")

    def read_blob(self, ref: str, path: str) -> str:
        return self.blobs.get(path, "")


@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository for integration tests."""
    subprocess.run(["git", "init", str(tmp_path)], capture_output=True, check=True)
    _git(tmp_path, "config", "user.email", "test@test.com")
    _git(tmp_path, "config", "user.name", "Test")
    # Initial commit
    readme = tmp_path / "README.md"
    readme.write_text("# Test\n")
    _git(tmp_path, "add", ".")
    _git(tmp_path, "commit", "-m", "init")
    _git(tmp_path, "branch", "-M", "main")
    return tmp_path


@pytest.fixture
def feature_repo(tmp_git_repo: Path) -> Path:
    """``main`` plus a checked-out ``feature`` branch.

    main..feature: M src/app.py, A src/new.py, D docs/guide.md, M package-lock.json
    """
    write_files(tmp_git_repo, {
        "src/app.py": "def main():\n    return 1\n",
        "src/util.py": "X = 1\n",
        "docs/guide.md": "# Guide\n",
        "package-lock.json": "{}\n",
    })
    _git(tmp_git_repo, "add", ".")
    _git(tmp_git_repo, "commit", "-m", "base")

    _git(tmp_git_repo, "checkout", "-b", "feature")
    write_files(tmp_git_repo, {
        "src/app.py": "def main():\n    return 2\n",
        "src/new.py": "print('<new> & improved')\n",
        "package-lock.json": '{"lockfileVersion": 3}\n',
    })
    (tmp_git_repo / "docs" / "guide.md").unlink()
    _git(tmp_git_repo, "add", "-A")
    _git(tmp_git_repo, "commit", "-m", "feature work")
    return tmp_git_repo


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A plain directory with ignored and visible files.

    Costs (4 chars per token): a.ts 10, src/a.ts 2, src/b.ts 3, src/lib/c.ts 5,
    docs/readme.md 1.
    """
    write_files(tmp_path, {
        "a.ts": "x" * 40,
        "yarn.lock": "lock" * 100,
        "node_modules/x.js": "module" * 100,
        "src/a.ts": "a" * 8,
        "src/b.ts": "b" * 12,
        "src/lib/c.ts": "c" * 20,
        "docs/readme.md": "r" * 4,
    })
    return tmp_path


@pytest.fixture
def fake_client() -> FakeGitClient:
    return FakeGitClient()
