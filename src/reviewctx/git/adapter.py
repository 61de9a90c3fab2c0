"""Git subprocess wrapper — changed paths, per-file diffs, blobs at a ref."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from reviewctx.git.models import ChangedFile, ChangeStatus

logger = logging.getLogger(__name__)


class GitError(Exception):
    """Raised when git is unavailable or returns an unexpected error."""


def _run_git(args: list[str], cwd: Path, timeout: int = 30) -> str:
    """Run a git command and return stdout. Raises GitError on failure."""
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
            encoding="utf-8",
            errors="replace",
        )
    except FileNotFoundError:
        raise GitError("git is not installed or not on PATH")
    except subprocess.TimeoutExpired:
        raise GitError(f"git command timed out after {timeout}s: git {' '.join(args)}")
    except OSError as exc:
        raise GitError(f"cannot run git in {cwd}: {exc}") from exc

    if result.returncode != 0:
        stderr = result.stderr.strip()
        # Empty diff is not an error
        if not stderr or "fatal" not in stderr.lower():
            return result.stdout
        raise GitError(f"git error: {stderr}")
    return result.stdout


def get_repo_root(cwd: Optional[Path] = None) -> Path:
    """Return the root of the current git repository."""
    cwd = cwd or Path.cwd()
    out = _run_git(["rev-parse", "--show-toplevel"], cwd=cwd)
    return Path(out.strip())


def parse_name_status(output: str) -> List[ChangedFile]:
    """Parse ``git diff --name-status -z`` output into ChangedFile records.

    Records are NUL separated: ``status\\0path\\0``, or ``status\\0old\\0new\\0``
    for renames and copies, which keep the new path. Paths are taken verbatim.
    """
    fields = iter(output.split("\0"))
    files: List[ChangedFile] = []
    for code in fields:
        code = code.strip()
        if not code:
            continue
        status = ChangeStatus.from_code(code)
        if code[0] in "RC":
            old_path, path = next(fields, ""), next(fields, "")
            files.append(ChangedFile(path=path, status=status, old_path=old_path))
        else:
            files.append(ChangedFile(path=next(fields, ""), status=status))
    return [f for f in files if f.path]


class GitClient:
    """Soft-failing access to the repository history.

    Every query returns an empty result when git fails so callers can keep
    rendering whatever is still available.
    """

    def __init__(self, repo_root: Path, timeout: int = 30) -> None:
        self.repo_root = Path(repo_root)
        self.timeout = timeout

    def _git(self, args: list[str]) -> str:
        return _run_git(args, cwd=self.repo_root, timeout=self.timeout)

    def list_branches(self) -> List[str]:
        try:
            output = self._git(["branch", "--format=%(refname:short)"])
        except GitError as exc:
            logger.warning("Failed to list branches: %s", exc)
            return []
        return [b.strip() for b in output.splitlines() if b.strip()]

    def list_changed_paths(self, target: str, source: str) -> List[ChangedFile]:
        """Return the files that differ between *target* and *source*."""
        try:
            output = self._git([
                "-c", "core.quotePath=false",
                "diff", "--name-status", "-z", "--no-color", "-M", f"{target}..{source}",
            ])
        except GitError as exc:
            logger.warning("Failed to list changes %s..%s: %s", target, source, exc)
            return []
        return parse_name_status(output)

    def file_diff(self, target: str, source: str, path: str) -> str:
        """Return the unified diff of one path between the two refs."""
        try:
            return self._git(["diff", "--no-color", f"{target}..{source}", "--", path])
        except GitError as exc:
            logger.warning("Failed to diff %s: %s", path, exc)
            return ""

    def read_blob(self, ref: str, path: str) -> str:
        """Return *path* as stored at *ref*, or ``""`` if missing or deleted."""
        try:
            return self._git(["show", f"{ref}:{path}"])
        except GitError as exc:
            logger.debug("No blob for %s at %s: %s", path, ref, exc)
            return ""
