"""Git interface layer — adapter and change-set models."""

from reviewctx.git.adapter import GitClient, GitError, get_repo_root, parse_name_status
from reviewctx.git.models import ChangedFile, ChangeStatus

__all__ = [
    "ChangeStatus",
    "ChangedFile",
    "GitClient",
    "GitError",
    "get_repo_root",
    "parse_name_status",
]
