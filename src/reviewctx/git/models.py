"""Data models for the change set between two refs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ChangeStatus(str, Enum):
    ADDED = "A"
    MODIFIED = "M"
    DELETED = "D"
    RENAMED = "R"
    UNMERGED = "U"
    UNKNOWN = "?"

    @classmethod
    def from_code(cls, code: str) -> "ChangeStatus":
        """Map a ``git diff --name-status`` code (``M``, ``R100`` ...) to a status."""
        letter = code.strip()[:1].upper()
        for status in cls:
            if status.value == letter:
                return status
        return cls.UNKNOWN

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    ChangeStatus.ADDED: "Added",
    ChangeStatus.MODIFIED: "Modified",
    ChangeStatus.DELETED: "Deleted",
    ChangeStatus.RENAMED: "Renamed",
    ChangeStatus.UNMERGED: "Unmerged",
    ChangeStatus.UNKNOWN: "Unknown",
}


@dataclass(frozen=True)
class ChangedFile:
    """A path that differs between the target and source refs."""

    path: str
    status: ChangeStatus = ChangeStatus.MODIFIED
    old_path: Optional[str] = None  # set on renames

    @property
    def is_deleted(self) -> bool:
        return self.status is ChangeStatus.DELETED
