"""JSON selection report for scripts and CI pipelines."""

from __future__ import annotations

import json
from typing import Any, Dict

from reviewctx.selection.coordinator import SelectionCoordinator


def to_dict(coordinator: SelectionCoordinator) -> Dict[str, Any]:
    """Convert the current selection to a JSON-serialisable dict."""
    summary = coordinator.summary()
    return {
        "version": "1.0",
        "target": coordinator.target,
        "source": coordinator.source,
        "changes": [
            {
                "path": f.path,
                "status": f.status.value,
                **({"old_path": f.old_path} if f.old_path else {}),
                "checked": coordinator.changes.is_checked(f.path),
            }
            for f in coordinator.changes.changed_files()
        ],
        "context_files": coordinator.checked_context_paths(),
        "checked_paths": coordinator.checked_paths(),
        "tokens": summary.tokens,
        "tokens_label": summary.tokens_label,
    }


def render(coordinator: SelectionCoordinator) -> str:
    """Return formatted JSON string."""
    return json.dumps(to_dict(coordinator), indent=2)
