"""Review document assembly — instructions, branch info, directory map, files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence

from reviewctx.git.adapter import GitClient
from reviewctx.git.models import ChangedFile
from reviewctx.selection.base import SelectionError

logger = logging.getLogger(__name__)


def escape_xml(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def escape_attr(text: str) -> str:
    return escape_xml(text).replace('"', "&quot;")


def directory_structure(paths: Sequence[str]) -> str:
    return "\n".join(f"    {escape_xml(p)}" for p in sorted(set(paths)))


class DocumentAssembler:
    """Render the checked selection into one XML-ish text document."""

    def __init__(self, client: GitClient) -> None:
        self.client = client

    def _changed_file_block(self, changed: ChangedFile, target: str, source: str) -> str:
        diff = self.client.file_diff(target, source, changed.path)
        lines = [
            f'<file path="{escape_attr(changed.path)}" status="{changed.status.value}">',
            "<diff>",
            escape_xml(diff),
            "</diff>",
        ]
        if not changed.is_deleted:
            content = self.client.read_blob(source, changed.path)
            lines += [
                "<content_source_branch>",
                escape_xml(content),
                "</content_source_branch>",
            ]
        lines.append("</file>")
        return "\n".join(lines)

    @staticmethod
    def _context_file_block(path: str, root: Optional[Path]) -> str:
        content = ""
        if root is not None:
            try:
                content = (root / path).read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                logger.warning("Cannot read context file %s: %s", path, exc)
        return "\n".join([
            f'<context_file path="{escape_attr(path)}">',
            escape_xml(content),
            "</context_file>",
        ])

    def render(
        self,
        files: Sequence[ChangedFile],
        *,
        target: str,
        source: str,
        instruction: str,
        context_paths: Sequence[str] = (),
        root: Optional[Path] = None,
    ) -> str:
        if not files and not context_paths:
            raise SelectionError("No files selected for review")

        blocks: List[str] = [self._changed_file_block(f, target, source) for f in files]
        blocks += [self._context_file_block(p, root) for p in context_paths]
        dir_structure = directory_structure([f.path for f in files] + list(context_paths))

        return "\n".join([
            "<instructions>",
            instruction,
            "</instructions>",
            "",
            "<context>",
            "    <branches>",
            f"        <source>{source}</source>",
            f"        <target>{target}</target>",
            "    </branches>",
            "    <directory_structure>",
            dir_structure,
            "    </directory_structure>",
            "</context>",
            "",
            "<files>",
            *blocks,
            "</files>",
        ])
