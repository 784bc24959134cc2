"""Diff accounting between proposed files and workspace content.

Counts what the user gains by accepting a proposal: characters and lines
added (and removed) between the current content and the staged one.
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from docsession.filesystem import FileSystem
    from docsession.types import NewFileInfo


@dataclass(frozen=True, slots=True)
class DiffStats:
    chars_added: int = 0
    lines_added: int = 0
    chars_removed: int = 0
    lines_removed: int = 0


@dataclass(frozen=True, slots=True)
class FilePathDiff:
    left_path: str
    right_path: str
    chars_added: int
    lines_added: int
    chars_removed: int
    lines_removed: int


def _count(lines: list[str]) -> tuple[int, int]:
    """Count non-blank lines and their characters, excluding line endings."""
    chars = 0
    count = 0
    for line in lines:
        stripped = line.rstrip("\r\n")
        if not stripped.strip():
            continue
        chars += len(stripped)
        count += 1
    return chars, count


def compute_diff(left: str, right: str) -> DiffStats:
    """Line diff from `left` to `right`.

    Whitespace-only lines are ignored on both sides.
    """
    left_lines = left.splitlines(keepends=True)
    right_lines = right.splitlines(keepends=True)

    chars_added = lines_added = chars_removed = lines_removed = 0
    matcher = difflib.SequenceMatcher(None, left_lines, right_lines, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag in ("insert", "replace"):
            chars, lines = _count(right_lines[j1:j2])
            chars_added += chars
            lines_added += lines
        if tag in ("delete", "replace"):
            chars, lines = _count(left_lines[i1:i2])
            chars_removed += chars
            lines_removed += lines

    return DiffStats(
        chars_added=chars_added,
        lines_added=lines_added,
        chars_removed=chars_removed,
        lines_removed=lines_removed,
    )


class DiffAccountant:
    """Compares staged files against the workspace or a reported snapshot.

    Args:
        workspace_fs: Filesystem holding the user's current files
        staging_fs: Filesystem holding the staged (proposed) content
    """

    def __init__(self, workspace_fs: FileSystem, staging_fs: FileSystem) -> None:
        self._workspace_fs = workspace_fs
        self._staging_fs = staging_fs

    async def _read_text(self, fs: FileSystem, uri: str) -> str:
        try:
            return (await fs.read_file(uri)).decode("utf-8", errors="replace")
        except FileNotFoundError:
            return ""

    async def compute_file_path_diff(
        self,
        file: NewFileInfo,
        reported_changes: str | None = None,
    ) -> FilePathDiff:
        """Diff one proposed file.

        Args:
            file: The proposed file
            reported_changes: Previously reported content; when given it
                replaces the on-disk file as the left side.
        """
        left_path = str(file.absolute_path)
        right_path = file.virtual_memory_uri

        if reported_changes is not None:
            left = reported_changes
        else:
            left = await self._read_text(self._workspace_fs, left_path)
        right = await self._read_text(self._staging_fs, right_path)

        stats = compute_diff(left, right)
        return FilePathDiff(
            left_path=left_path,
            right_path=right_path,
            chars_added=stats.chars_added,
            lines_added=stats.lines_added,
            chars_removed=stats.chars_removed,
            lines_removed=stats.lines_removed,
        )
