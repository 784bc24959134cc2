"""Process-wide log of accepted attribution references."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Protocol

from filelock import FileLock

from docsession.logging import get_logger
from docsession.types import Reference

log = get_logger("references")


class ReferenceLog(Protocol):
    """Append-only sink for reference log entries."""

    def add_reference_log(self, entry: str) -> None:
        ...


def reference_log_text(reference: Reference, now: datetime | None = None) -> str:
    """Render one log line for an accepted reference."""
    stamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    text = f"[{stamp}] Accepted generated documentation"
    if reference.repository:
        text += f" with code from {reference.repository}"
    if reference.license_name:
        text += f" licensed under {reference.license_name}"
    if reference.url:
        text += f" ({reference.url})"
    if reference.span_start is not None and reference.span_end is not None:
        text += f", characters {reference.span_start}-{reference.span_end}"
    return text + "."


class InMemoryReferenceLog:
    def __init__(self) -> None:
        self.entries: list[str] = []

    def add_reference_log(self, entry: str) -> None:
        self.entries.append(entry)


class FileReferenceLog:
    """Reference log appended to a text file.

    Several sessions (or processes) can share the file; appends are
    serialized with a sibling `.lock` file.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._lock_path = self._path.with_suffix(self._path.suffix + ".lock")

    @property
    def path(self) -> Path:
        return self._path

    def add_reference_log(self, entry: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with FileLock(self._lock_path, timeout=10):
            with open(self._path, "a", encoding="utf-8") as f:
                f.write(entry.rstrip("\n") + "\n")
        log.debug("Appended reference log entry to %s", self._path)

    def read_entries(self) -> list[str]:
        if not self._path.exists():
            return []
        with FileLock(self._lock_path, timeout=10):
            return self._path.read_text(encoding="utf-8").splitlines()
