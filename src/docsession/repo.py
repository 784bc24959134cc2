"""Workspace packaging for upload to the generation backend."""

from __future__ import annotations

import asyncio
import base64
import fnmatch
import hashlib
import io
import zipfile
from dataclasses import dataclass
from pathlib import Path

from docsession.errors import ContentLengthError, NoFilesToUploadError, PrepareRepoFailedError
from docsession.logging import get_logger
from docsession.types import WorkspaceFolder

log = get_logger("repo")


@dataclass(frozen=True, slots=True)
class RepoData:
    """A zipped snapshot of the workspace ready for upload."""

    zip_bytes: bytes
    checksum: str  # base64 sha256 of zip_bytes
    total_file_bytes: int
    file_count: int

    @property
    def content_length(self) -> int:
        return len(self.zip_bytes)


def is_ignored(relative_path: str, patterns: list[str]) -> bool:
    """Match a posix relative path against glob-style ignore patterns."""
    candidate = "/" + relative_path
    return any(fnmatch.fnmatch(candidate, pattern) for pattern in patterns)


def _iter_files(root: Path, patterns: list[str]) -> list[tuple[Path, str]]:
    files: list[tuple[Path, str]] = []
    for path in sorted(root.rglob("*")):
        if not path.is_file() or path.is_symlink():
            continue
        relative = path.relative_to(root).as_posix()
        if is_ignored(relative, patterns):
            continue
        files.append((path, relative))
    return files


def _build_zip(
    workspace_folders: list[WorkspaceFolder],
    ignore_patterns: list[str],
    max_size: int,
    folder_path: str | None,
) -> RepoData:
    buffer = io.BytesIO()
    total = 0
    count = 0
    prefix_names = len(workspace_folders) > 1

    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for folder in workspace_folders:
            root = folder.path
            scope = root
            if folder_path:
                candidate = Path(folder_path)
                if not candidate.is_absolute():
                    candidate = root / candidate
                candidate = candidate.resolve()
                if not candidate.is_relative_to(root):
                    continue
                scope = candidate

            for path, _ in _iter_files(scope, ignore_patterns):
                relative = path.relative_to(root).as_posix()
                size = path.stat().st_size
                total += size
                if total > max_size:
                    raise ContentLengthError()
                arcname = f"{folder.name}/{relative}" if prefix_names else relative
                archive.write(path, arcname)
                count += 1

    if count == 0:
        raise NoFilesToUploadError()

    zip_bytes = buffer.getvalue()
    checksum = base64.b64encode(hashlib.sha256(zip_bytes).digest()).decode("ascii")
    return RepoData(zip_bytes=zip_bytes, checksum=checksum, total_file_bytes=total, file_count=count)


async def prepare_repo_data(
    workspace_folders: list[WorkspaceFolder],
    ignore_patterns: list[str],
    max_size: int,
    folder_path: str | None = None,
) -> RepoData:
    """Zip the workspace (or `folder_path` within it) for upload.

    Raises:
        ContentLengthError: Source files exceed `max_size` bytes.
        NoFilesToUploadError: Nothing left after ignore patterns.
        PrepareRepoFailedError: The workspace could not be read.
    """
    try:
        repo = await asyncio.to_thread(
            _build_zip, workspace_folders, ignore_patterns, max_size, folder_path
        )
    except OSError as e:
        log.error("Failed to package workspace: %s", e)
        raise PrepareRepoFailedError() from e

    log.debug(
        "Packaged %d files (%d bytes, %d zipped)",
        repo.file_count,
        repo.total_file_bytes,
        repo.content_length,
    )
    return repo
