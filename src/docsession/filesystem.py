"""Filesystem handles used by the session.

Two implementations of one protocol:
- LocalFileSystem: the user's real workspace on disk
- VirtualFileSystem: in-memory staging area for generated content,
  addressed by `docsession-virtual:` URIs
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path, PurePosixPath
from typing import Protocol, runtime_checkable

VIRTUAL_SCHEME = "docsession-virtual"


@runtime_checkable
class FileSystem(Protocol):
    """Minimal async filesystem contract."""

    async def read_file(self, uri: str | Path) -> bytes:
        """Read the full content. Raises FileNotFoundError if missing."""
        ...

    async def write_file(self, uri: str | Path, content: bytes | str) -> None:
        ...

    async def mkdir(self, uri: str | Path) -> None:
        """Create a directory and its parents; existing directories are fine."""
        ...

    async def delete(self, uri: str | Path) -> None:
        """Delete a file or directory tree. Missing targets are ignored."""
        ...

    async def exists(self, uri: str | Path) -> bool:
        ...


def _encode(content: bytes | str) -> bytes:
    return content.encode("utf-8") if isinstance(content, str) else content


class LocalFileSystem:
    """Disk-backed filesystem; blocking calls run in a worker thread."""

    async def read_file(self, uri: str | Path) -> bytes:
        return await asyncio.to_thread(Path(uri).read_bytes)

    async def write_file(self, uri: str | Path, content: bytes | str) -> None:
        await asyncio.to_thread(Path(uri).write_bytes, _encode(content))

    async def mkdir(self, uri: str | Path) -> None:
        await asyncio.to_thread(Path(uri).mkdir, parents=True, exist_ok=True)

    async def delete(self, uri: str | Path) -> None:
        await asyncio.to_thread(self._delete_sync, Path(uri))

    async def exists(self, uri: str | Path) -> bool:
        return await asyncio.to_thread(Path(uri).exists)

    @staticmethod
    def _delete_sync(path: Path) -> None:
        if path.is_dir():
            shutil.rmtree(path)
        else:
            path.unlink(missing_ok=True)


def virtual_uri(*parts: str) -> str:
    """Build a virtual URI, e.g. `docsession-virtual:/tab/upload/README.md`."""
    path = PurePosixPath("/").joinpath(*(p.strip("/") for p in parts if p))
    return f"{VIRTUAL_SCHEME}:{path}"


class VirtualFileSystem:
    """In-memory staging area for generated file content.

    Keys are normalized virtual URIs. Directories are implicit.
    """

    def __init__(self) -> None:
        self._files: dict[str, bytes] = {}

    @staticmethod
    def _key(uri: str | Path) -> str:
        text = str(uri)
        if text.startswith(f"{VIRTUAL_SCHEME}:"):
            text = text[len(VIRTUAL_SCHEME) + 1:]
        parts = PurePosixPath(text).parts
        if parts and parts[0] == "/":
            parts = parts[1:]
        return virtual_uri(*parts)

    async def read_file(self, uri: str | Path) -> bytes:
        try:
            return self._files[self._key(uri)]
        except KeyError:
            raise FileNotFoundError(str(uri)) from None

    async def write_file(self, uri: str | Path, content: bytes | str) -> None:
        self._files[self._key(uri)] = _encode(content)

    async def mkdir(self, uri: str | Path) -> None:
        return None

    async def delete(self, uri: str | Path) -> None:
        key = self._key(uri)
        prefix = key.rstrip("/") + "/"
        for existing in [k for k in self._files if k == key or k.startswith(prefix)]:
            del self._files[existing]

    async def exists(self, uri: str | Path) -> bool:
        key = self._key(uri)
        prefix = key.rstrip("/") + "/"
        return any(k == key or k.startswith(prefix) for k in self._files)

    def __len__(self) -> int:
        return len(self._files)
