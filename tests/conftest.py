"""Root pytest configuration for all tests."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from docsession.client import DocGenerationClient
from docsession.config.schema import Config
from docsession.filesystem import LocalFileSystem, VirtualFileSystem
from docsession.references import InMemoryReferenceLog
from docsession.session import Session, WorkspaceConfig
from docsession.telemetry import StaticClientIdProvider
from docsession.types import WorkspaceFolder
from tests.utils import make_archive, make_code_generation, make_upload_url

# Configure pytest-asyncio to use auto mode
# This is redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture
def settings() -> Config:
    """Config with polling sped up for tests."""
    config = Config()
    config.backend.poll_interval = 0
    config.backend.max_poll_attempts = 5
    return config


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceFolder:
    """A small workspace with one source file."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "main.py").write_text("print('hello')\n", encoding="utf-8")
    return WorkspaceFolder.from_path(root)


@pytest.fixture
def mock_client():
    """Backend client mock answering a successful generation run."""
    client = AsyncMock(spec=DocGenerationClient)
    client.create_conversation.return_value = "c1"
    client.create_upload_url.return_value = make_upload_url("u1")
    client.start_code_generation.return_value = "cg"
    client.get_code_generation.return_value = make_code_generation("Complete", remaining=2)
    client.export_result_archive.return_value = make_archive({"README.md": "# Project\n\nGenerated docs.\n"})
    client.get_client.return_value = client
    return client


@pytest.fixture
def messenger():
    return Mock()


@pytest.fixture
def reference_log() -> InMemoryReferenceLog:
    return InMemoryReferenceLog()


@pytest.fixture
def staging_fs() -> VirtualFileSystem:
    return VirtualFileSystem()


@pytest.fixture
def make_session(settings, workspace, mock_client, messenger, reference_log, staging_fs):
    """Factory for sessions wired to the shared fixtures."""

    def factory(**kwargs) -> Session:
        config = WorkspaceConfig(
            [workspace],
            fs=staging_fs,
            workspace_fs=kwargs.pop("workspace_fs", LocalFileSystem()),
            settings=settings,
        )
        return Session(
            config,
            messenger,
            "tab-1",
            mock_client,
            reference_log=reference_log,
            client_id_provider=StaticClientIdProvider("client-1"),
            **kwargs,
        )

    return factory
