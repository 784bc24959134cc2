"""docsession: client-side orchestration of conversational documentation generation."""

__version__ = "0.1.0"

# Public API
from docsession.cancellation import CancellationToken, CancellationTokenSource
from docsession.client import DocGenerationClient
from docsession.config import Config, get_config, load_config
from docsession.diff import DiffAccountant, compute_diff
from docsession.filesystem import FileSystem, LocalFileSystem, VirtualFileSystem
from docsession.messenger import ConsoleMessenger, Messenger
from docsession.references import FileReferenceLog, InMemoryReferenceLog
from docsession.session import PreloadStatus, Session, WorkspaceConfig
from docsession.types import (
    DeletedFileInfo,
    DocInteractionType,
    Interaction,
    InteractionResponseType,
    Mode,
    NewFileInfo,
    Reference,
    WorkspaceFolder,
)

__all__ = [
    # Session
    "Session",
    "WorkspaceConfig",
    "PreloadStatus",
    # Data model
    "DeletedFileInfo",
    "DocInteractionType",
    "Interaction",
    "InteractionResponseType",
    "Mode",
    "NewFileInfo",
    "Reference",
    "WorkspaceFolder",
    # Collaborators
    "CancellationToken",
    "CancellationTokenSource",
    "DocGenerationClient",
    "DiffAccountant",
    "compute_diff",
    "FileSystem",
    "LocalFileSystem",
    "VirtualFileSystem",
    "Messenger",
    "ConsoleMessenger",
    "FileReferenceLog",
    "InMemoryReferenceLog",
    # Config
    "Config",
    "load_config",
    "get_config",
]
