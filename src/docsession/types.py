"""Data model shared by the session, its states and collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, TypedDict

if TYPE_CHECKING:
    from docsession.cancellation import CancellationTokenSource
    from docsession.client import DocGenerationClient
    from docsession.config.schema import Config
    from docsession.filesystem import FileSystem
    from docsession.messenger import Messenger
    from docsession.session.state import SessionState
    from docsession.telemetry import TelemetryHelper


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------


class Mode(Enum):
    """What the user asked the session to do with the documentation."""

    CREATE = "Create"
    SYNC = "Sync"
    EDIT = "Edit"


class DocInteractionType(Enum):
    GENERATE_README = "GENERATE_README"
    UPDATE_README = "UPDATE_README"
    EDIT_README = "EDIT_README"


class FolderLevel(Enum):
    ENTIRE_WORKSPACE = "ENTIRE_WORKSPACE"
    SUB_FOLDER = "SUB_FOLDER"


class InteractionResponseType(Enum):
    """Outcome of processing one message."""

    VALID = "VALID"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    ITERATION_LIMIT = "ITERATION_LIMIT"


def interaction_type_for_mode(mode: Mode) -> DocInteractionType:
    if mode == Mode.EDIT:
        return DocInteractionType.EDIT_README
    if mode == Mode.SYNC:
        return DocInteractionType.UPDATE_README
    return DocInteractionType.GENERATE_README


# -----------------------------------------------------------------------------
# Files and references
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class WorkspaceFolder:
    """A root folder of the user's workspace."""

    name: str
    path: Path
    index: int = 0

    @classmethod
    def from_path(cls, path: str | Path, index: int = 0) -> WorkspaceFolder:
        resolved = Path(path).resolve()
        return cls(name=resolved.name, path=resolved, index=index)


@dataclass(slots=True)
class NewFileInfo:
    """A generated file proposed by the backend.

    Attributes:
        workspace_folder: Folder the file belongs to
        relative_path: Path relative to the workspace folder
        virtual_memory_uri: Where the staged content lives in the virtual fs
        file_content: The staged content
        rejected: User rejected the file; it is never written
        change_applied: File was already written to the workspace
    """

    workspace_folder: WorkspaceFolder
    relative_path: str
    virtual_memory_uri: str
    file_content: str
    rejected: bool = False
    change_applied: bool = False

    @property
    def absolute_path(self) -> Path:
        return self.workspace_folder.path / self.relative_path


@dataclass(slots=True)
class DeletedFileInfo:
    """A workspace file the backend proposes to delete."""

    workspace_folder: WorkspaceFolder
    relative_path: str
    rejected: bool = False
    change_applied: bool = False

    @property
    def absolute_path(self) -> Path:
        return self.workspace_folder.path / self.relative_path


@dataclass(frozen=True, slots=True)
class Reference:
    """License/attribution record attached to generated content."""

    license_name: str | None = None
    repository: str | None = None
    url: str | None = None
    information: str | None = None
    span_start: int | None = None
    span_end: int | None = None


@dataclass(frozen=True, slots=True)
class UploadHistoryEntry:
    """What was uploaded for one code generation run."""

    upload_id: str
    timestamp: float
    tab_id: str
    files_with_references: int = 0


UploadHistory = dict[str, UploadHistoryEntry]


# -----------------------------------------------------------------------------
# Interactions and state plumbing
# -----------------------------------------------------------------------------


@dataclass(slots=True)
class Interaction:
    """User-visible output of processing one message."""

    content: list[str] = field(default_factory=list)
    response_type: InteractionResponseType = InteractionResponseType.VALID
    code_generation_remaining_iteration_count: int | None = None


@dataclass(slots=True)
class SessionStateConfig:
    """Shared collaborators and identifiers handed from state to state."""

    workspace_roots: list[Path]
    workspace_folders: list[WorkspaceFolder]
    proxy_client: DocGenerationClient
    conversation_id: str
    upload_id: str | None = None
    current_code_generation_id: str | None = None
    settings: Config | None = None


@dataclass(slots=True)
class SessionStateAction:
    """Everything a state needs to process one message."""

    task: str
    msg: str
    fs: FileSystem
    mode: Mode
    messenger: Messenger
    telemetry: TelemetryHelper
    token_source: CancellationTokenSource
    upload_history: UploadHistory
    tab_id: str = ""
    folder_path: str | None = None


@dataclass(slots=True)
class SessionStateInteraction:
    """Result of `SessionState.interact`."""

    interaction: Interaction
    next_state: SessionState | None = None


class GeneratedContentCount(TypedDict):
    total_generated_chars: int
    total_generated_lines: int
    total_generated_files: int


class AddedContentCount(TypedDict):
    total_added_chars: int
    total_added_lines: int
    total_added_files: int

