"""Session: the stateful facade the chat UI talks to.

A Session owns one conversation with the generation backend. It creates
the conversation lazily on the first message, forwards each message to
the current interaction state, swaps in successor states (cancelling the
outgoing state's in-flight work), and reconciles accepted output with the
user's workspace.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from docsession import __version__
from docsession.client.models import (
    DocV2AcceptanceEvent,
    DocV2GenerationEvent,
    SendTelemetryEventRequest,
    TelemetryEvent,
    UserContext,
)
from docsession.config.schema import Config
from docsession.diff import DiffAccountant, FilePathDiff
from docsession.errors import ConversationIdNotFoundError, StateNotInitializedError
from docsession.filesystem import FileSystem, LocalFileSystem, VirtualFileSystem
from docsession.logging import get_logger, log_with_conversation_id
from docsession.references import InMemoryReferenceLog, ReferenceLog, reference_log_text
from docsession.session.state import ConversationNotStartedState, PrepareCodeGenState, SessionState
from docsession.telemetry import (
    ClientIdProvider,
    StaticClientIdProvider,
    TelemetryHelper,
    get_operating_system,
    get_opt_out_preference,
    span,
)
from docsession.types import (
    AddedContentCount,
    DeletedFileInfo,
    DocInteractionType,
    GeneratedContentCount,
    Interaction,
    Mode,
    NewFileInfo,
    SessionStateAction,
    SessionStateConfig,
    WorkspaceFolder,
)

if TYPE_CHECKING:
    from docsession.cancellation import CancellationTokenSource
    from docsession.client import DocGenerationClient
    from docsession.messenger import Messenger

log = get_logger("session")

FEATURE_NAME = "docsession"


class PreloadStatus(Enum):
    """Lifecycle of the one-time conversation setup."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


@dataclass
class WorkspaceConfig:
    """Workspace and filesystem handles a session works against.

    Attributes:
        workspace_folders: Root folders of the user's workspace
        fs: Staging filesystem holding generated content
        workspace_fs: The real filesystem changes are applied to
        settings: Loaded docsession configuration
    """

    workspace_folders: list[WorkspaceFolder]
    fs: FileSystem = field(default_factory=VirtualFileSystem)
    workspace_fs: FileSystem = field(default_factory=LocalFileSystem)
    settings: Config = field(default_factory=Config)

    @property
    def workspace_roots(self) -> list[Path]:
        return [folder.path for folder in self.workspace_folders]


class Session:
    """One conversational documentation session bound to a chat tab.

    Args:
        config: Workspace folders, filesystems and settings.
        messenger: Notification sink towards the UI.
        tab_id: Identifier of the chat tab owning the session.
        proxy_client: Backend client.
        reference_log: Sink for accepted references.
        client_id_provider: Source of the telemetry client id.
        initial_state: State to start in (ConversationNotStartedState by default).
    """

    def __init__(
        self,
        config: WorkspaceConfig,
        messenger: Messenger,
        tab_id: str,
        proxy_client: DocGenerationClient,
        reference_log: ReferenceLog | None = None,
        client_id_provider: ClientIdProvider | None = None,
        initial_state: SessionState | None = None,
    ) -> None:
        self.config = config
        self.tab_id = tab_id
        self._messenger = messenger
        self._proxy_client = proxy_client
        self._reference_log = reference_log or InMemoryReferenceLog()
        self._client_id_provider = client_id_provider or StaticClientIdProvider("unknown")
        self._state: SessionState | None = (
            initial_state if initial_state is not None else ConversationNotStartedState(tab_id)
        )
        self._task = ""
        self._conversation_id: str | None = None
        self._latest_message = ""
        self._telemetry = TelemetryHelper()
        self._preload_status = PreloadStatus.UNINITIALIZED
        self._preload_lock = asyncio.Lock()
        self._reported_doc_changes: str | None = None
        self._diff = DiffAccountant(config.workspace_fs, config.fs)
        self._in_flight = 0

        # Whether the session is currently authenticating / needs authenticating
        self.is_authenticating = False

    # -------------------------------------------------------------------------
    # Conversation setup
    # -------------------------------------------------------------------------

    async def preloader(self, msg: str) -> None:
        """Run the one-time setup needed before a message can be sent.

        Safe to call before every send: only the first successful call
        creates the conversation. A failed setup propagates and may be
        retried by calling again.
        """
        if self._preload_status == PreloadStatus.READY:
            return
        async with self._preload_lock:
            if self._preload_status == PreloadStatus.READY:
                return
            self._preload_status = PreloadStatus.INITIALIZING
            try:
                await self._setup_conversation(msg)
            except BaseException:
                self._preload_status = PreloadStatus.FAILED
                raise
            self._preload_status = PreloadStatus.READY

    async def _setup_conversation(self, msg: str) -> None:
        # Keep the message first so a failed setup can be retried with it
        self._latest_message = msg

        async with span(self._telemetry, "start_conversation") as attrs:
            self._conversation_id = await self._proxy_client.create_conversation()
            attrs["conversation_id"] = self._conversation_id
        log.info(log_with_conversation_id(self.conversation_id))

        self._state = PrepareCodeGenState(
            self._get_session_state_config(upload_id=""),
            [],
            [],
            [],
            self.tab_id,
        )

    def _get_session_state_config(self, upload_id: str | None = None) -> SessionStateConfig:
        return SessionStateConfig(
            workspace_roots=self.config.workspace_roots,
            workspace_folders=self.config.workspace_folders,
            proxy_client=self._proxy_client,
            conversation_id=self.conversation_id,
            upload_id=upload_id,
            current_code_generation_id=None,
            settings=self.config.settings,
        )

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    async def send(self, msg: str, mode: Mode, folder_path: str | None = None) -> Interaction:
        """Process one user message and return what to show the user."""
        # The first non-empty message becomes the task
        if self._task == "" and msg:
            self._task = msg

        self._latest_message = msg

        await self.preloader(msg)
        return await self._next_interaction(msg, mode, folder_path)

    async def _next_interaction(self, msg: str, mode: Mode, folder_path: str | None) -> Interaction:
        current = self.state
        if current.token_source.token.is_cancellation_requested:
            # A stop that landed after the last interaction finished must not
            # cancel this message
            log.debug("Renewing cancelled %s before interacting", current.phase)
            current = current.renewed()
            self._state = current

        self._in_flight += 1
        try:
            resp = await current.interact(
                SessionStateAction(
                    task=self._task,
                    msg=msg,
                    fs=self.config.fs,
                    mode=mode,
                    folder_path=folder_path,
                    messenger=self._messenger,
                    telemetry=self._telemetry,
                    token_source=current.token_source,
                    upload_history=current.upload_history,
                    tab_id=self.tab_id,
                )
            )
        finally:
            self._in_flight -= 1

        if resp.next_state is not None:
            if not current.token_source.token.is_cancellation_requested:
                current.token_source.cancel()
            log.debug("Transition %s -> %s", current.phase, resp.next_state.phase)
            self._state = resp.next_state

        return resp.interaction

    def cancel(self) -> None:
        """Stop the current state's in-flight work.

        A no-op while no interaction is running.
        """
        if not self._in_flight or self._state is None:
            log.debug("No interaction in flight, nothing to cancel")
            return
        self._state.token_source.cancel()

    @property
    def is_interaction_in_flight(self) -> bool:
        return self._in_flight > 0

    async def update_files_paths(
        self,
        tab_id: str,
        file_paths: list[NewFileInfo],
        deleted_files: list[DeletedFileInfo],
        message_id: str,
        disable_file_actions: bool,
    ) -> None:
        self._messenger.update_file_component(
            tab_id, file_paths, deleted_files, message_id, disable_file_actions
        )

    # -------------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------------

    async def insert_changes(self) -> None:
        """Apply accepted files to the workspace and log their references.

        Writes come first, then deletions, then reference logging. Not
        transactional: files written before a failure stay on disk.
        """
        workspace_fs = self.config.workspace_fs
        state = self.state

        for new_file in [f for f in state.file_paths if not f.rejected]:
            absolute_path = new_file.absolute_path
            content = await self.config.fs.read_file(new_file.virtual_memory_uri)

            await workspace_fs.mkdir(absolute_path.parent)
            await workspace_fs.write_file(absolute_path, content)
            log.debug("Wrote %s", absolute_path)

        for deleted in [f for f in state.deleted_files if not f.rejected]:
            await workspace_fs.delete(deleted.absolute_path)
            log.debug("Deleted %s", deleted.absolute_path)

        for ref in state.references:
            self._reference_log.add_reference_log(reference_log_text(ref))

    # -------------------------------------------------------------------------
    # Diff accounting
    # -------------------------------------------------------------------------

    async def count_generated_content(
        self, interaction_type: DocInteractionType | None = None
    ) -> GeneratedContentCount:
        """Count everything generated since the last report.

        Updates the reported snapshot, so calls must not overlap.
        """
        total_generated_chars = 0
        total_generated_lines = 0
        total_generated_files = 0

        for file_path in self.state.file_paths:
            if interaction_type == DocInteractionType.GENERATE_README and self._reported_doc_changes is None:
                total_generated_chars += len(file_path.file_content)
                total_generated_lines += len(file_path.file_content.split("\n"))
            else:
                diff = await self.compute_file_path_diff(file_path, self._reported_doc_changes)
                total_generated_chars += diff.chars_added
                total_generated_lines += diff.lines_added
            self._reported_doc_changes = file_path.file_content
            total_generated_files += 1

        return {
            "total_generated_chars": total_generated_chars,
            "total_generated_lines": total_generated_lines,
            "total_generated_files": total_generated_files,
        }

    async def count_added_content(
        self, interaction_type: DocInteractionType | None = None
    ) -> AddedContentCount:
        """Count what accepting the pending, non-rejected files would add."""
        total_added_chars = 0
        total_added_lines = 0
        total_added_files = 0
        new_file_paths = [f for f in self.state.file_paths if not f.rejected and not f.change_applied]

        for file_path in new_file_paths:
            if interaction_type == DocInteractionType.GENERATE_README:
                total_added_chars += len(file_path.file_content)
                total_added_lines += len(file_path.file_content.split("\n"))
            else:
                diff = await self.compute_file_path_diff(file_path)
                total_added_chars += diff.chars_added
                total_added_lines += diff.lines_added
            total_added_files += 1

        return {
            "total_added_chars": total_added_chars,
            "total_added_lines": total_added_lines,
            "total_added_files": total_added_files,
        }

    async def compute_file_path_diff(
        self, file_path: NewFileInfo, reported_changes: str | None = None
    ) -> FilePathDiff:
        return await self._diff.compute_file_path_diff(file_path, reported_changes)

    # -------------------------------------------------------------------------
    # Telemetry
    # -------------------------------------------------------------------------

    def _build_telemetry_request(self, event: TelemetryEvent) -> SendTelemetryEventRequest:
        settings = self.config.settings
        return SendTelemetryEventRequest(
            telemetry_event=event,
            opt_out_preference=get_opt_out_preference(settings.telemetry.opt_out),
            user_context=UserContext(
                ide_category=settings.session.ide_category,
                operating_system=get_operating_system(),
                product=settings.telemetry.product,
                client_id=self._client_id_provider.get_client_id(),
                ide_version=__version__,
            ),
        )

    async def _send_telemetry_event(self, event: TelemetryEvent, event_name: str, conversation_id: str) -> None:
        try:
            client = await self._proxy_client.get_client()
            response = await client.send_telemetry_event(self._build_telemetry_request(event))
            if response.request_id:
                log.debug(
                    "%s: successfully sent %s: ConversationId: %s RequestId: %s",
                    FEATURE_NAME,
                    event_name,
                    conversation_id,
                    response.request_id,
                )
            else:
                log.debug(
                    "%s: sent %s: ConversationId: %s",
                    FEATURE_NAME,
                    event_name,
                    conversation_id,
                )
        except Exception as e:
            log.error(
                "%s: failed to send %s telemetry: %s: %s RequestId: %s",
                FEATURE_NAME,
                event_name,
                type(e).__name__,
                e,
                getattr(e, "request_id", None),
            )

    async def send_doc_generation_telemetry_event(self, event: DocV2GenerationEvent) -> None:
        """Best-effort submission; failures are logged, never raised."""
        await self._send_telemetry_event(
            TelemetryEvent(doc_v2_generation_event=event),
            "docV2GenerationEvent",
            event.conversation_id,
        )

    async def send_doc_acceptance_telemetry_event(self, event: DocV2AcceptanceEvent) -> None:
        """Best-effort submission; failures are logged, never raised."""
        await self._send_telemetry_event(
            TelemetryEvent(doc_v2_acceptance_event=event),
            "docV2AcceptanceEvent",
            event.conversation_id,
        )

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        if self._state is None:
            raise StateNotInitializedError()
        return self._state

    @property
    def preload_status(self) -> PreloadStatus:
        return self._preload_status

    @property
    def token_source(self) -> CancellationTokenSource:
        return self.state.token_source

    @property
    def current_code_generation_id(self) -> str | None:
        return self.state.current_code_generation_id

    @property
    def upload_id(self) -> str:
        return self.state.upload_id

    @property
    def conversation_id(self) -> str:
        if not self._conversation_id:
            raise ConversationIdNotFoundError()
        return self._conversation_id

    @property
    def conversation_id_unsafe(self) -> str | None:
        """Conversation id, or None before setup (for callers that tolerate it)."""
        return self._conversation_id

    @property
    def task(self) -> str:
        return self._task

    @property
    def latest_message(self) -> str:
        return self._latest_message

    @property
    def telemetry(self) -> TelemetryHelper:
        return self._telemetry
