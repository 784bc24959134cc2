"""Interaction states of a documentation generation session.

A session is always in exactly one of these states:

    ConversationNotStartedState
        -> PrepareCodeGenState      (after the conversation is created)
        -> CodeGenState             (workspace uploaded)
        -> CodeGenCompleteState     (files proposed; follow-ups start a new iteration)
        -> CodeGenErrorState        (backend failure; the next message retries)

Each state owns its artifact lists and a CancellationTokenSource. `interact`
processes one message and returns an Interaction plus, optionally, the state
that replaces it. A state never mutates the session; the session swaps
states and cancels the outgoing token.
"""

from __future__ import annotations

import copy
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, ClassVar

from docsession.cancellation import CancellationTokenSource
from docsession.config.schema import Config
from docsession.errors import (
    CodeGenerationFailedError,
    CodeGenerationTimeoutError,
    DocSessionError,
    IllegalStateTransitionError,
    OperationCancelledError,
    UploadIdNotInitializedError,
)
from docsession.filesystem import virtual_uri
from docsession.logging import get_logger
from docsession.repo import prepare_repo_data
from docsession.telemetry import span
from docsession.types import (
    DeletedFileInfo,
    Interaction,
    InteractionResponseType,
    NewFileInfo,
    Reference,
    SessionStateAction,
    SessionStateConfig,
    SessionStateInteraction,
    UploadHistory,
    UploadHistoryEntry,
    WorkspaceFolder,
    interaction_type_for_mode,
)

if TYPE_CHECKING:
    from docsession.client.models import ExportResultArchive, GetCodeGenerationResponse

log = get_logger("state")

CANCELLED_MESSAGE = "I stopped generating documentation. Send a message to start again."
ITERATION_LIMIT_MESSAGE = (
    "You've reached the limit of changes for this conversation. "
    "Accept or reject the proposed files, then start a new conversation."
)


class SessionState(ABC):
    """Common shape of every interaction state."""

    phase: ClassVar[str]

    def __init__(
        self,
        tab_id: str,
        config: SessionStateConfig | None = None,
        file_paths: list[NewFileInfo] | None = None,
        deleted_files: list[DeletedFileInfo] | None = None,
        references: list[Reference] | None = None,
        upload_history: UploadHistory | None = None,
        code_generation_remaining_iteration_count: int | None = None,
    ) -> None:
        self.tab_id = tab_id
        self.config = config
        self.file_paths = list(file_paths or [])
        self.deleted_files = list(deleted_files or [])
        self.references = list(references or [])
        self.upload_history: UploadHistory = dict(upload_history or {})
        self.code_generation_remaining_iteration_count = code_generation_remaining_iteration_count
        self.token_source = CancellationTokenSource()

    @property
    def upload_id(self) -> str:
        if self.config is None or self.config.upload_id is None:
            raise UploadIdNotInitializedError()
        return self.config.upload_id

    @property
    def current_code_generation_id(self) -> str | None:
        return self.config.current_code_generation_id if self.config else None

    def renewed(self) -> SessionState:
        """Copy of this state with its own lists and an uncancelled token source."""
        clone = copy.copy(self)
        clone.file_paths = list(self.file_paths)
        clone.deleted_files = list(self.deleted_files)
        clone.references = list(self.references)
        clone.upload_history = dict(self.upload_history)
        clone.token_source = CancellationTokenSource()
        return clone

    @abstractmethod
    async def interact(self, action: SessionStateAction) -> SessionStateInteraction:
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} files={len(self.file_paths)} deleted={len(self.deleted_files)}>"


class ConversationNotStartedState(SessionState):
    """Placeholder until the session has created its conversation."""

    phase = "NotStarted"

    def __init__(self, tab_id: str) -> None:
        super().__init__(tab_id)

    async def interact(self, action: SessionStateAction) -> SessionStateInteraction:
        raise IllegalStateTransitionError(type(self).__name__)


class _ConversationState(SessionState):
    """States that exist inside an established conversation."""

    config: SessionStateConfig

    def __init__(
        self,
        config: SessionStateConfig,
        file_paths: list[NewFileInfo],
        deleted_files: list[DeletedFileInfo],
        references: list[Reference],
        tab_id: str,
        upload_history: UploadHistory | None = None,
        code_generation_remaining_iteration_count: int | None = None,
    ) -> None:
        super().__init__(
            tab_id,
            config,
            file_paths,
            deleted_files,
            references,
            upload_history,
            code_generation_remaining_iteration_count,
        )

    @property
    def settings(self) -> Config:
        return self.config.settings or Config()

    def _carry(self, state_cls: type[_ConversationState], config: SessionStateConfig | None = None) -> _ConversationState:
        """Build a successor carrying this state's artifacts."""
        return state_cls(
            config or self.config,
            self.file_paths,
            self.deleted_files,
            self.references,
            self.tab_id,
            self.upload_history,
            self.code_generation_remaining_iteration_count,
        )

    def _cancelled(self, action: SessionStateAction) -> SessionStateInteraction:
        log.info("Interaction cancelled in %s, conversationId: %s", self.phase, self.config.conversation_id)
        action.messenger.send_update_prompt_progress(action.tab_id, None)
        return SessionStateInteraction(
            interaction=Interaction(
                content=[CANCELLED_MESSAGE],
                response_type=InteractionResponseType.CANCELLED,
            ),
            next_state=self._carry(PrepareCodeGenState),
        )

    def _failed(self, action: SessionStateAction, error: DocSessionError) -> SessionStateInteraction:
        log.error(
            "%s failed, conversationId: %s: %s",
            self.phase,
            self.config.conversation_id,
            error,
        )
        action.messenger.send_update_prompt_progress(action.tab_id, None)
        return SessionStateInteraction(
            interaction=Interaction(
                content=[error.user_message],
                response_type=InteractionResponseType.FAILED,
            ),
            next_state=self._carry(CodeGenErrorState),
        )


class PrepareCodeGenState(_ConversationState):
    """Packages and uploads the workspace, then hands over to CodeGenState."""

    phase = "PreparingCodeGeneration"

    async def interact(self, action: SessionStateAction) -> SessionStateInteraction:
        token = action.token_source.token
        client = self.config.proxy_client
        settings = self.settings

        action.messenger.send_update_prompt_progress(action.tab_id, "Uploading your workspace")
        try:
            async with span(
                action.telemetry,
                "upload_workspace",
                conversation_id=self.config.conversation_id,
            ) as attrs:
                repo = await token.run(
                    prepare_repo_data(
                        self.config.workspace_folders,
                        settings.session.ignore_patterns,
                        settings.session.max_repo_size_bytes,
                        action.folder_path,
                    )
                )
                upload = await token.run(
                    client.create_upload_url(
                        self.config.conversation_id, repo.checksum, repo.content_length
                    )
                )
                await token.run(
                    client.upload_code(
                        upload.upload_url, repo.zip_bytes, repo.checksum, upload.request_headers
                    )
                )
                attrs["upload_id"] = upload.upload_id
                attrs["content_length"] = repo.content_length
        except OperationCancelledError:
            return self._cancelled(action)
        except DocSessionError as e:
            return self._failed(action, e)

        action.telemetry.record_upload(repo.content_length)
        log.info(
            "Uploaded workspace, conversationId: %s uploadId: %s",
            self.config.conversation_id,
            upload.upload_id,
        )

        next_state = self._carry(CodeGenState, replace(self.config, upload_id=upload.upload_id))
        return await next_state.interact(action)


class CodeGenState(_ConversationState):
    """Runs one code generation against the uploaded workspace."""

    phase = "Generating"

    async def interact(self, action: SessionStateAction) -> SessionStateInteraction:
        token = action.token_source.token
        client = self.config.proxy_client
        conversation_id = self.config.conversation_id
        interaction_type = interaction_type_for_mode(action.mode)
        code_generation_id = str(uuid.uuid4())
        started = time.monotonic()

        action.messenger.send_update_prompt_progress(action.tab_id, "Generating documentation")
        try:
            await token.run(
                client.start_code_generation(
                    conversation_id,
                    self.upload_id,
                    action.msg,
                    code_generation_id,
                    interaction_type=interaction_type.value,
                )
            )
            status = await self._poll(action, code_generation_id)
            if status.code_generation_status.status == "Failed":
                raise CodeGenerationFailedError(status.code_generation_status_detail)
            archive = await token.run(client.export_result_archive(conversation_id, code_generation_id))

            # Nothing is staged once the token has fired
            token.raise_if_cancelled()
            new_files, deleted_files, references = await self._stage(action, archive)
        except OperationCancelledError:
            # Cancelled generations leave no telemetry behind
            return self._cancelled(action)
        except DocSessionError as e:
            action.telemetry.set_code_generation_result(
                code_generation_id, "Failed", (time.monotonic() - started) * 1000
            )
            return self._failed(action, e)

        action.telemetry.set_code_generation_result(
            code_generation_id, "Complete", (time.monotonic() - started) * 1000
        )
        action.messenger.send_update_prompt_progress(action.tab_id, None)

        upload_history = dict(self.upload_history)
        upload_history[code_generation_id] = UploadHistoryEntry(
            upload_id=self.upload_id,
            timestamp=time.time(),
            tab_id=self.tab_id,
            files_with_references=len(references),
        )
        remaining = status.code_generation_remaining_iteration_count

        next_state = CodeGenCompleteState(
            replace(self.config, current_code_generation_id=code_generation_id),
            new_files,
            deleted_files,
            references,
            self.tab_id,
            upload_history,
            remaining,
        )
        return SessionStateInteraction(
            interaction=Interaction(
                content=[_summary(new_files, deleted_files)],
                response_type=InteractionResponseType.VALID,
                code_generation_remaining_iteration_count=remaining,
            ),
            next_state=next_state,
        )

    async def _poll(self, action: SessionStateAction, code_generation_id: str) -> GetCodeGenerationResponse:
        token = action.token_source.token
        backend = self.settings.backend
        for attempt in range(backend.max_poll_attempts):
            response = await token.run(
                self.config.proxy_client.get_code_generation(
                    self.config.conversation_id, code_generation_id
                )
            )
            status = response.code_generation_status
            log.debug(
                "Code generation %s status %s (%s), attempt %d",
                code_generation_id,
                status.status,
                status.current_stage,
                attempt + 1,
            )
            if status.status in ("Complete", "Failed"):
                return response
            if status.current_stage:
                action.messenger.send_update_prompt_progress(action.tab_id, status.current_stage)
            await token.sleep(backend.poll_interval)
        raise CodeGenerationTimeoutError()

    def _resolve(self, path: str) -> tuple[WorkspaceFolder, str] | None:
        """Map a backend path to its workspace folder and folder-relative path."""
        parts = PurePosixPath(path.lstrip("/")).parts
        if not parts or ".." in parts:
            return None
        folders = self.config.workspace_folders
        if len(folders) > 1:
            for folder in folders:
                if parts[0] == folder.name and len(parts) > 1:
                    return folder, PurePosixPath(*parts[1:]).as_posix()
        return folders[0], PurePosixPath(*parts).as_posix()

    async def _stage(
        self, action: SessionStateAction, archive: ExportResultArchive
    ) -> tuple[list[NewFileInfo], list[DeletedFileInfo], list[Reference]]:
        new_files: list[NewFileInfo] = []
        for path, content in archive.new_file_contents.items():
            resolved = self._resolve(path)
            if resolved is None:
                log.warning("Ignoring generated file outside the workspace: %s", path)
                continue
            folder, relative = resolved
            uri = virtual_uri(self.upload_id, folder.name, relative)
            await action.fs.write_file(uri, content)
            new_files.append(
                NewFileInfo(
                    workspace_folder=folder,
                    relative_path=relative,
                    virtual_memory_uri=uri,
                    file_content=content,
                )
            )

        deleted_files: list[DeletedFileInfo] = []
        for path in archive.deleted_files:
            resolved = self._resolve(path)
            if resolved is None:
                log.warning("Ignoring deletion outside the workspace: %s", path)
                continue
            folder, relative = resolved
            deleted_files.append(DeletedFileInfo(workspace_folder=folder, relative_path=relative))

        references = [
            Reference(
                license_name=ref.license_name,
                repository=ref.repository,
                url=ref.url,
                information=ref.information,
                span_start=ref.recommendation_content_span.start if ref.recommendation_content_span else None,
                span_end=ref.recommendation_content_span.end if ref.recommendation_content_span else None,
            )
            for ref in archive.references
        ]
        return new_files, deleted_files, references


class CodeGenCompleteState(_ConversationState):
    """Files are proposed; a follow-up message starts a new iteration."""

    phase = "Completed"

    async def interact(self, action: SessionStateAction) -> SessionStateInteraction:
        if self.code_generation_remaining_iteration_count == 0:
            return SessionStateInteraction(
                interaction=Interaction(
                    content=[ITERATION_LIMIT_MESSAGE],
                    response_type=InteractionResponseType.ITERATION_LIMIT,
                    code_generation_remaining_iteration_count=0,
                )
            )
        return await self._carry(PrepareCodeGenState).interact(action)


class CodeGenErrorState(_ConversationState):
    """Fallback after a failed interaction; the next message retries."""

    phase = "Error"

    async def interact(self, action: SessionStateAction) -> SessionStateInteraction:
        log.info("Retrying after failure, conversationId: %s", self.config.conversation_id)
        return await self._carry(PrepareCodeGenState).interact(action)


def _summary(new_files: list[NewFileInfo], deleted_files: list[DeletedFileInfo]) -> str:
    if not new_files and not deleted_files:
        return "I didn't find any changes to make."
    parts = []
    if new_files:
        parts.append(f"{len(new_files)} file{'s' if len(new_files) != 1 else ''} to write")
    if deleted_files:
        parts.append(f"{len(deleted_files)} file{'s' if len(deleted_files) != 1 else ''} to delete")
    return f"I've prepared {' and '.join(parts)}. Review the changes and accept or reject them."
