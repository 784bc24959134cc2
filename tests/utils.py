"""Shared test helpers for docsession tests."""

from __future__ import annotations

from docsession.client.models import (
    CodeGenerationStatus,
    CreateUploadUrlResponse,
    ExportResultArchive,
    GetCodeGenerationResponse,
)
from docsession.filesystem import VirtualFileSystem, virtual_uri
from docsession.types import NewFileInfo, WorkspaceFolder


def make_upload_url(upload_id: str = "u1") -> CreateUploadUrlResponse:
    return CreateUploadUrlResponse(
        upload_id=upload_id,
        upload_url=f"https://uploads.example.com/{upload_id}",
    )


def make_code_generation(
    status: str,
    remaining: int | None = None,
    stage: str | None = None,
    detail: str | None = None,
) -> GetCodeGenerationResponse:
    return GetCodeGenerationResponse(
        code_generation_status=CodeGenerationStatus(status=status, current_stage=stage),
        code_generation_status_detail=detail,
        code_generation_remaining_iteration_count=remaining,
    )


def make_archive(
    files: dict[str, str] | None = None,
    deleted: list[str] | None = None,
    references: list[dict] | None = None,
) -> ExportResultArchive:
    return ExportResultArchive.model_validate(
        {
            "newFileContents": files or {},
            "deletedFiles": deleted or [],
            "references": references or [],
        }
    )


async def stage_file(
    fs: VirtualFileSystem,
    folder: WorkspaceFolder,
    relative_path: str,
    content: str,
    *,
    rejected: bool = False,
    change_applied: bool = False,
) -> NewFileInfo:
    """Stage content in the virtual fs and describe it as a proposed file."""
    uri = virtual_uri("u1", folder.name, relative_path)
    await fs.write_file(uri, content)
    return NewFileInfo(
        workspace_folder=folder,
        relative_path=relative_path,
        virtual_memory_uri=uri,
        file_content=content,
        rejected=rejected,
        change_applied=change_applied,
    )
