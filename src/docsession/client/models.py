"""Wire models for the generation backend API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ApiModel(BaseModel):
    """Base model with camelCase aliases accepted and emitted."""

    model_config = ConfigDict(populate_by_name=True)


class CreateConversationResponse(ApiModel):
    conversation_id: str = Field(alias="conversationId")


class CreateUploadUrlRequest(ApiModel):
    content_checksum: str = Field(alias="contentChecksum")
    content_checksum_type: Literal["SHA_256"] = Field(default="SHA_256", alias="contentChecksumType")
    content_length: int = Field(alias="contentLength")
    upload_intent: str = Field(default="DOCUMENTATION_GENERATION", alias="uploadIntent")


class CreateUploadUrlResponse(ApiModel):
    upload_id: str = Field(alias="uploadId")
    upload_url: str = Field(alias="uploadUrl")
    request_headers: dict[str, str] = Field(default_factory=dict, alias="requestHeaders")


class StartCodeGenerationRequest(ApiModel):
    upload_id: str = Field(alias="uploadId")
    message: str
    code_generation_id: str = Field(alias="codeGenerationId")
    intent: str = "DOC"
    interaction_type: str | None = Field(default=None, alias="interactionType")


class StartCodeGenerationResponse(ApiModel):
    code_generation_id: str = Field(alias="codeGenerationId")


class CodeGenerationStatus(ApiModel):
    status: Literal["InProgress", "Complete", "Failed"]
    current_stage: str | None = Field(default=None, alias="currentStage")


class GetCodeGenerationResponse(ApiModel):
    code_generation_status: CodeGenerationStatus = Field(alias="codeGenerationStatus")
    code_generation_status_detail: str | None = Field(default=None, alias="codeGenerationStatusDetail")
    code_generation_remaining_iteration_count: int | None = Field(
        default=None, alias="codeGenerationRemainingIterationCount"
    )
    code_generation_total_iteration_count: int | None = Field(
        default=None, alias="codeGenerationTotalIterationCount"
    )


class ContentSpan(ApiModel):
    start: int | None = None
    end: int | None = None


class CodeReference(ApiModel):
    license_name: str | None = Field(default=None, alias="licenseName")
    repository: str | None = None
    url: str | None = None
    information: str | None = None
    recommendation_content_span: ContentSpan | None = Field(
        default=None, alias="recommendationContentSpan"
    )


class ExportResultArchive(ApiModel):
    """Result of a completed code generation run."""

    new_file_contents: dict[str, str] = Field(default_factory=dict, alias="newFileContents")
    deleted_files: list[str] = Field(default_factory=list, alias="deletedFiles")
    references: list[CodeReference] = Field(default_factory=list)


class ErrorResponse(ApiModel):
    message: str = "Unknown error"
    code: str | None = None


# -----------------------------------------------------------------------------
# Telemetry
# -----------------------------------------------------------------------------


class DocV2GenerationEvent(ApiModel):
    conversation_id: str = Field(alias="conversationId")
    number_of_add_chars: int | None = Field(default=None, alias="numberOfAddChars")
    number_of_add_lines: int | None = Field(default=None, alias="numberOfAddLines")
    number_of_add_files: int | None = Field(default=None, alias="numberOfAddFiles")
    user_decision: str | None = Field(default=None, alias="userDecision")
    interaction_type: str | None = Field(default=None, alias="interactionType")
    number_of_navigations: int | None = Field(default=None, alias="numberOfNavigations")
    folder_level: str | None = Field(default=None, alias="folderLevel")


class DocV2AcceptanceEvent(ApiModel):
    conversation_id: str = Field(alias="conversationId")
    number_of_added_chars: int | None = Field(default=None, alias="numberOfAddedChars")
    number_of_added_lines: int | None = Field(default=None, alias="numberOfAddedLines")
    number_of_added_files: int | None = Field(default=None, alias="numberOfAddedFiles")
    user_decision: str | None = Field(default=None, alias="userDecision")
    interaction_type: str | None = Field(default=None, alias="interactionType")
    number_of_navigations: int | None = Field(default=None, alias="numberOfNavigations")
    folder_level: str | None = Field(default=None, alias="folderLevel")


class TelemetryEvent(ApiModel):
    doc_v2_generation_event: DocV2GenerationEvent | None = Field(
        default=None, alias="docV2GenerationEvent"
    )
    doc_v2_acceptance_event: DocV2AcceptanceEvent | None = Field(
        default=None, alias="docV2AcceptanceEvent"
    )


class UserContext(ApiModel):
    ide_category: str = Field(alias="ideCategory")
    operating_system: str = Field(alias="operatingSystem")
    product: str
    client_id: str = Field(alias="clientId")
    ide_version: str = Field(alias="ideVersion")


class SendTelemetryEventRequest(ApiModel):
    telemetry_event: TelemetryEvent = Field(alias="telemetryEvent")
    opt_out_preference: Literal["OPTIN", "OPTOUT"] = Field(alias="optOutPreference")
    user_context: UserContext = Field(alias="userContext")


class SendTelemetryEventResponse(ApiModel):
    request_id: str | None = Field(default=None, alias="requestId")
