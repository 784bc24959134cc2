"""HTTP client for the documentation generation backend."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from docsession.client.models import (
    CreateConversationResponse,
    CreateUploadUrlRequest,
    CreateUploadUrlResponse,
    ErrorResponse,
    ExportResultArchive,
    GetCodeGenerationResponse,
    SendTelemetryEventRequest,
    SendTelemetryEventResponse,
    StartCodeGenerationRequest,
    StartCodeGenerationResponse,
)
from docsession.config.secrets import TOKEN_KEY, fetch_secret
from docsession.errors import ApiError, MonthlyConversationLimitError
from docsession.logging import get_logger

if TYPE_CHECKING:
    from docsession.config.schema import BackendConfig

log = get_logger("client")

M = TypeVar("M", bound=BaseModel)

REQUEST_ID_HEADER = "x-request-id"
QUOTA_EXCEEDED_CODE = "ServiceQuotaExceededException"


class DocGenerationClient:
    """Async client for conversations, uploads, code generation and telemetry.

    Args:
        config: Backend endpoint and timeouts.
        token: Bearer token; defaults to DOCSESSION_TOKEN.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        config: BackendConfig,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._token = token if token is not None else fetch_secret(TOKEN_KEY)
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    async def get_client(self) -> DocGenerationClient:
        """Return the client with its HTTP connection pool opened."""
        self._ensure_http()
        return self

    def _ensure_http(self) -> httpx.AsyncClient:
        if self._http is None:
            headers = {"Accept": "application/json"}
            if self._token:
                headers["Authorization"] = f"Bearer {self._token}"
            self._http = httpx.AsyncClient(
                base_url=self._config.endpoint,
                headers=headers,
                timeout=self._config.timeout,
                transport=self._transport,
            )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> DocGenerationClient:
        self._ensure_http()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # -------------------------------------------------------------------------
    # Transport helpers
    # -------------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        url: str,
        response_model: type[M],
        body: BaseModel | None = None,
    ) -> M:
        http = self._ensure_http()
        payload = body.model_dump(by_alias=True, exclude_none=True) if body else None
        try:
            response = await http.request(method, url, json=payload)
        except httpx.HTTPError as e:
            log.error("%s %s failed: %s", method, url, e)
            raise ApiError(f"Could not reach the generation service: {e}") from e

        request_id = response.headers.get(REQUEST_ID_HEADER)
        if response.is_error:
            raise self._error_from_response(response, request_id)

        try:
            result = response_model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ApiError(
                f"Unexpected response from the generation service: {e}",
                status_code=response.status_code,
                request_id=request_id,
            ) from e

        # The body's requestId wins over the header
        if request_id and "request_id" in type(result).model_fields and getattr(result, "request_id") is None:
            result.request_id = request_id
        return result

    @staticmethod
    def _error_from_response(response: httpx.Response, request_id: str | None) -> ApiError:
        try:
            error = ErrorResponse.model_validate(response.json())
        except (ValueError, ValidationError):
            error = ErrorResponse(message=response.text or response.reason_phrase)

        log.error(
            "Backend error %s (%s): %s RequestId: %s",
            response.status_code,
            error.code,
            error.message,
            request_id,
        )
        if response.status_code == 429 and error.code == QUOTA_EXCEEDED_CODE:
            return MonthlyConversationLimitError(
                MonthlyConversationLimitError.user_message,
                status_code=response.status_code,
                request_id=request_id,
                code=error.code,
            )
        return ApiError(
            error.message,
            status_code=response.status_code,
            request_id=request_id,
            code=error.code,
        )

    # -------------------------------------------------------------------------
    # API
    # -------------------------------------------------------------------------

    async def create_conversation(self) -> str:
        result = await self._request("POST", "/conversations", CreateConversationResponse)
        return result.conversation_id

    async def create_upload_url(
        self,
        conversation_id: str,
        content_checksum: str,
        content_length: int,
        upload_intent: str = "DOCUMENTATION_GENERATION",
    ) -> CreateUploadUrlResponse:
        body = CreateUploadUrlRequest(
            content_checksum=content_checksum,
            content_length=content_length,
            upload_intent=upload_intent,
        )
        result = await self._request(
            "POST", f"/conversations/{conversation_id}/uploads", CreateUploadUrlResponse, body
        )
        log.debug("Created upload url, uploadId: %s", result.upload_id)
        return result

    async def upload_code(
        self,
        upload_url: str,
        content: bytes,
        checksum: str,
        headers: dict[str, str] | None = None,
    ) -> None:
        """PUT the zipped workspace to the presigned upload URL."""
        http = self._ensure_http()
        request_headers = {
            "Content-Type": "application/zip",
            "x-amz-checksum-sha256": checksum,
            **(headers or {}),
        }
        try:
            response = await http.put(upload_url, content=content, headers=request_headers)
        except httpx.HTTPError as e:
            raise ApiError(f"Upload failed: {e}") from e
        if response.is_error:
            raise ApiError(
                f"Upload failed with status {response.status_code}",
                status_code=response.status_code,
                request_id=response.headers.get(REQUEST_ID_HEADER),
            )

    async def start_code_generation(
        self,
        conversation_id: str,
        upload_id: str,
        message: str,
        code_generation_id: str,
        intent: str = "DOC",
        interaction_type: str | None = None,
    ) -> str:
        body = StartCodeGenerationRequest(
            upload_id=upload_id,
            message=message,
            code_generation_id=code_generation_id,
            intent=intent,
            interaction_type=interaction_type,
        )
        result = await self._request(
            "POST",
            f"/conversations/{conversation_id}/code-generations",
            StartCodeGenerationResponse,
            body,
        )
        return result.code_generation_id

    async def get_code_generation(
        self, conversation_id: str, code_generation_id: str
    ) -> GetCodeGenerationResponse:
        return await self._request(
            "GET",
            f"/conversations/{conversation_id}/code-generations/{code_generation_id}",
            GetCodeGenerationResponse,
        )

    async def export_result_archive(
        self, conversation_id: str, code_generation_id: str
    ) -> ExportResultArchive:
        return await self._request(
            "GET",
            f"/conversations/{conversation_id}/code-generations/{code_generation_id}/result",
            ExportResultArchive,
        )

    async def send_telemetry_event(
        self, request: SendTelemetryEventRequest
    ) -> SendTelemetryEventResponse:
        return await self._request("POST", "/telemetry/events", SendTelemetryEventResponse, request)
