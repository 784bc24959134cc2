"""Remote generation backend client."""

from docsession.client.client import DocGenerationClient
from docsession.client.models import (
    CodeReference,
    CreateUploadUrlResponse,
    DocV2AcceptanceEvent,
    DocV2GenerationEvent,
    ExportResultArchive,
    GetCodeGenerationResponse,
    SendTelemetryEventRequest,
    SendTelemetryEventResponse,
    TelemetryEvent,
    UserContext,
)

__all__ = [
    "DocGenerationClient",
    "CodeReference",
    "CreateUploadUrlResponse",
    "DocV2AcceptanceEvent",
    "DocV2GenerationEvent",
    "ExportResultArchive",
    "GetCodeGenerationResponse",
    "SendTelemetryEventRequest",
    "SendTelemetryEventResponse",
    "TelemetryEvent",
    "UserContext",
]
