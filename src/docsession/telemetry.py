"""Telemetry accumulation and user-context helpers.

The TelemetryHelper collects per-session measurements while states run.
Submission to the backend happens in Session and is always best-effort.
"""

from __future__ import annotations

import platform
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Protocol

import yaml
from filelock import FileLock

from docsession.errors import OperationCancelledError
from docsession.logging import get_logger

log = get_logger("telemetry")


@dataclass(slots=True)
class SpanRecord:
    """One timed operation."""

    name: str
    duration_ms: float
    result: Literal["Succeeded", "Failed"]
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class CodeGenerationRecord:
    code_generation_id: str
    status: str
    duration_ms: float


class TelemetryHelper:
    """Per-session telemetry accumulator.

    States record what they did here; the session reads it back when it
    builds telemetry events.
    """

    def __init__(self) -> None:
        self.spans: list[SpanRecord] = []
        self.code_generations: list[CodeGenerationRecord] = []
        self.upload_bytes: int = 0
        self.number_of_navigations: int = 0

    @property
    def generation_number(self) -> int:
        return len(self.code_generations)

    def record_span(self, record: SpanRecord) -> None:
        self.spans.append(record)

    def record_upload(self, content_length: int) -> None:
        self.upload_bytes += content_length

    def set_code_generation_result(
        self, code_generation_id: str, status: str, duration_ms: float
    ) -> None:
        self.code_generations.append(CodeGenerationRecord(code_generation_id, status, duration_ms))
        log.debug(
            "Code generation %s finished with %s in %.0fms",
            code_generation_id,
            status,
            duration_ms,
        )

    def record_navigation(self) -> None:
        self.number_of_navigations += 1


@asynccontextmanager
async def span(
    telemetry: TelemetryHelper, name: str, **attributes: Any
) -> AsyncIterator[dict[str, Any]]:
    """Time the enclosed block and record it on `telemetry`.

    The yielded dict can be filled with extra attributes while the block runs.
    Exceptions are recorded and re-raised. A cancelled block records nothing.
    """
    start = time.monotonic()
    attrs = dict(attributes)
    try:
        yield attrs
    except OperationCancelledError:
        log.debug("%s cancelled after %.0fms", name, (time.monotonic() - start) * 1000)
        raise
    except BaseException:
        _finish_span(telemetry, name, start, "Failed", attrs)
        raise
    _finish_span(telemetry, name, start, "Succeeded", attrs)


def _finish_span(
    telemetry: TelemetryHelper,
    name: str,
    start: float,
    result: Literal["Succeeded", "Failed"],
    attrs: dict[str, Any],
) -> None:
    duration_ms = (time.monotonic() - start) * 1000
    telemetry.record_span(SpanRecord(name, duration_ms, result, attrs))
    log.debug("%s %s in %.0fms", name, result.lower(), duration_ms)


def get_operating_system() -> str:
    system = platform.system()
    return {"Darwin": "MAC", "Windows": "WINDOWS", "Linux": "LINUX"}.get(system, system.upper())


def get_opt_out_preference(opt_out: bool) -> Literal["OPTIN", "OPTOUT"]:
    return "OPTOUT" if opt_out else "OPTIN"


# -----------------------------------------------------------------------------
# Client id
# -----------------------------------------------------------------------------


class ClientIdProvider(Protocol):
    def get_client_id(self) -> str:
        ...


class StaticClientIdProvider:
    def __init__(self, client_id: str) -> None:
        self._client_id = client_id

    def get_client_id(self) -> str:
        return self._client_id


class FileClientIdProvider:
    """Client id persisted in a small YAML file, created on first use."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._lock_path = self._path.with_suffix(".lock")
        self._client_id: str | None = None

    def get_client_id(self) -> str:
        if self._client_id is not None:
            return self._client_id

        self._path.parent.mkdir(parents=True, exist_ok=True)
        with FileLock(self._lock_path, timeout=10):
            data: dict[str, Any] = {}
            if self._path.exists():
                try:
                    with open(self._path, encoding="utf-8") as f:
                        loaded = yaml.safe_load(f)
                    data = loaded if isinstance(loaded, dict) else {}
                except yaml.YAMLError as e:
                    log.warning("Invalid client id file %s: %s", self._path, e)

            client_id = data.get("client_id")
            if not isinstance(client_id, str) or not client_id:
                client_id = str(uuid.uuid4())
                with open(self._path, "w", encoding="utf-8") as f:
                    yaml.safe_dump({"client_id": client_id}, f, default_flow_style=False)
                log.debug("Created client id in %s", self._path)

        self._client_id = client_id
        return client_id
