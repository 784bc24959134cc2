"""Tests for telemetry accumulation and client ids.

Tests coverage for:
- src/docsession/telemetry.py
"""

from __future__ import annotations

import pytest
import yaml

from docsession.errors import ApiError, OperationCancelledError
from docsession.telemetry import (
    FileClientIdProvider,
    TelemetryHelper,
    get_opt_out_preference,
    span,
)


class TestSpan:
    @pytest.mark.asyncio
    async def test_success_records_attributes(self):
        telemetry = TelemetryHelper()

        async with span(telemetry, "upload", conversation_id="c1") as attrs:
            attrs["upload_id"] = "u1"

        record = telemetry.spans[0]
        assert record.name == "upload"
        assert record.result == "Succeeded"
        assert record.attributes == {"conversation_id": "c1", "upload_id": "u1"}
        assert record.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_failure_recorded_and_raised(self):
        telemetry = TelemetryHelper()

        with pytest.raises(ApiError):
            async with span(telemetry, "upload"):
                raise ApiError("nope")

        assert telemetry.spans[0].result == "Failed"

    @pytest.mark.asyncio
    async def test_cancellation_not_recorded(self):
        telemetry = TelemetryHelper()

        with pytest.raises(OperationCancelledError):
            async with span(telemetry, "generate"):
                raise OperationCancelledError()

        assert telemetry.spans == []


class TestTelemetryHelper:
    def test_counters(self):
        telemetry = TelemetryHelper()

        telemetry.record_upload(100)
        telemetry.record_upload(50)
        telemetry.record_navigation()
        telemetry.set_code_generation_result("cg-1", "Complete", 12.5)

        assert telemetry.upload_bytes == 150
        assert telemetry.number_of_navigations == 1
        assert telemetry.generation_number == 1
        assert telemetry.code_generations[0].status == "Complete"

    def test_opt_out_preference(self):
        assert get_opt_out_preference(False) == "OPTIN"
        assert get_opt_out_preference(True) == "OPTOUT"


class TestFileClientIdProvider:
    def test_created_once_and_persisted(self, tmp_path):
        path = tmp_path / "state" / "client_id.yaml"

        first = FileClientIdProvider(path).get_client_id()
        second = FileClientIdProvider(path).get_client_id()

        assert first == second
        assert yaml.safe_load(path.read_text(encoding="utf-8")) == {"client_id": first}

    def test_reads_existing(self, tmp_path):
        path = tmp_path / "client_id.yaml"
        path.write_text("client_id: fixed-id\n", encoding="utf-8")

        assert FileClientIdProvider(path).get_client_id() == "fixed-id"

    def test_invalid_file_regenerated(self, tmp_path):
        path = tmp_path / "client_id.yaml"
        path.write_text("client_id: [unclosed\n", encoding="utf-8")

        client_id = FileClientIdProvider(path).get_client_id()

        assert client_id
        assert yaml.safe_load(path.read_text(encoding="utf-8")) == {"client_id": client_id}
