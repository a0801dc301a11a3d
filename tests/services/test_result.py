"""Tests for ServiceResult and ServiceError."""

import json

import pytest
from pydantic import ValidationError

from depgraph.services.result import ServiceError, ServiceResult


class TestServiceResult:
    def test_success_construction(self) -> None:
        result = ServiceResult(ok=True, op="record_module", data={"key": "app::a::js"})
        assert result.ok is True
        assert result.warnings == []
        assert result.error is None

    def test_failure_helper(self) -> None:
        result = ServiceResult.failure("record_module", "MALFORMED_LOG", "bad line", line=3)
        assert result.ok is False
        assert result.error == ServiceError(
            code="MALFORMED_LOG", message="bad line", detail={"line": 3}
        )

    def test_json_serialization(self) -> None:
        result = ServiceResult(ok=True, op="snapshot", data={"count": 0})
        parsed = json.loads(result.model_dump_json())
        assert parsed["ok"] is True
        assert parsed["data"]["count"] == 0

    def test_frozen(self) -> None:
        result = ServiceResult(ok=True, op="test")
        with pytest.raises(ValidationError):
            result.ok = False  # type: ignore[misc]
