"""Tests for ServiceResult and ServiceError."""

import json

import pytest
from pydantic import ValidationError

from linkctl.services.result import ServiceError, ServiceResult, failure


class TestServiceResult:
    def test_success_construction(self) -> None:
        result = ServiceResult(ok=True, op="add_link", data={"link": {"id": "LNK-0001"}})
        assert result.ok is True
        assert result.op == "add_link"
        assert result.warnings == []
        assert result.error is None
        assert result.meta is None

    def test_json_serialization(self) -> None:
        result = ServiceResult(
            ok=True,
            op="commit_order",
            data={"order": [{"id": "LNK-0001", "rank": 1}]},
            meta={"duration_ms": 42},
        )
        parsed = json.loads(result.model_dump_json())
        assert parsed["ok"] is True
        assert parsed["data"]["order"][0]["rank"] == 1
        assert parsed["meta"]["duration_ms"] == 42

    def test_frozen(self) -> None:
        result = ServiceResult(ok=True, op="test")
        with pytest.raises(ValidationError):
            result.ok = False  # type: ignore[misc]


class TestFailure:
    def test_builds_error(self) -> None:
        result = failure("attach_filter", "NO_SELECTION", "Select a link first")
        assert result.ok is False
        assert result.error == ServiceError(code="NO_SELECTION", message="Select a link first")
        assert result.error.detail == {}

    def test_detail_and_warnings(self) -> None:
        result = failure(
            "route",
            "NOT_FOUND",
            "missing",
            detail={"id": "REC-0001"},
            warnings=["stale"],
        )
        assert result.error is not None
        assert result.error.detail == {"id": "REC-0001"}
        assert result.warnings == ["stale"]
