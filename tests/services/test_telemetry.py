"""Tests for telemetry primitives: Span, trace_span, @traced."""

from __future__ import annotations

import time
from collections.abc import Generator

import pytest

from linkctl.services.result import ServiceResult, failure
from linkctl.services.telemetry import (
    Span,
    _current_span,
    disable_telemetry,
    enable_telemetry,
    get_current_span,
    trace_span,
    traced,
)


@pytest.fixture(autouse=True)
def _reset_telemetry_state() -> Generator[None]:
    """Ensure clean telemetry state for every test."""
    yield
    disable_telemetry()
    _current_span.set(None)


class TestSpan:
    def test_duration_before_end_is_zero(self) -> None:
        assert Span(name="test").duration_ms == 0.0

    def test_duration_after_end(self) -> None:
        span = Span(name="test")
        time.sleep(0.005)
        span.end()
        assert span.duration_ms > 0

    def test_to_dict(self) -> None:
        root = Span(name="root")
        child = Span(name="child", parent=root)
        root.children.append(child)
        child.annotate("links", 3)
        child.end()
        root.end()
        d = root.to_dict()
        assert d["name"] == "root"
        assert "annotations" not in d
        assert d["children"][0]["annotations"] == {"links": 3}


class TestTraceSpan:
    def test_disabled_yields_none(self) -> None:
        with trace_span("noop") as span:
            assert span is None

    def test_without_parent_yields_none(self) -> None:
        enable_telemetry()
        with trace_span("orphan") as span:
            assert span is None

    def test_nests_under_current(self) -> None:
        enable_telemetry()
        root = Span(name="root")
        _current_span.set(root)
        with trace_span("child") as span:
            assert span is not None
            assert get_current_span() is span
        assert get_current_span() is root
        assert [c.name for c in root.children] == ["child"]


class TestTraced:
    def test_disabled_leaves_meta(self) -> None:
        @traced
        def op() -> ServiceResult:
            return ServiceResult(ok=True, op="op")

        assert op().meta is None

    def test_enabled_injects_span(self) -> None:
        enable_telemetry()

        @traced
        def op() -> ServiceResult:
            with trace_span("inner"):
                pass
            return ServiceResult(ok=True, op="op", meta={"count": 1})

        result = op()
        assert result.meta is not None
        assert result.meta["count"] == 1
        telemetry = result.meta["telemetry"]
        assert telemetry["name"].endswith("op")
        assert telemetry["children"][0]["name"] == "inner"

    @pytest.mark.asyncio
    async def test_coroutine(self) -> None:
        enable_telemetry()

        @traced
        async def op() -> ServiceResult:
            return ServiceResult(ok=True, op="op")

        result = await op()
        assert result.meta is not None
        assert "telemetry" in result.meta

    def test_exception_propagates(self) -> None:
        enable_telemetry()

        @traced
        def op() -> ServiceResult:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            op()
        assert _current_span.get() is None

    def test_failed_result_annotates_code(self) -> None:
        enable_telemetry()

        @traced
        def op() -> ServiceResult:
            return failure("commit_order", "CONFLICT", "Links changed")

        result = op()
        assert result.meta is not None
        assert result.meta["telemetry"]["annotations"] == {"error": "CONFLICT"}

    def test_non_result_passthrough(self) -> None:
        enable_telemetry()

        @traced
        def op() -> int:
            return 7

        assert op() == 7
