"""Fixtures for CLI command tests."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator
from typing import Any

import pytest
from click.testing import CliRunner

from linkctl.cli import cli
from linkctl.services.telemetry import _current_span, disable_telemetry


@pytest.fixture(autouse=True)
def _reset_process_state() -> Iterator[None]:
    """Undo logging handlers and telemetry flags set by ``AppContext``."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    disable_telemetry()
    _current_span.set(None)


@pytest.fixture
def run_json(cli_runner: CliRunner) -> Callable[..., dict[str, Any]]:
    """Invoke ``linkctl --json <args>`` and return the parsed result.

    Fails the test when the exit code differs from *exit_code*.
    """

    def _run(*args: str, exit_code: int = 0) -> dict[str, Any]:
        result = cli_runner.invoke(cli, ["--json", *args])
        assert result.exit_code == exit_code, result.output
        parsed: dict[str, Any] = json.loads(result.output)
        return parsed

    return _run
