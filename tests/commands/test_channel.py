"""Tests for the channel command group."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from click.testing import CliRunner

from linkctl.cli import cli

RunJson = Callable[..., dict[str, Any]]


@pytest.mark.usefixtures("_isolated_project")
class TestChannelCommands:
    def test_add(self, run_json: RunJson) -> None:
        data = run_json("channel", "add", "Warehouse East")
        assert data["ok"] is True
        assert data["data"]["channel"] == {"id": "CHN-0001", "name": "Warehouse East"}

    def test_add_duplicate(self, run_json: RunJson) -> None:
        run_json("channel", "add", "East")
        data = run_json("channel", "add", "East", exit_code=1)
        assert data["error"]["code"] == "CONFLICT"

    def test_list_search_and_page(self, run_json: RunJson) -> None:
        for name in ("Warehouse East", "Warehouse West", "Returns"):
            run_json("channel", "add", name)

        found = run_json("channel", "list", "--search", "WARE")
        assert [c["name"] for c in found["data"]["channels"]] == [
            "Warehouse East",
            "Warehouse West",
        ]

        page = run_json("channel", "list", "--limit", "1", "--offset", "1")
        assert [c["name"] for c in page["data"]["channels"]] == ["Warehouse East"]

    def test_human_output_with_notification(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["channel", "add", "East"])
        assert result.exit_code == 0
        assert "OK  add_channel" in result.output
        assert "Channel created successfully" in result.output

    def test_quiet_lists_ids(self, cli_runner: CliRunner) -> None:
        cli_runner.invoke(cli, ["channel", "add", "East"])
        cli_runner.invoke(cli, ["channel", "add", "West"])
        result = cli_runner.invoke(cli, ["-q", "channel", "list"])
        assert result.exit_code == 0
        assert result.output.split() == ["CHN-0001", "CHN-0002"]
