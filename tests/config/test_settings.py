"""Tests for LinkctlSettings — unified settings with TOML source."""

from pathlib import Path

import click
import pytest

from linkctl.config.settings import LinkctlSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LINKCTL_CONFIG", raising=False)
    monkeypatch.delenv("LINKCTL_LINKS__DEFAULT_OWNER", raising=False)


class TestDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        """With no TOML and no env vars, all fields use code defaults."""
        settings = LinkctlSettings.from_cli(root=tmp_path)
        assert settings.root == tmp_path
        assert settings.config_path is None
        assert settings.json_output is False
        assert settings.channels.page_size == 50
        assert settings.links.default_owner == "default"
        assert settings.links.entity == "order"
        assert settings.links.conflict_check is True
        assert settings.entities == {}

    def test_db_path_relative_to_root(self, tmp_path: Path) -> None:
        settings = LinkctlSettings.from_cli(root=tmp_path)
        assert settings.db_path == tmp_path / ".linkctl" / "linkctl.db"
        assert settings.plugin_dir == tmp_path / ".linkctl" / "plugins"

    def test_frozen(self, tmp_path: Path) -> None:
        settings = LinkctlSettings.from_cli(root=tmp_path)
        with pytest.raises(Exception):
            settings.quiet = True  # type: ignore[misc]


class TestTomlSource:
    def test_sparse_override(self, tmp_path: Path) -> None:
        (tmp_path / "linkctl.toml").write_text(
            '[links]\ndefault_owner = "warehouse"\n[channels]\npage_size = 10\n'
        )
        settings = LinkctlSettings.from_cli(root=tmp_path)
        assert settings.links.default_owner == "warehouse"
        assert settings.links.conflict_check is True  # default preserved
        assert settings.channels.page_size == 10

    def test_walk_up_sets_root(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "linkctl.toml").write_text('[store]\npath = "data/routes.db"\n')
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        settings = LinkctlSettings.from_cli()
        assert settings.root == tmp_path.resolve()
        assert settings.db_path == tmp_path.resolve() / "data" / "routes.db"

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom" / "my.toml"
        custom.parent.mkdir(parents=True)
        custom.write_text("[links]\nconflict_check = false\n")
        settings = LinkctlSettings.from_cli(config_path=str(custom), root=tmp_path)
        assert settings.links.conflict_check is False
        assert settings.config_path == custom

    def test_entities_table(self, tmp_path: Path) -> None:
        (tmp_path / "linkctl.toml").write_text(
            '[entities.ticket]\nlabel = "Ticket"\n'
            '[entities.ticket.fields.subject]\nkind = "text"\n'
        )
        settings = LinkctlSettings.from_cli(root=tmp_path)
        assert settings.entities["ticket"]["fields"]["subject"] == {"kind": "text"}

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "linkctl.toml").write_text("[links\n")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            LinkctlSettings.from_cli(root=tmp_path)

    def test_invalid_value(self, tmp_path: Path) -> None:
        (tmp_path / "linkctl.toml").write_text("[channels]\npage_size = 0\n")
        with pytest.raises(Exception):
            LinkctlSettings.from_cli(root=tmp_path)


class TestPriority:
    def test_env_beats_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "linkctl.toml").write_text('[links]\ndefault_owner = "toml"\n')
        monkeypatch.setenv("LINKCTL_LINKS__DEFAULT_OWNER", "env")
        settings = LinkctlSettings.from_cli(root=tmp_path)
        assert settings.links.default_owner == "env"

    def test_cli_flags_override(self, tmp_path: Path) -> None:
        settings = LinkctlSettings.from_cli(
            root=tmp_path, json_output=True, quiet=True, verbose=True, log_json=True
        )
        assert settings.json_output is True
        assert settings.quiet is True
        assert settings.verbose is True
        assert settings.log_json is True
