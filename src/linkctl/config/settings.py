"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``LINKCTL_*`` prefix (``__`` for nesting)
  3. TOML file    — ``linkctl.toml`` discovered via walk-up
  4. Code defaults — baked into the section models

Uses Pydantic Settings v2 with a custom :class:`TomlSettingsSource` that
reuses the ``find_config`` walk-up discovery from
:mod:`linkctl.config.discovery`.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from linkctl.config.discovery import find_config
from linkctl.config.models import (
    ChannelsConfig,
    LinksConfig,
    PluginsConfig,
    StoreConfig,
)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``linkctl.toml`` file discovered via walk-up."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return the full TOML data dict for Pydantic to merge."""
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class LinkctlSettings(BaseSettings):
    """Unified settings for the linkctl CLI.

    Attributes:
        root: Project directory (parent of ``linkctl.toml``, or CWD if no
            config found). Relative paths in the config resolve against it.
        config_path: The config file in use, or None.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "LINKCTL_",
        "env_nested_delimiter": "__",
    }

    # --- Resolved path (derived from the config location, never read from TOML) ---
    root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    store: StoreConfig = Field(default_factory=StoreConfig)
    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)
    links: LinksConfig = Field(default_factory=LinksConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
    entities: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @property
    def db_path(self) -> Path:
        """Absolute path of the SQLite store."""
        path = Path(self.store.path).expanduser()
        return path if path.is_absolute() else self.root / path

    @property
    def plugin_dir(self) -> Path:
        path = Path(self.plugins.local_dir).expanduser()
        return path if path.is_absolute() else self.root / path

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        root: Path | None = None,
        **cli_flags: Any,
    ) -> LinkctlSettings:
        """Construct settings from CLI invocation.

        Discovers ``linkctl.toml`` via walk-up (or explicit *config_path*),
        resolves *root* from the config file's parent directory, and merges
        CLI flags as highest-priority overrides.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(root)

        resolved_root = root
        if resolved_root is None:
            resolved_root = toml_path.parent if toml_path else Path.cwd()

        _tls.toml_path = toml_path
        try:
            return cls(
                root=resolved_root,
                config_path=toml_path,
                **cli_flags,
            )
        finally:
            _tls.toml_path = None
