"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, linkctl.toml only contains
overrides. A fresh project needs no config file at all.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# --- linkctl.toml sections ---


class StoreConfig(BaseModel):
    """[store] section."""

    model_config = {"frozen": True}

    path: str = ".linkctl/linkctl.db"  # relative paths resolve against the project root


class ChannelsConfig(BaseModel):
    """[channels] section."""

    model_config = {"frozen": True}

    page_size: int = Field(default=50, ge=1)


class LinksConfig(BaseModel):
    """[links] section."""

    model_config = {"frozen": True}

    default_owner: str = "default"
    entity: str = "order"  # entity type the links route
    conflict_check: bool = True


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    audit: bool = True
    local_dir: str = ".linkctl/plugins"

