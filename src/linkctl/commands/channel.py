"""Command group: channels that links route records to."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from linkctl.commands._base import LinkGroup

if TYPE_CHECKING:
    from linkctl.commands._context import AppContext

_CHANNEL_EXAMPLES = """\
  linkctl channel add "Warehouse East"
  linkctl channel list
  linkctl channel list --search ware --limit 10
  linkctl --json channel list --offset 50"""


@click.group(cls=LinkGroup, examples=_CHANNEL_EXAMPLES)
def channel() -> None:
    """Create and browse channels."""


@channel.command(
    examples="""\
  linkctl channel add "Warehouse East"
  linkctl -q channel add Returns"""
)
@click.argument("name")
@click.pass_obj
def add(app: AppContext, name: str) -> None:
    """Create a channel named NAME."""
    app.emit(app.run(app.channel_service().add_channel(name)))


@channel.command(
    name="list",
    examples="""\
  linkctl channel list
  linkctl channel list --search east
  linkctl channel list --limit 20 --offset 20""",
)
@click.option("--search", default=None, help="Case-insensitive name substring.")
@click.option("--limit", default=None, type=click.IntRange(min=1), help="Page size.")
@click.option("--offset", default=0, type=click.IntRange(min=0), help="Rows to skip.")
@click.pass_obj
def list_cmd(app: AppContext, search: str | None, limit: int | None, offset: int) -> None:
    """List channels a new link can be bound to, one page at a time."""
    where = {"name": {"contains": search, "mode": "insensitive"}} if search else None
    svc = app.link_service()
    app.emit(app.run(svc.list_channels(where, limit=limit, offset=offset)))
