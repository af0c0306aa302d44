"""Command: route a record through an owner's links."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from linkctl.commands._base import LinkCommand

if TYPE_CHECKING:
    from linkctl.commands._context import AppContext


@click.command(
    cls=LinkCommand,
    examples="""\
  linkctl route REC-0001
  linkctl route REC-0001 --owner shop-eu
  linkctl --json route REC-0002""",
)
@click.argument("record_id")
@click.option(
    "--owner", default=None, help="Owner whose links decide (default: [links] default_owner)."
)
@click.pass_obj
def route(app: AppContext, record_id: str, owner: str | None) -> None:
    """Show which channel RECORD_ID is routed to.

    Links are tried in rank order; the first whose filters all match wins.
    """
    svc = app.dispatch_service()
    app.emit(app.run(svc.route(app.owner(owner), record_id)))
