"""Command group: an owner's ordered links."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from linkctl.commands._base import LinkGroup

if TYPE_CHECKING:
    from linkctl.commands._context import AppContext
    from linkctl.services.links import LinkService
    from linkctl.services.result import ServiceResult

_LINK_EXAMPLES = """\
  linkctl link list
  linkctl link add CHN-0001 --owner shop-eu
  linkctl link reorder LNK-0003 LNK-0001 LNK-0002
  linkctl link reorder --move LNK-0003 --to 1
  linkctl link matches LNK-0001 --limit 5
  linkctl link delete LNK-0002"""

_owner_option = click.option(
    "--owner", default=None, help="Owner of the links (default: [links] default_owner)."
)


@click.group(cls=LinkGroup, examples=_LINK_EXAMPLES)
def link() -> None:
    """Manage the ordered routing links of an owner."""


async def _loaded(svc: LinkService) -> ServiceResult | None:
    """Load *svc*, returning the failed result if loading failed."""
    result = await svc.load()
    return None if result.ok else result


@link.command(
    name="list",
    examples="""\
  linkctl link list
  linkctl link list --owner shop-eu
  linkctl --json link list""",
)
@_owner_option
@click.pass_obj
def list_cmd(app: AppContext, owner: str | None) -> None:
    """List links in rank order with their filters."""
    app.emit(app.run(app.link_service(owner).load()))


@link.command(
    examples="""\
  linkctl link add CHN-0001
  linkctl link add CHN-0002 --owner shop-eu"""
)
@click.argument("channel_id")
@_owner_option
@click.pass_obj
def add(app: AppContext, channel_id: str, owner: str | None) -> None:
    """Bind a new link to CHANNEL_ID (appended, matches everything)."""
    svc = app.link_service(owner)

    async def _run() -> ServiceResult:
        return await _loaded(svc) or await svc.add_link(channel_id)

    app.emit(app.run(_run()))


@link.command(
    examples="""\
  linkctl link delete LNK-0002
  linkctl link delete LNK-0002 --owner shop-eu"""
)
@click.argument("link_id")
@_owner_option
@click.pass_obj
def delete(app: AppContext, link_id: str, owner: str | None) -> None:
    """Delete link LINK_ID."""
    svc = app.link_service(owner)

    async def _run() -> ServiceResult:
        return await _loaded(svc) or await svc.delete_link(link_id)

    app.emit(app.run(_run()))


@link.command(
    examples="""\
  linkctl link reorder LNK-0003 LNK-0001 LNK-0002
  linkctl link reorder --move LNK-0003 --to 1
  linkctl link reorder"""
)
@click.argument("link_ids", nargs=-1)
@click.option("--move", "move_id", default=None, help="Link to move.")
@click.option(
    "--to",
    "position",
    default=None,
    type=click.IntRange(min=1),
    help="1-based target position for --move.",
)
@_owner_option
@click.pass_obj
def reorder(
    app: AppContext,
    link_ids: tuple[str, ...],
    move_id: str | None,
    position: int | None,
    owner: str | None,
) -> None:
    """Rewrite link ranks in a new order.

    Pass every link id in the desired order, or move a single link with
    --move/--to. Without arguments, ranks are renumbered 1..N in the
    current order.
    """
    if link_ids and move_id:
        raise click.UsageError("Pass either LINK_IDS or --move, not both.")
    if (move_id is None) != (position is None):
        raise click.UsageError("--move and --to must be used together.")

    svc = app.link_service(owner)

    async def _run() -> ServiceResult:
        failed = await _loaded(svc)
        if failed is not None:
            return failed
        if link_ids:
            result = svc.reorder(link_ids)
        elif move_id is not None and position is not None:
            result = svc.move(move_id, position - 1)
        else:
            result = None
        if result is not None and not result.ok:
            return result
        return await svc.commit_order()

    app.emit(app.run(_run()))


@link.command(
    examples="""\
  linkctl link matches LNK-0001
  linkctl --json link matches LNK-0001 --limit 5"""
)
@click.argument("link_id")
@click.option("--limit", default=None, type=click.IntRange(min=1), help="Max records.")
@_owner_option
@click.pass_obj
def matches(app: AppContext, link_id: str, limit: int | None, owner: str | None) -> None:
    """List stored records that link LINK_ID's filters select."""
    svc = app.dispatch_service()
    app.emit(app.run(svc.matches_for_link(app.owner(owner), link_id, limit=limit)))
