"""Command group: filters of one link."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from linkctl.commands._base import LinkGroup

if TYPE_CHECKING:
    from linkctl.commands._context import AppContext
    from linkctl.services.result import ServiceResult

_FILTER_EXAMPLES = """\
  linkctl filter operators
  linkctl filter operators status
  linkctl filter add LNK-0001 status is_i pending
  linkctl filter add LNK-0001 total gte 1000
  linkctl filter add LNK-0002 is_priority is true
  linkctl filter remove LNK-0001 status is_i"""

_owner_option = click.option(
    "--owner", default=None, help="Owner of the link (default: [links] default_owner)."
)


@click.group(cls=LinkGroup, name="filter", examples=_FILTER_EXAMPLES)
def filter_group() -> None:
    """Attach and remove link filters."""


@filter_group.command(
    examples="""\
  linkctl filter add LNK-0001 status is_i pending
  linkctl filter add LNK-0001 currency is EUR
  linkctl filter add LNK-0001 email ends_with_i @example.com"""
)
@click.argument("link_id")
@click.argument("field")
@click.argument("operator")
@click.argument("value")
@_owner_option
@click.pass_obj
def add(
    app: AppContext,
    link_id: str,
    field: str,
    operator: str,
    value: str,
    owner: str | None,
) -> None:
    """Attach FIELD OPERATOR VALUE to LINK_ID.

    A filter with the same FIELD and OPERATOR is replaced. VALUE is parsed
    by the field's kind (numbers, true/false, option values).
    """
    svc = app.link_service(owner)

    async def _run() -> ServiceResult:
        loaded = await svc.load()
        if not loaded.ok:
            return loaded
        selected = svc.select(link_id)
        if not selected.ok:
            return selected.model_copy(update={"op": "attach_filter"})
        return await svc.attach_filter_text(field, operator, value)

    app.emit(app.run(_run()))


@filter_group.command(
    examples="""\
  linkctl filter remove LNK-0001 status is_i"""
)
@click.argument("link_id")
@click.argument("field")
@click.argument("operator")
@_owner_option
@click.pass_obj
def remove(app: AppContext, link_id: str, field: str, operator: str, owner: str | None) -> None:
    """Remove the FIELD OPERATOR filter from LINK_ID."""
    svc = app.link_service(owner)

    async def _run() -> ServiceResult:
        loaded = await svc.load()
        if not loaded.ok:
            return loaded
        selected = svc.select(link_id)
        if not selected.ok:
            return selected.model_copy(update={"op": "remove_filter"})
        return await svc.remove_filter(field, operator)

    app.emit(app.run(_run()))


@filter_group.command(
    examples="""\
  linkctl filter operators
  linkctl filter operators total
  linkctl -v filter operators status"""
)
@click.argument("field", required=False)
@click.pass_obj
def operators(app: AppContext, field: str | None) -> None:
    """List the conditions each filterable field offers."""
    app.emit(app.link_service().operators(field))
