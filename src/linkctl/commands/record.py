"""Command group: records of an entity type."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from linkctl.commands._base import LinkGroup
from linkctl.domain.values import NullValue

if TYPE_CHECKING:
    from linkctl.commands._context import AppContext
    from linkctl.services.editing import EditSession
    from linkctl.services.result import ServiceResult

_RECORD_EXAMPLES = """\
  linkctl record create --set order_number=A-1001 --set total=2500
  linkctl record create --set order_number=A-1002 --set is_priority=yes
  linkctl record update REC-0001 --set status=shipped
  linkctl record update REC-0001 --null note"""

_set_option = click.option(
    "--set",
    "assignments",
    multiple=True,
    metavar="FIELD=VALUE",
    help="Set a field (repeatable).",
)
_null_option = click.option(
    "--null", "nulls", multiple=True, metavar="FIELD", help="Clear a field (repeatable)."
)
_entity_option = click.option(
    "--entity", default=None, help="Entity type (default: [links] entity)."
)


@click.group(cls=LinkGroup, examples=_RECORD_EXAMPLES)
def record() -> None:
    """Create and update records."""


def _split(assignment: str) -> tuple[str, str]:
    field, sep, value = assignment.partition("=")
    if not sep or not field.strip():
        msg = f"Expected FIELD=VALUE, got {assignment!r}"
        raise click.BadParameter(msg, param_hint="--set")
    return field.strip(), value


def _apply(
    session: EditSession,
    assignments: tuple[str, ...],
    nulls: tuple[str, ...],
) -> ServiceResult | None:
    """Apply ``--set``/``--null`` edits; return the first failed result."""
    for assignment in assignments:
        field, value = _split(assignment)
        result = session.set_text(field, value)
        if not result.ok:
            return result
    for field in nulls:
        current = session.values.get(field)
        if current is not None and isinstance(current.inner, NullValue):
            continue
        result = session.set_null(field)
        if not result.ok:
            return result
    return None


@record.command(
    examples="""\
  linkctl record create --set order_number=A-1001
  linkctl record create --set order_number=A-1003 --set currency=EUR --set total=990
  linkctl --json record create --entity ticket --set subject=Broken"""
)
@_set_option
@_null_option
@_entity_option
@click.pass_obj
def create(
    app: AppContext,
    assignments: tuple[str, ...],
    nulls: tuple[str, ...],
    entity: str | None,
) -> None:
    """Create a record from field defaults plus --set/--null edits."""
    session = app.edit_session(entity)
    failed = _apply(session, assignments, nulls)
    if failed is not None:
        app.emit(failed)
        return
    app.emit(app.run(session.submit()))


@record.command(
    examples="""\
  linkctl record update REC-0001 --set status=shipped
  linkctl record update REC-0001 --null email"""
)
@click.argument("record_id")
@_set_option
@_null_option
@_entity_option
@click.pass_obj
def update(
    app: AppContext,
    record_id: str,
    assignments: tuple[str, ...],
    nulls: tuple[str, ...],
    entity: str | None,
) -> None:
    """Update RECORD_ID; only changed fields are sent."""
    if not assignments and not nulls:
        click.echo("No changes specified. Use --help for options.", err=True)
        raise SystemExit(1)

    session = app.edit_session(entity)

    async def _run() -> ServiceResult:
        loaded = await session.load(record_id)
        if not loaded.ok:
            return loaded
        return _apply(session, assignments, nulls) or await session.submit()

    app.emit(app.run(_run()))
