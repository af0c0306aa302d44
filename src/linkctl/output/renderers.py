"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from linkctl.output.console import create_console, get_output, style_for_tone

if TYPE_CHECKING:
    from rich.console import Console

    from linkctl.services.notifier import Notification
    from linkctl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
        _render_warnings(console, result)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} - {msg}"

    for key in ("links", "channels", "records"):
        items = result.data.get(key)
        if items and isinstance(items, list):
            return "\n".join(str(item["id"]) for item in items if "id" in item)

    return f"OK: {result.op}"


def render_notifications(notifications: list[Notification]) -> str:
    """Render notifications as one colored line each."""
    console = create_console()
    for note in notifications:
        text = Text(note.title, style=style_for_tone(note.tone))
        if note.message:
            text.append(f": {note.message}")
        console.print(text)
    return get_output(console).rstrip("\n")


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK status line."""
    console.print(Text.assemble(("OK", "lnk.ok"), (f"  {result.op}", "lnk.op")))


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="lnk.key")
    if key == "id" or key.endswith("_id"):
        v = Text(str(value), style="lnk.id")
    else:
        v = Text(str(value))
    console.print(Text.assemble(k, v))


def _render_warnings(console: Console, result: ServiceResult) -> None:
    for warning in result.warnings:
        console.print(Text(f"  warning: {warning}", style="lnk.warning"))


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {name}"
    if span_data.get("annotations"):
        extras = [f"{ak}={av}" for ak, av in span_data["annotations"].items()]
        line += f"  ({', '.join(extras)})"

    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _link_table(links: list[dict[str, Any]]) -> Table:
    """Build a Rich Table of links in working order."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("ID", style="lnk.id", no_wrap=True)
    table.add_column("Rank", style="lnk.rank", justify="right")
    table.add_column("Channel", style="lnk.channel")
    table.add_column("Filters", style="lnk.filter")

    for position, link in enumerate(links, start=1):
        rank = link.get("rank")
        marker = "*" if link.get("selected") else ""
        descriptions = link.get("descriptions") or []
        table.add_row(
            f"{position}{marker}",
            str(link.get("id", "")),
            "-" if rank is None else str(rank),
            str(link.get("name", "")),
            "\n".join(descriptions) if descriptions else "(matches everything)",
        )
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    console.print(Text.assemble(("ERROR", "lnk.error"), (f"  {result.op}", "lnk.op"), f" - {msg}"))

    if err and err.code:
        console.print(Text(f"  code: {err.code}", style="dim"))
    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Link renderers ────────────────────────────────────────────────────


def _render_links(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render load_links results as a link table."""
    _status_line(console, result)
    _field(console, "owner", result.data.get("owner", ""))
    if result.data.get("dirty"):
        _field(console, "dirty", True)
    links = result.data.get("links", [])
    if links:
        console.print(_link_table(links))
    else:
        console.print(Text("  (no links)", style="dim"))
    if verbose:
        _render_meta(console, result)


def _render_order(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render commit_order results as ``rank  id`` lines."""
    _status_line(console, result)
    for item in result.data.get("order", []):
        if isinstance(item, dict):
            rank, link_id = item.get("rank"), item["id"]
            console.print(f"  [lnk.rank]{rank}[/lnk.rank]  [lnk.id]{link_id}[/lnk.id]")
        else:
            console.print(f"  [lnk.id]{item}[/lnk.id]")
    if verbose:
        _render_meta(console, result)


def _render_link(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render add_link / attach_filter / remove_filter results."""
    _status_line(console, result)
    link = result.data.get("link", {})
    _field(console, "id", link.get("id", result.data.get("id", "")))
    if "name" in link:
        _field(console, "channel", link["name"])
    if "description" in result.data:
        _field(console, "filter", result.data["description"])
    for description in link.get("descriptions", []):
        console.print(Text(f"    - {description}", style="lnk.filter"))
    if verbose:
        _render_meta(console, result)


def _render_channels(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    channels = result.data.get("channels", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="lnk.id", no_wrap=True)
    table.add_column("Name", style="lnk.channel")
    for channel in channels:
        table.add_row(str(channel["id"]), str(channel["name"]))
    console.print(table)
    if verbose:
        _field(console, "offset", result.data.get("offset", 0))
        _field(console, "limit", result.data.get("limit", ""))


def _render_operators(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Field", style="lnk.key")
    table.add_column("Operator", style="lnk.op", no_wrap=True)
    table.add_column("Condition")
    if verbose:
        table.add_column("Initial", style="dim")
    for item in result.data.get("items", []):
        row = [str(item["field"]), str(item["operator"]), str(item["condition"])]
        if verbose:
            row.append(repr(item["initial"]))
        table.add_row(*row)
    console.print(table)


# ── Record renderers ──────────────────────────────────────────────────


def _render_route(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    record = result.data.get("record", {})
    _field(console, "record_id", record.get("id", ""))
    channel = result.data.get("channel")
    if channel is None:
        _field(console, "channel", "(none)")
    else:
        _field(console, "channel", f"{channel['name']} ({channel['id']})")
        _field(console, "link_id", result.data["link"]["id"])
    if verbose:
        _render_meta(console, result)


def _render_matches(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "link_id", result.data.get("link", {}).get("id", ""))
    _field(console, "count", result.data.get("count", 0))
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="lnk.id", no_wrap=True)
    table.add_column("Label")
    for record in result.data.get("records", []):
        table.add_row(str(record["id"]), str(record.get("label") or ""))
    console.print(table)
    if verbose:
        _field(console, "where", result.data.get("where"))


def _render_mutation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render create/update/delete results."""
    _status_line(console, result)
    for key in ("id", "label", "fields"):
        if key in result.data:
            _field(console, key, result.data[key])
    if "channel" in result.data:
        _field(console, "id", result.data["channel"]["id"])
        _field(console, "name", result.data["channel"]["name"])
    if verbose:
        _render_meta(console, result)


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


_Renderer = Callable[..., None]

_OP_RENDERERS: dict[str, _Renderer] = {
    # Links
    "load_links": _render_links,
    "move_link": _render_order,
    "reorder_links": _render_order,
    "commit_order": _render_order,
    "add_link": _render_link,
    "attach_filter": _render_link,
    "remove_filter": _render_link,
    "delete_link": _render_mutation,
    "list_operators": _render_operators,
    # Channels
    "list_channels": _render_channels,
    "add_channel": _render_mutation,
    # Records
    "create_record": _render_mutation,
    "update_record": _render_mutation,
    "route": _render_route,
    "link_matches": _render_matches,
}
