"""Rich Console factory and theme for linkctl output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract. In non-TTY environments (tests,
pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

LNK_THEME = Theme(
    {
        "lnk.ok": "bold green",
        "lnk.error": "bold red",
        "lnk.warning": "bold yellow",
        "lnk.op": "bold cyan",
        "lnk.key": "dim",
        "lnk.id": "bold blue",
        "lnk.rank": "magenta",
        "lnk.channel": "bold",
        "lnk.filter": "green",
        "lnk.positive": "green",
        "lnk.negative": "red",
    }
)

_TONE_STYLES: dict[str, str] = {
    "positive": "lnk.positive",
    "negative": "lnk.negative",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=LNK_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_tone(tone: str) -> str:
    """Return the Rich style name for a notification tone."""
    return _TONE_STYLES.get(tone, "")
