"""Rich Console factory and theme for edcctl output.

Consoles render into a StringIO buffer so renderers keep a plain
``-> str`` contract.  Rich drops color codes by itself when it is not
writing to a terminal (CliRunner, pipes).
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

EDC_THEME = Theme(
    {
        "edc.ok": "bold green",
        "edc.error": "bold red",
        "edc.warning": "bold yellow",
        "edc.op": "bold cyan",
        "edc.key": "dim",
        "edc.id": "bold blue",
        "edc.step": "bold",
        "edc.status.ok": "green",
        "edc.status.skipped": "dim",
        "edc.status.warning": "yellow",
        "edc.status.dry-run": "magenta",
        "edc.status.failed": "red",
        "edc.command": "cyan",
    }
)

_STATUS_MARKERS: dict[str, str] = {
    "ok": "✓",
    "skipped": "-",
    "warning": "!",
    "dry-run": "~",
    "failed": "✗",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes.
        width: Override terminal width (stable output in tests).
    """
    return Console(
        file=StringIO(),
        theme=EDC_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_status(status: str) -> str:
    return f"edc.status.{status}" if status in _STATUS_MARKERS else ""


def marker_for_status(status: str) -> str:
    return _STATUS_MARKERS.get(status, "?")
