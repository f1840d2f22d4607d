"""
Rich-based console output for depwatch commands.

Everything the operator is meant to read goes through here; diagnostics
belong in :mod:`depwatch.utils.logger`. One shared :class:`Console` is
created lazily and rebuilt by :func:`reconfigure_console` after the color
preference changes.
"""

from __future__ import annotations

import os
import sys
from typing import Any, Callable, Dict, Iterable, List, Optional

from rich.table import Table
from rich.theme import Theme
from rich.console import Console

DEPWATCH_THEME = Theme(
    {
        "success": "bold green",
        "error": "bold red",
        "warning": "bold yellow",
        "info": "bold cyan",
        "dim": "dim",
        "urgent": "bold white on red",
        "deprecated": "bold magenta",
    }
)

#: Theme style for each report status value.
STATUS_STYLES: Dict[str, str] = {
    "deprecated-update-needed": "deprecated",
    "deprecated-up-to-date": "deprecated",
    "security-urgent": "urgent",
    "update-recommended-changelog-unavailable": "warning",
    "update-recommended": "warning",
    "up-to-date": "success",
    "error": "error",
}

RowStyler = Callable[[Dict[str, Any]], Optional[str]]

_console: Optional[Console] = None


def _should_use_color() -> bool:
    """Color only on an interactive stdout, and never under NO_COLOR or CI."""
    if any(os.environ.get(name) for name in ("NO_COLOR", "CI")):
        return False
    isatty = getattr(sys.stdout, "isatty", None)
    try:
        return bool(isatty and isatty())
    except OSError:
        return False


def _get_console() -> Console:
    global _console

    if _console is None:
        color = _should_use_color()
        _console = Console(theme=DEPWATCH_THEME, no_color=not color, highlight=color)
    return _console


def reconfigure_console() -> None:
    """Forget the shared console; the next print re-reads the environment."""
    global _console
    _console = None


def get_raw_console() -> Console:
    """The shared Rich console, for callers that need Rich directly."""
    return _get_console()


def _emit(message: str, prefix: str, style: str) -> None:
    # markup=False keeps brackets in file names and messages literal
    _get_console().print(f"{prefix} {message}", style=style, markup=False)


def print_success(message: str, *, prefix: str = "[OK]") -> None:
    _emit(message, prefix, "success")


def print_error(message: str, *, prefix: str = "[ERROR]") -> None:
    _emit(message, prefix, "error")


def print_warning(message: str, *, prefix: str = "[WARNING]") -> None:
    _emit(message, prefix, "warning")


def colorize_status(status: str, label: Optional[str] = None) -> str:
    """Wrap *label* (or *status*) in the markup for the status style.

    Examples:
        >>> colorize_status("up-to-date", "OK")
        '[success]OK[/success]'
        >>> colorize_status("unknown")
        'unknown'
    """
    text = label or status
    style = STATUS_STYLES.get(status)
    if style is None:
        return text
    return f"[{style}]{text}[/{style}]"


def _build_table(
    headers: Iterable[str],
    *,
    title: Optional[str],
    caption: Optional[str],
    column_styles: Dict[str, Dict[str, Any]],
) -> Table:
    table = Table(title=title, caption=caption, show_header=True, header_style="bold")
    for header in headers:
        options = column_styles.get(header, {})
        table.add_column(
            header,
            style=options.get("style"),
            justify=options.get("justify", "default"),
            no_wrap=options.get("no_wrap", False),
            overflow=options.get("overflow", "fold"),
        )
    return table


def print_table(
    data: List[Dict[str, Any]],
    *,
    headers: Optional[List[str]] = None,
    title: Optional[str] = None,
    caption: Optional[str] = None,
    column_styles: Optional[Dict[str, Dict[str, Any]]] = None,
    row_styler: Optional[RowStyler] = None,
) -> None:
    """Print row dictionaries as a table. Nothing is printed for no rows.

    Args:
        data: Rows keyed by column header.
        headers: Columns to show, in order; the first row's keys by default.
        title: Table title.
        caption: Table caption.
        column_styles: Per-column ``style``, ``justify``, ``no_wrap`` and
            ``overflow`` settings.
        row_styler: Returns a Rich style for a row, or ``None``.
    """
    if not data:
        return

    columns = headers if headers is not None else list(data[0])
    table = _build_table(
        columns, title=title, caption=caption, column_styles=column_styles or {}
    )

    for row in data:
        table.add_row(
            *(str(row.get(column, "")) for column in columns),
            style=row_styler(row) if row_styler else None,
        )

    _get_console().print(table)
