"""
Console output utilities for monoship using Rich.

Everything the commands show the user goes through this module: status
lines, the unit tables of ``assemble`` and ``publish``, the tree of
dependencies folded into each unit and the publish confirmation.
Diagnostics belong in :mod:`monoship.utils.logger` instead.

Color is decided once per console: ``NO_COLOR`` and ``CI`` turn it off,
otherwise it follows whether stdout is a terminal. The CLI calls
:func:`reconfigure_console` after it has applied ``--no-color``.
"""

from __future__ import annotations

import os
import sys
import threading
from typing import Any, Dict, List, Optional, Sequence

from rich.tree import Tree
from rich.table import Table
from rich.theme import Theme
from rich.console import Console

# ---------------------------------------------------------------------------
# Theme configuration
# ---------------------------------------------------------------------------

MONOSHIP_THEME = Theme(
    {
        "success": "bold green",
        "error": "bold red",
        "warning": "bold yellow",
        "info": "bold cyan",
        "dim": "dim",
        "highlight": "bold magenta",
        # Publish unit states
        "state.unpublished": "dim",
        "state.pending": "yellow",
        "state.latest": "bold green",
        "state.failed": "bold red",
    }
)

_BUMP_COLORS = {
    "major": "red",
    "minor": "yellow",
    "patch": "green",
    "new": "cyan",
}

# ---------------------------------------------------------------------------
# Console lifecycle management
# ---------------------------------------------------------------------------

_console: Optional[Console] = None
_console_lock = threading.Lock()


def _should_use_color() -> bool:
    if os.environ.get("NO_COLOR") or os.environ.get("CI"):
        return False
    try:
        return sys.stdout.isatty()
    except (AttributeError, OSError):
        return False


def _get_console() -> Console:
    """Return the shared Rich Console, creating it on first use."""
    global _console

    if _console is None:
        with _console_lock:
            if _console is None:
                use_color = _should_use_color()
                _console = Console(
                    theme=MONOSHIP_THEME,
                    no_color=not use_color,
                    highlight=use_color,
                )
    return _console


def reconfigure_console() -> None:
    """Drop the shared console so the next call re-reads the environment."""
    global _console
    with _console_lock:
        _console = None


# ---------------------------------------------------------------------------
# Status lines
# ---------------------------------------------------------------------------


def print_success(message: str, *, prefix: str = "[OK]") -> None:
    _get_console().print(f"{prefix} {message}", style="success")


def print_error(message: str, *, prefix: str = "[ERROR]") -> None:
    # Error text quotes paths and specifiers verbatim; never parse it as markup
    _get_console().print(f"{prefix} {message}", style="error", markup=False)


def print_warning(message: str, *, prefix: str = "[WARNING]") -> None:
    _get_console().print(f"{prefix} {message}", style="warning", markup=False)


def print_info(message: str) -> None:
    _get_console().print(message, style="info")


def print_blank() -> None:
    """Print an empty line (separates consecutive tables)."""
    _get_console().print("")


# ---------------------------------------------------------------------------
# Structured output
# ---------------------------------------------------------------------------


def print_table(
    data: List[Dict[str, Any]],
    *,
    headers: Optional[List[str]] = None,
    title: Optional[str] = None,
    column_styles: Optional[Dict[str, Dict[str, Any]]] = None,
) -> None:
    """Render rows of dictionaries as a Rich table.

    Args:
        data: List of row dictionaries. Nothing is printed when empty.
        headers: Column order. Defaults to keys of the first row.
        title: Optional table title.
        column_styles: Per-column ``style`` / ``justify`` / ``no_wrap``.
    """
    if not data:
        return

    if headers is None:
        headers = list(data[0].keys())

    table = Table(title=title, show_header=True, header_style="bold")

    column_styles = column_styles or {}
    for header in headers:
        config = column_styles.get(header, {})
        table.add_column(
            header,
            style=config.get("style"),
            justify=config.get("justify", "default"),
            no_wrap=config.get("no_wrap", False),
            overflow="fold",
        )

    for row in data:
        table.add_row(*(str(row.get(h, "")) for h in headers))

    _get_console().print(table)


def print_tree(label: str, children: Sequence[str], *, empty: str = "(no dependencies)") -> None:
    """Render ``label`` with one branch per entry of ``children``.

    Used to show which internal packages were folded into a unit and
    where they live inside it.

    Args:
        label: Root label (Rich markup allowed).
        children: Branch labels, in display order.
        empty: Single dimmed branch shown when ``children`` is empty.
    """
    tree = Tree(label, guide_style="dim")
    if children:
        for child in children:
            tree.add(child)
    else:
        tree.add(f"[dim]{empty}[/dim]")
    _get_console().print(tree)


# ---------------------------------------------------------------------------
# User interaction
# ---------------------------------------------------------------------------


def confirm(message: str, *, default: bool = False) -> bool:
    """Prompt the user for a yes/no confirmation.

    - "y", "yes"   → True
    - "n", "no"    → False
    - empty or unrecognized input → ``default``
    - Ctrl+C / EOF → False
    """
    console = _get_console()
    suffix = " [Y/n]: " if default else " [y/N]: "
    console.print(f"{message}{suffix}", end="", style="info", markup=False)

    try:
        response = input().strip().lower()
    except (KeyboardInterrupt, EOFError):
        console.print()
        return False

    if response in ("y", "yes"):
        return True
    if response in ("n", "no"):
        return False
    return default


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def colorize_bump(bump_type: str) -> str:
    """Return a Rich-markup colored label for a version change type."""
    color = _BUMP_COLORS.get(bump_type.lower())
    return f"[{color}]{bump_type}[/{color}]" if color else bump_type


def colorize_state(state: str) -> str:
    """Return a Rich-markup label for a publish unit state.

    Examples:
        >>> colorize_state("pending")
        '[state.pending]pending[/state.pending]'
    """
    style = f"state.{state.lower()}"
    if style not in MONOSHIP_THEME.styles:
        return state
    return f"[{style}]{state}[/{style}]"
