"""Rich console utilities for styled terminal output.

This module provides a consistent interface for all CLI output using the
Rich library. Secrets only reach the terminal through ``mask`` unless the
caller explicitly asks for them to be revealed.
"""

from collections.abc import Generator, Sequence
from contextlib import contextmanager

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

# Custom theme with consistent colors
_THEME = Theme(
    {
        "info": "cyan",
        "success": "green",
        "warning": "yellow",
        "error": "red bold",
        "highlight": "cyan bold",
        "muted": "dim",
    }
)

_MASK_VISIBLE_CHARS = 4

# Shared console instance
console = Console(theme=_THEME)


def info(message: str) -> None:
    """Print an informational message.

    Args:
        message: The message to display.

    """
    console.print(f"[info]ℹ[/info] {message}")


def success(message: str) -> None:
    """Print a success message.

    Args:
        message: The message to display.

    """
    console.print(f"[success]✓[/success] {message}")


def warning(message: str) -> None:
    """Print a warning message.

    Args:
        message: The message to display.

    """
    console.print(f"[warning]⚠[/warning] {message}")


def error(message: str) -> None:
    """Print an error message.

    Args:
        message: The message to display.

    """
    console.print(f"[error]✗[/error] {message}")


def action(message: str) -> None:
    """Print an action/progress message."""
    console.print(f"[info]→[/info] {message}")


def step(message: str) -> None:
    """Print a sub-step message."""
    console.print(f"[muted]•[/muted] {message}")


def highlight(text: str) -> str:
    """Return text wrapped in highlight markup.

    Args:
        text: The text to highlight.

    Returns:
        Text wrapped in Rich markup for highlighting.

    """
    return f"[highlight]{text}[/highlight]"


def mask(secret: str) -> str:
    """Hide all but the last few characters of a secret.

    Args:
        secret: The sensitive value.

    Returns:
        A masked rendition safe to print.

    """
    if len(secret) <= _MASK_VISIBLE_CHARS:
        return "*" * len(secret)
    return "*" * 8 + secret[-_MASK_VISIBLE_CHARS:]


@contextmanager
def spinner(message: str) -> Generator[None, None, None]:
    """Display a spinner while performing an operation.

    Args:
        message: The status message to display.

    Yields:
        None

    """
    with console.status(f"[info]{message}[/info]", spinner="dots"):
        yield


def summary_panel(title: str, items: dict[str, str]) -> None:
    """Print a summary panel with key-value pairs.

    Args:
        title: Title for the panel.
        items: Dictionary of label -> value pairs to display.

    """
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold")
    table.add_column(style="cyan")

    for label, value in items.items():
        table.add_row(f"{label}:", value)

    console.print(Panel(table, title=f"[bold]{title}[/bold]", border_style="green"))


def keys_table(keys: Sequence[str], keys_base64: Sequence[str], *, reveal: bool) -> None:
    """Print unseal key shares as a numbered table.

    Args:
        keys: Hex encoded key shares.
        keys_base64: Base64 encoded key shares, same order as keys.
        reveal: Print the shares in clear instead of masked.

    """
    render = (lambda value: value) if reveal else mask
    table = Table(title="Unseal keys", show_lines=False)
    table.add_column("#", justify="right", style="muted")
    table.add_column("Key")
    table.add_column("Key (base64)")

    for index, (key, key_b64) in enumerate(zip(keys, keys_base64, strict=False), start=1):
        table.add_row(str(index), render(key), render(key_b64))

    console.print(table)
