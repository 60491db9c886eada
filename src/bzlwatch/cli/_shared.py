"""Shared CLI utilities.

This module provides the exit codes and error reporting helpers used by
the bzlwatch command line.
"""

from enum import IntEnum
from typing import TYPE_CHECKING

from rich.markup import escape

if TYPE_CHECKING:
    from rich.console import Console

__all__ = [
    "ExitCode",
    "get_error_console",
    "print_error",
]


class ExitCode(IntEnum):
    """Exit codes for the bzlwatch CLI."""

    SUCCESS = 0
    ERROR = 1
    INTERRUPTED = 130


def get_error_console() -> "Console":  # noqa: UP037
    """Get a Rich console configured for error output to stderr.

    Returns:
        Console instance writing to stderr.
    """
    from rich.console import Console  # noqa: PLC0415

    return Console(stderr=True)


def print_error(message: str, *, console: "Console | None" = None) -> None:
    """Print a single formatted error line to stderr.

    Args:
        message: The error message to display. Markup in it is not rendered.
        console: Optional Rich console for output. If not provided,
            a new stderr console will be created.
    """
    if console is None:
        console = get_error_console()

    console.print(f"[red]Error:[/red] {escape(message)}")
