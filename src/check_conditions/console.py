"""Rich console utilities for terminal output.

This module provides a consistent interface for all CLI output using the
Rich library. Report lines and summaries are printed verbatim, since users
match their own regular expressions against them; status messages use the
themed helpers. Diagnostics go to stderr.
"""

from rich.console import Console
from rich.theme import Theme

# Custom theme with consistent colors
_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "red bold",
    }
)

# Shared console instances
console = Console(theme=_THEME)
err_console = Console(theme=_THEME, stderr=True)


def report(line: str) -> None:
    """Print a report or summary line exactly as given.

    Args:
        line: The line to print.

    """
    console.print(line, markup=False, highlight=False, emoji=False, soft_wrap=True)


def diagnostic(line: str) -> None:
    """Print a diagnostic line exactly as given on stderr.

    Args:
        line: The line to print.

    """
    err_console.print(line, markup=False, highlight=False, emoji=False, soft_wrap=True)


def info(message: str) -> None:
    """Print an informational message.

    Args:
        message: The message to display.

    """
    console.print(f"[info]ℹ[/info] {message}")


def warning(message: str) -> None:
    """Print a warning message on stderr.

    Args:
        message: The message to display.

    """
    err_console.print(f"[warning]⚠[/warning] {message}")


def error(message: str) -> None:
    """Print an error message on stderr.

    Args:
        message: The message to display.

    """
    err_console.print(f"[error]✗[/error] {message}")
