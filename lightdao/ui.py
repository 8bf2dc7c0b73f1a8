"""Rich console shared by the CLI commands.

Usage:
    from lightdao.ui import console, print_error

    console.print("[success]Schema is up to date[/success]")
"""

import sys

from rich.console import Console
from rich.theme import Theme

LIGHTDAO_THEME = Theme({
    "info": "bold cyan",
    "warning": "bold yellow",
    "error": "bold red",
    "success": "bold green",
    "sql": "magenta",
    "table": "bold cyan",
    "dim": "dim white",
})

console = Console(
    theme=LIGHTDAO_THEME,
    force_terminal=sys.stdout.isatty()
)


def print_header(title: str) -> None:
    """Print a styled section header with horizontal rules."""
    console.rule(f"[bold]{title}[/bold]")


def print_error(msg: str) -> None:
    console.print(f"[error]ERROR:[/error] {msg}")


def print_success(msg: str) -> None:
    console.print(f"[success]OK:[/success] {msg}")
