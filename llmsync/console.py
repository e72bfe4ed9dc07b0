"""Shared Rich console with custom theme for consistent CLI output."""

from rich.console import Console
from rich.theme import Theme

# Named styles for semantic consistency
custom_theme = Theme({
    "heading": "bold cyan",
    "success": "green",
    "warning": "yellow",
    "error": "bold red",
    "muted": "dim",
    "path": "cyan",
    "tier.high": "bold green",
    "tier.medium": "yellow",
    "tier.low": "dim",
})

# Singleton console instance
console = Console(theme=custom_theme)
err_console = Console(theme=custom_theme, stderr=True)


def print_success(text: str) -> None:
    console.print(f"[success]✓[/success] {text}")


def print_error(text: str) -> None:
    """Print an error line to stderr."""
    err_console.print(f"[error]✗[/error] {text}")


def print_path(label: str, path: str) -> None:
    """Print labeled path with muted style."""
    console.print(f"[muted]{label}:[/muted] [path]{path}[/path]")
