"""Shared console utilities for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.table import Table

from supabackup.errors import ContainerNotFoundError, ExecutionError, SupabackupError

if TYPE_CHECKING:
    from supabackup.config.models import SupabackupConfig

# Shared console instance for all CLI commands
console = Console()


def error(msg: str) -> None:
    """Print an error message in red."""
    console.print(f"[red]\\[ERROR][/red] {msg}")


def warning(msg: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[yellow]\\[WARNING][/yellow] {msg}")


def success(msg: str) -> None:
    """Print a success message in green."""
    console.print(f"[green]✓[/green] {msg}")


def info(msg: str) -> None:
    """Print an info message."""
    console.print(f"[green]\\[INFO][/green] {msg}")


def dim(msg: str) -> None:
    """Print a dimmed message."""
    console.print(f"[dim]{msg}[/dim]")


def create_table(
    title: str,
    columns: list[tuple[str, str | dict]],
) -> Table:
    """Create a styled table with consistent formatting.

    Args:
        title: Table title.
        columns: List of (name, style) or (name, kwargs_dict) tuples.
    """
    table = Table(title=title)
    for name, style_or_kwargs in columns:
        if isinstance(style_or_kwargs, dict):
            table.add_column(name, **style_or_kwargs)
        else:
            table.add_column(name, style=style_or_kwargs)
    return table


def fail(exc: SupabackupError) -> typer.Exit:
    """Report a fatal error and return the Exit to raise.

    Usage: `raise fail(e) from e`
    """
    error(str(exc))
    if isinstance(exc, ContainerNotFoundError):
        console.print()
        console.print("Available containers:")
        if exc.available:
            for name in exc.available:
                console.print(f"  {name}")
        else:
            console.print("  (none)")
    elif isinstance(exc, ExecutionError) and exc.path is not None:
        warning(f"You may want to check {exc.path} for errors")
    return typer.Exit(exc.exit_code)


def load_config_or_exit(path: Path | None = None) -> SupabackupConfig:
    """Load configuration, exiting with an error message on failure."""
    from pydantic import ValidationError

    from supabackup.config import load_config

    try:
        return load_config(path)
    except FileNotFoundError as e:
        error(str(e))
        raise typer.Exit(1) from e
    except (ValidationError, ValueError) as e:
        error(f"Invalid configuration: {e}")
        raise typer.Exit(1) from e
