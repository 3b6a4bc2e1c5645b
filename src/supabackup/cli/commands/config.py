"""Configuration inspection commands."""

from pathlib import Path
from typing import Annotated

import typer

from supabackup.cli.console import console, create_table, error, load_config_or_exit


def register(app: typer.Typer) -> None:
    """Register the config command."""

    @app.command()
    def config(
        ctx: typer.Context,
        action: Annotated[
            str | None,
            typer.Argument(help="Action: show, paths"),
        ] = None,
        path: Annotated[
            Path | None,
            typer.Option("--path", "-p", help="Path to configuration file"),
        ] = None,
    ) -> None:
        """Show the effective configuration or the standard paths."""
        if action is None:
            typer.echo(ctx.get_help())
            raise typer.Exit(0)

        if action == "show":
            _config_show(path)
        elif action == "paths":
            _config_paths()
        else:
            error(f"Unknown action: {action}")
            console.print("Valid actions: show, paths")
            raise typer.Exit(1)


def _config_show(path: Path | None) -> None:
    """Print the effective configuration with secrets masked."""
    from supabackup.config import find_config_path

    loaded = load_config_or_exit(path)
    source = find_config_path(path)
    console.print(f"[dim]Source: {source or 'environment only'}[/dim]")
    console.print_json(loaded.model_dump_json(indent=2))


def _config_paths() -> None:
    from supabackup.config.paths import get_all_paths

    table = create_table("Paths", [("Name", "cyan"), ("Path", ""), ("Exists", "dim")])
    for name, value in get_all_paths().items():
        table.add_row(name, str(value), "yes" if value.exists() else "no")
    console.print(table)
