"""Schedule inspection commands."""

from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated

import typer

from supabackup.cli.console import (
    console,
    create_table,
    dim,
    error,
    load_config_or_exit,
    success,
    warning,
)


def _format_countdown(next_fire: datetime | None) -> str:
    """Format a countdown string for the next fire time."""
    if next_fire is None:
        return "[dim]?[/dim]"

    now = datetime.now(UTC)
    if next_fire <= now:
        return "[green]now[/green]"

    delta = next_fire - now
    total_seconds = int(delta.total_seconds())

    if total_seconds < 60:
        return f"in {total_seconds}s"

    total_minutes = total_seconds // 60
    if total_minutes < 60:
        return f"in {total_minutes}m"

    hours = total_minutes // 60
    minutes = total_minutes % 60
    if hours < 24:
        if minutes:
            return f"in {hours}h {minutes}m"
        return f"in {hours}h"

    days = hours // 24
    hours = hours % 24
    if hours:
        return f"in {days}d {hours}h"
    return f"in {days}d"


def register(app: typer.Typer) -> None:
    """Register the schedule command."""

    @app.command()
    def schedule(
        ctx: typer.Context,
        action: Annotated[
            str | None,
            typer.Argument(help="Action: list, check"),
        ] = None,
        schedule_file: Annotated[
            Path | None,
            typer.Option("--file", "-f", help="Schedule file (default: /app/crontab)"),
        ] = None,
        config_path: Annotated[
            Path | None,
            typer.Option("--config", "-c", help="Path to configuration file"),
        ] = None,
    ) -> None:
        """Inspect the schedule file.

        Examples:
            supabackup schedule list     # Entries with their next fire time
            supabackup schedule check    # Validate every line
        """
        if action is None:
            typer.echo(ctx.get_help())
            raise typer.Exit(0)

        config = load_config_or_exit(config_path)
        path = schedule_file or config.supervisor.schedule_file

        if action == "list":
            _schedule_list(path, config.supervisor.timezone)
        elif action == "check":
            _schedule_check(path)
        else:
            error(f"Unknown action: {action}")
            console.print("Valid actions: list, check")
            raise typer.Exit(1)


def _read_crontab(path: Path):
    from supabackup.scheduling.types import Crontab

    try:
        return Crontab.from_file(path)
    except FileNotFoundError as e:
        error(f"Schedule file not found: {path}")
        raise typer.Exit(1) from e


def _schedule_list(path: Path, timezone: str) -> None:
    """List schedule entries."""
    crontab = _read_crontab(path)

    if not crontab.entries:
        warning("No scheduled jobs found")
        return

    table = create_table(
        str(path),
        [
            ("Line", "dim"),
            ("Schedule", "cyan"),
            ("Command", ""),
            ("Next Fire", ""),
        ],
    )
    for entry in crontab.entries:
        command = entry.command[:50] + "..." if len(entry.command) > 50 else entry.command
        next_fire = (
            "at boot" if entry.is_reboot else _format_countdown(entry.next_fire_time(timezone))
        )
        table.add_row(str(entry.line_number), entry.schedule, command, next_fire)

    console.print(table)
    if crontab.environment:
        dim(f"Environment: {', '.join(sorted(crontab.environment))}")
    dim(f"Total: {len(crontab)} job(s)")


def _schedule_check(path: Path) -> None:
    """Validate the schedule file."""
    crontab = _read_crontab(path)

    if crontab.invalid_lines:
        lines = ", ".join(str(n) for n in crontab.invalid_lines)
        error(f"Invalid schedule lines: {lines}")
        raise typer.Exit(1)

    success(f"Schedule is valid ({len(crontab)} job(s))")
