"""Supervisor command (container entrypoint)."""

import asyncio
from pathlib import Path
from typing import Annotated, Literal

import typer

from supabackup.cli.console import fail, load_config_or_exit
from supabackup.errors import SupabackupError


def register(app: typer.Typer) -> None:
    """Register the supervise command."""

    @app.command(
        context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
    )
    def supervise(
        command: Annotated[
            list[str] | None,
            typer.Argument(help="Command to run in the foreground", show_default=False),
        ] = None,
        schedule_file: Annotated[
            Path | None,
            typer.Option("--schedule-file", help="Schedule (crontab) file to watch"),
        ] = None,
        poll_interval: Annotated[
            float | None,
            typer.Option("--poll-interval", help="Seconds between change checks"),
        ] = None,
        daemon: Annotated[
            str | None,
            typer.Option("--daemon", help="Scheduler backend: crond or async"),
        ] = None,
        config_path: Annotated[
            Path | None,
            typer.Option("--config", help="Path to configuration file"),
        ] = None,
    ) -> None:
        """Install the schedule, keep it in sync, and run COMMAND.

        The schedule file is checked for changes every poll interval;
        changes are reinstalled and the scheduler is asked to reload. The
        exit code is COMMAND's exit code.

        Examples:
            supabackup supervise -- node server.js
            supabackup supervise --daemon async
        """
        from supabackup.supervisor import Supervisor

        config = load_config_or_exit(config_path)
        updates: dict[str, object] = {}
        if schedule_file is not None:
            updates["schedule_file"] = schedule_file
        if poll_interval is not None:
            updates["poll_interval"] = poll_interval
        if daemon is not None:
            if daemon not in ("crond", "async"):
                raise typer.BadParameter("must be 'crond' or 'async'", param_hint="--daemon")
            backend: Literal["crond", "async"] = "async" if daemon == "async" else "crond"
            updates["daemon"] = backend
        supervisor_config = config.supervisor.model_copy(update=updates)

        async def _run() -> int:
            return await Supervisor(supervisor_config).run(command or [])

        try:
            exit_code = asyncio.run(_run())
        except SupabackupError as e:
            raise fail(e) from e
        raise typer.Exit(exit_code)
