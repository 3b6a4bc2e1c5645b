"""Main CLI application."""

from typing import Annotated

import typer

from supabackup.cli import commands

app = typer.Typer(
    name="supabackup",
    help="Scheduled backup and restore for Supabase databases",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-l",
            help="Log level (default: SUPABACKUP_LOG_LEVEL or INFO)",
        ),
    ] = None,
    log_file: Annotated[
        bool,
        typer.Option("--log-file", help="Also write JSONL logs to the logs directory"),
    ] = False,
) -> None:
    from supabackup.logging import configure_logging

    configure_logging(level=log_level, log_to_file=log_file)


commands.backup.register(app)
commands.restore.register(app)
commands.supervise.register(app)
commands.schedule.register(app)
commands.config.register(app)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
