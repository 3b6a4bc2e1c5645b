"""Restore command."""

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from supabackup.cli.console import (
    console,
    error,
    fail,
    info,
    load_config_or_exit,
    success,
)
from supabackup.errors import ArtifactNotFoundError, SupabackupError


def _print_no_files_hint() -> None:
    console.print()
    console.print("Please specify at least one backup file:")
    console.print("  supabackup restore --schema schema.sql")
    console.print("  supabackup restore --roles roles.sql")
    console.print("  supabackup restore --data data.sql")
    console.print("  supabackup restore schema.sql roles.sql data.sql")


def register(app: typer.Typer) -> None:
    """Register the restore command."""

    @app.command()
    def restore(
        files: Annotated[
            list[Path] | None,
            typer.Argument(
                help="Positional SCHEMA_FILE ROLES_FILE DATA_FILE",
                show_default=False,
            ),
        ] = None,
        schema: Annotated[
            Path | None,
            typer.Option("--schema", "-s", help="Schema SQL file (default: schema.sql)"),
        ] = None,
        roles: Annotated[
            Path | None,
            typer.Option("--roles", "-r", help="Roles SQL file (default: roles.sql)"),
        ] = None,
        data: Annotated[
            Path | None,
            typer.Option("--data", "-d", help="Data SQL file (default: data.sql)"),
        ] = None,
        container: Annotated[
            str | None,
            typer.Option(
                "--container",
                "-c",
                help="Docker container name (default: SUPABASE_DB_CONTAINER or supabase-db)",
            ),
        ] = None,
        latest: Annotated[
            bool,
            typer.Option("--latest", help="Restore the newest backup in the dump directory"),
        ] = False,
        config_path: Annotated[
            Path | None,
            typer.Option("--config", help="Path to configuration file"),
        ] = None,
    ) -> None:
        """Restore roles, schema and data from SQL backup files.

        Files are applied in the order schema, roles, data. Files given
        explicitly must exist; default file names are skipped when absent.

        Examples:
            supabackup restore
            supabackup restore dump/backup_2025-11-20_145630_schema.sql dump/backup_2025-11-20_145630_roles.sql dump/backup_2025-11-20_145630_data.sql
            supabackup restore --schema dump/backup_schema.sql --data dump/backup_data.sql
            supabackup restore --latest
        """
        from supabackup.backup.artifacts import ArtifactKind, find_artifact_sets
        from supabackup.backup.restore import RestoreDriver, RestoreSelection

        config = load_config_or_exit(config_path)
        files = files or []
        if len(files) > 3:
            error("At most three positional files (schema, roles, data) are accepted")
            raise typer.Exit(1)

        if latest:
            sets = find_artifact_sets(config.backup.dump_dir)
            if not sets:
                error(f"No backups found in {config.backup.dump_dir}")
                raise typer.Exit(1)
            newest = sets[0]
            info(f"Using backup: {newest.timestamp}")
            schema = schema or newest.path(ArtifactKind.SCHEMA)
            roles = roles or newest.path(ArtifactKind.ROLES)
            data = data or newest.path(ArtifactKind.DATA)

        selection = RestoreSelection.from_arguments(
            schema=schema, roles=roles, data=data, positional=files
        )
        driver = RestoreDriver(
            container or config.database.container,
            database=config.database.name,
            user=config.database.user,
        )

        info(f"Using container: {driver.container}")
        info(f"Database: {config.database.name}, User: {config.database.user}")

        try:
            steps = asyncio.run(driver.run(selection))
        except ArtifactNotFoundError as e:
            error(str(e))
            if e.path is None:
                _print_no_files_hint()
            raise typer.Exit(1) from e
        except SupabackupError as e:
            raise fail(e) from e

        for step in steps:
            success(f"{step.kind.label} restored from {step.path}")
        success("Database restore completed successfully!")
