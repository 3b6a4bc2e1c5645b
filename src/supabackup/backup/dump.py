"""Backup driver: produce roles, schema and data dumps via the Supabase CLI."""

from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from supabackup.backup.artifacts import BACKUP_ORDER, ArtifactKind, ArtifactSet
from supabackup.backup.url import DatabaseURL
from supabackup.config.models import DEFAULT_USER, BackupConfig, SupabackupConfig
from supabackup.container.runtime import ContainerRuntime
from supabackup.errors import ConfigError, ExecutionError, ToolNotFoundError

logger = logging.getLogger(__name__)

# Extra `supabase db dump` arguments per artifact
DUMP_ARGS: dict[ArtifactKind, list[str]] = {
    ArtifactKind.ROLES: ["--role-only"],
    ArtifactKind.SCHEMA: ["--debug"],
    ArtifactKind.DATA: ["--debug", "--data-only", "--use-copy"],
}

# Runs a command with inherited stdio and returns its exit code
CommandRunner = Callable[[list[str]], Awaitable[int]]

# Settings that must all be given before a URL is assembled from them
DISCRETE_URL_FIELDS = ("host", "port", "name", "password")


async def run_command(command: list[str]) -> int:
    """Run a command, streaming its output to ours."""
    try:
        proc = await asyncio.create_subprocess_exec(*command)
    except FileNotFoundError as e:
        raise ToolNotFoundError(command[0]) from e
    return await proc.wait()


@dataclass
class ArtifactResult:
    """Outcome of one dump."""

    kind: ArtifactKind
    path: Path
    success: bool
    exit_code: int = 0


@dataclass
class BackupResult:
    """Outcome of a backup run.

    Dumps stop at the first failure, so `results` may hold fewer than three
    entries. A partial backup is a failed backup.
    """

    artifacts: ArtifactSet
    url: DatabaseURL
    results: list[ArtifactResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.results) == len(BACKUP_ORDER) and all(
            r.success for r in self.results
        )

    @property
    def failed(self) -> ArtifactResult | None:
        return next((r for r in self.results if not r.success), None)

    def raise_for_failure(self) -> None:
        failed = self.failed
        if failed is not None:
            raise ExecutionError(
                f"Failed to create {failed.kind.value} dump", path=failed.path
            )


def resolve_database_url(
    argument: str | None, config: SupabackupConfig
) -> tuple[str, str]:
    """Pick the connection string to back up.

    Precedence: explicit argument, DATABASE_URL, then the discrete
    POSTGRES_HOST, POSTGRES_PORT, POSTGRES_DB and POSTGRES_PASSWORD settings
    when all four are given (from the environment or the config file). The
    assembled URL always connects as `postgres`.

    Returns:
        Tuple of (url, source description).

    Raises:
        ConfigError: If no connection information is available.
    """
    if argument:
        return argument, "argument"
    if config.database.url is not None and config.database.url.get_secret_value():
        return config.database.url.get_secret_value(), "DATABASE_URL"
    database = config.database
    if all(name in database.model_fields_set for name in DISCRETE_URL_FIELDS) and (
        database.password is not None and database.password.get_secret_value()
    ):
        return database.build_url(user=DEFAULT_USER), "POSTGRES_* environment variables"
    raise ConfigError("Database URL not provided!")


class BackupDriver:
    """Produce a timestamped set of dumps for one database.

    Example:
        driver = BackupDriver(config.backup)
        result = await driver.run("postgresql://postgres:pw@db:5432/postgres")
        result.raise_for_failure()
    """

    def __init__(
        self,
        config: BackupConfig | None = None,
        runtime: ContainerRuntime | None = None,
        runner: CommandRunner | None = None,
    ):
        self._config = config or BackupConfig()
        self._runtime = runtime or ContainerRuntime()
        self._runner = runner or run_command

    async def resolve_host(self, url: DatabaseURL) -> DatabaseURL:
        """Replace a Docker container hostname with the container's IP.

        The Supabase CLI runs pg_dump in a throwaway container that cannot
        use Docker's internal DNS, so container names must become addresses.
        IP literals and local hostnames are returned untouched.
        """
        if url.is_ip_address or url.host in self._config.skip_resolve_hosts:
            return url

        if not await self._runtime.is_available():
            logger.warning("Docker not found, cannot resolve container IP")
            return url

        candidates = [url.host, f"{self._config.container_prefix}{url.host}"]
        for name in candidates:
            address = await self._runtime.resolve_ip(name)
            if address:
                logger.info(
                    "container_host_resolved",
                    extra={"container.name": url.host, "container.ip": address},
                )
                return url.with_host(address)

        logger.warning(
            "container_host_unresolved", extra={"container.name": url.host}
        )
        return url

    def _dump_command(self, url: DatabaseURL, path: Path, kind: ArtifactKind) -> list[str]:
        return [
            *self._config.cli_command,
            "db",
            "dump",
            "--db-url",
            url.render(),
            "--file",
            str(path),
            *DUMP_ARGS[kind],
        ]

    def _check_cli(self) -> None:
        tool = self._config.cli_command[0]
        if shutil.which(tool) is None:
            raise ToolNotFoundError(tool, "Please install Node.js and npm.")

    async def run(
        self,
        url: str | DatabaseURL,
        artifacts: ArtifactSet | None = None,
    ) -> BackupResult:
        """Dump roles, schema and data, stopping at the first failure.

        Raises:
            ConfigError: If the URL cannot be parsed.
            ToolNotFoundError: If the Supabase CLI launcher is missing.
        """
        parsed = url if isinstance(url, DatabaseURL) else DatabaseURL.parse(url)
        artifacts = artifacts or ArtifactSet.create(self._config.dump_dir)

        if not artifacts.directory.is_dir():
            logger.info(
                "dump_dir_created", extra={"file.path": str(artifacts.directory)}
            )
            artifacts.directory.mkdir(parents=True, exist_ok=True)

        logger.info("backup_started", extra={"backup.timestamp": artifacts.timestamp})
        try:
            resolved = await self.resolve_host(parsed)
        finally:
            # Docker is only needed for host resolution
            self._runtime.close()
        logger.info(f"Database URL: {resolved.masked()}")

        self._check_cli()

        result = BackupResult(artifacts=artifacts, url=resolved)
        for kind in BACKUP_ORDER:
            path = artifacts.path(kind)
            logger.info(f"Creating {kind.value} dump...")
            exit_code = await self._runner(self._dump_command(resolved, path, kind))
            ok = exit_code == 0
            result.results.append(
                ArtifactResult(kind=kind, path=path, success=ok, exit_code=exit_code)
            )
            if not ok:
                logger.error(
                    "dump_failed",
                    extra={
                        "backup.artifact": kind.value,
                        "process.exit_code": exit_code,
                    },
                )
                break
            logger.info(
                "dump_created",
                extra={"backup.artifact": kind.value, "file.path": str(path)},
            )

        if result.success:
            logger.info(
                "backup_completed", extra={"backup.timestamp": artifacts.timestamp}
            )
        return result
