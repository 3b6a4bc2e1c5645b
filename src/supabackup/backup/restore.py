"""Restore driver: apply schema, roles and data dumps to a database container."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from supabackup.backup.artifacts import RESTORE_ORDER, ArtifactKind, format_size
from supabackup.container.runtime import ContainerRuntime
from supabackup.errors import ArtifactNotFoundError, ExecutionError, ToolNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_FILES: dict[ArtifactKind, Path] = {
    ArtifactKind.SCHEMA: Path("schema.sql"),
    ArtifactKind.ROLES: Path("roles.sql"),
    ArtifactKind.DATA: Path("data.sql"),
}

# Positional arguments map onto artifacts in this order
POSITIONAL_ORDER = (ArtifactKind.SCHEMA, ArtifactKind.ROLES, ArtifactKind.DATA)

CONTAINER_TMP_DIR = "/tmp"  # noqa: S108


@dataclass
class RestoreSelection:
    """Which dump files to restore and which of them the caller asked for.

    Files the caller named explicitly must exist. Files left at their
    default name are restored when present and skipped otherwise.
    """

    paths: dict[ArtifactKind, Path] = field(
        default_factory=lambda: dict(DEFAULT_FILES)
    )
    explicit: set[ArtifactKind] = field(default_factory=set)

    @classmethod
    def from_arguments(
        cls,
        schema: Path | None = None,
        roles: Path | None = None,
        data: Path | None = None,
        positional: Sequence[Path] = (),
    ) -> RestoreSelection:
        """Build a selection from named options and positional paths.

        Positional paths (schema, roles, data) win over named options.
        """
        selection = cls()
        for kind, path in (
            (ArtifactKind.SCHEMA, schema),
            (ArtifactKind.ROLES, roles),
            (ArtifactKind.DATA, data),
        ):
            if path is not None:
                selection.set(kind, path)
        for kind, path in zip(POSITIONAL_ORDER, positional, strict=False):
            selection.set(kind, path)
        return selection

    def set(self, kind: ArtifactKind, path: Path) -> None:
        self.paths[kind] = Path(path)
        self.explicit.add(kind)

    def resolve(self) -> list[tuple[ArtifactKind, Path]]:
        """Validate files and return them in restore order.

        Raises:
            ArtifactNotFoundError: If an explicitly requested file is missing,
                or if no file at all was found.
        """
        found: list[tuple[ArtifactKind, Path]] = []
        for kind in RESTORE_ORDER:
            path = self.paths[kind]
            if path.is_file():
                logger.info(
                    f"Found {kind.value} file: {path} "
                    f"({format_size(path.stat().st_size)})"
                )
                found.append((kind, path))
            elif kind in self.explicit:
                raise ArtifactNotFoundError(kind.value, path)

        if not found:
            raise ArtifactNotFoundError("backup")
        return found


@dataclass
class RestoreStep:
    """A dump file that was applied."""

    kind: ArtifactKind
    path: Path


class RestoreDriver:
    """Apply dump files to a running Postgres container with psql.

    Example:
        driver = RestoreDriver("supabase-db", database="postgres", user="postgres")
        await driver.run(RestoreSelection.from_arguments(data=Path("data.sql")))
    """

    def __init__(
        self,
        container: str,
        database: str = "postgres",
        user: str = "postgres",
        runtime: ContainerRuntime | None = None,
    ):
        self._container = container
        self._database = database
        self._user = user
        self._runtime = runtime or ContainerRuntime()

    @property
    def container(self) -> str:
        return self._container

    async def run(self, selection: RestoreSelection) -> list[RestoreStep]:
        """Restore the selected files in schema, roles, data order.

        Every file is validated before anything is copied. The first failure
        stops the sequence.

        Raises:
            ToolNotFoundError: If Docker is unavailable.
            ContainerNotFoundError: If the container is not running.
            ArtifactNotFoundError: If a requested file is missing.
            ExecutionError: If copying or executing a file fails.
        """
        try:
            return await self._restore(selection)
        finally:
            self._runtime.close()

    async def _restore(self, selection: RestoreSelection) -> list[RestoreStep]:
        if not await self._runtime.is_available():
            raise ToolNotFoundError("Docker", "Please install Docker.")
        await self._runtime.ensure_running(self._container)

        logger.info(
            "restore_target",
            extra={
                "container.name": self._container,
                "db.name": self._database,
                "db.user": self._user,
            },
        )

        files = selection.resolve()
        logger.info("restore_started", extra={"restore.files": len(files)})

        steps: list[RestoreStep] = []
        for kind, path in files:
            await self.apply(kind, path)
            steps.append(RestoreStep(kind=kind, path=path))

        logger.info("restore_completed")
        return steps

    async def apply(self, kind: ArtifactKind, path: Path) -> None:
        """Copy one file into the container, run it, and remove the copy."""
        container_path = f"{CONTAINER_TMP_DIR}/{path.name}"
        logger.info(f"Processing {kind.label}...")

        await self._runtime.copy_into(self._container, path, container_path)

        try:
            try:
                exit_code, _, stderr = await self._runtime.exec_command(
                    self._container,
                    [
                        "psql",
                        "-U",
                        self._user,
                        "-d",
                        self._database,
                        "-f",
                        container_path,
                    ],
                )
            except ExecutionError as e:
                raise ExecutionError(
                    f"Failed to execute {kind.label}", path=path, output=e.output
                ) from e
            if exit_code != 0:
                logger.error(
                    "restore_step_failed",
                    extra={
                        "restore.artifact": kind.value,
                        "process.exit_code": exit_code,
                    },
                )
                raise ExecutionError(
                    f"Failed to execute {kind.label}", path=path, output=stderr
                )
            logger.info(f"{kind.label} executed successfully")
        finally:
            await self._runtime.remove_file(self._container, container_path)
