"""Tests for the restore driver."""

from pathlib import Path

import pytest

from supabackup.backup.artifacts import ArtifactKind
from supabackup.backup.restore import RestoreDriver, RestoreSelection
from supabackup.errors import (
    ArtifactNotFoundError,
    ContainerNotFoundError,
    ExecutionError,
    ToolNotFoundError,
)


@pytest.fixture(autouse=True)
def workdir(tmp_path, monkeypatch):
    """Run from an empty directory so default file names are absent."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _dump(directory: Path, name: str) -> Path:
    path = directory / name
    path.write_text("SELECT 1;\n")
    return path


def _execs(runtime) -> list[str]:
    return [Path(c[1][-1]).name for c in runtime.calls if c[0] == "exec"]


class TestSelection:
    def test_positional_overrides_options(self, workdir):
        selection = RestoreSelection.from_arguments(
            schema=Path("opt_schema.sql"),
            data=Path("opt_data.sql"),
            positional=[Path("pos_schema.sql"), Path("pos_roles.sql")],
        )

        assert selection.paths[ArtifactKind.SCHEMA] == Path("pos_schema.sql")
        assert selection.paths[ArtifactKind.ROLES] == Path("pos_roles.sql")
        assert selection.paths[ArtifactKind.DATA] == Path("opt_data.sql")
        assert selection.explicit == set(ArtifactKind)

    def test_defaults_skipped_when_absent(self, workdir):
        _dump(workdir, "roles.sql")

        files = RestoreSelection().resolve()

        assert files == [(ArtifactKind.ROLES, Path("roles.sql"))]

    def test_resolve_orders_schema_roles_data(self, workdir):
        for name in ("data.sql", "roles.sql", "schema.sql"):
            _dump(workdir, name)

        kinds = [kind for kind, _ in RestoreSelection().resolve()]

        assert kinds == [ArtifactKind.SCHEMA, ArtifactKind.ROLES, ArtifactKind.DATA]

    def test_explicit_missing_file(self, workdir):
        selection = RestoreSelection.from_arguments(data=workdir / "missing.sql")

        with pytest.raises(ArtifactNotFoundError) as exc_info:
            selection.resolve()

        assert exc_info.value.path == workdir / "missing.sql"
        assert str(exc_info.value).startswith("Data file not found")

    def test_nothing_found(self):
        with pytest.raises(ArtifactNotFoundError) as exc_info:
            RestoreSelection().resolve()

        assert exc_info.value.path is None
        assert str(exc_info.value) == "No backup files found!"


class TestRestoreDriver:
    async def test_data_only(self, workdir, make_runtime):
        data = _dump(workdir, "backup_data.sql")
        runtime = make_runtime()
        driver = RestoreDriver("supabase-db", runtime=runtime)

        steps = await driver.run(RestoreSelection.from_arguments(data=data))

        assert [s.kind for s in steps] == [ArtifactKind.DATA]
        assert _execs(runtime) == ["backup_data.sql"]
        assert ("copy", "backup_data.sql", "/tmp/backup_data.sql") in runtime.calls

    async def test_applies_schema_roles_data(self, workdir, make_runtime):
        paths = [_dump(workdir, f"b_{name}.sql") for name in ("schema", "roles", "data")]
        runtime = make_runtime()
        driver = RestoreDriver("supabase-db", runtime=runtime)

        await driver.run(RestoreSelection.from_arguments(positional=paths))

        assert _execs(runtime) == ["b_schema.sql", "b_roles.sql", "b_data.sql"]

    async def test_psql_invocation(self, workdir, make_runtime):
        data = _dump(workdir, "data.sql")
        runtime = make_runtime()
        driver = RestoreDriver("supabase-db", database="app", user="admin", runtime=runtime)

        await driver.run(RestoreSelection.from_arguments(data=data))

        execs = [c[1] for c in runtime.calls if c[0] == "exec"]
        assert execs == [("psql", "-U", "admin", "-d", "app", "-f", "/tmp/data.sql")]

    async def test_schema_failure_stops_before_data(self, workdir, make_runtime):
        schema = _dump(workdir, "schema.sql")
        data = _dump(workdir, "data.sql")
        runtime = make_runtime(exec_results={"schema.sql": (3, "", "ERROR: boom")})
        driver = RestoreDriver("supabase-db", runtime=runtime)

        with pytest.raises(ExecutionError) as exc_info:
            await driver.run(RestoreSelection.from_arguments(schema=schema, data=data))

        assert str(exc_info.value) == "Failed to execute Schema"
        assert exc_info.value.output == "ERROR: boom"
        assert _execs(runtime) == ["schema.sql"]
        assert ("rm", "/tmp/schema.sql") in runtime.calls

    async def test_copy_removed_after_success(self, workdir, make_runtime):
        data = _dump(workdir, "data.sql")
        runtime = make_runtime()

        await RestoreDriver("supabase-db", runtime=runtime).run(
            RestoreSelection.from_arguments(data=data)
        )

        assert runtime.calls[-2:] == [("rm", "/tmp/data.sql"), ("close",)]

    async def test_exec_failure_reports_file(self, workdir, make_runtime):
        data = _dump(workdir, "data.sql")
        runtime = make_runtime(
            exec_results={
                "data.sql": ExecutionError(
                    "Failed to run psql in container supabase-db",
                    output="container stopped",
                )
            }
        )
        driver = RestoreDriver("supabase-db", runtime=runtime)

        with pytest.raises(ExecutionError) as exc_info:
            await driver.run(RestoreSelection.from_arguments(data=data))

        assert str(exc_info.value) == "Failed to execute Data"
        assert exc_info.value.path == data
        assert exc_info.value.output == "container stopped"
        assert ("rm", "/tmp/data.sql") in runtime.calls
        assert runtime.calls[-1] == ("close",)

    async def test_missing_explicit_file_copies_nothing(self, workdir, make_runtime):
        _dump(workdir, "schema.sql")
        runtime = make_runtime()
        driver = RestoreDriver("supabase-db", runtime=runtime)
        selection = RestoreSelection.from_arguments(data=workdir / "nope.sql")

        with pytest.raises(ArtifactNotFoundError):
            await driver.run(selection)

        assert not any(c[0] in ("copy", "exec") for c in runtime.calls)

    async def test_container_not_running(self, workdir, make_runtime):
        _dump(workdir, "data.sql")
        runtime = make_runtime(running=["other-db"])
        driver = RestoreDriver("supabase-db", runtime=runtime)

        with pytest.raises(ContainerNotFoundError) as exc_info:
            await driver.run(RestoreSelection())

        assert exc_info.value.available == ["other-db"]
        assert _execs(runtime) == []
        assert runtime.calls[-1] == ("close",)

    async def test_docker_unavailable(self, make_runtime):
        driver = RestoreDriver("supabase-db", runtime=make_runtime(available=False))

        with pytest.raises(ToolNotFoundError):
            await driver.run(RestoreSelection())
