"""Shared test fixtures and fakes."""

from collections.abc import Iterable
from pathlib import Path

import pytest

from supabackup.config.paths import get_supabackup_home
from supabackup.errors import ContainerNotFoundError, ExecutionError, ReloadError
from supabackup.scheduling.daemon import SchedulerDaemon
from supabackup.scheduling.types import Crontab

ENV_VARS = [
    "DATABASE_URL",
    "POSTGRES_HOST",
    "POSTGRES_PORT",
    "POSTGRES_DB",
    "POSTGRES_USER",
    "POSTGRES_PASSWORD",
    "SUPABASE_DB_CONTAINER",
    "SUPABACKUP_CONFIG",
    "SUPABACKUP_SCHEDULE_FILE",
    "SUPABACKUP_FINGERPRINT_FILE",
    "SUPABACKUP_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep tests away from the real environment and home directory."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SUPABACKUP_HOME", str(tmp_path / "home"))
    get_supabackup_home.cache_clear()
    yield
    get_supabackup_home.cache_clear()


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1"})


# =============================================================================
# Scheduler fakes
# =============================================================================


class FakeDaemon(SchedulerDaemon):
    """Records install/start/stop/reload calls in order."""

    def __init__(self, fail_install: bool = False, fail_reload: bool = False):
        super().__init__()
        self.fail_install = fail_install
        self.fail_reload = fail_reload
        self.calls: list[str] = []
        self._running = False

    @property
    def name(self) -> str:
        return "fake"

    @property
    def is_running(self) -> bool:
        return self._running

    async def install(self, crontab: Crontab) -> None:
        if self.fail_install:
            raise ExecutionError("crontab install failed")
        self.calls.append("install")
        self._crontab = crontab

    async def start(self) -> None:
        self.calls.append("start")
        self._running = True

    async def stop(self) -> None:
        self.calls.append("stop")
        self._running = False

    def request_reload(self) -> None:
        if self.fail_reload:
            raise ReloadError("crond is not running")
        self.calls.append("reload")


@pytest.fixture
def fake_daemon() -> FakeDaemon:
    return FakeDaemon()


@pytest.fixture
def make_daemon():
    return FakeDaemon


# =============================================================================
# Container runtime fake
# =============================================================================


class FakeRuntime:
    """Stands in for ContainerRuntime, logging every call."""

    def __init__(
        self,
        running: Iterable[str] = ("supabase-db",),
        ips: dict[str, str] | None = None,
        available: bool = True,
        exec_results: dict[str, tuple[int, str, str] | Exception] | None = None,
        calls: list[tuple] | None = None,
    ):
        self.running = list(running)
        self.ips = ips or {}
        self.available = available
        self.exec_results = exec_results or {}
        self.calls = calls if calls is not None else []

    async def is_available(self) -> bool:
        self.calls.append(("is_available",))
        return self.available

    async def list_running(self) -> list[str]:
        return list(self.running)

    async def ensure_running(self, name: str):
        self.calls.append(("ensure_running", name))
        if name not in self.running:
            raise ContainerNotFoundError(name, available=list(self.running))
        return object()

    async def resolve_ip(self, name: str) -> str | None:
        self.calls.append(("resolve_ip", name))
        return self.ips.get(name)

    async def copy_into(self, name: str, source: Path, destination: str) -> None:
        self.calls.append(("copy", source.name, destination))

    async def exec_command(self, name, command):
        self.calls.append(("exec", tuple(command)))
        result = self.exec_results.get(Path(command[-1]).name, (0, "", ""))
        if isinstance(result, Exception):
            raise result
        return result

    async def remove_file(self, name: str, path: str) -> None:
        self.calls.append(("rm", path))

    def close(self) -> None:
        self.calls.append(("close",))


@pytest.fixture
def make_runtime():
    return FakeRuntime
