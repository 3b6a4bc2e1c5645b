"""Tests for the scheduler daemon backends."""

import asyncio
import signal
from datetime import UTC, datetime

import pytest

from supabackup.config.models import SupervisorConfig
from supabackup.errors import ExecutionError, ReloadError, ToolNotFoundError
from supabackup.scheduling.daemon import AsyncCronDaemon, CrondDaemon, create_daemon
from supabackup.scheduling.types import Crontab


class _FakeProcess:
    def __init__(self, returncode: int | None = 0, stderr: bytes = b""):
        self.returncode = returncode
        self.pid = 4242
        self.stdin_data: bytes | None = None
        self.signals: list[int] = []
        self._stderr = stderr

    async def communicate(self, input: bytes | None = None):
        self.stdin_data = input
        return b"", self._stderr

    def send_signal(self, sig):
        self.signals.append(sig)

    def terminate(self):
        self.returncode = -signal.SIGTERM

    def kill(self):
        self.returncode = -signal.SIGKILL

    async def wait(self):
        return self.returncode


@pytest.fixture
def spawned(monkeypatch):
    """Replace subprocess creation in the daemon module, recording argv."""
    calls: list[tuple] = []

    def make(process: _FakeProcess):
        async def fake_exec(*args, **kwargs):
            calls.append(args)
            return process

        monkeypatch.setattr(
            "supabackup.scheduling.daemon.asyncio.create_subprocess_exec", fake_exec
        )
        return calls

    return make


class TestCrondDaemon:
    async def test_install_pipes_schedule_to_crontab(self, spawned):
        process = _FakeProcess(returncode=0)
        calls = spawned(process)
        crontab = Crontab.parse("0 2 * * * supabackup cron-backup\n")
        daemon = CrondDaemon()

        await daemon.install(crontab)

        assert calls == [("crontab", "-")]
        assert process.stdin_data == crontab.text.encode()
        assert daemon.active_entries() == crontab.entries

    async def test_install_failure_keeps_previous_schedule(self, spawned):
        spawned(_FakeProcess(returncode=1, stderr=b"bad minute"))
        daemon = CrondDaemon()

        with pytest.raises(ExecutionError) as exc_info:
            await daemon.install(Crontab.parse("0 2 * * * true\n"))

        assert exc_info.value.output == "bad minute"
        assert daemon.active_entries() == []

    async def test_install_without_crontab_binary(self, monkeypatch):
        async def missing(*args, **kwargs):
            raise FileNotFoundError(args[0])

        monkeypatch.setattr(
            "supabackup.scheduling.daemon.asyncio.create_subprocess_exec", missing
        )

        with pytest.raises(ToolNotFoundError):
            await CrondDaemon().install(Crontab.empty())

    async def test_start_runs_crond_in_foreground(self, spawned):
        calls = spawned(_FakeProcess(returncode=None))
        daemon = CrondDaemon()

        await daemon.start()

        assert calls == [("crond", "-f", "-l", "2")]
        assert daemon.is_running
        assert daemon.pid == 4242

    async def test_reload_sends_sighup(self, spawned):
        process = _FakeProcess(returncode=None)
        spawned(process)
        daemon = CrondDaemon()
        await daemon.start()

        daemon.request_reload()

        assert process.signals == [signal.SIGHUP]

    def test_reload_when_not_started(self):
        with pytest.raises(ReloadError):
            CrondDaemon().request_reload()

    async def test_stop_terminates(self, spawned):
        process = _FakeProcess(returncode=None)
        spawned(process)
        daemon = CrondDaemon()
        await daemon.start()

        await daemon.stop()

        assert not daemon.is_running
        with pytest.raises(ReloadError):
            daemon.request_reload()


class TestAsyncCronDaemon:
    async def test_install_keeps_file_order_and_duplicates(self):
        daemon = AsyncCronDaemon()
        crontab = Crontab.parse(
            "0 2 * * * supabackup cron-backup\n"
            "*/5 * * * * echo tick\n"
            "0 2 * * * supabackup cron-backup\n"
        )

        await daemon.install(crontab)

        assert [e.line_number for e in daemon.active_entries()] == [1, 2, 3]

    def test_reload_when_not_running(self):
        with pytest.raises(ReloadError):
            AsyncCronDaemon().request_reload()

    async def test_reload_is_consumed_by_loop(self):
        daemon = AsyncCronDaemon()
        await daemon.install(Crontab.parse("0 2 * * * true\n"))
        await daemon.start()
        try:
            daemon.request_reload()
            for _ in range(200):
                if daemon.reload_count:
                    break
                await asyncio.sleep(0.01)
            assert daemon.reload_count == 1
        finally:
            await daemon.stop()
        assert not daemon.is_running

    async def test_fire_due_launches_and_reschedules(self, monkeypatch):
        daemon = AsyncCronDaemon()
        await daemon.install(Crontab.parse("* * * * * true\n0 2 * * * true\n"))
        daemon._reset_schedule(now=datetime(2026, 1, 1, 0, 0, tzinfo=UTC))
        launched = []
        monkeypatch.setattr(daemon, "_launch", launched.append)

        daemon._fire_due(datetime(2026, 1, 1, 0, 1, 30, tzinfo=UTC))

        assert [e.line_number for e in launched] == [1]
        fires = {e.line_number: at for e, at in daemon.next_fire_times()}
        assert fires[1] == datetime(2026, 1, 1, 0, 2, tzinfo=UTC)
        assert fires[2] == datetime(2026, 1, 1, 2, 0, tzinfo=UTC)

    async def test_reboot_entries_run_at_start(self, monkeypatch):
        daemon = AsyncCronDaemon()
        await daemon.install(Crontab.parse("@reboot echo up\n0 2 * * * true\n"))
        launched = []
        monkeypatch.setattr(daemon, "_launch", launched.append)

        await daemon.start()
        await daemon.stop()

        assert [e.command for e in launched] == ["echo up"]
        assert all(not e.is_reboot for e, _ in daemon.next_fire_times())

    async def test_job_runs_with_crontab_environment(self, tmp_path):
        out = tmp_path / "out.txt"
        crontab = Crontab.parse(f'GREETING=hello\n* * * * * echo "$GREETING" > {out}\n')
        daemon = AsyncCronDaemon()

        await daemon._run_job(crontab.entries[0])

        assert out.read_text().strip() == "hello"


class TestCreateDaemon:
    def test_crond_by_default(self):
        assert isinstance(create_daemon(SupervisorConfig()), CrondDaemon)

    def test_async(self):
        daemon = create_daemon(SupervisorConfig(daemon="async", timezone="Europe/Berlin"))
        assert isinstance(daemon, AsyncCronDaemon)
        assert daemon.name == "async"
