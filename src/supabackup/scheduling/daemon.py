"""Scheduler daemon backends.

The supervisor talks to the daemon through a small interface: install a
schedule, start, stop, and request a reload. Reload requests are
fire-and-forget; they never wait for the daemon to acknowledge.

Backends:
- crond: the system cron daemon (busybox/cronie), installed via `crontab`
- async: an in-process asyncio runner built on croniter
"""

import asyncio
import logging
import os
import signal
from abc import ABC, abstractmethod
from datetime import UTC, datetime

from supabackup.config.models import SupervisorConfig
from supabackup.errors import ExecutionError, ReloadError, ToolNotFoundError
from supabackup.scheduling.types import Crontab, CrontabEntry

logger = logging.getLogger(__name__)

STOP_TIMEOUT_SECONDS = 5.0


class SchedulerDaemon(ABC):
    """Abstract interface for scheduler daemons."""

    def __init__(self) -> None:
        self._crontab = Crontab.empty()

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name (e.g., 'crond', 'async')."""
        ...

    @property
    @abstractmethod
    def is_running(self) -> bool: ...

    @property
    def crontab(self) -> Crontab:
        return self._crontab

    def active_entries(self) -> list[CrontabEntry]:
        """Entries of the most recently installed schedule, in file order."""
        return list(self._crontab.entries)

    @abstractmethod
    async def install(self, crontab: Crontab) -> None:
        """Make `crontab` the daemon's schedule.

        Raises:
            ExecutionError: If the schedule could not be installed.
        """
        ...

    @abstractmethod
    async def start(self) -> None: ...

    @abstractmethod
    async def stop(self) -> None: ...

    @abstractmethod
    def request_reload(self) -> None:
        """Ask the daemon to pick up the installed schedule.

        Returns immediately without waiting for the daemon.

        Raises:
            ReloadError: If the request could not be delivered.
        """
        ...


class CrondDaemon(SchedulerDaemon):
    """Drive the system cron daemon.

    Schedules are installed with `crontab -` and crond runs in the
    foreground as a child process; reloads are SIGHUP.
    """

    def __init__(
        self,
        command: list[str] | None = None,
        crontab_command: str = "crontab",
    ):
        super().__init__()
        self._command = command or ["crond", "-f", "-l", "2"]
        self._crontab_command = crontab_command
        self._proc: asyncio.subprocess.Process | None = None

    @property
    def name(self) -> str:
        return "crond"

    @property
    def is_running(self) -> bool:
        return self._proc is not None and self._proc.returncode is None

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc else None

    async def install(self, crontab: Crontab) -> None:
        try:
            proc = await asyncio.create_subprocess_exec(
                self._crontab_command,
                "-",
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise ToolNotFoundError(self._crontab_command) from e

        _, stderr = await proc.communicate(crontab.text.encode())
        if proc.returncode != 0:
            raise ExecutionError(
                "crontab install failed",
                output=stderr.decode("utf-8", errors="replace"),
            )
        self._crontab = crontab

    async def start(self) -> None:
        if self.is_running:
            return
        try:
            self._proc = await asyncio.create_subprocess_exec(*self._command)
        except FileNotFoundError as e:
            raise ToolNotFoundError(self._command[0]) from e
        logger.info("scheduler_started", extra={"process.pid": self._proc.pid})

    async def stop(self) -> None:
        proc = self._proc
        if proc is None or proc.returncode is not None:
            return
        proc.terminate()
        try:
            await asyncio.wait_for(proc.wait(), timeout=STOP_TIMEOUT_SECONDS)
        except TimeoutError:
            proc.kill()
            await proc.wait()
        logger.info("scheduler_stopped")

    def request_reload(self) -> None:
        proc = self._proc
        if proc is None or proc.returncode is not None:
            raise ReloadError("crond is not running")
        try:
            proc.send_signal(signal.SIGHUP)
        except ProcessLookupError as e:
            raise ReloadError("crond is not running") from e


class AsyncCronDaemon(SchedulerDaemon):
    """Run schedule entries in-process.

    Each entry's command runs through the shell when its cron pattern fires,
    with the crontab's environment assignments applied. A reload request
    recomputes every entry's next fire time from now.
    """

    def __init__(self, timezone: str = "UTC", idle_interval: float = 60.0):
        super().__init__()
        self._timezone = timezone
        self._idle_interval = idle_interval
        self._running = False
        self._task: asyncio.Task | None = None
        self._reload = asyncio.Event()
        self._next_fires: list[tuple[CrontabEntry, datetime]] = []
        self._jobs: set[asyncio.Task] = set()
        self.reload_count = 0

    @property
    def name(self) -> str:
        return "async"

    @property
    def is_running(self) -> bool:
        return self._running

    async def install(self, crontab: Crontab) -> None:
        self._crontab = crontab

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._reset_schedule()
        for entry in self._crontab.entries:
            if entry.is_reboot:
                self._launch(entry)
        self._task = asyncio.create_task(self._run_loop())
        logger.info("scheduler_started", extra={"scheduler.backend": self.name})

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("scheduler_stopped")

    def request_reload(self) -> None:
        if not self._running:
            raise ReloadError("scheduler is not running")
        self._reload.set()

    def next_fire_times(self) -> list[tuple[CrontabEntry, datetime]]:
        return list(self._next_fires)

    def _reset_schedule(self, now: datetime | None = None) -> None:
        now = now or datetime.now(UTC)
        self._next_fires = []
        for entry in self._crontab.entries:
            fire_at = entry.next_fire_time(self._timezone, base=now)
            if fire_at is not None:
                self._next_fires.append((entry, fire_at))

    async def _run_loop(self) -> None:
        while self._running:
            if self._reload.is_set():
                self._reload.clear()
                self.reload_count += 1
                self._reset_schedule()
                logger.info(
                    "scheduler_reloaded",
                    extra={"schedule.entries": len(self._crontab.entries)},
                )

            try:
                self._fire_due(datetime.now(UTC))
            except Exception as e:
                logger.error("scheduler_tick_error", extra={"error.message": str(e)})

            timeout = self._idle_interval
            if self._next_fires:
                soonest = min(fire_at for _, fire_at in self._next_fires)
                timeout = max(0.0, (soonest - datetime.now(UTC)).total_seconds())
            try:
                await asyncio.wait_for(self._reload.wait(), timeout=timeout)
            except TimeoutError:
                pass

    def _fire_due(self, now: datetime) -> None:
        updated: list[tuple[CrontabEntry, datetime]] = []
        for entry, fire_at in self._next_fires:
            if fire_at <= now:
                self._launch(entry)
                next_fire = entry.next_fire_time(self._timezone, base=now)
                if next_fire is None:
                    continue
                fire_at = next_fire
            updated.append((entry, fire_at))
        self._next_fires = updated

    def _launch(self, entry: CrontabEntry) -> None:
        task = asyncio.create_task(self._run_job(entry))
        self._jobs.add(task)
        task.add_done_callback(self._jobs.discard)

    async def _run_job(self, entry: CrontabEntry) -> None:
        logger.info(
            "scheduled_job_started",
            extra={"schedule.cron": entry.schedule, "schedule.line": entry.line_number},
        )
        env = {**os.environ, **entry.environment}
        try:
            proc = await asyncio.create_subprocess_shell(entry.command, env=env)
            exit_code = await proc.wait()
        except OSError as e:
            logger.error(
                "scheduled_job_error",
                extra={"schedule.line": entry.line_number, "error.message": str(e)},
            )
            return
        log = logger.info if exit_code == 0 else logger.error
        log(
            "scheduled_job_finished",
            extra={"schedule.line": entry.line_number, "process.exit_code": exit_code},
        )


def create_daemon(config: SupervisorConfig) -> SchedulerDaemon:
    """Create the scheduler daemon selected in the config."""
    if config.daemon == "async":
        return AsyncCronDaemon(timezone=config.timezone)
    return CrondDaemon(command=list(config.crond_command))
