"""Schedule supervisor: the container entrypoint.

Installs the schedule, starts the scheduler daemon and the schedule watcher
in the background, then runs the caller's command in the foreground and
exits with its exit code.
"""

from __future__ import annotations

import asyncio
import logging
import signal as signal_module
from collections.abc import Sequence
from enum import Enum

from supabackup.config.models import SupervisorConfig
from supabackup.scheduling.daemon import SchedulerDaemon, create_daemon
from supabackup.scheduling.fingerprint import FingerprintStore
from supabackup.scheduling.watcher import ScheduleWatcher

logger = logging.getLogger(__name__)

# Shell conventions for commands that cannot be run
EXIT_NOT_EXECUTABLE = 126
EXIT_NOT_FOUND = 127

FORWARDED_SIGNALS = (signal_module.SIGTERM, signal_module.SIGINT)


class SupervisorState(Enum):
    """Supervisor lifecycle state."""

    UNINITIALIZED = "uninitialized"
    SCHEDULED = "scheduled"
    WATCHING = "watching"
    RELOADING = "reloading"


def exit_code_from_returncode(returncode: int) -> int:
    """Map a child return code to a shell-style exit code (128 + signal)."""
    if returncode < 0:
        return 128 - returncode
    return returncode


class Supervisor:
    """Keep a scheduler daemon in sync with a schedule file, then hand off.

    Example:
        supervisor = Supervisor(config.supervisor)
        exit_code = await supervisor.run(["node", "server.js"])
    """

    def __init__(
        self,
        config: SupervisorConfig | None = None,
        daemon: SchedulerDaemon | None = None,
        watcher: ScheduleWatcher | None = None,
    ):
        self._config = config or SupervisorConfig()
        self._daemon = daemon or create_daemon(self._config)
        self._watcher = watcher or ScheduleWatcher(
            self._config.schedule_file,
            self._daemon,
            FingerprintStore(self._config.fingerprint_file),
            poll_interval=self._config.poll_interval,
            mode=self._config.fingerprint_mode,
        )
        self._state = SupervisorState.UNINITIALIZED
        self._child: asyncio.subprocess.Process | None = None
        self._stop_event = asyncio.Event()

    @property
    def state(self) -> SupervisorState:
        if self._state == SupervisorState.WATCHING and self._watcher.is_reloading:
            return SupervisorState.RELOADING
        return self._state

    @property
    def daemon(self) -> SchedulerDaemon:
        return self._daemon

    @property
    def watcher(self) -> ScheduleWatcher:
        return self._watcher

    async def setup(self) -> None:
        """Install the schedule and start the daemon and watcher.

        A missing schedule file only produces a warning; the daemon then
        starts with an empty schedule.
        """
        if self._state != SupervisorState.UNINITIALIZED:
            return

        await self._watcher.install()
        self._state = SupervisorState.SCHEDULED

        await self._daemon.start()
        await self._watcher.start()
        self._state = SupervisorState.WATCHING
        logger.info(
            "supervisor_watching",
            extra={
                "scheduler.backend": self._daemon.name,
                "schedule.entries": len(self._daemon.active_entries()),
            },
        )

    async def run(self, command: Sequence[str]) -> int:
        """Set up, run `command` in the foreground, and return its exit code.

        With no command, runs until SIGTERM/SIGINT and returns 0.
        """
        await self.setup()

        loop = asyncio.get_running_loop()
        for sig in FORWARDED_SIGNALS:
            loop.add_signal_handler(sig, self._handle_signal, sig)

        try:
            if command:
                return await self._run_foreground(list(command))
            await self._stop_event.wait()
            return 0
        finally:
            for sig in FORWARDED_SIGNALS:
                loop.remove_signal_handler(sig)
            await self.shutdown()

    async def shutdown(self) -> None:
        await self._watcher.stop()
        await self._daemon.stop()

    def _handle_signal(self, sig: signal_module.Signals) -> None:
        child = self._child
        if child is not None and child.returncode is None:
            logger.info("supervisor_forwarding_signal", extra={"signal": sig.name})
            try:
                child.send_signal(sig)
            except ProcessLookupError:
                pass
            return
        logger.info("supervisor_stopping", extra={"signal": sig.name})
        self._stop_event.set()

    async def _run_foreground(self, command: list[str]) -> int:
        logger.info("supervisor_exec", extra={"process.command": command[0]})
        try:
            self._child = await asyncio.create_subprocess_exec(*command)
        except FileNotFoundError:
            logger.error(f"{command[0]}: command not found")
            return EXIT_NOT_FOUND
        except PermissionError:
            logger.error(f"{command[0]}: permission denied")
            return EXIT_NOT_EXECUTABLE

        returncode = await self._child.wait()
        exit_code = exit_code_from_returncode(returncode)
        logger.info("supervisor_command_exited", extra={"process.exit_code": exit_code})
        return exit_code
