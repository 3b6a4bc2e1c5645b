"""Schedule watcher: polls the schedule file and reloads the daemon on change.

The watcher owns the polling loop and the fingerprint scratch file. Each
cycle compares the schedule file's fingerprint with the recorded one; on a
mismatch it reinstalls the schedule, then asks the daemon to reload, and
only then records the new fingerprint. Any failure leaves the recorded
fingerprint alone so the next cycle retries.
"""

import asyncio
import logging
from pathlib import Path

from supabackup.errors import ReloadError, SupabackupError
from supabackup.scheduling.daemon import SchedulerDaemon
from supabackup.scheduling.fingerprint import (
    FingerprintMode,
    FingerprintStore,
    compute_fingerprint,
)
from supabackup.scheduling.types import Crontab

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 60.0


class ScheduleWatcher:
    """Keeps a scheduler daemon in sync with a schedule file.

    Example:
        watcher = ScheduleWatcher(
            Path("/app/crontab"),
            daemon,
            FingerprintStore(Path("/tmp/crontab.mtime")),
        )
        await watcher.install()
        await watcher.start()
    """

    def __init__(
        self,
        schedule_file: Path,
        daemon: SchedulerDaemon,
        fingerprints: FingerprintStore,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        mode: FingerprintMode = "mtime",
    ):
        self._schedule_file = schedule_file
        self._daemon = daemon
        self._fingerprints = fingerprints
        self._poll_interval = poll_interval
        self._mode = mode
        self._running = False
        self._reloading = False
        self._task: asyncio.Task | None = None
        self._poll_count = 0
        self.reload_count = 0

    @property
    def schedule_file(self) -> Path:
        return self._schedule_file

    @property
    def daemon(self) -> SchedulerDaemon:
        return self._daemon

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_reloading(self) -> bool:
        return self._reloading

    async def install(self) -> bool:
        """Install the schedule file into the daemon.

        Returns:
            True if the schedule was installed. A missing file is not an
            error: the daemon keeps its current schedule.
        """
        try:
            crontab = Crontab.from_file(self._schedule_file)
        except FileNotFoundError:
            logger.warning(
                f"{self._schedule_file} not found, cron jobs will not run",
            )
            return False
        except (OSError, UnicodeDecodeError) as e:
            logger.error(
                "schedule_read_failed",
                extra={
                    "file.path": str(self._schedule_file),
                    "error.message": str(e),
                },
            )
            return False

        try:
            await self._daemon.install(crontab)
        except (SupabackupError, OSError) as e:
            logger.error("schedule_install_failed", extra={"error.message": str(e)})
            return False

        logger.info(
            "schedule_installed",
            extra={
                "file.path": str(self._schedule_file),
                "schedule.entries": len(crontab),
            },
        )
        return True

    async def check_once(self) -> bool:
        """Run one poll cycle.

        Returns:
            True if the schedule was reinstalled and a reload requested.
        """
        try:
            current = compute_fingerprint(self._schedule_file, self._mode)
        except OSError as e:
            logger.error(
                "schedule_fingerprint_failed",
                extra={
                    "file.path": str(self._schedule_file),
                    "error.message": str(e),
                },
            )
            return False

        if current is None:
            logger.info(
                "schedule_file_missing",
                extra={"file.path": str(self._schedule_file)},
            )
            return False

        previous = self._fingerprints.read()
        if previous == current:
            logger.debug("schedule_unchanged", extra={"schedule.fingerprint": current})
            return False

        if previous is None:
            logger.info("schedule_fingerprint_missing")
        else:
            logger.info(
                "schedule_changed",
                extra={"schedule.previous": previous, "schedule.fingerprint": current},
            )

        self._reloading = True
        try:
            if not await self.install():
                return False
            try:
                self._daemon.request_reload()
            except ReloadError as e:
                logger.warning("schedule_reload_failed", extra={"error.message": str(e)})
                return False
            self._fingerprints.write(current)
            self.reload_count += 1
            return True
        finally:
            self._reloading = False

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        logger.info(
            "schedule_watcher_started",
            extra={
                "file.path": str(self._schedule_file),
                "schedule.poll_interval": self._poll_interval,
            },
        )
        self._task = asyncio.create_task(self._poll_loop())

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

    async def _poll_loop(self) -> None:
        # Heartbeat every 60 polls (~1 hour at the default interval)
        heartbeat_interval = 60
        while self._running:
            await asyncio.sleep(self._poll_interval)
            try:
                self._poll_count += 1
                if self._poll_count % heartbeat_interval == 0:
                    logger.info(
                        "schedule_watcher_heartbeat",
                        extra={
                            "poll.count": self._poll_count,
                            "file.path": str(self._schedule_file),
                        },
                    )
                await self.check_once()
            except Exception as e:
                logger.error("schedule_check_error", extra={"error.message": str(e)})
