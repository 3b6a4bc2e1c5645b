"""Scheduling subsystem: keeps a cron daemon in sync with a schedule file.

Public API:
- ScheduleWatcher: Polling loop that reinstalls and reloads on change
- SchedulerDaemon: Daemon interface (CrondDaemon, AsyncCronDaemon)
- FingerprintStore: Scratch file holding the last seen fingerprint

Types:
- Crontab / CrontabEntry: Parsed schedule file
"""

from supabackup.scheduling.daemon import (
    AsyncCronDaemon,
    CrondDaemon,
    SchedulerDaemon,
    create_daemon,
)
from supabackup.scheduling.fingerprint import FingerprintStore, compute_fingerprint
from supabackup.scheduling.types import Crontab, CrontabEntry
from supabackup.scheduling.watcher import ScheduleWatcher

__all__ = [
    "AsyncCronDaemon",
    "CrondDaemon",
    "Crontab",
    "CrontabEntry",
    "FingerprintStore",
    "ScheduleWatcher",
    "SchedulerDaemon",
    "compute_fingerprint",
    "create_daemon",
]
