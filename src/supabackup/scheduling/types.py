"""Crontab types.

Public types:
- CrontabEntry: One `<schedule> <command>` line of the schedule file
- Crontab: All entries of a schedule file plus its environment assignments
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

logger = logging.getLogger(__name__)

REBOOT_MACRO = "@reboot"
CRON_MACROS = {
    "@yearly",
    "@annually",
    "@monthly",
    "@weekly",
    "@daily",
    "@midnight",
    "@hourly",
    REBOOT_MACRO,
}

_ENV_ASSIGNMENT = re.compile(r"^(?P<name>[A-Za-z_][A-Za-z0-9_]*)\s*=\s*(?P<value>.*)$")


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


@dataclass
class CrontabEntry:
    """A schedule entry: a cron pattern (or @macro) and a shell command."""

    schedule: str
    command: str
    line_number: int = 0
    # Environment assignments in effect where the entry appears
    environment: dict[str, str] = field(default_factory=dict)

    @property
    def is_reboot(self) -> bool:
        return self.schedule == REBOOT_MACRO

    def to_line(self) -> str:
        return f"{self.schedule} {self.command}"

    def next_fire_time(
        self, timezone: str = "UTC", base: datetime | None = None
    ) -> datetime | None:
        """Get the next fire time after `base` (default: now).

        The pattern is evaluated in `timezone` and the result returned in UTC.
        @reboot entries have no next fire time.
        """
        if self.is_reboot:
            return None
        try:
            from zoneinfo import ZoneInfo

            from croniter import croniter

            try:
                tz = ZoneInfo(timezone)
            except Exception:
                logger.warning(
                    "invalid_timezone", extra={"schedule.timezone": timezone}
                )
                tz = ZoneInfo("UTC")

            base_time = (base or datetime.now(UTC)).astimezone(tz)
            next_local = croniter(self.schedule, base_time).get_next(datetime)
            return next_local.astimezone(UTC)
        except Exception as e:
            logger.warning(
                "cron_parse_failed",
                extra={"schedule.cron": self.schedule, "error.message": str(e)},
            )
            return None

    @classmethod
    def from_line(cls, line: str, line_number: int = 0) -> CrontabEntry | None:
        """Parse an entry line.

        Returns None for blank lines, comments, environment assignments and
        lines whose schedule is not a valid cron pattern.
        """
        line = line.strip()
        if not line or line.startswith("#") or _ENV_ASSIGNMENT.match(line):
            return None

        if line.startswith("@"):
            parts = line.split(None, 1)
            if len(parts) != 2 or parts[0] not in CRON_MACROS:
                return None
            schedule, command = parts
        else:
            parts = line.split(None, 5)
            if len(parts) != 6:
                return None
            schedule = " ".join(parts[:5])
            command = parts[5]

        if schedule != REBOOT_MACRO and not is_valid_schedule(schedule):
            return None

        return cls(schedule=schedule, command=command.strip(), line_number=line_number)


def is_valid_schedule(schedule: str) -> bool:
    from croniter import croniter

    try:
        return bool(croniter.is_valid(schedule))
    except Exception:
        return False


@dataclass
class Crontab:
    """A parsed schedule file.

    Entries keep file order and duplicates. `text` is the raw content that
    gets installed into the scheduler daemon.
    """

    entries: list[CrontabEntry] = field(default_factory=list)
    environment: dict[str, str] = field(default_factory=dict)
    text: str = ""
    invalid_lines: list[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    @classmethod
    def parse(cls, text: str) -> Crontab:
        crontab = cls(text=text)
        environment: dict[str, str] = {}

        for line_number, raw_line in enumerate(text.splitlines(), start=1):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue

            if match := _ENV_ASSIGNMENT.match(line):
                environment[match.group("name")] = _unquote(match.group("value"))
                continue

            entry = CrontabEntry.from_line(line, line_number)
            if entry is None:
                logger.warning(
                    "crontab_line_invalid",
                    extra={"schedule.line": line_number, "schedule.text": line[:80]},
                )
                crontab.invalid_lines.append(line_number)
                continue

            entry.environment = dict(environment)
            crontab.entries.append(entry)

        crontab.environment = environment
        return crontab

    @classmethod
    def from_file(cls, path: Path) -> Crontab:
        """Read and parse a schedule file.

        Raises:
            FileNotFoundError: If the file does not exist.
            OSError: If the file cannot be read.
        """
        return cls.parse(path.read_text(encoding="utf-8"))

    @classmethod
    def empty(cls) -> Crontab:
        return cls()
