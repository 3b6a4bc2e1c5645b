"""Backup artifact naming.

A backup run produces three SQL files sharing one timestamp token:

    dump/backup_2025-11-20_145630_roles.sql
    dump/backup_2025-11-20_145630_schema.sql
    dump/backup_2025-11-20_145630_data.sql
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

TIMESTAMP_FORMAT = "%Y-%m-%d_%H%M%S"

_ARTIFACT_RE = re.compile(
    r"^backup_(?P<ts>\d{4}-\d{2}-\d{2}_\d{6})_(?P<kind>roles|schema|data)\.sql$"
)


class ArtifactKind(Enum):
    """One of the three dumps in a backup."""

    ROLES = "roles"
    SCHEMA = "schema"
    DATA = "data"

    @property
    def label(self) -> str:
        return self.value.capitalize()


# Dumps are produced roles first; restores apply schema first.
BACKUP_ORDER = (ArtifactKind.ROLES, ArtifactKind.SCHEMA, ArtifactKind.DATA)
RESTORE_ORDER = (ArtifactKind.SCHEMA, ArtifactKind.ROLES, ArtifactKind.DATA)


@dataclass(frozen=True)
class ArtifactSet:
    """The three file paths of one backup run."""

    directory: Path
    timestamp: str

    @classmethod
    def create(cls, directory: Path, now: datetime | None = None) -> ArtifactSet:
        now = now or datetime.now()
        return cls(directory=directory, timestamp=now.strftime(TIMESTAMP_FORMAT))

    def path(self, kind: ArtifactKind) -> Path:
        return self.directory / f"backup_{self.timestamp}_{kind.value}.sql"

    def paths(self) -> dict[ArtifactKind, Path]:
        return {kind: self.path(kind) for kind in BACKUP_ORDER}


def find_artifact_sets(directory: Path) -> list[ArtifactSet]:
    """List backups found in a dump directory, newest first."""
    if not directory.is_dir():
        return []
    timestamps = {
        match.group("ts")
        for entry in directory.iterdir()
        if (match := _ARTIFACT_RE.match(entry.name))
    }
    return [
        ArtifactSet(directory=directory, timestamp=ts)
        for ts in sorted(timestamps, reverse=True)
    ]


def format_size(num_bytes: int) -> str:
    """Human readable size in the style of `du -h`."""
    size = float(num_bytes)
    for unit in ("B", "K", "M", "G"):
        if size < 1024:
            return f"{size:.0f}{unit}" if unit == "B" else f"{size:.1f}{unit}"
        size /= 1024
    return f"{size:.1f}T"
