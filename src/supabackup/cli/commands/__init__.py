"""CLI command modules."""

from supabackup.cli.commands import backup, config, restore, schedule, supervise

__all__ = [
    "backup",
    "config",
    "restore",
    "schedule",
    "supervise",
]
