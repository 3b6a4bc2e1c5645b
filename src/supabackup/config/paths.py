"""Centralized path management for supabackup.

Local state (config, logs) lives under a single base directory which can be
overridden with the SUPABACKUP_HOME environment variable. The schedule file
and the fingerprint scratch file default to the well-known locations used by
the backup container image.

Default locations:
- Home: ~/.supabackup
- Schedule file: /app/crontab
- Fingerprint file: /tmp/crontab.mtime
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "SUPABACKUP_HOME"
SCHEDULE_FILE_ENV_VAR = "SUPABACKUP_SCHEDULE_FILE"
FINGERPRINT_FILE_ENV_VAR = "SUPABACKUP_FINGERPRINT_FILE"

DEFAULT_SCHEDULE_FILE = Path("/app/crontab")
DEFAULT_FINGERPRINT_FILE = Path("/tmp/crontab.mtime")  # noqa: S108
DEFAULT_DUMP_DIR = Path("dump")


@lru_cache(maxsize=1)
def get_supabackup_home() -> Path:
    """Get the base directory for supabackup state.

    Resolution order:
    1. SUPABACKUP_HOME environment variable (if set)
    2. ~/.supabackup
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()
    return Path.home() / ".supabackup"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_supabackup_home() / "config.toml"


def get_logs_path() -> Path:
    """Get the default logs directory path."""
    return get_supabackup_home() / "logs"


def get_schedule_file() -> Path:
    """Get the schedule (crontab) file path."""
    if env_path := os.environ.get(SCHEDULE_FILE_ENV_VAR):
        return Path(env_path).expanduser()
    return DEFAULT_SCHEDULE_FILE


def get_fingerprint_file() -> Path:
    """Get the scratch file holding the last seen schedule fingerprint."""
    if env_path := os.environ.get(FINGERPRINT_FILE_ENV_VAR):
        return Path(env_path).expanduser()
    return DEFAULT_FINGERPRINT_FILE


def get_dump_dir() -> Path:
    """Get the default backup output directory (relative to the cwd)."""
    return DEFAULT_DUMP_DIR


def get_all_paths() -> dict[str, Path]:
    """Get all standard paths for debugging/display."""
    return {
        "home": get_supabackup_home(),
        "config": get_config_path(),
        "logs": get_logs_path(),
        "schedule": get_schedule_file(),
        "fingerprint": get_fingerprint_file(),
        "dump": get_dump_dir(),
    }
