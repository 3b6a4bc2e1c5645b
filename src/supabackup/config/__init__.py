"""Configuration module."""

from supabackup.config.loader import find_config_path, load_config
from supabackup.config.models import (
    BackupConfig,
    ConfigError,
    DatabaseConfig,
    SupabackupConfig,
    SupervisorConfig,
)
from supabackup.config.paths import (
    get_config_path,
    get_dump_dir,
    get_fingerprint_file,
    get_schedule_file,
    get_supabackup_home,
)

__all__ = [
    "BackupConfig",
    "ConfigError",
    "DatabaseConfig",
    "SupabackupConfig",
    "SupervisorConfig",
    "find_config_path",
    "get_config_path",
    "get_dump_dir",
    "get_fingerprint_file",
    "get_schedule_file",
    "get_supabackup_home",
    "load_config",
]
