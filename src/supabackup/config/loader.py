"""Configuration loading from TOML files and environment variables."""

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import SecretStr

from supabackup.config.models import SupabackupConfig
from supabackup.config.paths import get_config_path

CONFIG_ENV_VAR = "SUPABACKUP_CONFIG"

# (section, key, env var) for plain values filled from the environment
ENV_MAPPINGS = [
    ("database", "container", "SUPABASE_DB_CONTAINER"),
    ("database", "host", "POSTGRES_HOST"),
    ("database", "port", "POSTGRES_PORT"),
    ("database", "name", "POSTGRES_DB"),
    ("database", "user", "POSTGRES_USER"),
]

SECRET_ENV_MAPPINGS = [
    ("database", "password", "POSTGRES_PASSWORD"),
    ("database", "url", "DATABASE_URL"),
]


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("supabackup.toml"),  # Current directory
        get_config_path(),  # ~/.supabackup/config.toml (or SUPABACKUP_HOME)
        Path("/etc/supabackup/config.toml"),  # System-wide
    ]


def _resolve_env(
    config: dict[str, Any], environ: Mapping[str, str]
) -> dict[str, Any]:
    """Fill values missing from the config file from environment variables."""
    for section_key, key, env_var in ENV_MAPPINGS:
        section = config.setdefault(section_key, {})
        if section.get(key) is None and environ.get(env_var):
            section[key] = environ[env_var]

    for section_key, key, env_var in SECRET_ENV_MAPPINGS:
        section = config.setdefault(section_key, {})
        if section.get(key) is None and environ.get(env_var):
            section[key] = SecretStr(environ[env_var])

    return config


def find_config_path(path: Path | None = None) -> Path | None:
    """Locate the config file to load.

    Args:
        path: Explicit path. Must exist if given.

    Returns:
        The first existing config file, or None when none is found.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
    """
    if path is None and (env_path := os.environ.get(CONFIG_ENV_VAR)):
        path = Path(env_path)

    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        return config_path

    for default_path in _get_default_config_paths():
        expanded = default_path.expanduser()
        if expanded.exists():
            return expanded
    return None


def load_config(
    path: Path | None = None, environ: Mapping[str, str] | None = None
) -> SupabackupConfig:
    """Load configuration from an optional TOML file plus the environment.

    Unlike most settings, the config file is optional: the container image
    is usually configured through environment variables alone.

    Args:
        path: Explicit path to config file. If None, searches default locations.
        environ: Environment to read (defaults to os.environ).

    Returns:
        Validated SupabackupConfig instance.

    Raises:
        FileNotFoundError: If an explicit config file does not exist.
        ValueError: If the config file is invalid.
    """
    environ = os.environ if environ is None else environ
    config_path = find_config_path(path)

    raw_config: dict[str, Any] = {}
    if config_path is not None:
        with config_path.open("rb") as f:
            raw_config = tomllib.load(f)

    raw_config = _resolve_env(raw_config, environ)
    return SupabackupConfig.model_validate(raw_config)
