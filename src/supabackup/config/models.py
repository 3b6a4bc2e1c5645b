"""Configuration models using Pydantic."""

import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, SecretStr

from supabackup.config.paths import (
    get_dump_dir,
    get_fingerprint_file,
    get_schedule_file,
)
from supabackup.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONTAINER = "supabase-db"
DEFAULT_HOST = "supabase-db"
DEFAULT_PORT = 5432
DEFAULT_DB = "postgres"
DEFAULT_USER = "postgres"


class DatabaseConfig(BaseModel):
    """Connection settings for the target Postgres database.

    `container` is the Docker container restores are applied to; `host` is
    what the connection string used for dumps points at.
    """

    container: str = DEFAULT_CONTAINER
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    name: str = DEFAULT_DB
    user: str = DEFAULT_USER
    password: SecretStr | None = None
    url: SecretStr | None = None  # Full DATABASE_URL, overrides the fields above

    def build_url(self, user: str | None = None) -> str:
        """Assemble a postgresql:// URL from the discrete fields.

        Args:
            user: Role to connect as instead of the configured user.

        Raises:
            ConfigError: If no password is configured.
        """
        from supabackup.backup.url import DatabaseURL

        if self.password is None or not self.password.get_secret_value():
            raise ConfigError("POSTGRES_PASSWORD environment variable is not set")
        return DatabaseURL(
            user=user or self.user,
            password=self.password.get_secret_value(),
            host=self.host,
            port=self.port,
            database=self.name,
        ).render()


class BackupConfig(BaseModel):
    """Configuration for dump production."""

    dump_dir: Path = Field(default_factory=get_dump_dir)
    # Command prefix used to invoke the Supabase CLI
    cli_command: list[str] = ["npx", "--yes", "supabase"]
    # Hostnames that are never resolved to container addresses
    skip_resolve_hosts: list[str] = ["localhost", "127.0.0.1", "host.docker.internal"]
    container_prefix: str = "supabase-"


class SupervisorConfig(BaseModel):
    """Configuration for the schedule supervisor."""

    schedule_file: Path = Field(default_factory=get_schedule_file)
    fingerprint_file: Path = Field(default_factory=get_fingerprint_file)
    poll_interval: float = 60.0
    # "mtime" keeps whole-second modification times; "sha256" hashes content
    fingerprint_mode: Literal["mtime", "sha256"] = "mtime"
    # "crond" drives the system cron daemon; "async" runs jobs in-process
    daemon: Literal["crond", "async"] = "crond"
    crond_command: list[str] = ["crond", "-f", "-l", "2"]
    timezone: str = "UTC"


class SupabackupConfig(BaseModel):
    """Root configuration model."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    backup: BackupConfig = Field(default_factory=BackupConfig)
    supervisor: SupervisorConfig = Field(default_factory=SupervisorConfig)
