"""Error types shared by the backup, restore and supervisor commands.

Each error carries the process exit code the CLI uses when it is fatal.
"""

from pathlib import Path


class SupabackupError(Exception):
    """Base class for all supabackup failures."""

    exit_code = 1


class ConfigError(SupabackupError):
    """Required connection or path configuration is missing or invalid."""


class ToolNotFoundError(SupabackupError):
    """A required external tool (docker, npx, crond) is not available."""

    def __init__(self, tool: str, hint: str | None = None):
        self.tool = tool
        self.hint = hint
        message = f"{tool} not found"
        if hint:
            message = f"{message}. {hint}"
        super().__init__(message)


class ContainerNotFoundError(SupabackupError):
    """The named container is not running."""

    def __init__(self, name: str, available: list[str] | None = None):
        self.name = name
        self.available = available or []
        super().__init__(f"Container '{name}' is not running!")


class ArtifactNotFoundError(SupabackupError):
    """An explicitly requested backup file does not exist."""

    def __init__(self, kind: str, path: Path | None = None):
        self.kind = kind
        self.path = path
        if path is None:
            super().__init__(f"No {kind} files found!")
        else:
            super().__init__(f"{kind.capitalize()} file not found: {path}")


class ExecutionError(SupabackupError):
    """An external dump, copy or restore command failed."""

    def __init__(self, message: str, path: Path | None = None, output: str = ""):
        self.path = path
        self.output = output
        super().__init__(message)


class ReloadError(SupabackupError):
    """The scheduler daemon could not be asked to reload.

    Never fatal: the watcher retries on its next poll.
    """
