"""Backup and restore drivers.

Public API:
- BackupDriver: Produces roles/schema/data dumps via the Supabase CLI
- RestoreDriver: Applies dumps to a database container with psql
- RestoreSelection: Which dump files a restore should apply

Types:
- ArtifactKind / ArtifactSet: Dump file naming
- DatabaseURL: Parsed connection string
"""

from supabackup.backup.artifacts import (
    BACKUP_ORDER,
    RESTORE_ORDER,
    ArtifactKind,
    ArtifactSet,
    find_artifact_sets,
)
from supabackup.backup.dump import (
    ArtifactResult,
    BackupDriver,
    BackupResult,
    resolve_database_url,
)
from supabackup.backup.restore import RestoreDriver, RestoreSelection, RestoreStep
from supabackup.backup.url import DatabaseURL

__all__ = [
    "BACKUP_ORDER",
    "RESTORE_ORDER",
    "ArtifactKind",
    "ArtifactResult",
    "ArtifactSet",
    "BackupDriver",
    "BackupResult",
    "DatabaseURL",
    "RestoreDriver",
    "RestoreSelection",
    "RestoreStep",
    "find_artifact_sets",
    "resolve_database_url",
]
