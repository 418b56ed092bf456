"""Compressed, retained logical backups of a PostgreSQL database.

Usage:
    from pgbackup import ConnectionConfig, RetentionPolicy, run_backup

    artifact = run_backup(
        ConnectionConfig(user="postgres", password="secret", database_name="euem_db"),
        Path("/srv/postgres/backups"),
        RetentionPolicy(max_age_days=30),
    )
"""

from pgbackup.errors import (
    BackupError,
    BackupIOError,
    ConfigError,
    DumpError,
    RestoreError,
    RetentionError,
)
from pgbackup.models import BackupArtifact, ConnectionConfig, RetentionPolicy
from pgbackup.retention import SweepResult, sweep
from pgbackup.runner import run_backup

__version__ = "0.1.0"

__all__ = [
    "BackupArtifact",
    "BackupError",
    "BackupIOError",
    "ConfigError",
    "ConnectionConfig",
    "DumpError",
    "RestoreError",
    "RetentionError",
    "RetentionPolicy",
    "SweepResult",
    "run_backup",
    "sweep",
]
