"""Backup configuration, flattened from settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from pgbackup.models import ConnectionConfig, RetentionPolicy
from pgbackup.settings import PgBackupSettings, get_settings


@dataclass
class BackupConfig:
    """Configuration for one backup target, loaded from settings."""

    # Database
    db_host: str = "127.0.0.1"
    db_port: int = 5432
    db_user: str = ""
    db_password: str = field(default="", repr=False)
    db_name: str = "euem_db"
    container: str = ""

    # Storage
    backup_dir: Path = field(default_factory=lambda: Path("/srv/postgres/backups"))

    # Behavior
    retention_days: int = 30
    compression_level: int = 9
    dump_timeout: int = 0

    # DB retry
    db_retry_attempts: int = 5
    db_retry_delay: int = 2

    @classmethod
    def from_settings(cls, s: PgBackupSettings | None = None) -> BackupConfig:
        """Load configuration from settings."""
        s = s or get_settings()
        db = s.database
        backup = s.backup
        return cls(
            # Database
            db_host=db.host,
            db_port=db.port,
            db_user=db.user,
            db_password=db.password,
            db_name=db.name,
            container=db.container,
            # Storage
            backup_dir=Path(backup.dir),
            # Behavior
            retention_days=backup.retention_days,
            compression_level=backup.compression_level,
            dump_timeout=backup.dump_timeout,
            # DB retry
            db_retry_attempts=backup.db_retry_attempts,
            db_retry_delay=backup.db_retry_delay,
        )

    @property
    def connection(self) -> ConnectionConfig:
        return ConnectionConfig(
            user=self.db_user,
            password=self.db_password,
            database_name=self.db_name,
            host=self.db_host,
            port=self.db_port,
        )

    @property
    def retention(self) -> RetentionPolicy:
        return RetentionPolicy(max_age_days=self.retention_days)
