"""Value types shared by the runner, retention sweep and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from pgbackup.errors import ConfigError

DEFAULT_HOST = "127.0.0.1"  # IPv4 loopback: ::1 may hit a different pg_hba rule
DEFAULT_PORT = 5432


@dataclass
class ConnectionConfig:
    """Credentials for one database. Supplied externally, never persisted."""

    user: str = ""
    password: str = field(default="", repr=False)
    database_name: str = ""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    def validate(self) -> None:
        """Fail fast before anything can block on an interactive password prompt."""
        if not self.password:
            raise ConfigError("Database password not set. Export POSTGRES_PASSWORD or source your .env first.")
        if not self.database_name:
            raise ConfigError("Database name not set.")
        if "/" in self.database_name or "\\" in self.database_name:
            raise ConfigError(f"Database name must not contain path separators: {self.database_name!r}")

    def describe(self) -> str:
        """user@host:port/db, safe for display."""
        user = f"{self.user}@" if self.user else ""
        return f"{user}{self.host}:{self.port}/{self.database_name}"


@dataclass(frozen=True)
class RetentionPolicy:
    """Maximum artifact age, applied uniformly per database name."""

    max_age_days: int = 30

    def __post_init__(self) -> None:
        if self.max_age_days < 1:
            raise ConfigError(f"Retention must be at least 1 day, got {self.max_age_days}")


@dataclass(frozen=True)
class BackupArtifact:
    """One completed backup file."""

    database_name: str
    created_at: datetime
    path: Path
    size_bytes: int

    @property
    def filename(self) -> str:
        return self.path.name
