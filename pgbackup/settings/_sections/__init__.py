"""Config section models."""

from pgbackup.settings._sections.backup import BackupSettings
from pgbackup.settings._sections.database import DatabaseSettings
from pgbackup.settings._sections.logging import LoggingSettings

__all__ = [
    "BackupSettings",
    "DatabaseSettings",
    "LoggingSettings",
]
