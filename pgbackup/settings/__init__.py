"""Layered configuration for pgbackup.

Sources, highest priority first: ``PGBACKUP_*`` variables, the ``POSTGRES_*``
variables of the postgres image, ``pgbackup.yaml``, then field defaults.

    from pgbackup.settings import get_settings

    s = get_settings()
    s.database.name          # "euem_db"
    s.backup.retention_days  # 30
"""

from __future__ import annotations

from functools import lru_cache

from pgbackup.settings._settings import PgBackupSettings


@lru_cache(maxsize=1)
def get_settings() -> PgBackupSettings:
    """Settings for this process, read once from the environment and config file."""
    return PgBackupSettings()


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() reads the environment again."""
    get_settings.cache_clear()


__all__ = ["PgBackupSettings", "get_settings", "reset_settings"]
