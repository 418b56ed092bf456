"""Backup behaviour models."""

from pydantic import BaseModel, Field


class BackupSettings(BaseModel):
    dir: str = "/srv/postgres/backups"
    retention_days: int = Field(default=30, ge=1)
    compression_level: int = Field(default=9, ge=1, le=9)
    # Seconds; 0 disables. With database.container set, pg_dump runs under
    # `timeout` inside the container as well, since killing `docker exec` leaves it running.
    dump_timeout: int = Field(default=0, ge=0)
    db_retry_attempts: int = Field(default=5, ge=1)
    db_retry_delay: int = Field(default=2, ge=0)
