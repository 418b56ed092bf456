"""One backup cycle: validate, dump, publish, sweep."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from pgbackup.artifacts import (
    artifact_filename,
    as_utc,
    format_timestamp,
    latest_artifact,
    temp_path_for,
)
from pgbackup.database import dump_to_file
from pgbackup.errors import BackupIOError, RetentionError
from pgbackup.models import BackupArtifact, ConnectionConfig, RetentionPolicy
from pgbackup.retention import sweep

logger = logging.getLogger(__name__)


def _ensure_dir(backup_dir: Path) -> None:
    try:
        backup_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise BackupIOError(f"Cannot create backup directory {backup_dir}: {e}") from e
    if not backup_dir.is_dir():
        raise BackupIOError(f"Backup path is not a directory: {backup_dir}")


def _check_newer(backup_dir: Path, db_name: str, target: Path, timestamp: str) -> None:
    """Refuse to overwrite, and refuse to go backwards in time."""
    if target.exists():
        raise BackupIOError(f"Backup already exists, refusing to overwrite: {target}")
    try:
        latest = latest_artifact(backup_dir, db_name)
    except OSError as e:
        raise BackupIOError(f"Cannot list backup directory {backup_dir}: {e}") from e
    if latest and latest.filename >= target.name:
        raise BackupIOError(
            f"Newest existing backup {latest.filename} is not older than {timestamp}; "
            "is another backup running or did the clock move backwards?"
        )


def _run_retention(backup_dir: Path, db_name: str, retention: RetentionPolicy, now: datetime) -> None:
    """Best-effort sweep. Failures are logged, never raised."""
    try:
        result = sweep(backup_dir, db_name, retention, now=now)
    except RetentionError as e:
        logger.warning(f"[{db_name}] Retention sweep skipped: {e}")
        return
    if result.deleted:
        logger.info(f"[{db_name}] Cleaned up {result.count} old backup(s)")
    if result.errors:
        logger.warning(
            f"[{db_name}] Retention sweep left {len(result.errors)} file(s) behind; first error: {result.first_error}"
        )


def run_backup(
    connection: ConnectionConfig,
    backup_dir: Path,
    retention: RetentionPolicy,
    *,
    container: str = "",
    compression_level: int = 9,
    dump_timeout: int = 0,
    now: datetime | None = None,
) -> BackupArtifact:
    """Run one backup cycle and return the new artifact.

    Raises ConfigError before touching the filesystem when credentials are
    missing, BackupIOError for directory/collision/write problems and
    DumpError when pg_dump fails. No partial ``.sql.gz`` is ever left behind:
    the dump is written to a hidden temporary name and renamed into place
    only after pg_dump exits cleanly.
    """
    connection.validate()
    db_name = connection.database_name

    _ensure_dir(backup_dir)

    now = as_utc(now or datetime.now(UTC)).replace(microsecond=0)
    timestamp = format_timestamp(now)
    target = backup_dir / artifact_filename(db_name, timestamp)
    _check_newer(backup_dir, db_name, target, timestamp)

    tmp = temp_path_for(target)
    try:
        raw_size = dump_to_file(
            connection,
            tmp,
            container=container,
            compression_level=compression_level,
            timeout=dump_timeout,
        )
        try:
            tmp.rename(target)
        except OSError as e:
            raise BackupIOError(f"Cannot move {tmp.name} into place: {e}") from e
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise

    size = target.stat().st_size
    ratio = (1 - size / raw_size) * 100 if raw_size else 0
    logger.info(f"[{db_name}] Saved to {target} ({size:,} bytes, {ratio:.1f}% compression)")

    _run_retention(backup_dir, db_name, retention, now)

    return BackupArtifact(
        database_name=db_name,
        created_at=now,
        path=target,
        size_bytes=size,
    )
