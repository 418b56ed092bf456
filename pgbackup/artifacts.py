"""Artifact file naming and discovery.

Artifacts are named ``backup_{db}_{YYYYMMDD_HHMMSS}.sql.gz``. The timestamp is
fixed-width, so for one database name the lexicographic order of filenames is
also the chronological order and "latest" is simply the greatest name.
"""

from __future__ import annotations

import logging
import os
import re
from datetime import UTC, datetime
from pathlib import Path

from pgbackup.models import BackupArtifact

logger = logging.getLogger(__name__)

PREFIX = "backup_"
SUFFIX = ".sql.gz"
PART_SUFFIX = ".part"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

_ARTIFACT_RE = re.compile(r"^backup_(?P<db>.+)_(?P<ts>\d{8}_\d{6})\.sql\.gz$")


def as_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def format_timestamp(dt: datetime) -> str:
    """Filesystem-safe UTC timestamp at second resolution."""
    return as_utc(dt).strftime(TIMESTAMP_FORMAT)


def artifact_filename(database_name: str, timestamp: str) -> str:
    return f"{PREFIX}{database_name}_{timestamp}{SUFFIX}"


def temp_path_for(target: Path) -> Path:
    """Hidden in-progress name; never matches the artifact pattern."""
    return target.with_name(f".{target.name}{PART_SUFFIX}")


def parse_filename(filename: str) -> tuple[str, datetime] | None:
    """Return (database_name, created_at) or None if the name is not an artifact."""
    m = _ARTIFACT_RE.match(filename)
    if not m:
        return None
    try:
        created = datetime.strptime(m.group("ts"), TIMESTAMP_FORMAT).replace(tzinfo=UTC)
    except ValueError:
        # e.g. 20241399_250000 matches the shape but is not a date
        return None
    return m.group("db"), created


def to_artifact(path: Path) -> BackupArtifact | None:
    parsed = parse_filename(path.name)
    if parsed is None:
        return None
    db_name, created = parsed
    return BackupArtifact(
        database_name=db_name,
        created_at=created,
        path=path,
        size_bytes=path.stat().st_size,
    )


def _scan(backup_dir: Path) -> list[Path]:
    """Regular files in ``backup_dir``. Raises OSError if it cannot be listed."""
    with os.scandir(backup_dir) as it:
        return [Path(entry.path) for entry in it if entry.is_file()]


def iter_candidates(backup_dir: Path, database_name: str) -> list[tuple[Path, datetime]]:
    """Files belonging to exactly ``database_name``, with parsed timestamps.

    ``backup_euem_db_staging_*`` starts with ``backup_euem_db_`` too, so the
    name captured from the filename must equal ``database_name``.
    """
    prefix = f"{PREFIX}{database_name}_"
    found: list[tuple[Path, datetime]] = []
    for f in _scan(backup_dir):
        if not f.name.startswith(prefix):
            continue
        parsed = parse_filename(f.name)
        if parsed is None:
            logger.debug(f"[{database_name}] Ignoring unrecognised file: {f.name}")
            continue
        name, created = parsed
        if name != database_name:
            continue
        found.append((f, created))
    found.sort(key=lambda item: item[0].name)
    return found


def list_artifacts(backup_dir: Path, database_name: str | None = None) -> list[BackupArtifact]:
    """All well-formed artifacts, sorted by database then filename (oldest first)."""
    if not backup_dir.is_dir():
        return []

    if database_name:
        paths = [path for path, _ in iter_candidates(backup_dir, database_name)]
    else:
        paths = _scan(backup_dir)

    entries = [a for a in (to_artifact(p) for p in paths) if a]
    entries.sort(key=lambda a: (a.database_name, a.filename))
    return entries


def latest_artifact(backup_dir: Path, database_name: str) -> BackupArtifact | None:
    """The most recent artifact for ``database_name`` (greatest filename)."""
    if not backup_dir.is_dir():
        return None
    candidates = iter_candidates(backup_dir, database_name)
    if not candidates:
        return None
    return to_artifact(candidates[-1][0])
