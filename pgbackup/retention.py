"""Retention sweep: delete artifacts older than the retention window."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path

from pgbackup.artifacts import as_utc, iter_candidates
from pgbackup.errors import RetentionError
from pgbackup.models import RetentionPolicy

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Outcome of one sweep. Deletion failures do not stop the sweep."""

    deleted: list[Path] = field(default_factory=list)
    errors: list[tuple[Path, OSError]] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.deleted)

    @property
    def first_error(self) -> OSError | None:
        return self.errors[0][1] if self.errors else None

    @property
    def ok(self) -> bool:
        return not self.errors


def is_expired(created_at: datetime, policy: RetentionPolicy, now: datetime) -> bool:
    """True when ``created_at`` is older than ``now - max_age_days``."""
    return created_at < now - timedelta(days=policy.max_age_days)


def sweep(
    backup_dir: Path,
    database_name: str,
    policy: RetentionPolicy,
    now: datetime | None = None,
) -> SweepResult:
    """Delete expired artifacts for exactly ``database_name``.

    Age is taken from the timestamp embedded in the filename, not from the
    file's mtime, so copied or restored files keep their real age.

    Raises RetentionError if the directory cannot be enumerated. A missing
    directory is simply empty.
    """
    now = as_utc(now or datetime.now(UTC))
    result = SweepResult()

    if not backup_dir.exists():
        return result

    try:
        candidates = iter_candidates(backup_dir, database_name)
    except OSError as e:
        raise RetentionError(f"Cannot scan {backup_dir}: {e}") from e

    for path, created in candidates:
        if not is_expired(created, policy, now):
            continue
        try:
            path.unlink()
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.warning(f"[{database_name}] Could not delete {path.name}: {e}")
            result.errors.append((path, e))
            continue
        logger.info(f"[{database_name}] Deleted old backup: {path.name}")
        result.deleted.append(path)

    return result
