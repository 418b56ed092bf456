"""Error taxonomy for backup cycles."""

from __future__ import annotations

# Keep captured tool output readable in a single log line / terminal.
STDERR_LIMIT = 2000


class BackupError(Exception):
    """Base class for all backup failures."""


class ConfigError(BackupError):
    """Missing or invalid configuration. Never retried."""


class BackupIOError(BackupError, OSError):
    """Filesystem failure: directory creation, collision, write or rename."""


class DumpError(BackupError):
    """The external dump tool exited unsuccessfully."""

    def __init__(self, message: str, returncode: int | None = None, stderr: str = "") -> None:
        self.returncode = returncode
        self.stderr = stderr[:STDERR_LIMIT]
        super().__init__(message)

    def __str__(self) -> str:
        msg = super().__str__()
        if self.returncode is not None:
            msg = f"{msg} (exit code {self.returncode})"
        if self.stderr.strip():
            msg = f"{msg}: {self.stderr.strip()}"
        return msg


class RestoreError(DumpError):
    """psql exited unsuccessfully while loading an artifact."""


class RetentionError(BackupError):
    """The retention sweep could not run. Non-fatal for a backup cycle."""
