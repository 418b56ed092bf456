"""Database operations: streamed dump, streamed restore, connection checks."""

from __future__ import annotations

import gzip
import logging
import os
import subprocess
import tempfile
import threading
import time
from pathlib import Path

from pgbackup.errors import BackupIOError, DumpError, RestoreError
from pgbackup.models import ConnectionConfig

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
GZIP_MAGIC = b"\x1f\x8b"
CONTAINER_TIMEOUT_EXIT = 124


def _base_args(connection: ConnectionConfig) -> list[str]:
    args = ["-h", connection.host, "-p", str(connection.port)]
    if connection.user:
        args.extend(["-U", connection.user])
    args.extend(["-d", connection.database_name])
    return args


def _wrap_container(cmd: list[str], container: str, interactive: bool = False) -> list[str]:
    """Run ``cmd`` inside a container. PGPASSWORD is forwarded by name, not value."""
    if not container:
        return cmd
    prefix = ["docker", "exec"]
    if interactive:
        prefix.append("-i")
    prefix.extend(["-e", "PGPASSWORD", container])
    return prefix + cmd


def build_dump_command(connection: ConnectionConfig, container: str = "", timeout: int = 0) -> list[str]:
    """pg_dump invocation for a plain-text logical dump written to stdout.

    Killing `docker exec` does not stop the process it started, so inside a
    container pg_dump is also bounded by coreutils `timeout` (exit code 124).
    """
    cmd = ["pg_dump", *_base_args(connection), "--format=plain"]
    if container and timeout > 0:
        cmd = ["timeout", str(timeout), *cmd]
    return _wrap_container(cmd, container)


def build_restore_command(connection: ConnectionConfig, container: str = "") -> list[str]:
    cmd = ["psql", "-v", "ON_ERROR_STOP=1", "--quiet", *_base_args(connection)]
    return _wrap_container(cmd, container, interactive=True)


def build_check_command(connection: ConnectionConfig, container: str = "") -> list[str]:
    cmd = ["psql", *_base_args(connection), "-c", "SELECT 1"]
    return _wrap_container(cmd, container)


def build_env(connection: ConnectionConfig) -> dict[str, str]:
    env = os.environ.copy()
    env["PGPASSWORD"] = connection.password
    return env


def dump_to_file(
    connection: ConnectionConfig,
    out_path: Path,
    *,
    container: str = "",
    compression_level: int = 9,
    timeout: int = 0,
) -> int:
    """Stream a pg_dump through gzip into ``out_path``.

    The dump is never held in memory. stderr goes to a temporary file so a
    chatty pg_dump cannot fill its pipe and stall while we drain stdout.

    Returns the uncompressed dump size. Raises DumpError when pg_dump is
    missing, times out or exits non-zero, and BackupIOError when the output
    cannot be written. ``out_path`` may be left behind on failure; the caller
    owns its cleanup.
    """
    db_name = connection.database_name
    cmd = build_dump_command(connection, container, timeout=timeout)
    logger.info(f"[{db_name}] Starting dump of {connection.describe()}")

    raw_size = 0
    timed_out = threading.Event()

    with tempfile.TemporaryFile() as err:
        try:
            proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=err, env=build_env(connection))
        except FileNotFoundError as e:
            raise DumpError(f"{cmd[0]} not found - install postgresql-client") from e

        timer = None
        if timeout > 0:

            def _kill() -> None:
                timed_out.set()
                proc.kill()

            timer = threading.Timer(timeout, _kill)
            timer.daemon = True
            timer.start()

        try:
            try:
                with gzip.open(out_path, "wb", compresslevel=compression_level) as gz:
                    for chunk in iter(lambda: proc.stdout.read(CHUNK_SIZE), b""):
                        gz.write(chunk)
                        raw_size += len(chunk)
            except OSError as e:
                proc.kill()
                proc.wait()
                raise BackupIOError(f"Failed writing {out_path}: {e}") from e
            finally:
                proc.stdout.close()
            returncode = proc.wait()
        finally:
            if timer:
                timer.cancel()

        err.seek(0)
        stderr = err.read().decode(errors="replace")

    if returncode != 0:
        # A timer that fires after a clean exit does not turn success into failure
        if timed_out.is_set() or (container and timeout > 0 and returncode == CONTAINER_TIMEOUT_EXIT):
            raise DumpError(f"pg_dump timed out after {timeout}s", returncode, stderr)
        raise DumpError(f"pg_dump failed for {db_name}", returncode, stderr)

    logger.info(f"[{db_name}] Dump complete: {raw_size:,} bytes uncompressed")
    return raw_size


def restore_artifact(path: Path, connection: ConnectionConfig, container: str = "") -> int:
    """Stream-decompress an artifact into psql.

    Returns the number of SQL bytes fed to psql. Raises BackupIOError if the
    file is missing or not gzip, RestoreError if psql fails.
    """
    db_name = connection.database_name
    if not path.is_file():
        raise BackupIOError(f"Backup not found: {path}")
    with open(path, "rb") as f:
        if f.read(2) != GZIP_MAGIC:
            raise BackupIOError(f"File does not appear to be gzipped: {path}")

    cmd = build_restore_command(connection, container)
    logger.info(f"[{db_name}] Restoring {path.name} into {connection.describe()}")

    fed = 0
    with tempfile.TemporaryFile() as err:
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL,
                stderr=err,
                env=build_env(connection),
            )
        except FileNotFoundError as e:
            raise RestoreError(f"{cmd[0]} not found - install postgresql-client") from e

        try:
            with gzip.open(path, "rb") as gz:
                for chunk in iter(lambda: gz.read(CHUNK_SIZE), b""):
                    proc.stdin.write(chunk)
                    fed += len(chunk)
        except BrokenPipeError:
            # psql exited early; its exit code and stderr explain why
            pass
        except (OSError, EOFError) as e:
            proc.kill()
            proc.wait()
            raise BackupIOError(f"Failed reading {path}: {e}") from e
        finally:
            try:
                proc.stdin.close()
            except BrokenPipeError:
                pass

        returncode = proc.wait()
        err.seek(0)
        stderr = err.read().decode(errors="replace")

    if returncode != 0:
        raise RestoreError(f"psql restore failed for {db_name}", returncode, stderr)

    logger.info(f"[{db_name}] Restore completed successfully ({fed:,} bytes of SQL)")
    return fed


def check_connection(
    connection: ConnectionConfig,
    attempts: int = 5,
    delay: int = 2,
    container: str = "",
) -> bool:
    """Check if the database is reachable, retrying with exponential backoff."""
    db_name = connection.database_name
    cmd = build_check_command(connection, container)
    env = build_env(connection)

    for attempt in range(1, attempts + 1):
        try:
            result = subprocess.run(cmd, capture_output=True, env=env, timeout=10)
            if result.returncode == 0:
                logger.info(f"[{db_name}] Database connection OK")
                return True
            logger.warning(
                f"[{db_name}] Connection attempt {attempt} failed: "
                f"{result.stderr.decode(errors='replace').strip()[:500]}"
            )
        except FileNotFoundError:
            logger.error(f"[{db_name}] {cmd[0]} not found - install postgresql-client")
            return False
        except subprocess.TimeoutExpired:
            logger.warning(f"[{db_name}] Connection attempt {attempt} timed out")

        if attempt < attempts:
            wait = delay * (2 ** (attempt - 1))
            logger.info(f"[{db_name}] Retrying in {wait}s...")
            time.sleep(wait)

    logger.error(f"[{db_name}] Failed to connect after {attempts} attempts")
    return False
