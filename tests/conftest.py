"""Pytest configuration and fixtures for pgbackup tests."""

import gzip
import os
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from pgbackup.artifacts import artifact_filename, format_timestamp
from pgbackup.models import ConnectionConfig
from pgbackup.settings import reset_settings

SAMPLE_SQL = "CREATE TABLE widgets (id integer PRIMARY KEY, name text);\n" + "".join(
    f"INSERT INTO widgets VALUES ({i}, 'widget-{i}');\n" for i in range(500)
)

NOW = datetime(2026, 10, 17, 3, 0, 0, tzinfo=UTC)

_ENV_PREFIXES = ("PGBACKUP_", "POSTGRES_", "PGPASSWORD")


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """No stray POSTGRES_* / PGBACKUP_* variables, .env or YAML files leak into a test."""
    for key in list(os.environ):
        if key.startswith(_ENV_PREFIXES):
            monkeypatch.delenv(key)
    work = tmp_path / "cwd"
    work.mkdir()
    monkeypatch.chdir(work)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def connection():
    return ConnectionConfig(user="postgres", password="secret", database_name="euem_db")


@pytest.fixture
def backup_dir(tmp_path):
    return tmp_path / "backups"


def python_command(code: str) -> list[str]:
    return [sys.executable, "-c", code]


class FakeDump:
    """Stands in for pg_dump: a python one-liner run as a real subprocess."""

    def __init__(self) -> None:
        self.commands: list[list[str]] = []
        self.succeed()

    def succeed(self, sql: str = SAMPLE_SQL) -> None:
        self._cmd = python_command(f"import sys; sys.stdout.write({sql!r})")

    def fail(self, returncode: int = 1, stderr: str = "pg_dump: error: connection refused") -> None:
        self._cmd = python_command(
            f"import sys; sys.stdout.write('-- partial\\n'); sys.stderr.write({stderr!r}); sys.exit({returncode})"
        )

    def hang(self, seconds: int = 30) -> None:
        self._cmd = python_command(f"import time; time.sleep({seconds})")

    def missing(self) -> None:
        self._cmd = ["pgbackup-test-no-such-pg_dump"]

    def __call__(self, connection, container="", timeout=0):
        self.commands.append(self._cmd)
        return self._cmd


@pytest.fixture
def fake_dump(monkeypatch):
    dump = FakeDump()
    monkeypatch.setattr("pgbackup.database.build_dump_command", dump)
    return dump


def make_artifact(directory: Path, db_name: str, created: datetime, sql: str = "SELECT 1;\n") -> Path:
    """Write a gzip artifact whose filename embeds ``created``."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / artifact_filename(db_name, format_timestamp(created))
    path.write_bytes(gzip.compress(sql.encode()))
    return path


def days_ago(days: int, now: datetime = NOW) -> datetime:
    return now - timedelta(days=days)
