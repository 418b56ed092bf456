"""Tests for layered settings and BackupConfig."""

from pathlib import Path

import pytest
from pydantic import ValidationError
from pydantic_settings import SettingsError

from pgbackup.config import BackupConfig
from pgbackup.settings import PgBackupSettings, get_settings, reset_settings


class TestSettings:
    """Tests for PgBackupSettings sources."""

    def test_defaults(self):
        s = get_settings()
        assert s.database.host == "127.0.0.1"
        assert s.database.port == 5432
        assert s.database.name == "euem_db"
        assert s.database.password == ""
        assert s.backup.dir == "/srv/postgres/backups"
        assert s.backup.retention_days == 30
        assert s.backup.compression_level == 9
        assert s.logging.level == "INFO"

    def test_singleton(self):
        assert get_settings() is get_settings()
        first = get_settings()
        reset_settings()
        assert get_settings() is not first

    def test_postgres_env(self, monkeypatch):
        """The variables the postgres image's .env already defines are picked up."""
        monkeypatch.setenv("POSTGRES_DB", "inventory")
        monkeypatch.setenv("POSTGRES_USER", "app")
        monkeypatch.setenv("POSTGRES_PASSWORD", "hunter2")
        monkeypatch.setenv("POSTGRES_PORT", "5433")

        s = PgBackupSettings()

        assert s.database.name == "inventory"
        assert s.database.user == "app"
        assert s.database.password == "hunter2"
        assert s.database.port == 5433
        assert s.database.host == "127.0.0.1"

    def test_prefixed_env_wins(self, monkeypatch):
        monkeypatch.setenv("POSTGRES_PASSWORD", "from-compose")
        monkeypatch.setenv("POSTGRES_USER", "app")
        monkeypatch.setenv("PGBACKUP_DATABASE__PASSWORD", "from-pgbackup")

        s = PgBackupSettings()

        assert s.database.password == "from-pgbackup"
        assert s.database.user == "app"

    def test_nested_env(self, monkeypatch):
        monkeypatch.setenv("PGBACKUP_BACKUP__RETENTION_DAYS", "14")
        monkeypatch.setenv("PGBACKUP_BACKUP__DIR", "/var/backups/pg")
        monkeypatch.setenv("PGBACKUP_DATABASE__CONTAINER", "postgres16")

        s = PgBackupSettings()

        assert s.backup.retention_days == 14
        assert s.backup.dir == "/var/backups/pg"
        assert s.database.container == "postgres16"

    def test_yaml_file(self, monkeypatch, tmp_path):
        config_file = tmp_path / "custom.yaml"
        config_file.write_text(
            "database:\n"
            "  name: reports\n"
            "  user: reporter\n"
            "backup:\n"
            "  retention_days: 7\n"
            "logging:\n"
            "  level: DEBUG\n"
        )
        monkeypatch.setenv("PGBACKUP_CONFIG", str(config_file))

        s = PgBackupSettings()

        assert s.database.name == "reports"
        assert s.database.user == "reporter"
        assert s.backup.retention_days == 7
        assert s.logging.level == "DEBUG"

    def test_yaml_in_cwd(self):
        Path("pgbackup.yaml").write_text("backup:\n  compression_level: 6\n")
        assert PgBackupSettings().backup.compression_level == 6

    def test_env_overrides_yaml(self, monkeypatch, tmp_path):
        config_file = tmp_path / "pgbackup.yaml"
        config_file.write_text("database:\n  name: reports\n  user: reporter\n")
        monkeypatch.setenv("PGBACKUP_CONFIG", str(config_file))
        monkeypatch.setenv("POSTGRES_DB", "euem_db")

        s = PgBackupSettings()

        assert s.database.name == "euem_db"
        assert s.database.user == "reporter"

    def test_explicit_yaml_path_expands_home(self, monkeypatch, tmp_path):
        home = tmp_path / "home"
        home.mkdir()
        (home / "backup.yaml").write_text("database:\n  name: reports\n")
        monkeypatch.setenv("HOME", str(home))
        monkeypatch.setenv("PGBACKUP_CONFIG", "~/backup.yaml")

        assert PgBackupSettings().database.name == "reports"

    def test_home_config_is_last_resort(self, monkeypatch, tmp_path):
        home = tmp_path / "home"
        (home / ".pgbackup").mkdir(parents=True)
        (home / ".pgbackup" / "pgbackup.yaml").write_text("backup:\n  retention_days: 3\n")
        monkeypatch.setenv("HOME", str(home))

        assert PgBackupSettings().backup.retention_days == 3

        Path("pgbackup.yml").write_text("backup:\n  retention_days: 5\n")
        assert PgBackupSettings().backup.retention_days == 5

    def test_empty_yaml_is_empty_config(self):
        Path("pgbackup.yaml").write_text("")
        assert PgBackupSettings().backup.retention_days == 30

    @pytest.mark.parametrize("content", ["- a\n- b\n", "just a string\n", "backup: [unclosed\n"])
    def test_malformed_yaml_raises(self, content):
        Path("pgbackup.yaml").write_text(content)
        with pytest.raises(SettingsError):
            PgBackupSettings()

    def test_missing_explicit_yaml_is_ignored(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PGBACKUP_CONFIG", str(tmp_path / "absent.yaml"))
        assert PgBackupSettings().database.name == "euem_db"

    @pytest.mark.parametrize(
        "var,value",
        [
            ("PGBACKUP_BACKUP__RETENTION_DAYS", "0"),
            ("PGBACKUP_BACKUP__COMPRESSION_LEVEL", "10"),
            ("POSTGRES_PORT", "not-a-port"),
            ("PGBACKUP_LOGGING__LEVEL", "LOUD"),
        ],
    )
    def test_invalid_values(self, monkeypatch, var, value):
        monkeypatch.setenv(var, value)
        with pytest.raises(ValidationError):
            PgBackupSettings()

    def test_log_level_normalised(self, monkeypatch):
        monkeypatch.setenv("PGBACKUP_LOGGING__LEVEL", " debug")
        assert PgBackupSettings().logging.level == "DEBUG"

    def test_password_not_in_repr(self, monkeypatch):
        monkeypatch.setenv("POSTGRES_PASSWORD", "hunter2")
        assert "hunter2" not in repr(PgBackupSettings())


class TestBackupConfig:
    """Tests for BackupConfig flattening."""

    def test_from_settings(self, monkeypatch):
        monkeypatch.setenv("POSTGRES_DB", "euem_db")
        monkeypatch.setenv("POSTGRES_USER", "app")
        monkeypatch.setenv("POSTGRES_PASSWORD", "hunter2")
        monkeypatch.setenv("PGBACKUP_BACKUP__DIR", "/tmp/pg")

        config = BackupConfig.from_settings()

        assert config.db_name == "euem_db"
        assert config.backup_dir == Path("/tmp/pg")
        assert "hunter2" not in repr(config)

    def test_connection_and_retention(self):
        config = BackupConfig(db_user="app", db_password="pw", db_name="euem_db", retention_days=12)

        conn = config.connection
        assert conn.user == "app"
        assert conn.password == "pw"
        assert conn.database_name == "euem_db"
        assert conn.host == "127.0.0.1"
        assert config.retention.max_age_days == 12
