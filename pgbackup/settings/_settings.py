"""Root PgBackupSettings model."""

from __future__ import annotations

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from pgbackup.settings._loader import PostgresEnvSource, YamlSettingsSource
from pgbackup.settings._sections import BackupSettings, DatabaseSettings, LoggingSettings


class PgBackupSettings(BaseSettings):
    model_config = {
        "env_prefix": "PGBACKUP_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "extra": "ignore",
    }

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    backup: BackupSettings = Field(default_factory=BackupSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            env_settings,
            PostgresEnvSource(settings_cls),
            YamlSettingsSource(settings_cls),
            init_settings,
        )
