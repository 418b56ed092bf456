"""Extra settings sources: pgbackup.yaml and the standard POSTGRES_* variables."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsError

CONFIG_ENV = "PGBACKUP_CONFIG"
CONFIG_NAMES = ("pgbackup.yaml", "pgbackup.yml")

# Variables the postgres container image (and its .env file) already define.
POSTGRES_ENV_MAP = {
    "POSTGRES_HOST": "host",
    "POSTGRES_PORT": "port",
    "POSTGRES_USER": "user",
    "POSTGRES_PASSWORD": "password",
    "POSTGRES_DB": "name",
}


def find_config_file() -> Path | None:
    """Locate the YAML config.

    An explicit ``PGBACKUP_CONFIG`` path (``~`` expanded) is the only place
    looked at when set; a missing file there means no config file. Otherwise
    the working directory is tried, then ``~/.pgbackup/pgbackup.yaml``.
    """
    explicit = os.environ.get(CONFIG_ENV)
    if explicit:
        path = Path(explicit).expanduser()
        return path if path.is_file() else None

    cwd = Path.cwd()
    search = [cwd / name for name in CONFIG_NAMES]
    search.append(Path.home() / ".pgbackup" / CONFIG_NAMES[0])
    return next((p for p in search if p.is_file()), None)


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Parse ``path``; an empty file is an empty config, any other non-mapping is an error."""
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise SettingsError(f"Cannot parse {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SettingsError(f"{path} must contain a mapping at the top level, got {type(data).__name__}")
    return data


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Sections (``database:``, ``backup:``, ``logging:``) from pgbackup.yaml."""

    def __init__(self, settings_cls: type[BaseSettings]) -> None:
        super().__init__(settings_cls)
        path = find_config_file()
        self._sections = load_yaml_config(path) if path else {}

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        if field_name in self._sections:
            return self._sections[field_name], field_name, True
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        return {name: value for name, value in self._sections.items() if name in self.settings_cls.model_fields}


class PostgresEnvSource(PydanticBaseSettingsSource):
    """Map POSTGRES_DB / POSTGRES_USER / POSTGRES_PASSWORD ... onto the database section."""

    def __init__(self, settings_cls: type[BaseSettings]) -> None:
        super().__init__(settings_cls)
        self._database = {
            field: os.environ[var] for var, field in POSTGRES_ENV_MAP.items() if os.environ.get(var)
        }

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        if field_name == "database" and self._database:
            return self._database, field_name, True
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        return {"database": dict(self._database)} if self._database else {}
