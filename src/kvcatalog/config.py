"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (KVCATALOG__STORE__BACKEND=sqlite)
  2. kvcatalog.yaml         (searched in cwd, then ~/.config/kvcatalog/)
  3. Hardcoded defaults

The config file is optional. Every field has a default that talks to a local
Redis on the standard port.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("kvcatalog")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "catalog.db")


def _find_config_file() -> str | None:
    """Return the path of the first kvcatalog.yaml found, or None."""
    candidates = [
        Path("kvcatalog.yaml"),
        Path.home() / ".config" / "kvcatalog" / "kvcatalog.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class StoreSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    backend: Literal["redis", "sqlite"] = "redis"
    redis_url: str = "redis://localhost:6379/0"
    db_path: str = _DEFAULT_DB_PATH


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    format: Literal["json", "text"] = "text"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: KVCATALOG__STORE__REDIS_URL=...
        env_prefix="KVCATALOG__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    store: StoreSettings = StoreSettings()
    logging: LoggingSettings = LoggingSettings()

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
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
