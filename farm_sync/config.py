"""Configuration objects for farm-sync."""

from dataclasses import dataclass, field
from pathlib import Path

import aiofiles
from mashumaro import DataClassDictMixin
from mashumaro.exceptions import MissingField, InvalidFieldValue
import yaml

from .exceptions import ConfigException

__all__ = [
    "RecordStoreConfig",
    "SessionStoreConfig",
    "FarmSyncConfig",
    "read_config",
]

DEFAULT_WEATHER_CACHE_LIMIT = 30


@dataclass
class RecordStoreConfig(DataClassDictMixin):
    """Configuration for the RecordStore."""

    weather_cache_limit: int = DEFAULT_WEATHER_CACHE_LIMIT
    """Maximum number of weather records kept in the local cache."""

    discard_stale_fetches: bool = False
    """Drop fetch responses overtaken by a newer fetch or a mutation."""


@dataclass
class SessionStoreConfig(DataClassDictMixin):
    """Configuration for the SessionStore."""

    profiles_table: str = "profiles"


@dataclass
class FarmSyncConfig(DataClassDictMixin):
    """Top level configuration for the FarmSync container."""

    records: RecordStoreConfig = field(default_factory=RecordStoreConfig)
    session: SessionStoreConfig = field(default_factory=SessionStoreConfig)
    refresh_on_sign_in: bool = True
    """Fetch every collection in the background when a new identity appears."""


async def read_config(config_path: Path) -> FarmSyncConfig:
    """Return the configuration stored in a YAML file."""
    async with aiofiles.open(str(config_path)) as config_file:
        content = await config_file.read()
    if not content.strip():
        raise ConfigException(f"Configuration file {config_path} is empty")
    try:
        doc = yaml.safe_load(content)
    except yaml.YAMLError as err:
        raise ConfigException(f"Invalid YAML in {config_path}: {err}") from err
    if not isinstance(doc, dict):
        raise ConfigException(f"Configuration file {config_path} must be a mapping")
    try:
        config = FarmSyncConfig.from_dict(doc)
    except (MissingField, InvalidFieldValue) as err:
        raise ConfigException(
            f"Invalid configuration file {config_path}: {err}"
        ) from err
    limit = config.records.weather_cache_limit
    if not isinstance(limit, int) or limit < 1:
        raise ConfigException(
            f"Invalid configuration file {config_path}: "
            "weather_cache_limit must be a positive integer"
        )
    return config
