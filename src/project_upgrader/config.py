"""Configuration management for Project-Upgrader."""

import logging
import os
import shutil
import tomllib
from pathlib import Path
from typing import Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import (
    DEFAULT_CHECKPOINT_FILE,
    DEFAULT_MIGRATIONS_TABLE,
    DEFAULT_SETTINGS_TABLE,
    DEFAULT_STATE_SCHEMA,
    LEGACY_METADATA_FILES,
    NETWORK_OPERATION_TIMEOUT,
)
from .utils import ensure_dir, expand_path

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_TEMPLATE_PATH = Path(__file__).with_name("config.toml")
CURRENT_CONFIG_SCHEMA_VERSION = 1


def _load_default_template() -> dict[str, Any]:
    """Load the packaged default config template."""
    with open(DEFAULT_CONFIG_TEMPLATE_PATH, "rb") as f:
        return tomllib.load(f)


def _merge_config_data(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge config dictionaries recursively."""
    merged = dict(base)
    for key, value in override.items():
        base_value = merged.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            merged[key] = _merge_config_data(base_value, value)
        else:
            merged[key] = value
    return merged


def _copy_default_config(config_path: Path) -> None:
    """Copy packaged template to the user config path."""
    ensure_dir(config_path.parent)
    shutil.copyfile(DEFAULT_CONFIG_TEMPLATE_PATH, config_path)


def _get_config_schema_version(data: dict[str, Any]) -> int:
    """Get config schema version from metadata section."""
    meta = data.get("meta")
    if not isinstance(meta, dict):
        return 0

    version = meta.get("schema_version", 0)
    if isinstance(version, int) and version >= 0:
        return version

    return 0


def _stamp_config_schema_version(data: dict[str, Any]) -> tuple[dict[str, Any], bool]:
    """Stamp files written before schema versions existed with the current version."""
    if _get_config_schema_version(data) >= CURRENT_CONFIG_SCHEMA_VERSION:
        return data, False

    stamped = dict(data)
    meta = stamped.get("meta")
    meta = dict(meta) if isinstance(meta, dict) else {}
    meta["schema_version"] = CURRENT_CONFIG_SCHEMA_VERSION
    stamped["meta"] = meta
    return stamped, True


def _save_config(config_path: Path, data: dict[str, Any]) -> None:
    """Persist config data to disk."""
    ensure_dir(config_path.parent)
    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)


class ServerConfig(BaseModel):
    """Backend connection settings."""

    timeout: float = Field(
        default=NETWORK_OPERATION_TIMEOUT, gt=0, description="Per-request timeout in seconds"
    )


class StateStoreConfig(BaseModel):
    """Location of the legacy table-backed state."""

    schema_name: str = Field(default=DEFAULT_STATE_SCHEMA, alias="schema")
    migrations_table: str = DEFAULT_MIGRATIONS_TABLE
    settings_table: str = DEFAULT_SETTINGS_TABLE

    model_config = ConfigDict(populate_by_name=True)


class UpgradeConfig(BaseModel):
    """Upgrade behaviour."""

    checkpoint_file: str = DEFAULT_CHECKPOINT_FILE
    legacy_metadata_files: list[str] = Field(default_factory=lambda: list(LEGACY_METADATA_FILES))

    @field_validator("checkpoint_file")
    @classmethod
    def relative_checkpoint(cls, v: str) -> str:
        """Checkpoint files live inside the project directory."""
        if Path(v).is_absolute() or ".." in Path(v).parts:
            raise ValueError("checkpoint_file must be relative to the project directory")
        return v


class GlobalConfig(BaseModel):
    """Global configuration section."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    statestore: StateStoreConfig = Field(default_factory=StateStoreConfig)
    upgrade: UpgradeConfig = Field(default_factory=UpgradeConfig)


class MetaConfig(BaseModel):
    """Configuration metadata section."""

    schema_version: int = Field(default=CURRENT_CONFIG_SCHEMA_VERSION, ge=0)


class Config(BaseModel):
    """Configuration for Project-Upgrader."""

    model_config = ConfigDict(populate_by_name=True)

    meta: MetaConfig = Field(default_factory=MetaConfig)
    global_config: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")

    @property
    def request_timeout(self) -> float:
        """Backend request timeout in seconds."""
        return self.global_config.server.timeout

    @property
    def state_schema(self) -> str:
        """Schema holding the legacy state tables."""
        return self.global_config.statestore.schema_name

    @property
    def migrations_table(self) -> str:
        """Legacy migration versions table."""
        return self.global_config.statestore.migrations_table

    @property
    def settings_table(self) -> str:
        """Legacy migration settings table."""
        return self.global_config.statestore.settings_table

    @property
    def checkpoint_file(self) -> str:
        """Checkpoint file name relative to the project directory."""
        return self.global_config.upgrade.checkpoint_file

    @property
    def legacy_metadata_files(self) -> tuple[str, ...]:
        """Metadata files removed during reorganization."""
        return tuple(self.global_config.upgrade.legacy_metadata_files)

    @property
    def schema_version(self) -> int:
        """Config schema version."""
        return self.meta.schema_version


def get_config_path() -> Path:
    """
    Get configuration file path.

    Priority:
    1. PROJECT_UPGRADER_CONFIG environment variable
    2. Default: ~/.config/project-upgrader/config.toml

    Returns:
        Path to config file
    """
    env_config = os.environ.get("PROJECT_UPGRADER_CONFIG")
    if env_config:
        return expand_path(env_config)

    return expand_path("~/.config/project-upgrader/config.toml")


def create_default_config() -> Config:
    """Create default configuration from packaged template."""
    return Config.model_validate(_load_default_template())


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from TOML file using Pydantic validation.

    Args:
        config_path: Optional custom config path

    Returns:
        Config instance with validated values

    Raises:
        ValueError: If config validation fails
    """
    if config_path is None:
        config_path = get_config_path()

    defaults = _load_default_template()

    if not config_path.exists():
        try:
            _copy_default_config(config_path)
        except (OSError, PermissionError) as e:
            logger.warning(f"Could not copy default config to {config_path}: {e}")

    if config_path.exists():
        with open(config_path, "rb") as f:
            try:
                data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ValueError(f"{config_path} is not valid TOML: {e}") from e

        data, was_stamped = _stamp_config_schema_version(data)
        if was_stamped:
            try:
                _save_config(config_path, data)
            except (OSError, PermissionError) as e:
                logger.warning(f"Could not save config to {config_path}: {e}")

        merged_values = _merge_config_data(defaults, data)
        return Config.model_validate(merged_values)

    return Config.model_validate(defaults)
