"""Project config (config.yaml) loading, saving and version bumps."""

import logging
from pathlib import Path
from typing import Any, Callable

import yaml
from pydantic import BaseModel, ConfigDict, field_validator

from .constants import (
    DEFAULT_METADATA_DIRECTORY,
    DEFAULT_MIGRATIONS_DIRECTORY,
    DEFAULT_SEEDS_DIRECTORY,
    PROJECT_CONFIG_FILE,
    ProjectSchemaVersion,
)
from .errors import ConfigPersistError

logger = logging.getLogger(__name__)


class ProjectConfig(BaseModel):
    """Contents of a project's config.yaml.

    Only the keys the upgrade needs are modelled; everything else in the file
    is carried through untouched.
    """

    model_config = ConfigDict(extra="allow")

    version: ProjectSchemaVersion = ProjectSchemaVersion.V1
    endpoint: str = "http://localhost:8080"
    admin_secret: str | None = None
    metadata_directory: str = DEFAULT_METADATA_DIRECTORY
    migrations_directory: str = DEFAULT_MIGRATIONS_DIRECTORY
    seeds_directory: str = DEFAULT_SEEDS_DIRECTORY

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, v: Any) -> Any:
        """Accept version numbers written as strings."""
        if isinstance(v, str) and v.strip().isdigit():
            return int(v)
        return v

    def to_yaml(self) -> str:
        """Serialize back to YAML, omitting unset optional keys."""
        data = self.model_dump(mode="json", exclude_none=True)
        return yaml.safe_dump(data, sort_keys=False)


class ProjectPaths(BaseModel):
    """Absolute directories of a project."""

    project_dir: Path
    config_file: Path
    metadata_dir: Path
    migrations_dir: Path
    seeds_dir: Path


def get_project_paths(project_dir: Path, config: ProjectConfig) -> ProjectPaths:
    """Resolve the project's directories relative to its root."""
    return ProjectPaths(
        project_dir=project_dir,
        config_file=project_dir / PROJECT_CONFIG_FILE,
        metadata_dir=project_dir / config.metadata_directory,
        migrations_dir=project_dir / config.migrations_directory,
        seeds_dir=project_dir / config.seeds_directory,
    )


def load_project_config(project_dir: Path) -> ProjectConfig:
    """
    Load config.yaml from a project directory.

    Args:
        project_dir: Project root

    Returns:
        Validated ProjectConfig

    Raises:
        FileNotFoundError: If the project has no config.yaml
        ValueError: If the file is not valid YAML or fails validation
    """
    config_path = project_dir / PROJECT_CONFIG_FILE
    with open(config_path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"{config_path} is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{config_path} must contain a mapping")
    return ProjectConfig.model_validate(data)


def save_project_config(config: ProjectConfig, config_path: Path) -> None:
    """Write a project config to disk."""
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(config.to_yaml(), encoding="utf-8")


ConfigWriter = Callable[[ProjectConfig, Path], None]


class ConfigRewriter:
    """Commits the project version bump."""

    def __init__(self, writer: ConfigWriter = save_project_config):
        self.writer = writer

    def commit_version(
        self,
        config: ProjectConfig,
        config_path: Path,
        target_version: ProjectSchemaVersion = ProjectSchemaVersion.V3,
    ) -> ProjectConfig:
        """
        Persist config with its version set to target_version.

        The passed config is not modified; the bumped copy is returned once the
        write succeeded.

        Raises:
            ConfigPersistError: If the write fails
        """
        new_config = config.model_copy(update={"version": target_version})
        try:
            self.writer(new_config, config_path)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigPersistError(f"writing {config_path}: {e}") from e
        logger.info("Project config version set to %d", int(target_version))
        return new_config
