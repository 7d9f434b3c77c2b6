"""Tests for config module."""

import tomllib
from pathlib import Path

import pytest
from pydantic import ValidationError

from project_upgrader.config import (
    CURRENT_CONFIG_SCHEMA_VERSION,
    Config,
    create_default_config,
    get_config_path,
    load_config,
)


class TestConfig:
    """Tests for Config model."""

    def test_defaults(self) -> None:
        """Test creating Config with default values."""
        config = Config()

        assert config.request_timeout == 30.0
        assert config.state_schema == "hdb_catalog"
        assert config.migrations_table == "schema_migrations"
        assert config.settings_table == "migration_settings"
        assert config.checkpoint_file == ".upgrade-checkpoint.json"
        assert config.legacy_metadata_files == ("functions.yaml", "tables.yaml")
        assert config.schema_version == CURRENT_CONFIG_SCHEMA_VERSION

    def test_template_matches_model_defaults(self) -> None:
        """Test that the packaged template agrees with the model defaults."""
        assert create_default_config() == Config()

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            Config.model_validate({"global": {"server": {"timeout": 0}}})

    @pytest.mark.parametrize("checkpoint_file", ["/tmp/checkpoint.json", "../checkpoint.json"])
    def test_checkpoint_file_must_stay_in_project(self, checkpoint_file: str) -> None:
        with pytest.raises(ValidationError):
            Config.model_validate({"global": {"upgrade": {"checkpoint_file": checkpoint_file}}})


class TestGetConfigPath:
    """Tests for get_config_path."""

    def test_env_var(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that PROJECT_UPGRADER_CONFIG takes priority."""
        monkeypatch.setenv("PROJECT_UPGRADER_CONFIG", str(tmp_path / "custom.toml"))

        assert get_config_path() == tmp_path / "custom.toml"

    def test_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("PROJECT_UPGRADER_CONFIG", raising=False)

        path = get_config_path()

        assert path.name == "config.toml"
        assert path.parent.name == "project-upgrader"


class TestLoadConfig:
    """Tests for load_config."""

    def test_creates_default_file(self, tmp_path: Path) -> None:
        """Test that a missing config file is created from the template."""
        config_file = tmp_path / "nested" / "config.toml"

        config = load_config(config_file)

        assert config_file.exists()
        assert config == Config()

    def test_partial_file_merged_with_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.toml"
        config_file.write_text(
            "[meta]\nschema_version = 1\n\n[global.statestore]\nschema = \"legacy\"\n"
        )

        config = load_config(config_file)

        assert config.state_schema == "legacy"
        assert config.migrations_table == "schema_migrations"
        assert config.request_timeout == 30.0

    def test_unversioned_file_is_stamped(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.toml"
        config_file.write_text("[global.server]\ntimeout = 5.0\n")

        config = load_config(config_file)

        assert config.request_timeout == 5.0
        with open(config_file, "rb") as f:
            data = tomllib.load(f)
        assert data["meta"]["schema_version"] == CURRENT_CONFIG_SCHEMA_VERSION
        assert data["global"]["server"]["timeout"] == 5.0

    def test_invalid_toml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.toml"
        config_file.write_text("[global\n")

        with pytest.raises(ValueError, match="not valid TOML"):
            load_config(config_file)

    def test_uses_env_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_file = tmp_path / "env.toml"
        config_file.write_text("[meta]\nschema_version = 1\n\n[global.server]\ntimeout = 12.5\n")
        monkeypatch.setenv("PROJECT_UPGRADER_CONFIG", str(config_file))

        assert load_config().request_timeout == 12.5
