"""Capability interfaces shared by every bookkeeping state store."""

from abc import ABC, abstractmethod

from .models import MigrationVersionRecord, SettingsRecord


class MigrationsStateStore(ABC):
    """Stores which migration versions have been applied to a data source."""

    @abstractmethod
    def prepare_migrations_state_store(self, source: str) -> None:
        """
        Check that the store is usable for a data source.

        Raises:
            StoreUnavailable: If the store cannot be reached or read
        """

    @abstractmethod
    def get_versions(self, source: str) -> list[MigrationVersionRecord]:
        """Return applied migration records for a data source, oldest first."""

    @abstractmethod
    def set_version(self, source: str, version: int, dirty: bool) -> None:
        """Record a migration version as applied."""

    @abstractmethod
    def remove_version(self, source: str, version: int) -> None:
        """Forget a migration version."""


class SettingsStateStore(ABC):
    """Stores migration settings as key/value pairs."""

    @abstractmethod
    def prepare_settings_driver(self) -> None:
        """
        Check that the settings store is usable.

        Raises:
            StoreUnavailable: If the store cannot be reached or read
        """

    @abstractmethod
    def get_settings(self) -> list[SettingsRecord]:
        """Return every setting, sorted by key."""

    @abstractmethod
    def get_setting(self, key: str) -> str | None:
        """Return one setting value, or None if unset."""

    @abstractmethod
    def update_setting(self, key: str, value: str) -> None:
        """Create or overwrite a setting."""
