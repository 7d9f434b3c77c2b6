"""State stores backed by the backend's catalog state.

The catalog state is one blob owned by the backend. Every write here fetches
the whole blob, changes one section and writes it back, so concurrent writers
from other processes can overwrite each other. Callers must hold exclusive
access to the backend for the duration of an upgrade.
"""

import logging

from pydantic import ValidationError

from ..api_client import APIError, MetadataClient
from ..errors import StoreIOError, StoreUnavailable
from .base import MigrationsStateStore, SettingsStateStore
from .models import CatalogState, MigrationVersionRecord, SettingsRecord

logger = logging.getLogger(__name__)


class CatalogStateClient:
    """Reads and writes the CLI section of the catalog state."""

    def __init__(self, client: MetadataClient):
        self.client = client

    def get(self) -> CatalogState:
        """
        Fetch the current catalog state.

        Raises:
            StoreIOError: If the state cannot be fetched or parsed
        """
        try:
            raw = self.client.get_catalog_state()
        except APIError as e:
            raise StoreIOError(f"fetching catalog state: {e}") from e
        try:
            return CatalogState.model_validate(raw)
        except ValidationError as e:
            raise StoreIOError(f"catalog state is malformed: {e}") from e

    def set(self, state: CatalogState) -> None:
        """
        Replace the catalog state.

        Raises:
            StoreIOError: If the state cannot be written
        """
        try:
            self.client.set_catalog_state(state.to_payload())
        except APIError as e:
            raise StoreIOError(f"writing catalog state: {e}") from e

    def check_reachable(self) -> None:
        """Raise StoreUnavailable unless the state endpoint answers."""
        try:
            self.client.get_catalog_state()
        except APIError as e:
            raise StoreUnavailable(f"catalog state endpoint unreachable: {e}") from e


class CatalogMigrationsStore(MigrationsStateStore):
    """Migration versions kept in catalog state, keyed by data source."""

    def __init__(self, catalog: CatalogStateClient):
        self.catalog = catalog

    def prepare_migrations_state_store(self, source: str) -> None:
        self.catalog.check_reachable()
        logger.debug("catalog store ready for source %s", source)

    def get_versions(self, source: str) -> list[MigrationVersionRecord]:
        versions = self.catalog.get().migrations.get(source, {})
        records = [
            MigrationVersionRecord(source_name=source, version=int(version), dirty=dirty)
            for version, dirty in versions.items()
        ]
        return sorted(records, key=lambda record: record.version)

    def set_version(self, source: str, version: int, dirty: bool) -> None:
        state = self.catalog.get()
        state.migrations.setdefault(source, {})[str(version)] = dirty
        self.catalog.set(state)

    def remove_version(self, source: str, version: int) -> None:
        state = self.catalog.get()
        versions = state.migrations.get(source)
        if versions is None or str(version) not in versions:
            return
        del versions[str(version)]
        self.catalog.set(state)


class CatalogSettingsStore(SettingsStateStore):
    """Migration settings kept in catalog state."""

    def __init__(self, catalog: CatalogStateClient):
        self.catalog = catalog

    def prepare_settings_driver(self) -> None:
        self.catalog.check_reachable()

    def get_settings(self) -> list[SettingsRecord]:
        settings = self.catalog.get().settings
        return [SettingsRecord(key=key, value=settings[key]) for key in sorted(settings)]

    def get_setting(self, key: str) -> str | None:
        return self.catalog.get().settings.get(key)

    def update_setting(self, key: str, value: str) -> None:
        state = self.catalog.get()
        state.settings[key] = value
        self.catalog.set(state)
