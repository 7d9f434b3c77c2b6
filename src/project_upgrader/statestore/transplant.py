"""Copy bookkeeping state from the table-backed stores into catalog state."""

import logging
from dataclasses import dataclass

from ..errors import DuplicateStateConflict, StateCopyAlreadyCompleted
from .base import MigrationsStateStore, SettingsStateStore
from .catalog import CatalogStateClient

logger = logging.getLogger(__name__)


@dataclass
class TransplantResult:
    """What a state copy moved."""

    source: str
    dest: str
    migrations_copied: int
    settings_copied: int


class StateTransplanter:
    """Copies migration and settings state for one data source.

    The stores are injected so the same algorithm copies between any pair of
    store implementations.
    """

    def __init__(
        self,
        source_migrations: MigrationsStateStore,
        dest_migrations: MigrationsStateStore,
        source_settings: SettingsStateStore,
        dest_settings: SettingsStateStore,
        catalog: CatalogStateClient,
    ):
        self.source_migrations = source_migrations
        self.dest_migrations = dest_migrations
        self.source_settings = source_settings
        self.dest_settings = dest_settings
        self.catalog = catalog

    def copy_state(self, source: str, dest: str) -> TransplantResult:
        """
        Copy state for source into the destination stores under dest.

        Migration records are copied first, then settings. A settings failure
        does not undo the migration records already written; the completion
        latch is only set once both copies succeed.

        Args:
            source: Data source name in the source stores
            dest: Data source name to file the records under

        Returns:
            TransplantResult with copied record counts

        Raises:
            StoreUnavailable: If a store cannot be prepared
            StoreIOError: If reading or writing a store fails
            StateCopyAlreadyCompleted: If the latch is already set
            DuplicateStateConflict: If dest already has migration records
        """
        self.source_migrations.prepare_migrations_state_store(source)
        self.dest_migrations.prepare_migrations_state_store(dest)

        if self.catalog.get().is_state_copy_completed:
            raise StateCopyAlreadyCompleted(
                "catalog state reports that state was already copied; refusing to copy again"
            )

        existing = self.dest_migrations.get_versions(dest)
        if existing:
            raise DuplicateStateConflict(
                f"destination already holds {len(existing)} migration record(s) for '{dest}'"
            )

        records = self.source_migrations.get_versions(source)
        for record in records:
            self.dest_migrations.set_version(dest, record.version, record.dirty)
        logger.info("Copied %d migration record(s) from '%s' to '%s'", len(records), source, dest)

        self.source_settings.prepare_settings_driver()
        self.dest_settings.prepare_settings_driver()
        settings = self.source_settings.get_settings()
        for setting in settings:
            self.dest_settings.update_setting(setting.key, setting.value)
        logger.info("Copied %d setting(s)", len(settings))

        state = self.catalog.get()
        state.is_state_copy_completed = True
        self.catalog.set(state)

        return TransplantResult(
            source=source,
            dest=dest,
            migrations_copied=len(records),
            settings_copied=len(settings),
        )
