"""State stores backed by conventional tables inside a data source.

The single-source layout keeps applied versions in
hdb_catalog.schema_migrations(version, dirty) and settings in
hdb_catalog.migration_settings(setting, value). Both are read through the
backend's run_sql API. The tables are never created or dropped here.
"""

import logging

from ..api_client import APIError, MetadataClient
from ..constants import DEFAULT_MIGRATIONS_TABLE, DEFAULT_SETTINGS_TABLE, DEFAULT_STATE_SCHEMA
from ..errors import StoreIOError, StoreUnavailable
from .base import MigrationsStateStore, SettingsStateStore
from .models import MigrationVersionRecord, SettingsRecord

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"t", "true", "1"}


def quote_literal(value: str) -> str:
    """Quote a value as a SQL string literal."""
    return "'" + value.replace("'", "''") + "'"


def quote_identifier(value: str) -> str:
    """Quote a value as a SQL identifier."""
    return '"' + value.replace('"', '""') + '"'


def table_exists_sql(schema: str, table: str) -> str:
    return (
        "SELECT COUNT(1) FROM information_schema.tables "
        f"WHERE table_schema = {quote_literal(schema)} AND table_name = {quote_literal(table)}"
    )


def _rows(result: list[list[str]]) -> list[list[str]]:
    # First row is the column header
    return result[1:] if result else []


def _check_table(client: MetadataClient, source: str, schema: str, table: str) -> None:
    try:
        rows = _rows(client.run_sql(table_exists_sql(schema, table), source))
    except APIError as e:
        raise StoreUnavailable(f"cannot reach {schema}.{table} on source '{source}': {e}") from e
    if not rows or int(rows[0][0]) == 0:
        raise StoreUnavailable(f"table {schema}.{table} does not exist on source '{source}'")


class TableMigrationsStore(MigrationsStateStore):
    """Migration versions read from the schema_migrations table."""

    def __init__(
        self,
        client: MetadataClient,
        schema: str = DEFAULT_STATE_SCHEMA,
        table: str = DEFAULT_MIGRATIONS_TABLE,
    ):
        self.client = client
        self.schema = schema
        self.table = table

    @property
    def qualified_table(self) -> str:
        return f"{quote_identifier(self.schema)}.{quote_identifier(self.table)}"

    def _run(self, sql: str, source: str) -> list[list[str]]:
        try:
            return _rows(self.client.run_sql(sql, source))
        except APIError as e:
            raise StoreIOError(f"querying {self.schema}.{self.table} on source '{source}': {e}") from e

    def prepare_migrations_state_store(self, source: str) -> None:
        _check_table(self.client, source, self.schema, self.table)
        logger.debug("table store %s.%s ready on source %s", self.schema, self.table, source)

    def get_versions(self, source: str) -> list[MigrationVersionRecord]:
        rows = self._run(f"SELECT version, dirty FROM {self.qualified_table} ORDER BY version", source)
        try:
            return [
                MigrationVersionRecord(
                    source_name=source,
                    version=int(version),
                    dirty=str(dirty).lower() in _TRUE_VALUES,
                )
                for version, dirty in rows
            ]
        except (TypeError, ValueError) as e:
            raise StoreIOError(f"unexpected row in {self.schema}.{self.table}: {e}") from e

    def set_version(self, source: str, version: int, dirty: bool) -> None:
        dirty_sql = "TRUE" if dirty else "FALSE"
        self._run(
            f"INSERT INTO {self.qualified_table} (version, dirty) VALUES ({int(version)}, {dirty_sql}) "
            f"ON CONFLICT (version) DO UPDATE SET dirty = {dirty_sql}",
            source,
        )

    def remove_version(self, source: str, version: int) -> None:
        self._run(f"DELETE FROM {self.qualified_table} WHERE version = {int(version)}", source)


class TableSettingsStore(SettingsStateStore):
    """Migration settings read from the migration_settings table of one source."""

    def __init__(
        self,
        client: MetadataClient,
        source: str,
        schema: str = DEFAULT_STATE_SCHEMA,
        table: str = DEFAULT_SETTINGS_TABLE,
    ):
        self.client = client
        self.source = source
        self.schema = schema
        self.table = table

    @property
    def qualified_table(self) -> str:
        return f"{quote_identifier(self.schema)}.{quote_identifier(self.table)}"

    def _run(self, sql: str) -> list[list[str]]:
        try:
            return _rows(self.client.run_sql(sql, self.source))
        except APIError as e:
            raise StoreIOError(
                f"querying {self.schema}.{self.table} on source '{self.source}': {e}"
            ) from e

    def prepare_settings_driver(self) -> None:
        _check_table(self.client, self.source, self.schema, self.table)

    def get_settings(self) -> list[SettingsRecord]:
        rows = self._run(f"SELECT setting, value FROM {self.qualified_table} ORDER BY setting")
        try:
            return [SettingsRecord(key=key, value=value) for key, value in rows]
        except (TypeError, ValueError) as e:
            raise StoreIOError(f"unexpected row in {self.schema}.{self.table}: {e}") from e

    def get_setting(self, key: str) -> str | None:
        rows = self._run(
            f"SELECT value FROM {self.qualified_table} WHERE setting = {quote_literal(key)}"
        )
        return rows[0][0] if rows else None

    def update_setting(self, key: str, value: str) -> None:
        self._run(
            f"INSERT INTO {self.qualified_table} (setting, value) "
            f"VALUES ({quote_literal(key)}, {quote_literal(value)}) "
            f"ON CONFLICT (setting) DO UPDATE SET value = {quote_literal(value)}"
        )
