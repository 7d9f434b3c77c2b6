"""Bookkeeping state stores and the state transplanter."""

from .base import MigrationsStateStore, SettingsStateStore
from .catalog import CatalogMigrationsStore, CatalogSettingsStore, CatalogStateClient
from .models import CatalogState, MigrationVersionRecord, SettingsRecord
from .table import TableMigrationsStore, TableSettingsStore
from .transplant import StateTransplanter, TransplantResult

__all__ = [
    "CatalogMigrationsStore",
    "CatalogSettingsStore",
    "CatalogState",
    "CatalogStateClient",
    "MigrationVersionRecord",
    "MigrationsStateStore",
    "SettingsRecord",
    "SettingsStateStore",
    "StateTransplanter",
    "TableMigrationsStore",
    "TableSettingsStore",
    "TransplantResult",
]
