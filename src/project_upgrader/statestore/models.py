"""Bookkeeping records shared by the table-backed and catalog-backed stores."""

from pydantic import BaseModel, ConfigDict, Field


class MigrationVersionRecord(BaseModel):
    """One applied migration batch for a data source."""

    source_name: str
    version: int = Field(ge=0, description="Millisecond timestamp prefix of the migration")
    dirty: bool = False


class SettingsRecord(BaseModel):
    """A migration setting (key/value pair)."""

    key: str
    value: str


class CatalogState(BaseModel):
    """CLI section of the backend-owned catalog state.

    Only reachable through the metadata API. Keys this tool does not know
    about are kept so a read-modify-write never drops them.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    migrations: dict[str, dict[str, bool]] = Field(default_factory=dict)
    settings: dict[str, str] = Field(default_factory=dict)
    is_state_copy_completed: bool = Field(default=False, alias="isStateCopyCompleted")

    def to_payload(self) -> dict:
        """Serialize in the wire format expected by set_catalog_state."""
        return self.model_dump(mode="json", by_alias=True)
