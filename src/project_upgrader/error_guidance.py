"""Actionable error guidance for common upgrade failures."""

from dataclasses import dataclass

from .constants import (
    EXIT_CODE_FAILURE,
    EXIT_CODE_PRECONDITION,
    EXIT_CODE_RESYNC,
)
from .errors import (
    AmbiguousTargetError,
    CleanupError,
    ConfigPersistError,
    CopyError,
    DirectoryScanError,
    DuplicateStateConflict,
    NoSourcesFoundError,
    PreconditionError,
    ResyncError,
    StateCopyAlreadyCompleted,
    StoreUnavailable,
    UpgradeError,
)


@dataclass
class ErrorGuidance:
    """Structured error guidance with checks and suggestions."""

    title: str
    checks: list[str]  # Things to check
    fixes: list[str]  # How to fix
    examples: list[str] | None = None  # Example commands


class GuidanceProvider:
    """Provides context-aware guidance for errors."""

    @staticmethod
    def get_no_sources() -> ErrorGuidance:
        """Guidance when the server has no connected databases."""
        return ErrorGuidance(
            title="No databases are connected to the server",
            checks=["Open the server console and list connected databases"],
            fixes=["Connect the database the migrations belong to, then re-run the upgrade"],
        )

    @staticmethod
    def get_ambiguous_target() -> ErrorGuidance:
        """Guidance when the target database could not be determined."""
        return ErrorGuidance(
            title="The target database is ambiguous",
            checks=["Which database were the existing migrations applied to?"],
            fixes=["Pass the database name explicitly"],
            examples=["project-upgrader update-project-v3 --database-name <name>"],
        )

    @staticmethod
    def get_state_already_copied() -> ErrorGuidance:
        """Guidance when catalog state already holds a completed copy."""
        return ErrorGuidance(
            title="State was already copied to catalog state",
            checks=["Was the upgrade already run against this server?"],
            fixes=[
                "If only the directory layout is missing, restore the project from backup "
                "and re-run the upgrade against a server without copied state",
            ],
        )

    @staticmethod
    def get_duplicate_state(error: str) -> ErrorGuidance:
        """Guidance when the destination already has migration records."""
        return ErrorGuidance(
            title="Catalog state already has migrations for the target database",
            checks=[error, "Another project or an earlier run may have written the records"],
            fixes=["Choose a different database name or clear the catalog state on the server"],
        )

    @staticmethod
    def get_store_unavailable() -> ErrorGuidance:
        """Guidance when a state store cannot be reached."""
        return ErrorGuidance(
            title="A migration state store is unavailable",
            checks=[
                "Server endpoint and admin secret are correct",
                "The migrations table exists in the database",
            ],
            fixes=["Apply at least one migration with the v2 tooling, or fix connectivity"],
        )

    @staticmethod
    def get_filesystem(error: str) -> ErrorGuidance:
        """Guidance for project directory failures."""
        return ErrorGuidance(
            title="Could not reorganize the project directory",
            checks=[error, "Directory permissions and free disk space"],
            fixes=[
                "Originals are only deleted after every copy succeeded; "
                "fix the problem and re-run the upgrade to resume",
            ],
        )

    @staticmethod
    def get_config_persist() -> ErrorGuidance:
        """Guidance when config.yaml could not be written."""
        return ErrorGuidance(
            title="Could not write the new config file",
            checks=["config.yaml is writable"],
            fixes=[
                "Directories are already reorganized; re-run the upgrade to resume "
                "from the config step",
            ],
        )

    @staticmethod
    def get_resync() -> ErrorGuidance:
        """Guidance when the metadata export failed after the version bump."""
        return ErrorGuidance(
            title="Metadata could not be refreshed from the server",
            checks=["Server is reachable"],
            fixes=["The project is already on config v3; re-run only the resync step"],
            examples=["project-upgrader resync"],
        )

    @classmethod
    def for_error(cls, error: UpgradeError) -> ErrorGuidance | None:
        """Pick guidance for an upgrade error, if any applies."""
        if isinstance(error, NoSourcesFoundError):
            return cls.get_no_sources()
        if isinstance(error, StateCopyAlreadyCompleted):
            return cls.get_state_already_copied()
        if isinstance(error, AmbiguousTargetError):
            return cls.get_ambiguous_target()
        if isinstance(error, DuplicateStateConflict):
            return cls.get_duplicate_state(error.message)
        if isinstance(error, StoreUnavailable):
            return cls.get_store_unavailable()
        if isinstance(error, (DirectoryScanError, CopyError, CleanupError)):
            return cls.get_filesystem(error.message)
        if isinstance(error, ConfigPersistError):
            return cls.get_config_persist()
        if isinstance(error, ResyncError):
            return cls.get_resync()
        return None


def exit_code_for(error: UpgradeError) -> int:
    """Map an upgrade error to a process exit code."""
    if isinstance(error, (PreconditionError, AmbiguousTargetError)):
        return EXIT_CODE_PRECONDITION
    if isinstance(error, ResyncError):
        return EXIT_CODE_RESYNC
    return EXIT_CODE_FAILURE
