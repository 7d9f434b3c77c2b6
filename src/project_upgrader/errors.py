"""Exception hierarchy for Project-Upgrader.

Every failure raised by the upgrade pipeline derives from UpgradeError. The
pipeline tags errors with the step that raised them so callers can tell how far
an upgrade advanced before it stopped.
"""


class UpgradeError(Exception):
    """Base class for upgrade failures."""

    def __init__(self, message: str, step: str | None = None):
        super().__init__(message)
        self.message = message
        self.step = step

    def with_step(self, step: str) -> "UpgradeError":
        """Tag the error with the pipeline step it was raised from."""
        if self.step is None:
            self.step = step
        return self

    def __str__(self) -> str:
        if self.step:
            return f"{self.step}: {self.message}"
        return self.message


class PreconditionError(UpgradeError):
    """Raised when the project or server is not in a state that allows upgrading.

    Covers a wrong starting config version, inconsistent server metadata and a
    server that does not support the multi-source metadata model.
    """


class NoSourcesFoundError(PreconditionError):
    """Raised when the server reports no connected data sources."""


class StateCopyAlreadyCompleted(PreconditionError):
    """Raised when catalog state says a state copy already happened."""


class AmbiguousTargetError(UpgradeError):
    """Raised when the target data source needs a choice nobody made."""


class StoreUnavailable(UpgradeError):
    """Raised when a state store cannot be prepared (unreachable or missing)."""


class StoreIOError(UpgradeError):
    """Raised when reading from or writing to a state store fails."""


class DuplicateStateConflict(UpgradeError):
    """Raised when the destination already holds state for the target source."""


class FilesystemError(UpgradeError):
    """Base class for project directory failures."""


class DirectoryScanError(FilesystemError):
    """Raised when a project root directory cannot be listed."""


class CopyError(FilesystemError):
    """Raised when copying a migration or seed into the new layout fails."""


class CleanupError(FilesystemError):
    """Raised when removing an original entry after a successful copy fails."""


class ConfigPersistError(UpgradeError):
    """Raised when the bumped project config cannot be written."""


class ResyncError(UpgradeError):
    """Raised when refreshing local metadata from the server fails.

    This happens after the version bump is already on disk; re-running the
    resync step alone is enough to recover.
    """
