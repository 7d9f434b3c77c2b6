"""Move migrations and seeds into per-source directories.

Before:  migrations/1610000000000_init/          seeds/seed1.sql
After:   migrations/default/1610000000000_init/  seeds/default/seed1.sql

Entries are copied first and originals are only deleted once every copy has
succeeded, so a failure part-way through never loses a migration.
"""

import logging
from dataclasses import dataclass, field
from pathlib import PurePath

from .constants import LEGACY_METADATA_FILES, MIGRATION_NAME_PATTERN
from .errors import CleanupError, CopyError, DirectoryScanError, PreconditionError
from .filesystem import FileEntry, FileSystem
from .utils import is_valid_directory_name

logger = logging.getLogger(__name__)


@dataclass
class ReorganizeResult:
    """Entries moved by a reorganization."""

    target: str
    migrations: list[str] = field(default_factory=list)
    seeds: list[str] = field(default_factory=list)
    removed_metadata_files: list[str] = field(default_factory=list)


def is_cli_generated_migration(name: str) -> bool:
    """Return True if name follows the <13 digit timestamp>_<name> convention."""
    return MIGRATION_NAME_PATTERN.match(PurePath(name).name) is not None


class DirectoryReorganizer:
    """Relocates change-history artifacts into a target-named subtree."""

    def __init__(self, fs: FileSystem, legacy_metadata_files: tuple[str, ...] = LEGACY_METADATA_FILES):
        self.fs = fs
        self.legacy_metadata_files = legacy_metadata_files

    def _scan(self, root: PurePath, what: str) -> list[FileEntry]:
        try:
            return self.fs.read_dir(root)
        except OSError as e:
            raise DirectoryScanError(f"getting list of {what} to move from {root}: {e}") from e

    def find_migrations(self, migrations_root: PurePath) -> list[FileEntry]:
        """Children of the migrations root that look like generated migrations."""
        entries = self._scan(migrations_root, "migrations")
        return [entry for entry in entries if is_cli_generated_migration(entry.name)]

    def find_seeds(self, seeds_root: PurePath) -> list[FileEntry]:
        """Every non-directory child of the seeds root."""
        return [entry for entry in self._scan(seeds_root, "seed files") if not entry.is_dir]

    def reorganize(
        self,
        migrations_root: PurePath,
        seeds_root: PurePath,
        target: str,
        metadata_root: PurePath | None = None,
    ) -> ReorganizeResult:
        """
        Move migrations and seeds under a directory named after target.

        Args:
            migrations_root: Project migrations directory
            seeds_root: Project seeds directory
            target: Data source name the entries belong to
            metadata_root: Metadata directory holding legacy files to delete

        Returns:
            ReorganizeResult listing what moved

        Raises:
            PreconditionError: If target is not a usable directory name
            DirectoryScanError: If a root cannot be listed
            CopyError: If any copy fails (nothing is deleted in that case)
            CleanupError: If removing an original fails after all copies succeeded
        """
        if not is_valid_directory_name(target):
            raise PreconditionError(f"'{target}' cannot be used as a directory name")

        migrations_root = PurePath(migrations_root)
        seeds_root = PurePath(seeds_root)

        migrations = self.find_migrations(migrations_root)
        seeds = self.find_seeds(seeds_root)
        logger.debug("found %d migration(s) and %d seed file(s) to move", len(migrations), len(seeds))

        target_migrations = migrations_root / target
        target_seeds = seeds_root / target
        for directory in (target_migrations, target_seeds):
            try:
                self.fs.mkdir(directory)
            except OSError as e:
                raise CopyError(f"creating target directory {directory}: {e}") from e

        for entry in migrations:
            self._copy(migrations_root / entry.name, target_migrations / entry.name, entry.is_dir)
        for entry in seeds:
            self._copy(seeds_root / entry.name, target_seeds / entry.name, is_dir=False)

        for entry in migrations:
            self._remove(migrations_root / entry.name)
        for entry in seeds:
            self._remove(seeds_root / entry.name)

        removed_metadata = []
        if metadata_root is not None:
            for name in self.legacy_metadata_files:
                path = PurePath(metadata_root) / name
                if self.fs.exists(path):
                    self._remove(path)
                    removed_metadata.append(name)

        return ReorganizeResult(
            target=target,
            migrations=[entry.name for entry in migrations],
            seeds=[entry.name for entry in seeds],
            removed_metadata_files=removed_metadata,
        )

    def _copy(self, src: PurePath, dst: PurePath, is_dir: bool) -> None:
        try:
            if is_dir:
                self.fs.copy_dir(src, dst)
            else:
                self.fs.copy_file(src, dst)
        except OSError as e:
            raise CopyError(f"moving {src.name} to {dst.parent}: {e}") from e

    def _remove(self, path: PurePath) -> None:
        try:
            self.fs.remove(path)
        except OSError as e:
            raise CleanupError(f"removing original {path}: {e}") from e
