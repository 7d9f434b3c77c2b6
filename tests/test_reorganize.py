"""Tests for the directory reorganizer."""

from pathlib import Path, PurePath

import pytest

from project_upgrader.errors import CleanupError, CopyError, DirectoryScanError, PreconditionError
from project_upgrader.filesystem import LocalFileSystem, MemoryFileSystem
from project_upgrader.reorganize import DirectoryReorganizer, is_cli_generated_migration

MIGRATIONS = PurePath("/project/migrations")
SEEDS = PurePath("/project/seeds")
METADATA = PurePath("/project/metadata")


def _memory_project() -> MemoryFileSystem:
    fs = MemoryFileSystem()
    fs.write_bytes(MIGRATIONS / "1610000000000_init" / "up.sql", b"CREATE TABLE a();")
    fs.write_bytes(MIGRATIONS / "1610000000000_init" / "down.sql", b"DROP TABLE a;")
    fs.write_bytes(MIGRATIONS / "1610000000001_add_b" / "up.sql", b"CREATE TABLE b();")
    fs.write_bytes(MIGRATIONS / "README.md", b"notes")
    fs.mkdir(MIGRATIONS / "scratch")
    fs.write_bytes(SEEDS / "seed1.sql", b"INSERT 1")
    fs.write_bytes(SEEDS / "seed2.sql", b"INSERT 2")
    fs.mkdir(SEEDS / "archive")
    fs.write_bytes(METADATA / "tables.yaml", b"[]")
    fs.write_bytes(METADATA / "functions.yaml", b"[]")
    fs.write_bytes(METADATA / "actions.yaml", b"actions: []")
    return fs


class FailingCopyFileSystem(MemoryFileSystem):
    """MemoryFileSystem whose copies of one entry fail."""

    def __init__(self, fail_on: str):
        super().__init__()
        self.fail_on = fail_on
        self.removed: list[str] = []

    def copy_dir(self, src, dst) -> None:
        if PurePath(src).name == self.fail_on:
            raise PermissionError(f"Permission denied: {src}")
        super().copy_dir(src, dst)

    def copy_file(self, src, dst) -> None:
        if PurePath(src).name == self.fail_on:
            raise OSError(f"disk full: {src}")
        super().copy_file(src, dst)

    def remove(self, path) -> None:
        self.removed.append(str(path))
        super().remove(path)


class FailingRemoveFileSystem(MemoryFileSystem):
    """MemoryFileSystem that refuses to delete anything."""

    def remove(self, path) -> None:
        raise PermissionError(f"Permission denied: {path}")


class TestIsCliGeneratedMigration:
    """Tests for migration name matching."""

    @pytest.mark.parametrize(
        "name",
        ["1610000000000_init", "1610000000001_add_table", "0000000000000_x", "1610000000000_"],
    )
    def test_matches(self, name: str) -> None:
        assert is_cli_generated_migration(name) is True

    @pytest.mark.parametrize(
        "name",
        ["161000000000_short", "16100000000000_long", "init", "1610000000000", "README.md", "default"],
    )
    def test_rejects(self, name: str) -> None:
        assert is_cli_generated_migration(name) is False


class TestFindEntries:
    """Tests for migration and seed discovery."""

    def test_find_migrations_filters_by_name(self) -> None:
        reorganizer = DirectoryReorganizer(_memory_project())

        names = [entry.name for entry in reorganizer.find_migrations(MIGRATIONS)]

        assert names == ["1610000000000_init", "1610000000001_add_b"]

    def test_find_seeds_skips_directories(self) -> None:
        reorganizer = DirectoryReorganizer(_memory_project())

        names = [entry.name for entry in reorganizer.find_seeds(SEEDS)]

        assert names == ["seed1.sql", "seed2.sql"]

    def test_missing_root_is_scan_error(self) -> None:
        reorganizer = DirectoryReorganizer(MemoryFileSystem())

        with pytest.raises(DirectoryScanError, match="migrations"):
            reorganizer.find_migrations(MIGRATIONS)


class TestReorganize:
    """Tests for DirectoryReorganizer.reorganize."""

    def test_moves_matching_entries(self) -> None:
        fs = _memory_project()

        result = DirectoryReorganizer(fs).reorganize(MIGRATIONS, SEEDS, "default", METADATA)

        assert result.target == "default"
        assert result.migrations == ["1610000000000_init", "1610000000001_add_b"]
        assert result.seeds == ["seed1.sql", "seed2.sql"]
        assert [e.name for e in fs.read_dir(MIGRATIONS)] == ["README.md", "default", "scratch"]
        assert [e.name for e in fs.read_dir(SEEDS)] == ["archive", "default"]
        assert [e.name for e in fs.read_dir(MIGRATIONS / "default")] == [
            "1610000000000_init",
            "1610000000001_add_b",
        ]
        assert [e.name for e in fs.read_dir(SEEDS / "default")] == ["seed1.sql", "seed2.sql"]

    def test_contents_are_preserved(self) -> None:
        fs = _memory_project()
        before = {
            "up": fs.read_bytes(MIGRATIONS / "1610000000000_init" / "up.sql"),
            "down": fs.read_bytes(MIGRATIONS / "1610000000000_init" / "down.sql"),
            "seed": fs.read_bytes(SEEDS / "seed2.sql"),
        }

        DirectoryReorganizer(fs).reorganize(MIGRATIONS, SEEDS, "default")

        moved = MIGRATIONS / "default" / "1610000000000_init"
        assert fs.read_bytes(moved / "up.sql") == before["up"]
        assert fs.read_bytes(moved / "down.sql") == before["down"]
        assert fs.read_bytes(SEEDS / "default" / "seed2.sql") == before["seed"]

    def test_removes_legacy_metadata_files_only(self) -> None:
        fs = _memory_project()

        result = DirectoryReorganizer(fs).reorganize(MIGRATIONS, SEEDS, "default", METADATA)

        assert result.removed_metadata_files == ["functions.yaml", "tables.yaml"]
        assert [e.name for e in fs.read_dir(METADATA)] == ["actions.yaml"]

    def test_missing_legacy_metadata_files_are_ignored(self) -> None:
        fs = _memory_project()
        fs.remove(METADATA / "functions.yaml")

        result = DirectoryReorganizer(fs).reorganize(MIGRATIONS, SEEDS, "default", METADATA)

        assert result.removed_metadata_files == ["tables.yaml"]

    def test_no_matches_only_creates_targets(self) -> None:
        fs = MemoryFileSystem()
        fs.write_bytes(MIGRATIONS / "notes.txt", b"x")
        fs.mkdir(SEEDS)

        result = DirectoryReorganizer(fs).reorganize(MIGRATIONS, SEEDS, "main")

        assert result.migrations == []
        assert result.seeds == []
        assert fs.read_dir(MIGRATIONS / "main") == []
        assert fs.read_dir(SEEDS / "main") == []
        assert fs.read_bytes(MIGRATIONS / "notes.txt") == b"x"

    def test_missing_seeds_root_is_scan_error(self) -> None:
        fs = MemoryFileSystem()
        fs.write_bytes(MIGRATIONS / "1610000000000_init" / "up.sql", b"x")

        with pytest.raises(DirectoryScanError, match="seed files"):
            DirectoryReorganizer(fs).reorganize(MIGRATIONS, SEEDS, "default")

        assert fs.exists(MIGRATIONS / "1610000000000_init" / "up.sql")
        assert not fs.exists(MIGRATIONS / "default")

    @pytest.mark.parametrize("target", ["", ".", "..", "a/b", "bad\0name"])
    def test_invalid_target_is_rejected(self, target: str) -> None:
        fs = _memory_project()

        with pytest.raises(PreconditionError):
            DirectoryReorganizer(fs).reorganize(MIGRATIONS, SEEDS, target)

        assert fs.exists(MIGRATIONS / "1610000000000_init")

    def test_copy_failure_deletes_nothing(self) -> None:
        fs = FailingCopyFileSystem(fail_on="1610000000001_add_b")
        fs.write_bytes(MIGRATIONS / "1610000000000_init" / "up.sql", b"a")
        fs.write_bytes(MIGRATIONS / "1610000000001_add_b" / "up.sql", b"b")
        fs.write_bytes(SEEDS / "seed1.sql", b"s")

        with pytest.raises(CopyError, match="1610000000001_add_b"):
            DirectoryReorganizer(fs).reorganize(MIGRATIONS, SEEDS, "default", METADATA)

        assert fs.removed == []
        assert fs.read_bytes(MIGRATIONS / "1610000000000_init" / "up.sql") == b"a"
        assert fs.read_bytes(MIGRATIONS / "1610000000001_add_b" / "up.sql") == b"b"
        assert fs.read_bytes(SEEDS / "seed1.sql") == b"s"

    def test_seed_copy_failure_deletes_nothing(self) -> None:
        fs = FailingCopyFileSystem(fail_on="seed1.sql")
        fs.write_bytes(MIGRATIONS / "1610000000000_init" / "up.sql", b"a")
        fs.write_bytes(SEEDS / "seed1.sql", b"s")

        with pytest.raises(CopyError):
            DirectoryReorganizer(fs).reorganize(MIGRATIONS, SEEDS, "default")

        assert fs.removed == []
        assert fs.exists(MIGRATIONS / "1610000000000_init" / "up.sql")

    def test_rerun_after_copy_failure_completes(self) -> None:
        fs = FailingCopyFileSystem(fail_on="seed1.sql")
        fs.write_bytes(MIGRATIONS / "1610000000000_init" / "up.sql", b"a")
        fs.write_bytes(SEEDS / "seed1.sql", b"s")
        with pytest.raises(CopyError):
            DirectoryReorganizer(fs).reorganize(MIGRATIONS, SEEDS, "default")

        fs.fail_on = ""
        result = DirectoryReorganizer(fs).reorganize(MIGRATIONS, SEEDS, "default")

        assert result.migrations == ["1610000000000_init"]
        assert fs.read_bytes(MIGRATIONS / "default" / "1610000000000_init" / "up.sql") == b"a"
        assert fs.read_bytes(SEEDS / "default" / "seed1.sql") == b"s"
        assert not fs.exists(SEEDS / "seed1.sql")

    def test_cleanup_failure_after_copies(self) -> None:
        fs = FailingRemoveFileSystem()
        fs.write_bytes(MIGRATIONS / "1610000000000_init" / "up.sql", b"a")
        fs.mkdir(SEEDS)

        with pytest.raises(CleanupError, match="removing original"):
            DirectoryReorganizer(fs).reorganize(MIGRATIONS, SEEDS, "default")

        assert fs.read_bytes(MIGRATIONS / "default" / "1610000000000_init" / "up.sql") == b"a"
        assert fs.read_bytes(MIGRATIONS / "1610000000000_init" / "up.sql") == b"a"

    def test_custom_legacy_metadata_files(self) -> None:
        fs = _memory_project()

        result = DirectoryReorganizer(fs, ("actions.yaml",)).reorganize(
            MIGRATIONS, SEEDS, "default", METADATA
        )

        assert result.removed_metadata_files == ["actions.yaml"]
        assert fs.exists(METADATA / "tables.yaml")

    def test_local_filesystem(self, tmp_path: Path) -> None:
        migrations = tmp_path / "migrations"
        seeds = tmp_path / "seeds"
        (migrations / "1610000000000_init").mkdir(parents=True)
        (migrations / "1610000000000_init" / "up.sql").write_bytes(b"CREATE TABLE a();")
        (migrations / "not_a_migration").mkdir()
        seeds.mkdir()
        (seeds / "seed1.sql").write_bytes(b"INSERT 1")

        result = DirectoryReorganizer(LocalFileSystem()).reorganize(migrations, seeds, "default")

        assert result.migrations == ["1610000000000_init"]
        assert (migrations / "default" / "1610000000000_init" / "up.sql").read_bytes() == (
            b"CREATE TABLE a();"
        )
        assert (seeds / "default" / "seed1.sql").read_bytes() == b"INSERT 1"
        assert not (migrations / "1610000000000_init").exists()
        assert not (seeds / "seed1.sql").exists()
        assert (migrations / "not_a_migration").is_dir()
