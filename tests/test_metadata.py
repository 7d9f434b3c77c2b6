"""Tests for metadata resync."""

from pathlib import PurePath

import pytest
import yaml

from project_upgrader.errors import ResyncError
from project_upgrader.filesystem import MemoryFileSystem
from project_upgrader.metadata import MetadataResync, metadata_to_files
from tests.fakes import FakeMetadataClient

METADATA = PurePath("/project/metadata")


class TestMetadataToFiles:
    """Tests for metadata_to_files."""

    def test_splits_top_level_keys(self) -> None:
        files = metadata_to_files({"version": 3, "sources": [{"name": "default"}], "actions": []})

        assert sorted(files) == ["actions.yaml", "sources.yaml", "version.yaml"]
        assert yaml.safe_load(files["version.yaml"]) == {"version": 3}
        assert yaml.safe_load(files["sources.yaml"]) == [{"name": "default"}]

    def test_version_file_always_written(self) -> None:
        files = metadata_to_files({})

        assert yaml.safe_load(files["version.yaml"]) == {"version": 3}


class TestMetadataResync:
    """Tests for MetadataResync."""

    def test_replaces_existing_files(self) -> None:
        fs = MemoryFileSystem()
        fs.write_bytes(METADATA / "tables.yaml", b"[]")
        fs.write_bytes(METADATA / "databases" / "old.yaml", b"x")

        files = MetadataResync(FakeMetadataClient(), fs).resync(METADATA)  # type: ignore[arg-type]

        assert files == ["sources.yaml", "version.yaml"]
        assert [e.name for e in fs.read_dir(METADATA)] == ["sources.yaml", "version.yaml"]
        sources = yaml.safe_load(fs.read_bytes(METADATA / "sources.yaml"))
        assert sources == [{"name": "default", "kind": "postgres", "tables": []}]

    def test_creates_missing_directory(self) -> None:
        fs = MemoryFileSystem()

        MetadataResync(FakeMetadataClient(), fs).resync(METADATA)  # type: ignore[arg-type]

        assert fs.exists(METADATA / "version.yaml")

    def test_export_failure_leaves_files(self) -> None:
        fs = MemoryFileSystem()
        fs.write_bytes(METADATA / "tables.yaml", b"[]")
        client = FakeMetadataClient()
        client.fail_export = True

        with pytest.raises(ResyncError, match="exporting metadata"):
            MetadataResync(client, fs).resync(METADATA)  # type: ignore[arg-type]

        assert fs.read_bytes(METADATA / "tables.yaml") == b"[]"

    def test_write_failure(self) -> None:
        fs = MemoryFileSystem()
        fs.write_bytes("/project/metadata", b"not a directory")

        with pytest.raises(ResyncError, match="writing metadata"):
            MetadataResync(FakeMetadataClient(), fs).resync(METADATA)  # type: ignore[arg-type]
