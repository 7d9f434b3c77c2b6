"""Replace local metadata files with the server's copy."""

import logging
from pathlib import PurePath
from typing import Any

import yaml

from .api_client import APIError, MetadataClient
from .constants import METADATA_VERSION_FILE
from .errors import ResyncError
from .filesystem import FileSystem

logger = logging.getLogger(__name__)


def metadata_to_files(metadata: dict[str, Any]) -> dict[str, bytes]:
    """
    Split exported metadata into files.

    version.yaml holds the metadata version; every other top-level key goes to
    <key>.yaml.

    Args:
        metadata: Exported metadata object

    Returns:
        Mapping of file name to YAML content
    """
    files = {
        METADATA_VERSION_FILE: yaml.safe_dump({"version": metadata.get("version", 3)}).encode("utf-8"),
    }
    for key, value in metadata.items():
        if key == "version":
            continue
        files[f"{key}.yaml"] = yaml.safe_dump(value, sort_keys=False).encode("utf-8")
    return files


class MetadataResync:
    """Fetches canonical metadata from the server and overwrites local files."""

    def __init__(self, client: MetadataClient, fs: FileSystem):
        self.client = client
        self.fs = fs

    def resync(self, metadata_root: PurePath) -> list[str]:
        """
        Overwrite the metadata directory with the server's metadata.

        Existing files are removed rather than merged, so anything that no
        longer exists on the server disappears locally too.

        Args:
            metadata_root: Project metadata directory

        Returns:
            Names of the written files

        Raises:
            ResyncError: If exporting or writing fails
        """
        metadata_root = PurePath(metadata_root)
        try:
            metadata = self.client.export_metadata()
        except APIError as e:
            raise ResyncError(f"exporting metadata from server: {e}") from e

        files = metadata_to_files(metadata)
        try:
            if self.fs.exists(metadata_root):
                for entry in self.fs.read_dir(metadata_root):
                    self.fs.remove(metadata_root / entry.name)
            self.fs.mkdir(metadata_root)
            for name, content in files.items():
                self.fs.write_bytes(metadata_root / name, content)
        except OSError as e:
            raise ResyncError(f"writing metadata to {metadata_root}: {e}") from e

        logger.info("Wrote %d metadata file(s) to %s", len(files), metadata_root)
        return sorted(files)
