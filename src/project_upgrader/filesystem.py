"""Filesystem capability used by the directory reorganizer and metadata resync.

The upgrade never touches the disk directly; it goes through a FileSystem so
the same logic runs against the real project tree or an in-memory fake.
"""

import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePath

from .constants import DIRECTORY_MODE

PathLike = str | PurePath


@dataclass(frozen=True)
class FileEntry:
    """A directory entry: its base name and whether it is a directory."""

    name: str
    is_dir: bool


class FileSystem(ABC):
    """Abstract filesystem operations needed by the upgrade."""

    @abstractmethod
    def stat(self, path: PathLike) -> FileEntry:
        """Describe path, raising FileNotFoundError if it does not exist."""

    @abstractmethod
    def read_dir(self, path: PathLike) -> list[FileEntry]:
        """List immediate children of a directory, sorted by name."""

    @abstractmethod
    def mkdir(self, path: PathLike) -> None:
        """Create a directory and missing parents; existing directories are fine."""

    @abstractmethod
    def remove(self, path: PathLike) -> None:
        """Remove a file or a whole directory tree; missing paths are ignored."""

    @abstractmethod
    def copy_file(self, src: PathLike, dst: PathLike) -> None:
        """Copy a single file, overwriting dst."""

    @abstractmethod
    def copy_dir(self, src: PathLike, dst: PathLike) -> None:
        """Copy a directory tree recursively, merging into dst."""

    @abstractmethod
    def read_bytes(self, path: PathLike) -> bytes:
        """Return the content of a file."""

    @abstractmethod
    def write_bytes(self, path: PathLike, data: bytes) -> None:
        """Write a file, creating missing parent directories."""

    def exists(self, path: PathLike) -> bool:
        """Return True if path exists."""
        try:
            self.stat(path)
        except FileNotFoundError:
            return False
        return True


class LocalFileSystem(FileSystem):
    """FileSystem backed by the real disk."""

    def stat(self, path: PathLike) -> FileEntry:
        p = Path(path)
        if not p.exists() and not p.is_symlink():
            raise FileNotFoundError(f"No such file or directory: {p}")
        return FileEntry(name=p.name, is_dir=p.is_dir())

    def read_dir(self, path: PathLike) -> list[FileEntry]:
        p = Path(path)
        entries = [FileEntry(name=child.name, is_dir=child.is_dir()) for child in p.iterdir()]
        return sorted(entries, key=lambda entry: entry.name)

    def mkdir(self, path: PathLike) -> None:
        Path(path).mkdir(mode=DIRECTORY_MODE, parents=True, exist_ok=True)

    def remove(self, path: PathLike) -> None:
        p = Path(path)
        if p.is_symlink() or p.is_file():
            p.unlink()
        elif p.is_dir():
            shutil.rmtree(p)

    def copy_file(self, src: PathLike, dst: PathLike) -> None:
        target = Path(dst)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(Path(src), target)

    def copy_dir(self, src: PathLike, dst: PathLike) -> None:
        shutil.copytree(Path(src), Path(dst), dirs_exist_ok=True)

    def read_bytes(self, path: PathLike) -> bytes:
        return Path(path).read_bytes()

    def write_bytes(self, path: PathLike, data: bytes) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)


class MemoryFileSystem(FileSystem):
    """In-memory FileSystem for tests and dry runs.

    Paths are normalised to POSIX strings; directories are tracked explicitly so
    empty directories survive.
    """

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.dirs: set[str] = {"/"}

    @staticmethod
    def _key(path: PathLike) -> str:
        key = PurePath(path).as_posix()
        if not key.startswith("/"):
            key = "/" + key
        return key.rstrip("/") or "/"

    @staticmethod
    def _parent(key: str) -> str:
        return PurePath(key).parent.as_posix()

    def _children(self, key: str) -> list[str]:
        prefix = key.rstrip("/") + "/"
        return [p for p in (*self.files, *self.dirs) if p.startswith(prefix) and p != key]

    def stat(self, path: PathLike) -> FileEntry:
        key = self._key(path)
        if key in self.dirs:
            return FileEntry(name=PurePath(key).name, is_dir=True)
        if key in self.files:
            return FileEntry(name=PurePath(key).name, is_dir=False)
        raise FileNotFoundError(f"No such file or directory: {key}")

    def read_dir(self, path: PathLike) -> list[FileEntry]:
        key = self._key(path)
        if key not in self.dirs:
            if key in self.files:
                raise NotADirectoryError(f"Not a directory: {key}")
            raise FileNotFoundError(f"No such file or directory: {key}")
        entries = [
            FileEntry(name=PurePath(child).name, is_dir=child in self.dirs)
            for child in self._children(key)
            if self._parent(child) == key
        ]
        return sorted(entries, key=lambda entry: entry.name)

    def mkdir(self, path: PathLike) -> None:
        key = self._key(path)
        if key in self.files:
            raise FileExistsError(f"File exists: {key}")
        while key not in self.dirs:
            self.dirs.add(key)
            key = self._parent(key)

    def remove(self, path: PathLike) -> None:
        key = self._key(path)
        for child in self._children(key):
            self.files.pop(child, None)
            self.dirs.discard(child)
        self.files.pop(key, None)
        if key != "/":
            self.dirs.discard(key)

    def copy_file(self, src: PathLike, dst: PathLike) -> None:
        data = self.read_bytes(src)
        self.write_bytes(dst, data)

    def copy_dir(self, src: PathLike, dst: PathLike) -> None:
        src_key = self._key(src)
        if src_key not in self.dirs:
            raise FileNotFoundError(f"No such directory: {src_key}")
        dst_key = self._key(dst)
        self.mkdir(dst_key)
        for child in sorted(self._children(src_key)):
            relative = child[len(src_key) :]
            target = dst_key.rstrip("/") + relative
            if child in self.dirs:
                self.mkdir(target)
            else:
                self.write_bytes(target, self.files[child])

    def read_bytes(self, path: PathLike) -> bytes:
        key = self._key(path)
        if key not in self.files:
            raise FileNotFoundError(f"No such file: {key}")
        return self.files[key]

    def write_bytes(self, path: PathLike, data: bytes) -> None:
        key = self._key(path)
        if key in self.dirs:
            raise IsADirectoryError(f"Is a directory: {key}")
        self.mkdir(self._parent(key))
        self.files[key] = bytes(data)
