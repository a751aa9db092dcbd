"""Storage capability — byte blobs keyed by root-relative posix paths.

The repository never touches ``pathlib`` for its own tree; it goes
through a ``Storage`` so that the resolution logic can run against an
in-memory backend in tests.

Paths are ``/``-separated and relative to the repository root; the empty
path is the root itself.  A path segment may not be empty, ``.`` or ``..``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from patchrepo.core.errors import ArgumentError, NotFoundError, StorageError

logger = logging.getLogger(__name__)


def join(*parts: str) -> str:
    """Join path segments into a storage key, validating each segment."""
    segments: list[str] = []
    for part in parts:
        if part is None:
            raise ArgumentError("path segment is None")
        if part == "":
            continue
        for segment in part.split("/"):
            if segment in ("", ".", ".."):
                raise ArgumentError(f"Invalid path segment {segment!r} in {part!r}")
            segments.append(segment)
    return "/".join(segments)


@runtime_checkable
class Storage(Protocol):
    """Protocol every repository storage backend implements."""

    def exists(self, path: str) -> bool:
        ...

    def is_dir(self, path: str) -> bool:
        ...

    def list_dir(self, path: str) -> list[str]:
        """Return sorted child names; empty for a missing directory.

        Raises StorageError when ``path`` is a file.
        """
        ...

    def make_dirs(self, path: str) -> None:
        ...

    def read_bytes(self, path: str) -> bytes:
        """Raises NotFoundError when the file does not exist."""
        ...

    def write_bytes(self, path: str, data: bytes) -> None:
        """Create or replace a file, creating parent directories."""
        ...

    def walk_files(self, path: str) -> list[str]:
        """Return sorted file paths under ``path``, relative to it."""
        ...


class FileSystemStorage:
    """Storage backed by a directory on the local filesystem.

    Parameters
    ----------
    root:
        Repository root directory.  Created lazily on first write.
    """

    def __init__(self, root: Path | str) -> None:
        if root is None:
            raise ArgumentError("root is null")
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path:
        return self._root / join(path) if path else self._root

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def is_dir(self, path: str) -> bool:
        return self._resolve(path).is_dir()

    def list_dir(self, path: str) -> list[str]:
        target = self._resolve(path)
        if not target.exists():
            return []
        if not target.is_dir():
            raise StorageError(f"Expected a directory but found a file: {target}")
        try:
            return sorted(child.name for child in target.iterdir())
        except OSError as exc:
            raise StorageError(f"Failed to list {target}") from exc

    def make_dirs(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.mkdir(parents=True, exist_ok=True)
        except (FileExistsError, NotADirectoryError) as exc:
            raise StorageError(f"Expected a directory but found a file: {target}") from exc
        except OSError as exc:
            raise StorageError(f"Failed to create directory {target}") from exc

    def read_bytes(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise NotFoundError(f"File not found: {target}")
        try:
            return target.read_bytes()
        except OSError as exc:
            raise StorageError(f"Failed to read {target}") from exc

    def write_bytes(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        if target.is_dir():
            raise StorageError(f"Expected a file but found a directory: {target}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to write {target}") from exc
        logger.debug("Wrote %d bytes to %s", len(data), target)

    def walk_files(self, path: str) -> list[str]:
        base = self._resolve(path)
        if not base.exists():
            return []
        if not base.is_dir():
            raise StorageError(f"Expected a directory but found a file: {base}")
        return sorted(
            p.relative_to(base).as_posix() for p in base.rglob("*") if p.is_file()
        )


class MemoryStorage:
    """In-memory storage with the same contract as ``FileSystemStorage``."""

    def __init__(self) -> None:
        self._files: dict[str, bytes] = {}
        self._dirs: set[str] = {""}

    def _norm(self, path: str) -> str:
        return join(path) if path else ""

    def _add_parents(self, path: str) -> None:
        parts = path.split("/")
        for i in range(1, len(parts)):
            parent = "/".join(parts[:i])
            if parent in self._files:
                raise StorageError(f"Expected a directory but found a file: {parent}")
            self._dirs.add(parent)

    def exists(self, path: str) -> bool:
        key = self._norm(path)
        return key in self._files or key in self._dirs

    def is_dir(self, path: str) -> bool:
        return self._norm(path) in self._dirs

    def list_dir(self, path: str) -> list[str]:
        key = self._norm(path)
        if key in self._files:
            raise StorageError(f"Expected a directory but found a file: {key}")
        if key not in self._dirs:
            return []
        prefix = f"{key}/" if key else ""
        names = set()
        for candidate in (*self._dirs, *self._files):
            if candidate and candidate.startswith(prefix) and candidate != key:
                names.add(candidate[len(prefix):].split("/", 1)[0])
        return sorted(names)

    def make_dirs(self, path: str) -> None:
        key = self._norm(path)
        if key in self._files:
            raise StorageError(f"Expected a directory but found a file: {key}")
        self._add_parents(key)
        self._dirs.add(key)

    def read_bytes(self, path: str) -> bytes:
        key = self._norm(path)
        try:
            return self._files[key]
        except KeyError:
            raise NotFoundError(f"File not found: {key}") from None

    def write_bytes(self, path: str, data: bytes) -> None:
        key = self._norm(path)
        if key in self._dirs:
            raise StorageError(f"Expected a file but found a directory: {key}")
        self._add_parents(key)
        self._files[key] = bytes(data)

    def walk_files(self, path: str) -> list[str]:
        key = self._norm(path)
        if key in self._files:
            raise StorageError(f"Expected a directory but found a file: {key}")
        prefix = f"{key}/" if key else ""
        return sorted(f[len(prefix):] for f in self._files if f.startswith(prefix))


def read_text(storage: Storage, path: str) -> str:
    return storage.read_bytes(path).decode("utf-8")


def write_text(storage: Storage, path: str, text: str) -> None:
    storage.write_bytes(path, text.encode("utf-8"))


def read_lines(storage: Storage, path: str) -> list[str]:
    """Read a newline-delimited list file; a missing file reads as empty."""
    if not storage.exists(path):
        return []
    return [line.strip() for line in read_text(storage, path).splitlines() if line.strip()]


def append_line(storage: Storage, path: str, line: str) -> None:
    lines = read_lines(storage, path)
    lines.append(line)
    write_text(storage, path, "".join(f"{entry}\n" for entry in lines))


def list_subdirs(storage: Storage, path: str) -> list[str]:
    """Return the sorted names of the directories directly under ``path``."""
    return [name for name in storage.list_dir(path) if storage.is_dir(join(path, name))]
