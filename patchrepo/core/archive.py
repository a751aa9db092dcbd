"""Archive support: enumerate entries, read entry bytes and write entries."""

from __future__ import annotations

import zipfile
from pathlib import Path
from types import TracebackType

from patchrepo.core import manifest
from patchrepo.core.errors import ArchiveReadError, ArgumentError, FormatError
from patchrepo.models.patch import Patch


class PatchArchive:
    """Read-only view over a patch archive.

    Use as a context manager::

        with PatchArchive.open(path) as archive:
            patch = archive.read_patch()
    """

    def __init__(self, path: Path, zf: zipfile.ZipFile) -> None:
        self._path = path
        self._zip = zf

    @classmethod
    def open(cls, path: Path | str) -> PatchArchive:
        if path is None:
            raise ArgumentError("archive path is null")
        path = Path(path)
        if not path.exists():
            raise ArgumentError(f"File does not exist: {path}")
        if path.is_dir():
            raise ArgumentError(f"File is a directory: {path}")
        try:
            return cls(path, zipfile.ZipFile(path))
        except (zipfile.BadZipFile, OSError) as exc:
            raise ArchiveReadError(f"File is not readable: {path}") from exc

    @property
    def path(self) -> Path:
        return self._path

    def __enter__(self) -> PatchArchive:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self._zip.close()

    def entries(self) -> list[str]:
        """File entry names in archive order; directory entries are skipped."""
        return [info.filename for info in self._zip.infolist() if not info.is_dir()]

    def has_entry(self, name: str) -> bool:
        try:
            self._zip.getinfo(name)
        except KeyError:
            return False
        return True

    def read(self, name: str) -> bytes:
        try:
            return self._zip.read(name)
        except KeyError as exc:
            raise FormatError(f"{self._path} is missing {name}") from exc
        except (zipfile.BadZipFile, OSError) as exc:
            raise ArchiveReadError(f"Failed to read {name} from {self._path}") from exc

    def read_patch(self) -> Patch:
        if not self.has_entry(manifest.PATCH_XML):
            raise FormatError(f"Patch is missing file {manifest.PATCH_XML}: {self._path}")
        return manifest.parse(self.read(manifest.PATCH_XML))


def read_patch(path: Path | str) -> Patch:
    """Read and parse the manifest of a patch archive."""
    with PatchArchive.open(path) as archive:
        return archive.read_patch()


class ArchiveWriter:
    """Write-only zip container; entries are deflated."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._zip = zipfile.ZipFile(self._path, "w", compression=zipfile.ZIP_DEFLATED)

    def __enter__(self) -> ArchiveWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._zip.close()

    def write(self, name: str, data: bytes) -> None:
        self._zip.writestr(name, data)

    def write_file(self, name: str, source: Path) -> None:
        self._zip.write(source, arcname=name)
