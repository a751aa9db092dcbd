"""Bundle builder — pack materialized patch archives into one container.

The bundle holds every input archive verbatim under its file name plus a
``patches.xml`` index of ``(patch id, file name)`` pairs in input order.
Inputs are not de-duplicated.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from patchrepo.core import manifest
from patchrepo.core.archive import ArchiveWriter, read_patch
from patchrepo.core.errors import ArgumentError, BundleIOError
from patchrepo.models.records import BundledPatchEntry

logger = logging.getLogger(__name__)


class PatchBundleBuilder:
    """Accumulates patch archive paths and writes them as one bundle."""

    def __init__(self) -> None:
        self._files: list[Path] = []

    def add(self, patch_file: Path | str) -> PatchBundleBuilder:
        if patch_file is None:
            raise ArgumentError("patch file is null")
        self._files.append(Path(patch_file))
        return self

    def __len__(self) -> int:
        return len(self._files)

    def build(
        self,
        target: Path | str,
        *,
        delete_inputs_on_success: bool = False,
    ) -> list[BundledPatchEntry] | None:
        """Write the bundle to ``target`` and return its index entries.

        Returns None without writing anything when no file was added.  The
        bundle is written to a temporary file next to ``target`` and renamed
        into place, so a failed build leaves ``target`` untouched.

        Raises
        ------
        BundleIOError
            If an input is missing, ``target`` is a directory, or writing fails.
        """
        if target is None:
            raise ArgumentError("target file is null")
        target = Path(target)
        if target.is_dir():
            raise BundleIOError(f"Target file is a directory {target}")
        if not self._files:
            return None
        for patch_file in self._files:
            if not patch_file.is_file():
                raise BundleIOError(f"Referenced patch file does not exist {patch_file}")

        entries = [
            BundledPatchEntry(patch_id=read_patch(f).patch_id, path=f.name) for f in self._files
        ]

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
            )
            os.close(fd)
        except OSError as exc:
            raise BundleIOError(f"Failed to create (or open for writing) file {target}") from exc

        tmp_path = Path(tmp_name)
        try:
            with ArchiveWriter(tmp_path) as writer:
                for patch_file in self._files:
                    writer.write_file(patch_file.name, patch_file)
                writer.write(manifest.BUNDLE_XML, manifest.serialize_bundle_index(entries))
            os.replace(tmp_path, target)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise BundleIOError(f"Failed to write bundle {target}") from exc

        logger.info("Bundled %d patch(es) into %s", len(entries), target)
        if delete_inputs_on_success:
            for patch_file in self._files:
                patch_file.unlink(missing_ok=True)
        return entries
