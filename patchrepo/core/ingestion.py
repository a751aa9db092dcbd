"""Ingestion — decompose an incoming patch archive into repository storage.

A patch whose elements all target add-ons is stored under the add-on
trees only.  Any other patch also gets an identity record directory
holding its elements index, its resulting version (for updates), its
misc-files fragment and the archive content not scoped to an element.

Layer updates are registered on the allow-list of the identity they
produce.  Add-on updates are registered only for the identity of the
patch that shipped them; any other identity-version needs an explicit
acceptance.
"""

from __future__ import annotations

import logging
from pathlib import Path

from patchrepo.core import layout, manifest
from patchrepo.core.archive import PatchArchive
from patchrepo.core.errors import FormatError, StorageError
from patchrepo.core.storage import Storage, join, list_subdirs, write_text
from patchrepo.core.version_resolver import ProviderVersionResolver
from patchrepo.models.identity import IdentityInfo
from patchrepo.models.patch import Patch, PatchElement
from patchrepo.models.records import ElementRef, ElementsIndex

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Stores patch archives into the repository tree.

    Not atomic: a failure partway leaves whatever was already written.
    """

    def __init__(self, storage: Storage, resolver: ProviderVersionResolver) -> None:
        self._storage = storage
        self._resolver = resolver

    def ingest(self, archive_path: Path | str) -> Patch:
        """Ingest one patch archive and return its parsed manifest.

        Raises
        ------
        FormatError
            If the archive has no ``patch.xml`` or the manifest is malformed.
        ArchiveReadError
            If the archive cannot be read.
        StorageError
            On I/O failure, or when an update is already pending for the
            identity-version or provider version.
        """
        with PatchArchive.open(archive_path) as archive:
            patch = archive.read_patch()
            self._check_providers(patch)

            record_dir = None
            if not patch.is_add_on_only:
                record_dir = self._create_identity_record(patch)

            source = IdentityInfo(name=patch.identity.name, version=patch.identity.version)
            produced = source.advanced_to(patch.identity.resulting_version) if patch.is_update else source

            element_dirs: dict[str, str] = {}
            index: dict[str, ElementRef] = {}
            for element in patch.elements:
                version, target = self._store_element(element, patch, source, produced)
                element_dirs[element.id] = target
                index[element.provider.name] = ElementRef(element_id=element.id, version=version)

            self._copy_content(archive, element_dirs, record_dir)

        if record_dir is not None:
            write_text(
                self._storage,
                join(record_dir, layout.ELEMENTS_INDEX),
                ElementsIndex(entries=index).serialize(),
            )
            if patch.is_update:
                write_text(
                    self._storage,
                    join(record_dir, layout.UPDATED_VERSION),
                    patch.identity.resulting_version,
                )
            if patch.misc_files:
                write_text(self._storage, join(record_dir, layout.MISC_FILES_XML), patch.misc_files)

        logger.info(
            "Added %s %s for %s (%d element(s))",
            "update" if patch.is_update else "patch",
            patch.patch_id, patch.identity.key, len(patch.elements),
        )
        return patch

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    @staticmethod
    def _check_providers(patch: Patch) -> None:
        seen: set[str] = set()
        for element in patch.elements:
            if element.provider.name in seen:
                raise FormatError(
                    f"Patch {patch.patch_id} has more than one element for provider "
                    f"{element.provider.name}"
                )
            seen.add(element.provider.name)

    def _create_identity_record(self, patch: Patch) -> str:
        identity = patch.identity
        self._storage.make_dirs(layout.identity_dir(identity.name, identity.version))
        subtree = layout.identity_subtree(identity.name, identity.version, patch.is_update)
        if patch.is_update:
            pending = list_subdirs(self._storage, subtree)
            if pending:
                raise StorageError(
                    f"There already is an update available for {identity.key}: {pending[0]}"
                )
        record_dir = join(subtree, patch.patch_id)
        if self._storage.exists(record_dir):
            raise StorageError(f"Patch {patch.patch_id} is already stored for {identity.key}")
        self._storage.make_dirs(record_dir)
        return record_dir

    def _store_element(
        self,
        element: PatchElement,
        patch: Patch,
        source: IdentityInfo,
        produced: IdentityInfo,
    ) -> tuple[str, str]:
        provider = element.provider
        version = self._resolver.resolve_provider_version(provider.name, provider.is_add_on, source)

        if provider.is_cumulative:
            record = self._resolver.read_record(provider.name, provider.is_add_on, version)
            if record.successor is not None:
                raise StorageError(
                    f"There already is an update for {provider.name} version {version}: "
                    f"{record.successor}"
                )

        target = layout.element_dir(
            provider.name, provider.is_add_on, provider.is_cumulative, version, element.id
        )
        if self._storage.exists(target):
            raise StorageError(f"Element {element.id} is already stored at {target}")
        self._storage.make_dirs(target)
        write_text(self._storage, join(target, layout.ELEMENT_XML), element.fragment)
        write_text(self._storage, join(target, layout.TARGET_VERSION), patch.identity.version)

        if provider.is_cumulative:
            allowed = source if provider.is_add_on else produced
            self._resolver.allow(
                provider.name, provider.is_add_on, version, allowed.name, allowed.version,
                create_if_missing=True,
            )
        logger.debug("Stored element %s of %s at %s", element.id, patch.patch_id, target)
        return version, target

    def _copy_content(
        self,
        archive: PatchArchive,
        element_dirs: dict[str, str],
        record_dir: str | None,
    ) -> None:
        for name in archive.entries():
            if name == manifest.PATCH_XML:
                continue
            head, sep, rest = name.partition("/")
            if sep and rest and head in element_dirs:
                if rest in layout.ELEMENT_METADATA:
                    raise FormatError(f"Archive entry {name} collides with element metadata")
                self._storage.write_bytes(join(element_dirs[head], rest), archive.read(name))
            elif record_dir is None:
                logger.warning(
                    "Skipping %s: add-on only patch %s has no identity-level content",
                    name, archive.path.name,
                )
            else:
                if name in layout.RECORD_METADATA:
                    raise FormatError(f"Archive entry {name} collides with patch metadata")
                self._storage.write_bytes(join(record_dir, name), archive.read(name))
