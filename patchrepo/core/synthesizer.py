"""Manifest synthesis — rebuild patches from stored per-provider fragments.

Update synthesis for an identity that declares add-ons also merges in the
update accepted for each add-on.  One-off synthesis never does: add-on
one-offs are retrieved on their own.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from patchrepo.config import config
from patchrepo.core import layout, manifest
from patchrepo.core.archive import ArchiveWriter
from patchrepo.core.errors import NotFoundError, StorageError
from patchrepo.core.storage import Storage, join, read_text
from patchrepo.core.version_resolver import ProviderVersionResolver
from patchrepo.models.identity import Identity, IdentityInfo, PatchType
from patchrepo.models.patch import Patch
from patchrepo.models.records import ElementRef, ElementsIndex

logger = logging.getLogger(__name__)


class PatchSource(BaseModel):
    """A synthesized manifest plus the stored directories holding its files."""

    model_config = ConfigDict(frozen=True)

    patch_id: str
    identity_key: str
    manifest_xml: str
    record_dir: str | None = None
    element_dirs: tuple[tuple[str, str], ...] = ()  # (element id, storage dir)

    @property
    def patch(self) -> Patch:
        return manifest.parse(self.manifest_xml.encode("utf-8"))

    @property
    def archive_name(self) -> str:
        return f"{self.identity_key}-{self.patch_id}{config.archive_suffix}"


class ManifestSynthesizer:
    """Reassembles manifests and archives from the repository tree."""

    def __init__(self, storage: Storage, resolver: ProviderVersionResolver) -> None:
        self._storage = storage
        self._resolver = resolver

    def read_index(self, record_dir: str) -> ElementsIndex:
        path = join(record_dir, layout.ELEMENTS_INDEX)
        if not self._storage.exists(path):
            raise StorageError(f"Stored patch {record_dir} has no {layout.ELEMENTS_INDEX}")
        return ElementsIndex.parse(read_text(self._storage, path))

    def locate_element(self, provider: str, ref: ElementRef) -> str:
        """Return the directory holding ``ref`` for a provider.

        The index does not say whether the provider is a layer or an
        add-on, nor whether the element is a one-off or an update, so all
        four subtrees are probed; exactly one must match.
        """
        candidates = [
            layout.element_dir(provider, is_add_on, cumulative, ref.version, ref.element_id)
            for is_add_on in (False, True)
            for cumulative in (False, True)
        ]
        found = [c for c in candidates if self._storage.is_dir(c)]
        if not found:
            raise NotFoundError(f"Stored element {ref} of provider {provider} not found")
        if len(found) > 1:
            raise StorageError(f"Element {ref} of provider {provider} is stored twice: {found}")
        return found[0]

    def synthesize(self, identity: IdentityInfo, patch_id: str, is_update: bool) -> PatchSource:
        """Synthesize a stored identity-scoped patch or update.

        Raises
        ------
        NotFoundError
            If the patch is not stored, or an update is synthesized for an
            identity declaring an add-on with no update accepted for it.
        """
        record_dir = layout.identity_record_dir(identity.name, identity.version, is_update, patch_id)
        if not self._storage.is_dir(record_dir):
            kind = "update" if is_update else "patch"
            raise NotFoundError(f"No {kind} {patch_id} stored for {identity.key}")

        element_dirs: list[tuple[str, str]] = []
        fragments: list[str] = []
        index = self.read_index(record_dir)
        for provider, ref in index.entries.items():
            directory = self.locate_element(provider, ref)
            element_dirs.append((ref.element_id, directory))
            fragments.append(read_text(self._storage, join(directory, layout.ELEMENT_XML)))

        if is_update:
            resulting = read_text(self._storage, join(record_dir, layout.UPDATED_VERSION)).strip()
            declared = Identity(
                name=identity.name,
                version=identity.version,
                patch_type=PatchType.CUMULATIVE,
                resulting_version=resulting,
            )
            for addon in identity.add_ons:
                if addon.name in index.entries:
                    continue
                record = self._resolver.find_applicable_update(addon.name, True, identity)
                if record is None:
                    raise NotFoundError(
                        f"No update of add-on {addon.name} is available for {identity.key}"
                    )
                directory = layout.element_dir(addon.name, True, True, record.version, record.successor)
                element_dirs.append((record.successor, directory))
                fragments.append(read_text(self._storage, join(directory, layout.ELEMENT_XML)))
        else:
            declared = Identity(name=identity.name, version=identity.version)

        misc_path = join(record_dir, layout.MISC_FILES_XML)
        misc = read_text(self._storage, misc_path) if self._storage.exists(misc_path) else None

        return PatchSource(
            patch_id=patch_id,
            identity_key=identity.key,
            manifest_xml=manifest.render_patch_xml(patch_id, declared, fragments, misc),
            record_dir=record_dir,
            element_dirs=tuple(element_dirs),
        )

    def synthesize_addon_patch(
        self, identity: IdentityInfo, addon: str, version: str, element_id: str
    ) -> PatchSource:
        """Synthesize a stand-alone one-off for a stored add-on element.

        The element id doubles as the patch id.
        """
        directory = layout.element_dir(addon, True, False, version, element_id)
        if not self._storage.is_dir(directory):
            raise NotFoundError(f"No patch {element_id} stored for add-on {addon} version {version}")
        fragment = read_text(self._storage, join(directory, layout.ELEMENT_XML))
        declared = Identity(name=identity.name, version=identity.version)
        return PatchSource(
            patch_id=element_id,
            identity_key=identity.key,
            manifest_xml=manifest.render_patch_xml(element_id, declared, [fragment]),
            element_dirs=((element_id, directory),),
        )

    def materialize(self, source: PatchSource, target: Path) -> Path:
        """Write a synthesized patch as a stand-alone archive at ``target``."""
        target = Path(target)
        try:
            with ArchiveWriter(target) as writer:
                writer.write(manifest.PATCH_XML, source.manifest_xml.encode("utf-8"))
                for element_id, directory in source.element_dirs:
                    for rel in self._storage.walk_files(directory):
                        if rel in layout.ELEMENT_METADATA:
                            continue
                        writer.write(f"{element_id}/{rel}", self._storage.read_bytes(join(directory, rel)))
                if source.record_dir is not None:
                    for rel in self._storage.walk_files(source.record_dir):
                        if rel in layout.RECORD_METADATA:
                            continue
                        writer.write(rel, self._storage.read_bytes(join(source.record_dir, rel)))
        except OSError as exc:
            raise StorageError(f"Failed to write {target}") from exc
        logger.debug("Materialized %s to %s", source.patch_id, target)
        return target
