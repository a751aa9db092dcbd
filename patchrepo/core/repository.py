"""Patch repository — the public façade over one repository root.

Every patch archive added is decomposed per provider.  Elements land in
``layers/`` or ``addons/`` under the provider version they apply to; a
patch that targets anything other than add-ons also gets an
``<identity>-<version>/`` record indexing its elements::

    ROOT
    |-- layers
    |   `-- base
    |       |-- patches/<providerVersion>/<elementId>/...
    |       `-- updates/<providerVersion>/<elementId>/...
    |-- addons
    |   `-- addon1/...
    `-- product-1.0.1
        |-- patches/<patchId>/elements.txt
        `-- updates/<updateId>/{elements.txt, updated-version.txt}

Retrieval re-synthesizes manifests from the stored fragments and writes
fresh archives; nothing stored is ever handed out directly.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from patchrepo.config import config
from patchrepo.core import layout
from patchrepo.core.bundle_builder import PatchBundleBuilder
from patchrepo.core.chain_walker import ChainWalker, pending_update_id
from patchrepo.core.errors import ArgumentError, StorageError
from patchrepo.core.ingestion import IngestionPipeline
from patchrepo.core.storage import FileSystemStorage, Storage, list_subdirs
from patchrepo.core.synthesizer import ManifestSynthesizer, PatchSource
from patchrepo.core.version_resolver import ProviderVersionResolver
from patchrepo.models.identity import IdentityInfo
from patchrepo.models.patch import Patch

logger = logging.getLogger(__name__)


class PatchRepository:
    """A patch repository bound to a single root.

    Holds no state besides its storage; every query reads the tree.

    Parameters
    ----------
    root:
        Repository root directory (filesystem backend).
    storage:
        Alternative storage backend; takes precedence over ``root``.
    """

    def __init__(self, root: Path | str | None = None, *, storage: Storage | None = None) -> None:
        if storage is None:
            if root is None:
                raise ArgumentError("root is null")
            storage = FileSystemStorage(root)
        self._storage = storage
        self._resolver = ProviderVersionResolver(storage)
        self._ingestion = IngestionPipeline(storage, self._resolver)
        self._synthesizer = ManifestSynthesizer(storage, self._resolver)

    @classmethod
    def create(cls, root: Path | str) -> PatchRepository:
        return cls(root)

    @property
    def storage(self) -> Storage:
        return self._storage

    @property
    def resolver(self) -> ProviderVersionResolver:
        return self._resolver

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def add_patch(self, archive: Path | str) -> Patch:
        """Ingest a patch archive; returns its parsed manifest."""
        if archive is None:
            raise ArgumentError("patch file is null")
        return self._ingestion.ingest(archive)

    def accept_addon_for_identity(
        self,
        addon_name: str,
        update_id: str,
        identity_name: str,
        identity_version: str,
        create_if_missing: bool = False,
    ) -> bool:
        """Allow an identity-version to consume the add-on update stored for ``update_id``.

        ``update_id`` names the add-on version the update applies to.
        Returns False when the identity was already allowed.

        Raises
        ------
        NotFoundError
            If no such update directory exists and ``create_if_missing`` is False.
        """
        for name, value in (
            ("addon_name", addon_name),
            ("update_id", update_id),
            ("identity_name", identity_name),
            ("identity_version", identity_version),
        ):
            if not value:
                raise ArgumentError(f"{name} is null")
        return self._resolver.allow(
            addon_name, True, update_id, identity_name, identity_version,
            create_if_missing=create_if_missing,
        )

    # ------------------------------------------------------------------
    # Existence queries
    # ------------------------------------------------------------------

    def has_patches(self, identity_name: str, identity_version: str) -> bool:
        return bool(self._patch_ids(IdentityInfo(name=identity_name, version=identity_version)))

    def has_update(self, identity_name: str, identity_version: str) -> bool:
        subtree = layout.identity_subtree(identity_name, identity_version, True)
        return bool(list_subdirs(self._storage, subtree))

    def has_addon_patches(self, identity: IdentityInfo) -> bool:
        return any(
            list_subdirs(self._storage, layout.provider_version_dir(name, True, False, version))
            for name, version in self._addon_selection(identity)
        )

    def has_addon_updates(self, identity: IdentityInfo) -> bool:
        """True if a declared add-on has an update accepted for this identity."""
        for addon in identity.add_ons:
            record = self._resolver.read_record(addon.name, True, addon.version)
            if record.successor is not None and record.allows(identity.key):
                return True
        return False

    # ------------------------------------------------------------------
    # Info
    # ------------------------------------------------------------------

    def get_patches_info(self, identity: IdentityInfo) -> list[Patch]:
        """One-off patches for the identity, plus those of its declared add-ons."""
        return [source.patch for source in self._patch_sources(identity)]

    def get_addon_patches_info(self, identity: IdentityInfo) -> list[Patch]:
        """Add-on one-offs; all stored add-ons when the identity declares none."""
        return [source.patch for source in self._addon_patch_sources(identity)]

    def get_update_info(self, identity: IdentityInfo) -> Patch | None:
        update_id = pending_update_id(self._storage, identity)
        if update_id is None:
            return None
        return self._synthesizer.synthesize(identity, update_id, is_update=True).patch

    def get_patch_xml(self, identity: IdentityInfo, patch_id: str, is_update: bool = False) -> str:
        return self._synthesizer.synthesize(identity, patch_id, is_update).manifest_xml

    # ------------------------------------------------------------------
    # Materialization
    # ------------------------------------------------------------------

    def get_patch(
        self, identity: IdentityInfo, patch_id: str, is_update: bool, output: Path | str
    ) -> Path:
        """Write one stored patch or update as a stand-alone archive."""
        output = self._check_output(output)
        source = self._synthesizer.synthesize(identity, patch_id, is_update)
        return self._synthesizer.materialize(source, output)

    def bundle_patches(self, identity: IdentityInfo, target_dir: Path | str) -> Path | None:
        """Bundle every one-off for the identity into ``<name>-<version>-patches.zip``.

        Returns None when there is nothing to bundle.
        """
        if target_dir is None:
            raise ArgumentError("targetDir is null")
        target_dir = Path(target_dir)
        if target_dir.exists() and not target_dir.is_dir():
            raise StorageError(f"Target path is not a directory {target_dir}")
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / f"{identity.key}-{layout.PATCHES}{config.archive_suffix}"

        with self._work_dir() as work_dir:
            builder = PatchBundleBuilder()
            self._add_patches(identity, builder, work_dir)
            if builder.build(target) is None:
                return None
        return target

    def get_update_to_next(
        self, identity: IdentityInfo, include_patches: bool, output: Path | str
    ) -> Path | None:
        """Write the single next update (and optionally its target's one-offs)."""
        output = self._check_output(output)
        with self._work_dir() as work_dir:
            update = self._walker(work_dir).get_update_only(identity)
            if update is None:
                return None
            if not include_patches:
                shutil.copyfile(update.path, output)
                return output
            builder = PatchBundleBuilder().add(update.path)
            advanced = identity.advanced_to(update.patch.identity.resulting_version)
            self._add_patches(advanced, builder, work_dir)
            builder.build(output)
        return output

    def get_update_to_latest(
        self, identity: IdentityInfo, include_patches: bool, output: Path | str
    ) -> Path | None:
        return self.get_update(identity, None, include_patches, output)

    def get_update(
        self,
        identity: IdentityInfo,
        to_version: str | None,
        include_patches: bool,
        output: Path | str,
    ) -> Path | None:
        """Bundle the chain of updates from ``identity`` to ``to_version``.

        Returns None without writing when the identity has no pending update.

        Raises
        ------
        ChainIncompleteError
            If ``to_version`` cannot be reached.
        """
        output = self._check_output(output)
        with self._work_dir() as work_dir:
            if pending_update_id(self._storage, identity) is None:
                return None
            walker = self._walker(work_dir)
            walk = walker.walk(identity, to_version)
            builder = PatchBundleBuilder()
            for update in walk.updates:
                builder.add(update.path)
            if include_patches:
                self._add_patches(walk.final_identity, builder, work_dir)
            if builder.build(output) is None:
                return None
        logger.info(
            "Wrote %d update(s) from %s to %s into %s",
            len(walk.updates), identity.key, walk.final_identity.version, output,
        )
        return output

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _walker(self, work_dir: Path) -> ChainWalker:
        return ChainWalker(self._storage, self._synthesizer, work_dir)

    @staticmethod
    def _work_dir() -> tempfile.TemporaryDirectory:
        return tempfile.TemporaryDirectory(prefix="patchrepo-", dir=config.temp_dir)

    @staticmethod
    def _check_output(output: Path | str) -> Path:
        if output is None:
            raise ArgumentError("target file is null")
        output = Path(output)
        if output.is_dir():
            raise StorageError(f"Target file is a directory {output}")
        output.parent.mkdir(parents=True, exist_ok=True)
        return output

    def _patch_ids(self, identity: IdentityInfo) -> list[str]:
        return list_subdirs(
            self._storage, layout.identity_subtree(identity.name, identity.version, False)
        )

    def _addon_selection(self, identity: IdentityInfo) -> list[tuple[str, str]]:
        if identity.has_add_ons:
            return [(addon.name, addon.version) for addon in identity.add_ons]
        return [
            (name, self._resolver.resolve_provider_version(name, True, identity))
            for name in list_subdirs(self._storage, layout.ADDONS)
        ]

    def _addon_patch_sources(self, identity: IdentityInfo) -> list[PatchSource]:
        sources = []
        for name, version in self._addon_selection(identity):
            version_dir = layout.provider_version_dir(name, True, False, version)
            for element_id in list_subdirs(self._storage, version_dir):
                sources.append(
                    self._synthesizer.synthesize_addon_patch(identity, name, version, element_id)
                )
        return sources

    def _patch_sources(self, identity: IdentityInfo) -> list[PatchSource]:
        sources = [
            self._synthesizer.synthesize(identity, patch_id, is_update=False)
            for patch_id in self._patch_ids(identity)
        ]
        if identity.has_add_ons:
            sources.extend(self._addon_patch_sources(identity))
        return sources

    def _add_patches(self, identity: IdentityInfo, builder: PatchBundleBuilder, work_dir: Path) -> None:
        for source in self._patch_sources(identity):
            target = Path(work_dir) / source.archive_name
            n = 1
            while target.exists():
                target = target.with_name(
                    f"{source.identity_key}-{source.patch_id}-{n}{config.archive_suffix}"
                )
                n += 1
            builder.add(self._synthesizer.materialize(source, target))
