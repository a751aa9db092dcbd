"""Update chain traversal.

Follows the single pending update of each identity-version from a
starting version toward a target version (or until no update is left),
materializing every hop into ``work_dir``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from patchrepo.core import layout
from patchrepo.core.errors import ChainIncompleteError, StorageError
from patchrepo.core.storage import Storage, list_subdirs
from patchrepo.core.synthesizer import ManifestSynthesizer
from patchrepo.models.identity import IdentityInfo
from patchrepo.models.patch import Patch

logger = logging.getLogger(__name__)


def pending_update_id(storage: Storage, identity: IdentityInfo) -> str | None:
    """Return the id of the update stored for ``identity``, if any.

    Raises
    ------
    StorageError
        If more than one update is stored for the identity-version.
    """
    subtree = layout.identity_subtree(identity.name, identity.version, True)
    updates = list_subdirs(storage, subtree)
    if not updates:
        return None
    if len(updates) > 1:
        raise StorageError(f"There is more than one update for {identity.key}: {updates}")
    return updates[0]


class MaterializedPatch(BaseModel):
    """A patch written to a (temporary) archive file."""

    model_config = ConfigDict(frozen=True)

    path: Path
    patch: Patch


class ChainWalk(BaseModel):
    """Result of a walk: the update archives in order and where it ended."""

    model_config = ConfigDict(frozen=True)

    updates: tuple[MaterializedPatch, ...] = ()
    final_identity: IdentityInfo


class ChainWalker:
    """Walks linked cumulative updates for an identity.

    Parameters
    ----------
    storage:
        The repository storage backend.
    synthesizer:
        Used to rebuild and write each update archive.
    work_dir:
        Directory receiving the materialized update archives.
    """

    def __init__(self, storage: Storage, synthesizer: ManifestSynthesizer, work_dir: Path) -> None:
        self._storage = storage
        self._synthesizer = synthesizer
        self._work_dir = Path(work_dir)

    def get_update_only(self, identity: IdentityInfo) -> MaterializedPatch | None:
        update_id = pending_update_id(self._storage, identity)
        if update_id is None:
            return None
        source = self._synthesizer.synthesize(identity, update_id, is_update=True)
        path = self._synthesizer.materialize(source, self._work_dir / source.archive_name)
        return MaterializedPatch(path=path, patch=source.patch)

    def walk(self, identity: IdentityInfo, to_version: str | None = None) -> ChainWalk:
        """Collect updates from ``identity`` until ``to_version`` is reached.

        With ``to_version`` None the walk continues until an identity-version
        has no pending update.  The first pending update is always taken, so
        ``to_version`` equal to the starting version is never reached.

        Raises
        ------
        ChainIncompleteError
            If ``to_version`` is given and the chain ends before reaching it.
        StorageError
            If the chain loops back to an identity-version already visited.
        """
        updates: list[MaterializedPatch] = []
        visited = {identity.version}
        current = identity
        reached = False
        while not reached:
            update = self.get_update_only(current)
            if update is None:
                break
            updates.append(update)
            current = current.advanced_to(update.patch.identity.resulting_version)
            logger.debug("Update %s leads to %s", update.patch.patch_id, current.key)
            if current.version in visited:
                raise StorageError(f"Update chain of {identity.key} loops back to {current.key}")
            visited.add(current.version)
            reached = to_version is not None and current.version == to_version

        if to_version is not None and not reached:
            raise ChainIncompleteError(to_version, current.version)
        return ChainWalk(updates=tuple(updates), final_identity=current)
