"""Provider version resolution.

Every cumulative update of a provider is stored under
``updates/<fromVersion>/<updateId>/``: the directory name is the provider
version the update applies to and the single element directory inside it
is the successor version it produces.  ``allowed-identities.txt`` next to
it lists the identity ``name-version`` strings that may consume it.

Two behaviors here are knowingly naive and pinned by tests:

* an identity absent from every allow-list resolves to ``BASE_VERSION``,
  even if the provider has moved on for other identities;
* when several successors qualify, the lexicographically greatest id wins
  (string order, not version order).
"""

from __future__ import annotations

import logging

from patchrepo.core import layout
from patchrepo.core.errors import NotFoundError, StorageError
from patchrepo.core.storage import Storage, append_line, join, list_subdirs, read_lines
from patchrepo.models.identity import IdentityInfo, identity_key
from patchrepo.models.records import ProviderVersionRecord

logger = logging.getLogger(__name__)

BASE_VERSION = "base"


class ProviderVersionResolver:
    """Reads provider update history and decides which version applies.

    Parameters
    ----------
    storage:
        The repository storage backend.
    """

    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def read_record(self, provider: str, is_add_on: bool, version: str) -> ProviderVersionRecord:
        """Read the update record stored for ``version`` of a provider.

        A missing directory reads as a record with no successor and an
        empty allow-list.

        Raises
        ------
        StorageError
            If more than one update is stored for the same provider version.
        """
        version_dir = layout.provider_version_dir(provider, is_add_on, True, version)
        successors = list_subdirs(self._storage, version_dir)
        if len(successors) > 1:
            raise StorageError(
                f"More than one update for {provider} version {version}: {successors}"
            )
        return ProviderVersionRecord(
            provider=provider,
            is_add_on=is_add_on,
            version=version,
            successor=successors[0] if successors else None,
            allowed_identities=tuple(
                read_lines(self._storage, join(version_dir, layout.ALLOWED_IDENTITIES))
            ),
        )

    def records(self, provider: str, is_add_on: bool) -> list[ProviderVersionRecord]:
        subtree = layout.provider_subtree(provider, is_add_on, True)
        return [
            self.read_record(provider, is_add_on, version)
            for version in list_subdirs(self._storage, subtree)
        ]

    def find_applicable_update(
        self, provider: str, is_add_on: bool, identity: IdentityInfo
    ) -> ProviderVersionRecord | None:
        """Return the record whose successor applies to ``identity``, if any."""
        candidates = [
            record
            for record in self.records(provider, is_add_on)
            if record.successor is not None and record.allows(identity.key)
        ]
        if not candidates:
            return None
        if len(candidates) > 1:
            logger.debug(
                "%d updates of %s qualify for %s, picking the greatest id",
                len(candidates), provider, identity.key,
            )
        return max(candidates, key=lambda record: record.successor)

    def resolve_provider_version(
        self, provider: str, is_add_on: bool, identity: IdentityInfo
    ) -> str:
        """Return the stored version of ``provider`` that applies to ``identity``."""
        record = self.find_applicable_update(provider, is_add_on, identity)
        if record is None:
            return BASE_VERSION
        return record.successor

    def allow(
        self,
        provider: str,
        is_add_on: bool,
        version: str,
        identity_name: str,
        identity_version: str,
        *,
        create_if_missing: bool = False,
    ) -> bool:
        """Append an identity to the allow-list of ``updates/<version>``.

        Returns False when the identity was already listed.

        Raises
        ------
        NotFoundError
            If the version directory does not exist and
            ``create_if_missing`` is False.
        """
        version_dir = layout.provider_version_dir(provider, is_add_on, True, version)
        if not self._storage.is_dir(version_dir):
            if not create_if_missing:
                raise NotFoundError(f"No update directory for {provider} version {version}")
            self._storage.make_dirs(version_dir)

        key = identity_key(identity_name, identity_version)
        allow_file = layout.allowed_identities_file(provider, is_add_on, version)
        if key in read_lines(self._storage, allow_file):
            return False
        append_line(self._storage, allow_file, key)
        logger.info("Allowed %s to consume %s update %s", key, provider, version)
        return True
