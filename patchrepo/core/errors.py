"""Error taxonomy for the patch repository.

Every error carries a message and, where one exists, the underlying cause
via ``raise ... from exc``.  None of them is retried internally; callers
abort the current operation and no partial-state cleanup is performed.
"""

from __future__ import annotations


class PatchRepositoryError(RuntimeError):
    """Base class for all repository failures."""


class ArgumentError(PatchRepositoryError, ValueError):
    """Raised for missing or invalid input arguments."""


class NotFoundError(PatchRepositoryError):
    """Raised when an identity, patch, update or provider directory is missing."""


class FormatError(PatchRepositoryError):
    """Raised for a malformed manifest, index record, or an archive missing a required entry."""


class ArchiveReadError(PatchRepositoryError):
    """Raised when a patch archive cannot be opened or read."""


class StorageError(PatchRepositoryError):
    """Raised on filesystem failure or a violated repository invariant.

    The repository may be left inconsistent when this is raised mid-write.
    """


class ChainIncompleteError(PatchRepositoryError):
    """Raised when the requested target version is unreachable through stored updates."""

    def __init__(self, target_version: str, latest_version: str) -> None:
        super().__init__(
            f"Failed to locate update path to {target_version}, "
            f"latest available is {latest_version}"
        )
        self.target_version = target_version
        self.latest_version = latest_version


class BundleIOError(PatchRepositoryError):
    """Raised when a bundle cannot be written."""
