"""Patch repository data models — all Pydantic v2, all frozen (immutable)."""

from patchrepo.models.identity import (
    AddOnInfo,
    Identity,
    IdentityInfo,
    PatchType,
    identity_key,
)
from patchrepo.models.patch import Patch, PatchElement, Provider
from patchrepo.models.records import (
    BundledPatchEntry,
    ElementRef,
    ElementsIndex,
    ProviderVersionRecord,
)

__all__ = [
    # identity
    "PatchType",
    "Identity",
    "AddOnInfo",
    "IdentityInfo",
    "identity_key",
    # patch
    "Provider",
    "PatchElement",
    "Patch",
    # records
    "ElementRef",
    "ElementsIndex",
    "ProviderVersionRecord",
    "BundledPatchEntry",
]
