"""Patch manifest models (immutable, rebuilt on every retrieval)."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from patchrepo.models.identity import Identity, PatchType


class Provider(BaseModel):
    """A named content source an element targets: a layer or an add-on."""

    model_config = ConfigDict(frozen=True)

    name: str
    is_add_on: bool = False
    patch_type: PatchType = PatchType.ONE_OFF

    @property
    def is_cumulative(self) -> bool:
        return self.patch_type is PatchType.CUMULATIVE


class PatchElement(BaseModel):
    """The portion of a patch scoped to one provider.

    ``fragment`` is the verbatim ``<element>`` block of the manifest the
    element was read from.  It is empty for elements built in code; the
    manifest codec renders one from the provider in that case.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    provider: Provider
    fragment: str = ""


class Patch(BaseModel):
    """A parsed or synthesized patch manifest."""

    model_config = ConfigDict(frozen=True)

    patch_id: str
    identity: Identity
    elements: tuple[PatchElement, ...] = ()
    misc_files: str | None = None

    @property
    def is_update(self) -> bool:
        return self.identity.is_cumulative

    @property
    def is_add_on_only(self) -> bool:
        """True when every element targets an add-on (and there is at least one)."""
        return bool(self.elements) and all(e.provider.is_add_on for e in self.elements)

    def element(self, element_id: str) -> PatchElement | None:
        for element in self.elements:
            if element.id == element_id:
                return element
        return None
