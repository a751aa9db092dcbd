"""Persisted index records and their strict text codecs.

``elements.txt`` holds one ``provider=elementId@providerVersion`` line per
provider.  Malformed lines are rejected with FormatError rather than being
skipped.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from patchrepo.core.errors import FormatError


class ElementRef(BaseModel):
    """Reference to a stored element: ``elementId@providerVersion``."""

    model_config = ConfigDict(frozen=True)

    element_id: str
    version: str

    @classmethod
    def parse(cls, text: str) -> ElementRef:
        parts = text.strip().split("@")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise FormatError(f"Malformed element reference {text!r}, expected 'id@version'")
        return cls(element_id=parts[0], version=parts[1])

    def __str__(self) -> str:
        return f"{self.element_id}@{self.version}"


class ElementsIndex(BaseModel):
    """Provider name -> element reference for one stored patch or update."""

    model_config = ConfigDict(frozen=True)

    entries: dict[str, ElementRef] = {}

    @classmethod
    def parse(cls, text: str) -> ElementsIndex:
        entries: dict[str, ElementRef] = {}
        for lineno, raw in enumerate(text.splitlines(), start=1):
            line = raw.strip()
            if not line:
                continue
            key, sep, value = line.partition("=")
            key = key.strip()
            if not sep or not key:
                raise FormatError(f"Malformed elements index line {lineno}: {raw!r}")
            if key in entries:
                raise FormatError(f"Duplicate provider {key!r} in elements index line {lineno}")
            entries[key] = ElementRef.parse(value)
        return cls(entries=entries)

    def serialize(self) -> str:
        return "".join(f"{name}={ref}\n" for name, ref in self.entries.items())

    def __len__(self) -> int:
        return len(self.entries)


class ProviderVersionRecord(BaseModel):
    """One ``updates/<version>/`` directory of a provider.

    ``successor`` is the id of the cumulative update stored for
    ``version`` (the provider version it produces); ``allowed_identities``
    lists the ``name-version`` strings permitted to consume it.
    """

    model_config = ConfigDict(frozen=True)

    provider: str
    is_add_on: bool
    version: str
    successor: str | None = None
    allowed_identities: tuple[str, ...] = ()

    def allows(self, identity_key: str) -> bool:
        return identity_key in self.allowed_identities


class BundledPatchEntry(BaseModel):
    """One patch archive listed in a bundle index."""

    model_config = ConfigDict(frozen=True)

    patch_id: str
    path: str
