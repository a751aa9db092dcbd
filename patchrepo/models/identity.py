"""Identity models — the product name+version a patch targets."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class PatchType(str, Enum):
    """Whether a patch (or an element of it) advances the version."""

    ONE_OFF = "one-off"
    CUMULATIVE = "cumulative"


def identity_key(name: str, version: str) -> str:
    """Render the ``name-version`` string used for directories and allow-lists."""
    return f"{name}-{version}"


class Identity(BaseModel):
    """The identity declared in a patch manifest.

    ``resulting_version`` is present if and only if the patch is CUMULATIVE.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    patch_type: PatchType = PatchType.ONE_OFF
    resulting_version: str | None = None

    @model_validator(mode="after")
    def _check_upgrade(self) -> Identity:
        if self.patch_type is PatchType.CUMULATIVE and not self.resulting_version:
            raise ValueError("a cumulative identity requires resulting_version")
        if self.patch_type is PatchType.ONE_OFF and self.resulting_version is not None:
            raise ValueError("a one-off identity cannot carry resulting_version")
        return self

    @property
    def key(self) -> str:
        return identity_key(self.name, self.version)

    @property
    def is_cumulative(self) -> bool:
        return self.patch_type is PatchType.CUMULATIVE


class AddOnInfo(BaseModel):
    """An installed add-on and the version of it currently applied."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str

    def __str__(self) -> str:
        return identity_key(self.name, self.version)


class IdentityInfo(BaseModel):
    """An installation to query the repository for: identity plus add-ons.

    Add-ons are unique by name.  They are kept sorted by name so that two
    infos declaring the same add-ons in a different order compare equal.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    add_ons: tuple[AddOnInfo, ...] = ()

    @field_validator("add_ons")
    @classmethod
    def _unique_add_ons(cls, value: tuple[AddOnInfo, ...]) -> tuple[AddOnInfo, ...]:
        names = [a.name for a in value]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate add-on names: {', '.join(duplicates)}")
        return tuple(sorted(value, key=lambda a: a.name))

    @property
    def key(self) -> str:
        return identity_key(self.name, self.version)

    @property
    def has_add_ons(self) -> bool:
        return bool(self.add_ons)

    def add_on(self, name: str) -> AddOnInfo | None:
        """Return the declared add-on with the given name, if any."""
        for addon in self.add_ons:
            if addon.name == name:
                return addon
        return None

    def with_add_on(self, name: str, version: str) -> IdentityInfo:
        """Return a copy that also declares add-on ``name`` at ``version``."""
        return IdentityInfo(
            name=self.name,
            version=self.version,
            add_ons=(*self.add_ons, AddOnInfo(name=name, version=version)),
        )

    def advanced_to(self, version: str) -> IdentityInfo:
        """Return the identity after an update to ``version``.

        Add-on versions cannot be resolved across an update hop, so the
        advanced identity declares none.
        """
        return IdentityInfo(name=self.name, version=version)

    def __str__(self) -> str:
        if not self.add_ons:
            return self.key
        return f"{self.key} addons=[{', '.join(str(a) for a in self.add_ons)}]"
