"""Shared test fixtures for patchrepo."""

from __future__ import annotations

import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest

from patchrepo.core import manifest
from patchrepo.core.repository import PatchRepository
from patchrepo.core.storage import FileSystemStorage, MemoryStorage
from patchrepo.core.version_resolver import ProviderVersionResolver
from patchrepo.models.identity import Identity, IdentityInfo, PatchType
from patchrepo.models.patch import Patch, PatchElement, Provider


def element(
    provider: str,
    element_id: str,
    *,
    add_on: bool = False,
    update: bool = False,
) -> PatchElement:
    """Build a manifest element for a layer or add-on provider."""
    return PatchElement(
        id=element_id,
        provider=Provider(
            name=provider,
            is_add_on=add_on,
            patch_type=PatchType.CUMULATIVE if update else PatchType.ONE_OFF,
        ),
    )


def identity(name: str, version: str, *addons: tuple[str, str]) -> IdentityInfo:
    info = IdentityInfo(name=name, version=version)
    for addon_name, addon_version in addons:
        info = info.with_add_on(addon_name, addon_version)
    return info


@pytest.fixture
def make_element() -> Callable[..., PatchElement]:
    """Factory fixture: build a manifest element."""
    return element


@pytest.fixture
def make_identity() -> Callable[..., IdentityInfo]:
    """Factory fixture: build an IdentityInfo with optional (name, version) add-ons."""
    return identity


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def repo_root(tmp_dir: Path) -> Path:
    return tmp_dir / "repo"


@pytest.fixture
def repository(repo_root: Path) -> PatchRepository:
    """Provide a fresh PatchRepository backed by a temp directory."""
    return PatchRepository.create(repo_root)


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def memory_repository(memory_storage: MemoryStorage) -> PatchRepository:
    """Provide a PatchRepository over in-memory storage."""
    return PatchRepository(storage=memory_storage)


@pytest.fixture(params=["filesystem", "memory"])
def any_repository(request: pytest.FixtureRequest, repo_root: Path) -> PatchRepository:
    """Run a test against both storage backends."""
    if request.param == "memory":
        return PatchRepository(storage=MemoryStorage())
    return PatchRepository(storage=FileSystemStorage(repo_root))


@pytest.fixture
def resolver(memory_storage: MemoryStorage) -> ProviderVersionResolver:
    return ProviderVersionResolver(memory_storage)


@pytest.fixture
def out_dir(tmp_dir: Path) -> Path:
    path = tmp_dir / "out"
    path.mkdir()
    return path


# ---------------------------------------------------------------------------
# Archive factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_patch_archive(
    tmp_path_factory: pytest.TempPathFactory,
) -> Callable[..., Path]:
    """Factory fixture: write a patch archive and return its path.

    Each element gets ``<elementId>/modules/<elementId>.txt``; ``misc``
    maps extra loose entry names to their content.
    """

    def _factory(
        identity_name: str,
        identity_version: str,
        patch_id: str,
        *elements: PatchElement,
        to_version: str | None = None,
        misc: dict[str, bytes] | None = None,
        misc_files: str | None = None,
    ) -> Path:
        declared = Identity(
            name=identity_name,
            version=identity_version,
            patch_type=PatchType.CUMULATIVE if to_version else PatchType.ONE_OFF,
            resulting_version=to_version,
        )
        patch = Patch(
            patch_id=patch_id,
            identity=declared,
            elements=elements,
            misc_files=misc_files,
        )
        directory = tmp_path_factory.mktemp("archives")
        path = directory / f"{identity_name}-{identity_version}-{patch_id}.zip"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr(manifest.PATCH_XML, manifest.serialize(patch))
            for e in elements:
                zf.writestr(f"{e.id}/", b"")
                zf.writestr(f"{e.id}/modules/{e.id}.txt", f"content of {e.id}".encode())
            for name, data in (misc or {}).items():
                zf.writestr(name, data)
        return path

    return _factory


@pytest.fixture
def make_patch(make_patch_archive: Callable[..., Path]) -> Callable[..., Path]:
    """Factory fixture: a one-off patch with a single base-layer element."""

    def _factory(name: str, version: str, patch_id: str, element_id: str) -> Path:
        return make_patch_archive(name, version, patch_id, element("base", element_id))

    return _factory


@pytest.fixture
def make_update(make_patch_archive: Callable[..., Path]) -> Callable[..., Path]:
    """Factory fixture: a cumulative update with a single base-layer element."""

    def _factory(name: str, version: str, to_version: str, patch_id: str, element_id: str) -> Path:
        return make_patch_archive(
            name, version, patch_id, element("base", element_id, update=True),
            to_version=to_version,
        )

    return _factory
