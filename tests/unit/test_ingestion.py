"""Tests for IngestionPipeline — how archives are decomposed into the tree."""

from __future__ import annotations

import logging

import pytest

from patchrepo.core.errors import FormatError, StorageError
from patchrepo.core.ingestion import IngestionPipeline
from patchrepo.core.storage import MemoryStorage, read_lines, read_text
from patchrepo.core.version_resolver import ProviderVersionResolver


@pytest.fixture
def pipeline(memory_storage: MemoryStorage, resolver: ProviderVersionResolver) -> IngestionPipeline:
    return IngestionPipeline(memory_storage, resolver)


class TestOneOff:
    def test_layout(self, pipeline: IngestionPipeline, memory_storage: MemoryStorage, make_patch):
        patch = pipeline.ingest(make_patch("product", "1.0", "p1", "e1"))
        assert patch.patch_id == "p1"

        element = "layers/base/patches/base/e1"
        assert read_text(memory_storage, f"{element}/target-version.txt") == "1.0"
        assert read_text(memory_storage, f"{element}/element.xml").startswith('<element id="e1">')
        assert memory_storage.read_bytes(f"{element}/modules/e1.txt") == b"content of e1"
        assert read_text(memory_storage, "product-1.0/patches/p1/elements.txt") == "base=e1@base\n"
        assert not memory_storage.exists("product-1.0/patches/p1/updated-version.txt")

    def test_loose_content_goes_to_record(
        self, pipeline: IngestionPipeline, memory_storage: MemoryStorage, make_patch_archive, make_element
    ):
        pipeline.ingest(
            make_patch_archive(
                "product", "1.0", "p1", make_element("base", "e1"), misc={"docs/README.txt": b"r"}
            )
        )
        assert memory_storage.read_bytes("product-1.0/patches/p1/docs/README.txt") == b"r"

    def test_misc_files_stored(
        self, pipeline: IngestionPipeline, memory_storage: MemoryStorage, make_patch_archive, make_element
    ):
        misc = '<misc-files>\n        <removed path="old.txt"/>\n    </misc-files>'
        pipeline.ingest(make_patch_archive("product", "1.0", "p1", make_element("base", "e1"), misc_files=misc))
        stored = read_text(memory_storage, "product-1.0/patches/p1/misc-files.xml")
        assert 'path="old.txt"' in stored

    def test_same_element_twice(self, pipeline: IngestionPipeline, make_patch):
        pipeline.ingest(make_patch("product", "1.0", "p1", "e1"))
        with pytest.raises(StorageError, match="already stored"):
            pipeline.ingest(make_patch("product", "1.0", "p2", "e1"))


class TestUpdate:
    def test_layout(self, pipeline: IngestionPipeline, memory_storage: MemoryStorage, make_update):
        pipeline.ingest(make_update("product", "1.0", "1.1", "cp1", "base-cp1"))

        assert memory_storage.is_dir("layers/base/updates/base/base-cp1")
        assert read_lines(memory_storage, "layers/base/updates/base/allowed-identities.txt") == ["product-1.1"]
        record = "product-1.0/updates/cp1"
        assert read_text(memory_storage, f"{record}/updated-version.txt") == "1.1"
        assert read_text(memory_storage, f"{record}/elements.txt") == "base=base-cp1@base\n"

    def test_next_update_stored_after_previous(
        self, pipeline: IngestionPipeline, memory_storage: MemoryStorage, make_update
    ):
        pipeline.ingest(make_update("product", "1.0", "1.1", "cp1", "base-cp1"))
        pipeline.ingest(make_update("product", "1.1", "1.2", "cp2", "base-cp2"))
        assert memory_storage.is_dir("layers/base/updates/base-cp1/base-cp2")
        assert read_text(memory_storage, "product-1.1/updates/cp2/elements.txt") == "base=base-cp2@base-cp1\n"

    def test_addon_update_allowed_for_shipping_identity_only(
        self,
        pipeline: IngestionPipeline,
        resolver: ProviderVersionResolver,
        memory_storage: MemoryStorage,
        make_patch_archive,
        make_element,
        make_identity,
    ):
        pipeline.ingest(
            make_patch_archive(
                "product", "1.0.2", "whatever", make_element("addon1", "addon1-1.1", add_on=True, update=True)
            )
        )
        assert memory_storage.is_dir("addons/addon1/updates/base/addon1-1.1")
        assert read_lines(memory_storage, "addons/addon1/updates/base/allowed-identities.txt") == [
            "product-1.0.2"
        ]
        assert not memory_storage.exists("product-1.0.2")
        assert resolver.resolve_provider_version("addon1", True, make_identity("product", "1.0.2")) == "addon1-1.1"
        assert resolver.resolve_provider_version("addon1", True, make_identity("product", "1.0.1")) == "base"


class TestRejections:
    def test_duplicate_provider(self, pipeline: IngestionPipeline, make_patch_archive, make_element):
        path = make_patch_archive("product", "1.0", "p1", make_element("base", "e1"), make_element("base", "e2"))
        with pytest.raises(FormatError, match="more than one element"):
            pipeline.ingest(path)

    def test_element_metadata_collision(self, pipeline: IngestionPipeline, make_patch_archive, make_element):
        path = make_patch_archive(
            "product", "1.0", "p1", make_element("base", "e1"), misc={"e1/element.xml": b"<x/>"}
        )
        with pytest.raises(FormatError, match="element metadata"):
            pipeline.ingest(path)

    def test_record_metadata_collision(self, pipeline: IngestionPipeline, make_patch_archive, make_element):
        path = make_patch_archive(
            "product", "1.0", "p1", make_element("base", "e1"), misc={"elements.txt": b"x"}
        )
        with pytest.raises(FormatError, match="patch metadata"):
            pipeline.ingest(path)

    def test_addon_only_loose_content_skipped(
        self,
        pipeline: IngestionPipeline,
        memory_storage: MemoryStorage,
        make_patch_archive,
        make_element,
        caplog: pytest.LogCaptureFixture,
    ):
        path = make_patch_archive(
            "product", "1.0", "p1", make_element("addon1", "a1", add_on=True), misc={"README.txt": b"r"}
        )
        with caplog.at_level(logging.WARNING, logger="patchrepo.core.ingestion"):
            pipeline.ingest(path)
        assert "Skipping README.txt" in caplog.text
        assert memory_storage.walk_files("addons/addon1/patches/base/a1") == [
            "element.xml",
            "modules/a1.txt",
            "target-version.txt",
        ]
