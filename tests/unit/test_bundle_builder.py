"""Tests for PatchBundleBuilder."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from patchrepo.core import manifest
from patchrepo.core.bundle_builder import PatchBundleBuilder
from patchrepo.core.errors import ArgumentError, BundleIOError


class TestPatchBundleBuilder:
    def test_empty_build_writes_nothing(self, tmp_dir: Path):
        target = tmp_dir / "bundle.zip"
        assert PatchBundleBuilder().build(target) is None
        assert not target.exists()

    def test_bundle_order_and_index(self, make_patch, make_update, tmp_dir: Path):
        first = make_update("product", "1.0", "1.1", "cp1", "base-cp1")
        second = make_patch("product", "1.1", "p1", "e1")
        target = tmp_dir / "bundle.zip"

        entries = PatchBundleBuilder().add(first).add(second).build(target)

        assert [(e.patch_id, e.path) for e in entries] == [
            ("cp1", first.name),
            ("p1", second.name),
        ]
        with zipfile.ZipFile(target) as zf:
            assert zf.namelist() == [first.name, second.name, manifest.BUNDLE_XML]
            assert zf.read(first.name) == first.read_bytes()
            assert manifest.parse_bundle_index(zf.read(manifest.BUNDLE_XML)) == entries
        assert first.exists()

    def test_no_deduplication(self, make_patch, tmp_dir: Path):
        path = make_patch("product", "1.0", "p1", "e1")
        builder = PatchBundleBuilder().add(path).add(path)
        assert len(builder) == 2
        assert len(builder.build(tmp_dir / "b.zip")) == 2

    def test_delete_inputs_on_success(self, make_patch, tmp_dir: Path):
        path = make_patch("product", "1.0", "p1", "e1")
        PatchBundleBuilder().add(path).build(tmp_dir / "b.zip", delete_inputs_on_success=True)
        assert not path.exists()

    def test_missing_input(self, tmp_dir: Path):
        target = tmp_dir / "b.zip"
        with pytest.raises(BundleIOError, match="does not exist"):
            PatchBundleBuilder().add(tmp_dir / "nope.zip").build(target)
        assert not target.exists()

    def test_target_is_directory(self, make_patch, tmp_dir: Path):
        builder = PatchBundleBuilder().add(make_patch("product", "1.0", "p1", "e1"))
        with pytest.raises(BundleIOError, match="directory"):
            builder.build(tmp_dir)

    def test_none_arguments(self):
        with pytest.raises(ArgumentError):
            PatchBundleBuilder().add(None)
        with pytest.raises(ArgumentError):
            PatchBundleBuilder().build(None)

    def test_no_temp_file_left(self, make_patch, tmp_dir: Path):
        out = tmp_dir / "out"
        PatchBundleBuilder().add(make_patch("product", "1.0", "p1", "e1")).build(out / "b.zip")
        assert [p.name for p in out.iterdir()] == ["b.zip"]
