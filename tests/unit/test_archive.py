"""Tests for PatchArchive and ArchiveWriter."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from patchrepo.core.archive import ArchiveWriter, PatchArchive, read_patch
from patchrepo.core.errors import ArchiveReadError, ArgumentError, FormatError


class TestPatchArchive:
    def test_entries_skip_directories(self, make_patch_archive, make_element):
        path = make_patch_archive("product", "1.0", "p1", make_element("base", "e1"))
        with PatchArchive.open(path) as archive:
            assert archive.entries() == ["patch.xml", "e1/modules/e1.txt"]
            assert archive.has_entry("patch.xml")
            assert not archive.has_entry("nope")
            assert archive.read("e1/modules/e1.txt") == b"content of e1"
            assert archive.read_patch().patch_id == "p1"

    def test_read_patch(self, make_patch_archive, make_element):
        path = make_patch_archive("product", "1.0", "p1", make_element("base", "e1"), to_version="1.1")
        patch = read_patch(path)
        assert patch.is_update
        assert patch.identity.resulting_version == "1.1"

    def test_missing_entry(self, make_patch_archive):
        path = make_patch_archive("product", "1.0", "p1")
        with PatchArchive.open(path) as archive, pytest.raises(FormatError):
            archive.read("missing.txt")

    def test_no_manifest(self, tmp_dir: Path):
        path = tmp_dir / "empty.zip"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("readme.txt", "x")
        with pytest.raises(FormatError, match="patch.xml"):
            read_patch(path)

    def test_not_a_zip(self, tmp_dir: Path):
        path = tmp_dir / "garbage.zip"
        path.write_bytes(b"not a zip at all")
        with pytest.raises(ArchiveReadError):
            PatchArchive.open(path)

    def test_missing_file(self, tmp_dir: Path):
        with pytest.raises(ArgumentError):
            PatchArchive.open(tmp_dir / "nope.zip")

    def test_directory(self, tmp_dir: Path):
        with pytest.raises(ArgumentError):
            PatchArchive.open(tmp_dir)


class TestArchiveWriter:
    def test_write_entries(self, tmp_dir: Path):
        source = tmp_dir / "src.bin"
        source.write_bytes(b"\x00\x01")
        target = tmp_dir / "out.zip"
        with ArchiveWriter(target) as writer:
            writer.write("a/b.txt", b"hello")
            writer.write_file("src.bin", source)
        with zipfile.ZipFile(target) as zf:
            assert zf.read("a/b.txt") == b"hello"
            assert zf.read("src.bin") == b"\x00\x01"
            assert zf.getinfo("a/b.txt").compress_type == zipfile.ZIP_DEFLATED
