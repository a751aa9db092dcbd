"""Tests for the elements index and element reference codecs."""

from __future__ import annotations

import pytest

from patchrepo.core.errors import FormatError
from patchrepo.models.records import ElementRef, ElementsIndex, ProviderVersionRecord


class TestElementRef:
    def test_parse(self):
        ref = ElementRef.parse("base-cp1@base")
        assert ref.element_id == "base-cp1"
        assert ref.version == "base"
        assert str(ref) == "base-cp1@base"

    @pytest.mark.parametrize("text", ["", "no-at", "@base", "id@", "a@b@c"])
    def test_malformed(self, text: str):
        with pytest.raises(FormatError):
            ElementRef.parse(text)


class TestElementsIndex:
    def test_parse_and_serialize(self):
        text = "base=base-cp1@base\naddon1=a1@addon1-1.0\n"
        index = ElementsIndex.parse(text)
        assert len(index) == 2
        assert index.entries["addon1"] == ElementRef(element_id="a1", version="addon1-1.0")
        assert index.serialize() == text

    def test_blank_lines_skipped(self):
        index = ElementsIndex.parse("\nbase=e1@base\n\n")
        assert list(index.entries) == ["base"]

    def test_empty(self):
        assert len(ElementsIndex.parse("")) == 0

    @pytest.mark.parametrize("text", ["base", "=e1@base", "base=e1", "base=@base"])
    def test_malformed_line_rejected(self, text: str):
        with pytest.raises(FormatError):
            ElementsIndex.parse(text)

    def test_duplicate_provider_rejected(self):
        with pytest.raises(FormatError, match="Duplicate provider"):
            ElementsIndex.parse("base=e1@base\nbase=e2@base\n")


class TestProviderVersionRecord:
    def test_allows(self):
        record = ProviderVersionRecord(
            provider="base",
            is_add_on=False,
            version="base",
            successor="base-cp1",
            allowed_identities=("product-1.0.1",),
        )
        assert record.allows("product-1.0.1") is True
        assert record.allows("product-1.0.2") is False
