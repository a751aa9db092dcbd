"""Manifest codec — ``patch.xml`` and bundle ``patches.xml``.

Parsing goes through ``defusedxml`` since manifests arrive inside
untrusted archives.  Serialization is template based: the repository
stores the verbatim ``<element>`` block of every ingested element and
re-synthesizes full manifests by substituting ``@name@`` placeholders
into ``PATCH_TEMPLATE``.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Mapping
from xml.etree.ElementTree import ParseError

from defusedxml import ElementTree as SafeET
from defusedxml.common import DefusedXmlException

from patchrepo.core.errors import FormatError
from patchrepo.models.identity import Identity, PatchType
from patchrepo.models.patch import Patch, PatchElement, Provider
from patchrepo.models.records import BundledPatchEntry

PATCH_XML = "patch.xml"
BUNDLE_XML = "patches.xml"

PATCH_NAMESPACE = "urn:jboss:patch:1.0"
BUNDLE_NAMESPACE = "urn:jboss:bundled-patches:1.0"

UPGRADE = "upgrade"
NO_UPGRADE = "no-upgrade"

PATCH_TEMPLATE = f"""<?xml version="1.0" encoding="UTF-8"?>
<patch xmlns="{PATCH_NAMESPACE}" id="@patch-id@">
    <@patch-type@ name="@identity-name@" version="@identity-version@" @to-version@/>
@elements@
@misc-files@
</patch>
"""

ELEMENT_INDENT = "    "

_TOKEN = re.compile(r"@([A-Za-z0-9_.-]+)@")


# ---------------------------------------------------------------------------
# Template substitution
# ---------------------------------------------------------------------------


def render_template(template: str, values: Mapping[str, str | None]) -> str:
    """Substitute ``@name@`` tokens line by line, left to right.

    Tokens whose name is not in ``values`` are left untouched verbatim.  A
    known token mapped to ``None`` is replaced by nothing; a template line
    that only held such tokens is dropped.
    """
    out: list[str] = []
    for line in template.splitlines():
        buf: list[str] = []
        pos = 0
        while True:
            at = line.find("@", pos)
            if at < 0:
                buf.append(line[pos:])
                break
            buf.append(line[pos:at])
            match = _TOKEN.match(line, at)
            if match and match.group(1) in values:
                buf.append(values[match.group(1)] or "")
                pos = match.end()
            elif match:
                buf.append(match.group(0))
                pos = match.end()
            else:
                buf.append("@")
                pos = at + 1
        rendered = "".join(buf)
        if line.strip() and not rendered.strip():
            continue
        out.append(rendered)
    return "\n".join(out) + "\n"


def render_patch_xml(
    patch_id: str,
    identity: Identity,
    element_fragments: Iterable[str],
    misc_files: str | None = None,
) -> str:
    """Assemble a full manifest from stored fragments."""
    fragments = [f"{ELEMENT_INDENT}{fragment.strip()}" for fragment in element_fragments]
    values: dict[str, str | None] = {
        "patch-id": patch_id,
        "patch-type": UPGRADE if identity.is_cumulative else NO_UPGRADE,
        "to-version": (
            f'to-version="{identity.resulting_version}"' if identity.is_cumulative else None
        ),
        "identity-name": identity.name,
        "identity-version": identity.version,
        "elements": "\n".join(fragments) or None,
        "misc-files": f"{ELEMENT_INDENT}{misc_files.strip()}" if misc_files else None,
    }
    return render_template(PATCH_TEMPLATE, values)


def render_element(element: PatchElement) -> str:
    """Render an ``<element>`` block for an element built in code."""
    provider = element.provider
    tag = UPGRADE if provider.is_cumulative else NO_UPGRADE
    add_on = ' add-on="true"' if provider.is_add_on else ""
    return (
        f'<element id="{element.id}">\n'
        f'{ELEMENT_INDENT * 2}<{tag} name="{provider.name}"{add_on}/>\n'
        f"{ELEMENT_INDENT}</element>"
    )


def serialize(patch: Patch) -> bytes:
    fragments = [e.fragment or render_element(e) for e in patch.elements]
    return render_patch_xml(
        patch.patch_id, patch.identity, fragments, patch.misc_files
    ).encode("utf-8")


# ---------------------------------------------------------------------------
# Fragment slicing
# ---------------------------------------------------------------------------


def _slice_block(text: str, start: int, tag: str) -> str:
    tag_end = text.find(">", start)
    if tag_end < 0:
        raise FormatError(f"Unterminated <{tag}> tag in manifest")
    if text[tag_end - 1] == "/":
        return text[start:tag_end + 1]
    closing = f"</{tag}>"
    end = text.find(closing, tag_end)
    if end < 0:
        raise FormatError(f"Missing {closing} in manifest")
    return text[start:end + len(closing)]


def extract_element_fragment(text: str, element_id: str) -> str:
    """Return the ``<element>`` block with the given id, verbatim.

    The id attribute is located first, then the enclosing start tag and its
    matching ``</element>``.
    """
    for quote in ('"', "'"):
        marker = f"id={quote}{element_id}{quote}"
        pos = text.find(marker)
        while pos >= 0:
            start = text.rfind("<element", 0, pos)
            if (
                start >= 0
                and ">" not in text[start:pos]
                and text[start + 8:start + 9].isspace()
                and text[pos - 1:pos].isspace()
            ):
                return _slice_block(text, start, "element")
            pos = text.find(marker, pos + 1)
    raise FormatError(f"Element {element_id!r} not found in manifest")


def extract_misc_files(text: str) -> str | None:
    """Return the ``<misc-files>`` block, or None when the manifest has none."""
    match = re.search(r"<misc-files[\s/>]", text)
    if match is None:
        return None
    return _slice_block(text, match.start(), "misc-files")


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _required(node: ET.Element, attr: str) -> str:
    value = node.get(attr)
    if not value:
        raise FormatError(f"<{_local(node.tag)}> is missing required attribute {attr!r}")
    return value


def _type_child(node: ET.Element) -> ET.Element:
    for child in node:
        if _local(child.tag) in (UPGRADE, NO_UPGRADE):
            return child
    raise FormatError(f"<{_local(node.tag)}> declares neither <{UPGRADE}> nor <{NO_UPGRADE}>")


def _fromstring(data: bytes) -> ET.Element:
    try:
        return SafeET.fromstring(data)
    except (ParseError, DefusedXmlException) as exc:
        raise FormatError(f"Failed to parse manifest: {exc}") from exc


def parse(data: bytes) -> Patch:
    """Parse ``patch.xml`` bytes into a Patch carrying verbatim fragments."""
    root = _fromstring(data)
    if _local(root.tag) != "patch":
        raise FormatError(f"Unexpected manifest root <{_local(root.tag)}>")
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise FormatError("Manifest is not valid UTF-8") from exc

    declared = _type_child(root)
    if _local(declared.tag) == UPGRADE:
        identity = Identity(
            name=_required(declared, "name"),
            version=_required(declared, "version"),
            patch_type=PatchType.CUMULATIVE,
            resulting_version=_required(declared, "to-version"),
        )
    else:
        identity = Identity(
            name=_required(declared, "name"),
            version=_required(declared, "version"),
        )

    elements: list[PatchElement] = []
    for node in root:
        if _local(node.tag) != "element":
            continue
        element_id = _required(node, "id")
        target = _type_child(node)
        provider = Provider(
            name=_required(target, "name"),
            is_add_on=target.get("add-on", "false").lower() == "true",
            patch_type=(
                PatchType.CUMULATIVE if _local(target.tag) == UPGRADE else PatchType.ONE_OFF
            ),
        )
        elements.append(
            PatchElement(
                id=element_id,
                provider=provider,
                fragment=extract_element_fragment(text, element_id),
            )
        )

    return Patch(
        patch_id=_required(root, "id"),
        identity=identity,
        elements=tuple(elements),
        misc_files=extract_misc_files(text),
    )


# ---------------------------------------------------------------------------
# Bundle index
# ---------------------------------------------------------------------------


def serialize_bundle_index(entries: Iterable[BundledPatchEntry]) -> bytes:
    root = ET.Element("patches", {"xmlns": BUNDLE_NAMESPACE})
    for entry in entries:
        ET.SubElement(root, "patch", {"id": entry.patch_id, "path": entry.path})
    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def parse_bundle_index(data: bytes) -> list[BundledPatchEntry]:
    root = _fromstring(data)
    if _local(root.tag) != "patches":
        raise FormatError(f"Unexpected bundle index root <{_local(root.tag)}>")
    return [
        BundledPatchEntry(patch_id=_required(node, "id"), path=_required(node, "path"))
        for node in root
        if _local(node.tag) == "patch"
    ]
