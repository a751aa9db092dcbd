"""Repository layout — every root-relative path lives here.

::

    layers/<provider>/patches/<providerVersion>/<elementId>/{element.xml, target-version.txt, <files>}
    layers/<provider>/updates/<providerVersion>/<elementId>/{element.xml, target-version.txt, <files>}
    layers/<provider>/updates/<providerVersion>/allowed-identities.txt
    addons/<addon>/...                                          (same shape as layers)
    <identity>-<version>/patches/<patchId>/{elements.txt, misc-files.xml?, <files>}
    <identity>-<version>/updates/<updateId>/{elements.txt, updated-version.txt, misc-files.xml?, <files>}
"""

from __future__ import annotations

from patchrepo.core.storage import join
from patchrepo.models.identity import identity_key

LAYERS = "layers"
ADDONS = "addons"
PATCHES = "patches"
UPDATES = "updates"

ELEMENT_XML = "element.xml"
TARGET_VERSION = "target-version.txt"
ALLOWED_IDENTITIES = "allowed-identities.txt"
ELEMENTS_INDEX = "elements.txt"
UPDATED_VERSION = "updated-version.txt"
MISC_FILES_XML = "misc-files.xml"

# Metadata files that share a directory with stored patch content.
ELEMENT_METADATA = frozenset({ELEMENT_XML, TARGET_VERSION})
RECORD_METADATA = frozenset({ELEMENTS_INDEX, UPDATED_VERSION, MISC_FILES_XML})


def providers_root(is_add_on: bool) -> str:
    return ADDONS if is_add_on else LAYERS


def provider_dir(name: str, is_add_on: bool) -> str:
    return join(providers_root(is_add_on), name)


def provider_subtree(name: str, is_add_on: bool, cumulative: bool) -> str:
    return join(provider_dir(name, is_add_on), UPDATES if cumulative else PATCHES)


def provider_version_dir(name: str, is_add_on: bool, cumulative: bool, version: str) -> str:
    return join(provider_subtree(name, is_add_on, cumulative), version)


def element_dir(name: str, is_add_on: bool, cumulative: bool, version: str, element_id: str) -> str:
    return join(provider_version_dir(name, is_add_on, cumulative, version), element_id)


def allowed_identities_file(name: str, is_add_on: bool, version: str) -> str:
    return join(provider_version_dir(name, is_add_on, True, version), ALLOWED_IDENTITIES)


def identity_dir(name: str, version: str) -> str:
    return join(identity_key(name, version))


def identity_subtree(name: str, version: str, cumulative: bool) -> str:
    return join(identity_dir(name, version), UPDATES if cumulative else PATCHES)


def identity_record_dir(name: str, version: str, cumulative: bool, patch_id: str) -> str:
    return join(identity_subtree(name, version, cumulative), patch_id)
