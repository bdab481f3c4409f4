"""
Central package management artifacts.

Two files are produced next to the solution:

- the build-property document (Directory.Build.props) which turns on
  ManagePackageVersionsCentrally; an existing file is updated in place and
  everything else in it is left alone,
- the package manifest (Directory.Packages.props) holding one
  <PackageVersion> per package; it is regenerated from scratch every run.
"""

from __future__ import annotations

import logging
import os

from .errors import MigrationError
from .versions import PACKAGE_VERSION_ELEMENT, sort_package_versions
from .xml_document import (
    Document,
    append_child,
    find_child,
    indent_document,
    load_document,
    new_document,
    save_document,
    select,
)

logger = logging.getLogger(__name__)

CENTRAL_FLAG = "ManagePackageVersionsCentrally"


def _top_level_property_group(document: Document):
    groups = select(document, "PropertyGroup")
    for group in groups:
        if find_child(group, CENTRAL_FLAG) is not None:
            return group
    for group in groups:
        if "Condition" not in group.attrib:
            return group
    return None


def build_props_document(path: str) -> Document:
    """
    Return the build-property document for `path` with the central flag set.

    Loads and updates the file if it exists, otherwise creates a minimal one.
    """
    if not os.path.isfile(path):
        document = new_document("Project")
        group = append_child(document, document.root, "PropertyGroup")
        append_child(document, group, CENTRAL_FLAG, text="true")
        indent_document(document)
        return document

    try:
        document = load_document(path)
    except MigrationError as e:
        e.stage = "write"
        raise

    group = _top_level_property_group(document)
    if group is None:
        group = append_child(document, document.root, "PropertyGroup")

    flag = find_child(group, CENTRAL_FLAG)
    if flag is None:
        flag = append_child(document, group, CENTRAL_FLAG)
    flag.text = "true"
    return document


def write_build_props(path: str, preview: bool, verbose: bool = False) -> bool:
    """
    Create or update the build-property document.

    Returns:
        True if the file was written
    """
    document = build_props_document(path)
    written = save_document(document, path, preview=preview, skip_unchanged=True, verbose=verbose)
    logger.debug(f"Build properties {'written' if written else 'not written'}: {path}")
    return written


def package_versions_document(versions: dict[str, str], order: str = "alphabetical") -> Document:
    """Build a fresh package manifest listing `versions` in the given order."""
    document = new_document("Project")
    group = append_child(document, document.root, "ItemGroup")
    for name, version in sort_package_versions(versions, order):
        append_child(
            document,
            group,
            PACKAGE_VERSION_ELEMENT,
            attrib={"Include": name, "Version": version},
        )
    indent_document(document)
    return document


def write_package_versions(
    path: str,
    versions: dict[str, str],
    order: str,
    preview: bool,
    verbose: bool = False,
) -> bool:
    """
    Regenerate the package manifest, replacing any previous content.

    Returns:
        True if the file was written
    """
    document = package_versions_document(versions, order)
    written = save_document(document, path, preview=preview, skip_unchanged=True, verbose=verbose)
    logger.debug(f"Package manifest with {len(versions)} entries {'written' if written else 'not written'}: {path}")
    return written
