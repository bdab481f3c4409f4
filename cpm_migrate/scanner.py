"""
Package reference scanning for project files.

Reads <PackageReference> items from an MSBuild project. A version may be
given as an attribute or as a child element:

    <PackageReference Include="Serilog" Version="3.1.1" />
    <PackageReference Include="Polly">
      <Version>8.2.0</Version>
    </PackageReference>
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

from .errors import MigrationError
from .xml_document import Document, attribute_key, find_child, load_document, select

logger = logging.getLogger(__name__)

REFERENCE_ELEMENT = "PackageReference"
VERSION_NAME = "Version"

# Where a reference's version was found
LOCUS_ATTRIBUTE = "attribute"
LOCUS_ELEMENT = "element"


@dataclass(frozen=True)
class PackageReference:
    """
    A single dependency declaration.

    Attributes:
        name: Package id from the Include (or Update) attribute
        version: Declared version, or None if the project does not pin one
        locus: LOCUS_ATTRIBUTE, LOCUS_ELEMENT, or None when version is None
        element: The <PackageReference> element itself
    """
    name: str
    version: str | None = None
    locus: str | None = None
    element: ET.Element | None = field(default=None, compare=False, repr=False)


@dataclass
class ProjectFile:
    """
    A scanned project file.

    Attributes:
        path: Absolute path of the project file
        document: Parsed document; the raw bytes read are in document.raw
        references: Package references in document order
    """
    path: str
    document: Document
    references: tuple[PackageReference, ...] = ()

    @property
    def raw(self) -> bytes:
        return self.document.raw

    @property
    def has_versions(self) -> bool:
        return any(ref.version is not None for ref in self.references)


def _reference_from_element(element: ET.Element) -> PackageReference | None:
    name_key = attribute_key(element, "Include") or attribute_key(element, "Update")
    name = (element.get(name_key) or "").strip() if name_key else ""
    if not name:
        return None

    version_key = attribute_key(element, VERSION_NAME)
    if version_key is not None:
        return PackageReference(name, element.get(version_key, "").strip(), LOCUS_ATTRIBUTE, element)

    version_element = find_child(element, VERSION_NAME)
    if version_element is not None:
        return PackageReference(name, (version_element.text or "").strip(), LOCUS_ELEMENT, element)

    return PackageReference(name, None, None, element)


def scan_project(path: str) -> ProjectFile:
    """
    Load a project file and collect its package references.

    References without a package name are skipped.

    Raises:
        NotFoundError: If the project file does not exist
        ReadError: If the project file cannot be read
        ParseError: If the project file is not well-formed XML
    """
    try:
        document = load_document(path)
    except MigrationError as e:
        e.stage = "scan"
        raise

    references = []
    for element in select(document, "//" + REFERENCE_ELEMENT):
        reference = _reference_from_element(element)
        if reference is None:
            logger.debug(f"Ignoring {REFERENCE_ELEMENT} without a package name in {path}")
            continue
        references.append(reference)

    logger.debug(f"Scanned {path}: {len(references)} package reference(s)")
    return ProjectFile(path=path, document=document, references=tuple(references))
