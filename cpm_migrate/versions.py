"""
Version normalization, comparison and cross-project resolution.

Versions are handled as `major.minor.patch[-prerelease][+build]`:

- build metadata is dropped,
- the numeric core is padded with zeros (or truncated) to three components,
- a release sorts above any prerelease of the same core,
- prerelease identifiers compare numerically when both are integers and
  case-insensitively otherwise; a shorter identifier list sorts first.

Strings without a numeric core (MSBuild properties such as $(XunitVersion),
version ranges, floating versions) are kept as written. They sort below every
numeric version and compare among themselves case-insensitively.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Iterable

from .common import vlog
from .errors import MigrationError, NoVersionsFoundError
from .scanner import ProjectFile
from .xml_document import attribute_key, find_child, load_document, select

logger = logging.getLogger(__name__)

VERSION_RE = re.compile(
    r"^[vV]?(?P<core>\d+(?:\.\d+)*)"
    r"(?:-(?P<prerelease>[0-9A-Za-z.-]*))?"
    r"(?:\+[0-9A-Za-z.-]*)?$",
    re.ASCII,
)

CORE_LENGTH = 3

PACKAGE_VERSION_ELEMENT = "PackageVersion"


@dataclass(frozen=True)
class ParsedVersion:
    """
    Comparable form of a version string.

    Attributes:
        core: (major, minor, patch), or None for non-numeric versions
        prerelease: Prerelease identifiers, empty for a release
        raw: Stripped input, used for non-numeric versions
    """
    core: tuple[int, ...] | None
    prerelease: tuple[str, ...] = ()
    raw: str = ""

    @property
    def is_numeric(self) -> bool:
        return self.core is not None

    def __str__(self) -> str:
        if self.core is None:
            return self.raw
        text = ".".join(str(part) for part in self.core)
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        return text


def parse_version(version: str) -> ParsedVersion:
    """Parse a version string; never raises."""
    text = (version or "").strip()
    match = VERSION_RE.match(text)
    if not match:
        return ParsedVersion(core=None, raw=text)

    parts = [int(part) for part in match.group("core").split(".")][:CORE_LENGTH]
    parts += [0] * (CORE_LENGTH - len(parts))

    prerelease = match.group("prerelease")
    identifiers = tuple(prerelease.split(".")) if prerelease else ()
    return ParsedVersion(core=tuple(parts), prerelease=identifiers, raw=text)


def normalize_version(version: str) -> str:
    """
    Normalize a version string to `major.minor.patch[-prerelease]`.

    Examples:
        "1.0"             -> "1.0.0"
        "v2.1.3.4"        -> "2.1.3"
        "1.2.3-rc.1+sha"  -> "1.2.3-rc.1"
        "$(XunitVersion)" -> "$(XunitVersion)"
    """
    return str(parse_version(version))


def _compare_identifiers(a: str, b: str) -> int:
    if a.isdigit() and b.isdigit():
        left, right = int(a), int(b)
    else:
        left, right = a.lower(), b.lower()
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def _compare_prerelease(a: tuple[str, ...], b: tuple[str, ...]) -> int:
    # A release (no identifiers) is greater than any prerelease
    if not a and not b:
        return 0
    if not a:
        return 1
    if not b:
        return -1

    for left, right in zip(a, b):
        result = _compare_identifiers(left, right)
        if result:
            return result

    if len(a) < len(b):
        return -1
    if len(a) > len(b):
        return 1
    return 0


def compare_versions(v1: str, v2: str) -> int:
    """
    Compare two version strings.

    Args:
        v1: First version
        v2: Second version

    Returns:
        -1 if v1 < v2, 0 if v1 == v2, 1 if v1 > v2
    """
    p1, p2 = parse_version(v1), parse_version(v2)

    if p1.core is None or p2.core is None:
        if p1.core is not None:
            return 1
        if p2.core is not None:
            return -1
        left, right = p1.raw.lower(), p2.raw.lower()
        return (left > right) - (left < right)

    if p1.core != p2.core:
        return -1 if p1.core < p2.core else 1

    return _compare_prerelease(p1.prerelease, p2.prerelease)


def max_version(versions: Iterable[str]) -> str | None:
    """Return the greatest version, the first one on ties; None if empty."""
    best: str | None = None
    for version in versions:
        if best is None or compare_versions(version, best) > 0:
            best = version
    return best


@dataclass
class AggregationResult:
    """
    Versions collected across projects.

    Package ids are case-insensitive; each package is keyed by the spelling
    it was first seen with.

    Attributes:
        versions: Package name -> normalized version, in first-discovery order
        seen: Every package name referenced, in first-discovery order
        spellings: Case-folded name -> first-seen spelling
    """
    versions: dict[str, str] = field(default_factory=dict)
    seen: dict[str, None] = field(default_factory=dict)
    spellings: dict[str, str] = field(default_factory=dict)

    def canonical_name(self, name: str) -> str:
        return self.spellings.setdefault(name.casefold(), name)

    @property
    def unversioned(self) -> list[str]:
        """Names referenced somewhere but never with a version."""
        return [name for name in self.seen if name not in self.versions]


def aggregate_versions(projects: Iterable[ProjectFile]) -> AggregationResult:
    """
    Pick the highest declared version of every package.

    The first version found for a name is recorded; later ones replace it
    only when strictly greater. References without a version only mark the
    name as seen.
    """
    result = AggregationResult()

    for project in projects:
        for reference in project.references:
            name = result.canonical_name(reference.name)
            result.seen.setdefault(name, None)
            if not reference.version:
                continue

            candidate = normalize_version(reference.version)
            current = result.versions.get(name)
            if current is None:
                result.versions[name] = candidate
                continue

            best = max_version([current, candidate])
            if best != current:
                logger.debug(f"{name}: {candidate} supersedes {current} ({project.path})")
                result.versions[name] = best

    return result


def read_package_versions(path: str) -> dict[str, str]:
    """
    Read name -> version pairs from an existing package manifest.

    Entries are returned verbatim in document order; a repeated package id
    (compared case-insensitively) keeps its first entry. A missing file
    yields an empty mapping.

    Raises:
        ParseError: If the manifest exists but is not well-formed XML
    """
    if not os.path.isfile(path):
        return {}

    try:
        document = load_document(path)
    except MigrationError as e:
        e.stage = "resolve"
        raise

    versions: dict[str, str] = {}
    seen: set[str] = set()
    for element in select(document, "//" + PACKAGE_VERSION_ELEMENT):
        name_key = attribute_key(element, "Include") or attribute_key(element, "Update")
        name = (element.get(name_key) or "").strip() if name_key else ""

        version_key = attribute_key(element, "Version")
        if version_key is not None:
            version = element.get(version_key, "").strip()
        else:
            child = find_child(element, "Version")
            version = (child.text or "").strip() if child is not None else ""

        if name and version and name.casefold() not in seen:
            seen.add(name.casefold())
            versions[name] = version
    return versions


@dataclass
class Resolution:
    """
    Final package versions for a run.

    Attributes:
        versions: Package name -> version, insertion ordered
        seeded: Whether versions were adopted from an existing manifest
        unversioned: Referenced names that ended up without a version
    """
    versions: dict[str, str]
    seeded: bool = False
    unversioned: tuple[str, ...] = ()


def resolve_package_versions(
    projects: Iterable[ProjectFile],
    packages_path: str,
    verbose: bool = False,
) -> Resolution:
    """
    Determine the version map to centralize.

    When no project declares any version (a solution converted by an earlier
    run), the existing package manifest is adopted verbatim. Otherwise
    referenced names that carry no version in any project are filled in from
    that manifest when it lists them.

    Raises:
        NoVersionsFoundError: If no versions are declared and no manifest
            with entries exists at packages_path
    """
    aggregated = aggregate_versions(projects)

    if not aggregated.versions:
        existing = read_package_versions(packages_path)
        if not existing:
            raise NoVersionsFoundError(
                "No package versions declared in any project and no existing package manifest to adopt",
                stage="resolve",
                path=packages_path,
            )
        logger.info(f"No inline versions left; adopting {len(existing)} entries from {packages_path}")
        return Resolution(versions=dict(existing), seeded=True)

    versions = dict(aggregated.versions)
    missing = aggregated.unversioned
    if missing:
        existing = {
            name.casefold(): version
            for name, version in read_package_versions(packages_path).items()
        }
        for name in missing:
            version = existing.get(name.casefold())
            if version is not None:
                versions[name] = version
                vlog(f"{name}: keeping {version} from existing manifest", verbose)

    unversioned = tuple(name for name in missing if name not in versions)
    for name in unversioned:
        logger.warning(f"Package '{name}' is referenced without a version anywhere; not centralized")

    return Resolution(versions=versions, unversioned=unversioned)


def sort_package_versions(versions: dict[str, str], order: str = "alphabetical") -> list[tuple[str, str]]:
    """
    Order manifest entries.

    Args:
        versions: Package name -> version
        order: 'alphabetical' (case-insensitive, ordinal) or 'discovery'

    Raises:
        ValueError: On an unknown order
    """
    if order == "discovery":
        return list(versions.items())
    if order == "alphabetical":
        return sorted(versions.items(), key=lambda item: (item[0].casefold(), item[0]))
    raise ValueError(f"Invalid sort order: {order}")
