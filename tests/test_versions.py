"""
Tests for version normalization, comparison and resolution.
"""

from __future__ import annotations

import itertools
from functools import cmp_to_key
from pathlib import Path

import pytest

from cpm_migrate.errors import NoVersionsFoundError, ParseError
from cpm_migrate.scanner import PackageReference, ProjectFile
from cpm_migrate.versions import (
    aggregate_versions,
    compare_versions,
    max_version,
    normalize_version,
    parse_version,
    read_package_versions,
    resolve_package_versions,
    sort_package_versions,
)
from cpm_migrate.xml_document import new_document


def make_project(path: str, *refs: tuple[str, str | None]) -> ProjectFile:
    """Build a ProjectFile without touching the filesystem."""
    references = tuple(
        PackageReference(name, version, "attribute" if version is not None else None)
        for name, version in refs
    )
    return ProjectFile(path=path, document=new_document(), references=references)


MANIFEST = """<Project>
  <ItemGroup>
    <PackageVersion Include="Serilog" Version="3.1.1" />
    <PackageVersion Include="Polly" Version="8.2.0" />
  </ItemGroup>
</Project>
"""


class TestNormalizeVersion:
    """Tests for version normalization."""

    def test_pads_missing_components(self):
        """Test that short versions are padded to three components."""
        assert normalize_version("1") == "1.0.0"
        assert normalize_version("1.0") == "1.0.0"
        assert normalize_version("2.5") == "2.5.0"

    def test_truncates_extra_components(self):
        """Test that components beyond the third are dropped."""
        assert normalize_version("1.2.3.4") == "1.2.3"
        assert normalize_version("4.7.2.1-beta") == "4.7.2-beta"

    def test_drops_build_metadata(self):
        """Test that build metadata after '+' is removed."""
        assert normalize_version("1.2.3+abc123") == "1.2.3"
        assert normalize_version("1.2.3-rc.1+build.5") == "1.2.3-rc.1"

    def test_keeps_prerelease(self):
        """Test that the prerelease suffix survives normalization."""
        assert normalize_version("2.0-beta.1") == "2.0.0-beta.1"
        assert normalize_version("1.0.0-rc-2") == "1.0.0-rc-2"

    def test_strips_whitespace_and_v_prefix(self):
        """Test that surrounding whitespace and a leading 'v' are removed."""
        assert normalize_version("  1.2.3 ") == "1.2.3"
        assert normalize_version("v1.2") == "1.2.0"

    def test_leading_zeros_removed(self):
        """Test that numeric components are re-rendered."""
        assert normalize_version("01.002.0003") == "1.2.3"

    def test_non_numeric_kept_verbatim(self):
        """Test that property references and ranges are left alone."""
        assert normalize_version("$(XunitVersion)") == "$(XunitVersion)"
        assert normalize_version("[1.0,2.0)") == "[1.0,2.0)"
        assert normalize_version("1.*") == "1.*"

    @pytest.mark.parametrize("version", [
        "1", "1.0", "1.2.3.4", "1.2.3-beta.1+meta", "v3", " 2.0 ",
        "1.0.0-", "$(Foo)", "[1.0,2.0)", "", "1.0.0-RC.1",
    ])
    def test_idempotent(self, version):
        """Test that normalizing twice equals normalizing once."""
        once = normalize_version(version)
        assert normalize_version(once) == once


class TestParseVersion:
    """Tests for the parsed representation."""

    def test_parse_numeric(self):
        """Test parsing a full version."""
        parsed = parse_version("1.2.3-alpha.7")
        assert parsed.core == (1, 2, 3)
        assert parsed.prerelease == ("alpha", "7")
        assert parsed.is_numeric is True

    def test_parse_non_numeric(self):
        """Test parsing something that is not a version."""
        parsed = parse_version("latest")
        assert parsed.core is None
        assert parsed.is_numeric is False
        assert str(parsed) == "latest"


class TestCompareVersions:
    """Tests for version comparison."""

    def test_compare_versions_semantic_less_than(self):
        """Test semantic version comparison (less than)."""
        assert compare_versions("1.0.0", "1.0.1") == -1
        assert compare_versions("1.0.0", "1.1.0") == -1
        assert compare_versions("1.0.0", "2.0.0") == -1

    def test_compare_versions_semantic_greater_than(self):
        """Test semantic version comparison (greater than)."""
        assert compare_versions("1.0.1", "1.0.0") == 1
        assert compare_versions("1.1.0", "1.0.0") == 1
        assert compare_versions("2.0.0", "1.0.0") == 1

    def test_compare_versions_numeric_not_lexical(self):
        """Test that components compare as numbers."""
        assert compare_versions("1.10.0", "1.9.0") == 1
        assert compare_versions("2.0.0", "1.99.99") == 1

    def test_compare_versions_padding(self):
        """Test that missing components count as zero."""
        assert compare_versions("1.0", "1.0.0") == 0
        assert compare_versions("1", "1.0.0") == 0

    def test_release_beats_prerelease(self):
        """Test that a release is greater than its prerelease."""
        assert compare_versions("2.0.0-beta.1", "2.0.0") < 0
        assert compare_versions("2.0.0", "2.0.0-rc.9") > 0

    def test_prerelease_numeric_identifiers(self):
        """Test that numeric identifiers compare numerically."""
        assert compare_versions("1.0.0-beta.2", "1.0.0-beta.10") == -1
        assert compare_versions("1.0.0-rc.11", "1.0.0-rc.2") == 1

    def test_prerelease_lexical_identifiers(self):
        """Test that alphanumeric identifiers compare case-insensitively."""
        assert compare_versions("1.0.0-alpha", "1.0.0-beta") == -1
        assert compare_versions("1.0.0-RC", "1.0.0-rc") == 0
        assert compare_versions("1.0.0-Beta", "1.0.0-alpha") == 1

    def test_prerelease_shorter_is_lesser(self):
        """Test that fewer identifiers sort first when the rest are equal."""
        assert compare_versions("1.0.0-alpha", "1.0.0-alpha.1") == -1
        assert compare_versions("1.0.0-alpha.1.1", "1.0.0-alpha.1") == 1

    def test_build_metadata_ignored(self):
        """Test that build metadata does not influence ordering."""
        assert compare_versions("1.0.0+aaa", "1.0.0+zzz") == 0

    def test_non_numeric_below_numeric(self):
        """Test that unparseable versions sort below real versions."""
        assert compare_versions("$(Version)", "0.0.1") == -1
        assert compare_versions("0.0.1", "$(Version)") == 1
        assert compare_versions("$(A)", "$(a)") == 0

    SAMPLES = [
        "0.9", "1.0.0-alpha", "1.0.0-alpha.1", "1.0.0-alpha.beta", "1.0.0-beta",
        "1.0.0-beta.2", "1.0.0-beta.11", "1.0.0-rc.1", "1.0", "1.0.0", "1.0.1",
        "1.10.0", "2.0.0-BETA", "2.0.0", "$(Pinned)",
    ]

    def test_reflexive(self):
        """Test that every version compares equal to itself."""
        for v in self.SAMPLES:
            assert compare_versions(v, v) == 0

    def test_antisymmetric(self):
        """Test that swapping arguments negates the result."""
        for a, b in itertools.product(self.SAMPLES, repeat=2):
            assert compare_versions(a, b) == -compare_versions(b, a)

    def test_transitive(self):
        """Test transitivity over all triples of samples."""
        for a, b, c in itertools.product(self.SAMPLES, repeat=3):
            if compare_versions(a, b) <= 0 and compare_versions(b, c) <= 0:
                assert compare_versions(a, c) <= 0

    def test_semver_precedence_chain(self):
        """Test the ordering example from the semantic versioning rules."""
        chain = [
            "1.0.0-alpha", "1.0.0-alpha.1", "1.0.0-alpha.beta", "1.0.0-beta",
            "1.0.0-beta.2", "1.0.0-beta.11", "1.0.0-rc.1", "1.0.0",
        ]
        assert sorted(reversed(chain), key=cmp_to_key(compare_versions)) == chain


class TestMaxVersion:
    """Tests for max_version."""

    def test_max_version(self):
        assert max_version(["1.2.0", "1.2.3", "1.2.0-rc.1"]) == "1.2.3"

    def test_max_version_first_wins_on_tie(self):
        assert max_version(["1.0", "1.0.0"]) == "1.0"

    def test_max_version_empty(self):
        assert max_version([]) is None


class TestAggregateVersions:
    """Tests for cross-project aggregation."""

    def test_highest_version_wins(self):
        """Test the three-project example resolves to the release."""
        projects = [
            make_project("a.csproj", ("P", "1.2.0")),
            make_project("b.csproj", ("P", "1.2.3")),
            make_project("c.csproj", ("P", "1.2.0-rc.1")),
        ]
        result = aggregate_versions(projects)
        assert result.versions == {"P": "1.2.3"}

    def test_versions_are_normalized(self):
        """Test that recorded versions use the normalized form."""
        result = aggregate_versions([make_project("a.csproj", ("P", "2.1"))])
        assert result.versions == {"P": "2.1.0"}

    def test_equal_versions_keep_first(self):
        """Test that an equal later version does not replace the first."""
        projects = [
            make_project("a.csproj", ("P", "1.0.0-RC")),
            make_project("b.csproj", ("P", "1.0.0-rc")),
        ]
        assert aggregate_versions(projects).versions == {"P": "1.0.0-RC"}

    def test_discovery_order_preserved(self):
        """Test that map order follows first discovery."""
        projects = [
            make_project("a.csproj", ("Zeta", "1.0"), ("Alpha", "1.0")),
            make_project("b.csproj", ("Mid", "1.0"), ("Zeta", "2.0")),
        ]
        assert list(aggregate_versions(projects).versions) == ["Zeta", "Alpha", "Mid"]

    def test_unversioned_references_only_seen(self):
        """Test that references without a version do not create entries."""
        projects = [
            make_project("a.csproj", ("Bare", None), ("P", "1.0")),
            make_project("b.csproj", ("Empty", "")),
        ]
        result = aggregate_versions(projects)
        assert result.versions == {"P": "1.0.0"}
        assert list(result.seen) == ["Bare", "P", "Empty"]
        assert result.unversioned == ["Bare", "Empty"]

    def test_unversioned_then_versioned(self):
        """Test that a later version still initializes a seen name."""
        projects = [
            make_project("a.csproj", ("P", None)),
            make_project("b.csproj", ("P", "3.0")),
        ]
        assert aggregate_versions(projects).versions == {"P": "3.0.0"}

    def test_names_are_case_insensitive(self):
        """Test that ids differing only in case share one entry under the first spelling."""
        projects = [
            make_project("a.csproj", ("Newtonsoft.Json", "12.0.3")),
            make_project("b.csproj", ("newtonsoft.json", "13.0.1"), ("NEWTONSOFT.JSON", None)),
        ]
        result = aggregate_versions(projects)
        assert result.versions == {"Newtonsoft.Json": "13.0.1"}
        assert list(result.seen) == ["Newtonsoft.Json"]
        assert result.unversioned == []


class TestReadPackageVersions:
    """Tests for reading an existing package manifest."""

    def test_missing_file(self, tmp_path: Path):
        assert read_package_versions(str(tmp_path / "Directory.Packages.props")) == {}

    def test_reads_entries_verbatim(self, tmp_path: Path):
        path = tmp_path / "Directory.Packages.props"
        path.write_text(MANIFEST, encoding="utf-8")
        assert read_package_versions(str(path)) == {"Serilog": "3.1.1", "Polly": "8.2.0"}

    def test_namespaced_and_child_element(self, tmp_path: Path):
        """Test default namespaces and <Version> children are understood."""
        path = tmp_path / "Directory.Packages.props"
        path.write_text(
            '<Project xmlns="http://schemas.microsoft.com/developer/msbuild/2003">'
            '<ItemGroup><PackageVersion Include="A"><Version>1.0</Version></PackageVersion>'
            '<PackageVersion Include="B" /></ItemGroup></Project>',
            encoding="utf-8",
        )
        assert read_package_versions(str(path)) == {"A": "1.0"}

    def test_malformed_manifest(self, tmp_path: Path):
        path = tmp_path / "Directory.Packages.props"
        path.write_text("<Project><ItemGroup>", encoding="utf-8")
        with pytest.raises(ParseError) as exc_info:
            read_package_versions(str(path))
        assert exc_info.value.stage == "resolve"

    def test_repeated_id_keeps_first(self, tmp_path: Path):
        path = tmp_path / "Directory.Packages.props"
        path.write_text(
            '<Project><ItemGroup>'
            '<PackageVersion Include="Serilog" Version="3.1.1" />'
            '<PackageVersion Include="serilog" Version="2.0.0" />'
            '</ItemGroup></Project>',
            encoding="utf-8",
        )
        assert read_package_versions(str(path)) == {"Serilog": "3.1.1"}


class TestResolvePackageVersions:
    """Tests for resolution including manifest seeding."""

    def test_aggregated_versions_used(self, tmp_path: Path):
        resolution = resolve_package_versions(
            [make_project("a.csproj", ("P", "1.0"))],
            str(tmp_path / "Directory.Packages.props"),
        )
        assert resolution.versions == {"P": "1.0.0"}
        assert resolution.seeded is False

    def test_seeds_from_existing_manifest(self, tmp_path: Path):
        """Test that a fully converted solution adopts the manifest."""
        path = tmp_path / "Directory.Packages.props"
        path.write_text(MANIFEST, encoding="utf-8")
        resolution = resolve_package_versions(
            [make_project("a.csproj", ("Serilog", None))],
            str(path),
        )
        assert resolution.seeded is True
        assert resolution.versions == {"Serilog": "3.1.1", "Polly": "8.2.0"}

    def test_no_versions_and_no_manifest(self, tmp_path: Path):
        with pytest.raises(NoVersionsFoundError) as exc_info:
            resolve_package_versions(
                [make_project("a.csproj", ("P", None))],
                str(tmp_path / "Directory.Packages.props"),
            )
        assert exc_info.value.stage == "resolve"

    def test_no_versions_and_empty_manifest(self, tmp_path: Path):
        path = tmp_path / "Directory.Packages.props"
        path.write_text("<Project><ItemGroup /></Project>", encoding="utf-8")
        with pytest.raises(NoVersionsFoundError):
            resolve_package_versions([make_project("a.csproj")], str(path))

    def test_backfills_unversioned_from_manifest(self, tmp_path: Path):
        """Test that already-centralized names keep their manifest version."""
        path = tmp_path / "Directory.Packages.props"
        path.write_text(MANIFEST, encoding="utf-8")
        resolution = resolve_package_versions(
            [
                make_project("a.csproj", ("Polly", None), ("Newtonsoft.Json", "13.0.1")),
                make_project("b.csproj", ("Unknown", None)),
            ],
            str(path),
        )
        assert resolution.seeded is False
        assert resolution.versions == {"Newtonsoft.Json": "13.0.1", "Polly": "8.2.0"}
        assert resolution.unversioned == ("Unknown",)

    def test_backfill_matches_case_insensitively(self, tmp_path: Path):
        path = tmp_path / "Directory.Packages.props"
        path.write_text(MANIFEST, encoding="utf-8")
        resolution = resolve_package_versions(
            [make_project("a.csproj", ("polly", None), ("Dapper", "2.1"))],
            str(path),
        )
        assert resolution.versions == {"Dapper": "2.1.0", "polly": "8.2.0"}
        assert resolution.unversioned == ()


class TestSortPackageVersions:
    """Tests for manifest ordering."""

    VERSIONS = {"zlib": "1.0.0", "Alpha": "2.0.0", "beta": "3.0.0", "alpha": "4.0.0"}

    def test_discovery_order(self):
        assert [n for n, _ in sort_package_versions(self.VERSIONS, "discovery")] == [
            "zlib", "Alpha", "beta", "alpha",
        ]

    def test_alphabetical_case_insensitive(self):
        assert [n for n, _ in sort_package_versions(self.VERSIONS, "alphabetical")] == [
            "Alpha", "alpha", "beta", "zlib",
        ]

    def test_invalid_order(self):
        with pytest.raises(ValueError, match="Invalid sort order"):
            sort_package_versions(self.VERSIONS, "random")
