"""
Solution conversion to central package management.

Runs the stages in order, each one aborting the run on a fatal error:

    discover  read the solution and its project list
    scan      load every project and collect package references
    resolve   pick one version per package
    write     build properties, package manifest, then project rewrites

Nothing already written is rolled back when a later step fails. Callers
that need all-or-nothing behavior must snapshot the working tree.
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field

from .common import vlog
from .config import Config
from .errors import NoProjectsFoundError
from .logging_config import get_logger
from .manifest import write_build_props, write_package_versions
from .rewriter import RewriteResult, rewrite_project
from .scanner import ProjectFile, scan_project
from .solution import load_solution
from .versions import resolve_package_versions


@dataclass(frozen=True)
class ConversionResult:
    """
    Result of converting a solution.

    Attributes:
        solution_root: Directory containing the solution file
        props_path: Build-property document path
        packages_path: Package manifest path
        projects_processed: Number of project files scanned
        packages_centralized: Number of entries in the package manifest
        package_versions: Package name -> version as written to the manifest
        projects_modified: Projects that had versions stripped
        backups_written: Backup files created
        unversioned_packages: Referenced packages left without a version
        seeded_from_manifest: Versions were adopted from an existing manifest
        preview: Whether this was a preview run (nothing written)
        duration_seconds: Total run time
    """
    solution_root: str
    props_path: str
    packages_path: str
    projects_processed: int
    packages_centralized: int
    package_versions: dict[str, str] = field(default_factory=dict)
    projects_modified: tuple[str, ...] = ()
    backups_written: tuple[str, ...] = ()
    unversioned_packages: tuple[str, ...] = ()
    seeded_from_manifest: bool = False
    preview: bool = False
    duration_seconds: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "solution_root": self.solution_root,
            "props_path": self.props_path,
            "packages_path": self.packages_path,
            "projects_processed": self.projects_processed,
            "packages_centralized": self.packages_centralized,
            "package_versions": dict(self.package_versions),
            "projects_modified": list(self.projects_modified),
            "backups_written": list(self.backups_written),
            "unversioned_packages": list(self.unversioned_packages),
            "seeded_from_manifest": self.seeded_from_manifest,
            "preview": self.preview,
            "duration_seconds": self.duration_seconds,
        }

    def summary(self) -> str:
        """Human-readable summary."""
        mode = " (preview, nothing written)" if self.preview else ""
        lines = [
            f"Conversion Summary{mode}:",
            f"  Solution root: {self.solution_root}",
            f"  Build properties: {self.props_path}",
            f"  Package manifest: {self.packages_path}",
            f"  Projects processed: {self.projects_processed}",
            f"  Projects modified: {len(self.projects_modified)}",
            f"  Packages centralized: {self.packages_centralized}",
        ]
        if self.seeded_from_manifest:
            lines.append("  Versions adopted from existing package manifest")
        if self.backups_written:
            lines.append(f"  Backups written: {len(self.backups_written)}")
        if self.unversioned_packages:
            lines.append(f"  Without version: {', '.join(self.unversioned_packages)}")
        lines.append(f"  Duration: {self.duration_seconds:.2f}s")
        return "\n".join(lines)


def convert_solution(
    solution_path: str,
    config: Config | None = None,
    props_path: str | None = None,
    packages_path: str | None = None,
    preview: bool = False,
    verbose: bool = False,
) -> ConversionResult:
    """
    Move every package version of a solution into a central manifest.

    Args:
        solution_path: Path to the .sln file
        config: Conversion settings (defaults if None)
        props_path: Build-property document path (default: next to the solution)
        packages_path: Package manifest path (default: next to the solution)
        preview: Discover and resolve only; write nothing
        verbose: Enable verbose logging

    Returns:
        ConversionResult for the run

    Raises:
        NotFoundError: Solution, project or required manifest missing
        ReadError: An existing file could not be read
        ParseError: Solution or project content malformed
        NoProjectsFoundError: The solution lists no projects
        NoVersionsFoundError: No versions to centralize
        WriteError: A file could not be written
    """
    config = config or Config()
    logger = get_logger()
    start_time = time.time()

    # discover
    solution = load_solution(solution_path, config.project_extensions)
    if not solution.projects:
        raise NoProjectsFoundError(
            "Solution does not reference any project files",
            stage="discover",
            path=solution.path,
        )
    vlog(f"Found {len(solution.projects)} project(s) in {solution.path}", verbose)

    props_path = os.path.abspath(props_path or os.path.join(solution.root, config.props_file))
    packages_path = os.path.abspath(packages_path or os.path.join(solution.root, config.packages_file))

    # scan
    projects: list[ProjectFile] = []
    for path in solution.projects:
        project = scan_project(path)
        vlog(f"Scanned {path}: {len(project.references)} reference(s)", verbose)
        projects.append(project)

    # resolve
    resolution = resolve_package_versions(projects, packages_path, verbose=verbose)
    logger.info(f"Resolved {len(resolution.versions)} package version(s)")

    # write
    write_build_props(props_path, preview=preview, verbose=verbose)
    write_package_versions(
        packages_path,
        resolution.versions,
        config.sort_order,
        preview=preview,
        verbose=verbose,
    )

    rewrites: list[RewriteResult] = []
    for project in projects:
        rewrites.append(rewrite_project(
            project,
            backup=config.backup,
            backup_suffix=config.backup_suffix,
            preview=preview,
            verbose=verbose,
        ))

    result = ConversionResult(
        solution_root=solution.root,
        props_path=props_path,
        packages_path=packages_path,
        projects_processed=len(projects),
        packages_centralized=len(resolution.versions),
        package_versions=dict(resolution.versions),
        projects_modified=tuple(r.path for r in rewrites if r.changed),
        backups_written=tuple(r.backup_path for r in rewrites if r.backup_path),
        unversioned_packages=resolution.unversioned,
        seeded_from_manifest=resolution.seeded,
        preview=preview,
        duration_seconds=time.time() - start_time,
    )
    logger.info(
        f"{'Previewed' if preview else 'Converted'} {result.projects_processed} project(s), "
        f"{result.packages_centralized} package(s) centralized"
    )
    return result
