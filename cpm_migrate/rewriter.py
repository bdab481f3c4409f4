"""
Removal of per-project package versions.

Every Version attribute and <Version> child element is stripped from the
scanned <PackageReference> items of a project, whichever version the
solution ends up using. Projects without any version declaration are never
re-saved, so repeated runs leave them byte-identical.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .common import write_bytes
from .scanner import VERSION_NAME, ProjectFile
from .xml_document import attribute_key, find_child, remove_child, save_document

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RewriteResult:
    """
    Outcome of rewriting one project.

    Attributes:
        path: Project file path
        changed: Whether any version declaration was removed
        stripped: Number of version declarations removed
        backup_path: Backup written before saving, if any
        written: Whether the project file was saved
    """
    path: str
    changed: bool
    stripped: int = 0
    backup_path: str | None = None
    written: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "path": self.path,
            "changed": self.changed,
            "stripped": self.stripped,
            "backup_path": self.backup_path,
            "written": self.written,
        }


def backup_path_for(path: str, suffix: str = ".bak") -> str:
    """Sibling path used for a project's pre-rewrite copy."""
    return path + suffix


def strip_versions(project: ProjectFile) -> int:
    """
    Remove version declarations from the project's document in memory.

    Returns:
        Number of declarations removed
    """
    stripped = 0
    for reference in project.references:
        element = reference.element
        if element is None:
            continue

        key = attribute_key(element, VERSION_NAME)
        if key is not None:
            del element.attrib[key]
            stripped += 1

        # A reference may carry both forms; remove every <Version> child
        child = find_child(element, VERSION_NAME)
        while child is not None:
            remove_child(element, child)
            stripped += 1
            child = find_child(element, VERSION_NAME)
    return stripped


def rewrite_project(
    project: ProjectFile,
    backup: bool = False,
    backup_suffix: str = ".bak",
    preview: bool = False,
    verbose: bool = False,
) -> RewriteResult:
    """
    Strip per-project versions and save the project if it changed.

    The backup (raw bytes as originally read) is written before the project
    itself is saved.

    Args:
        project: Scanned project; its document is modified in place
        backup: Write a backup of changed projects
        backup_suffix: Suffix appended to the project path for the backup
        preview: When True nothing is written
        verbose: Enable verbose logging

    Returns:
        RewriteResult describing what happened
    """
    if not project.has_versions:
        return RewriteResult(path=project.path, changed=False)

    stripped = strip_versions(project)
    if not stripped:
        return RewriteResult(path=project.path, changed=False)

    backup_written = None
    if backup:
        target = backup_path_for(project.path, backup_suffix)
        if write_bytes(target, project.raw, preview=preview, verbose=verbose):
            backup_written = target

    written = save_document(project.document, project.path, preview=preview, verbose=verbose)
    logger.info(f"{'Would strip' if preview else 'Stripped'} {stripped} version(s) from {project.path}")
    return RewriteResult(
        path=project.path,
        changed=True,
        stripped=stripped,
        backup_path=backup_written,
        written=written,
    )
