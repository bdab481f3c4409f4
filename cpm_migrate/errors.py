"""
Exception taxonomy for solution conversion.

Every fatal condition raised by the pipeline derives from MigrationError and
carries the stage that failed and the path involved, so callers can report a
single descriptive error.
"""

from __future__ import annotations


class MigrationError(Exception):
    """
    Base exception for conversion errors.

    Attributes:
        message: Human-readable error message
        stage: Pipeline stage that failed ('discover', 'scan', 'resolve', 'write')
        path: File path involved in the failure, if any
    """
    def __init__(
        self,
        message: str,
        stage: str | None = None,
        path: str | None = None,
    ):
        self.message = message
        self.stage = stage
        self.path = path
        super().__init__(message)

    def __str__(self) -> str:
        parts = []
        if self.stage:
            parts.append(f"[{self.stage}]")
        parts.append(self.message)
        if self.path:
            parts.append(f"({self.path})")
        return " ".join(parts)


class NotFoundError(MigrationError):
    """A solution, project or seed manifest is missing where required."""


class ParseError(MigrationError):
    """Solution text or project XML is malformed beyond recovery."""


class NoProjectsFoundError(MigrationError):
    """The solution references no project files."""


class NoVersionsFoundError(MigrationError):
    """No inline versions remain and no package manifest exists to adopt."""


class WriteError(MigrationError):
    """A file could not be written. The OSError is kept as __cause__."""


class ReadError(MigrationError):
    """A file exists but could not be read. The OSError is kept as __cause__."""
