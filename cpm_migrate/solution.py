"""
Solution file discovery.

Only the project entry lines of a .sln file are interpreted:

    Project("{type-guid}") = "Display.Name", "relative\\path\\App.csproj", "{project-guid}"

Every other line (global sections, solution folders, nested projects,
configuration maps) is ignored. Entries whose path does not end in a
recognized project extension, such as solution folders, are skipped.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Iterable

from .config import DEFAULT_PROJECT_EXTENSIONS
from .errors import NotFoundError, ParseError, ReadError

logger = logging.getLogger(__name__)

PROJECT_LINE_RE = re.compile(
    r'^\s*Project\(\s*"(?P<type>[^"]*)"\s*\)\s*=\s*'
    r'"(?P<name>[^"]*)"\s*,\s*"(?P<path>[^"]*)"\s*,\s*"(?P<id>[^"]*)"',
    re.MULTILINE,
)


@dataclass(frozen=True)
class Solution:
    """
    Projects referenced by a solution file.

    Attributes:
        path: Absolute path of the solution file
        root: Directory containing the solution file
        projects: Absolute project paths, deduplicated, in solution order
    """
    path: str
    root: str
    projects: tuple[str, ...]


def parse_solution_text(
    text: str,
    extensions: Iterable[str] = DEFAULT_PROJECT_EXTENSIONS,
) -> list[str]:
    """
    Extract project paths from solution text.

    Args:
        text: Contents of a .sln file
        extensions: Project file extensions to keep (case-insensitive)

    Returns:
        Relative paths exactly as written in the solution, in order
    """
    suffixes = tuple(ext.lower() for ext in extensions)
    paths = []
    for match in PROJECT_LINE_RE.finditer(text):
        rel_path = match.group("path").strip()
        if rel_path.lower().endswith(suffixes):
            paths.append(rel_path)
    return paths


def load_solution(
    path: str,
    extensions: Iterable[str] = DEFAULT_PROJECT_EXTENSIONS,
) -> Solution:
    """
    Read a solution file and resolve its projects to absolute paths.

    An empty project list is returned as-is; deciding whether that is fatal
    is left to the caller.

    Raises:
        NotFoundError: If the solution file does not exist
        ParseError: If the solution file cannot be decoded
        ReadError: If the solution file cannot be read
    """
    sln_path = os.path.abspath(path)
    if not os.path.isfile(sln_path):
        raise NotFoundError("Solution file not found", stage="discover", path=sln_path)

    try:
        with open(sln_path, "r", encoding="utf-8-sig") as f:
            text = f.read()
    except UnicodeDecodeError as e:
        raise ParseError(f"Solution file is not valid UTF-8: {e}", stage="discover", path=sln_path) from e
    except OSError as e:
        raise ReadError(f"Failed to read solution file: {e}", stage="discover", path=sln_path) from e

    root = os.path.dirname(sln_path)
    projects: list[str] = []
    seen: set[str] = set()
    for rel_path in parse_solution_text(text, extensions):
        native = rel_path.replace("\\", os.sep).replace("/", os.sep)
        full = os.path.normpath(os.path.join(root, native))
        key = os.path.normcase(full)
        if key in seen:
            logger.debug(f"Skipping duplicate project entry: {rel_path}")
            continue
        seen.add(key)
        projects.append(full)

    logger.debug(f"Solution {sln_path} references {len(projects)} project(s)")
    return Solution(path=sln_path, root=root, projects=tuple(projects))
