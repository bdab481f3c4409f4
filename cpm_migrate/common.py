"""
Common utilities shared across cpm_migrate modules.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from .errors import WriteError


def vlog(msg: str, verbose: bool = False) -> None:
    """
    Log verbose message using structured logging.

    Args:
        msg: Message to log
        verbose: Whether verbose mode is enabled
    """
    if verbose or os.environ.get("CPM_MIGRATE_DEBUG", "0") == "1":
        try:
            from .logging_config import get_logger
            logger = get_logger()
            logger.info(msg)
        except Exception:
            # Fallback to stderr if logging fails
            try:
                print(f"[cpm_migrate] {msg}", file=sys.stderr)
            except Exception:
                pass


def write_bytes(
    path: str | Path,
    data: bytes,
    preview: bool,
    skip_unchanged: bool = False,
    verbose: bool = False,
) -> bool:
    """
    Write a file unless preview mode is active.

    Every filesystem mutation performed by a conversion goes through this
    function. Parent directories are created as needed.

    Args:
        path: Destination file
        data: Complete file content
        preview: When True nothing is written
        skip_unchanged: Leave the file alone if it already holds exactly `data`
        verbose: Enable verbose logging

    Returns:
        True if the file was written, False otherwise

    Raises:
        WriteError: If the directory or file cannot be written
    """
    path = Path(path)

    if preview:
        vlog(f"Preview: would write {path}", verbose)
        return False

    if skip_unchanged and path.is_file():
        try:
            if path.read_bytes() == data:
                vlog(f"Unchanged: {path}", verbose)
                return False
        except OSError:
            pass

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
    except OSError as e:
        raise WriteError(f"Failed to write file: {e}", stage="write", path=str(path)) from e

    vlog(f"Wrote {path}", verbose)
    return True
