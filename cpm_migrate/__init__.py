"""
cpm_migrate - Convert .NET solutions to central package management.

Core Modules:
- Discovery: solution parsing and package reference scanning
- Resolution: version normalization, comparison and aggregation
- Output: Directory.Build.props / Directory.Packages.props generation
- Rewriting: removal of per-project versions with optional backups
"""

__version__ = "1.0.0"
__author__ = "cpm_migrate Contributors"

VERSION = __version__

# Errors
from .errors import (
    MigrationError,
    NotFoundError,
    ReadError,
    ParseError,
    NoProjectsFoundError,
    NoVersionsFoundError,
    WriteError,
)

# Discovery
from .solution import Solution, parse_solution_text, load_solution
from .scanner import PackageReference, ProjectFile, scan_project

# Resolution
from .versions import (
    ParsedVersion,
    AggregationResult,
    Resolution,
    parse_version,
    normalize_version,
    compare_versions,
    max_version,
    aggregate_versions,
    read_package_versions,
    resolve_package_versions,
    sort_package_versions,
)

# Output and rewriting
from .manifest import write_build_props, write_package_versions
from .rewriter import RewriteResult, rewrite_project, backup_path_for

# Pipeline
from .converter import ConversionResult, convert_solution

# Foundation
from .config import Config, load_config, load_config_file, validate_config
from .logging_config import setup_logging, get_logger

__all__ = [
    # Version
    "__version__",
    "VERSION",
    # Errors
    "MigrationError",
    "NotFoundError",
    "ReadError",
    "ParseError",
    "NoProjectsFoundError",
    "NoVersionsFoundError",
    "WriteError",
    # Discovery
    "Solution",
    "parse_solution_text",
    "load_solution",
    "PackageReference",
    "ProjectFile",
    "scan_project",
    # Resolution
    "ParsedVersion",
    "AggregationResult",
    "Resolution",
    "parse_version",
    "normalize_version",
    "compare_versions",
    "max_version",
    "aggregate_versions",
    "read_package_versions",
    "resolve_package_versions",
    "sort_package_versions",
    # Output and rewriting
    "write_build_props",
    "write_package_versions",
    "RewriteResult",
    "rewrite_project",
    "backup_path_for",
    # Pipeline
    "ConversionResult",
    "convert_solution",
    # Foundation
    "Config",
    "load_config",
    "load_config_file",
    "validate_config",
    "setup_logging",
    "get_logger",
]
