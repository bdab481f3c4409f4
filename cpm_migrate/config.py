"""
Configuration file parsing and management.

Reads YAML configuration files (JSON is accepted for files ending in .json)
and merges them from multiple sources (explicit → project → user → defaults).
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any

import yaml

from .common import vlog


# Configuration file locations (in priority order)
CONFIG_LOCATIONS = [
    ".cpm-migrate.yml",                                     # Solution root (highest priority)
    ".cpm-migrate.yaml",
    os.path.expanduser("~/.config/cpm-migrate/config.yml"),  # User global
    os.path.expanduser("~/.config/cpm-migrate/config.yaml"),
]

SORT_ORDERS = ("alphabetical", "discovery")

DEFAULT_PROJECT_EXTENSIONS = (".csproj", ".fsproj", ".vbproj")
DEFAULT_PROPS_FILE = "Directory.Build.props"
DEFAULT_PACKAGES_FILE = "Directory.Packages.props"
DEFAULT_BACKUP_SUFFIX = ".bak"


@dataclass(frozen=True)
class Config:
    """
    Conversion settings.

    Attributes:
        version: Config schema version
        sort_order: Order of entries in the package manifest ('alphabetical' or 'discovery')
        backup: Write a backup next to every project file that gets rewritten
        backup_suffix: Suffix appended to a project path to form its backup path
        project_extensions: Project file extensions recognized in solution files
        props_file: File name of the build-property document
        packages_file: File name of the package-version manifest
        source: Path to the configuration file that was loaded
    """
    version: int = 1
    sort_order: str = "alphabetical"
    backup: bool = False
    backup_suffix: str = DEFAULT_BACKUP_SUFFIX
    project_extensions: tuple[str, ...] = DEFAULT_PROJECT_EXTENSIONS
    props_file: str = DEFAULT_PROPS_FILE
    packages_file: str = DEFAULT_PACKAGES_FILE
    source: str = field(default="", compare=False)

    def __post_init__(self):
        """Validate config after initialization."""
        if self.version != 1:
            raise ValueError(f"Unsupported config version: {self.version}. Expected version 1")

        if self.sort_order not in SORT_ORDERS:
            raise ValueError(
                f"Invalid sort_order: {self.sort_order}. "
                f"Must be one of: {', '.join(SORT_ORDERS)}"
            )

        if not self.backup_suffix or not self.backup_suffix.startswith("."):
            raise ValueError(
                f"Invalid backup_suffix: {self.backup_suffix!r}. "
                "Must be non-empty and start with '.'"
            )

        if not self.project_extensions:
            raise ValueError("project_extensions must not be empty")
        for ext in self.project_extensions:
            if not ext.startswith("."):
                raise ValueError(f"Invalid project extension: {ext!r}. Must start with '.'")

        for name in (self.props_file, self.packages_file):
            if not name or os.path.basename(name) != name:
                raise ValueError(f"Invalid output file name: {name!r}. Must be a bare file name")

    @staticmethod
    def from_dict(data: dict[str, Any], source: str = "") -> Config:
        """Create Config from dictionary."""
        output = data.get("output", {}) or {}
        extensions = data.get("project_extensions", DEFAULT_PROJECT_EXTENSIONS)
        if isinstance(extensions, str):
            extensions = [extensions]

        return Config(
            version=data.get("version", 1),
            sort_order=data.get("sort_order", "alphabetical"),
            backup=bool(data.get("backup", False)),
            backup_suffix=data.get("backup_suffix", DEFAULT_BACKUP_SUFFIX),
            project_extensions=tuple(ext.lower() for ext in extensions),
            props_file=output.get("props_file", DEFAULT_PROPS_FILE),
            packages_file=output.get("packages_file", DEFAULT_PACKAGES_FILE),
            source=source,
        )

    def merge_with(self, other: Config) -> Config:
        """
        Merge this config with another, preferring values from this config.

        A value from this config wins unless it is the default, in which case
        the other config's value is used.

        Args:
            other: Other config to merge (lower priority)

        Returns:
            New merged Config object
        """
        defaults = Config()

        def pick(name: str) -> Any:
            mine = getattr(self, name)
            return mine if mine != getattr(defaults, name) else getattr(other, name)

        return Config(
            version=self.version,
            sort_order=pick("sort_order"),
            backup=self.backup or other.backup,
            backup_suffix=pick("backup_suffix"),
            project_extensions=pick("project_extensions"),
            props_file=pick("props_file"),
            packages_file=pick("packages_file"),
            source=self.source or other.source,
        )


def _load_yaml(file_path: str) -> dict[str, Any] | None:
    """
    Load YAML configuration file.

    Returns:
        Parsed configuration dictionary, or None if the file is unreadable or invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return None


def _load_json(file_path: str) -> dict[str, Any] | None:
    """
    Load JSON configuration file.

    Returns:
        Parsed configuration dictionary, or None if the file is unreadable or invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, json.JSONDecodeError):
        return None


def load_config_file(file_path: str, verbose: bool = False) -> Config | None:
    """
    Load configuration from a single file.

    Args:
        file_path: Path to a .yml, .yaml or .json file
        verbose: Enable verbose logging

    Returns:
        Config object, or None if the file cannot be loaded
    """
    if not os.path.exists(file_path):
        return None

    vlog(f"Loading config from: {file_path}", verbose)

    if file_path.endswith(".json"):
        data = _load_json(file_path)
    else:
        data = _load_yaml(file_path)

    if data is None:
        vlog(f"Invalid config file: {file_path}", verbose)
        return None

    try:
        config = Config.from_dict(data, source=file_path)
        vlog(f"Loaded config successfully: {file_path}", verbose)
        return config
    except (ValueError, TypeError, AttributeError) as e:
        vlog(f"Config validation failed for {file_path}: {e}", verbose)
        return None


def load_config(
    custom_path: str | None = None,
    search_dir: str | None = None,
    verbose: bool = False,
) -> Config:
    """
    Load and merge configuration from all sources.

    Configuration precedence (highest to lowest):
    1. Custom path (if provided)
    2. .cpm-migrate.yml in search_dir (the solution directory) or the cwd
    3. User ~/.config/cpm-migrate/config.yml
    4. Default configuration

    Args:
        custom_path: Optional path to custom configuration file
        search_dir: Directory that relative CONFIG_LOCATIONS are resolved against
        verbose: Enable verbose logging

    Returns:
        Merged Config object (never None, returns defaults if no config found)

    Raises:
        ValueError: If custom_path is provided but file cannot be loaded
    """
    configs: list[Config] = []

    if custom_path:
        config = load_config_file(custom_path, verbose)
        if config is None:
            raise ValueError(f"Could not load config from specified path: {custom_path}")
        configs.append(config)
        vlog(f"Using custom config: {custom_path}", verbose)

    for location in CONFIG_LOCATIONS:
        if search_dir and not os.path.isabs(location):
            location = os.path.join(search_dir, location)
        config = load_config_file(location, verbose)
        if config is not None:
            configs.append(config)
            vlog(f"Found config at: {location}", verbose)

    if not configs:
        vlog("No config files found, using defaults", verbose)
        return Config()

    merged = configs[0]
    for config in configs[1:]:
        merged = merged.merge_with(config)

    vlog(f"Merged {len(configs)} config files", verbose)
    return merged


def validate_config(config: Config) -> list[str]:
    """
    Validate configuration and return list of warnings.

    Args:
        config: Config object to validate

    Returns:
        List of validation warning messages (empty if valid)
    """
    warnings = []

    if len(config.project_extensions) != len(set(config.project_extensions)):
        warnings.append("Duplicate entries in project_extensions")

    if config.backup_suffix.lower() in config.project_extensions:
        warnings.append(
            f"backup_suffix {config.backup_suffix} is also a project extension; "
            "backups would be picked up as projects"
        )

    if config.props_file == config.packages_file:
        warnings.append(
            f"props_file and packages_file are the same ({config.props_file}); "
            "the package manifest will overwrite the build properties"
        )

    return warnings
