#!/usr/bin/env python3
"""
cpm-migrate - Move per-project NuGet versions into Directory.Packages.props.

Usage:
    migrate.py App.sln                    # Convert the solution in place
    migrate.py App.sln --preview          # Show what would change
    migrate.py App.sln --backup --sort discovery
    migrate.py App.sln --json             # Machine-readable result
"""

import argparse
import dataclasses
import json
import os
import sys

# Add current directory to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from cpm_migrate.config import SORT_ORDERS, load_config, validate_config
from cpm_migrate.converter import convert_solution
from cpm_migrate.errors import MigrationError
from cpm_migrate.logging_config import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Convert a solution to central package management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "solution",
        help="Path to the .sln file",
    )
    parser.add_argument(
        "--props-file",
        help="Build-property document to create or update (default: Directory.Build.props next to the solution)",
    )
    parser.add_argument(
        "--packages-file",
        help="Package manifest to generate (default: Directory.Packages.props next to the solution)",
    )
    parser.add_argument(
        "--sort",
        choices=SORT_ORDERS,
        help="Order of entries in the package manifest",
    )
    parser.add_argument(
        "--backup",
        action="store_true",
        help="Keep a copy of every rewritten project file",
    )
    parser.add_argument(
        "--preview", "--dry-run",
        dest="preview",
        action="store_true",
        help="Resolve versions and report without writing any file",
    )
    parser.add_argument(
        "--config",
        help="Configuration file (YAML or JSON)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only report warnings and errors",
    )
    parser.add_argument(
        "--log-file",
        help="Write a debug log to this file",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    try:
        return run(args)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130


def run(args: argparse.Namespace) -> int:
    """Convert the solution named by parsed arguments; returns the exit code."""
    logger = setup_logging(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file)

    solution_dir = os.path.dirname(os.path.abspath(args.solution))
    try:
        config = load_config(args.config, search_dir=solution_dir, verbose=args.verbose)
    except ValueError as e:
        logger.error(str(e))
        return 1

    overrides = {}
    if args.sort:
        overrides["sort_order"] = args.sort
    if args.backup:
        overrides["backup"] = True
    if overrides:
        config = dataclasses.replace(config, **overrides)

    for warning in validate_config(config):
        logger.warning(f"Config: {warning}")

    try:
        result = convert_solution(
            args.solution,
            config=config,
            props_path=args.props_file,
            packages_path=args.packages_file,
            preview=args.preview,
            verbose=args.verbose,
        )
    except MigrationError as e:
        logger.error(str(e))
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(result.summary())
    return 0


if __name__ == "__main__":
    sys.exit(main())
