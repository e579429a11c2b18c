#!/usr/bin/env python3
"""validate_assets.py - Catalog consistency validator CLI.

Checks that git tags, catalog published versions and index version fields
agree with each other. Clones (or updates) the assets repository into the
cache directory, then checks every indexed module for:

  - Version drift between index, catalog and git tags
  - Modules in the repository with no index entry
  - Content changes since the last published tag

The command makes network requests against shared infrastructure and only
runs when --yes is given.

Usage:
    uv run assetry/tools/validate_assets.py --yes
    uv run assetry/tools/validate_assets.py --yes --verbose
    uv run assetry/tools/validate_assets.py --yes --report markdown

Exit Codes:
    0   All checks passed (or --yes not given)
    1   Validation issues found
    2   Fatal error (configuration, repository preconditions, catalog failure)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from assetry.config.paths import cache_dir, resolve_paths
from assetry.config.settings import load_settings
from assetry.registry.client import CatalogError, FilesystemCatalogClient
from assetry.validator.consistency import ConsistencyValidator, ValidatorPreconditionError
from assetry.validator.report import build_report_json, build_report_markdown, render_text

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_VALIDATION_FAILED = 1
EXIT_FATAL_ERROR = 2

CLONE_SUBDIR = "repos"

GATE_NOTICE = """
validate_assets is a maintainer tool for checking consistency between git
tags, the catalog and the assets index. It makes significant network
requests against shared infrastructure.

Running it will:
  - Clone or pull the assets repository
  - Fetch all git tags from origin
  - Query the catalog for each published module

Run with --yes to proceed.
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate index, catalog and git tag consistency",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0 - All checks passed
  1 - Validation issues found
  2 - Fatal error
        """,
    )
    parser.add_argument("--yes", action="store_true", help="Confirm intent to run network checks")
    parser.add_argument("--verbose", "-v", action="store_true", help="List every module, not only failures")
    parser.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    parser.add_argument("--report", choices=["json", "markdown"], help="Output format for the report")
    parser.add_argument("--catalog-root", type=Path, help="Root of the mirrored catalog tree")
    parser.add_argument("--repo-url", help="Clone URL (default: derived from the index module)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def _progress(done: int, total: int) -> None:
    pct = done * 100 // total if total else 100
    print(f"\rChecking modules {done}/{total} ({pct}%)", end="", file=sys.stderr, flush=True)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(message)s",
    )

    if not args.yes:
        print(GATE_NOTICE)
        return EXIT_SUCCESS

    machine = args.json or args.report is not None

    try:
        settings = load_settings(resolve_paths())
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_FATAL_ERROR

    catalog_root = args.catalog_root or settings.catalog_root
    if catalog_root is None:
        print("ERROR: no catalog configured (set catalog_root or pass --catalog-root)", file=sys.stderr)
        return EXIT_FATAL_ERROR

    validator = ConsistencyValidator(
        FilesystemCatalogClient(catalog_root),
        settings.index_module,
        cache_dir() / CLONE_SUBDIR,
        branch=settings.default_branch,
        repo_url=args.repo_url,
    )

    try:
        report = validator.run(progress=None if machine else _progress)
    except ValidatorPreconditionError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_FATAL_ERROR
    except CatalogError as e:
        if not machine:
            print(file=sys.stderr)
        print(f"ERROR: catalog query failed: {e}", file=sys.stderr)
        return EXIT_FATAL_ERROR

    if not machine and report.categories:
        # Clear the progress line
        print(file=sys.stderr)

    if args.report == "markdown":
        print(build_report_markdown(report))
    elif machine:
        print(json.dumps(build_report_json(report), indent=2))
    else:
        print(render_text(report, verbose=args.verbose))

    return EXIT_VALIDATION_FAILED if report.has_failures() else EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
