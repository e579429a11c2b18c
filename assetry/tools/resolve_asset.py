#!/usr/bin/env python3
"""resolve_asset.py - Resolve an asset query to an installed asset name.

Resolves agents, roles and tasks to a single name, installing from the
catalog when the asset is not configured locally. Contexts accept several
terms and resolve each independently.

Usage:
    uv run assetry/tools/resolve_asset.py role golang
    uv run assetry/tools/resolve_asset.py agent claude --model sonnet
    uv run assetry/tools/resolve_asset.py contexts default project,readme
    uv run assetry/tools/resolve_asset.py --cache-status

Exit Codes:
    0   Resolved
    1   Resolution failed (not found, ambiguous, invalid selection, install error)
    2   Fatal error (invalid arguments or configuration)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from assetry.config.paths import cache_dir, resolve_paths
from assetry.config.settings import load_settings
from assetry.registry.cache import IndexCache
from assetry.registry.index import Category
from assetry.runtime.errors import ResolutionError
from assetry.runtime.resolver import Resolver

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_RESOLUTION_FAILED = 1
EXIT_FATAL_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Resolve an asset query to an installed asset name",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0 - Resolved
  1 - Resolution failed
  2 - Fatal error
        """,
    )
    parser.add_argument("category", nargs="?", help="agent, role, context or task (plural accepted)")
    parser.add_argument("query", nargs="*", help="Asset name, short name or search terms")
    parser.add_argument("--model", help="Model alias to resolve against the resolved agent's models")
    parser.add_argument("--non-interactive", action="store_true", help="Never prompt; fail on ambiguity")
    parser.add_argument("--quiet", "-q", action="store_true", help="Suppress progress messages")
    parser.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    parser.add_argument("--cache-status", action="store_true", help="Show the index cache state and exit")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def print_cache_status(status: Dict[str, Any], as_json: bool) -> None:
    if as_json:
        print(json.dumps(status, indent=2))
        return
    print(f"Index cache: {status['state']} ({status['path']})")
    if status["state"] != "missing":
        print(f"  module:  {status['module']}")
        print(f"  version: {status['version']}")
        print(f"  age:     {status['age']}")


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(message)s",
    )

    paths = resolve_paths()
    try:
        settings = load_settings(paths)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_FATAL_ERROR

    if args.cache_status:
        print_cache_status(IndexCache.in_dir(cache_dir()).status(settings.cache_max_age), args.json)
        return EXIT_SUCCESS

    if not args.category or not args.query:
        parser.print_usage(sys.stderr)
        print("ERROR: category and query are required", file=sys.stderr)
        return EXIT_FATAL_ERROR

    try:
        category = Category.parse(args.category)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_FATAL_ERROR

    # Progress messages go to stderr so stdout carries only the result
    try:
        resolver = Resolver.from_settings(
            settings,
            paths,
            quiet=args.quiet or args.json,
            interactive=False if args.non_interactive else None,
            stdout=sys.stderr,
        )
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_FATAL_ERROR

    result: Dict[str, Any] = {"category": category.value, "query": " ".join(args.query)}
    try:
        if category == Category.CONTEXTS:
            result["resolved"] = resolver.resolve_contexts(args.query)
        else:
            name = resolver.resolve(category, " ".join(args.query))
            result["resolved"] = name
            if args.model and category == Category.AGENTS:
                models = (resolver.config.get(category, name) or {}).get("models") or {}
                result["model"] = resolver.resolve_model(args.model, models)
    except ResolutionError as e:
        if args.json:
            print(json.dumps({**result, "error": str(e)}, indent=2))
        else:
            print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_RESOLUTION_FAILED
    except ValueError as e:
        # Malformed config file discovered while reloading after an install
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_FATAL_ERROR

    result["installed"] = resolver.did_install
    if args.json:
        print(json.dumps(result, indent=2))
    elif isinstance(result["resolved"], list):
        for name in result["resolved"]:
            print(name)
    else:
        print(result["resolved"])
        if "model" in result:
            print(result["model"])
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
