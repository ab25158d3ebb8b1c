"""
thunkguard CLI — Read-Only Interface for Leak Checks.

Commands:
    thunkguard check MODULE:ATTR [--type MODULE:TYPE]
        Import a value and check it for unexpected deferred cells.
    thunkguard catalogue
        List the registered adapters and their participation modes.

Exit codes for ``check``:
    0 — no unexpected deferred cell
    1 — a violation was found (its trail is printed)
    2 — the target could not be loaded or a cell could not be classified

The CLI never forces, mutates or re-registers anything.
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from typing import Any, Optional

from ..api import check
from ..catalogue import DEFAULT_CATALOGUE
from ..violation import ClassificationError, Violation

log = logging.getLogger("thunkguard.cli")

EXIT_CLEAN = 0
EXIT_VIOLATION = 1
EXIT_ERROR = 2


# =============================================================================
# TARGET LOADING
# =============================================================================

def load_target(target: str) -> Any:
    """
    Resolve ``package.module:attr.path`` to an object.

    Raises:
        ValueError: If ``target`` has no ``:`` separator
        ImportError, AttributeError: If the module or attribute is missing
    """
    module_name, sep, attr_path = target.partition(":")
    if not sep or not module_name or not attr_path:
        raise ValueError(f"expected MODULE:ATTR, got '{target}'")
    obj: Any = importlib.import_module(module_name)
    for part in attr_path.split("."):
        obj = getattr(obj, part)
    return obj


# =============================================================================
# OUTPUT FORMATTING
# =============================================================================

def format_violation(violation: Violation) -> str:
    """Format a violation as an indented trail, outermost first."""
    lines = [f"VIOLATION: unexpected deferred {violation.innermost}"]
    for depth, frame in enumerate(reversed(violation.trail)):
        lines.append(f"  {'  ' * depth}└ {frame}")
    return "\n".join(lines)


def format_registration_row(type_name: str, mode: str, display: str) -> str:
    return f"{mode:<16} | {display:<20} | {type_name}"


# =============================================================================
# CLI COMMANDS
# =============================================================================

def cmd_check(args: argparse.Namespace) -> int:
    """Check one importable value."""
    try:
        value = load_target(args.target)
        annotation = load_target(args.type) if args.type else Any
    except (ValueError, ImportError, AttributeError) as e:
        print("ERROR: could not load target")
        print(f"Reason: {e}")
        return EXIT_ERROR

    try:
        violation = check(value, annotation)
    except ClassificationError as e:
        log.error("classification failed for %s", args.target)
        print("ERROR: check could not be completed")
        print(f"Reason: {e}")
        return EXIT_ERROR

    if violation is None:
        print(f"OK: no unexpected deferred cells in {args.target}")
        return EXIT_CLEAN

    print(format_violation(violation))
    return EXIT_VIOLATION


def cmd_catalogue(args: argparse.Namespace) -> int:
    """Show registered adapters."""
    rows = DEFAULT_CATALOGUE.registrations()

    print("thunkguard — Registered Adapters")
    print("=" * 70)
    print(format_registration_row("type", "mode", "display name"))
    print("-" * 70)
    for type_name, mode, display in rows:
        print(format_registration_row(type_name, mode, display))
    print()
    print(f"Total: {len(rows)} registrations ('+' = applies to subclasses)")
    return EXIT_CLEAN


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="thunkguard",
        description="thunkguard — detect retained deferred computation",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
    )

    # Check command
    check_parser = subparsers.add_parser(
        "check",
        help="Check a value for unexpected deferred cells",
    )
    check_parser.add_argument(
        "target",
        help="Value to check, as MODULE:ATTR",
    )
    check_parser.add_argument(
        "--type",
        default=None,
        help="Declared type of the value, as MODULE:TYPE",
    )
    check_parser.set_defaults(func=cmd_check)

    # Catalogue command
    catalogue_parser = subparsers.add_parser(
        "catalogue",
        help="Show registered adapters",
    )
    catalogue_parser.set_defaults(func=cmd_catalogue)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
