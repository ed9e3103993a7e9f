# File: schemarules/cli.py
"""
SchemaRules - Command-Line Interface
=====================================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # Lint a schema with the full default rule catalog
    python -m schemarules --schema schema.yaml

    # Use a configuration file and emit JSON
    python -m schemarules -s schema.json -c rules.yaml --format json

    # Evaluate tables on four threads, with INFO logging
    python -m schemarules -s schema.yaml --max-workers 4 -v

    # List the available rules
    python -m schemarules --list-rules

Exit codes:
    0 — schema satisfies every registered rule
    1 — violations found
    4 — input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, NoReturn, Optional, Sequence

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemarules")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VIOLATIONS: int = 1
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the schemarules logger based on verbosity level.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    formatter: logging.Formatter = logging.Formatter(fmt, datefmt=datefmt)
    handler.setFormatter(formatter)

    root_logger: logging.Logger = logging.getLogger("schemarules")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from schemarules import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="schemarules",
        description=(
            "SchemaRules — relational schema best-practice linter.\n\n"
            "Checks a schema description (JSON/YAML) against table, column "
            "and foreign-key rules, including the extension-graph analyses "
            "for joined-table inheritance."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -s schema.yaml\n"
            "  %(prog)s -s schema.json -c rules.yaml --format json\n"
            "  %(prog)s --list-rules\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"SchemaRules v{__version__}",
    )

    # --- Input ---
    parser.add_argument(
        "-s", "--schema",
        type=str,
        default=None,
        metavar="PATH",
        help="Path to the schema description file (JSON or YAML).",
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        metavar="PATH",
        help=(
            "Path to a rule configuration file (JSON or YAML). Overrides a "
            "'config' section embedded in the schema file."
        ),
    )

    # --- Modes ---
    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--list-rules",
        action="store_true",
        default=False,
        help="Print the available rules grouped by entity kind and exit.",
    )
    mode_group.add_argument(
        "--format",
        dest="output_format",
        type=str,
        default="text",
        choices=["text", "json"],
        help="Report format (default: text).",
    )
    mode_group.add_argument(
        "--no-resolution",
        action="store_true",
        default=False,
        help="Omit suggested resolutions from the text report.",
    )

    # --- Config overrides ---
    config_group = parser.add_argument_group("configuration overrides")
    config_group.add_argument(
        "-j", "--max-workers",
        type=int,
        default=None,
        metavar="N",
        help="Number of threads used to evaluate tables.",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all output except the report.",
    )

    return parser


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------


def _run_list_rules() -> int:
    from schemarules.constrainer import available_rules
    from schemarules.rules import RULE_CATALOG

    for kind, names in available_rules().items():
        print(f"{kind} rules:")
        for name in names:
            rule_cls = RULE_CATALOG[name]
            marker: str = "" if rule_cls.enabled_by_default else " (opt-in)"
            print(f"  {name:<36} {rule_cls.description}{marker}")
    return EXIT_SUCCESS


def _run_validation(args: argparse.Namespace) -> int:
    """
    Load, configure and validate; print the report.

    Returns the appropriate exit code.
    """
    from schemarules.config import LinterConfig, load_config
    from schemarules.constrainer import DefaultConstrainer
    from schemarules.loader import load_schema
    from schemarules.utils import Timer

    schema_path: Path = Path(args.schema).resolve()

    try:
        schema, embedded = load_schema(schema_path)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Failed to load schema: %s", exc)
        return EXIT_INPUT_ERROR

    config: LinterConfig = embedded or LinterConfig()
    if args.config is not None:
        try:
            config = load_config(Path(args.config).resolve())
        except (FileNotFoundError, ValueError) as exc:
            logger.error("Failed to load config: %s", exc)
            return EXIT_INPUT_ERROR

    if args.max_workers is not None:
        try:
            config.max_workers = args.max_workers
        except ValueError as exc:
            logger.error("Invalid --max-workers: %s", exc)
            return EXIT_INPUT_ERROR

    try:
        constrainer: DefaultConstrainer = DefaultConstrainer(config)
    except ValueError as exc:
        logger.error("Invalid rule selection: %s", exc)
        return EXIT_INPUT_ERROR

    with Timer("validation") as t:
        result = constrainer.validate_schema(schema)

    if args.output_format == "json":
        print(result.to_json())
    else:
        print(f"\n{'='*50}")
        print(f"  Schema Rules Report")
        print(f"{'='*50}")
        print(f"  File:     {schema_path.name}")
        print(f"  Tables:   {schema.table_count}")
        print(f"  Rules:    {len(constrainer)}")
        print(f"  Time:     {t.elapsed:.3f}s")
        print(f"  Valid:    {'Yes' if result.is_valid else 'No'}")
        print()
        print(result.format_report(include_resolution=not args.no_resolution))
        print(f"{'='*50}\n")

    return EXIT_SUCCESS if result.is_valid else EXIT_VIOLATIONS


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    try:
        args: argparse.Namespace = parser.parse_args(argv)
    except SystemExit as exc:
        # argparse exits with 2 on bad arguments; --help/--version exit 0
        sys.exit(EXIT_SUCCESS if exc.code in (0, None) else EXIT_INPUT_ERROR)

    if args.quiet:
        verbosity: int = -1
        logging.disable(logging.CRITICAL)
    else:
        verbosity = args.verbose
        logging.disable(logging.NOTSET)

    _setup_logging(verbosity)

    if args.list_rules:
        sys.exit(_run_list_rules())

    if args.schema is None:
        logger.error("A schema file is required. Use -s/--schema or --list-rules.")
        parser.print_usage(sys.stderr)
        sys.exit(EXIT_INPUT_ERROR)

    exit_code: int = _run_validation(args)
    if exit_code == EXIT_VIOLATIONS:
        logger.info("Validation finished with violations.")
    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "EXIT_SUCCESS",
    "EXIT_VIOLATIONS",
    "EXIT_INPUT_ERROR",
]
