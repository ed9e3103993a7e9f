# File: schemarules/__main__.py
"""
SchemaRules — Module entry point.

Allows running the linter directly via::

    python -m schemarules --schema schema.yaml

This module simply delegates to the CLI entry point defined in ``schemarules.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from schemarules.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
