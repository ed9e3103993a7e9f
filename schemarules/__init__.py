# File: schemarules/__init__.py
"""
SchemaRules — Relational Schema Best-Practice Linter
=====================================================

A rule engine that checks a relational schema description (JSON/YAML,
loaded into Pydantic V2 models) against table, column and foreign-key
rules.  Beyond lexical and key hygiene it reasons over the *extension
graph*: the directed graph of tables whose primary key is also a foreign
key to another table's primary key (joined-table inheritance).

Architecture overview::

    ┌──────────────┐     ┌──────────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ DefaultConstrainer│────▶│   RuleContext    │
    │   (cli.py)   │     │ (constrainer.py)  │     │ schema+graph+types│
    └──────┬───────┘     └────────┬─────────┘     └──────────────────┘
           │                      │
           ▼         ┌────────────┼─────────────┐
      ┌─────────┐    ▼            ▼             ▼
      │ loader  │ ┌──────────┐ ┌──────────┐ ┌────────────┐
      │ (.py)   │ │extension_│ │key_rules │ │naming_rules│
      └─────────┘ │rules.py  │ │  (.py)   │ │   (.py)    │
                  └──────────┘ └──────────┘ └────────────┘

Usage::

    # As a library
    from schemarules import load_schema, validate_schema
    schema, _ = load_schema(Path("schema.yaml"))
    result = validate_schema(schema)
    print(result.format_report())

    # From the command line
    python -m schemarules --schema schema.yaml --verbose

Public API:
    - DefaultConstrainer / GenericConstrainer — rule registries + schema walk
    - validate_schema    — one-call validation with the default catalog
    - ExtensionGraph     — extension graph and its algorithms
    - LinterConfig       — rule selection and type equivalences
    - ValidationResult   — violation accumulator and reports
"""

from __future__ import annotations

__version__: str = "0.1.0"
__license__: str = "MIT"

from schemarules.config import LinterConfig, TypeCompatibility, load_config, normalize_type
from schemarules.constrainer import (
    DefaultConstrainer,
    GenericConstrainer,
    available_rules,
    validate_schema,
)
from schemarules.graph import ExtensionEdge, ExtensionGraph, build_extension_graph
from schemarules.loader import load_schema, load_schema_file, parse_raw_schema
from schemarules.models import (
    CheckConstraintInfo,
    ColumnInfo,
    ForeignKeyInfo,
    IndexInfo,
    OnDeleteAction,
    SchemaDefinition,
    TableInfo,
)
from schemarules.rules import (
    RULE_CATALOG,
    ColumnRule,
    ForeignKeyRule,
    Rule,
    RuleContext,
    TableRule,
    register_rule,
)
from schemarules.utils import Timer
from schemarules.violations import EntityKind, ValidationResult, Violation, ViolationKind

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Constrainers
    "DefaultConstrainer",
    "GenericConstrainer",
    "available_rules",
    "validate_schema",
    # Models
    "CheckConstraintInfo",
    "ColumnInfo",
    "ForeignKeyInfo",
    "IndexInfo",
    "OnDeleteAction",
    "SchemaDefinition",
    "TableInfo",
    # Graph
    "ExtensionEdge",
    "ExtensionGraph",
    "build_extension_graph",
    # Rules
    "RULE_CATALOG",
    "Rule",
    "TableRule",
    "ColumnRule",
    "ForeignKeyRule",
    "RuleContext",
    "register_rule",
    # Results
    "EntityKind",
    "ViolationKind",
    "Violation",
    "ValidationResult",
    # Configuration & loading
    "LinterConfig",
    "TypeCompatibility",
    "load_config",
    "normalize_type",
    "load_schema",
    "load_schema_file",
    "parse_raw_schema",
    # Utilities
    "Timer",
]
