# File: schemarules/loader.py
"""
SchemaRules - Schema Loader
============================
Turns a YAML or JSON schema description into a validated
``SchemaDefinition``.

Accepted layouts::

    tables: [...]                      # bare table list
    schema: {tables: [...]}            # wrapped schema
    schema: {...}
    config: {max_workers: 4}           # optional embedded LinterConfig

Every failure surfaces as ``FileNotFoundError`` or ``ValueError`` chained
to the underlying parser/Pydantic error; a schema that loads successfully
is structurally sound (see ``SchemaDefinition`` validators).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from schemarules.config import LinterConfig, read_mapping_file
from schemarules.models import SchemaDefinition

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemarules.loader")


def load_schema_file(path: Path) -> Dict[str, Any]:
    """
    Load a schema description file (JSON or YAML) as a raw mapping.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be parsed.
    """
    raw: Dict[str, Any] = read_mapping_file(path)
    logger.debug("Read %d top-level key(s) from %s", len(raw), path)
    return raw


def parse_raw_schema(
    raw: Dict[str, Any], source_file: Optional[str] = None
) -> Tuple[SchemaDefinition, Optional[LinterConfig]]:
    """
    Parse a raw dictionary (from JSON/YAML) into validated Pydantic models.

    Returns:
        Tuple of (SchemaDefinition, embedded LinterConfig or None).

    Raises:
        ValueError: If the schema is missing or validation fails.
    """
    schema_data: Optional[Dict[str, Any]] = None
    if "schema" in raw:
        value: Any = raw["schema"]
        if not isinstance(value, dict):
            raise ValueError(
                f"'schema' must be a mapping, got {type(value).__name__}."
            )
        schema_data = dict(value)
    elif "tables" in raw:
        schema_data = {"tables": raw["tables"]}

    if schema_data is None:
        raise ValueError(
            "Cannot find schema definition in input. "
            "Expected top-level key: 'schema' or 'tables'."
        )
    if source_file is not None:
        schema_data.setdefault("source_file", source_file)

    try:
        schema: SchemaDefinition = SchemaDefinition.model_validate(schema_data)
    except Exception as exc:
        raise ValueError(f"Schema validation failed: {exc}") from exc

    config: Optional[LinterConfig] = None
    if raw.get("config") is not None:
        try:
            config = LinterConfig.model_validate(raw["config"])
        except Exception as exc:
            raise ValueError(f"Config validation failed: {exc}") from exc

    return schema, config


def load_schema(path: Path) -> Tuple[SchemaDefinition, Optional[LinterConfig]]:
    """Read and validate a schema file; see ``parse_raw_schema``."""
    schema, config = parse_raw_schema(load_schema_file(path), source_file=str(path))
    logger.info(
        "Loaded schema from %s: %d table(s), %d foreign key(s).",
        path,
        schema.table_count,
        schema.total_foreign_keys,
    )
    return schema, config


__all__: List[str] = [
    "load_schema_file",
    "parse_raw_schema",
    "load_schema",
]
