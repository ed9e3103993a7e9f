# File: schemarules/config.py
"""
SchemaRules - Configuration
============================
Pydantic V2 models for the two runtime knobs of the engine:

- which rules are registered, per entity kind;
- the type-compatibility equivalence table used when matching foreign-key
  columns against the columns they reference.

Configuration files are YAML or JSON mappings::

    table_rules: [NonRedundantExtensionDag, UniqueColumnNamesInExtensionGraph]
    foreign_key_rules: null          # null = full default catalog
    type_equivalences:
      - [int, integer, int4]
      - [text, varchar]
    max_workers: 4
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemarules.config")

# ---------------------------------------------------------------------------
# Type normalisation
# ---------------------------------------------------------------------------

_TYPE_MODIFIER_RE: re.Pattern[str] = re.compile(r"\(.*?\)")
_WHITESPACE_RE: re.Pattern[str] = re.compile(r"\s+")

DEFAULT_TYPE_EQUIVALENCES: List[List[str]] = [
    ["int", "integer", "int4", "serial", "serial4"],
    ["bigint", "int8", "bigserial", "serial8"],
    ["smallint", "int2", "smallserial", "serial2"],
    ["text", "varchar", "character varying", "char", "character", "bpchar", "string"],
    ["real", "float4"],
    ["double precision", "float8", "float"],
    ["numeric", "decimal"],
    ["timestamp", "timestamp without time zone"],
    ["timestamptz", "timestamp with time zone"],
    ["bool", "boolean"],
]


def normalize_type(declared: str) -> str:
    """
    Canonical spelling of a declared SQL type.

    Examples:
        >>> normalize_type("VARCHAR(255)")
        'varchar'
        >>> normalize_type("  Double   Precision ")
        'double precision'
    """
    stripped: str = _TYPE_MODIFIER_RE.sub("", declared)
    return _WHITESPACE_RE.sub(" ", stripped).strip().lower()


class TypeCompatibility(BaseModel):
    """
    Equivalence relation over declared column types.

    Two types are compatible when their normalised spellings are equal or
    belong to the same equivalence group.  Groups are expected to be
    disjoint; a type listed in several groups keeps the first one.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    groups: List[List[str]] = Field(
        default_factory=lambda: [list(g) for g in DEFAULT_TYPE_EQUIVALENCES],
        description="Equivalence groups of type spellings.",
    )

    _class_of: Dict[str, int] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        class_of: Dict[str, int] = {}
        for gid, group in enumerate(self.groups):
            for spelling in group:
                key: str = normalize_type(spelling)
                if key in class_of and class_of[key] != gid:
                    logger.warning(
                        "Type '%s' listed in several equivalence groups; "
                        "keeping the first.",
                        spelling,
                    )
                    continue
                class_of[key] = gid
        self._class_of = class_of

    def canonical(self, declared: str) -> str:
        """Representative spelling: the first member of the type's group."""
        key: str = normalize_type(declared)
        gid: Optional[int] = self._class_of.get(key)
        if gid is None:
            return key
        return normalize_type(self.groups[gid][0])

    def are_compatible(self, left: str, right: str) -> bool:
        a: str = normalize_type(left)
        b: str = normalize_type(right)
        if a == b:
            return True
        ga: Optional[int] = self._class_of.get(a)
        return ga is not None and ga == self._class_of.get(b)


# ---------------------------------------------------------------------------
# Linter configuration
# ---------------------------------------------------------------------------


class LinterConfig(BaseModel):
    """
    Master configuration of a validation run.

    ``None`` for a rule list means "the full default catalog for that
    entity kind"; an explicit list (possibly empty) registers exactly the
    named rules in the given order.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=True,
        extra="forbid",
    )

    table_rules: Optional[List[str]] = Field(
        default=None, description="Table rules to register (None = all)."
    )
    column_rules: Optional[List[str]] = Field(
        default=None, description="Column rules to register (None = all)."
    )
    foreign_key_rules: Optional[List[str]] = Field(
        default=None, description="Foreign-key rules to register (None = all)."
    )
    type_equivalences: List[List[str]] = Field(
        default_factory=lambda: [list(g) for g in DEFAULT_TYPE_EQUIVALENCES],
        description="Type equivalence groups used by CompatibleForeignKey.",
    )
    forbidden_extension_column: str = Field(
        default="most_concrete_table",
        min_length=1,
        description="Column name extension tables must not declare.",
    )
    max_workers: int = Field(
        default=1, ge=1, le=64, description="Threads used to evaluate tables."
    )

    @field_validator("type_equivalences")
    @classmethod
    def _non_empty_groups(cls, v: List[List[str]]) -> List[List[str]]:
        for group in v:
            if not group:
                raise ValueError("Type equivalence groups must not be empty.")
        return v

    def type_compatibility(self) -> TypeCompatibility:
        return TypeCompatibility(groups=self.type_equivalences)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def read_mapping_file(path: Path) -> Dict[str, Any]:
    """Parse a YAML or JSON file whose top level must be a mapping."""
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if not path.is_file():
        raise ValueError(f"Path is not a file: {path}")

    text: str = path.read_text(encoding="utf-8")
    suffix: str = path.suffix.lower()
    try:
        if suffix == ".json":
            data: Any = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a mapping at top level of {path}, got {type(data).__name__}."
        )
    return data


def load_config(path: Path) -> LinterConfig:
    """
    Load a ``LinterConfig`` from a YAML or JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be parsed or fails validation.
    """
    raw: Dict[str, Any] = read_mapping_file(path)
    try:
        config: LinterConfig = LinterConfig.model_validate(raw)
    except Exception as exc:
        raise ValueError(f"Config validation failed: {exc}") from exc
    logger.info("Loaded configuration from %s", path)
    return config


__all__: List[str] = [
    "DEFAULT_TYPE_EQUIVALENCES",
    "normalize_type",
    "TypeCompatibility",
    "LinterConfig",
    "read_mapping_file",
    "load_config",
]
