"""
tests/conftest.py
Shared fixtures for the schemarules test suite.

Schemas are assembled with ``SchemaBuilder`` (raw dicts, validated through
the Pydantic models exactly as the loader does).  No external mocking
libraries are used; file-based tests write YAML/JSON into pytest's
``tmp_path``.
"""

from __future__ import annotations

import copy
import json
import pathlib
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Type, Union

import pytest
import yaml

from schemarules.config import LinterConfig
from schemarules.constrainer import GenericConstrainer
from schemarules.models import SchemaDefinition
from schemarules.rules import Rule
from schemarules.violations import ValidationResult


# ---------------------------------------------------------------------------
# Schema builder
# ---------------------------------------------------------------------------

ColumnSpec = Union[str, Dict[str, Any]]


class SchemaBuilder:
    """
    Fluent builder for raw schema dicts.

    Every table gets a single ``id INT`` primary key unless ``id_column`` is
    False; ``extends`` adds ``(id) -> parent(id) ON DELETE CASCADE``
    extension foreign keys.  Bare column names default to ``TEXT``.
    """

    def __init__(self) -> None:
        self._tables: List[Dict[str, Any]] = []

    def table(
        self,
        name: str,
        *columns: ColumnSpec,
        extends: Sequence[str] = (),
        foreign_keys: Iterable[Dict[str, Any]] = (),
        indexes: Iterable[Dict[str, Any]] = (),
        checks: Iterable[str] = (),
        id_column: bool = True,
        id_type: str = "INT",
    ) -> "SchemaBuilder":
        cols: List[Dict[str, Any]] = []
        if id_column:
            cols.append({"name": "id", "type": id_type, "primary_key": True})
        for column in columns:
            if isinstance(column, str):
                cols.append({"name": column, "type": "TEXT"})
            else:
                cols.append(dict(column))
        fks: List[Dict[str, Any]] = [
            {
                "columns": ["id"],
                "referred_table": parent,
                "referred_columns": ["id"],
                "on_delete": "CASCADE",
            }
            for parent in extends
        ]
        fks.extend(dict(fk) for fk in foreign_keys)
        self._tables.append(
            {
                "name": name,
                "columns": cols,
                "foreign_keys": fks,
                "indexes": [dict(i) for i in indexes],
                "check_constraints": [{"expression": e} for e in checks],
            }
        )
        return self

    def raw(self) -> Dict[str, Any]:
        return {"tables": copy.deepcopy(self._tables)}

    def build(self) -> SchemaDefinition:
        return SchemaDefinition.model_validate(self.raw())


def run_rules(
    schema: SchemaDefinition,
    *rules: Rule,
    config: Optional[LinterConfig] = None,
) -> ValidationResult:
    """Validate ``schema`` with exactly ``rules`` registered."""
    return GenericConstrainer.from_rules(rules, config).validate_schema(schema)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def schema_builder() -> Type[SchemaBuilder]:
    """The builder class; call it for a fresh builder."""
    return SchemaBuilder


@pytest.fixture()
def rule_runner() -> Callable[..., ValidationResult]:
    return run_rules


@pytest.fixture()
def chain_schema() -> SchemaDefinition:
    """a_items → b_items → c_items, with ``status`` declared by a_items and c_items."""
    return (
        SchemaBuilder()
        .table("c_items", "status", "label")
        .table("b_items", "note", extends=["c_items"])
        .table("a_items", "status", "title", extends=["b_items"])
        .build()
    )


@pytest.fixture()
def flat_schema() -> SchemaDefinition:
    """Two tables joined by an ordinary (non-extension) foreign key."""
    return (
        SchemaBuilder()
        .table("authors", "name")
        .table(
            "books",
            "title",
            {"name": "author_id", "type": "INT"},
            foreign_keys=[
                {
                    "columns": ["author_id"],
                    "referred_table": "authors",
                    "referred_columns": ["id"],
                }
            ],
        )
        .build()
    )


@pytest.fixture()
def clean_schema_dict() -> Dict[str, Any]:
    """A schema that satisfies the whole default catalog."""
    return (
        SchemaBuilder()
        .table(
            "users",
            {"name": "email", "type": "TEXT", "unique": True},
            {"name": "created_at", "type": "TIMESTAMP"},
        )
        .table("admins", {"name": "level", "type": "SMALLINT"}, extends=["users"])
        .table(
            "posts",
            "title",
            {"name": "author_id", "type": "INTEGER"},
            foreign_keys=[
                {
                    "columns": ["author_id"],
                    "referred_table": "users",
                    "referred_columns": ["id"],
                }
            ],
        )
        .raw()
    )


@pytest.fixture()
def dirty_schema_dict(clean_schema_dict: Dict[str, Any]) -> Dict[str, Any]:
    """The clean schema with a plural column name added to ``posts``."""
    data = copy.deepcopy(clean_schema_dict)
    data["tables"][2]["columns"].append({"name": "tags", "type": "TEXT"})
    return data


@pytest.fixture()
def write_yaml(tmp_path: pathlib.Path) -> Callable[[str, Any], pathlib.Path]:
    """Write data to ``tmp_path / name`` as YAML and return the path."""

    def _write(name: str, data: Any) -> pathlib.Path:
        path = tmp_path / name
        with open(path, "w", encoding="utf-8") as fh:
            yaml.dump(data, fh, default_flow_style=False, allow_unicode=True)
        return path

    return _write


@pytest.fixture()
def write_json(tmp_path: pathlib.Path) -> Callable[[str, Any], pathlib.Path]:
    def _write(name: str, data: Any) -> pathlib.Path:
        path = tmp_path / name
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path

    return _write
