# File: schemarules/models.py
"""
SchemaRules - Schema View Models
=================================
Pydantic V2 models representing the read-only schema the rule engine
inspects: tables, columns, indexes, check constraints and foreign keys.

These models are the single source of truth consumed by every rule.  They
are frozen: a validation run borrows them and never mutates them, so rules
may be evaluated in any order or concurrently.

Cross-entity structural checks (columns referenced by keys and indexes
exist, foreign-key targets exist, table names are unique) are performed
here at construction time.  A ``SchemaDefinition`` that constructs
successfully is the "already validated" input the rules rely on.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    computed_field,
    field_validator,
    model_validator,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemarules.models")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class OnDeleteAction(str, Enum):
    """Foreign-key ON DELETE behaviour."""

    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"
    RESTRICT = "RESTRICT"
    NO_ACTION = "NO ACTION"


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=True,
    frozen=True,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Column-level primitives
# ---------------------------------------------------------------------------


class ColumnInfo(BaseModel):
    """
    A single column of a table.

    ``data_type`` is the type exactly as declared in the DDL (``"INT"``,
    ``"varchar(255)"``); normalisation is the business of the type
    compatibility table, not of the model.
    """

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Column name.")
    data_type: str = Field(
        ..., min_length=1, alias="type", description="Declared SQL type."
    )
    nullable: bool = Field(default=True, description="Whether the column allows NULL.")
    primary_key: bool = Field(default=False, description="Part of the primary key?")
    unique: bool = Field(
        default=False, description="Column-level UNIQUE (single-column unique index)."
    )
    generated: bool = Field(
        default=False,
        description="Value produced by the database (SERIAL, IDENTITY, AUTOINCREMENT).",
    )
    default: Optional[str] = Field(
        default=None, description="DEFAULT expression, verbatim."
    )

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def __repr__(self) -> str:
        pk_flag: str = " PK" if self.primary_key else ""
        null_flag: str = " NULL" if self.nullable else " NOT NULL"
        return f"<Column {self.name} {self.data_type}{pk_flag}{null_flag}>"


class CheckConstraintInfo(BaseModel):
    """A table-level CHECK constraint."""

    model_config = _SHARED_CONFIG

    name: Optional[str] = Field(default=None, description="Constraint name (optional).")
    expression: str = Field(
        ..., min_length=1, description="SQL boolean expression, e.g. 'age > 0'."
    )

    @property
    def normalized_expression(self) -> str:
        """Lower-cased expression with whitespace removed, for duplicate detection."""
        return "".join(self.expression.lower().split())


class IndexInfo(BaseModel):
    """Composite or single-column index."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Index name.")
    columns: List[str] = Field(
        ..., min_length=1, description="Ordered list of column names."
    )
    unique: bool = Field(default=False, description="UNIQUE index?")

    @field_validator("columns")
    @classmethod
    def _no_duplicate_columns(cls, v: List[str]) -> List[str]:
        if len(v) != len(set(v)):
            raise ValueError(f"Duplicate columns in index: {v}")
        return v


# ---------------------------------------------------------------------------
# Foreign key
# ---------------------------------------------------------------------------


class ForeignKeyInfo(BaseModel):
    """
    A (possibly composite) foreign key.

    Local and referenced column lists are kept independent: a count
    mismatch is a rule finding, not a construction error.
    """

    model_config = _SHARED_CONFIG

    name: Optional[str] = Field(default=None, description="FK constraint name.")
    columns: List[str] = Field(
        ..., min_length=1, description="Local (constrained) column names, in order."
    )
    referred_table: str = Field(..., min_length=1, description="Target table name.")
    referred_columns: List[str] = Field(
        ..., min_length=1, description="Referenced column names, in order."
    )
    on_delete: OnDeleteAction = Field(
        default=OnDeleteAction.NO_ACTION,
        validate_default=True,
        description="ON DELETE referential action.",
    )

    @field_validator("columns", "referred_columns")
    @classmethod
    def _no_duplicate_columns(cls, v: List[str]) -> List[str]:
        if len(v) != len(set(v)):
            raise ValueError(f"Duplicate columns in foreign key: {v}")
        return v

    @field_validator("on_delete", mode="before")
    @classmethod
    def _normalise_on_delete(cls, v: Any) -> Any:
        """Accept SQL spelling in any case: ``cascade``, ``set null``, ``no_action``."""
        if isinstance(v, str):
            return " ".join(v.replace("_", " ").upper().split())
        return v

    @computed_field  # type: ignore[misc]
    @property
    def column_pairs(self) -> List[Tuple[str, str]]:
        """(local, referenced) pairs by position; truncated on count mismatch."""
        return list(zip(self.columns, self.referred_columns))

    def describe(self, host_table: str) -> str:
        """Identity used in reports: the name when declared, else the DDL shape."""
        if self.name:
            return self.name
        return (
            f"{host_table}({', '.join(self.columns)}) -> "
            f"{self.referred_table}({', '.join(self.referred_columns)})"
        )

    def __repr__(self) -> str:
        return (
            f"<FK ({', '.join(self.columns)}) → "
            f"{self.referred_table}({', '.join(self.referred_columns)})>"
        )


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------


class TableInfo(BaseModel):
    """
    Complete representation of a single database table.

    The primary key is either declared explicitly through
    ``primary_key_columns`` (ordered) or detected from the columns flagged
    ``primary_key`` in declaration order.
    """

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Table name.")
    columns: List[ColumnInfo] = Field(
        ..., min_length=1, description="Columns (at least one required)."
    )
    primary_key_columns: List[str] = Field(
        default_factory=list,
        description="Explicit ordered PK column names (auto-detected if empty).",
    )
    foreign_keys: List[ForeignKeyInfo] = Field(
        default_factory=list, description="Foreign key references."
    )
    indexes: List[IndexInfo] = Field(default_factory=list, description="Indexes.")
    check_constraints: List[CheckConstraintInfo] = Field(
        default_factory=list, description="CHECK constraints."
    )

    # -- Fast O(1) lookup cache --------------------------------------------
    _column_map: Dict[str, ColumnInfo] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        self._column_map = {c.name: c for c in self.columns}

    # -- Computed helpers ---------------------------------------------------

    @property
    def resolved_primary_keys(self) -> List[str]:
        """Return PK column names — explicit list or auto-detect from ColumnInfo."""
        if self.primary_key_columns:
            return list(self.primary_key_columns)
        return [c.name for c in self.columns if c.primary_key]

    @property
    def has_primary_key(self) -> bool:
        return bool(self.resolved_primary_keys)

    @property
    def has_composite_pk(self) -> bool:
        return len(self.resolved_primary_keys) > 1

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    @property
    def unique_indexes(self) -> List[IndexInfo]:
        return [idx for idx in self.indexes if idx.unique]

    @property
    def unique_column_sets(self) -> List[List[str]]:
        """
        Every declared uniqueness guarantee other than the primary key:
        unique indexes followed by column-level UNIQUE flags.
        """
        sets: List[List[str]] = [list(idx.columns) for idx in self.unique_indexes]
        sets.extend([c.name] for c in self.columns if c.unique)
        return sets

    def get_column(self, name: str) -> Optional[ColumnInfo]:
        """O(1) column lookup by name."""
        return self._column_map.get(name)

    def is_primary_key_column(self, name: str) -> bool:
        return name in self.resolved_primary_keys

    # -- Validators ---------------------------------------------------------

    @model_validator(mode="after")
    def _validate_unique_column_names(self) -> "TableInfo":
        names: List[str] = [c.name for c in self.columns]
        if len(names) != len(set(names)):
            dupes: List[str] = sorted({n for n in names if names.count(n) > 1})
            raise ValueError(f"Table '{self.name}' has duplicate columns: {dupes}")
        return self

    @model_validator(mode="after")
    def _validate_pk_columns_exist(self) -> "TableInfo":
        col_set: Set[str] = {c.name for c in self.columns}
        missing: List[str] = [c for c in self.primary_key_columns if c not in col_set]
        if missing:
            raise ValueError(
                f"Primary key of table '{self.name}' references "
                f"non-existent columns: {missing}"
            )
        return self

    @model_validator(mode="after")
    def _validate_fk_columns_exist(self) -> "TableInfo":
        col_set: Set[str] = {c.name for c in self.columns}
        for fk in self.foreign_keys:
            missing: List[str] = [c for c in fk.columns if c not in col_set]
            if missing:
                raise ValueError(
                    f"ForeignKey references columns {missing} "
                    f"which do not exist in table '{self.name}'. "
                    f"Available columns: {sorted(col_set)}"
                )
        return self

    @model_validator(mode="after")
    def _validate_index_columns_exist(self) -> "TableInfo":
        col_set: Set[str] = {c.name for c in self.columns}
        for idx in self.indexes:
            missing: List[str] = [c for c in idx.columns if c not in col_set]
            if missing:
                raise ValueError(
                    f"Index '{idx.name}' on table '{self.name}' references "
                    f"non-existent columns: {missing}"
                )
        return self

    def __repr__(self) -> str:
        return (
            f"<Table {self.name} "
            f"({len(self.columns)} cols, {len(self.foreign_keys)} FKs, "
            f"{len(self.indexes)} indexes)>"
        )


# ---------------------------------------------------------------------------
# Schema Definition (top-level container)
# ---------------------------------------------------------------------------


class SchemaDefinition(BaseModel):
    """
    The root model: the **entire** schema handed to the rule engine.

    Invariant: ``get_table`` is backed by an O(1) lookup cache built once
    from the ``tables`` list upon construction.
    """

    model_config = _SHARED_CONFIG

    tables: List[TableInfo] = Field(
        default_factory=list, description="All tables in the schema."
    )
    source_file: Optional[str] = Field(
        default=None, description="Original schema file path."
    )

    _table_map: Dict[str, TableInfo] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        self._table_map = {t.name: t for t in self.tables}

    @model_validator(mode="after")
    def _validate_unique_table_names(self) -> "SchemaDefinition":
        names: List[str] = [t.name for t in self.tables]
        if len(names) != len(set(names)):
            dupes: List[str] = [n for n in names if names.count(n) > 1]
            raise ValueError(f"Duplicate table names: {sorted(set(dupes))}")
        return self

    @model_validator(mode="after")
    def _validate_fk_targets_exist(self) -> "SchemaDefinition":
        columns_by_table: Dict[str, Set[str]] = {
            t.name: {c.name for c in t.columns} for t in self.tables
        }
        for table in self.tables:
            for fk in table.foreign_keys:
                target_cols: Optional[Set[str]] = columns_by_table.get(fk.referred_table)
                if target_cols is None:
                    raise ValueError(
                        f"Table '{table.name}' has FK to '{fk.referred_table}' "
                        f"which is not defined in the schema."
                    )
                missing: List[str] = [
                    c for c in fk.referred_columns if c not in target_cols
                ]
                if missing:
                    raise ValueError(
                        f"Table '{table.name}' has FK to '{fk.referred_table}' "
                        f"referencing non-existent columns: {missing}"
                    )
        return self

    def get_table(self, name: str) -> Optional[TableInfo]:
        """O(1) table lookup."""
        return self._table_map.get(name)

    @property
    def table_count(self) -> int:
        return len(self.tables)

    @property
    def table_names(self) -> List[str]:
        return [t.name for t in self.tables]

    @property
    def total_columns(self) -> int:
        return sum(len(t.columns) for t in self.tables)

    @property
    def total_foreign_keys(self) -> int:
        return sum(len(t.foreign_keys) for t in self.tables)

    def __repr__(self) -> str:
        return (
            f"<SchemaDefinition {self.table_count} tables, "
            f"{self.total_columns} columns, "
            f"{self.total_foreign_keys} foreign keys>"
        )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "OnDeleteAction",
    "ColumnInfo",
    "CheckConstraintInfo",
    "IndexInfo",
    "ForeignKeyInfo",
    "TableInfo",
    "SchemaDefinition",
]

logger.debug("schemarules.models loaded — %d public symbols.", len(__all__))
