# File: schemarules/key_rules.py
"""
SchemaRules - Key & Constraint Rules
=====================================
Rules about primary keys, foreign keys, unique indexes and check
constraints:

- ``CompatibleForeignKey``  — position-by-position type compatibility
  between a foreign key's columns and the columns it references.
- ``ReferencesUniqueIndex`` — the referenced column set is backed by the
  primary key or a unique index of the referenced table.
- ``HasPrimaryKey``, ``NonCompositePrimaryKeyNamedId``,
  ``UniqueForeignKey``, ``UniqueUniqueIndex``, ``UniqueCheckRule`` —
  per-table key hygiene.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Set, Tuple

from schemarules.graph import is_extension_foreign_key
from schemarules.models import ColumnInfo, ForeignKeyInfo, TableInfo
from schemarules.rules import (
    ColumnRule,
    ForeignKeyRule,
    RuleContext,
    TableRule,
    register_rule,
)
from schemarules.violations import Violation, ViolationKind

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemarules.key_rules")


def _column_list(columns: List[str]) -> str:
    return ", ".join(columns)


def _tables_referenced_via(
    table: TableInfo, column: str, skip: Optional[ForeignKeyInfo] = None
) -> List[str]:
    """Distinct tables that foreign keys of ``table`` constraining ``column`` point at."""
    found: List[str] = []
    for fk in table.foreign_keys:
        if fk is skip or column not in fk.columns:
            continue
        if fk.referred_table not in found:
            found.append(fk.referred_table)
    return found


# ---------------------------------------------------------------------------
# Foreign-key rules
# ---------------------------------------------------------------------------


@register_rule
class CompatibleForeignKey(ForeignKeyRule):
    """
    Each local column is compatible with the referenced column at the same
    position.

    A column-count mismatch is always reported and suppresses the
    positional checks.  Two columns are incompatible when their declared
    types are not equivalent under the configured type table, when both
    are generated (two independent sequences never agree), or when the
    local column also references tables from a different extension
    hierarchy than the referenced column.

    Two tables share a hierarchy when their extension ancestries (each
    table together with its ancestors) intersect.  Extension foreign keys
    are exempt from the hierarchy check.
    """

    name = "CompatibleForeignKey"
    violation_kind = ViolationKind.COMPATIBILITY
    description = "Foreign key columns must match the referenced column types."

    def validate_foreign_key(
        self, ctx: RuleContext, table: TableInfo, foreign_key: ForeignKeyInfo
    ) -> List[Violation]:
        target: TableInfo = ctx.table(foreign_key.referred_table)
        identity: str = foreign_key.describe(table.name)

        local_count: int = len(foreign_key.columns)
        referenced_count: int = len(foreign_key.referred_columns)
        if local_count != referenced_count:
            return [
                self.violation(
                    identity,
                    f"Foreign key from '{table.name}' has {local_count} local "
                    f"column(s) ({_column_list(foreign_key.columns)}) but "
                    f"references {referenced_count} column(s) "
                    f"({_column_list(foreign_key.referred_columns)}) of "
                    f"'{target.name}'.",
                    resolution=(
                        "Make the local and referenced column lists the same "
                        "length."
                    ),
                    local_count=local_count,
                    referenced_count=referenced_count,
                )
            ]

        check_hierarchy: bool = not is_extension_foreign_key(
            table, foreign_key, ctx.schema
        )
        violations: List[Violation] = []
        for position, (local_name, referenced_name) in enumerate(
            foreign_key.column_pairs
        ):
            local: Optional[ColumnInfo] = table.get_column(local_name)
            referenced: Optional[ColumnInfo] = target.get_column(referenced_name)
            if local is None or referenced is None:
                # Model validation guarantees both exist.
                continue
            local_ref: str = f"{table.name}.{local.name}"
            target_ref: str = f"{target.name}.{referenced.name}"

            if local.generated and referenced.generated:
                violations.append(
                    self.violation(
                        identity,
                        f"Foreign key column '{local_ref}' and referenced column "
                        f"'{target_ref}' are both generated (auto-increment/"
                        f"serial), so their values never correspond.",
                        resolution=(
                            f"Remove the generative property from '{local_ref}' "
                            f"(e.g. SERIAL to INT)."
                        ),
                        position=position,
                    )
                )
            elif not ctx.types.are_compatible(local.data_type, referenced.data_type):
                violations.append(
                    self.violation(
                        identity,
                        f"Foreign key column '{local_ref}' has type "
                        f"'{local.data_type}' which is incompatible with "
                        f"referenced column '{target_ref}' of type "
                        f"'{referenced.data_type}'.",
                        resolution=(
                            f"Change the type of '{local_ref}' to "
                            f"'{ctx.types.canonical(referenced.data_type)}'."
                        ),
                        position=position,
                        local_type=local.data_type,
                        referenced_type=referenced.data_type,
                    )
                )
            elif check_hierarchy:
                mismatch: Optional[Violation] = self._hierarchy_mismatch(
                    ctx, table, foreign_key, target, local, referenced, position
                )
                if mismatch is not None:
                    violations.append(mismatch)
        return violations

    def _hierarchy_mismatch(
        self,
        ctx: RuleContext,
        table: TableInfo,
        foreign_key: ForeignKeyInfo,
        target: TableInfo,
        local: ColumnInfo,
        referenced: ColumnInfo,
        position: int,
    ) -> Optional[Violation]:
        local_refs: List[str] = _tables_referenced_via(table, local.name, skip=foreign_key)
        if not local_refs:
            return None
        target_refs: List[str] = _tables_referenced_via(target, referenced.name)

        hierarchy: Set[str] = set()
        for name in [target.name, *target_refs]:
            hierarchy.add(name)
            hierarchy.update(ctx.graph.ancestors(name))
        unrelated: List[str] = [
            name
            for name in local_refs
            if hierarchy.isdisjoint([name, *ctx.graph.ancestors(name)])
        ]
        if not unrelated:
            return None

        local_ref: str = f"{table.name}.{local.name}"
        target_ref: str = f"{target.name}.{referenced.name}"
        if target_refs:
            target_listing: str = ", ".join(target_refs)
        elif target.is_primary_key_column(referenced.name):
            target_listing = f"{target.name} (primary key)"
        else:
            target_listing = "none"
        return self.violation(
            foreign_key.describe(table.name),
            f"Foreign key column '{local_ref}' is not compatible with referenced "
            f"column '{target_ref}': they reference incompatible table "
            f"hierarchies. '{local_ref}' references [{', '.join(local_refs)}], "
            f"while '{target_ref}' references [{target_listing}].",
            resolution=(
                f"Ensure that '{local_ref}' and '{target_ref}' are part of the "
                f"same table extension hierarchy, or reconsider the foreign key "
                f"relationship."
            ),
            position=position,
            local_references=local_refs,
            unrelated=unrelated,
        )


@register_rule
class ReferencesUniqueIndex(ForeignKeyRule):
    """
    The referenced columns, taken as a set, equal the primary key or the
    column set of a unique index of the referenced table.
    """

    name = "ReferencesUniqueIndex"
    violation_kind = ViolationKind.RESOLUTION
    description = "Foreign keys must reference a primary key or unique index."

    def validate_foreign_key(
        self, ctx: RuleContext, table: TableInfo, foreign_key: ForeignKeyInfo
    ) -> List[Violation]:
        target: TableInfo = ctx.table(foreign_key.referred_table)
        referenced: Set[str] = set(foreign_key.referred_columns)

        candidates: List[List[str]] = []
        if target.has_primary_key:
            candidates.append(target.resolved_primary_keys)
        candidates.extend(target.unique_column_sets)

        if any(set(columns) == referenced for columns in candidates):
            return []

        listed: str = _column_list(foreign_key.referred_columns)
        return [
            self.violation(
                foreign_key.describe(table.name),
                f"Foreign key from table '{table.name}' references columns "
                f"({listed}) in table '{target.name}' which are not covered by "
                f"its primary key or any unique index.",
                resolution=(
                    f"Add a unique constraint or primary key on ({listed}) in "
                    f"table '{target.name}', or remove the foreign key from "
                    f"table '{table.name}'."
                ),
                referred_table=target.name,
                referred_columns=list(foreign_key.referred_columns),
            )
        ]


# ---------------------------------------------------------------------------
# Table rules
# ---------------------------------------------------------------------------


@register_rule
class HasPrimaryKey(TableRule):
    name = "HasPrimaryKey"
    description = "Every table must declare a primary key."

    def validate_table(self, ctx: RuleContext, table: TableInfo) -> List[Violation]:
        if table.has_primary_key:
            return []
        return [
            self.violation(
                table.name,
                f"Table '{table.name}' has no primary key.",
                resolution=f"Declare a primary key on table '{table.name}'.",
            )
        ]


@register_rule
class UniqueForeignKey(TableRule):
    """No two foreign keys of a table share columns, target table and target columns."""

    name = "UniqueForeignKey"
    violation_kind = ViolationKind.UNIQUENESS
    description = "Foreign keys must be unique per table."

    def validate_table(self, ctx: RuleContext, table: TableInfo) -> List[Violation]:
        groups: Dict[Tuple[Tuple[str, ...], str, Tuple[str, ...]], List[ForeignKeyInfo]]
        groups = defaultdict(list)
        for fk in table.foreign_keys:
            signature = (tuple(fk.columns), fk.referred_table, tuple(fk.referred_columns))
            groups[signature].append(fk)

        violations: List[Violation] = []
        for (columns, referred_table, referred_columns), fks in groups.items():
            if len(fks) < 2:
                continue
            ddl: str = (
                f"FOREIGN KEY ({_column_list(list(columns))}) REFERENCES "
                f"{referred_table} ({_column_list(list(referred_columns))})"
            )
            violations.append(
                self.violation(
                    table.name,
                    f"Table '{table.name}' declares {len(fks)} identical foreign "
                    f"keys: {ddl}.",
                    resolution=f"Keep only one {ddl}.",
                    names=[fk.name for fk in fks],
                )
            )
        return violations


@register_rule
class UniqueUniqueIndex(TableRule):
    """No two uniqueness guarantees of a table cover the same ordered columns."""

    name = "UniqueUniqueIndex"
    violation_kind = ViolationKind.UNIQUENESS
    description = "Unique indexes must be unique per table."

    def validate_table(self, ctx: RuleContext, table: TableInfo) -> List[Violation]:
        counts: Dict[Tuple[str, ...], int] = defaultdict(int)
        for columns in table.unique_column_sets:
            counts[tuple(columns)] += 1

        violations: List[Violation] = []
        for columns, count in counts.items():
            if count < 2:
                continue
            listed: str = _column_list(list(columns))
            violations.append(
                self.violation(
                    table.name,
                    f"Table '{table.name}' has {count} unique indexes on "
                    f"columns ({listed}).",
                    resolution=f"Drop the redundant unique indexes on ({listed}).",
                    columns=list(columns),
                )
            )
        return violations


@register_rule
class UniqueCheckRule(TableRule):
    """No two check constraints of a table share the same expression."""

    name = "UniqueCheckRule"
    violation_kind = ViolationKind.UNIQUENESS
    description = "Check constraints must be unique per table."

    def validate_table(self, ctx: RuleContext, table: TableInfo) -> List[Violation]:
        seen: Dict[str, str] = {}
        duplicates: List[str] = []
        for check in table.check_constraints:
            key: str = check.normalized_expression
            if key in seen:
                if key not in duplicates:
                    duplicates.append(key)
                continue
            seen[key] = check.expression

        return [
            self.violation(
                table.name,
                f"Table '{table.name}' repeats the check constraint "
                f"'{seen[key]}'.",
                resolution="Remove the duplicated check constraint.",
                expression=seen[key],
            )
            for key in duplicates
        ]


# ---------------------------------------------------------------------------
# Column rules
# ---------------------------------------------------------------------------


@register_rule
class NonCompositePrimaryKeyNamedId(ColumnRule):
    name = "NonCompositePrimaryKeyNamedId"
    violation_kind = ViolationKind.NAMING
    description = "A single-column primary key must be named 'id'."

    def validate_column(
        self, ctx: RuleContext, table: TableInfo, column: ColumnInfo
    ) -> List[Violation]:
        if not table.is_primary_key_column(column.name) or table.has_composite_pk:
            return []
        if column.name == "id":
            return []
        return [
            self.violation(
                f"{table.name}.{column.name}",
                f"Column '{column.name}' in table '{table.name}' is a "
                f"non-composite primary key but is not named 'id'.",
                resolution=(
                    f"Rename the primary key column '{column.name}' to 'id' in "
                    f"table '{table.name}'."
                ),
            )
        ]


__all__: List[str] = [
    "CompatibleForeignKey",
    "ReferencesUniqueIndex",
    "HasPrimaryKey",
    "UniqueForeignKey",
    "UniqueUniqueIndex",
    "UniqueCheckRule",
    "NonCompositePrimaryKeyNamedId",
]
