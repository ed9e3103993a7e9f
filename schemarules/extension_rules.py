# File: schemarules/extension_rules.py
"""
SchemaRules - Extension Rules
==============================
Rules reasoning over the extension graph (joined-table inheritance):

- ``NonRedundantExtensionDag``          — the graph is acyclic and is its own
  transitive reduction.
- ``UniqueColumnNamesInExtensionGraph`` — no column name repeats along any
  chain from a table up to a root.
- ``NoForbiddenColumnInExtension``      — extension tables do not declare a
  configured forbidden column.
- ``NoSurrogatePrimaryKeyInExtension``  — extension primary keys reuse the
  inherited value instead of generating their own.
- ``ExtensionForeignKeyOnDeleteCascade`` — deleting a parent row removes
  its specialisations.

Tables lying on an extension cycle are reported once by
``NonRedundantExtensionDag`` and skipped by the chain analyses, which have
no well-defined chain to walk for them.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Set, Tuple

from schemarules.config import LinterConfig
from schemarules.graph import ExtensionGraph, is_extension_foreign_key
from schemarules.models import ColumnInfo, ForeignKeyInfo, OnDeleteAction, TableInfo
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
logger: logging.Logger = logging.getLogger("schemarules.extension_rules")


def _arrow(path: List[str]) -> str:
    return " → ".join(path)


# ---------------------------------------------------------------------------
# Graph structure
# ---------------------------------------------------------------------------


@register_rule
class NonRedundantExtensionDag(TableRule):
    """
    Flags extension cycles and extension edges implied by a longer path.

    An edge ``A → B`` is redundant when ``B`` is also reachable from ``A``
    through two or more extension edges; every redundant edge is reported
    on ``A`` together with the shortest alternate path.  Parallel extension
    foreign keys to the same parent are distinct edges and each is
    reported.  A cycle is reported once per cyclic component, on its first
    table in schema order, and no redundancy analysis is attempted for its
    members.
    """

    name = "NonRedundantExtensionDag"
    violation_kind = ViolationKind.REDUNDANCY
    description = "Extension graph must be an acyclic transitive reduction."

    def validate_table(self, ctx: RuleContext, table: TableInfo) -> List[Violation]:
        graph: ExtensionGraph = ctx.graph
        if graph.is_cyclic(table.name):
            return self._cycle_violations(graph, table)

        redundant: Dict[str, List[str]] = dict(graph.redundant_edges(table.name))
        violations: List[Violation] = []
        # Parallel foreign keys to the same parent are separate edges.
        for edge in graph.edges_from(table.name):
            if edge.parent not in redundant:
                continue
            parent: str = edge.parent
            path: List[str] = redundant[parent]
            violations.append(
                self.violation(
                    table.name,
                    f"Table '{table.name}' directly extends '{parent}', which it "
                    f"already extends through {_arrow(path)}.",
                    resolution=(
                        f"Remove the extension foreign key from '{table.name}' "
                        f"to '{parent}'; the relationship is implied by "
                        f"{_arrow(path)}."
                    ),
                    parent=parent,
                    path=path,
                    foreign_key=edge.foreign_key.describe(table.name),
                )
            )
        return violations

    def _cycle_violations(
        self, graph: ExtensionGraph, table: TableInfo
    ) -> List[Violation]:
        component: List[str] = graph.cycle_component(table.name)
        if component[0] != table.name:
            return []
        path: List[str] = graph.cycle_path(table.name)
        if len(path) == 2:
            message: str = (
                f"Table '{table.name}' extends itself: its primary key "
                f"references its own primary key."
            )
        else:
            message = (
                f"Table '{table.name}' is part of an extension cycle: "
                f"{_arrow(path)}."
            )
        return [
            self.violation(
                table.name,
                message,
                resolution=(
                    "Break the cycle so that every extension chain ends at a "
                    "root table: remove one of the primary-key foreign keys "
                    f"among {', '.join(component)}."
                ),
                kind=ViolationKind.STRUCTURAL,
                cycle=path,
                tables=component,
            )
        ]


@register_rule
class UniqueColumnNamesInExtensionGraph(TableRule):
    """
    Along every chain from a table up to a root, non-key column names are
    unique.

    Each duplicate is reported by the lower (extending) table of the pair,
    naming the nearest ancestor on the chain that defines the same column;
    a pair reached through several chains is reported once.
    """

    name = "UniqueColumnNamesInExtensionGraph"
    violation_kind = ViolationKind.UNIQUENESS
    description = "Column names must be unique across each extension chain."

    def validate_table(self, ctx: RuleContext, table: TableInfo) -> List[Violation]:
        graph: ExtensionGraph = ctx.graph
        if not graph.is_extension(table.name) or graph.is_cyclic(table.name):
            return []

        violations: List[Violation] = []
        reported: Set[Tuple[str, str]] = set()

        for chain in graph.chains(table.name):
            owner: Dict[str, str] = {}
            settled: Set[str] = set()
            for position, table_name in enumerate(chain):
                member: TableInfo = ctx.table(table_name)
                for column in member.columns:
                    if member.is_primary_key_column(column.name):
                        continue
                    first: str = owner.setdefault(column.name, table_name)
                    if first == table_name or first != table.name:
                        continue
                    if column.name in settled:
                        continue
                    settled.add(column.name)
                    if (column.name, table_name) in reported:
                        continue
                    reported.add((column.name, table_name))
                    violations.append(
                        self.violation(
                            f"{table.name}.{column.name}",
                            f"Column '{column.name}' of table '{table.name}' is "
                            f"also defined by '{table_name}', which "
                            f"'{table.name}' extends through "
                            f"{_arrow(chain[: position + 1])}.",
                            resolution=(
                                f"Rename or remove '{column.name}' in either "
                                f"'{table.name}' or '{table_name}'."
                            ),
                            column=column.name,
                            tables=[table.name, table_name],
                            chain=chain[: position + 1],
                        )
                    )
        return violations


# ---------------------------------------------------------------------------
# Extension hygiene
# ---------------------------------------------------------------------------


@register_rule
class NoForbiddenColumnInExtension(TableRule):
    """A table extending other tables must not declare the forbidden column."""

    name = "NoForbiddenColumnInExtension"
    description = "Extension tables must not define the forbidden column."

    def __init__(self, forbidden_name: str = "most_concrete_table") -> None:
        self.forbidden_name: str = forbidden_name

    @classmethod
    def from_config(cls, config: LinterConfig) -> "NoForbiddenColumnInExtension":
        return cls(config.forbidden_extension_column)

    def validate_table(self, ctx: RuleContext, table: TableInfo) -> List[Violation]:
        if not ctx.graph.is_extension(table.name):
            return []
        forbidden: str = self.forbidden_name.lower()
        extended: List[str] = ctx.graph.parents(table.name)
        violations: List[Violation] = []
        for column in table.columns:
            if column.name.lower() != forbidden:
                continue
            noun: str = "table" if len(extended) == 1 else "tables"
            violations.append(
                self.violation(
                    table.name,
                    f"Table '{table.name}' extends {noun} ({', '.join(extended)}) "
                    f"but has a forbidden column named '{column.name}'.",
                    resolution=(
                        f"Rename or remove the '{column.name}' column from table "
                        f"'{table.name}'."
                    ),
                    column=column.name,
                )
            )
        return violations


@register_rule
class NoSurrogatePrimaryKeyInExtension(ColumnRule):
    """Primary-key columns of extension tables are neither generated nor defaulted."""

    name = "NoSurrogatePrimaryKeyInExtension"
    description = "Extension primary keys must reuse the inherited key value."

    def validate_column(
        self, ctx: RuleContext, table: TableInfo, column: ColumnInfo
    ) -> List[Violation]:
        if not table.is_primary_key_column(column.name):
            return []
        if not ctx.graph.is_extension(table.name):
            return []

        if column.generated and column.has_default:
            reason: str = "is generated and defines a DEFAULT value"
        elif column.generated:
            reason = "is generated (e.g. SERIAL/AUTOINCREMENT)"
        elif column.has_default:
            reason = "defines a DEFAULT value"
        else:
            return []

        qualified: str = f"{table.name}.{column.name}"
        return [
            self.violation(
                qualified,
                f"Primary-key column '{qualified}' belongs to an extension "
                f"table and {reason}.",
                resolution=(
                    f"Remove SERIAL/AUTOINCREMENT/DEFAULT from '{qualified}' and "
                    f"reuse the inherited key value."
                ),
            )
        ]


@register_rule
class ExtensionForeignKeyOnDeleteCascade(ForeignKeyRule):
    """Extension foreign keys declare ON DELETE CASCADE."""

    name = "ExtensionForeignKeyOnDeleteCascade"
    description = "Extension foreign keys must cascade deletions."

    def validate_foreign_key(
        self, ctx: RuleContext, table: TableInfo, foreign_key: ForeignKeyInfo
    ) -> List[Violation]:
        if not is_extension_foreign_key(table, foreign_key, ctx.schema):
            return []
        if foreign_key.on_delete == OnDeleteAction.CASCADE:
            return []
        return [
            self.violation(
                foreign_key.describe(table.name),
                f"Extension foreign key from '{table.name}' to "
                f"'{foreign_key.referred_table}' uses ON DELETE "
                f"{foreign_key.on_delete}; deleting a '{foreign_key.referred_table}' "
                f"row would leave an orphaned '{table.name}' row or be refused.",
                resolution="Declare the foreign key with ON DELETE CASCADE.",
                on_delete=str(foreign_key.on_delete),
            )
        ]


__all__: List[str] = [
    "NonRedundantExtensionDag",
    "UniqueColumnNamesInExtensionGraph",
    "NoForbiddenColumnInExtension",
    "NoSurrogatePrimaryKeyInExtension",
    "ExtensionForeignKeyOnDeleteCascade",
]
