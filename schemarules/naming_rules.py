# File: schemarules/naming_rules.py
"""
SchemaRules - Naming Rules
===========================
Lexical conventions for table and column names.

Tables are lowercase, snake_case, plural and not SQL keywords; columns are
lowercase, snake_case, singular (judged on the last ``_`` segment) and not
SQL keywords.  Every check is a pure string predicate, O(len(name)).
"""

from __future__ import annotations

import logging
from typing import List

from schemarules.models import ColumnInfo, TableInfo
from schemarules.rules import ColumnRule, RuleContext, TableRule, register_rule
from schemarules.utils import (
    SNAKE_CASE_RE,
    SQL_RESERVED_WORDS,
    is_plural,
    is_singular,
    last_segment,
    replace_last_segment,
    to_plural,
    to_singular,
    to_snake_case,
)
from schemarules.violations import Violation, ViolationKind

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemarules.naming_rules")


def _is_lowercase(name: str) -> bool:
    return all(not c.isalpha() or c.islower() for c in name)


# ---------------------------------------------------------------------------
# Table names
# ---------------------------------------------------------------------------


@register_rule
class LowercaseTableName(TableRule):
    name = "LowercaseTableName"
    violation_kind = ViolationKind.NAMING
    description = "Table names must be lowercase."

    def validate_table(self, ctx: RuleContext, table: TableInfo) -> List[Violation]:
        if _is_lowercase(table.name):
            return []
        return [
            self.violation(
                table.name,
                f"Table name '{table.name}' is not lowercase.",
                resolution=f"Rename table '{table.name}' to '{table.name.lower()}'.",
            )
        ]


@register_rule
class SnakeCaseTableName(TableRule):
    name = "SnakeCaseTableName"
    violation_kind = ViolationKind.NAMING
    description = "Table names must be snake_case."

    def validate_table(self, ctx: RuleContext, table: TableInfo) -> List[Violation]:
        if SNAKE_CASE_RE.match(table.name):
            return []
        return [
            self.violation(
                table.name,
                f"Table name '{table.name}' is not snake_case.",
                resolution=(
                    f"Rename table '{table.name}' to '{to_snake_case(table.name)}'."
                ),
            )
        ]


@register_rule
class PluralTableName(TableRule):
    """The last ``_`` segment of a table name is plural (``user_accounts``)."""

    name = "PluralTableName"
    violation_kind = ViolationKind.NAMING
    description = "Table names must end in a plural noun."

    def validate_table(self, ctx: RuleContext, table: TableInfo) -> List[Violation]:
        segment: str = last_segment(table.name)
        if not segment or is_plural(segment):
            return []
        expected: str = replace_last_segment(table.name, to_plural(segment))
        return [
            self.violation(
                table.name,
                f"Table name '{table.name}' ends in the singular '{segment}'.",
                resolution=f"Rename table '{table.name}' to '{expected}'.",
            )
        ]


@register_rule
class NoReservedWordTableName(TableRule):
    name = "NoReservedWordTableName"
    violation_kind = ViolationKind.NAMING
    description = "Table names must not be SQL keywords."

    def validate_table(self, ctx: RuleContext, table: TableInfo) -> List[Violation]:
        if table.name.lower() not in SQL_RESERVED_WORDS:
            return []
        return [
            self.violation(
                table.name,
                f"Table name '{table.name}' is a SQL reserved word.",
                resolution=f"Rename table '{table.name}'.",
            )
        ]


# ---------------------------------------------------------------------------
# Column names
# ---------------------------------------------------------------------------


@register_rule
class LowercaseColumnName(ColumnRule):
    name = "LowercaseColumnName"
    violation_kind = ViolationKind.NAMING
    description = "Column names must be lowercase."

    def validate_column(
        self, ctx: RuleContext, table: TableInfo, column: ColumnInfo
    ) -> List[Violation]:
        if _is_lowercase(column.name):
            return []
        return [
            self.violation(
                f"{table.name}.{column.name}",
                f"Column name '{column.name}' in table '{table.name}' is not "
                f"lowercase.",
                resolution=(
                    f"Rename column '{column.name}' to '{column.name.lower()}' in "
                    f"table '{table.name}'."
                ),
            )
        ]


@register_rule
class SnakeCaseColumnName(ColumnRule):
    name = "SnakeCaseColumnName"
    violation_kind = ViolationKind.NAMING
    description = "Column names must be snake_case."

    def validate_column(
        self, ctx: RuleContext, table: TableInfo, column: ColumnInfo
    ) -> List[Violation]:
        if SNAKE_CASE_RE.match(column.name):
            return []
        return [
            self.violation(
                f"{table.name}.{column.name}",
                f"Column name '{column.name}' in table '{table.name}' is not "
                f"snake_case.",
                resolution=(
                    f"Rename column '{column.name}' to "
                    f"'{to_snake_case(column.name)}' in table '{table.name}'."
                ),
            )
        ]


@register_rule
class SingularColumnName(ColumnRule):
    """Only the segment after the final underscore is judged (``user_accounts`` fails)."""

    name = "SingularColumnName"
    violation_kind = ViolationKind.NAMING
    description = "Column names must end in a singular noun."

    def validate_column(
        self, ctx: RuleContext, table: TableInfo, column: ColumnInfo
    ) -> List[Violation]:
        segment: str = last_segment(column.name)
        if not segment or is_singular(segment):
            return []
        singular: str = to_singular(segment)
        expected: str = replace_last_segment(column.name, singular)
        return [
            self.violation(
                f"{table.name}.{column.name}",
                f"Column '{column.name}' in table '{table.name}' violates "
                f"singular naming convention: the last segment '{segment}' is "
                f"plural.",
                resolution=(
                    f"Change '{column.name}' to '{expected}' in table "
                    f"'{table.name}'."
                ),
            )
        ]


@register_rule
class NoReservedWordColumnName(ColumnRule):
    name = "NoReservedWordColumnName"
    violation_kind = ViolationKind.NAMING
    description = "Column names must not be SQL keywords."

    def validate_column(
        self, ctx: RuleContext, table: TableInfo, column: ColumnInfo
    ) -> List[Violation]:
        if column.name.lower() not in SQL_RESERVED_WORDS:
            return []
        return [
            self.violation(
                f"{table.name}.{column.name}",
                f"Column name '{column.name}' in table '{table.name}' is a SQL "
                f"reserved word.",
                resolution=f"Rename column '{column.name}' in table '{table.name}'.",
            )
        ]


__all__: List[str] = [
    "LowercaseTableName",
    "SnakeCaseTableName",
    "PluralTableName",
    "NoReservedWordTableName",
    "LowercaseColumnName",
    "SnakeCaseColumnName",
    "SingularColumnName",
    "NoReservedWordColumnName",
]
