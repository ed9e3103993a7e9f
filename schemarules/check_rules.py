# File: schemarules/check_rules.py
"""
SchemaRules - Check Constraint Rules
=====================================
Rules that read the expressions of CHECK constraints:

- ``NoTautologicalCheckRule`` — no check is always true (``CHECK (true)``,
  ``CHECK (1 = 1)``).
- ``NoNegationCheckRule``     — no check is always false (``CHECK (false)``,
  ``CHECK (1 = 0)``).
- ``PastTimeColumnRule``      — ``*_at`` columns are bounded by ``NOW()``
  (opt-in).
- ``TextualColumnRule``       — textual columns are non-empty and length
  bounded (opt-in).

Expressions are free SQL text, so the analysis is lexical: it recognises
constant comparisons and the usual ``LENGTH(col) <= n`` / ``col <> ''``
shapes, and treats everything else as meaningful.  Column rules attribute a
table-level check to a column when the expression names that column.
"""

from __future__ import annotations

import functools
import logging
import operator
import re
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple, Union

from schemarules.config import normalize_type
from schemarules.models import CheckConstraintInfo, ColumnInfo, TableInfo
from schemarules.rules import ColumnRule, RuleContext, TableRule, register_rule
from schemarules.violations import Violation

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemarules.check_rules")

# ---------------------------------------------------------------------------
# Expression analysis
# ---------------------------------------------------------------------------

_CONNECTIVE_RE: re.Pattern[str] = re.compile(r"\b(?:and|or)\b")
_COMPARISON_RE: re.Pattern[str] = re.compile(
    r"^(?P<left>[^<>=!]+?)\s*(?P<op><>|!=|<=|>=|=|<|>)\s*(?P<right>[^<>=!]+)$"
)
_NUMBER_RE: re.Pattern[str] = re.compile(r"^[+-]?\d+(?:\.\d+)?$")

_OPERATORS: Dict[str, Callable[[object, object], bool]] = {
    "=": operator.eq,
    "<>": operator.ne,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

LiteralValue = Union[float, str]


def normalise_expression(expression: str) -> str:
    """Lower-case, drop identifier quoting and collapse whitespace."""
    unquoted: str = expression.lower().replace('"', "").replace("`", "")
    return " ".join(unquoted.split())


def _strip_outer_parens(expr: str) -> str:
    while expr.startswith("(") and expr.endswith(")"):
        depth: int = 0
        for position, char in enumerate(expr):
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
                if depth == 0 and position != len(expr) - 1:
                    # "(a) = (b)": the first parenthesis closes early.
                    return expr
        expr = expr[1:-1].strip()
    return expr


def _literal(token: str) -> Optional[LiteralValue]:
    token = _strip_outer_parens(token.strip())
    if _NUMBER_RE.match(token):
        return float(token)
    if len(token) >= 2 and token[0] == token[-1] == "'":
        return token[1:-1]
    return None


def constant_truth(expression: str) -> Optional[bool]:
    """
    Truth value of ``expression`` when it does not depend on any row.

    Returns ``True`` for tautologies, ``False`` for contradictions and
    ``None`` when the expression has to be evaluated against data.

    Examples:
        >>> constant_truth("TRUE"), constant_truth("(1 = 0)"), constant_truth("age > 0")
        (True, False, None)
    """
    expr: str = _strip_outer_parens(normalise_expression(expression))
    if expr == "true":
        return True
    if expr == "false":
        return False
    if expr.startswith("not "):
        inner: Optional[bool] = constant_truth(expr[4:])
        return None if inner is None else not inner
    if _CONNECTIVE_RE.search(expr):
        return None

    match: Optional[re.Match[str]] = _COMPARISON_RE.match(expr)
    if match is None:
        return None
    left: str = _strip_outer_parens(match.group("left").strip())
    right: str = _strip_outer_parens(match.group("right").strip())
    op: str = match.group("op")
    if left == right:
        return op in ("=", "<=", ">=")

    lhs: Optional[LiteralValue] = _literal(left)
    rhs: Optional[LiteralValue] = _literal(right)
    if lhs is None or rhs is None or type(lhs) is not type(rhs):
        return None
    return _OPERATORS[op](lhs, rhs)


# ---------------------------------------------------------------------------
# Column-scoped patterns
# ---------------------------------------------------------------------------

_TEXTUAL_TYPES: FrozenSet[str] = frozenset(
    {
        "text", "varchar", "character varying", "char", "character",
        "bpchar", "string", "nvarchar", "nchar", "citext", "tinytext",
        "mediumtext", "longtext", "clob",
    }
)

_NOW: str = r"(?:now\(\)|current_timestamp|localtimestamp)"


def is_textual(data_type: str) -> bool:
    return normalize_type(data_type) in _TEXTUAL_TYPES


PatternGroup = Tuple[List[re.Pattern[str]], List[re.Pattern[str]], List[re.Pattern[str]]]


@functools.lru_cache(maxsize=None)
def _column_patterns(column: str) -> PatternGroup:
    """(not-empty, upper-bound, in-the-past) patterns for one column name."""
    col: str = rf"(?<!\w)(?:\w+\.)?{re.escape(column.lower())}(?!\w)"
    length_of: str = (
        rf"(?:char_length|character_length|length|len)\(\s*(?:trim\(\s*)?{col}\s*\)?\s*\)"
    )
    not_empty: List[re.Pattern[str]] = [
        re.compile(rf"(?:trim\(\s*)?{col}\s*\)?\s*(?:<>|!=)\s*''"),
        re.compile(rf"{length_of}\s*(?:>\s*0|>=\s*1)(?!\d)"),
        re.compile(rf"(?<!\d)(?:0\s*<|1\s*<=)\s*{length_of}"),
        re.compile(rf"{length_of}\s+between\s+[1-9]\d*\s+and\s+\d+"),
    ]
    upper_bound: List[re.Pattern[str]] = [
        re.compile(rf"{length_of}\s*(?P<op><=|<)\s*(?P<limit>\d+)"),
        re.compile(rf"(?P<limit>\d+)\s*(?P<op>>=|>)\s*{length_of}"),
        re.compile(rf"{length_of}\s+between\s+\d+\s+and\s+(?P<limit>\d+)"),
    ]
    in_the_past: List[re.Pattern[str]] = [
        re.compile(rf"{col}\s*<=?\s*{_NOW}"),
        re.compile(rf"{_NOW}\s*>=?\s*{col}"),
    ]
    return not_empty, upper_bound, in_the_past


def _expressions(table: TableInfo) -> List[str]:
    return [normalise_expression(check.expression) for check in table.check_constraints]


def has_not_empty_check(table: TableInfo, column: str) -> bool:
    patterns: List[re.Pattern[str]] = _column_patterns(column)[0]
    return any(p.search(expr) for expr in _expressions(table) for p in patterns)


def length_limit(table: TableInfo, column: str) -> Optional[int]:
    """Tightest maximum length imposed on ``column`` by the table's checks."""
    limit: Optional[int] = None
    for expr in _expressions(table):
        for pattern in _column_patterns(column)[1]:
            for match in pattern.finditer(expr):
                value: int = int(match.group("limit"))
                if match.groupdict().get("op") in ("<", ">"):
                    value -= 1
                if limit is None or value < limit:
                    limit = value
    return limit


def has_past_check(table: TableInfo, column: str) -> bool:
    patterns: List[re.Pattern[str]] = _column_patterns(column)[2]
    return any(p.search(expr) for expr in _expressions(table) for p in patterns)


# ---------------------------------------------------------------------------
# Table rules
# ---------------------------------------------------------------------------


def _constant_checks(table: TableInfo, truth: bool) -> List[CheckConstraintInfo]:
    return [c for c in table.check_constraints if constant_truth(c.expression) is truth]


@register_rule
class NoTautologicalCheckRule(TableRule):
    """A check constraint that always holds constrains nothing."""

    name = "NoTautologicalCheckRule"
    description = "Check constraints must not be always true."

    def validate_table(self, ctx: RuleContext, table: TableInfo) -> List[Violation]:
        return [
            self.violation(
                table.name,
                f"Table '{table.name}' has a tautological check constraint: "
                f"CHECK ({check.expression})",
                resolution=(
                    f"Remove the tautological check constraint "
                    f"'CHECK ({check.expression})' from table '{table.name}'."
                ),
                expression=check.expression,
            )
            for check in _constant_checks(table, True)
        ]


@register_rule
class NoNegationCheckRule(TableRule):
    """A check constraint that never holds rejects every row."""

    name = "NoNegationCheckRule"
    description = "Check constraints must not be always false."

    def validate_table(self, ctx: RuleContext, table: TableInfo) -> List[Violation]:
        return [
            self.violation(
                table.name,
                f"Table '{table.name}' has a negation check constraint: "
                f"CHECK ({check.expression})",
                resolution="Remove the negation check constraint.",
                expression=check.expression,
            )
            for check in _constant_checks(table, False)
        ]


# ---------------------------------------------------------------------------
# Column rules
# ---------------------------------------------------------------------------


@register_rule
class PastTimeColumnRule(ColumnRule):
    """
    Columns named ``*_at`` record when something happened, so a check must
    keep them at or before ``NOW()``.  Names describing future or interval
    boundaries are exempt.
    """

    name = "PastTimeColumnRule"
    description = "Columns ending in '_at' must be checked against NOW()."
    enabled_by_default = False

    future_or_ambiguous: FrozenSet[str] = frozenset(
        {"expires_at", "due_at", "starts_at", "ends_at", "scheduled_at"}
    )

    def validate_column(
        self, ctx: RuleContext, table: TableInfo, column: ColumnInfo
    ) -> List[Violation]:
        lowered: str = column.name.lower()
        if not lowered.endswith("_at") or lowered in self.future_or_ambiguous:
            return []
        if has_past_check(table, column.name):
            return []
        qualified: str = f"{table.name}.{column.name}"
        return [
            self.violation(
                qualified,
                f"Time-related column '{qualified}' must have a check constraint "
                f"ensuring it is in the past.",
                resolution=f"Add a check constraint like CHECK ({column.name} <= NOW()).",
            )
        ]


@register_rule
class TextualColumnRule(ColumnRule):
    """
    Textual columns need a not-empty check and a length bound.

    The bound may not exceed ``indexed_limit`` when the column is indexed
    (primary key, UNIQUE or part of any index); otherwise a bound above
    ``document_limit`` suggests the column stores documents.  At most one
    finding is reported per column, in that order.
    """

    name = "TextualColumnRule"
    description = "Textual columns must be non-empty and length bounded."
    enabled_by_default = False

    indexed_limit: int = 255
    document_limit: int = 8192

    def validate_column(
        self, ctx: RuleContext, table: TableInfo, column: ColumnInfo
    ) -> List[Violation]:
        if not is_textual(column.data_type):
            return []
        qualified: str = f"{table.name}.{column.name}"

        if not has_not_empty_check(table, column.name):
            return [
                self.violation(
                    qualified,
                    f"Textual column '{qualified}' must have a check constraint "
                    f"verifying it is not empty.",
                    resolution=(
                        f"Add a check constraint verifying the column is not empty "
                        f"(e.g. CHECK ({column.name} <> ''))."
                    ),
                )
            ]

        limit: Optional[int] = length_limit(table, column.name)
        if limit is None:
            return [
                self.violation(
                    qualified,
                    f"Textual column '{qualified}' must have an upper bound "
                    f"length check constraint.",
                    resolution=(
                        f"Add a length check constraint "
                        f"(e.g. CHECK (LENGTH({column.name}) <= {self.indexed_limit}))."
                    ),
                )
            ]

        indexed: bool = (
            column.unique
            or table.is_primary_key_column(column.name)
            or any(column.name in idx.columns for idx in table.indexes)
        )
        if indexed and limit > self.indexed_limit:
            return [
                self.violation(
                    qualified,
                    f"Textual column '{qualified}' appears in an index but has "
                    f"length limit {limit} which is greater than "
                    f"{self.indexed_limit}.",
                    resolution=(
                        f"Reduce the length limit to {self.indexed_limit} or less, "
                        f"or remove the column from the index."
                    ),
                    limit=limit,
                )
            ]
        if not indexed and limit > self.document_limit:
            return [
                self.violation(
                    qualified,
                    f"Textual column '{qualified}' has length limit {limit} which "
                    f"is greater than {self.document_limit}; it likely stores a "
                    f"document.",
                    resolution=(
                        "Consider a document or blob store for large text, or "
                        "reduce the limit."
                    ),
                    limit=limit,
                )
            ]
        return []


__all__: List[str] = [
    "constant_truth",
    "normalise_expression",
    "is_textual",
    "has_not_empty_check",
    "length_limit",
    "has_past_check",
    "NoTautologicalCheckRule",
    "NoNegationCheckRule",
    "PastTimeColumnRule",
    "TextualColumnRule",
]
