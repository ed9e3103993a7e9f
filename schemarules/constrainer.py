# File: schemarules/constrainer.py
"""
SchemaRules - Constrainers
===========================
A constrainer owns three ordered rule lists (table, column, foreign-key)
and drives them over a schema:

    for each table (schema order):
        every table rule on the table
        for each column: every column rule
        for each foreign key: every foreign-key rule

Each table's findings go into a private ``ValidationResult``; the
per-table results are merged in schema order, so a run on a thread pool
(``max_workers > 1``) reports exactly what the sequential run reports.

``DefaultConstrainer`` registers the rule catalog, narrowed by the rule
lists of a ``LinterConfig``.

Complexity: O(T·R_t + C·R_c + F·R_f) rule invocations, plus one
O(T + F) extension-graph build per run.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Tuple, Type

# Imported for their side effect: populating RULE_CATALOG.
import schemarules.check_rules  # noqa: F401
import schemarules.extension_rules  # noqa: F401
import schemarules.key_rules  # noqa: F401
import schemarules.naming_rules  # noqa: F401
from schemarules.config import LinterConfig
from schemarules.models import SchemaDefinition, TableInfo
from schemarules.rules import (
    RULE_CATALOG,
    ColumnRule,
    ForeignKeyRule,
    Rule,
    RuleContext,
    TableRule,
    catalog_for,
    instantiate,
)
from schemarules.utils import Timer
from schemarules.violations import EntityKind, ValidationResult

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemarules.constrainer")


# ---------------------------------------------------------------------------
# Generic constrainer
# ---------------------------------------------------------------------------


class GenericConstrainer:
    """Ordered rule registry plus the schema walk."""

    def __init__(self, config: Optional[LinterConfig] = None) -> None:
        self.config: LinterConfig = config or LinterConfig()
        self._table_rules: List[TableRule] = []
        self._column_rules: List[ColumnRule] = []
        self._foreign_key_rules: List[ForeignKeyRule] = []

    @classmethod
    def from_rules(
        cls, rules: Iterable[Rule], config: Optional[LinterConfig] = None
    ) -> "GenericConstrainer":
        constrainer = cls(config)
        for rule in rules:
            constrainer.register(rule)
        return constrainer

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_table_rule(self, rule: TableRule) -> None:
        if not isinstance(rule, TableRule):
            raise TypeError(f"{rule!r} is not a TableRule.")
        self._table_rules.append(rule)

    def register_column_rule(self, rule: ColumnRule) -> None:
        if not isinstance(rule, ColumnRule):
            raise TypeError(f"{rule!r} is not a ColumnRule.")
        self._column_rules.append(rule)

    def register_foreign_key_rule(self, rule: ForeignKeyRule) -> None:
        if not isinstance(rule, ForeignKeyRule):
            raise TypeError(f"{rule!r} is not a ForeignKeyRule.")
        self._foreign_key_rules.append(rule)

    def register(self, rule: Rule) -> None:
        """Register *rule* in the list matching its entity kind."""
        if isinstance(rule, TableRule):
            self.register_table_rule(rule)
        elif isinstance(rule, ColumnRule):
            self.register_column_rule(rule)
        elif isinstance(rule, ForeignKeyRule):
            self.register_foreign_key_rule(rule)
        else:
            raise TypeError(
                f"Cannot register {type(rule).__name__}: expected a TableRule, "
                f"ColumnRule or ForeignKeyRule instance."
            )

    @property
    def table_rules(self) -> List[TableRule]:
        return list(self._table_rules)

    @property
    def column_rules(self) -> List[ColumnRule]:
        return list(self._column_rules)

    @property
    def foreign_key_rules(self) -> List[ForeignKeyRule]:
        return list(self._foreign_key_rules)

    @property
    def rule_names(self) -> List[str]:
        return [
            rule.name
            for rule in (*self._table_rules, *self._column_rules, *self._foreign_key_rules)
        ]

    def __len__(self) -> int:
        return (
            len(self._table_rules)
            + len(self._column_rules)
            + len(self._foreign_key_rules)
        )

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} table={len(self._table_rules)} "
            f"column={len(self._column_rules)} "
            f"foreign_key={len(self._foreign_key_rules)}>"
        )

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _validate_table(self, ctx: RuleContext, table: TableInfo) -> ValidationResult:
        result = ValidationResult()
        for table_rule in self._table_rules:
            result.extend(table_rule.validate_table(ctx, table))
        for column in table.columns:
            for column_rule in self._column_rules:
                result.extend(column_rule.validate_column(ctx, table, column))
        for foreign_key in table.foreign_keys:
            for fk_rule in self._foreign_key_rules:
                result.extend(fk_rule.validate_foreign_key(ctx, table, foreign_key))
        return result

    def validate_schema(self, schema: SchemaDefinition) -> ValidationResult:
        """
        Run every registered rule over *schema*.

        Never raises for rule findings; an empty result means the schema
        satisfies every registered rule.
        """
        ctx: RuleContext = RuleContext.build(schema, self.config)
        logger.debug(
            "Extension graph: %d table(s), %d edge(s).",
            len(ctx.graph),
            ctx.graph.edge_count,
        )

        workers: int = self.config.max_workers
        with Timer("validate schema"):
            if workers > 1 and schema.table_count > 1:
                with ThreadPoolExecutor(max_workers=workers) as executor:
                    futures = [
                        executor.submit(self._validate_table, ctx, table)
                        for table in schema.tables
                    ]
                    partials: List[ValidationResult] = [f.result() for f in futures]
            else:
                partials = [self._validate_table(ctx, table) for table in schema.tables]

        result = ValidationResult()
        for partial in partials:
            result.merge(partial)

        logger.info(
            "Ran %d rule(s) over %d table(s): %s",
            len(self),
            schema.table_count,
            result.summary(),
        )
        return result


# ---------------------------------------------------------------------------
# Default constrainer
# ---------------------------------------------------------------------------

_KIND_SELECTION: Tuple[Tuple[EntityKind, str], ...] = (
    (EntityKind.TABLE, "table_rules"),
    (EntityKind.COLUMN, "column_rules"),
    (EntityKind.FOREIGN_KEY, "foreign_key_rules"),
)


def _resolve_rule_classes(
    kind: EntityKind, selection: Optional[List[str]]
) -> List[Type[Rule]]:
    if selection is None:
        return catalog_for(kind, defaults_only=True)
    classes: List[Type[Rule]] = []
    for rule_name in selection:
        rule_cls: Optional[Type[Rule]] = RULE_CATALOG.get(rule_name)
        if rule_cls is None:
            available: str = ", ".join(sorted(RULE_CATALOG))
            raise ValueError(
                f"Unknown rule '{rule_name}'. Available rules: {available}."
            )
        if rule_cls.kind != kind:
            raise ValueError(
                f"Rule '{rule_name}' is a {rule_cls.kind.value} rule and cannot be "
                f"registered as a {kind.value} rule."
            )
        classes.append(rule_cls)
    return classes


class DefaultConstrainer(GenericConstrainer):
    """
    Constrainer pre-loaded with the rule catalog.

    With no rule lists configured every catalog rule except the opt-in
    ones is registered, in catalog order.  A rule list for an entity kind registers exactly the
    named rules, in the given order.

    Raises:
        ValueError: An unknown rule name, or a rule listed under the wrong
            entity kind.
    """

    def __init__(self, config: Optional[LinterConfig] = None) -> None:
        super().__init__(config)
        for kind, attribute in _KIND_SELECTION:
            selection: Optional[List[str]] = getattr(self.config, attribute)
            for rule_cls in _resolve_rule_classes(kind, selection):
                self.register(instantiate(rule_cls, self.config))
        logger.debug("DefaultConstrainer registered %d rule(s).", len(self))


def validate_schema(
    schema: SchemaDefinition, config: Optional[LinterConfig] = None
) -> ValidationResult:
    """Validate *schema* with a ``DefaultConstrainer`` built from *config*."""
    return DefaultConstrainer(config).validate_schema(schema)


def available_rules() -> Dict[str, List[str]]:
    """Catalog rule names grouped by entity kind."""
    return {
        kind.value: [rule_cls.name for rule_cls in catalog_for(kind)]
        for kind, _ in _KIND_SELECTION
    }


__all__: List[str] = [
    "GenericConstrainer",
    "DefaultConstrainer",
    "validate_schema",
    "available_rules",
]
