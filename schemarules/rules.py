# File: schemarules/rules.py
"""
SchemaRules - Rule Contract
============================
Every check implements one of three interfaces, one per entity kind:

- ``TableRule.validate_table(ctx, table)``
- ``ColumnRule.validate_column(ctx, table, column)``
- ``ForeignKeyRule.validate_foreign_key(ctx, table, foreign_key)``

Each returns a (possibly empty) list of ``Violation``.  Rules hold only
immutable configuration, so one instance may be evaluated for any entity,
in any order, on any thread.  Cross-table information (the whole schema,
the extension graph, the type-compatibility table) arrives through the
read-only ``RuleContext``.

Concrete rules register themselves in ``RULE_CATALOG`` with the
``register_rule`` decorator; the catalog drives the default constrainer
and name-based selection from configuration.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, ClassVar, Dict, List, Optional, Type, TypeVar

from schemarules.config import LinterConfig, TypeCompatibility
from schemarules.graph import ExtensionGraph
from schemarules.models import ColumnInfo, ForeignKeyInfo, SchemaDefinition, TableInfo
from schemarules.violations import EntityKind, Violation, ViolationKind

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemarules.rules")


# ---------------------------------------------------------------------------
# Evaluation context
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RuleContext:
    """Read-only view shared by every rule during one validation run."""

    schema: SchemaDefinition
    graph: ExtensionGraph
    types: TypeCompatibility = field(default_factory=TypeCompatibility)

    @classmethod
    def build(
        cls,
        schema: SchemaDefinition,
        config: Optional[LinterConfig] = None,
    ) -> "RuleContext":
        types: TypeCompatibility = (
            config.type_compatibility() if config is not None else TypeCompatibility()
        )
        return cls(schema=schema, graph=ExtensionGraph.from_schema(schema), types=types)

    def table(self, name: str) -> TableInfo:
        """Lookup of a table known to exist (model validation guarantees FK targets)."""
        found: Optional[TableInfo] = self.schema.get_table(name)
        if found is None:
            raise KeyError(f"Table '{name}' is not part of the schema.")
        return found


# ---------------------------------------------------------------------------
# Rule interfaces
# ---------------------------------------------------------------------------


class Rule(ABC):
    """Common base: identity, entity kind and violation construction."""

    name: ClassVar[str] = ""
    kind: ClassVar[EntityKind]
    violation_kind: ClassVar[ViolationKind] = ViolationKind.DESIGN
    description: ClassVar[str] = ""
    # Opt-in rules are skipped by the default catalog but selectable by name.
    enabled_by_default: ClassVar[bool] = True

    def violation(
        self,
        entity: str,
        message: str,
        resolution: Optional[str] = None,
        kind: Optional[ViolationKind] = None,
        **context: object,
    ) -> Violation:
        return Violation(
            rule=self.name,
            kind=kind or self.violation_kind,
            entity_kind=self.kind,
            entity=entity,
            message=message,
            resolution=resolution,
            context=dict(context),
        )

    def __repr__(self) -> str:
        return f"<{self.kind.value} rule {self.name}>"


class TableRule(Rule):
    kind: ClassVar[EntityKind] = EntityKind.TABLE

    @abstractmethod
    def validate_table(self, ctx: RuleContext, table: TableInfo) -> List[Violation]:
        ...


class ColumnRule(Rule):
    kind: ClassVar[EntityKind] = EntityKind.COLUMN

    @abstractmethod
    def validate_column(
        self, ctx: RuleContext, table: TableInfo, column: ColumnInfo
    ) -> List[Violation]:
        ...


class ForeignKeyRule(Rule):
    kind: ClassVar[EntityKind] = EntityKind.FOREIGN_KEY

    @abstractmethod
    def validate_foreign_key(
        self, ctx: RuleContext, table: TableInfo, foreign_key: ForeignKeyInfo
    ) -> List[Violation]:
        ...


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

RuleT = TypeVar("RuleT", bound=Type[Rule])

# Rule factories keyed by rule name; each factory receives the run config.
RuleFactory = Callable[[LinterConfig], Rule]

RULE_CATALOG: Dict[str, Type[Rule]] = {}


def register_rule(cls: RuleT) -> RuleT:
    """Class decorator adding a concrete rule to ``RULE_CATALOG``."""
    if not cls.name:
        raise TypeError(f"Rule class {cls.__name__} must define a 'name'.")
    if cls.name in RULE_CATALOG:
        raise ValueError(f"Rule '{cls.name}' is already registered.")
    RULE_CATALOG[cls.name] = cls
    return cls


def catalog_for(kind: EntityKind, defaults_only: bool = False) -> List[Type[Rule]]:
    """Registered rule classes for one entity kind, in registration order."""
    return [
        cls
        for cls in RULE_CATALOG.values()
        if cls.kind == kind and (cls.enabled_by_default or not defaults_only)
    ]


def instantiate(rule_cls: Type[Rule], config: LinterConfig) -> Rule:
    """Build a rule from configuration (rules opt in via ``from_config``)."""
    factory: Optional[RuleFactory] = getattr(rule_cls, "from_config", None)
    if factory is not None:
        return factory(config)
    return rule_cls()


__all__: List[str] = [
    "RuleContext",
    "Rule",
    "TableRule",
    "ColumnRule",
    "ForeignKeyRule",
    "RULE_CATALOG",
    "register_rule",
    "catalog_for",
    "instantiate",
]
