# File: schemarules/violations.py
"""
SchemaRules - Violations & Validation Result
=============================================
Lightweight containers for rule findings.

A ``Violation`` is an immutable (rule, entity, message) record.  A
``ValidationResult`` accumulates violations produced by one or many rule
invocations; results produced independently (for example on worker
threads) are combined with ``merge`` so that no state is shared while
rules run.

Findings are values, never exceptions: the engine always completes and
returns the complete list.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemarules.violations")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class EntityKind(str, Enum):
    """The closed set of schema entities a rule can inspect."""

    TABLE = "table"
    COLUMN = "column"
    FOREIGN_KEY = "foreign_key"


class ViolationKind(str, Enum):
    """Taxonomy of findings."""

    STRUCTURAL = "structural"  # extension cycle
    REDUNDANCY = "redundancy"  # non-minimal extension edge
    UNIQUENESS = "uniqueness"  # duplicated name / definition
    COMPATIBILITY = "compatibility"  # FK column count / type mismatch
    RESOLUTION = "resolution"  # FK not backed by a unique key
    DESIGN = "design"  # other structural best practices
    NAMING = "naming"  # lexical conventions


# ---------------------------------------------------------------------------
# Violation
# ---------------------------------------------------------------------------


class Violation:
    """A single rule failure tied to one schema entity (no Pydantic overhead)."""

    __slots__ = (
        "rule",
        "kind",
        "entity_kind",
        "entity",
        "message",
        "resolution",
        "context",
    )

    def __init__(
        self,
        rule: str,
        kind: ViolationKind,
        entity_kind: EntityKind,
        entity: str,
        message: str,
        resolution: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.rule: str = rule
        self.kind: ViolationKind = kind
        self.entity_kind: EntityKind = entity_kind
        self.entity: str = entity
        self.message: str = message
        self.resolution: Optional[str] = resolution
        self.context: Dict[str, Any] = context or {}

    def _key(self) -> tuple:
        return (
            self.rule,
            self.kind,
            self.entity_kind,
            self.entity,
            self.message,
            self.resolution,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Violation):
            return NotImplemented
        return self._key() == other._key() and self.context == other.context

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return f"[{self.rule}] {self.entity_kind.value} '{self.entity}': {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule": self.rule,
            "kind": self.kind.value,
            "entity_kind": self.entity_kind.value,
            "entity": self.entity,
            "message": self.message,
            "resolution": self.resolution,
            "context": self.context,
        }


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------


class ValidationResult:
    """
    Accumulates ``Violation`` instances produced by the rules.

    Truthy when valid (no violations).  Order of insertion is preserved,
    which keeps reports stable for a given schema and configuration.
    """

    __slots__ = ("_items",)

    def __init__(self, violations: Optional[List[Violation]] = None) -> None:
        self._items: List[Violation] = list(violations or [])

    # -- Mutation -----------------------------------------------------------

    def add(self, violation: Violation) -> None:
        self._items.append(violation)

    def extend(self, violations: List[Violation]) -> None:
        self._items.extend(violations)

    def merge(self, other: "ValidationResult") -> None:
        """Merge another result into this one — O(k) where k = len(other)."""
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def violations(self) -> List[Violation]:
        return list(self._items)

    @property
    def is_valid(self) -> bool:
        return not self._items

    @property
    def violation_count(self) -> int:
        return len(self._items)

    def by_rule(self, rule: str) -> List[Violation]:
        return [v for v in self._items if v.rule == rule]

    def by_kind(self, kind: ViolationKind) -> List[Violation]:
        return [v for v in self._items if v.kind == kind]

    def for_entity(self, entity: str) -> List[Violation]:
        return [v for v in self._items if v.entity == entity]

    def rule_counts(self) -> Dict[str, int]:
        return dict(Counter(v.rule for v in self._items))

    def summary(self) -> str:
        if self.is_valid:
            return "Validation: schema is valid, 0 violation(s)."
        rules: int = len({v.rule for v in self._items})
        entities: int = len({(v.entity_kind, v.entity) for v in self._items})
        return (
            f"Validation: {len(self._items)} violation(s) "
            f"from {rules} rule(s) on {entities} entit{'y' if entities == 1 else 'ies'}."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO violations (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Violation]:
        return iter(self._items)

    # -- Reporting ----------------------------------------------------------

    def format_report(self, include_resolution: bool = True) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            lines.append(f"  ✗ [{item.rule}] {item.message}")
            lines.append(f"       {item.entity_kind.value}: {item.entity}")
            if include_resolution and item.resolution:
                lines.append(f"       resolution: {item.resolution}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.is_valid,
            "violation_count": len(self._items),
            "violations": [v.to_dict() for v in self._items],
        }

    def to_json(self, indent_size: int = 2) -> str:
        """Serialise the result to pretty-printed JSON."""
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "EntityKind",
    "ViolationKind",
    "Violation",
    "ValidationResult",
]
