"""
tests/test_constrainer.py
Unit tests for schemarules.constrainer.

Tests cover:
- GenericConstrainer registration and type checking
- DefaultConstrainer catalog registration and configured selection
- Full-list collection (no short-circuit)
- Idempotence and parallel/sequential equivalence
"""

from __future__ import annotations

from typing import Any, Dict, List, Type

import pytest

from schemarules.config import LinterConfig
from schemarules.constrainer import (
    DefaultConstrainer,
    GenericConstrainer,
    available_rules,
    validate_schema,
)
from schemarules.extension_rules import NonRedundantExtensionDag
from schemarules.key_rules import CompatibleForeignKey, HasPrimaryKey
from schemarules.models import ColumnInfo, SchemaDefinition, TableInfo
from schemarules.naming_rules import SingularColumnName
from schemarules.rules import RULE_CATALOG, ColumnRule, RuleContext, register_rule
from schemarules.violations import EntityKind, Violation

from conftest import SchemaBuilder


def _messy_schema() -> SchemaDefinition:
    """A schema breaking many rules at once, across several tables."""
    return (
        SchemaBuilder()
        .table("cs", "status")
        .table("bs", "tags", extends=["cs"])
        .table("as_", "status", extends=["bs", "cs"])
        .table("loops", extends=["loops"])
        .table(
            "Events",
            {"name": "cs_ref", "type": "TEXT"},
            {"name": "payload", "type": "TEXT"},
            foreign_keys=[
                {"columns": ["cs_ref"], "referred_table": "cs", "referred_columns": ["status"]}
            ],
            id_column=False,
        )
        .build()
    )


# ===========================================================================
# GenericConstrainer
# ===========================================================================


class TestGenericConstrainer:
    """Explicit, selective registration."""

    def test_empty_constrainer_accepts_everything(self) -> None:
        result = GenericConstrainer().validate_schema(_messy_schema())
        assert result.is_valid

    def test_register_dispatches_by_kind(self) -> None:
        constrainer = GenericConstrainer.from_rules(
            [HasPrimaryKey(), SingularColumnName(), CompatibleForeignKey()]
        )
        assert [r.name for r in constrainer.table_rules] == ["HasPrimaryKey"]
        assert [r.name for r in constrainer.column_rules] == ["SingularColumnName"]
        assert [r.name for r in constrainer.foreign_key_rules] == ["CompatibleForeignKey"]
        assert len(constrainer) == 3
        assert constrainer.rule_names == [
            "HasPrimaryKey",
            "SingularColumnName",
            "CompatibleForeignKey",
        ]

    def test_register_rejects_non_rules(self) -> None:
        constrainer = GenericConstrainer()
        with pytest.raises(TypeError):
            constrainer.register("HasPrimaryKey")  # type: ignore[arg-type]
        with pytest.raises(TypeError):
            constrainer.register_table_rule(SingularColumnName())  # type: ignore[arg-type]

    def test_only_registered_rules_run(self) -> None:
        result = GenericConstrainer.from_rules([HasPrimaryKey()]).validate_schema(
            _messy_schema()
        )
        assert {v.rule for v in result} == {"HasPrimaryKey"}
        assert [v.entity for v in result] == ["Events"]

    def test_empty_schema_is_valid(self) -> None:
        assert validate_schema(SchemaDefinition()).is_valid

    def test_custom_rule_subclass(self) -> None:
        class NoPayloadColumn(ColumnRule):
            name = "NoPayloadColumn"

            def validate_column(
                self, ctx: RuleContext, table: TableInfo, column: ColumnInfo
            ) -> List[Violation]:
                if column.name != "payload":
                    return []
                return [self.violation(f"{table.name}.{column.name}", "payload column")]

        result = GenericConstrainer.from_rules([NoPayloadColumn()]).validate_schema(
            _messy_schema()
        )
        assert [v.entity for v in result] == ["Events.payload"]
        assert result.violations[0].entity_kind == EntityKind.COLUMN


# ===========================================================================
# DefaultConstrainer
# ===========================================================================


class TestDefaultConstrainer:
    """Catalog registration and configuration-driven selection."""

    def test_registers_whole_catalog(self) -> None:
        constrainer = DefaultConstrainer()
        defaults = [cls for cls in RULE_CATALOG.values() if cls.enabled_by_default]
        assert len(constrainer) == len(defaults)
        for name in (
            "NonRedundantExtensionDag",
            "UniqueColumnNamesInExtensionGraph",
            "CompatibleForeignKey",
            "ReferencesUniqueIndex",
            "NoTautologicalCheckRule",
        ):
            assert name in constrainer.rule_names
        assert "TextualColumnRule" not in constrainer.rule_names

    def test_available_rules_grouped_by_kind(self) -> None:
        grouped = available_rules()
        assert set(grouped) == {"table", "column", "foreign_key"}
        assert "NonRedundantExtensionDag" in grouped["table"]
        assert "SingularColumnName" in grouped["column"]
        assert "ReferencesUniqueIndex" in grouped["foreign_key"]

    def test_clean_schema_is_valid(self, clean_schema_dict: Dict[str, Any]) -> None:
        schema = SchemaDefinition.model_validate(clean_schema_dict)
        result = validate_schema(schema)
        assert result.is_valid, result.format_report()

    def test_collects_every_violation(self) -> None:
        result = validate_schema(_messy_schema())
        rules = set(result.rule_counts())
        for expected in (
            "NonRedundantExtensionDag",
            "UniqueColumnNamesInExtensionGraph",
            "HasPrimaryKey",
            "LowercaseTableName",
            "SingularColumnName",
            "ReferencesUniqueIndex",
        ):
            assert expected in rules, f"{expected} missing from {sorted(rules)}"

    def test_selection_registers_exactly_named_rules(self) -> None:
        config = LinterConfig(
            table_rules=["NonRedundantExtensionDag"],
            column_rules=[],
            foreign_key_rules=[],
        )
        constrainer = DefaultConstrainer(config)
        assert constrainer.rule_names == ["NonRedundantExtensionDag"]
        result = constrainer.validate_schema(_messy_schema())
        assert {v.rule for v in result} == {"NonRedundantExtensionDag"}
        assert result.violation_count == 2

    def test_none_selection_keeps_catalog_for_that_kind(self) -> None:
        config = LinterConfig(table_rules=[], column_rules=[])
        constrainer = DefaultConstrainer(config)
        assert constrainer.table_rules == []
        assert constrainer.column_rules == []
        assert len(constrainer.foreign_key_rules) == len(
            available_rules()["foreign_key"]
        )

    def test_unknown_rule_name(self) -> None:
        with pytest.raises(ValueError, match="Unknown rule"):
            DefaultConstrainer(LinterConfig(table_rules=["NoSuchRule"]))

    def test_rule_listed_under_wrong_kind(self) -> None:
        with pytest.raises(ValueError, match="column rule"):
            DefaultConstrainer(LinterConfig(table_rules=["SingularColumnName"]))

    def test_configured_forbidden_column_reaches_rule(
        self, schema_builder: Type[SchemaBuilder]
    ) -> None:
        schema = (
            schema_builder()
            .table("bases")
            .table("specials", "kind", extends=["bases"])
            .build()
        )
        config = LinterConfig(
            table_rules=["NoForbiddenColumnInExtension"],
            column_rules=[],
            foreign_key_rules=[],
            forbidden_extension_column="kind",
        )
        assert validate_schema(schema, config).violation_count == 1


# ===========================================================================
# Determinism
# ===========================================================================


class TestDeterminism:
    """Order-stable, repeatable output."""

    def test_idempotent(self) -> None:
        schema = _messy_schema()
        constrainer = DefaultConstrainer()
        first = constrainer.validate_schema(schema)
        second = constrainer.validate_schema(schema)
        assert not first.is_valid
        assert first.violations == second.violations

    @pytest.mark.parametrize("workers", [2, 4, 8])
    def test_parallel_matches_sequential(self, workers: int) -> None:
        schema = _messy_schema()
        sequential = DefaultConstrainer().validate_schema(schema)
        parallel = DefaultConstrainer(LinterConfig(max_workers=workers)).validate_schema(
            schema
        )
        assert parallel.violations == sequential.violations

    def test_violations_follow_schema_table_order(self) -> None:
        result = GenericConstrainer.from_rules([NonRedundantExtensionDag()]).validate_schema(
            _messy_schema()
        )
        assert [v.entity for v in result] == ["as_", "loops"]


class TestRegisterRule:
    def test_duplicate_name_rejected(self) -> None:
        with pytest.raises(ValueError, match="already registered"):

            @register_rule
            class HasPrimaryKeyAgain(HasPrimaryKey):
                name = "HasPrimaryKey"

    def test_missing_name_rejected(self) -> None:
        with pytest.raises(TypeError):

            @register_rule
            class Nameless(HasPrimaryKey):
                name = ""
