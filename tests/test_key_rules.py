"""
tests/test_key_rules.py
Unit tests for schemarules.key_rules.

Tests cover:
- CompatibleForeignKey: count mismatch, type equivalence groups, custom
  equivalences, generated columns on both sides
- ReferencesUniqueIndex: primary key, unique index (unordered), column-level
  UNIQUE, removal of the backing key
- HasPrimaryKey, UniqueForeignKey, UniqueUniqueIndex, UniqueCheckRule,
  NonCompositePrimaryKeyNamedId
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Type

import pytest
from pydantic import ValidationError

from schemarules.config import LinterConfig
from schemarules.key_rules import (
    CompatibleForeignKey,
    HasPrimaryKey,
    NonCompositePrimaryKeyNamedId,
    ReferencesUniqueIndex,
    UniqueCheckRule,
    UniqueForeignKey,
    UniqueUniqueIndex,
)
from schemarules.models import SchemaDefinition
from schemarules.violations import EntityKind, ValidationResult, ViolationKind

from conftest import SchemaBuilder

Runner = Callable[..., ValidationResult]


def _fk(columns: List[str], table: str, referred: List[str], **extra: Any) -> Dict[str, Any]:
    return {"columns": columns, "referred_table": table, "referred_columns": referred, **extra}


def _typed_pair_schema(local_type: str, referred_type: str, **local_flags: Any) -> SchemaDefinition:
    return (
        SchemaBuilder()
        .table("targets", id_type=referred_type)
        .table(
            "sources",
            {"name": "target_id", "type": local_type, **local_flags},
            foreign_keys=[_fk(["target_id"], "targets", ["id"])],
        )
        .build()
    )


# ===========================================================================
# CompatibleForeignKey
# ===========================================================================


class TestCompatibleForeignKey:
    """Position-by-position compatibility of foreign-key columns."""

    def test_two_local_one_referenced_is_count_mismatch(
        self, schema_builder: Type[SchemaBuilder], rule_runner: Runner
    ) -> None:
        schema = (
            schema_builder()
            .table("targets")
            .table(
                "sources",
                {"name": "a", "type": "INT"},
                {"name": "b", "type": "INT"},
                foreign_keys=[_fk(["a", "b"], "targets", ["id"])],
            )
            .build()
        )
        result = rule_runner(schema, CompatibleForeignKey())
        assert result.violation_count == 1
        violation = result.violations[0]
        assert violation.kind == ViolationKind.COMPATIBILITY
        assert violation.entity_kind == EntityKind.FOREIGN_KEY
        assert violation.context == {"local_count": 2, "referenced_count": 1}

    @pytest.mark.parametrize("local_type", ["INT", "TEXT", "BOOLEAN", "varchar(10)"])
    def test_count_mismatch_regardless_of_types(
        self,
        local_type: str,
        schema_builder: Type[SchemaBuilder],
        rule_runner: Runner,
    ) -> None:
        schema = (
            schema_builder()
            .table("targets")
            .table(
                "sources",
                {"name": "a", "type": local_type},
                {"name": "b", "type": local_type},
                foreign_keys=[_fk(["a", "b"], "targets", ["id"])],
            )
            .build()
        )
        result = rule_runner(schema, CompatibleForeignKey())
        assert result.violation_count == 1
        assert "local_count" in result.violations[0].context

    @pytest.mark.parametrize(
        "local_type, referred_type",
        [
            ("INT", "INT"),
            ("INTEGER", "int4"),
            ("int", "SERIAL"),
            ("BIGINT", "bigserial"),
            ("VARCHAR(255)", "text"),
            ("character  varying(40)", "TEXT"),
            ("Double Precision", "float8"),
        ],
    )
    def test_equivalent_types_pass(
        self, local_type: str, referred_type: str, rule_runner: Runner
    ) -> None:
        schema = _typed_pair_schema(local_type, referred_type)
        assert rule_runner(schema, CompatibleForeignKey()).is_valid

    @pytest.mark.parametrize(
        "local_type, referred_type",
        [("BIGINT", "INT"), ("TEXT", "INT"), ("SMALLINT", "INTEGER"), ("uuid", "text")],
    )
    def test_incompatible_types_fail(
        self, local_type: str, referred_type: str, rule_runner: Runner
    ) -> None:
        schema = _typed_pair_schema(local_type, referred_type)
        result = rule_runner(schema, CompatibleForeignKey())
        assert result.violation_count == 1
        violation = result.violations[0]
        assert violation.context["position"] == 0
        assert violation.context["local_type"] == local_type
        assert "sources.target_id" in violation.message

    def test_custom_equivalences_replace_defaults(self, rule_runner: Runner) -> None:
        schema = _typed_pair_schema("BIGINT", "INT")
        config = LinterConfig(type_equivalences=[["int", "bigint"]])
        assert rule_runner(schema, CompatibleForeignKey(), config=config).is_valid

        schema = _typed_pair_schema("INTEGER", "INT")
        result = rule_runner(schema, CompatibleForeignKey(), config=config)
        assert result.violation_count == 1

    def test_both_generated_is_incompatible(self, rule_runner: Runner) -> None:
        schema = (
            SchemaBuilder()
            .table(
                "targets",
                {"name": "id", "type": "SERIAL", "primary_key": True, "generated": True},
                id_column=False,
            )
            .table(
                "sources",
                {"name": "target_id", "type": "SERIAL", "generated": True},
                foreign_keys=[_fk(["target_id"], "targets", ["id"])],
            )
            .build()
        )
        result = rule_runner(schema, CompatibleForeignKey())
        assert result.violation_count == 1
        assert "generated" in result.violations[0].message

    def test_one_violation_per_bad_position(
        self, schema_builder: Type[SchemaBuilder], rule_runner: Runner
    ) -> None:
        schema = (
            schema_builder()
            .table(
                "targets",
                {"name": "a", "type": "INT", "primary_key": True},
                {"name": "b", "type": "TEXT", "primary_key": True},
                {"name": "c", "type": "DATE", "primary_key": True},
                id_column=False,
            )
            .table(
                "sources",
                {"name": "x", "type": "TEXT"},
                {"name": "y", "type": "TEXT"},
                {"name": "z", "type": "INT"},
                foreign_keys=[_fk(["x", "y", "z"], "targets", ["a", "b", "c"])],
            )
            .build()
        )
        result = rule_runner(schema, CompatibleForeignKey())
        assert [v.context["position"] for v in result] == [0, 2]

    def test_column_referencing_unrelated_hierarchies(
        self, schema_builder: Type[SchemaBuilder], rule_runner: Runner
    ) -> None:
        schema = (
            schema_builder()
            .table("users")
            .table("products")
            .table(
                "orders",
                {"name": "owner_id", "type": "INT"},
                foreign_keys=[
                    _fk(["owner_id"], "users", ["id"], name="fk_owner_user"),
                    _fk(["owner_id"], "products", ["id"], name="fk_owner_product"),
                ],
            )
            .build()
        )
        result = rule_runner(schema, CompatibleForeignKey())
        assert [v.entity for v in result] == ["fk_owner_user", "fk_owner_product"]
        first = result.violations[0]
        assert first.context["unrelated"] == ["products"]
        assert "incompatible table hierarchies" in first.message
        assert "users (primary key)" in first.message

    def test_column_referencing_siblings_of_one_hierarchy(
        self, schema_builder: Type[SchemaBuilder], rule_runner: Runner
    ) -> None:
        schema = (
            schema_builder()
            .table("roots")
            .table("left_roots", extends=["roots"])
            .table("right_roots", extends=["roots"])
            .table("left_children", extends=["left_roots"])
            .table("right_children", extends=["right_roots"])
            .table(
                "links",
                {"name": "other_id", "type": "INT"},
                foreign_keys=[
                    _fk(["other_id"], "left_children", ["id"]),
                    _fk(["other_id"], "right_children", ["id"]),
                ],
            )
            .build()
        )
        assert rule_runner(schema, CompatibleForeignKey()).is_valid

    def test_extension_keys_to_unrelated_roots_are_exempt(
        self, schema_builder: Type[SchemaBuilder], rule_runner: Runner
    ) -> None:
        schema = (
            schema_builder()
            .table("persons")
            .table("accounts")
            .table("customers", extends=["persons", "accounts"])
            .build()
        )
        assert rule_runner(schema, CompatibleForeignKey()).is_valid

    def test_duplicate_foreign_key_columns_rejected(
        self, schema_builder: Type[SchemaBuilder]
    ) -> None:
        builder = (
            schema_builder()
            .table("parents")
            .table(
                "children",
                {"name": "a", "type": "INT"},
                {"name": "b", "type": "INT"},
                foreign_keys=[_fk(["a", "b"], "parents", ["id", "id"])],
            )
        )
        with pytest.raises(ValidationError, match="Duplicate columns in foreign key"):
            builder.build()

        local_twice = (
            schema_builder()
            .table("parents", {"name": "code", "type": "INT", "unique": True})
            .table(
                "children",
                {"name": "a", "type": "INT"},
                foreign_keys=[_fk(["a", "a"], "parents", ["id", "code"])],
            )
        )
        with pytest.raises(ValidationError, match="Duplicate columns in foreign key"):
            local_twice.build()


# ===========================================================================
# ReferencesUniqueIndex
# ===========================================================================


class TestReferencesUniqueIndex:
    """Referenced column sets must be backed by a key."""

    def test_primary_key_reference_passes(
        self, flat_schema: SchemaDefinition, rule_runner: Runner
    ) -> None:
        assert rule_runner(flat_schema, ReferencesUniqueIndex()).is_valid

    def test_removing_primary_key_produces_resolution_violation(
        self, schema_builder: Type[SchemaBuilder], rule_runner: Runner
    ) -> None:
        def build(with_pk: bool) -> SchemaDefinition:
            return (
                schema_builder()
                .table(
                    "targets",
                    {"name": "code", "type": "TEXT", "primary_key": with_pk},
                    {"name": "label", "type": "TEXT"},
                    indexes=[{"name": "uq_label", "columns": ["label"], "unique": True}],
                    id_column=False,
                )
                .table(
                    "sources",
                    {"name": "target_code", "type": "TEXT"},
                    foreign_keys=[_fk(["target_code"], "targets", ["code"])],
                )
                .build()
            )

        assert rule_runner(build(True), ReferencesUniqueIndex()).is_valid
        result = rule_runner(build(False), ReferencesUniqueIndex())
        assert result.violation_count == 1
        violation = result.violations[0]
        assert violation.kind == ViolationKind.RESOLUTION
        assert violation.context["referred_table"] == "targets"
        assert "targets" in violation.message

    def test_unique_index_matches_as_unordered_set(
        self, schema_builder: Type[SchemaBuilder], rule_runner: Runner
    ) -> None:
        schema = (
            schema_builder()
            .table(
                "targets",
                {"name": "a", "type": "INT"},
                {"name": "b", "type": "INT"},
                indexes=[{"name": "uq_ab", "columns": ["a", "b"], "unique": True}],
            )
            .table(
                "sources",
                {"name": "x", "type": "INT"},
                {"name": "y", "type": "INT"},
                foreign_keys=[_fk(["y", "x"], "targets", ["b", "a"])],
            )
            .build()
        )
        assert rule_runner(schema, ReferencesUniqueIndex()).is_valid

    def test_non_unique_index_does_not_count(
        self, schema_builder: Type[SchemaBuilder], rule_runner: Runner
    ) -> None:
        schema = (
            schema_builder()
            .table(
                "targets",
                {"name": "a", "type": "INT"},
                indexes=[{"name": "ix_a", "columns": ["a"]}],
            )
            .table(
                "sources",
                {"name": "x", "type": "INT"},
                foreign_keys=[_fk(["x"], "targets", ["a"])],
            )
            .build()
        )
        assert rule_runner(schema, ReferencesUniqueIndex()).violation_count == 1

    def test_subset_of_unique_index_does_not_count(
        self, schema_builder: Type[SchemaBuilder], rule_runner: Runner
    ) -> None:
        schema = (
            schema_builder()
            .table(
                "targets",
                {"name": "a", "type": "INT"},
                {"name": "b", "type": "INT"},
                indexes=[{"name": "uq_ab", "columns": ["a", "b"], "unique": True}],
            )
            .table(
                "sources",
                {"name": "x", "type": "INT"},
                foreign_keys=[_fk(["x"], "targets", ["a"])],
            )
            .build()
        )
        assert rule_runner(schema, ReferencesUniqueIndex()).violation_count == 1

    def test_column_level_unique_counts(
        self, schema_builder: Type[SchemaBuilder], rule_runner: Runner
    ) -> None:
        schema = (
            schema_builder()
            .table("targets", {"name": "email", "type": "TEXT", "unique": True})
            .table(
                "sources",
                {"name": "target_email", "type": "TEXT"},
                foreign_keys=[_fk(["target_email"], "targets", ["email"])],
            )
            .build()
        )
        assert rule_runner(schema, ReferencesUniqueIndex()).is_valid


# ===========================================================================
# Table-level key hygiene
# ===========================================================================


class TestHasPrimaryKey:
    def test_missing_primary_key(
        self, schema_builder: Type[SchemaBuilder], rule_runner: Runner
    ) -> None:
        schema = (
            schema_builder()
            .table("events", {"name": "payload", "type": "TEXT"}, id_column=False)
            .table("users")
            .build()
        )
        result = rule_runner(schema, HasPrimaryKey())
        assert [v.entity for v in result] == ["events"]

    def test_explicit_primary_key_columns(self, rule_runner: Runner) -> None:
        schema = SchemaDefinition.model_validate(
            {
                "tables": [
                    {
                        "name": "pairs",
                        "columns": [{"name": "a", "type": "INT"}, {"name": "b", "type": "INT"}],
                        "primary_key_columns": ["a", "b"],
                    }
                ]
            }
        )
        assert rule_runner(schema, HasPrimaryKey()).is_valid


class TestUniqueForeignKey:
    def test_duplicate_foreign_keys(
        self, schema_builder: Type[SchemaBuilder], rule_runner: Runner
    ) -> None:
        schema = (
            schema_builder()
            .table("users")
            .table(
                "posts",
                {"name": "user_id", "type": "INT"},
                foreign_keys=[
                    _fk(["user_id"], "users", ["id"], name="fk_one"),
                    _fk(["user_id"], "users", ["id"], name="fk_two"),
                ],
            )
            .build()
        )
        result = rule_runner(schema, UniqueForeignKey())
        assert result.violation_count == 1
        assert result.violations[0].context["names"] == ["fk_one", "fk_two"]

    def test_distinct_foreign_keys_pass(
        self, flat_schema: SchemaDefinition, rule_runner: Runner
    ) -> None:
        assert rule_runner(flat_schema, UniqueForeignKey()).is_valid


class TestUniqueUniqueIndex:
    def test_index_duplicating_column_unique(
        self, schema_builder: Type[SchemaBuilder], rule_runner: Runner
    ) -> None:
        schema = (
            schema_builder()
            .table(
                "users",
                {"name": "email", "type": "TEXT", "unique": True},
                indexes=[{"name": "uq_email", "columns": ["email"], "unique": True}],
            )
            .build()
        )
        result = rule_runner(schema, UniqueUniqueIndex())
        assert result.violation_count == 1
        assert result.violations[0].context["columns"] == ["email"]

    def test_different_column_order_is_distinct(
        self, schema_builder: Type[SchemaBuilder], rule_runner: Runner
    ) -> None:
        schema = (
            schema_builder()
            .table(
                "pairs",
                {"name": "a", "type": "INT"},
                {"name": "b", "type": "INT"},
                indexes=[
                    {"name": "uq_ab", "columns": ["a", "b"], "unique": True},
                    {"name": "uq_ba", "columns": ["b", "a"], "unique": True},
                ],
            )
            .build()
        )
        assert rule_runner(schema, UniqueUniqueIndex()).is_valid


class TestUniqueCheckRule:
    def test_normalised_duplicate_expression(
        self, schema_builder: Type[SchemaBuilder], rule_runner: Runner
    ) -> None:
        schema = (
            schema_builder()
            .table(
                "accounts",
                {"name": "balance", "type": "INT"},
                checks=["balance >= 0", "BALANCE>=0", "balance < 1000"],
            )
            .build()
        )
        result = rule_runner(schema, UniqueCheckRule())
        assert result.violation_count == 1
        assert result.violations[0].context["expression"] == "balance >= 0"


class TestNonCompositePrimaryKeyNamedId:
    def test_single_key_not_named_id(
        self, schema_builder: Type[SchemaBuilder], rule_runner: Runner
    ) -> None:
        schema = (
            schema_builder()
            .table(
                "users",
                {"name": "user_id", "type": "INT", "primary_key": True},
                id_column=False,
            )
            .build()
        )
        result = rule_runner(schema, NonCompositePrimaryKeyNamedId())
        assert [v.entity for v in result] == ["users.user_id"]

    def test_composite_key_is_exempt(
        self, schema_builder: Type[SchemaBuilder], rule_runner: Runner
    ) -> None:
        schema = (
            schema_builder()
            .table(
                "memberships",
                {"name": "user_id", "type": "INT", "primary_key": True},
                {"name": "group_id", "type": "INT", "primary_key": True},
                id_column=False,
            )
            .build()
        )
        assert rule_runner(schema, NonCompositePrimaryKeyNamedId()).is_valid
