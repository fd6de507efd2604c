"""
Unit tests for the generation pipeline.

Tests single-record plans, plan invariants and batch generation with
per-record failure isolation.
"""

import pytest

from recbuilder.core.builder.errors import InvalidDefaultExpression, MemberNameCollision
from recbuilder.core.builder.models import FieldKind, RecordDeclaration
from recbuilder.core.builder.pipeline import generate, generate_all


class TestGenerate:
    """Test generating a plan for one record."""

    def test_scenario_plan(self, scenario_record):
        """Test the reference record produces the expected plan."""
        plan = generate(scenario_record)
        assert [f.kind for f in plan.fields] == [
            FieldKind.REQUIRED,
            FieldKind.DEFAULTED,
            FieldKind.OPTIONAL,
        ]
        assert [p.name for p in plan.constructor.params] == ["req"]
        assert [p.name for p in plan.init_shape.fields] == ["req"]
        assert plan.conversion.args == ["req"]

    def test_record_and_handle_members(self, scenario_record):
        """Test the split between copy-returning and in-place members."""
        plan = generate(scenario_record)
        assert [m.name for m in plan.record_members()] == [
            "with_req",
            "with_count",
            "with_tag",
            "opt_tag",
            "without_tag",
        ]
        assert [m.name for m in plan.handle_members()] == [
            "req",
            "count",
            "tag",
            "mopt_tag",
            "reset_tag",
        ]

    def test_digest_is_stable(self, scenario_record):
        """Test identical inputs give identical plan digests."""
        assert generate(scenario_record).digest() == generate(scenario_record).digest()

    def test_digest_changes_with_input(self, scenario_record, field_factory):
        """Test the digest reflects the declaration."""
        other = scenario_record.model_copy(
            update={"fields": [*scenario_record.fields, field_factory("extra", "int")]}
        )
        assert generate(scenario_record).digest() != generate(other).digest()

    def test_invalid_default_aborts(self, field_factory):
        """Test no plan is produced for an invalid default."""
        record = RecordDeclaration(
            name="Scenario",
            fields=[field_factory("req", "str"), field_factory("count", "int", default='"abc"')],
        )
        with pytest.raises(InvalidDefaultExpression) as exc_info:
            generate(record)
        assert exc_info.value.record == "Scenario"
        assert exc_info.value.field == "count"

    def test_collision_names_record(self, field_factory):
        """Test collisions are attributed to the record and field."""
        record = RecordDeclaration(
            name="Job",
            fields=[field_factory("name", "str")],
            declared_members=["with_name"],
        )
        with pytest.raises(MemberNameCollision) as exc_info:
            generate(record)
        assert str(exc_info.value).startswith("Job.name: ")


class TestGenerateAll:
    """Test batch generation."""

    def test_failure_does_not_block_others(self, scenario_record, field_factory):
        """Test one bad record leaves the others generated."""
        broken = RecordDeclaration(name="Broken", fields=[field_factory("x", "Optional")])
        result = generate_all([scenario_record, broken])
        assert [p.record.name for p in result.plans] == ["Scenario"]
        assert [f.record for f in result.failures] == ["Broken"]
        assert "Broken.x" in result.failures[0].message
        assert result.ok is False

    def test_all_ok(self, scenario_record):
        """Test a clean batch."""
        result = generate_all([scenario_record])
        assert result.ok
        assert len(result.plans) == 1
