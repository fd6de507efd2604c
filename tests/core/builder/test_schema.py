"""
Tests for sidecar schema files.

Tests schema parsing and validation, conversion to declarations and the
rendered standalone module.
"""

import json

import pytest

from recbuilder.core.builder.errors import ExtractionError
from recbuilder.core.builder.schema import (
    SchemaFile,
    generate_schema,
    load_schema,
    parse_schema,
    render_schema_module,
)

SCHEMA_YAML = """\
imports:
  - from typing import Optional
records:
  - name: Request
    fields:
      - {name: url, type: str}
      - {name: retries, type: int, default: "3"}
      - {name: tag, type: "Optional[str]"}
"""


def render(schema: SchemaFile) -> str:
    result = generate_schema(schema)
    return render_schema_module(schema, result.plans, source_label="records.yaml")


def run_generated(text: str) -> dict:
    namespace: dict = {}
    exec(compile(text, "<generated>", "exec"), namespace)
    return namespace


class TestParseSchema:
    """Test schema parsing and validation."""

    def test_yaml(self):
        """Test a YAML schema."""
        schema = parse_schema(SCHEMA_YAML)
        assert schema.imports == ["from typing import Optional"]
        assert [f.name for f in schema.records[0].fields] == ["url", "retries", "tag"]
        assert schema.records[0].fields[1].default == "3"

    def test_json(self):
        """Test a JSON schema."""
        text = json.dumps({"records": [{"name": "A", "fields": [{"name": "x", "type": "int"}]}]})
        schema = parse_schema(text, fmt="json")
        assert schema.records[0].name == "A"

    def test_empty(self):
        """Test an empty document is an empty schema."""
        assert parse_schema("").records == []

    @pytest.mark.parametrize(
        "text",
        [
            "- just\n- a list\n",
            "records: [{name: 'not valid'}]\n",
            "records: [{name: A, fields: [{name: x}]}]\n",
            "records: [{name: A}, {name: A}]\n",
            "records: [{name: A, extra: 1}]\n",
            "records: [{name: A\n",
        ],
    )
    def test_invalid(self, text):
        """Test malformed or invalid schemas."""
        with pytest.raises(ExtractionError):
            parse_schema(text)

    @pytest.mark.parametrize(
        "text",
        [
            "records: [{name: R, fields: [{name: class, type: int}]}]\n",
            "records: [{name: R, fields: [{name: __x, type: int}]}]\n",
            "records: [{name: def}]\n",
            "records: [{name: __R}]\n",
            "records: [{name: R, type_params: [lambda]}]\n",
        ],
    )
    def test_keywords_and_mangled_names(self, text):
        """Test names the generated module could not compile or would mangle."""
        with pytest.raises(ExtractionError, match="invalid schema"):
            parse_schema(text)

    def test_private_field_allowed(self):
        """Test a single leading underscore is a plain private field."""
        schema = parse_schema("records: [{name: R, fields: [{name: _x, type: int}]}]\n")
        ns = run_generated(render(schema))
        assert ns["RInit"](1).into()._x == 1

    def test_load_by_suffix(self, tmp_path):
        """Test .json files are read as JSON and others as YAML."""
        (tmp_path / "a.json").write_text('{"records": [{"name": "A"}]}')
        (tmp_path / "b.yaml").write_text(SCHEMA_YAML)
        assert load_schema(tmp_path / "a.json").records[0].name == "A"
        assert load_schema(tmp_path / "b.yaml").records[0].name == "Request"

    def test_load_missing(self, tmp_path):
        """Test a missing file."""
        with pytest.raises(ExtractionError, match="cannot read schema"):
            load_schema(tmp_path / "missing.yaml")


class TestDeclarations:
    """Test conversion to record declarations."""

    def test_defaults_become_attributes(self):
        """Test the default key maps to the default attribute."""
        declaration = parse_schema(SCHEMA_YAML).declarations()[0]
        assert declaration.fields[1].raw_attributes == {"default": "3"}
        assert declaration.fields[0].raw_attributes == {}


class TestRenderSchemaModule:
    """Test the generated module."""

    def test_module_runs(self):
        """Test the rendered records behave like decorated ones."""
        ns = run_generated(render(parse_schema(SCHEMA_YAML)))
        request = ns["RequestInit"]("http://x").into()
        assert request == ns["Request"]("http://x")
        assert request.retries == 3
        assert request.with_tag("t").tag == "t"
        built = ns["RequestBuilder"](request).retries(5).build()
        assert built.retries == 5

    def test_banner_and_imports(self):
        """Test the module header."""
        lines = render(parse_schema(SCHEMA_YAML)).splitlines()
        assert lines[0].startswith("# Generated by recbuilder")
        assert lines[0].endswith("from records.yaml. Do not edit.")
        assert "from __future__ import annotations" in lines
        assert "import copy" in lines
        assert "from typing import Optional" in lines

    def test_generic_record(self):
        """Test type params produce TypeVars and a Generic base."""
        schema = parse_schema(
            "records:\n"
            "  - name: Box\n"
            "    type_params: [T]\n"
            "    fields: [{name: item, type: T}]\n"
        )
        text = render(schema)
        assert 'T = TypeVar("T")' in text
        assert "class Box(Generic[T]):" in text
        assert run_generated(text)["BoxInit"](1).into().item == 1

    def test_failed_records_left_out(self):
        """Test a failing record is reported and not rendered."""
        schema = parse_schema(
            "records:\n"
            "  - name: Good\n"
            "    fields: [{name: x, type: int}]\n"
            "  - name: Bad\n"
            "    fields: [{name: x, type: int, default: '\"abc\"'}]\n"
        )
        result = generate_schema(schema)
        assert [f.record for f in result.failures] == ["Bad"]
        text = render_schema_module(schema, result.plans)
        assert "class Good:" in text
        assert "class Bad" not in text

    def test_deterministic(self):
        """Test identical schemas render identical text."""
        schema = parse_schema(SCHEMA_YAML)
        assert render(schema) == render(schema)
