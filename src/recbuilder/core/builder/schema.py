"""
Sidecar schema files.

A schema describes records without any Python source, in YAML or JSON:

    imports:
      - from typing import Optional
    records:
      - name: Request
        fields:
          - {name: url, type: str}
          - {name: retries, type: int, default: "3"}
          - {name: tag, type: "Optional[str]"}

Each record goes through the same pipeline as decorated classes and is
rendered into a standalone module.
"""

import json
import keyword
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from recbuilder.core.builder.emitter import EmitOptions, render_companions, render_record_class
from recbuilder.core.builder.errors import ExtractionError
from recbuilder.core.builder.models import (
    FieldDescriptor,
    GenerationPlan,
    RecordDeclaration,
    Visibility,
)
from recbuilder.core.builder.pipeline import BatchResult, generate_all
from recbuilder.core.builder.splice import banner_lines, compute_digest
from recbuilder.core.builder.types import DEFAULT_RULES, TypeRules

logger = logging.getLogger(__name__)


def _check_name(v: str) -> str:
    if not v.isidentifier() or keyword.iskeyword(v):
        raise ValueError(f"'{v}' is not a valid identifier")
    if v.startswith("__"):
        raise ValueError(f"'{v}' starts with '__' and would be name-mangled")
    return v


class SchemaField(BaseModel):
    """One field of a schema record."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1, description="Type expression as Python source")
    default: str | None = Field(default=None, description="Default expression as Python source")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _check_name(v)


class SchemaRecord(BaseModel):
    """One record of a schema file."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    fields: list[SchemaField] = Field(default_factory=list)
    type_params: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _check_name(v)

    @field_validator("type_params")
    @classmethod
    def validate_type_params(cls, v: list[str]) -> list[str]:
        return [_check_name(p) for p in v]

    def to_declaration(self) -> RecordDeclaration:
        return RecordDeclaration(
            name=self.name,
            fields=[
                FieldDescriptor(
                    name=f.name,
                    declared_type=f.type,
                    visibility=Visibility.from_name(f.name),
                    raw_attributes={} if f.default is None else {"default": f.default},
                )
                for f in self.fields
            ],
            type_params=self.type_params,
        )


class SchemaFile(BaseModel):
    """A sidecar schema: import lines plus record definitions."""

    model_config = ConfigDict(extra="forbid")

    imports: list[str] = Field(default_factory=list)
    records: list[SchemaRecord] = Field(default_factory=list)

    @field_validator("records")
    @classmethod
    def validate_unique_names(cls, v: list[SchemaRecord]) -> list[SchemaRecord]:
        seen: set[str] = set()
        for record in v:
            if record.name in seen:
                raise ValueError(f"record '{record.name}' is defined more than once")
            seen.add(record.name)
        return v

    def declarations(self) -> list[RecordDeclaration]:
        return [record.to_declaration() for record in self.records]


def parse_schema(text: str, *, fmt: str = "yaml") -> SchemaFile:
    """Parse schema text (``yaml`` or ``json``).

    Raises:
        ExtractionError: If the text is malformed or fails validation
    """
    try:
        data: Any = json.loads(text) if fmt == "json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ExtractionError(f"cannot parse schema: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ExtractionError("schema must be a mapping with 'imports' and 'records'")
    try:
        return SchemaFile.model_validate(data)
    except ValidationError as e:
        raise ExtractionError(f"invalid schema: {e}") from e


def load_schema(path: Path) -> SchemaFile:
    """Load a schema file; ``.json`` is read as JSON, anything else as YAML.

    Raises:
        ExtractionError: If the file cannot be read or is invalid
    """
    try:
        text = path.read_text()
    except OSError as e:
        raise ExtractionError(f"cannot read schema {path}: {e}") from e
    fmt = "json" if path.suffix.lower() == ".json" else "yaml"
    return parse_schema(text, fmt=fmt)


def generate_schema(schema: SchemaFile, rules: TypeRules = DEFAULT_RULES) -> BatchResult:
    """Run every schema record through the pipeline."""
    return generate_all(schema.declarations(), rules)


def render_schema_module(
    schema: SchemaFile,
    plans: list[GenerationPlan],
    *,
    source_label: str = "<schema>",
    options: EmitOptions | None = None,
    rules: TypeRules = DEFAULT_RULES,
) -> str:
    """Render a standalone module holding the given records."""
    options = options or EmitOptions()
    digest = compute_digest(schema.model_dump_json(), options, rules)
    lines = banner_lines(source_label, digest)
    lines += ["", "from __future__ import annotations", "", "import copy"]
    needs_generic = any(plan.record.type_params for plan in plans)
    if needs_generic:
        lines.append("from typing import Generic, TypeVar")
    lines += schema.imports

    type_vars: list[str] = []
    for plan in plans:
        for name in plan.record.type_params:
            if name not in type_vars:
                type_vars.append(name)
    if type_vars:
        lines.append("")
        lines += [f'{name} = TypeVar("{name}")' for name in type_vars]

    for plan in plans:
        lines += ["", ""] + render_record_class(plan, options)
        lines += ["", ""] + render_companions(plan, options)
    logger.debug("rendered %d schema record(s)", len(plans))
    return "\n".join(lines) + "\n"
