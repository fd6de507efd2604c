"""
Rendering of member specs into Python source.

The record keeps its own fields as instance attributes, so:

- the constructor is ``__init__`` and the conversion is a ``from_init``
  classmethod;
- ``with_``/``opt_``/``without_`` return a shallow copy (``copy.copy``)
  with one field changed;
- the mutable setters live on ``<Record>Builder``, which owns a copy of
  the record until ``build()`` hands it out;
- ``<Record>Init`` holds only the required fields.

Rendered blocks are lists of lines without a base indent; callers
indent them to where they are spliced.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from recbuilder.core.builder.errors import ExtractionError
from recbuilder.core.builder.models import (
    ConstructorSpec,
    ConversionFromInitSpec,
    GenerationPlan,
    ImmutableSetterSpec,
    ImmutableUnsetterSpec,
    MemberSpec,
    MutableSetterSpec,
    MutableUnsetterSpec,
    ParamSpec,
    RecordDeclaration,
)
from recbuilder.core.builder.synthesizer import INTO_NAME

INDENT = "    "


class EmitOptions(BaseModel):
    """Emitter settings."""

    model_config = ConfigDict(frozen=True)

    builder_suffix: str = Field(default="Builder", min_length=1)
    record_protocol: bool = Field(
        default=True, description="Render __eq__/__repr__ unless the record defines them"
    )
    annotate: bool = Field(default=True, description="Render type annotations")

    @field_validator("builder_suffix")
    @classmethod
    def validate_suffix(cls, v: str) -> str:
        if not ("X" + v).isidentifier():
            raise ValueError(f"builder_suffix '{v}' does not form a valid class name")
        return v


def record_options(base: EmitOptions, overrides: dict[str, Any], record: str) -> EmitOptions:
    """``base`` with one record's decorator keywords applied.

    Raises:
        ExtractionError: If an override is not a valid option value
    """
    if not overrides:
        return base
    try:
        return EmitOptions.model_validate({**base.model_dump(), **overrides})
    except ValidationError as e:
        raise ExtractionError(f"invalid builder options: {e}", record=record) from e


def indent(lines: list[str], level: int = 1) -> list[str]:
    """Indent non-empty lines by ``level`` steps."""
    prefix = INDENT * level
    return [prefix + line if line else "" for line in lines]


class _Renderer:
    def __init__(self, plan: GenerationPlan, options: EmitOptions) -> None:
        self.plan = plan
        self.record: RecordDeclaration = plan.record
        self.options = options
        self.builder_name = self.record.builder_name(options.builder_suffix)

    # -- small helpers -----------------------------------------------------

    def _param(self, name: str, type_text: str) -> str:
        if self.options.annotate:
            return f"{name}: {type_text}"
        return name

    def _returns(self, type_text: str) -> str:
        if self.options.annotate:
            return f" -> {type_text}"
        return ""

    def _signature(self, name: str, params: list[str], returns: str) -> str:
        return f"def {name}({', '.join(params)}){self._returns(returns)}:"

    def _quoted(self, name: str) -> str:
        return f'"{name}"'

    def class_header(self, class_name: str, type_params: list[str]) -> str:
        if not type_params:
            return f"class {class_name}:"
        joined = ", ".join(type_params)
        if self.record.pep695:
            return f"class {class_name}[{joined}]:"
        base = self.record.generic_base or "Generic"
        return f"class {class_name}({base}[{joined}]):"

    # -- record members ----------------------------------------------------

    def constructor(self, spec: ConstructorSpec) -> list[str]:
        params = ["self"] + [self._param(p.name, p.type) for p in spec.params]
        lines = [self._signature(spec.name, params, "None")]
        body = [f"self.{field} = {expr}" for field, expr in spec.assignments]
        lines.extend(indent(body or ["pass"]))
        return lines

    def conversion(self, spec: ConversionFromInitSpec) -> list[str]:
        init = self._quoted(self.record.init_name)
        args = ", ".join(f"init.{name}" for name in spec.args)
        return [
            "@classmethod",
            self._signature(
                spec.name, ["cls", self._param("init", init)], self._quoted(self.record.name)
            ),
            f"{INDENT}return cls({args})",
        ]

    def immutable(self, spec: ImmutableSetterSpec | ImmutableUnsetterSpec) -> list[str]:
        if isinstance(spec, ImmutableSetterSpec):
            params = ["self", self._param("value", spec.value_type)]
            value = "value"
        else:
            params = ["self"]
            value = "None"
        return [
            self._signature(spec.name, params, self._quoted(self.record.name)),
            f"{INDENT}updated = copy.copy(self)",
            f"{INDENT}updated.{spec.field} = {value}",
            f"{INDENT}return updated",
        ]

    def mutable(self, spec: MutableSetterSpec | MutableUnsetterSpec) -> list[str]:
        if isinstance(spec, MutableSetterSpec):
            params = ["self", self._param("value", spec.value_type)]
            value = "value"
        else:
            params = ["self"]
            value = "None"
        return [
            self._signature(spec.name, params, self._quoted(self.builder_name)),
            f"{INDENT}self.__target().{spec.field} = {value}",
            f"{INDENT}return self",
        ]

    def protocol(self, fields: list[str], skip: set[str]) -> list[str]:
        if not self.options.record_protocol:
            return []

        def values(target: str) -> str:
            if not fields:
                return "()"
            items = ", ".join(f"{target}.{f}" for f in fields)
            return f"({items},)" if len(fields) == 1 else f"({items})"

        lines: list[str] = []
        if "__eq__" not in skip:
            lines += [
                self._signature("__eq__", ["self", self._param("other", "object")], "bool"),
                f"{INDENT}if other.__class__ is not self.__class__:",
                f"{INDENT}{INDENT}return NotImplemented",
                f"{INDENT}return {values('self')} == {values('other')}",
                "",
            ]
            if "__hash__" not in skip:
                lines += ["__hash__ = None  # type: ignore[assignment]", ""]
        if "__repr__" not in skip:
            shown = ", ".join(f"{f}={{self.{f}!r}}" for f in fields)
            lines += [
                self._signature("__repr__", ["self"], "str"),
                f'{INDENT}return f"{{type(self).__name__}}({shown})"',
                "",
            ]
        return lines[:-1] if lines else lines

    def record_body(self) -> list[str]:
        """Members spliced into the record class body."""
        blocks: list[list[str]] = []
        for member in self.plan.members:
            if isinstance(member, ConstructorSpec):
                blocks.append(self.constructor(member))
            elif isinstance(member, ConversionFromInitSpec):
                blocks.append(self.conversion(member))
            elif isinstance(member, (ImmutableSetterSpec, ImmutableUnsetterSpec)):
                blocks.append(self.immutable(member))
        protocol = self.protocol(
            [f.name for f in self.plan.fields], set(self.record.declared_members)
        )
        if protocol:
            blocks.append(protocol)
        return _join_blocks(blocks)

    # -- companions --------------------------------------------------------

    def init_class(self) -> list[str]:
        shape = self.plan.init_shape
        name = self.record.init_name
        fields: list[ParamSpec] = shape.fields
        body: list[str] = [f'"""Required fields of {self.record.name}."""', ""]
        if self.options.annotate and fields:
            body += [f"{p.name}: {p.type}" for p in fields] + [""]

        params = ["self"] + [self._param(p.name, p.type) for p in fields]
        body.append(self._signature("__init__", params, "None"))
        body += indent([f"self.{p.name} = {p.name}" for p in fields] or ["pass"])
        body += [
            "",
            self._signature(INTO_NAME, ["self"], self._quoted(self.record.name)),
            f"{INDENT}return {self.record.name}.{self.plan.conversion.name}(self)",
        ]
        protocol = self.protocol([p.name for p in fields], set())
        if protocol:
            body += [""] + protocol
        return [self.class_header(name, shape.type_params)] + indent(body)

    def builder_class(self) -> list[str]:
        name = self.builder_name
        record = self._quoted(self.record.name)
        body: list[str] = [
            f'"""Mutable builder for {self.record.name}; owns its record until build()."""',
            "",
            self._signature("__init__", ["self", self._param("record", record)], "None"),
            f"{INDENT}self.__record = copy.copy(record)",
            "",
            self._signature("__target", ["self"], record),
            f"{INDENT}if self.__record is None:",
            f'{INDENT}{INDENT}raise RuntimeError("{name} has already been built")',
            f"{INDENT}return self.__record",
            "",
        ]
        for member in self.plan.handle_members():
            body += self.mutable(member) + [""]
        body += [
            self._signature("build", ["self"], record),
            f"{INDENT}record = self.__target()",
            f"{INDENT}self.__record = None",
            f"{INDENT}return record",
        ]
        return [f"class {name}:"] + indent(body)

    def companions(self) -> list[str]:
        return self.init_class() + ["", ""] + self.builder_class()


def _join_blocks(blocks: list[list[str]]) -> list[str]:
    lines: list[str] = []
    for block in blocks:
        if lines:
            lines.append("")
        lines.extend(block)
    return lines


def render_record_members(plan: GenerationPlan, options: EmitOptions | None = None) -> list[str]:
    """Lines to append to the record class body (unindented)."""
    return _Renderer(plan, options or EmitOptions()).record_body()


def render_companions(plan: GenerationPlan, options: EmitOptions | None = None) -> list[str]:
    """``<Record>Init`` and ``<Record>Builder`` class definitions."""
    return _Renderer(plan, options or EmitOptions()).companions()


def render_record_class(plan: GenerationPlan, options: EmitOptions | None = None) -> list[str]:
    """A complete record class: field annotations followed by generated members."""
    renderer = _Renderer(plan, options or EmitOptions())
    record = plan.record
    header = renderer.class_header(record.name, record.type_params)
    annotations = [f"{f.name}: {f.declared_type}" for f in plan.fields]
    body = _join_blocks([b for b in (annotations, renderer.record_body()) if b])
    return [header] + indent(body or ["pass"])


def member_lines(
    member: MemberSpec, plan: GenerationPlan, options: EmitOptions | None = None
) -> list[str]:
    """Render a single member spec; used by ``recbuilder inspect``."""
    renderer = _Renderer(plan, options or EmitOptions())
    if isinstance(member, ConstructorSpec):
        return renderer.constructor(member)
    if isinstance(member, ConversionFromInitSpec):
        return renderer.conversion(member)
    if isinstance(member, (ImmutableSetterSpec, ImmutableUnsetterSpec)):
        return renderer.immutable(member)
    if isinstance(member, (MutableSetterSpec, MutableUnsetterSpec)):
        return renderer.mutable(member)
    return renderer.init_class()
