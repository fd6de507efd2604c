"""
Data models for builder generation.

Defines the field descriptors handed over by the extractor, the
classification result for each field, and the abstract member
specifications the synthesizer produces for the emitter. All models
exist only for one generation pass over one record declaration.
"""

import hashlib
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Visibility(str, Enum):
    """Visibility of a record field, derived from its name."""

    PUBLIC = "public"
    PRIVATE = "private"

    @classmethod
    def from_name(cls, name: str) -> "Visibility":
        """Return PRIVATE for ``_name`` fields and PUBLIC otherwise."""
        if name.startswith("_"):
            return cls.PRIVATE
        return cls.PUBLIC


class FieldKind(str, Enum):
    """Classification of a record field.

    - REQUIRED: no default and not an optional container; must be passed
      to the constructor.
    - OPTIONAL: optional-container type without a default; starts empty.
    - DEFAULTED: carries an explicit ``default`` attribute, whether or not
      the type is an optional container.
    """

    REQUIRED = "required"
    OPTIONAL = "optional"
    DEFAULTED = "defaulted"


class SetterStyle(str, Enum):
    """Whether a setter takes the bare inner value or the wrapped optional value."""

    BARE = "bare"
    OPTIONAL_WRAPPED = "optional_wrapped"


class FieldDescriptor(BaseModel):
    """One field of a record declaration, as seen by the extractor."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Field identifier")
    declared_type: str = Field(..., description="Type annotation as source text")
    visibility: Visibility = Field(default=Visibility.PUBLIC)
    raw_attributes: dict[str, str] = Field(
        default_factory=dict,
        description="Attribute name -> raw textual payload (only 'default' is recognised)",
    )
    line: int | None = Field(default=None, description="Source line of the field, if known")


class RecordDeclaration(BaseModel):
    """A record type marked for builder generation."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Record class name")
    fields: list[FieldDescriptor] = Field(default_factory=list)
    declared_members: list[str] = Field(
        default_factory=list,
        description="Names the host class body already defines (methods, class variables)",
    )
    type_params: list[str] = Field(
        default_factory=list, description="Type parameter names declared by the record"
    )
    generic_base: str | None = Field(
        default=None, description="Source text of the Generic base, e.g. 'Generic' or 'typing.Generic'"
    )
    pep695: bool = Field(default=False, description="Type params use 'class C[T]' syntax")
    line: int | None = Field(default=None)

    @property
    def init_name(self) -> str:
        """Name of the companion init record."""
        return f"{self.name}Init"

    def builder_name(self, suffix: str = "Builder") -> str:
        """Name of the companion mutable builder."""
        return f"{self.name}{suffix}"


class ClassifiedField(BaseModel):
    """A field descriptor together with its classification."""

    model_config = ConfigDict(frozen=True)

    descriptor: FieldDescriptor
    kind: FieldKind
    is_optional: bool = Field(default=False, description="Type is an optional container")
    inner_type: str = Field(..., description="Declared type with the optional wrapper removed")
    default_expr: str | None = Field(default=None, description="Normalized default expression")

    @model_validator(mode="after")
    def check_kind_consistency(self) -> "ClassifiedField":
        if (self.kind == FieldKind.DEFAULTED) != (self.default_expr is not None):
            raise ValueError("default_expr must be set exactly when kind is 'defaulted'")
        if self.kind == FieldKind.OPTIONAL and not self.is_optional:
            raise ValueError("optional fields must have an optional-container type")
        return self

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def declared_type(self) -> str:
        return self.descriptor.declared_type

    @property
    def is_required(self) -> bool:
        return self.kind == FieldKind.REQUIRED

    @property
    def initial_expr(self) -> str:
        """Expression the constructor assigns for a non-required field."""
        if self.default_expr is not None:
            return self.default_expr
        if self.kind == FieldKind.OPTIONAL:
            return "None"
        return self.name


class ParamSpec(BaseModel):
    """A positional parameter (or init-record field) built from a required field."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str


class _MemberBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Generated member name")


class ConstructorSpec(_MemberBase):
    """Minimal constructor taking the required fields positionally."""

    kind: Literal["constructor"] = "constructor"
    params: list[ParamSpec] = Field(default_factory=list)
    assignments: list[tuple[str, str]] = Field(
        default_factory=list, description="(field, expression) pairs in declaration order"
    )


class InitRecordShapeSpec(_MemberBase):
    """Shape of the companion init record."""

    kind: Literal["init_record"] = "init_record"
    fields: list[ParamSpec] = Field(default_factory=list)
    type_params: list[str] = Field(default_factory=list)


class ConversionFromInitSpec(_MemberBase):
    """Conversion building a full record from an init record."""

    kind: Literal["conversion_from_init"] = "conversion_from_init"
    init_name: str
    args: list[str] = Field(default_factory=list)


class ImmutableSetterSpec(_MemberBase):
    """``with_<f>`` / ``opt_<f>``: return an updated copy."""

    kind: Literal["immutable_setter"] = "immutable_setter"
    field: str
    style: SetterStyle
    value_type: str
    wrap: bool = Field(default=False, description="Field is optional and value is bare")


class MutableSetterSpec(_MemberBase):
    """``<f>`` / ``mopt_<f>``: set in place and return the handle."""

    kind: Literal["mutable_setter"] = "mutable_setter"
    field: str
    style: SetterStyle
    value_type: str
    wrap: bool = False


class ImmutableUnsetterSpec(_MemberBase):
    """``without_<f>``: return a copy with the optional field emptied."""

    kind: Literal["immutable_unsetter"] = "immutable_unsetter"
    field: str


class MutableUnsetterSpec(_MemberBase):
    """``reset_<f>``: empty the optional field in place."""

    kind: Literal["mutable_unsetter"] = "mutable_unsetter"
    field: str


MemberSpec = Annotated[
    Union[
        ConstructorSpec,
        InitRecordShapeSpec,
        ConversionFromInitSpec,
        ImmutableSetterSpec,
        MutableSetterSpec,
        ImmutableUnsetterSpec,
        MutableUnsetterSpec,
    ],
    Field(discriminator="kind"),
]

MUTATING_KINDS = frozenset({"mutable_setter", "mutable_unsetter"})


def is_mutating(member: MemberSpec) -> bool:
    """True for members that act on the mutable handle rather than return a copy."""
    return member.kind in MUTATING_KINDS


class GenerationPlan(BaseModel):
    """Complete, ordered result of one generation pass over one record."""

    model_config = ConfigDict(frozen=True)

    record: RecordDeclaration
    fields: list[ClassifiedField]
    members: list[MemberSpec]

    @property
    def constructor(self) -> ConstructorSpec:
        return next(m for m in self.members if isinstance(m, ConstructorSpec))

    @property
    def init_shape(self) -> InitRecordShapeSpec:
        return next(m for m in self.members if isinstance(m, InitRecordShapeSpec))

    @property
    def conversion(self) -> ConversionFromInitSpec:
        return next(m for m in self.members if isinstance(m, ConversionFromInitSpec))

    def record_members(self) -> list[MemberSpec]:
        """Members that live on the record itself (copy-returning setters)."""
        return [
            m
            for m in self.members
            if isinstance(m, (ImmutableSetterSpec, ImmutableUnsetterSpec))
        ]

    def handle_members(self) -> list[MutableSetterSpec | MutableUnsetterSpec]:
        """Members that mutate in place."""
        return [
            m for m in self.members if isinstance(m, (MutableSetterSpec, MutableUnsetterSpec))
        ]

    def member_names(self) -> list[str]:
        return [m.name for m in self.members]

    def digest(self) -> str:
        """SHA-256 over the canonical JSON of the plan."""
        payload = self.model_dump_json()
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()
