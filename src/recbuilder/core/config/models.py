"""
Configuration data models for recbuilder.

These models define the structure of .recbuilder.json and
~/.config/recbuilder/config.json files, with validation and type safety
via Pydantic.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from recbuilder.core.builder.emitter import EmitOptions
from recbuilder.core.builder.types import TypeRules


class TypeRulesConfig(BaseModel):
    """
    How type expressions are recognised.

    Extra aliases let projects that re-export typing helpers under other
    names still get optional-container detection.
    """
    optional_aliases: list[str] = Field(
        default_factory=lambda: ["Optional"],
        description="Names meaning Optional[X]"
    )
    union_aliases: list[str] = Field(
        default_factory=lambda: ["Union"],
        description="Names meaning Union[...]"
    )
    typing_modules: list[str] = Field(
        default_factory=lambda: ["typing", "typing_extensions", "t"],
        description="Module names whose attributes are typing forms (typing.Optional)"
    )

    @field_validator("optional_aliases", "union_aliases", "typing_modules")
    @classmethod
    def validate_identifiers(cls, v: list[str]) -> list[str]:
        for name in v:
            if not name.isidentifier():
                raise ValueError(f"'{name}' is not a valid identifier")
        return v


class ExtractConfig(BaseModel):
    """
    Which classes are records.
    """
    decorators: list[str] = Field(
        default_factory=lambda: ["builder"],
        min_length=1,
        description="Decorator names marking a class for generation"
    )


class EmitConfig(BaseModel):
    """
    Rendering of generated code.
    """
    builder_suffix: str = Field(
        default="Builder",
        min_length=1,
        description="Suffix of the mutable builder companion class"
    )
    record_protocol: bool = Field(
        default=True,
        description="Render __eq__/__repr__ on records that do not define them"
    )
    annotate: bool = Field(
        default=True,
        description="Render type annotations on generated members"
    )

    @field_validator("builder_suffix")
    @classmethod
    def validate_suffix(cls, v: str) -> str:
        if not ("X" + v).isidentifier():
            raise ValueError(f"builder_suffix '{v}' does not form a valid class name")
        return v


class RecbuilderConfig(BaseModel):
    """
    Main recbuilder configuration.

    Loaded from (in order of precedence):
    1. Environment variables (RECBUILDER_*)
    2. Project config (.recbuilder.json)
    3. User config (~/.config/recbuilder/config.json)
    4. Hardcoded defaults
    """
    types: TypeRulesConfig = Field(
        default_factory=TypeRulesConfig,
        description="Type expression recognition"
    )
    extract: ExtractConfig = Field(
        default_factory=ExtractConfig,
        description="Record discovery"
    )
    emit: EmitConfig = Field(
        default_factory=EmitConfig,
        description="Code rendering"
    )

    model_config = ConfigDict(
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,
    )

    def to_rules(self) -> TypeRules:
        return TypeRules(
            optional_aliases=tuple(self.types.optional_aliases),
            union_aliases=tuple(self.types.union_aliases),
            typing_modules=tuple(self.types.typing_modules),
        )

    def to_emit_options(self) -> EmitOptions:
        return EmitOptions(
            builder_suffix=self.emit.builder_suffix,
            record_protocol=self.emit.record_protocol,
            annotate=self.emit.annotate,
        )

    @property
    def decorator_names(self) -> tuple[str, ...]:
        return tuple(self.extract.decorators)
