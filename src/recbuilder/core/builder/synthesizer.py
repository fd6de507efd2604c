"""
Member synthesis.

Turns the classified field list into the ordered list of member specs:

    Constructor, InitRecordShape, ConversionFromInit,
    then for each field in declaration order:
        with_<f>, opt_<f>, without_<f>, <f>, mopt_<f>, reset_<f>

The ``opt``/``without``/``mopt``/``reset`` members exist only for fields
whose type is an optional container (kind OPTIONAL, or DEFAULTED with an
optional type). The output is a pure function of the input, so repeated
generation over identical input is identical.
"""

import logging
from collections.abc import Iterable

from recbuilder.core.builder.classifier import required_fields
from recbuilder.core.builder.errors import MemberNameCollision
from recbuilder.core.builder.models import (
    ClassifiedField,
    ConstructorSpec,
    ConversionFromInitSpec,
    ImmutableSetterSpec,
    ImmutableUnsetterSpec,
    InitRecordShapeSpec,
    MemberSpec,
    MutableSetterSpec,
    MutableUnsetterSpec,
    ParamSpec,
    SetterStyle,
    is_mutating,
)
from recbuilder.core.builder.types import type_names

logger = logging.getLogger(__name__)

CONSTRUCTOR_NAME = "__init__"
CONVERSION_NAME = "from_init"
INIT_SHAPE_NAME = "Init"
# Terminal call on the mutable handle; mutable setters may not shadow it.
HANDLE_RESERVED = frozenset({"build"})
# Conversion method on the init record; its fields may not shadow it.
INTO_NAME = "into"
INIT_RESERVED = frozenset({INTO_NAME})
# Receivers of the generated methods; no field may become a parameter beside them.
RECEIVER_NAMES = frozenset({"self", "cls"})


def build_constructor(fields: list[ClassifiedField]) -> ConstructorSpec:
    """Constructor taking exactly the required fields, in declaration order."""
    return ConstructorSpec(
        name=CONSTRUCTOR_NAME,
        params=[ParamSpec(name=f.name, type=f.declared_type) for f in required_fields(fields)],
        assignments=[(f.name, f.initial_expr) for f in fields],
    )


def build_init_shape(
    fields: list[ClassifiedField], type_params: Iterable[str] = ()
) -> InitRecordShapeSpec:
    """Init record: required fields only, plus the type params they mention."""
    required = required_fields(fields)
    used: set[str] = set()
    for f in required:
        used |= type_names(f.declared_type)
    return InitRecordShapeSpec(
        name=INIT_SHAPE_NAME,
        fields=[ParamSpec(name=f.name, type=f.declared_type) for f in required],
        type_params=[p for p in type_params if p in used],
    )


def build_field_members(field: ClassifiedField) -> list[MemberSpec]:
    """Setters and unsetters for one field, in the fixed per-field order."""
    name = field.name
    members: list[MemberSpec] = [
        ImmutableSetterSpec(
            name=f"with_{name}",
            field=name,
            style=SetterStyle.BARE,
            value_type=field.inner_type,
            wrap=field.is_optional,
        )
    ]
    if field.is_optional:
        members.append(
            ImmutableSetterSpec(
                name=f"opt_{name}",
                field=name,
                style=SetterStyle.OPTIONAL_WRAPPED,
                value_type=field.declared_type,
            )
        )
        members.append(ImmutableUnsetterSpec(name=f"without_{name}", field=name))
    members.append(
        MutableSetterSpec(
            name=name,
            field=name,
            style=SetterStyle.BARE,
            value_type=field.inner_type,
            wrap=field.is_optional,
        )
    )
    if field.is_optional:
        members.append(
            MutableSetterSpec(
                name=f"mopt_{name}",
                field=name,
                style=SetterStyle.OPTIONAL_WRAPPED,
                value_type=field.declared_type,
            )
        )
        members.append(MutableUnsetterSpec(name=f"reset_{name}", field=name))
    return members


def check_collisions(
    members: list[MemberSpec],
    fields: list[ClassifiedField],
    declared_members: Iterable[str] = (),
) -> None:
    """Fail if any generated name is already taken.

    A generated name collides with:
    - a member the host record already declares;
    - a field name, for members that live on the record itself;
    - another generated member on the same receiver;
    - the handle's terminal ``build``, for mutating members;
    - the init record's ``into``, for required fields.

    Fields named like a method receiver (``self``, ``cls``) are rejected too.

    Raises:
        MemberNameCollision: Attributed to the field that produced the name
    """
    declared = set(declared_members)
    for f in fields:
        if f.name in RECEIVER_NAMES:
            raise MemberNameCollision(
                f"field '{f.name}' clashes with the receiver of the generated methods",
                field=f.name,
            )
    field_names = {f.name for f in fields}
    seen: dict[tuple[bool, str], str | None] = {}

    for member in members:
        if isinstance(member, InitRecordShapeSpec):
            for p in member.fields:
                if p.name in INIT_RESERVED:
                    raise MemberNameCollision(
                        f"required field '{p.name}' clashes with the init record's "
                        f"'{p.name}()' method",
                        field=p.name,
                    )
            continue
        owner = getattr(member, "field", None)
        mutating = is_mutating(member)

        if member.name in declared:
            raise MemberNameCollision(
                f"generated member '{member.name}' is already declared on the record",
                field=owner,
            )
        if not mutating and member.name in field_names:
            raise MemberNameCollision(
                f"generated member '{member.name}' clashes with the field of the same name",
                field=owner,
            )
        if mutating and member.name in HANDLE_RESERVED:
            raise MemberNameCollision(
                f"generated setter '{member.name}' clashes with the builder's "
                f"'{member.name}()' method",
                field=owner,
            )
        key = (mutating, member.name)
        if key in seen:
            other = seen[key]
            raise MemberNameCollision(
                f"generated member '{member.name}' is produced twice"
                + (f" (also by field '{other}')" if other and other != owner else ""),
                field=owner,
            )
        seen[key] = owner


def synthesize(
    fields: list[ClassifiedField],
    declared_members: Iterable[str] = (),
    type_params: Iterable[str] = (),
) -> list[MemberSpec]:
    """Produce the ordered member specs for a classified record.

    Args:
        fields: Classified fields in declaration order
        declared_members: Names the host record already declares
        type_params: Type parameter names of the record, in declaration order

    Returns:
        Constructor, init record shape, conversion, then per-field members

    Raises:
        MemberNameCollision: If a generated name is already taken
    """
    constructor = build_constructor(fields)
    init_shape = build_init_shape(fields, type_params)
    conversion = ConversionFromInitSpec(
        name=CONVERSION_NAME,
        init_name=init_shape.name,
        args=[p.name for p in constructor.params],
    )

    members: list[MemberSpec] = [constructor, init_shape, conversion]
    for field in fields:
        members.extend(build_field_members(field))

    check_collisions(members, fields, declared_members)
    logger.debug(
        "synthesized %d members (%d required params)", len(members), len(constructor.params)
    )
    return members
