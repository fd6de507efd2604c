"""
Field classification.

Decides for each field whether it is required, an optional container or
defaulted, and validates and normalizes its ``default`` expression:

    | has default | is_optional | kind      |
    |-------------|-------------|-----------|
    | no          | no          | required  |
    | no          | yes         | optional  |
    | yes         | no          | defaulted |
    | yes         | yes         | defaulted |

For optional fields the default supplies the whole optional value, so
``None`` is an acceptable default there.
"""

import ast
import logging

from recbuilder.core.builder.errors import (
    ClassificationError,
    InvalidDefaultExpression,
)
from recbuilder.core.builder.models import (
    ClassifiedField,
    FieldDescriptor,
    FieldKind,
    RecordDeclaration,
)
from recbuilder.core.builder.types import DEFAULT_RULES, TypeRules, literal_fits, optional_shape

logger = logging.getLogger(__name__)

DEFAULT_ATTRIBUTE = "default"

# Expression nodes that make no sense in a default evaluated by a constructor.
_FORBIDDEN_NODES = (ast.Yield, ast.YieldFrom, ast.Await, ast.NamedExpr)


def normalize_default(payload: str, declared_type: str, rules: TypeRules = DEFAULT_RULES) -> str:
    """Parse a default payload, check it against the declared type and normalize it.

    Args:
        payload: Raw attribute text, e.g. ``"10"`` or ``"[]"``
        declared_type: The field's full declared type
        rules: Optional-container naming rules

    Returns:
        The expression re-rendered from its syntax tree

    Raises:
        InvalidDefaultExpression: If the payload is empty, does not parse as
            one expression, or is a literal that does not fit the type
    """
    if not payload.strip():
        raise InvalidDefaultExpression("default expression is empty")
    try:
        tree = ast.parse(payload.strip(), mode="eval")
    except SyntaxError as e:
        raise InvalidDefaultExpression(
            f"default {payload!r} is not a valid expression: {e.msg}"
        ) from e

    for node in ast.walk(tree):
        if isinstance(node, _FORBIDDEN_NODES):
            raise InvalidDefaultExpression(
                f"default {payload!r} uses {type(node).__name__}, which is not allowed here"
            )

    fits: bool | None = None
    if isinstance(tree.body, ast.JoinedStr):
        fits = literal_fits("", declared_type, rules)
    else:
        try:
            value = ast.literal_eval(tree.body)
        except (ValueError, TypeError, SyntaxError, MemoryError, RecursionError):
            # Names, calls and other non-literal expressions are accepted as-is.
            pass
        else:
            fits = literal_fits(value, declared_type, rules)

    if fits is False:
        raise InvalidDefaultExpression(
            f"default {payload!r} is not a valid value of type {declared_type}"
        )
    return ast.unparse(tree)


def classify(descriptor: FieldDescriptor, rules: TypeRules = DEFAULT_RULES) -> ClassifiedField:
    """Classify one field.

    Args:
        descriptor: Field as produced by the extractor
        rules: Optional-container naming rules

    Returns:
        The descriptor with its FieldKind, inner type and normalized default

    Raises:
        UnresolvableType: If the declared type cannot be structurally classified
        InvalidDefaultExpression: If the default payload is invalid for the type

    Example:
        >>> classify(FieldDescriptor(name="count", declared_type="int",
        ...                          raw_attributes={"default": "10"})).kind
        <FieldKind.DEFAULTED: 'defaulted'>
    """
    try:
        shape = optional_shape(descriptor.declared_type, rules)
        default_expr: str | None = None
        if DEFAULT_ATTRIBUTE in descriptor.raw_attributes:
            default_expr = normalize_default(
                descriptor.raw_attributes[DEFAULT_ATTRIBUTE], descriptor.declared_type, rules
            )
    except ClassificationError as e:
        raise e.attribute(field=descriptor.name, line=descriptor.line)

    if default_expr is not None:
        kind = FieldKind.DEFAULTED
    elif shape.is_optional:
        kind = FieldKind.OPTIONAL
    else:
        kind = FieldKind.REQUIRED

    logger.debug(
        "classified %s: %s (optional=%s, inner=%s)",
        descriptor.name,
        kind.value,
        shape.is_optional,
        shape.inner_type,
    )
    return ClassifiedField(
        descriptor=descriptor,
        kind=kind,
        is_optional=shape.is_optional,
        inner_type=shape.inner_type,
        default_expr=default_expr,
    )


def classify_fields(
    record: RecordDeclaration, rules: TypeRules = DEFAULT_RULES
) -> list[ClassifiedField]:
    """Classify every field of a record, preserving declaration order."""
    try:
        return [classify(descriptor, rules) for descriptor in record.fields]
    except ClassificationError as e:
        raise e.attribute(record.name)


def required_fields(fields: list[ClassifiedField]) -> list[ClassifiedField]:
    """The positional signature: required fields in declaration order."""
    return [f for f in fields if f.is_required]


__all__ = [
    "DEFAULT_ATTRIBUTE",
    "classify",
    "classify_fields",
    "normalize_default",
    "required_fields",
]
